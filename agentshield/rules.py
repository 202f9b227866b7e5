"""
rules.py - Declarative Detection Rule Tables
=============================================

Every detection and scoring rule in the system is plain data: a regex plus
the metadata the engine needs to turn a match into evidence. Tables are
built once at import time and never mutated.

Tables:
    - CODE_RULES              : code/plugin scan rules (9 categories)
    - TX_CONTEXT_RULES        : social-engineering phrases in transfer context
    - AGENT_RISK_RULES        : risk indicators in agent profiles (negative impact)
    - AGENT_SECURITY_RULES    : positive security-practice indicators

Compiled patterns hold no scan position, so a table can be shared freely
between concurrent scans.

Wildcards are bounded (``.{0,200}``, ``{0,2000}`` inside comments) so the
work per match attempt is capped and a full 1 MB scan stays linear. Rules
with two gaps use ``(?=(...))\\1``, which consumes the first keyword without
re-trying later ones.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Pattern, Tuple


@dataclass(frozen=True)
class Rule:
    """A code-scan rule: matcher plus category, severity, confidence, weight."""
    pattern: Pattern[str]
    category: str
    severity: str
    description: str
    confidence: int
    weight: float


@dataclass(frozen=True)
class SignalRule:
    """A phrase rule that raises a flag and moves a score by ``weight``."""
    pattern: Pattern[str]
    flag: str
    weight: int


# ================================================================
# CODE SCAN RULES - (regex, category, severity, confidence, weight, description)
# ================================================================

_CODE_PATTERNS: List[Tuple[str, str, str, int, float, str]] = [
    # ── Shell execution ──
    (r"\brequire\s*\(\s*['\"`]child_process['\"`]\s*\)",
     "shell_exec", "critical", 95, 25, "Imports child_process module, can execute arbitrary system commands"),
    (r"\bfrom\s+['\"`]child_process['\"`]",
     "shell_exec", "critical", 95, 25, "ES module import of child_process"),
    (r"\b(?:exec|execSync|spawn|spawnSync|fork|execFile|execFileSync)\s*\(",
     "shell_exec", "critical", 90, 20, "Direct shell command execution function call"),
    (r"child_process\s*\.\s*(?:exec|spawn|fork|execFile)",
     "shell_exec", "critical", 95, 25, "child_process method invocation"),
    (r"\bprocess\.(?:exit|kill|abort)\s*\(",
     "shell_exec", "high", 70, 10, "Process termination, could be used to crash host"),
    (r"\brequire\s*\(\s*['\"`](?:os|fs|path|net|dgram|cluster|vm|repl)['\"`]\s*\)",
     "shell_exec", "medium", 60, 8, "Imports sensitive Node.js core module"),
    (r"\bshelljs\b|\bexeca\b|\bcross-spawn\b",
     "shell_exec", "high", 85, 15, "Third-party shell execution library"),
    (r"\bsubprocess\s*\.\s*(?:Popen|run|call|check_call|check_output|getoutput)\s*\(",
     "shell_exec", "critical", 90, 20, "Python subprocess invocation, runs external commands"),
    (r"\bos\s*\.\s*(?:system|popen|exec[lv]p?e?)\s*\(",
     "shell_exec", "critical", 90, 20, "Python os-level command execution"),

    # ── Network exfiltration ──
    (r"\bfetch\s*\(\s*['\"`]https?://(?!localhost|127\.0\.0\.1)",
     "network_exfil", "high", 60, 10, "HTTP request to external domain, potential data exfiltration"),
    (r"\b(?:axios|got|request|superagent|node-fetch|undici)\b",
     "network_exfil", "medium", 40, 5, "HTTP client library, review outbound connections"),
    (r"new\s+WebSocket\s*\(",
     "network_exfil", "high", 70, 12, "WebSocket connection, could stream data to external server"),
    (r"\b(?:dns|net|dgram|tls|https?)\s*\.\s*(?:connect|request|createConnection|lookup)",
     "network_exfil", "high", 80, 15, "Low-level network connection, bypasses HTTP monitoring"),
    (r"\.(?:send|write|emit)\s*\(.{0,200}(?:private|secret|key|mnemonic|seed|password|token)",
     "network_exfil", "critical", 85, 25, "Sending sensitive data over network connection"),
    (r"webhooks?\s*[=:]\s*['\"`]https?://",
     "network_exfil", "critical", 80, 20, "Webhook URL configured, likely exfiltration endpoint"),
    (r"discord(?:app)?\.com/api/webhooks/",
     "network_exfil", "critical", 90, 25, "Discord webhook, common exfiltration channel for stolen data"),
    (r"api\.telegram\.org/bot",
     "network_exfil", "critical", 90, 25, "Telegram bot API, common exfiltration channel"),

    # ── Wallet / key access ──
    (r"\b(?:privateKey|private_key|privKey|priv_key)\b",
     "wallet_drain", "critical", 90, 25, "Accesses private key, potential wallet theft"),
    (r"\b(?:secretKey|secret_key|keypair|keyPair)\b",
     "wallet_drain", "critical", 85, 20, "Accesses secret key or keypair"),
    (r"\b(?:mnemonic|seed[Pp]hrase|seed_phrase|recovery[Pp]hrase|recovery_phrase)\b",
     "wallet_drain", "critical", 95, 30, "Accesses mnemonic/seed phrase, wallet recovery theft"),
    (r"Keypair\s*\.\s*fromSecretKey",
     "wallet_drain", "critical", 95, 30, "Reconstructing Solana Keypair from secret key bytes"),
    (r"Keypair\s*\.\s*fromSeed",
     "wallet_drain", "critical", 95, 30, "Reconstructing Solana Keypair from seed"),
    (r"\bbs58\s*\.\s*decode\b",
     "wallet_drain", "high", 60, 10, "Base58 decoding, could be decoding wallet keys"),
    (r"process\.env\s*\[\s*['\"`](?=[^'\"`\]\n]{0,200}?(?:KEY|SECRET|PRIVATE|MNEMONIC|SEED))"
     r"[^'\"`\]\n]{0,200}['\"`]\s*\]",
     "wallet_drain", "high", 75, 15, "Reading sensitive environment variables (keys/secrets)"),
    (r"\.(?:signTransaction|signAllTransactions|signMessage)\s*\(",
     "wallet_drain", "high", 50, 8, "Transaction/message signing, verify authorization"),
    (r"SystemProgram\s*\.\s*transfer\s*\(",
     "wallet_drain", "high", 50, 8, "SOL transfer instruction, verify recipient is authorized"),
    (r"\btransfer\s*\((?=(.{0,200}?(?:lamports|amount)))\1.{0,200}\)",
     "wallet_drain", "medium", 40, 6, "Token/SOL transfer with amount, review authorization"),
    (r"solana-keygen|solana\s+config\s+set",
     "wallet_drain", "critical", 85, 20, "Solana CLI key generation or config modification"),

    # ── Prompt injection ──
    (r"\bSYSTEM\s*:\s*[Yy]ou\s+are\b",
     "prompt_injection", "critical", 90, 25, "System prompt override attempt"),
    (r"\b(?:OVERRIDE|OVERWRITE)\s*:\s*",
     "prompt_injection", "critical", 85, 20, "Instruction override marker detected"),
    (r"ignore\s+(?:previous|prior|above|all)\s+(?:instructions?|prompts?|rules?|guidelines?)",
     "prompt_injection", "critical", 95, 30, "Prompt injection, attempts to override previous instructions"),
    (r"forget\s+(?:everything|all|your)\s+(?:previous|prior|instructions?|rules?)",
     "prompt_injection", "critical", 90, 25, "Prompt injection, attempts to clear agent instructions"),
    (r"\b(?:disregard|bypass)\s+(?:safety|security|restrictions?|guardrails?|filters?)",
     "prompt_injection", "critical", 90, 25, "Attempts to bypass safety guardrails"),
    (r"<\s*use_tool\b",
     "prompt_injection", "critical", 95, 30, "Tool invocation injection, attempts to make agent call tools"),
    (r"<\s*(?:function_call|tool_call|invoke|execute)\b",
     "prompt_injection", "critical", 90, 25, "Function/tool call injection attempt"),
    (r"\[INST\]|\[/INST\]|<<SYS>>|<\|im_start\|>|<\|system\|>",
     "prompt_injection", "critical", 95, 30, "LLM special token injection, attempts to inject control tokens"),
    (r"you\s+(?:are|must|should)\s+now\s+(?:act|behave|respond)\s+as",
     "prompt_injection", "high", 80, 15, "Role reassignment attempt, jailbreak pattern"),
    (r"\bDAN\s+mode\b|do\s+anything\s+now",
     "prompt_injection", "high", 85, 18, "DAN (Do Anything Now) jailbreak pattern"),

    # ── Obfuscation and encoded payloads ──
    (r"\beval\s*\(",
     "obfuscation", "critical", 90, 25, "eval() executes arbitrary code strings"),
    (r"new\s+Function\s*\(",
     "obfuscation", "critical", 90, 25, "Function constructor creates function from string (like eval)"),
    (r"\bsetTimeout\s*\(\s*['\"`]",
     "obfuscation", "high", 80, 15, "setTimeout with string argument executes as eval"),
    (r"\bsetInterval\s*\(\s*['\"`]",
     "obfuscation", "high", 80, 15, "setInterval with string argument executes as eval"),
    (r"\b(?:atob|btoa)\s*\(\s*['\"`][A-Za-z0-9+/=]{20,}",
     "base64_payload", "high", 75, 15, "Base64 encoding/decoding of substantial payload"),
    (r"Buffer\s*\.\s*from\s*\(\s*['\"`][A-Za-z0-9+/=]{20,}['\"`]\s*,\s*['\"`]base64['\"`]\)",
     "base64_payload", "high", 80, 18, "Buffer.from with base64, decoding hidden payload"),
    (r"\bb64decode\s*\(\s*[bu]?['\"][A-Za-z0-9+/=]{20,}",
     "base64_payload", "high", 75, 15, "Python base64 decoding of embedded payload"),
    (r"\\x[0-9a-fA-F]{2}(?:\\x[0-9a-fA-F]{2}){5,}",
     "obfuscation", "high", 75, 15, "Hex-escaped string sequence, obfuscated code"),
    (r"\\u[0-9a-fA-F]{4}(?:\\u[0-9a-fA-F]{4}){5,}",
     "obfuscation", "high", 75, 15, "Unicode-escaped string sequence, obfuscated code"),
    (r"\['\\x[0-9a-fA-F]+'\]",
     "obfuscation", "high", 80, 15, "Hex property access, obfuscated member access"),
    (r"String\s*\.\s*fromCharCode\s*\(\s*\d+(?:\s*,\s*\d+){4,}\s*\)",
     "obfuscation", "high", 80, 18, "String.fromCharCode with multiple codes, building hidden strings"),
    (r"\b_0x[a-f0-9]{4,}\b",
     "obfuscation", "high", 85, 15, "JavaScript obfuscator variable naming pattern"),

    # ── Hidden instructions ──
    (r"<!--(?=(?:(?!-->|<!--)[\s\S]){0,2000}?(?:system|override|ignore|secret|hidden))"
     r"(?:(?!-->|<!--)[\s\S]){0,2000}?-->",
     "hidden_instruction", "high", 70, 12, "HTML comment containing suspicious keywords"),
    (r"/\*(?=(?:(?!\*/|/\*)[\s\S]){0,2000}?(?:system|override|ignore|secret|hidden|instruction))"
     r"(?:(?!\*/|/\*)[\s\S]){0,2000}?\*/",
     "hidden_instruction", "medium", 50, 8, "Code comment containing suspicious keywords"),
    (r"[\u200b\u200c\u200d\u2060\ufeff]",
     "hidden_instruction", "high", 85, 18, "Zero-width characters detected, possible hidden text"),
    (r"[\u2800-\u28ff]{3,}",
     "hidden_instruction", "high", 80, 15, "Braille pattern characters, possible steganographic hiding"),

    # ── Filesystem / data access ──
    (r"\bfs\s*\.\s*(?:readFile|readFileSync|readdir|readdirSync|createReadStream)\s*\(",
     "data_access", "high", 65, 10, "Filesystem read operation, potential data theft"),
    (r"\bfs\s*\.\s*(?:writeFile|writeFileSync|appendFile|createWriteStream|unlink|rm)\s*\(",
     "data_access", "high", 70, 12, "Filesystem write/delete operation, potential data destruction"),
    (r"(?:/etc/passwd|/etc/shadow|~/\.ssh|\.env\b|\.bashrc|\.zshrc)",
     "data_access", "critical", 90, 25, "Accessing sensitive system files"),
    (r"\bopen\s*\(\s*['\"][^'\"\n]{0,200}(?:/etc/|~/|\.ssh|\.aws)",
     "data_access", "high", 65, 10, "Python file open on a home or system path"),

    # ── Crypto wallet theft ──
    (r"(?:\.solana/id\.json|\.config/solana|solana.{0,200}config\.yml)",
     "crypto_theft", "critical", 95, 30, "Accessing Solana CLI wallet/config files"),
    (r"(?:phantom|solflare|backpack|glow)\s*(?:wallet|extension|keystore)",
     "crypto_theft", "critical", 85, 25, "Targeting Solana wallet browser extensions"),
    (r"(?:chrome|firefox|brave)\s*(?:extension|profile|data)\s*(?:dir|path|folder)",
     "crypto_theft", "high", 75, 15, "Accessing browser extension data, potential wallet theft"),
]

CODE_RULES: Tuple[Rule, ...] = tuple(
    Rule(
        pattern=re.compile(regex, re.IGNORECASE),
        category=category,
        severity=severity,
        description=description,
        confidence=confidence,
        weight=weight,
    )
    for regex, category, severity, confidence, weight, description in _CODE_PATTERNS
)

# Human labels used in scan summaries
CATEGORY_LABELS: Dict[str, str] = {
    "shell_exec":         "shell command execution",
    "network_exfil":      "network exfiltration",
    "wallet_drain":       "wallet/key access",
    "prompt_injection":   "prompt injection",
    "obfuscation":        "code obfuscation",
    "base64_payload":     "base64 encoded payloads",
    "hidden_instruction": "hidden instructions",
    "data_access":        "filesystem access",
    "crypto_theft":       "cryptocurrency theft",
}


# ================================================================
# TRANSACTION CONTEXT - social-engineering language (regex, flag, weight)
# ================================================================

_TX_CONTEXT_PATTERNS = [
    (r"\b(?:urgent|immediately|right\s+now|hurry|fast|asap)\b",                  "URGENCY_PRESSURE",        10),
    (r"\b(?:double|triple|multiply|guaranteed\s+returns?|10x|100x)\b",           "UNREALISTIC_RETURNS",     20),
    (r"\b(?:limited\s+time|expires?\s+soon|last\s+chance|exclusive)\b",          "SCARCITY_PRESSURE",       10),
    (r"\b(?:trust\s+me|legit|not\s+a?\s*scam)\b|100%\s+safe",                    "TRUST_MANIPULATION",      15),
    (r"\b(?:admin|moderator|support\s+team|official)\b",                         "AUTHORITY_IMPERSONATION", 10),
    (r"\bsend\b.{0,200}\b(?:first|before)\b|\badvance\b.{0,200}\b(?:fee|payment)", "ADVANCE_FEE_PATTERN",   25),
    (r"\bverify\b.{0,200}\bwallet"
     r"|\bconnect\b(?=(.{0,200}?\bwallet\b))\1.{0,200}\b(?:here|link)\b",        "WALLET_PHISHING",         20),
    (r"\bairdrop\b.{0,200}\bclaim|\bclaim\b.{0,200}\b(?:reward|token|prize)",    "FAKE_AIRDROP",            15),
]

TX_CONTEXT_RULES: Tuple[SignalRule, ...] = tuple(
    SignalRule(re.compile(regex, re.IGNORECASE), flag, weight)
    for regex, flag, weight in _TX_CONTEXT_PATTERNS
)


# ================================================================
# AGENT PROFILE SIGNALS - (regex, flag, impact)
# ================================================================

_AGENT_RISK_PATTERNS = [
    (r"guaranteed.{0,200}(?:profit|return|gains)",             "PROMISES_GUARANTEED_RETURNS", -15),
    (r"send(?=(.{0,200}?(?:first|now|immediately)))\1"
     r".{0,200}(?:receive|get)",                               "ADVANCE_FEE_LANGUAGE",        -20),
    (r"(?:admin|root|sudo).{0,200}access",                     "REQUESTS_ELEVATED_ACCESS",    -10),
    (r"private.{0,200}key|seed.{0,200}phrase|mnemonic",        "REFERENCES_PRIVATE_KEYS",     -25),
    (r"act.{0,200}fast|limited.{0,200}time|hurry|urgent",      "URGENCY_PRESSURE",            -10),
    (r"trust.{0,200}me|not.{0,200}scam|legit",                 "TRUST_MANIPULATION",          -15),
    (r"eval\s*\(|Function\s*\(|exec\s*\(",                     "DYNAMIC_CODE_EXECUTION",      -20),
    (r"webhook|exfil|c2|command.{0,200}control",               "EXFILTRATION_INDICATORS",     -30),
]

_AGENT_SECURITY_PATTERNS = [
    (r"rate.{0,200}limit|throttl",                             "HAS_RATE_LIMITING",  10),
    (r"input.{0,200}valid|sanitiz|escap",                      "INPUT_VALIDATION",   10),
    (r"encrypt|hash|hmac",                                     "USES_ENCRYPTION",     8),
    (r"audit|security.{0,200}review|pentest",                  "SECURITY_AWARE",      5),
    (r"helmet|cors|csp",                                       "SECURITY_HEADERS",    8),
    (r"test|spec|jest|mocha",                                  "HAS_TESTS",          10),
    (r"typescript|ts-node|mypy",                               "TYPED_LANGUAGE",      5),
    (r"error.{0,200}handl|try.{0,200}catch|\.catch|\bexcept\b", "ERROR_HANDLING",    5),
]

AGENT_RISK_RULES: Tuple[SignalRule, ...] = tuple(
    SignalRule(re.compile(regex, re.IGNORECASE), flag, impact)
    for regex, flag, impact in _AGENT_RISK_PATTERNS
)

AGENT_SECURITY_RULES: Tuple[SignalRule, ...] = tuple(
    SignalRule(re.compile(regex, re.IGNORECASE), flag, impact)
    for regex, flag, impact in _AGENT_SECURITY_PATTERNS
)
