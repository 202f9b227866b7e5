"""
models.py - Pydantic Request/Response Schemas
===============================================

Defines the records produced by the scoring models and the payloads of the
HTTP interface.

Request flow:
    Client → ScanRequest / TxValidationRequest / AgentScoreRequest → model → result

Design decisions:
    - Request models use ConfigDict(extra="ignore") so unknown fields are
      dropped instead of rejected.
    - Field names are the camelCase wire names; results serialize as-is.
    - Every score field is bounded to [0, 100] at the schema level as well as
      in the models that compute it.
"""

import math
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


Severity = Literal["critical", "high", "medium", "low"]

CodeCategory = Literal[
    "shell_exec", "network_exfil", "wallet_drain", "prompt_injection",
    "obfuscation", "base64_payload", "hidden_instruction", "data_access",
    "crypto_theft",
]

ScamCategory = Literal[
    "drain", "phishing", "rugpull", "mixer", "exploit", "honeypot", "scam",
]

Recommendation = Literal["proceed", "review", "block"]


# ═══════════════════════════════════════════════════════════════════════
# CODE SCAN
# ═══════════════════════════════════════════════════════════════════════

class Detection(BaseModel):
    """A single rule-match occurrence inside scanned text.

    The originating rule's weight travels with the detection so the
    aggregator never has to look the rule up again. It is not serialized.
    """
    category: CodeCategory
    severity: Severity
    description: str
    line: Optional[int] = Field(default=None)               # 1-based line of the match
    matchedText: str = Field(default="")                    # Truncated to 100 chars + "..."
    confidence: int = Field(default=0, ge=0, le=100)
    pattern: str = Field(default="")                        # First 80 chars of the regex source
    weight: float = Field(default=0.0, exclude=True)        # Rule weight, internal only


class ScanResult(BaseModel):
    safe: bool
    riskScore: int = Field(..., ge=0, le=100)
    detections: List[Detection] = Field(default_factory=list)
    summary: str
    scannedAt: str
    inputLength: int = Field(default=0)
    durationMs: int = Field(default=0)


class ScanRequest(BaseModel):
    """POST /api/scan payload. Exactly one of ``url`` or ``code`` is used;
    ``code`` wins when both are given."""
    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = Field(default=None)
    code: Optional[str] = Field(default=None)


# ═══════════════════════════════════════════════════════════════════════
# ADDRESS CHECK
# ═══════════════════════════════════════════════════════════════════════

class ScamEntry(BaseModel):
    """Static reference record for an address known to be malicious."""
    model_config = ConfigDict(frozen=True)

    address: str
    category: ScamCategory
    severity: Severity
    description: str
    reportedAt: str
    source: Optional[str] = Field(default=None)


class AddressCheckResult(BaseModel):
    address: str
    safe: bool
    riskScore: int = Field(..., ge=0, le=100)
    flags: List[str] = Field(default_factory=list)
    firstSeen: Optional[str] = Field(default=None)          # ISO timestamp of oldest signature
    txCount: int = Field(default=0)
    accountAge: Optional[str] = Field(default=None)         # "<days> days"
    balance: Optional[float] = Field(default=None)          # Native units (SOL)
    isProgram: bool = Field(default=False)
    scamMatch: Optional[ScamEntry] = Field(default=None)
    checkedAt: str


# ═══════════════════════════════════════════════════════════════════════
# TRANSACTION VALIDATION
# ═══════════════════════════════════════════════════════════════════════

class TxValidationRequest(BaseModel):
    """A proposed transfer. ``amount`` must be a real JSON number."""
    model_config = ConfigDict(extra="ignore")

    destination: str = Field(..., min_length=1)
    amount: float = Field(...)
    token: Optional[str] = Field(default="SOL")
    context: Optional[str] = Field(default="")

    @field_validator("amount", mode="before")
    @classmethod
    def _reject_non_numbers(cls, value: Any) -> Any:
        """Strings and booleans are not amounts, even if they parse as one."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("amount must be a valid number")
        if isinstance(value, float) and math.isnan(value):
            raise ValueError("amount must be a valid number")
        return value


class TxValidationResult(BaseModel):
    safe: bool
    riskScore: int = Field(..., ge=0, le=100)
    flags: List[str] = Field(default_factory=list)
    recommendation: Recommendation
    details: str
    validatedAt: str


# ═══════════════════════════════════════════════════════════════════════
# AGENT SCORING
# ═══════════════════════════════════════════════════════════════════════

class AgentProfile(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str = Field(..., min_length=1)
    codeUrl: Optional[str] = Field(default=None)
    walletAddress: Optional[str] = Field(default=None)
    skills: Optional[List[str]] = Field(default=None)
    description: Optional[str] = Field(default=None)


class AgentScoreRequest(AgentProfile):
    """POST /api/score payload: a profile plus optional inline code."""
    code: Optional[str] = Field(default=None)


class AgentDimensions(BaseModel):
    security: int = Field(..., ge=0, le=100)
    output: int = Field(..., ge=0, le=100)
    reputation: int = Field(..., ge=0, le=100)
    integration: int = Field(..., ge=0, le=100)
    risk: int = Field(..., ge=0, le=100)        # Inverted: 100 means no risk found


class AgentScore(BaseModel):
    agent: str
    overallScore: int = Field(..., ge=0, le=100)
    grade: str
    dimensions: AgentDimensions
    flags: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    scoredAt: str


# ═══════════════════════════════════════════════════════════════════════
# THREAT LOG
# ═══════════════════════════════════════════════════════════════════════

class ThreatEntry(BaseModel):
    id: str
    type: Literal["scan_detection", "address_flag", "tx_block", "pattern_match"]
    severity: Severity
    title: str
    description: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    timestamp: str
