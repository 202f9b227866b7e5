"""
Transaction risk model: proceed / review / block.

Checks a proposed transfer before it is signed: destination format, scam
registry, allow-listed programs, amount relative to a per-token threshold,
and social-engineering language in the caller-supplied context.
"""

import logging
from datetime import datetime, timezone
from typing import Dict, FrozenSet, List, Optional

from agentshield.detector import SAFE_THRESHOLD, clamp_score, match_signals
from agentshield.models import TxValidationRequest, TxValidationResult
from agentshield.rules import TX_CONTEXT_RULES
from agentshield.scam_registry import ScamRegistry, scam_registry
from agentshield.solana import is_valid_address

logger = logging.getLogger(__name__)


BLOCK_THRESHOLD: int = 60
REVIEW_THRESHOLD: int = SAFE_THRESHOLD

SCAM_PENALTY: int = 80
SAFE_PROGRAM_CREDIT: int = 20

HIGH_VALUE_THRESHOLDS: Dict[str, float] = {
    "SOL":  10,
    "USDC": 1000,
    "USDT": 1000,
    "BONK": 100_000_000,
    "JUP":  5000,
}
DEFAULT_THRESHOLD: float = 1000

KNOWN_SAFE_PROGRAMS: FrozenSet[str] = frozenset([
    "11111111111111111111111111111111",              # System Program
    "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA",   # SPL Token
    "ATokenGPvbdGVxr1b2hvZbsiqW5xWH25efTNsLJA8knL",  # Associated Token Account
    "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",   # Jupiter v6
    "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc",   # Orca Whirlpool
    "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8",  # Raydium AMM
    "metaqbxxUerdq28cj1RbAWkYQm3ybzjb6a8bt518x1s",   # Metaplex Token Metadata
    "So1endDq2YkqhipRh3WViPa8hFMqFTiRnTNpGRZpubsc",  # Solend (deprecated)
    "MangoeUkGQBJhRjjz3PMMoKTJKPrb8eaWRvRHfgjUdZ",   # Mango v4 (exploited 2022)
])

MIN_CONTEXT_LENGTH: int = 5


def high_value_threshold(token: Optional[str]) -> float:
    symbol = (token or "SOL").upper()
    return HIGH_VALUE_THRESHOLDS.get(symbol, DEFAULT_THRESHOLD)


def validate_transaction(
    request: TxValidationRequest,
    registry: Optional[ScamRegistry] = None,
) -> TxValidationResult:
    """Score a transfer and pick a recommendation."""
    registry = registry or scam_registry
    validated_at = datetime.now(timezone.utc).isoformat()

    if not is_valid_address(request.destination):
        return TxValidationResult(
            safe=False,
            riskScore=100,
            flags=["INVALID_DESTINATION_ADDRESS"],
            recommendation="block",
            details="Destination address is not a valid Solana public key.",
            validatedAt=validated_at,
        )

    flags: List[str] = []
    risk = 0

    scam_entry = registry.lookup(request.destination)
    if scam_entry:
        flags.append(f"KNOWN_SCAM: {scam_entry.category}")
        flags.append(f"SCAM_DETAIL: {scam_entry.description}")
        risk += SCAM_PENALTY

    if request.destination in KNOWN_SAFE_PROGRAMS:
        flags.append("KNOWN_SAFE_PROGRAM")
        risk = max(0, risk - SAFE_PROGRAM_CREDIT)

    # Amount
    amount = request.amount
    threshold = high_value_threshold(request.token)
    if amount > threshold * 10:
        flags.append("EXTREMELY_HIGH_VALUE")
        risk += 25
    elif amount > threshold:
        flags.append("HIGH_VALUE_TRANSACTION")
        risk += 10

    if amount <= 0:
        flags.append("ZERO_OR_NEGATIVE_AMOUNT")
        risk += 5

    if amount >= 100 and float(amount).is_integer():
        flags.append("ROUND_NUMBER_AMOUNT")
        risk += 3

    # Context
    context = request.context or ""
    for rule in match_signals(TX_CONTEXT_RULES, context):
        flags.append(rule.flag)
        risk += rule.weight

    if len(context.strip()) < MIN_CONTEXT_LENGTH:
        flags.append("NO_CONTEXT_PROVIDED")
        risk += 5

    score = clamp_score(risk)

    if score >= BLOCK_THRESHOLD or scam_entry:
        recommendation = "block"
        if scam_entry:
            details = (
                f"⛔ BLOCKED: Destination is a known {scam_entry.category} "
                f"address: {scam_entry.description}"
            )
        else:
            details = (
                f"⛔ BLOCKED: High risk score ({score}/100). "
                f"Multiple suspicious flags detected."
            )
    elif score >= REVIEW_THRESHOLD:
        recommendation = "review"
        details = (
            f"⚠️ REVIEW REQUIRED: Moderate risk score ({score}/100). "
            f"{len(flags)} flag(s) detected. Manual review recommended before proceeding."
        )
    else:
        recommendation = "proceed"
        details = f"✅ Transaction appears safe. Risk score: {score}/100."

    if recommendation != "proceed":
        logger.info(
            f"[{request.destination[:8]}] tx {recommendation} score={score} flags={flags}"
        )

    return TxValidationResult(
        safe=score < SAFE_THRESHOLD,
        riskScore=score,
        flags=flags,
        recommendation=recommendation,
        details=details,
        validatedAt=validated_at,
    )
