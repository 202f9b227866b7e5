"""
Address risk model.

Merges the static scam registry with on-chain heuristics (existence,
balance, program flag, account age, activity burst) fetched from a ledger
provider. Ledger failures become informational flags and add no risk.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List, Optional

from agentshield.detector import SAFE_THRESHOLD, clamp_score
from agentshield.errors import LedgerQueryError
from agentshield.models import AddressCheckResult
from agentshield.scam_registry import ScamRegistry, scam_registry
from agentshield.solana import SignatureInfo, SolanaRPC, is_valid_address

logger = logging.getLogger(__name__)


SCAM_SEVERITY_PENALTY = {
    "critical": 50,
    "high":     35,
    "medium":   20,
    "low":      10,
}
SCAM_DEFAULT_PENALTY: int = 25

ACCOUNT_NOT_FOUND_PENALTY: int = 15
NO_HISTORY_PENALTY: int = 10
RAPID_TX_PENALTY: int = 15
HIGH_BALANCE_SOL: float = 100.0

# (max age in days, flag, penalty), first match wins
AGE_BANDS = [
    (1,  "VERY_NEW_ACCOUNT", 20),
    (7,  "NEW_ACCOUNT",      10),
    (30, "RECENT_ACCOUNT",    5),
]

SIGNATURE_LIMIT: int = 100
RAPID_WINDOW_TXS: int = 50
RAPID_WINDOW_SECONDS: int = 3600

SECONDS_PER_DAY: int = 86400


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


async def check_address(
    address: str,
    ledger: Optional[SolanaRPC] = None,
    registry: Optional[ScamRegistry] = None,
) -> AddressCheckResult:
    """Score a Solana address. Invalid format short-circuits to 100."""
    if not is_valid_address(address):
        return AddressCheckResult(
            address=str(address),
            safe=False,
            riskScore=100,
            flags=["INVALID_ADDRESS"],
            checkedAt=_now_iso(),
        )

    ledger = ledger or SolanaRPC()
    registry = registry or scam_registry

    flags: List[str] = []
    risk = 0
    balance: Optional[float] = None
    is_program = False
    tx_count = 0
    first_seen: Optional[str] = None
    account_age: Optional[str] = None

    # 1. Registry
    scam_match = registry.lookup(address)
    if scam_match:
        flags.append(f"KNOWN_SCAM: {scam_match.category}")
        flags.append(f"SCAM_DESCRIPTION: {scam_match.description}")
        risk += SCAM_SEVERITY_PENALTY.get(scam_match.severity, SCAM_DEFAULT_PENALTY)

    # 2. Account info; a failure here skips the history query
    try:
        info = await ledger.get_account_info(address)
    except LedgerQueryError as exc:
        logger.warning(f"[{address[:8]}] account info unavailable: {exc}")
        flags.append("RPC_ERROR")
    else:
        if info is None:
            flags.append("ACCOUNT_NOT_FOUND")
            risk += ACCOUNT_NOT_FOUND_PENALTY
        else:
            balance = info.balance
            is_program = info.executable
            if is_program:
                flags.append("IS_PROGRAM")
            if balance > HIGH_BALANCE_SOL:
                flags.append("HIGH_BALANCE")

        # 3. Transaction history
        try:
            signatures = await ledger.get_recent_signatures(address, limit=SIGNATURE_LIMIT)
        except LedgerQueryError as exc:
            logger.warning(f"[{address[:8]}] tx history unavailable: {exc}")
            flags.append("TX_HISTORY_UNAVAILABLE")
        else:
            tx_count = len(signatures)
            history_risk, history_flags, first_seen, account_age = _score_history(signatures)
            risk += history_risk
            flags.extend(history_flags)

    score = clamp_score(risk)
    if scam_match or score >= SAFE_THRESHOLD:
        logger.info(f"[{address[:8]}] flagged score={score} flags={flags}")

    return AddressCheckResult(
        address=address,
        safe=score < SAFE_THRESHOLD and scam_match is None,
        riskScore=score,
        flags=flags,
        firstSeen=first_seen,
        txCount=tx_count,
        accountAge=account_age,
        balance=balance,
        isProgram=is_program,
        scamMatch=scam_match,
        checkedAt=_now_iso(),
    )


def _score_history(signatures: List[SignatureInfo]):
    """Return (risk, flags, first_seen, account_age) for most-recent-first signatures."""
    risk = 0
    flags: List[str] = []
    first_seen: Optional[str] = None
    account_age: Optional[str] = None

    if signatures:
        oldest = signatures[-1].blockTime
        if oldest:
            first_seen = datetime.fromtimestamp(oldest, tz=timezone.utc).isoformat()
            age_days = int((time.time() - oldest) // SECONDS_PER_DAY)
            account_age = f"{age_days} days"
            for max_days, flag, penalty in AGE_BANDS:
                if age_days < max_days:
                    flags.append(flag)
                    risk += penalty
                    break

    if not signatures:
        flags.append("NO_TRANSACTION_HISTORY")
        risk += NO_HISTORY_PENALTY
    elif len(signatures) == SIGNATURE_LIMIT:
        flags.append("HIGH_ACTIVITY")

    if len(signatures) >= RAPID_WINDOW_TXS:
        newest = signatures[0].blockTime
        fiftieth = signatures[RAPID_WINDOW_TXS - 1].blockTime
        if newest and fiftieth and newest - fiftieth < RAPID_WINDOW_SECONDS:
            flags.append("RAPID_TRANSACTIONS")
            risk += RAPID_TX_PENALTY

    return risk, flags, first_seen, account_age
