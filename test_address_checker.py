"""Address risk model, driven by an in-memory ledger stub."""

import asyncio
import time

import pytest

from agentshield.address_checker import check_address
from agentshield.errors import LedgerQueryError
from agentshield.solana import AccountInfo, SignatureInfo, is_valid_address


MANGO_EXPLOITER = "Htp9MGP8Tig923ZFY7Qf2zzbMUmYneFRAhSp7vSg4wxV"
PLAIN_ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"
DAY = 86400


class FakeLedger:
    """Ledger provider stub that records which queries were made."""

    def __init__(self, account=None, signatures=None, account_error=False, signature_error=False):
        self.account = account
        self.signatures = signatures or []
        self.account_error = account_error
        self.signature_error = signature_error
        self.calls = []

    async def get_account_info(self, address):
        self.calls.append("account")
        if self.account_error:
            raise LedgerQueryError("rpc down")
        return self.account

    async def get_recent_signatures(self, address, limit=100):
        self.calls.append("signatures")
        if self.signature_error:
            raise LedgerQueryError("rate limited")
        return self.signatures[:limit]


def _signatures(count, spacing, newest=None):
    newest = int(newest if newest is not None else time.time())
    return [SignatureInfo(signature=f"sig{i}", blockTime=newest - i * spacing) for i in range(count)]


def _check(address, ledger):
    return asyncio.run(check_address(address, ledger=ledger))


def _healthy_ledger():
    return FakeLedger(
        account=AccountInfo(lamports=5 * 10**9, executable=False),
        signatures=_signatures(10, 40 * DAY),
    )


# ==================== Format ====================

@pytest.mark.parametrize("address, valid", [
    ("11111111111111111111111111111111", True),
    (PLAIN_ADDRESS, True),
    (MANGO_EXPLOITER, True),
    ("0" * 40, False),                  # '0' is not base58
    ("1" * 31, False),                  # too short
    ("1" * 45, False),                  # too long
    ("z" * 44, False),                  # decodes to 33 bytes
    (None, False),
])
def test_is_valid_address(address, valid):
    assert is_valid_address(address) is valid


def test_invalid_address_short_circuits():
    ledger = FakeLedger()
    result = _check("0OIl" * 10, ledger)
    assert result.riskScore == 100
    assert result.flags == ["INVALID_ADDRESS"]
    assert result.safe is False
    assert ledger.calls == []


# ==================== Registry ====================

def test_known_scam_is_never_safe():
    result = _check(MANGO_EXPLOITER, _healthy_ledger())
    assert result.riskScore == 50
    assert result.safe is False
    assert "KNOWN_SCAM: exploit" in result.flags
    assert result.scamMatch is not None
    assert result.scamMatch.severity == "critical"


def test_clean_established_account_is_safe():
    result = _check(PLAIN_ADDRESS, _healthy_ledger())
    assert result.riskScore == 0
    assert result.safe is True
    assert result.flags == []
    assert result.balance == pytest.approx(5.0)
    assert result.txCount == 10
    assert result.accountAge == "360 days"
    assert result.firstSeen is not None


# ==================== On-chain heuristics ====================

def test_missing_account_without_history():
    result = _check(PLAIN_ADDRESS, FakeLedger(account=None, signatures=[]))
    assert result.flags == ["ACCOUNT_NOT_FOUND", "NO_TRANSACTION_HISTORY"]
    assert result.riskScore == 25
    assert result.safe is True


def test_brand_new_program_with_high_balance():
    ledger = FakeLedger(
        account=AccountInfo(lamports=150 * 10**9, executable=True),
        signatures=_signatures(3, 600),
    )
    result = _check(PLAIN_ADDRESS, ledger)
    assert result.isProgram is True
    assert "IS_PROGRAM" in result.flags
    assert "HIGH_BALANCE" in result.flags
    assert "VERY_NEW_ACCOUNT" in result.flags
    assert result.accountAge == "0 days"
    assert result.riskScore == 20


@pytest.mark.parametrize("age_days, flag, risk", [
    (3, "NEW_ACCOUNT", 10),
    (14, "RECENT_ACCOUNT", 5),
])
def test_account_age_bands(age_days, flag, risk):
    now = int(time.time())
    sigs = [
        SignatureInfo(signature="newest", blockTime=now - DAY),
        SignatureInfo(signature="oldest", blockTime=now - age_days * DAY - 60),
    ]
    ledger = FakeLedger(account=AccountInfo(lamports=1, executable=False), signatures=sigs)
    result = _check(PLAIN_ADDRESS, ledger)
    assert flag in result.flags
    assert result.riskScore == risk


def test_rapid_transactions_and_high_activity():
    ledger = FakeLedger(
        account=AccountInfo(lamports=10**9, executable=False),
        signatures=_signatures(100, 10),
    )
    result = _check(PLAIN_ADDRESS, ledger)
    assert result.txCount == 100
    assert "HIGH_ACTIVITY" in result.flags
    assert "RAPID_TRANSACTIONS" in result.flags
    assert "VERY_NEW_ACCOUNT" in result.flags
    assert result.riskScore == 35
    assert result.safe is False


def test_busy_old_account_is_not_rapid():
    ledger = FakeLedger(
        account=AccountInfo(lamports=10**9, executable=False),
        signatures=_signatures(100, DAY),
    )
    result = _check(PLAIN_ADDRESS, ledger)
    assert result.flags == ["HIGH_ACTIVITY"]
    assert result.riskScore == 0


# ==================== Ledger failures ====================

def test_account_query_failure_skips_history():
    ledger = FakeLedger(account_error=True)
    result = _check(PLAIN_ADDRESS, ledger)
    assert result.flags == ["RPC_ERROR"]
    assert result.riskScore == 0
    assert result.safe is True
    assert ledger.calls == ["account"]


def test_history_failure_adds_no_risk():
    ledger = FakeLedger(
        account=AccountInfo(lamports=10**9, executable=False),
        signature_error=True,
    )
    result = _check(PLAIN_ADDRESS, ledger)
    assert result.flags == ["TX_HISTORY_UNAVAILABLE"]
    assert result.riskScore == 0
    assert ledger.calls == ["account", "signatures"]
