"""Solana address validation and ledger JSON-RPC provider.

``SolanaRPC`` is the ledger-query collaborator used by the address risk
model. It distinguishes "no data" (``None`` / empty list) from "failed"
(``LedgerQueryError``) so callers never score an infrastructure error as
evidence of risk.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import base58
import httpx

from agentshield import config
from agentshield.errors import LedgerQueryError

logger = logging.getLogger(__name__)


ADDRESS_MIN_LENGTH: int = 32
ADDRESS_MAX_LENGTH: int = 44
PUBKEY_BYTES: int = 32
LAMPORTS_PER_SOL: int = 1_000_000_000


def is_valid_address(address: Any) -> bool:
    """True for a 32-44 character base58 string decoding to at most 32 bytes."""
    if not isinstance(address, str):
        return False
    if not ADDRESS_MIN_LENGTH <= len(address) <= ADDRESS_MAX_LENGTH:
        return False
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return False
    return 0 < len(raw) <= PUBKEY_BYTES


@dataclass(frozen=True)
class AccountInfo:
    lamports: int
    executable: bool

    @property
    def balance(self) -> float:
        """Balance in SOL."""
        return self.lamports / LAMPORTS_PER_SOL


@dataclass(frozen=True)
class SignatureInfo:
    signature: str
    blockTime: Optional[int] = None     # Unix seconds, None when not yet known


class SolanaRPC:
    """Minimal async JSON-RPC client for the two queries the checker needs.

    A fresh ``httpx.AsyncClient`` is opened per call; there are no retries and
    a timeout is an ordinary failure.
    """

    def __init__(self, endpoint: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.endpoint = endpoint or config.SOLANA_RPC
        self.timeout = timeout if timeout is not None else config.RPC_TIMEOUT_SECONDS

    async def _call(self, method: str, params: list) -> Any:
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                r = await client.post(self.endpoint, json=payload)
                r.raise_for_status()
                body = r.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning(f"RPC {method} failed: {exc}")
            raise LedgerQueryError(f"{method} failed: {exc}") from exc

        if not isinstance(body, dict):
            raise LedgerQueryError(f"{method} returned a malformed response")
        if body.get("error"):
            logger.warning(f"RPC {method} error: {body['error']}")
            raise LedgerQueryError(f"{method} error: {body['error']}")
        return body.get("result")

    async def get_account_info(self, address: str) -> Optional[AccountInfo]:
        """Account lamports + executable flag, or None if the account does not exist."""
        result = await self._call(
            "getAccountInfo",
            [address, {"encoding": "base64", "commitment": "confirmed"}],
        )
        if not isinstance(result, dict):
            raise LedgerQueryError("getAccountInfo returned a malformed result")
        value = result.get("value")
        if value is None:
            return None
        if not isinstance(value, dict):
            raise LedgerQueryError("getAccountInfo returned a malformed account")
        try:
            lamports = int(value.get("lamports", 0))
        except (TypeError, ValueError) as exc:
            raise LedgerQueryError(f"getAccountInfo returned bad lamports: {exc}") from exc
        return AccountInfo(lamports=lamports, executable=bool(value.get("executable", False)))

    async def get_recent_signatures(self, address: str, limit: int = 100) -> List[SignatureInfo]:
        """Most-recent-first signatures for the address, at most ``limit``."""
        result = await self._call(
            "getSignaturesForAddress",
            [address, {"limit": limit, "commitment": "confirmed"}],
        )
        if not isinstance(result, list) or not all(isinstance(item, dict) for item in result):
            raise LedgerQueryError("getSignaturesForAddress returned a malformed result")
        return [
            SignatureInfo(
                signature=str(item.get("signature", "")),
                blockTime=item["blockTime"] if isinstance(item.get("blockTime"), int) else None,
            )
            for item in result
        ]
