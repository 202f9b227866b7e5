"""Compact threat memos and their fire-and-forget relay.

High-risk findings are summarized as a single pipe-delimited line

    AS|<type>|<sev>|<cat>|<score>|<hash or none>|<unix ts>

and POSTed to a relay endpoint (configured via THREAT_RELAY_URL) that
anchors them on a public ledger. The POST runs in a daemon thread so it
never blocks a request; there are no retries. With no relay URL configured
the publisher is disabled and publishing is a no-op.

This service never signs or submits ledger transactions itself and holds no
keypair. The relay is an external collaborator that is not part of this
package: memos only reach a ledger if one is deployed and configured.
"""

import hashlib
import logging
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import requests

from agentshield import config

logger = logging.getLogger(__name__)


MEMO_PREFIX = "AS"
MEMO_TYPES = ("SCAN", "ADDR", "TX")
SEVERITY_CODES: Dict[str, str] = {"critical": "C", "high": "H", "medium": "M", "low": "L"}
MEMO_MAX_BYTES: int = 566


@dataclass(frozen=True)
class ThreatMemo:
    type: str                       # SCAN | ADDR | TX
    sev: str                        # C | H | M | L
    cat: str
    score: int
    ts: int
    hash: Optional[str] = None      # First 8 hex chars of the content sha256

    def encode(self) -> str:
        memo = "|".join([
            MEMO_PREFIX, self.type, self.sev, self.cat,
            str(self.score), self.hash or "none", str(self.ts),
        ])
        return memo.encode("utf-8")[:MEMO_MAX_BYTES].decode("utf-8", errors="ignore")


def parse_threat_memo(data: str) -> Optional[ThreatMemo]:
    """Inverse of ``ThreatMemo.encode``. Returns None for anything else."""
    parts = data.split("|") if isinstance(data, str) else []
    if len(parts) < 7 or parts[0] != MEMO_PREFIX:
        return None
    try:
        score = int(parts[4])
        ts = int(parts[6])
    except ValueError:
        return None
    return ThreatMemo(
        type=parts[1],
        sev=parts[2],
        cat=parts[3],
        score=score,
        hash=None if parts[5] == "none" else parts[5],
        ts=ts,
    )


def severity_code(severity: str) -> str:
    return SEVERITY_CODES.get(severity, "L")


def content_hash(text: str) -> str:
    """First 8 hex chars of the sha256 of ``text``."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]


def build_memo(type: str, severity: str, cat: str, score: int, text: Optional[str] = None) -> ThreatMemo:
    return ThreatMemo(
        type=type,
        sev=severity_code(severity),
        cat=cat,
        score=score,
        hash=content_hash(text) if text else None,
        ts=int(time.time()),
    )


class ThreatPublisher:
    """Sends memos to the relay from background threads."""

    def __init__(self, relay_url: Optional[str] = None, timeout: Optional[float] = None) -> None:
        self.relay_url = relay_url if relay_url is not None else config.THREAT_RELAY_URL
        self.timeout = timeout if timeout is not None else config.THREAT_RELAY_TIMEOUT_SECONDS
        self._lock = threading.Lock()
        self._published = 0
        self._failed = 0

    @property
    def enabled(self) -> bool:
        return bool(self.relay_url)

    def publish(self, memo: ThreatMemo) -> bool:
        """Queue ``memo`` for sending. Returns False when the relay is disabled."""
        if not self.enabled:
            logger.debug(f"Relay disabled, memo not published: {memo.encode()}")
            return False
        thread = threading.Thread(target=self._send, args=(memo,), daemon=True)
        thread.start()
        return True

    def _send(self, memo: ThreatMemo) -> bool:
        """Single POST. Returns True on 2xx."""
        payload = memo.encode()
        try:
            response = requests.post(
                self.relay_url,
                json={"memo": payload},
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
            )
        except requests.exceptions.Timeout:
            logger.error(f"Threat relay timed out for memo {payload}")
            self._record(False)
            return False
        except requests.exceptions.RequestException as exc:
            logger.error(f"Threat relay network error: {exc}")
            self._record(False)
            return False

        success = response.status_code in (200, 201, 202, 204)
        if success:
            logger.info(f"Threat memo relayed ({response.status_code}): {payload}")
        else:
            logger.warning(
                f"Threat relay rejected memo: {response.status_code} {response.text[:200]}"
            )
        self._record(success)
        return success

    def _record(self, success: bool) -> None:
        with self._lock:
            if success:
                self._published += 1
            else:
                self._failed += 1

    def get_status(self) -> Dict[str, object]:
        with self._lock:
            return {
                "enabled": self.enabled,
                "relay": self.relay_url or None,
                "published": self._published,
                "failed": self._failed,
            }
