"""Thread-safe bounded in-memory threat log with service counters.

Newest entries first; once ``max_size`` is reached the oldest entry is
dropped. One instance is created at process start by the application and
handed to routes; nothing here is a module-level singleton.
"""

import threading
import time
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

from agentshield.models import ThreatEntry


MAX_QUERY_LIMIT: int = 200
DEFAULT_QUERY_LIMIT: int = 50


def parse_iso_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp (``Z`` suffix allowed); naive means UTC."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (AttributeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ThreatStore:
    """Ring buffer of ThreatEntry records plus request counters."""

    def __init__(self, max_size: int = 10000) -> None:
        self._threats: Deque[ThreatEntry] = deque(maxlen=max_size)
        self._lock = threading.Lock()
        self._started = time.time()
        self._stats: Dict[str, int] = {
            "totalScans": 0,
            "totalAddressChecks": 0,
            "totalTxValidations": 0,
            "threatsDetected": 0,
            "blockedTransactions": 0,
        }

    @property
    def max_size(self) -> int:
        return self._threats.maxlen or 0

    def add_threat(
        self,
        type: str,
        severity: str,
        title: str,
        description: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ThreatEntry:
        """Record a threat and return the stored entry."""
        entry = ThreatEntry(
            id=self._generate_id(),
            type=type,
            severity=severity,
            title=title,
            description=description,
            metadata=metadata or {},
            timestamp=datetime.now(timezone.utc).isoformat(),
        )
        with self._lock:
            self._threats.appendleft(entry)
            self._stats["threatsDetected"] += 1
        return entry

    def get_threats(self, since: Optional[str] = None, limit: int = DEFAULT_QUERY_LIMIT) -> List[ThreatEntry]:
        """Newest-first entries at or after ``since``; an unparseable ``since`` is ignored."""
        limit = max(0, min(limit, MAX_QUERY_LIMIT))
        since_dt = parse_iso_timestamp(since) if since else None

        with self._lock:
            snapshot = list(self._threats)

        if since_dt is not None:
            snapshot = [
                t for t in snapshot
                if datetime.fromisoformat(t.timestamp) >= since_dt
            ]
        return snapshot[:limit]

    def get_stats(self) -> Dict[str, Any]:
        with self._lock:
            stats: Dict[str, Any] = dict(self._stats)
            stats["recentThreats"] = len(self._threats)
        stats["startedAt"] = datetime.fromtimestamp(self._started, tz=timezone.utc).isoformat()
        stats["uptimeMs"] = int((time.time() - self._started) * 1000)
        return stats

    # ==================== Counters ====================

    def _increment(self, key: str) -> None:
        with self._lock:
            self._stats[key] += 1

    def increment_scans(self) -> None:
        self._increment("totalScans")

    def increment_address_checks(self) -> None:
        self._increment("totalAddressChecks")

    def increment_tx_validations(self) -> None:
        self._increment("totalTxValidations")

    def increment_blocked(self) -> None:
        self._increment("blockedTransactions")

    @staticmethod
    def _generate_id() -> str:
        return f"thr_{int(time.time() * 1000):x}_{uuid.uuid4().hex[:6]}"
