"""
Detection engine and risk aggregator for code / plugin scanning.

Runs a rule table over raw text, turns every match into a Detection, then
reduces the detections to a clamped 0-100 risk score with per-category
diminishing returns and cross-category escalation boosts. Score < 30 is
considered safe.
"""

import logging
import math
import time
from collections import Counter
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Sequence, Set, Tuple

from agentshield import config
from agentshield.errors import InputValidationError
from agentshield.models import Detection, ScanResult
from agentshield.rules import CATEGORY_LABELS, CODE_RULES, Rule, SignalRule

logger = logging.getLogger(__name__)


SAFE_THRESHOLD: int = 30
MATCH_DISPLAY_LIMIT: int = 100
PATTERN_DISPLAY_LIMIT: int = 80

# Later detections in an already-counted category contribute this fraction
REPEAT_CATEGORY_FACTOR: float = 0.3

# Escalation boosts applied on top of the base score
MULTI_CRITICAL_BOOST: int = 15          # >= 3 categories with a critical hit
EXFIL_COMBO_BOOST: int = 20             # network_exfil + wallet_drain / crypto_theft
SHELL_DATA_COMBO_BOOST: int = 10        # shell_exec + data_access
ENTROPY_BOOST: int = 10

ENTROPY_THRESHOLD: float = 5.5
ENTROPY_MIN_LENGTH: int = 500

# Banner thresholds, highest first
SUMMARY_BANNERS: Tuple[Tuple[int, str], ...] = (
    (80, "⛔ CRITICAL RISK: This code is highly dangerous and should NOT be executed."),
    (50, "⚠️ HIGH RISK: This code contains suspicious patterns that require manual review."),
    (30, "\U0001f7e1 MODERATE RISK: Some potentially concerning patterns detected."),
    (0,  "\U0001f7e2 LOW RISK: Minor findings, likely safe with review."),
)
NO_FINDINGS_SUMMARY: str = (
    "No suspicious patterns detected. Code appears safe for agent execution."
)


def clamp_score(value: float) -> int:
    """Round half up and clamp into [0, 100]."""
    return max(0, min(100, int(math.floor(value + 0.5))))


# ═══════════════════════════════════════════════════════════════════════
# DETECTION ENGINE
# ═══════════════════════════════════════════════════════════════════════

def detect(rules: Sequence[Rule], text: str) -> List[Detection]:
    """Find every non-overlapping match of every rule, in table order.

    The scan cursor is local to this call; compiled patterns hold no
    position, so concurrent scans sharing a table cannot interfere.
    """
    detections: List[Detection] = []
    for rule in rules:
        pos = 0
        # Matches arrive in offset order, so newlines are counted incrementally
        line_offset, line = 0, 1
        while pos <= len(text):
            match = rule.pattern.search(text, pos)
            if match is None:
                break
            line += text.count("\n", line_offset, match.start())
            line_offset = match.start()
            matched = match.group(0)
            if len(matched) > MATCH_DISPLAY_LIMIT:
                matched = matched[:MATCH_DISPLAY_LIMIT] + "..."
            detections.append(Detection(
                category=rule.category,
                severity=rule.severity,
                description=rule.description,
                line=line,
                matchedText=matched,
                confidence=rule.confidence,
                pattern=rule.pattern.pattern[:PATTERN_DISPLAY_LIMIT],
                weight=rule.weight,
            ))
            # Empty match: step past it so the loop always advances
            pos = match.end() if match.end() > match.start() else match.end() + 1
    return detections


def match_signals(rules: Iterable[SignalRule], text: str) -> List[SignalRule]:
    """Return each signal rule that fires at least once, in table order."""
    if not text:
        return []
    return [rule for rule in rules if rule.pattern.search(text)]


# ═══════════════════════════════════════════════════════════════════════
# ENTROPY
# ═══════════════════════════════════════════════════════════════════════

def shannon_entropy(text: str) -> float:
    """Character-level Shannon entropy in bits per character."""
    if not text:
        return 0.0
    length = len(text)
    entropy = 0.0
    for count in Counter(text).values():
        p = count / length
        entropy -= p * math.log2(p)
    return entropy


# ═══════════════════════════════════════════════════════════════════════
# RISK AGGREGATOR
# ═══════════════════════════════════════════════════════════════════════

def deduplicate(detections: Iterable[Detection]) -> List[Detection]:
    """Keep the first detection for each (category, description, line)."""
    seen: Set[Tuple[str, str, object]] = set()
    unique: List[Detection] = []
    for det in detections:
        key = (det.category, det.description, det.line)
        if key in seen:
            continue
        seen.add(key)
        unique.append(det)
    return unique


def aggregate(detections: Sequence[Detection], text: str) -> Tuple[int, str]:
    """Reduce detections to ``(score, summary)``.

    Detections are deduplicated first. Each category's first detection adds
    its full rule weight, later ones in the same category add 30% of theirs.
    Boosts are applied after the base score and each is capped at 100.
    """
    unique = deduplicate(detections)
    if not unique:
        return 0, NO_FINDINGS_SUMMARY

    raw = 0.0
    seen_categories: Dict[str, None] = {}      # insertion-ordered set
    for det in unique:
        factor = REPEAT_CATEGORY_FACTOR if det.category in seen_categories else 1.0
        raw += det.weight * factor
        seen_categories.setdefault(det.category, None)

    score = clamp_score(raw)

    critical_categories = {d.category for d in unique if d.severity == "critical"}
    if len(critical_categories) >= 3:
        score = min(100, score + MULTI_CRITICAL_BOOST)

    if "network_exfil" in seen_categories and (
        "wallet_drain" in seen_categories or "crypto_theft" in seen_categories
    ):
        score = min(100, score + EXFIL_COMBO_BOOST)

    if "shell_exec" in seen_categories and "data_access" in seen_categories:
        score = min(100, score + SHELL_DATA_COMBO_BOOST)

    if len(text) > ENTROPY_MIN_LENGTH and shannon_entropy(text) > ENTROPY_THRESHOLD:
        score = min(100, score + ENTROPY_BOOST)

    return score, build_summary(unique, score, list(seen_categories))


def build_summary(detections: Sequence[Detection], score: int, categories: Sequence[str]) -> str:
    """Severity banner + critical/high counts + category labels."""
    if not detections:
        return NO_FINDINGS_SUMMARY

    banner = next(text for floor, text in SUMMARY_BANNERS if score >= floor)
    critical = sum(1 for d in detections if d.severity == "critical")
    high = sum(1 for d in detections if d.severity == "high")
    labels = ", ".join(CATEGORY_LABELS.get(c, c) for c in categories)

    return (
        f"{banner} "
        f"Found {len(detections)} detection(s): {critical} critical, {high} high. "
        f"Categories: {labels}."
    )


# ═══════════════════════════════════════════════════════════════════════
# CODE SCANNER ENTRY POINT
# ═══════════════════════════════════════════════════════════════════════

def scan_code(code: str) -> ScanResult:
    """Scan source / plugin text and return a scored ScanResult.

    Raises InputValidationError for non-string or oversized input; once the
    input is accepted a result is always produced.
    """
    if not isinstance(code, str):
        raise InputValidationError("code must be a string")
    if len(code) > config.MAX_CODE_LENGTH:
        raise InputValidationError(
            f"code exceeds maximum length of {config.MAX_CODE_LENGTH} characters"
        )

    started = time.perf_counter()
    detections = deduplicate(detect(CODE_RULES, code))
    score, summary = aggregate(detections, code)
    duration_ms = int((time.perf_counter() - started) * 1000)

    logger.debug(
        f"scan complete len={len(code)} detections={len(detections)} "
        f"score={score} duration={duration_ms}ms"
    )

    return ScanResult(
        safe=score < SAFE_THRESHOLD,
        riskScore=score,
        detections=detections,
        summary=summary,
        scannedAt=datetime.now(timezone.utc).isoformat(),
        inputLength=len(code),
        durationMs=duration_ms,
    )
