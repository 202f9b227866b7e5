"""
agent_scorer.py - Composite Agent Security Scorer
==================================================

Grades an AI agent profile (plus optional source code) on five dimensions:

    security     (S) : safe-practice signals in code and description
    output       (O) : amount of verifiable work (code size, description depth)
    reputation   (R) : community signals (static seed, no external source yet)
    integration  (I) : repo, wallet and declared skills
    risk         (X) : inverted, 100 means no risk indicators found

Overall = 0.30 S + 0.20 O + 0.15 R + 0.15 I + 0.20 X, rounded, then mapped to
a letter grade. Every dimension is clamped to [0, 100] before blending.
"""

import logging
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool

from agentshield.detector import clamp_score, match_signals
from agentshield.errors import FetchError
from agentshield.fetcher import fetch_text
from agentshield.models import AgentDimensions, AgentProfile, AgentScore
from agentshield.rules import AGENT_RISK_RULES, AGENT_SECURITY_RULES

logger = logging.getLogger(__name__)


# Dimension seeds: risk starts optimistic, the rest must be earned
SEED_SECURITY: int = 50
SEED_OUTPUT: int = 30
SEED_REPUTATION: int = 50
SEED_INTEGRATION: int = 30
SEED_RISK: int = 80

DIMENSION_WEIGHTS = {
    "security":    0.30,
    "output":      0.20,
    "reputation":  0.15,
    "integration": 0.15,
    "risk":        0.20,
}

# (min score, grade), highest first
GRADE_BANDS: Tuple[Tuple[int, str], ...] = (
    (95, "A+"), (90, "A"), (85, "A-"),
    (80, "B+"), (75, "B"), (70, "B-"),
    (65, "C+"), (60, "C"), (55, "C-"),
    (50, "D+"), (45, "D"), (40, "D-"),
)

# (line count floor, output bonus), cumulative
CODE_SIZE_BONUSES = [(100, 15), (500, 15), (1000, 10)]

ENV_ACCESS_RE = re.compile(r"process\.env|os\.environ|os\.getenv")
ENV_FILE_RE = re.compile(r"\.env")
GITIGNORE_RE = re.compile(r"\.gitignore")
TODO_RE = re.compile(r"TODO|FIXME|HACK", re.IGNORECASE)
DEBUG_LOG_RE = re.compile(r"console\.log|\bprint\s*\(")


def grade_from_score(score: int) -> str:
    for floor, grade in GRADE_BANDS:
        if score >= floor:
            return grade
    return "F"


def score_agent(profile: AgentProfile, code: Optional[str] = None) -> AgentScore:
    """Score a profile. Pure apart from the timestamp."""
    flags: List[str] = []
    recommendations: List[str] = []

    security = SEED_SECURITY
    output = SEED_OUTPUT
    reputation = SEED_REPUTATION
    integration = SEED_INTEGRATION
    risk = SEED_RISK

    text = " ".join([
        profile.description or "",
        code or "",
        " ".join(profile.skills or []),
    ])

    for rule in match_signals(AGENT_RISK_RULES, text):
        flags.append(rule.flag)
        risk += rule.weight

    for rule in match_signals(AGENT_SECURITY_RULES, text):
        flags.append(rule.flag)
        security += rule.weight

    # Code-level signals
    if code:
        line_count = code.count("\n") + 1
        for floor, bonus in CODE_SIZE_BONUSES:
            if line_count > floor:
                output += bonus

        if ENV_ACCESS_RE.search(code):
            flags.append("USES_ENV_VARS")
            security += 5
        if ENV_FILE_RE.search(code) and not GITIGNORE_RE.search(code):
            flags.append("POSSIBLE_ENV_LEAK")
            security -= 10
            recommendations.append("Ensure .env files are in .gitignore")
        if TODO_RE.search(code):
            flags.append("HAS_TODO_COMMENTS")
            output -= 5
        if DEBUG_LOG_RE.search(code):
            flags.append("DEBUG_LOGGING")
            recommendations.append("Remove debug logging statements in production")

    # Integration
    if profile.codeUrl:
        integration += 20
        if "github.com" in profile.codeUrl:
            flags.append("PUBLIC_REPO")
            integration += 10
    if profile.walletAddress:
        integration += 15
        flags.append("HAS_WALLET")
    if profile.skills:
        integration += min(len(profile.skills) * 5, 20)

    # Description depth
    if profile.description:
        if len(profile.description) > 200:
            output += 10
        if len(profile.description) > 500:
            output += 5

    dimensions = AgentDimensions(
        security=clamp_score(security),
        output=clamp_score(output),
        reputation=clamp_score(reputation),
        integration=clamp_score(integration),
        risk=clamp_score(risk),
    )
    overall = clamp_score(sum(
        getattr(dimensions, name) * weight for name, weight in DIMENSION_WEIGHTS.items()
    ))

    if dimensions.security < 60:
        recommendations.append("Improve code security practices")
    if dimensions.output < 40:
        recommendations.append("Increase verifiable output (public code, demos)")
    if dimensions.integration < 40:
        recommendations.append("Improve ecosystem integration (wallet, repo, skills)")
    if dimensions.risk < 60:
        recommendations.append("Address identified risk flags")

    return AgentScore(
        agent=profile.name,
        overallScore=overall,
        grade=grade_from_score(overall),
        dimensions=dimensions,
        flags=flags,
        recommendations=recommendations,
        scoredAt=datetime.now(timezone.utc).isoformat(),
    )


async def score_from_url(profile: AgentProfile) -> AgentScore:
    """Fetch the profile's code URL and score with it.

    A fetch failure is not fatal: the agent is scored on the profile alone
    and flagged CODE_UNAVAILABLE.
    """
    code: Optional[str] = None
    unavailable = False
    if profile.codeUrl:
        try:
            code = await fetch_text(profile.codeUrl)
        except FetchError as exc:
            logger.warning(f"[{profile.name}] code fetch failed, scoring without code: {exc}")
            unavailable = True

    result = await run_in_threadpool(score_agent, profile, code)
    if unavailable:
        result.flags.append("CODE_UNAVAILABLE")
    return result
