"""FastAPI entry point. Wires the scoring models to HTTP routes and owns the
process-wide collaborators (threat store, memo publisher, ledger provider).

Routes: POST /api/scan, GET /api/check/{address}, POST /api/validate-tx,
GET /api/threats, POST /api/score, GET /api/score/leaderboard,
GET /api/status, GET /api, GET / (redirect to status)."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from agentshield import __version__, config
from agentshield.address_checker import check_address
from agentshield.agent_scorer import score_agent, score_from_url
from agentshield.detector import scan_code
from agentshield.errors import InputValidationError
from agentshield.fetcher import fetch_text
from agentshield.models import (
    AddressCheckResult,
    AgentProfile,
    AgentScore,
    AgentScoreRequest,
    ScanRequest,
    ScanResult,
    TxValidationRequest,
    TxValidationResult,
)
from agentshield.ratelimit import global_limiter, scan_limiter
from agentshield.scam_registry import scam_registry
from agentshield.solana import ADDRESS_MAX_LENGTH, ADDRESS_MIN_LENGTH, SolanaRPC
from agentshield.threat_registry import ThreatPublisher, build_memo
from agentshield.threat_store import ThreatStore
from agentshield.tx_validator import validate_transaction

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

SERVICE_NAME = "AgentShield"
SERVICE_DESCRIPTION = "Solana Agent Security API: runtime protection for AI agents"

SECURITY_HEADERS = {
    "Content-Security-Policy": "default-src 'self'",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Frame-Options": "SAMEORIGIN",
    "X-XSS-Protection": "0",
}

ENDPOINTS = [
    {
        "method": "POST",
        "path": "/api/scan",
        "description": "Scan code or plugins for malicious patterns",
        "body": '{ "url": "https://..." } or { "code": "..." }',
        "response": '{ "safe": boolean, "riskScore": 0-100, "detections": [...], "summary": "..." }',
    },
    {
        "method": "GET",
        "path": "/api/check/{address}",
        "description": "Check a Solana address against scam databases and on-chain heuristics",
        "response": '{ "address": "...", "safe": boolean, "riskScore": 0-100, "flags": [...] }',
    },
    {
        "method": "POST",
        "path": "/api/validate-tx",
        "description": "Validate a transaction before execution",
        "body": '{ "destination": "...", "amount": number, "token": "SOL", "context": "..." }',
        "response": '{ "safe": boolean, "riskScore": 0-100, "recommendation": "proceed|review|block" }',
    },
    {
        "method": "GET",
        "path": "/api/threats",
        "description": "Get recent threat intelligence",
        "params": "?since=<ISO timestamp>&limit=<n>",
        "response": '{ "threats": [...], "count": number }',
    },
    {
        "method": "POST",
        "path": "/api/score",
        "description": "Score an AI agent's security posture (0-100, A+ to F grade)",
        "body": '{ "name": "...", "codeUrl?": "...", "walletAddress?": "...", '
                '"skills?": [...], "description?": "...", "code?": "..." }',
        "response": '{ "agent": "...", "overallScore": 0-100, "grade": "A+"-"F", '
                    '"dimensions": {...}, "flags": [...] }',
    },
    {
        "method": "GET",
        "path": "/api/score/leaderboard",
        "description": "Agent security leaderboard (top scored agents)",
    },
    {
        "method": "GET",
        "path": "/api/status",
        "description": "Service health check and statistics",
    },
]

app = FastAPI(
    title="AgentShield API",
    description=SERVICE_DESCRIPTION,
    version=__version__,
    dependencies=[Depends(global_limiter)],
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Process-wide collaborators, created once here and reached through app.state
app.state.threat_store = ThreatStore(max_size=config.THREAT_STORE_MAX)
app.state.publisher = ThreatPublisher(config.THREAT_RELAY_URL)
app.state.ledger = SolanaRPC(config.SOLANA_RPC, config.RPC_TIMEOUT_SECONDS)


def get_threat_store(request: Request) -> ThreatStore:
    return request.app.state.threat_store


def get_publisher(request: Request) -> ThreatPublisher:
    return request.app.state.publisher


def get_ledger(request: Request) -> SolanaRPC:
    return request.app.state.ledger


@app.middleware("http")
async def _security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


@app.on_event("startup")
async def _on_startup() -> None:
    relay = "enabled" if app.state.publisher.enabled else "disabled"
    logger.info(
        f"{SERVICE_NAME} v{__version__} started | port={config.PORT} | "
        f"scam DB={len(scam_registry)} known addresses | relay={relay} | Docs: GET /api"
    )


# ═══════════════════════════════════════════════════════════════════════
# ERROR HANDLERS
# ═══════════════════════════════════════════════════════════════════════

@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.error(f"422 VALIDATION ERROR | {request.url.path} | {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid request payload.", "detail": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(InputValidationError)
async def _input_error_handler(request: Request, exc: InputValidationError) -> JSONResponse:
    logger.warning(f"400 INPUT ERROR | {request.url.path} | {exc}")
    return JSONResponse(status_code=400, content={"error": str(exc)})


@app.exception_handler(StarletteHTTPException)
async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return JSONResponse(
            status_code=404,
            content={"error": "Not found", "hint": "Try GET /api for API documentation"},
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


# ═══════════════════════════════════════════════════════════════════════
# ROUTES
# ═══════════════════════════════════════════════════════════════════════

@app.get("/", include_in_schema=False)
async def root() -> RedirectResponse:
    return RedirectResponse(url="/api/status")


@app.get("/api")
async def api_docs() -> dict:
    return {
        "name": "AgentShield API",
        "version": __version__,
        "description": SERVICE_DESCRIPTION,
        "endpoints": ENDPOINTS,
    }


@app.post("/api/scan", response_model=ScanResult, dependencies=[Depends(scan_limiter)])
async def scan(
    body: ScanRequest,
    store: ThreatStore = Depends(get_threat_store),
    publisher: ThreatPublisher = Depends(get_publisher),
) -> ScanResult:
    """Scan inline code, or fetch a URL and scan its body.

    Scores >= 50 are logged as threats; >= 70 are also relayed as a memo.
    """
    if not body.url and not body.code:
        raise InputValidationError('Either "url" or "code" must be provided')

    if body.code:
        source_code = body.code
        source = "direct"
    else:
        source_code = await fetch_text(body.url)
        source = body.url

    store.increment_scans()
    # CPU-bound; keep it off the event loop
    result = await run_in_threadpool(scan_code, source_code)

    if result.riskScore >= 50:
        severity = "critical" if result.riskScore >= 80 else "high"
        categories = list(dict.fromkeys(d.category for d in result.detections))
        store.add_threat(
            type="scan_detection",
            severity=severity,
            title=f"Dangerous code detected (score: {result.riskScore})",
            description=result.summary,
            metadata={
                "source": source,
                "riskScore": result.riskScore,
                "detectionCount": len(result.detections),
                "categories": categories,
            },
        )
        logger.info(f"THREAT scan_detection score={result.riskScore} source={source}")

        if result.riskScore >= 70:
            publisher.publish(build_memo(
                "SCAN", severity, categories[0] if categories else "unknown",
                result.riskScore, source_code,
            ))

    return result


@app.get("/api/check/{address}", response_model=AddressCheckResult)
async def check(
    address: str,
    store: ThreatStore = Depends(get_threat_store),
    ledger: SolanaRPC = Depends(get_ledger),
) -> AddressCheckResult:
    if not ADDRESS_MIN_LENGTH <= len(address) <= ADDRESS_MAX_LENGTH:
        raise InputValidationError("Invalid Solana address format. Must be 32-44 characters.")

    store.increment_address_checks()
    result = await check_address(address, ledger=ledger)

    if result.riskScore >= 30:
        if result.riskScore >= 70:
            severity = "critical"
        elif result.riskScore >= 40:
            severity = "high"
        else:
            severity = "medium"
        store.add_threat(
            type="address_flag",
            severity=severity,
            title=f"Flagged address: {address[:8]}...",
            description=f"Risk score {result.riskScore}/100. Flags: {', '.join(result.flags)}",
            metadata={
                "address": address,
                "riskScore": result.riskScore,
                "flags": result.flags,
                "scamMatch": result.scamMatch.category if result.scamMatch else None,
            },
        )
        logger.info(f"THREAT address_flag [{address[:8]}] score={result.riskScore}")

    return result


@app.post("/api/validate-tx", response_model=TxValidationResult)
async def validate_tx(
    body: TxValidationRequest,
    store: ThreatStore = Depends(get_threat_store),
) -> TxValidationResult:
    store.increment_tx_validations()
    result = validate_transaction(body)
    token = (body.token or "SOL").upper()

    if result.recommendation in ("block", "review"):
        blocked = result.recommendation == "block"
        if blocked:
            store.increment_blocked()
        title = (
            f"Blocked transaction to {body.destination[:8]}..."
            if blocked else
            f"Flagged transaction to {body.destination[:8]}... for review"
        )
        store.add_threat(
            type="tx_block",
            severity="critical" if blocked else "high",
            title=title,
            description=result.details,
            metadata={
                "destination": body.destination,
                "amount": body.amount,
                "token": token,
                "riskScore": result.riskScore,
                "flags": result.flags,
            },
        )
        logger.info(f"THREAT tx_block [{body.destination[:8]}] {result.recommendation} score={result.riskScore}")

    return result


@app.get("/api/threats")
async def threats(
    since: Optional[str] = Query(default=None),
    limit: int = Query(default=50),
    store: ThreatStore = Depends(get_threat_store),
) -> dict:
    limit = max(1, min(200, limit))
    entries = store.get_threats(since, limit)
    return {
        "threats": [t.model_dump() for t in entries],
        "count": len(entries),
        "limit": limit,
        "since": since,
        "fetchedAt": datetime.now(timezone.utc).isoformat(),
    }


@app.post("/api/score", response_model=AgentScore)
async def score(body: AgentScoreRequest) -> AgentScore:
    profile = AgentProfile(**body.model_dump(exclude={"code"}))
    if body.code:
        return await run_in_threadpool(score_agent, profile, body.code)
    if body.codeUrl:
        return await score_from_url(profile)
    return await run_in_threadpool(score_agent, profile)


@app.get("/api/score/leaderboard")
async def leaderboard() -> dict:
    return {
        "message": "Agent leaderboard coming soon. Submit agents via POST /api/score to build the rankings.",
        "totalScored": 0,
        "leaderboard": [],
    }


@app.get("/api/status")
async def service_status(
    store: ThreatStore = Depends(get_threat_store),
    publisher: ThreatPublisher = Depends(get_publisher),
) -> dict:
    stats = store.get_stats()
    uptime_seconds = stats["uptimeMs"] // 1000
    hours, remainder = divmod(uptime_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)

    return {
        "service": SERVICE_NAME,
        "version": __version__,
        "description": SERVICE_DESCRIPTION,
        "status": "operational",
        "uptime": f"{hours}h {minutes}m {seconds}s",
        "startedAt": stats["startedAt"],
        "stats": {
            "totalScans": stats["totalScans"],
            "totalAddressChecks": stats["totalAddressChecks"],
            "totalTxValidations": stats["totalTxValidations"],
            "threatsDetected": stats["threatsDetected"],
            "blockedTransactions": stats["blockedTransactions"],
            "recentThreats": stats["recentThreats"],
            "knownScamAddresses": len(scam_registry),
        },
        "relay": publisher.get_status(),
        "endpoints": {e["method"] + " " + e["path"]: e["description"] for e in ENDPOINTS},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
