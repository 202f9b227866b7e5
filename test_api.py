"""HTTP surface, exercised with FastAPI's TestClient against stubbed collaborators."""

import asyncio
import hashlib

import pytest
from fastapi.testclient import TestClient

from agentshield import agent_scorer, config, main
from agentshield.errors import FetchError
from agentshield.main import app
from agentshield.ratelimit import RateLimiter, global_limiter, scan_limiter
from agentshield.solana import AccountInfo, SignatureInfo
from agentshield.threat_registry import ThreatPublisher
from agentshield.threat_store import ThreatStore

from test_detection import COMPOSITE_PAYLOAD


MANGO_EXPLOITER = "Htp9MGP8Tig923ZFY7Qf2zzbMUmYneFRAhSp7vSg4wxV"
SYSTEM_PROGRAM = "11111111111111111111111111111111"


class FakeLedger:
    async def get_account_info(self, address):
        return AccountInfo(lamports=10**9, executable=False)

    async def get_recent_signatures(self, address, limit=100):
        return [SignatureInfo(signature="s1", blockTime=1_600_000_000)]


class RecordingPublisher:
    enabled = True

    def __init__(self):
        self.memos = []

    def publish(self, memo):
        self.memos.append(memo)
        return True

    def get_status(self):
        return {"enabled": True, "relay": "test", "published": len(self.memos), "failed": 0}


@pytest.fixture(autouse=True)
def fresh_state():
    app.state.threat_store = ThreatStore(max_size=100)
    app.state.ledger = FakeLedger()
    app.state.publisher = ThreatPublisher(relay_url="")
    global_limiter.reset()
    scan_limiter.reset()
    yield
    global_limiter.reset()
    scan_limiter.reset()


@pytest.fixture
def client():
    return TestClient(app)


def _store():
    return app.state.threat_store


# ==================== Service ====================

def test_root_redirects_to_status(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 307
    assert response.headers["location"] == "/api/status"


def test_api_docs(client):
    body = client.get("/api").json()
    assert body["name"] == "AgentShield API"
    assert any(e["path"] == "/api/scan" for e in body["endpoints"])


def test_status_reports_counters_and_headers(client):
    response = client.get("/api/status")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["stats"]["knownScamAddresses"] == 18
    assert body["stats"]["totalScans"] == 0
    assert body["relay"]["enabled"] is False
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "SAMEORIGIN"


def test_unknown_route(client):
    response = client.get("/api/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not found", "hint": "Try GET /api for API documentation"}


# ==================== Scan ====================

def test_scan_requires_code_or_url(client):
    response = client.post("/api/scan", json={})
    assert response.status_code == 400
    assert "url" in response.json()["error"]


def test_scan_composite_payload_records_threat(client):
    response = client.post("/api/scan", json={"code": COMPOSITE_PAYLOAD})
    assert response.status_code == 200
    body = response.json()
    assert body["riskScore"] >= 80
    assert body["safe"] is False
    assert all("weight" not in d for d in body["detections"])

    threats = _store().get_threats()
    assert len(threats) == 1
    assert threats[0].type == "scan_detection"
    assert threats[0].severity == "critical"
    assert _store().get_stats()["totalScans"] == 1


def test_scan_benign_code_records_nothing(client):
    body = client.post("/api/scan", json={"code": "const x = 1 + 2;"}).json()
    assert body["safe"] is True
    assert _store().get_threats() == []


def test_scan_high_risk_is_relayed(client):
    publisher = RecordingPublisher()
    app.state.publisher = publisher
    client.post("/api/scan", json={"code": COMPOSITE_PAYLOAD})
    assert len(publisher.memos) == 1
    memo = publisher.memos[0]
    assert memo.type == "SCAN"
    assert memo.sev == "C"
    assert memo.hash == hashlib.sha256(COMPOSITE_PAYLOAD.encode()).hexdigest()[:8]


def test_scan_private_url_rejected(client):
    response = client.post("/api/scan", json={"url": "http://169.254.169.254/latest/meta-data"})
    assert response.status_code == 400
    assert "error" in response.json()


def test_scan_oversized_code_rejected(client, monkeypatch):
    monkeypatch.setattr(config, "MAX_CODE_LENGTH", 10)
    response = client.post("/api/scan", json={"code": "x" * 11})
    assert response.status_code == 400


def test_scan_rate_limit(client, monkeypatch):
    monkeypatch.setattr(scan_limiter, "max_requests", 1)
    assert client.post("/api/scan", json={"code": "a"}).status_code == 200
    response = client.post("/api/scan", json={"code": "a"})
    assert response.status_code == 429
    assert response.json() == {"error": "Scan rate limit exceeded. Max 30 scans per minute."}
    # other routes use only the global window
    assert client.get("/api/status").status_code == 200


# ==================== Address check ====================

def test_check_rejects_bad_length(client):
    response = client.get("/api/check/short")
    assert response.status_code == 400
    assert "32-44" in response.json()["error"]


def test_check_invalid_base58_is_critical(client):
    body = client.get("/api/check/" + "0" * 40).json()
    assert body["riskScore"] == 100
    assert body["flags"] == ["INVALID_ADDRESS"]
    threats = _store().get_threats()
    assert threats[0].type == "address_flag"
    assert threats[0].severity == "critical"


def test_check_known_scam(client):
    body = client.get(f"/api/check/{MANGO_EXPLOITER}").json()
    assert body["riskScore"] == 50
    assert body["safe"] is False
    assert body["scamMatch"]["category"] == "exploit"
    assert _store().get_threats()[0].severity == "high"
    assert _store().get_stats()["totalAddressChecks"] == 1


# ==================== Transaction validation ====================

def test_validate_tx_blocks_scam(client):
    body = client.post("/api/validate-tx", json={"destination": MANGO_EXPLOITER, "amount": 1}).json()
    assert body["recommendation"] == "block"
    stats = _store().get_stats()
    assert stats["blockedTransactions"] == 1
    assert stats["totalTxValidations"] == 1
    threat = _store().get_threats()[0]
    assert threat.type == "tx_block"
    assert threat.severity == "critical"
    assert threat.metadata["token"] == "SOL"


def test_validate_tx_safe_program(client):
    body = client.post(
        "/api/validate-tx",
        json={"destination": SYSTEM_PROGRAM, "amount": 0.5, "context": "Paying my friend back for lunch"},
    ).json()
    assert body["recommendation"] == "proceed"
    assert _store().get_threats() == []


def test_validate_tx_missing_destination(client):
    response = client.post("/api/validate-tx", json={"amount": 1})
    assert response.status_code == 422
    assert "error" in response.json()


def test_validate_tx_non_numeric_amount(client):
    response = client.post("/api/validate-tx", json={"destination": SYSTEM_PROGRAM, "amount": "abc"})
    assert response.status_code == 422


# ==================== Threat feed ====================

def test_threats_feed_limit(client):
    for i in range(3):
        _store().add_threat("scan_detection", "high", f"t{i}", "d")
    body = client.get("/api/threats", params={"limit": 2}).json()
    assert body["count"] == 2
    assert [t["title"] for t in body["threats"]] == ["t2", "t1"]
    assert client.get("/api/threats", params={"limit": 0}).json()["limit"] == 1
    assert client.get("/api/threats", params={"limit": 999}).json()["limit"] == 200


def test_threats_feed_since(client):
    _store().add_threat("scan_detection", "high", "t", "d")
    assert client.get("/api/threats", params={"since": "2000-01-01T00:00:00Z"}).json()["count"] == 1
    assert client.get("/api/threats", params={"since": "2999-01-01T00:00:00Z"}).json()["count"] == 0


# ==================== Agent score ====================

def test_score_name_only(client):
    body = client.post("/api/score", json={"name": "bare-bot"}).json()
    assert body["agent"] == "bare-bot"
    assert body["overallScore"] == 49
    assert body["grade"] == "D"


def test_score_requires_name(client):
    assert client.post("/api/score", json={"description": "nameless"}).status_code == 422


def test_score_with_unreachable_code_url(client, monkeypatch):
    async def failing_fetch(url):
        raise FetchError("Failed to fetch URL: HTTP 500")

    monkeypatch.setattr(agent_scorer, "fetch_text", failing_fetch)
    body = client.post(
        "/api/score",
        json={"name": "remote-bot", "codeUrl": "https://github.com/acme/remote-bot/blob/main/bot.js"},
    ).json()
    assert "CODE_UNAVAILABLE" in body["flags"]
    assert "PUBLIC_REPO" in body["flags"]


def test_leaderboard(client):
    body = client.get("/api/score/leaderboard").json()
    assert body["leaderboard"] == []
    assert body["totalScored"] == 0


# ==================== Rate limiter ====================

def test_rate_limiter_window(monkeypatch):
    limiter = RateLimiter(max_requests=2, window_seconds=60, message="slow down")
    clock = [1000.0]
    monkeypatch.setattr("agentshield.ratelimit.time.monotonic", lambda: clock[0])

    assert limiter.hit("a") is True
    assert limiter.hit("a") is True
    assert limiter.hit("a") is False
    assert limiter.hit("b") is True

    clock[0] += 60
    assert limiter.hit("a") is True


# ==================== Event loop ====================

def _loop_state():
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return "worker"
    return "loop"


def test_scan_runs_off_the_event_loop(client, monkeypatch):
    seen = []
    real_scan = main.scan_code

    def recording_scan(code):
        seen.append(_loop_state())
        return real_scan(code)

    monkeypatch.setattr(main, "scan_code", recording_scan)
    assert client.post("/api/scan", json={"code": "const x = 1;"}).status_code == 200
    assert seen == ["worker"]


def test_score_runs_off_the_event_loop(client, monkeypatch):
    seen = []
    real_score = main.score_agent

    def recording_score(profile, code=None):
        seen.append(_loop_state())
        return real_score(profile, code)

    monkeypatch.setattr(main, "score_agent", recording_score)
    assert client.post("/api/score", json={"name": "bot", "code": "x = 1"}).status_code == 200
    assert client.post("/api/score", json={"name": "bot"}).status_code == 200
    assert seen == ["worker", "worker"]
