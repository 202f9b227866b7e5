"""Threat memo encoding and the relay publisher."""

import hashlib

import requests

from agentshield import threat_registry
from agentshield.threat_registry import (
    ThreatMemo,
    ThreatPublisher,
    build_memo,
    content_hash,
    parse_threat_memo,
)


def test_encode_wire_format():
    memo = ThreatMemo(type="SCAN", sev="C", cat="shell_exec", score=95, hash="abcd1234", ts=1700000000)
    assert memo.encode() == "AS|SCAN|C|shell_exec|95|abcd1234|1700000000"


def test_missing_hash_encodes_as_none():
    memo = ThreatMemo(type="ADDR", sev="H", cat="drain", score=50, ts=1700000000)
    assert memo.encode() == "AS|ADDR|H|drain|50|none|1700000000"
    assert parse_threat_memo(memo.encode()).hash is None


def test_parse_is_inverse_of_encode():
    memo = ThreatMemo(type="TX", sev="M", cat="phishing", score=61, hash="deadbeef", ts=1712345678)
    assert parse_threat_memo(memo.encode()) == memo


def test_parse_rejects_foreign_memos():
    assert parse_threat_memo("XX|SCAN|C|cat|1|none|2") is None
    assert parse_threat_memo("AS|SCAN|C") is None
    assert parse_threat_memo("AS|SCAN|C|cat|high|none|2") is None
    assert parse_threat_memo(None) is None


def test_build_memo():
    memo = build_memo("SCAN", "critical", "network_exfil", 88, "payload")
    assert memo.sev == "C"
    assert memo.hash == hashlib.sha256(b"payload").hexdigest()[:8]
    assert memo.hash == content_hash("payload")
    assert build_memo("ADDR", "medium", "x", 30).hash is None
    assert build_memo("ADDR", "unknown", "x", 30).sev == "L"


def test_disabled_publisher_is_noop(monkeypatch):
    def explode(*args, **kwargs):
        raise AssertionError("must not post")

    monkeypatch.setattr(threat_registry.requests, "post", explode)
    publisher = ThreatPublisher(relay_url="")
    assert publisher.enabled is False
    assert publisher.publish(build_memo("SCAN", "high", "x", 75)) is False
    assert publisher.get_status()["enabled"] is False


class _FakeResponse:
    def __init__(self, status_code, text=""):
        self.status_code = status_code
        self.text = text


def test_send_success_and_rejection(monkeypatch):
    posted = []

    def fake_post(url, json=None, timeout=None, headers=None):
        posted.append((url, json))
        return _FakeResponse(200 if len(posted) == 1 else 500, "err")

    monkeypatch.setattr(threat_registry.requests, "post", fake_post)
    publisher = ThreatPublisher(relay_url="https://relay.example.com/memo", timeout=1)
    memo = ThreatMemo(type="SCAN", sev="C", cat="obfuscation", score=90, hash="00ff00ff", ts=1)

    assert publisher._send(memo) is True
    assert publisher._send(memo) is False
    assert posted[0] == ("https://relay.example.com/memo", {"memo": memo.encode()})
    status = publisher.get_status()
    assert status["published"] == 1
    assert status["failed"] == 1


def test_send_network_error(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.exceptions.ConnectionError("down")

    monkeypatch.setattr(threat_registry.requests, "post", fake_post)
    publisher = ThreatPublisher(relay_url="https://relay.example.com/memo")
    assert publisher._send(build_memo("TX", "critical", "tx", 100)) is False
    assert publisher.get_status()["failed"] == 1
