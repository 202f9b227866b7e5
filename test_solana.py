"""Ledger JSON-RPC provider over a mocked transport."""

import asyncio
import json

import httpx
import pytest

from agentshield import solana
from agentshield.errors import LedgerQueryError
from agentshield.solana import AccountInfo, SolanaRPC


ADDRESS = "9xQeWvG816bUx9EPjHmaT23yvVM2ZWbrrpZb9PusVFin"


def _mock_client(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(solana.httpx, "AsyncClient", factory)


def _reply(result=None, error=None):
    body = {"jsonrpc": "2.0", "id": 1}
    if error is not None:
        body["error"] = error
    else:
        body["result"] = result
    return lambda request: httpx.Response(200, json=body)


def _rpc():
    return SolanaRPC("https://rpc.example.com", timeout=1)


def test_account_info_parsed(monkeypatch):
    calls = []

    def handler(request):
        calls.append(json.loads(request.content))
        return httpx.Response(200, json={
            "jsonrpc": "2.0", "id": 1,
            "result": {"context": {"slot": 1}, "value": {"lamports": 2500000000, "executable": True}},
        })

    _mock_client(monkeypatch, handler)
    info = asyncio.run(_rpc().get_account_info(ADDRESS))
    assert info == AccountInfo(lamports=2500000000, executable=True)
    assert info.balance == pytest.approx(2.5)
    assert calls[0]["method"] == "getAccountInfo"
    assert calls[0]["params"][0] == ADDRESS


def test_missing_account_is_none(monkeypatch):
    _mock_client(monkeypatch, _reply({"context": {"slot": 1}, "value": None}))
    assert asyncio.run(_rpc().get_account_info(ADDRESS)) is None


def test_signatures_parsed(monkeypatch):
    _mock_client(monkeypatch, _reply([
        {"signature": "abc", "blockTime": 1700000000},
        {"signature": "def", "blockTime": None},
    ]))
    sigs = asyncio.run(_rpc().get_recent_signatures(ADDRESS, limit=2))
    assert [s.signature for s in sigs] == ["abc", "def"]
    assert sigs[0].blockTime == 1700000000
    assert sigs[1].blockTime is None


@pytest.mark.parametrize("handler", [
    _reply(error={"code": -32005, "message": "rate limited"}),
    _reply({"context": {"slot": 1}, "value": "x"}),
    _reply({"context": {"slot": 1}, "value": {"lamports": "lots"}}),
    _reply("not-an-object"),
    lambda request: httpx.Response(503, text="unavailable"),
    lambda request: httpx.Response(200, text="<html>"),
    lambda request: httpx.Response(200, json=["not", "rpc"]),
])
def test_account_info_failures_raise_ledger_error(monkeypatch, handler):
    _mock_client(monkeypatch, handler)
    with pytest.raises(LedgerQueryError):
        asyncio.run(_rpc().get_account_info(ADDRESS))


def test_timeout_raises_ledger_error(monkeypatch):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    _mock_client(monkeypatch, handler)
    with pytest.raises(LedgerQueryError):
        asyncio.run(_rpc().get_recent_signatures(ADDRESS))


@pytest.mark.parametrize("result", [
    {"signatures": []},
    ["abc", "def"],
    [{"signature": "abc", "blockTime": 1}, 42],
])
def test_malformed_signatures_raise_ledger_error(monkeypatch, result):
    _mock_client(monkeypatch, _reply(result))
    with pytest.raises(LedgerQueryError):
        asyncio.run(_rpc().get_recent_signatures(ADDRESS))
