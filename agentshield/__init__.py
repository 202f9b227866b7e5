"""
AgentShield - Source Package
============================

Runtime threat detection and risk scoring for AI agents operating on Solana:
    - main.py              : FastAPI application entry point and route wiring
    - rules.py             : Declarative detection rule tables
    - detector.py          : Detection engine, entropy analyzer, risk aggregator
    - scam_registry.py     : Static known-scam address registry
    - solana.py            : Address validation and ledger JSON-RPC provider
    - address_checker.py   : Address risk model (registry + on-chain heuristics)
    - tx_validator.py      : Transaction risk model (proceed / review / block)
    - agent_scorer.py      : Five-dimension agent security scorer
    - fetcher.py           : Guarded raw-text fetcher for URL scan input
    - threat_store.py      : Bounded in-memory threat log
    - threat_registry.py   : Compact threat memo relay
    - ratelimit.py         : Per-client fixed-window rate limiting
    - models.py            : Pydantic request/response schemas
"""

__version__ = "1.0.0"
