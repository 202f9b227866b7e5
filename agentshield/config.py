"""Environment-driven configuration. Values are read once at import time."""

import os

from dotenv import load_dotenv

load_dotenv()

PORT: int = int(os.getenv("PORT", "3005"))

# Ledger RPC
SOLANA_RPC: str = os.getenv("SOLANA_RPC", "https://api.mainnet-beta.solana.com")
RPC_TIMEOUT_SECONDS: float = float(os.getenv("RPC_TIMEOUT_SECONDS", "5"))

# Scan input limits
MAX_CODE_LENGTH: int = int(os.getenv("MAX_CODE_LENGTH", "1000000"))
FETCH_TIMEOUT_SECONDS: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "10"))
MAX_FETCH_BYTES: int = int(os.getenv("MAX_FETCH_BYTES", "1000000"))
FETCH_USER_AGENT: str = "AgentShield/1.0 Security Scanner"

# Threat log retention (ring buffer size)
THREAT_STORE_MAX: int = int(os.getenv("THREAT_STORE_MAX", "10000"))

# Memo relay; disabled when unset
THREAT_RELAY_URL: str = os.getenv("THREAT_RELAY_URL", "")
THREAT_RELAY_TIMEOUT_SECONDS: float = float(os.getenv("THREAT_RELAY_TIMEOUT_SECONDS", "15"))

# Rate limits: (max requests, window seconds)
RATE_LIMIT_GLOBAL_MAX: int = int(os.getenv("RATE_LIMIT_GLOBAL_MAX", "500"))
RATE_LIMIT_GLOBAL_WINDOW: int = int(os.getenv("RATE_LIMIT_GLOBAL_WINDOW", str(15 * 60)))
RATE_LIMIT_SCAN_MAX: int = int(os.getenv("RATE_LIMIT_SCAN_MAX", "30"))
RATE_LIMIT_SCAN_WINDOW: int = int(os.getenv("RATE_LIMIT_SCAN_WINDOW", "60"))
