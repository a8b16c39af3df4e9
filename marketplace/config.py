"""
Centralized configuration for the Contractor Marketplace API.
All settings come from environment variables for 12-factor deployment.
"""

import os
from decimal import Decimal


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(BASE_DIR, 'marketplace.db')}",
)
DB_ECHO = _env_bool("DB_ECHO", False)
SQLITE_BUSY_TIMEOUT_MS = int(os.environ.get("SQLITE_BUSY_TIMEOUT_MS", "5000"))

# Transaction retry on write conflicts (SQLite lock / serialization failure)
TX_MAX_ATTEMPTS = int(os.environ.get("TX_MAX_ATTEMPTS", "5"))
TX_RETRY_INITIAL_SECONDS = float(os.environ.get("TX_RETRY_INITIAL_SECONDS", "0.05"))
TX_RETRY_MAX_SECONDS = float(os.environ.get("TX_RETRY_MAX_SECONDS", "1.0"))

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
PORT = int(os.environ.get("PORT", "3001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
VERSION = "1.0.0"
SEED_ON_STARTUP = _env_bool("SEED_ON_STARTUP", False)
CORS_ORIGINS = [
    s.strip()
    for s in os.environ.get("CORS_ORIGINS", "*").split(",")
    if s.strip()
]

# ---------------------------------------------------------------------------
# Auth -- header carrying the caller's profile id
# ---------------------------------------------------------------------------
PROFILE_HEADER = os.environ.get("PROFILE_HEADER", "profile_id")

# ---------------------------------------------------------------------------
# Balances
# ---------------------------------------------------------------------------
# A client may deposit at most this fraction of their unpaid job total.
MAX_DEPOSIT_RATIO = Decimal(os.environ.get("MAX_DEPOSIT_RATIO", "0.25"))

# ---------------------------------------------------------------------------
# Admin reports
# ---------------------------------------------------------------------------
BEST_CLIENTS_DEFAULT_LIMIT = int(os.environ.get("BEST_CLIENTS_DEFAULT_LIMIT", "2"))
BEST_CLIENTS_MAX_LIMIT = int(os.environ.get("BEST_CLIENTS_MAX_LIMIT", "100"))
