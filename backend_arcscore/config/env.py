"""
Environment variable loading for ARC Score.

- ARC_RPC_URL: chain node JSON-RPC endpoint (default: Arc testnet public RPC)
- DATABASE_URL: SQLAlchemy URL (default: sqlite:///arcscore.db)
- INDEXER_ENABLED: "true" turns the indexer triggers on
- TOKEN_CONTRACT_ADDRESS / USDC_CONTRACT_ADDRESS: token used for balance lookups
- Loads .env from project root when available.
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# config is backend_arcscore/config/, root is 2 levels up
_CONFIG_DIR = Path(__file__).resolve().parent
_BACKEND_DIR = _CONFIG_DIR.parent
_ROOT = _BACKEND_DIR.parent
_ENV_PATH = _ROOT / ".env"

DEFAULT_RPC_URL = "https://rpc.testnet.arc.network"
DEFAULT_DATABASE_URL = "sqlite:///arcscore.db"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_TRUE_VALUES = ("1", "true", "yes", "on")


def load_arc_env() -> None:
    """Load .env from project root. Existing process env wins. Safe to call repeatedly."""
    load_dotenv(_ENV_PATH, override=False)


def env_str(name: str, default: str = "", *aliases: str) -> str:
    """First non-empty value among name and aliases, stripped; default otherwise."""
    for key in (name, *aliases):
        raw = (os.getenv(key) or "").strip()
        if raw:
            return raw
    return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    return raw in _TRUE_VALUES


def env_int(name: str, default: int) -> int:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


def get_rpc_url() -> str:
    load_arc_env()
    return env_str("ARC_RPC_URL", DEFAULT_RPC_URL, "RPC_URL")


def get_token_contract_address() -> str | None:
    """
    Token contract for balance lookups, or None when unset or the zero address
    (balance lookup is then skipped and reported as "0").
    """
    load_arc_env()
    addr = env_str("TOKEN_CONTRACT_ADDRESS", "", "USDC_CONTRACT_ADDRESS")
    if not addr or addr.lower() == ZERO_ADDRESS:
        return None
    return addr


def mask_url(url: str) -> str:
    """Hide credentials embedded in a URL (user:pass@ or api-key=) before logging."""
    if "api-key=" in url:
        url = url.split("api-key=")[0] + "api-key=***"
    if "@" in url and "://" in url:
        scheme, rest = url.split("://", 1)
        url = f"{scheme}://***@{rest.split('@', 1)[1]}"
    return url
