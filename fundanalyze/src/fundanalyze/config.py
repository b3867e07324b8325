import os
import logging
from pathlib import Path
from typing import Optional

# Settings come from the process environment, optionally seeded from a local
# .env file. Real environment variables always win over the file.

logger = logging.getLogger(__name__)

DEFAULT_FMP_BASE_URL = "https://financialmodelingprep.com/api/v3"
DEFAULT_TIMEOUT = 10.0
DEFAULT_WATCHLIST_PATH = "watchlist.yaml"

# FMP's public demo key only answers for a handful of tickers
DEMO_API_KEY = "demo"

_PLACEHOLDERS = {"", "your_key_here"}


def load_env_file(path: str = ".env"):
    """
    Load environment variables from a .env file into os.environ.
    Does not override existing strings.
    """
    p = Path(path)
    if not p.exists():
        return

    try:
        with open(p) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith('#'):
                    continue
                if '=' in line:
                    key, val = line.split('=', 1)
                    key = key.strip()
                    val = val.strip().strip('"').strip("'")
                    if key not in os.environ:
                        os.environ[key] = val
    except OSError as e:
        logger.warning(f"Failed to load .env: {e}")

# Load on import
load_env_file()


def _env(name: str) -> Optional[str]:
    val = os.environ.get(name)
    if val is None or val.strip() in _PLACEHOLDERS:
        return None
    return val.strip()


def get_fmp_key() -> str:
    """
    Get the FMP API key.

    FMP_API_KEY is preferred; VITE_FMP_API_KEY is honoured for .env files
    shared with a Vite frontend. Falls back to the demo key.
    """
    key = _env("FMP_API_KEY") or _env("VITE_FMP_API_KEY")
    if not key:
        logger.debug("FMP_API_KEY not set, using demo key")
        return DEMO_API_KEY
    return key


def get_fmp_base_url() -> str:
    return (_env("FMP_BASE_URL") or DEFAULT_FMP_BASE_URL).rstrip("/")


def get_request_timeout() -> float:
    raw = _env("FUNDANALYZE_TIMEOUT")
    if raw is None:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid FUNDANALYZE_TIMEOUT={raw!r}")
        return DEFAULT_TIMEOUT
    if not timeout > 0:
        logger.warning(f"Ignoring non-positive FUNDANALYZE_TIMEOUT={raw!r}")
        return DEFAULT_TIMEOUT
    return timeout


def get_watchlist_path() -> str:
    return _env("FUNDANALYZE_WATCHLIST") or DEFAULT_WATCHLIST_PATH
