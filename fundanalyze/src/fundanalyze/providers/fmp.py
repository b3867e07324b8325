import logging
from typing import Any, Optional

import requests

from ..config import get_fmp_base_url, get_fmp_key, get_request_timeout
from ..errors import ProviderError

logger = logging.getLogger(__name__)


class FMPClient:
    """
    Financial Modeling Prep JSON fetcher.

    Instances are callables taking a path relative to the v3 API root,
    e.g. ``client("/quote/AAPL")`` or ``client("/income-statement/AAPL?limit=5")``.
    The API key is appended as the ``apikey`` query parameter.
    Reference: https://site.financialmodelingprep.com/developer/docs

    Any failure (transport error, non-2xx status, body that is not JSON)
    raises ProviderError. There is no retry.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key or get_fmp_key()
        self.base_url = (base_url or get_fmp_base_url()).rstrip("/")
        self.timeout = timeout or get_request_timeout()
        self.session = session

    def build_url(self, path: str) -> str:
        if not path.startswith("/"):
            path = "/" + path
        sep = "&" if "?" in path else "?"
        return f"{self.base_url}{path}{sep}apikey={self.api_key}"

    def __call__(self, path: str) -> Any:
        return self.fetch_json(path)

    def fetch_json(self, path: str) -> Any:
        url = self.build_url(path)
        get = self.session.get if self.session is not None else requests.get
        logger.debug(f"FMP GET {path}")

        try:
            resp = get(url, timeout=self.timeout)
        except requests.RequestException as e:
            logger.debug(f"FMP request failed for {path}: {e}")
            raise ProviderError(f"FMP request failed: {e}", details={"path": path})

        if not 200 <= resp.status_code < 300:
            raise ProviderError(
                f"FMP API error: {resp.status_code}",
                details={"path": path, "status": resp.status_code},
            )

        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"FMP returned invalid JSON: {e}", details={"path": path})


def create_fmp_fetcher(api_key: Optional[str] = None, **kwargs) -> FMPClient:
    """Build a fetch_json callable bound to the FMP base URL and API key."""
    return FMPClient(api_key=api_key, **kwargs)
