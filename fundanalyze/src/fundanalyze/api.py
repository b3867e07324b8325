"""FastAPI application exposing the aggregator over HTTP."""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from . import __version__
from .aggregator import FetchJSON, aggregate_stock_data
from .providers.fmp import create_fmp_fetcher

logger = logging.getLogger(__name__)

# Responses are safe to reuse for five minutes; nothing is cached server-side
CACHE_CONTROL = "public, max-age=300"

_ANY_METHOD = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

app = FastAPI(
    title="FundAnalyze API",
    description="Forward-looking fundamentals for a single ticker",
    version=__version__,
)


def get_fetcher() -> FetchJSON:
    """FMP fetcher bound to the configured base URL and API key."""
    return create_fmp_fetcher()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Failures outside the route body, e.g. building the fetcher."""
    logger.error(f"Unhandled error for {request.url.path}: {exc}", exc_info=exc)
    return _error(500, "Failed to fetch company data")


@app.get("/health")
def health_check() -> dict:
    return {"status": "healthy"}


@app.api_route("/api/stock", methods=_ANY_METHOD, include_in_schema=False)
@app.api_route("/api/stock/", methods=_ANY_METHOD, include_in_schema=False)
def stock_without_ticker(request: Request) -> JSONResponse:
    if request.method != "GET":
        return _error(405, "Method not allowed")
    return _error(400, "Ticker is required")


@app.api_route("/api/stock/{ticker}", methods=_ANY_METHOD)
def get_stock(
    ticker: str,
    request: Request,
    fetch_json: FetchJSON = Depends(get_fetcher),
) -> JSONResponse:
    """
    Aggregated fundamentals for one ticker.

    200 with the camelCase record, 400 for a blank ticker, 404 when the
    provider has no profile for it, 405 for anything but GET, 500 for
    unexpected failures.
    """
    if request.method != "GET":
        return _error(405, "Method not allowed")

    ticker = (ticker or "").strip()
    if not ticker:
        return _error(400, "Ticker is required")

    try:
        company = aggregate_stock_data(ticker, fetch_json)
    except Exception:
        logger.exception(f"Aggregation failed for {ticker}")
        return _error(500, "Failed to fetch company data")

    if company is None:
        return _error(404, "Company not found")

    return JSONResponse(content=company.to_wire(), headers={"Cache-Control": CACHE_CONTROL})
