"""
Stock data aggregation.

aggregate_stock_data() pulls seven FMP resources for one ticker and folds
them into a single CompanyFundamentals record. Only the company profile is
required; every other resource is fetched through _attempt(), so a failure
there (transport, HTTP status, unexpected payload shape) only blanks the
fields that resource feeds.

All multi-period FMP resources (statements, historical prices, earnings
calendar) are returned most-recent-first. Index 0 is "latest", and series
are reversed to get chronological order.

Zero is treated as missing for every ratio input and for the fallback
chains (quote -> profile), so a zero revenue yields a None margin rather
than 0% or a ZeroDivisionError.
"""
import concurrent.futures
import logging
import math
from functools import partial
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote as urlquote

from .errors import ValidationError
from .formatting import format_market_cap, round_to
from .models.fundamentals import CompanyFundamentals, RevenuePoint
from .models.prices import PricePoint

logger = logging.getLogger(__name__)

FetchJSON = Callable[[str], Any]

INCOME_LIMIT = 5
HISTORY_POINTS = 30
EARNINGS_LIMIT = 4


# ---------------------------------------------------------------------------
# Value helpers
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    """Finite int/float or None. Booleans and numeric strings are not numbers."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _truthy(value: Any) -> Optional[float]:
    """Like _number, but zero also counts as missing."""
    n = _number(value)
    return n if n else None


def _first(*values: Any) -> Any:
    for v in values:
        if v:
            return v
    return None


def _text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None


def _ratio(numerator: Any, denominator: Any, scale: float = 1) -> Optional[float]:
    num = _truthy(numerator)
    den = _truthy(denominator)
    if num is None or den is None:
        return None
    return _number((num / den) * scale)


def _records(data: Any) -> List[Dict[str, Any]]:
    """Normalize an FMP list response. None is empty; other non-lists are malformed."""
    if data is None:
        return []
    if not isinstance(data, list):
        raise TypeError(f"expected a JSON array, got {type(data).__name__}")
    return [row for row in data if isinstance(row, dict)]


def _latest(data: Any) -> Dict[str, Any]:
    rows = _records(data)
    return rows[0] if rows else {}


# ---------------------------------------------------------------------------
# Failure isolation
# ---------------------------------------------------------------------------

def _attempt(fetch_json: FetchJSON, path: str, parse: Callable[[Any], Any], default: Any) -> Any:
    """
    Fetch one non-critical resource and parse it.

    Any exception from the fetch or the parse is logged and replaced by
    `default`. This never raises.
    """
    try:
        return parse(fetch_json(path))
    except Exception as e:
        logger.warning(f"Resource {path} unavailable, using defaults: {e}")
        return default


# ---------------------------------------------------------------------------
# Per-resource parsers
# ---------------------------------------------------------------------------

_INCOME_DEFAULTS = {
    "revenue_growth": None,
    "gross_margin": None,
    "operating_margin": None,
    "net_margin": None,
    "eps": None,
    "revenue_history": [],
}


def _parse_income(data: Any) -> Dict[str, Any]:
    statements = _records(data)
    latest = statements[0] if statements else {}

    revenues = [r for r in (_truthy(s.get("revenue")) for s in statements) if r]
    revenue_growth = None
    if len(revenues) >= 2:
        revenue_growth = _number(((revenues[0] - revenues[1]) / revenues[1]) * 100)

    revenue = latest.get("revenue")
    history = []
    for s in statements:
        rev = _truthy(s.get("revenue"))
        year = s.get("calendarYear")
        if rev and year:
            history.append(RevenuePoint(year=str(year), revenue=rev))
    history.reverse()

    return {
        "revenue_growth": revenue_growth,
        "gross_margin": _ratio(latest.get("grossProfit"), revenue, 100),
        "operating_margin": _ratio(latest.get("operatingIncome"), revenue, 100),
        "net_margin": _ratio(latest.get("netIncome"), revenue, 100),
        "eps": _number(latest.get("eps")),
        "revenue_history": history,
    }


_BALANCE_DEFAULTS = {
    "debt_to_equity": None,
    "current_ratio": None,
    "book_value_per_share": None,
    "total_debt": None,
    "total_cash": None,
}


def _parse_balance_sheet(data: Any, profile: Dict[str, Any]) -> Dict[str, Any]:
    bs = _latest(data)
    if not bs:
        return dict(_BALANCE_DEFAULTS)

    equity = bs.get("totalStockholdersEquity")

    # FMP statements carry no share count; imply it from the profile
    book_value_per_share = None
    if _truthy(equity) and _truthy(bs.get("commonStock")):
        shares = _ratio(profile.get("mktCap"), profile.get("price"))
        book_value_per_share = _ratio(equity, shares)

    return {
        "debt_to_equity": _ratio(bs.get("totalDebt"), equity),
        "current_ratio": _ratio(bs.get("totalCurrentAssets"), bs.get("totalCurrentLiabilities")),
        "book_value_per_share": book_value_per_share,
        "total_debt": _truthy(bs.get("totalDebt")),
        "total_cash": _truthy(bs.get("cashAndCashEquivalents")),
    }


_CASH_FLOW_DEFAULTS = {
    "free_cash_flow": None,
    "operating_cash_flow": None,
    "capex": None,
}


def _parse_cash_flow(data: Any) -> Dict[str, Any]:
    cf = _latest(data)
    return {
        "free_cash_flow": _number(cf.get("freeCashFlow")),
        "operating_cash_flow": _number(cf.get("operatingCashFlow")),
        "capex": _number(cf.get("capitalExpenditure")),
    }


def _parse_quote(data: Any) -> Dict[str, Any]:
    return _latest(data)


def _parse_history(data: Any) -> List[PricePoint]:
    if not isinstance(data, dict) or not data.get("historical"):
        return []
    rows = _records(data["historical"])[:HISTORY_POINTS]
    points = [PricePoint(date=_text(row.get("date")), close=_number(row.get("close"))) for row in rows]
    points.reverse()
    return points


def _parse_earnings(data: Any) -> Optional[float]:
    rows = _records(data)
    if not rows:
        return None
    return _number(rows[0].get("epsEstimated"))


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _fetch_profile(fetch_json: FetchJSON, symbol: str) -> Optional[Dict[str, Any]]:
    try:
        data = fetch_json(f"/profile/{symbol}")
    except Exception as e:
        logger.info(f"Profile lookup failed for {symbol}: {e}")
        return None
    if not isinstance(data, list) or not data or not isinstance(data[0], dict):
        logger.info(f"No company profile for {symbol}")
        return None
    return data[0]


def _run_secondary(tasks: Dict[str, tuple], fetch_json: FetchJSON, max_workers: int) -> Dict[str, Any]:
    """Run each (path, parse, default) task through _attempt, in order or on a pool."""
    if max_workers <= 1:
        return {
            name: _attempt(fetch_json, path, parse, default)
            for name, (path, parse, default) in tasks.items()
        }

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            name: executor.submit(_attempt, fetch_json, path, parse, default)
            for name, (path, parse, default) in tasks.items()
        }
        return {name: fut.result() for name, fut in futures.items()}


def aggregate_stock_data(
    ticker: str,
    fetch_json: FetchJSON,
    max_workers: int = 1,
) -> Optional[CompanyFundamentals]:
    """
    Build a CompanyFundamentals record for `ticker`.

    `fetch_json(path)` must return parsed JSON for an FMP path such as
    "/quote/AAPL" and may raise on any failure. Returns None when the
    company profile is missing or cannot be fetched. Other resource
    failures never propagate.

    With max_workers > 1 the six secondary resources are fetched on a
    thread pool; output is identical to the sequential run.
    """
    symbol = (ticker or "").strip().upper()
    if not symbol:
        raise ValidationError("ticker must be a non-empty symbol.")
    path_symbol = urlquote(symbol, safe=".-^")

    # 1. Company profile (required)
    profile = _fetch_profile(fetch_json, path_symbol)
    if profile is None:
        return None

    tasks = {
        # 2. Income statement: growth, margins, revenue history
        "income": (
            f"/income-statement/{path_symbol}?limit={INCOME_LIMIT}",
            _parse_income,
            dict(_INCOME_DEFAULTS),
        ),
        # 3. Balance sheet: financial health
        "balance": (
            f"/balance-sheet-statement/{path_symbol}?limit=1",
            partial(_parse_balance_sheet, profile=profile),
            dict(_BALANCE_DEFAULTS),
        ),
        # 4. Cash flow statement
        "cash_flow": (
            f"/cash-flow-statement/{path_symbol}?limit=1",
            _parse_cash_flow,
            dict(_CASH_FLOW_DEFAULTS),
        ),
        # 5. Quote: live market data
        "quote": (f"/quote/{path_symbol}", _parse_quote, {}),
        # 6. Historical closes for the sparkline
        "history": (
            f"/historical-price-full/{path_symbol}?timeseries={HISTORY_POINTS}",
            _parse_history,
            [],
        ),
        # 7. Earnings calendar (premium on FMP, often fails on free keys)
        "earnings": (
            f"/earning_calendar/{path_symbol}?limit={EARNINGS_LIMIT}",
            _parse_earnings,
            None,
        ),
    }
    results = _run_secondary(tasks, fetch_json, max_workers)

    income = results["income"]
    balance = results["balance"]
    cash_flow = results["cash_flow"]
    quote = results["quote"]

    def quoted(key: str) -> Optional[float]:
        return _first(_truthy(quote.get(key)), _truthy(profile.get(key)))

    current_price = quoted("price")
    forward_pe = quoted("priceToEarningsRatio")
    forward_eps = _ratio(current_price, forward_pe)
    if forward_eps is not None:
        forward_eps = round_to(forward_eps, 2)

    market_cap = _truthy(profile.get("mktCap"))

    return CompanyFundamentals(
        symbol=symbol,
        name=_text(profile.get("companyName")) or "Unknown",
        industry=_text(profile.get("industry")) or "Unknown",
        sector=_text(profile.get("sector")),
        description=_text(profile.get("description")),
        ceo=_text(profile.get("ceo")),
        website=_text(profile.get("website")),
        employees=_first(_truthy(profile.get("fullTimeEmployees")), _text(profile.get("fullTimeEmployees"))),
        ipo_date=_text(profile.get("ipoDate")),
        exchange=_text(profile.get("exchangeShortName")),
        country=_text(profile.get("country")),

        market_cap=format_market_cap(market_cap),
        market_cap_raw=market_cap,
        current_price=current_price,
        day_change=quoted("change"),
        day_change_percent=quoted("changesPercentage"),
        volume=quoted("volume"),
        avg_volume=quoted("avgVolume"),
        year_high=quoted("yearHigh"),
        year_low=quoted("yearLow"),
        beta=_truthy(profile.get("beta")),

        forward_pe=forward_pe,
        forward_eps=forward_eps,
        pe_ratio=forward_pe,
        price_target=_truthy(profile.get("analyticTarget")),

        eps=income["eps"],
        next_quarter_eps=results["earnings"],

        revenue_growth=income["revenue_growth"],
        revenue_history=income["revenue_history"],

        gross_margin=income["gross_margin"],
        operating_margin=income["operating_margin"],
        net_margin=income["net_margin"],

        debt_to_equity=balance["debt_to_equity"],
        current_ratio=balance["current_ratio"],
        book_value_per_share=balance["book_value_per_share"],
        total_debt=balance["total_debt"],
        total_cash=balance["total_cash"],

        free_cash_flow=cash_flow["free_cash_flow"],
        operating_cash_flow=cash_flow["operating_cash_flow"],
        capex=cash_flow["capex"],

        price_history=results["history"],

        dividend_yield=_ratio(profile.get("lastDiv"), current_price, 100),
    )
