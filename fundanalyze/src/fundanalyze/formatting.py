"""
Display helpers for CompanyFundamentals values.

Rounding follows the web client this service was built for: fixed-point
output rounds half away from zero on the exact binary value, and scores
round half up, so numbers render identically on both sides.
"""
import math
from decimal import Decimal, ROUND_FLOOR, ROUND_HALF_UP
from typing import List, NamedTuple, Optional, Union

Number = Union[int, float]

NOT_AVAILABLE = "N/A"


def to_fixed(value: Number, digits: int) -> str:
    """Fixed-point string with `digits` decimals, ties rounded away from zero."""
    exp = Decimal(1).scaleb(-digits)
    return str(Decimal(value).quantize(exp, rounding=ROUND_HALF_UP))


def round_to(value: Number, digits: int) -> float:
    return float(to_fixed(value, digits))


def round_half_up(value: Number) -> int:
    """Integer rounding with .5 going towards +infinity."""
    return int(Decimal(value + 0.5).to_integral_value(rounding=ROUND_FLOOR))


def _group(value: Number) -> str:
    # Thousands separators, at most three fraction digits, no trailing zeros
    text = f"{Decimal(value).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP):,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_large_number(num: Optional[Number]) -> str:
    """
    Format a dollar amount with a magnitude suffix.

    >>> format_large_number(2_800_000_000_000)
    '$2.80T'
    >>> format_large_number(-11_000_000_000)
    '-$11.00B'
    >>> format_large_number(5_600_000)
    '$5.6M'
    >>> format_large_number(12345)
    '$12,345'
    """
    if num is None:
        return NOT_AVAILABLE
    if isinstance(num, float) and not math.isfinite(num):
        return NOT_AVAILABLE
    magnitude = abs(num)
    sign = "-" if num < 0 else ""
    if magnitude >= 1e12:
        return f"{sign}${to_fixed(magnitude / 1e12, 2)}T"
    if magnitude >= 1e9:
        return f"{sign}${to_fixed(magnitude / 1e9, 2)}B"
    if magnitude >= 1e6:
        return f"{sign}${to_fixed(magnitude / 1e6, 1)}M"
    return f"{sign}${_group(magnitude)}"


def format_market_cap(market_cap: Optional[Number]) -> str:
    """Compact market cap in billions, e.g. '$2800.0B'."""
    if not market_cap:
        return NOT_AVAILABLE
    return f"${to_fixed(market_cap / 1e9, 1)}B"


def format_price(value: Optional[Number]) -> str:
    if not value:
        return NOT_AVAILABLE
    return f"${to_fixed(value, 2)}"


def format_percent(value: Optional[Number], digits: int = 1) -> str:
    if not value:
        return NOT_AVAILABLE
    return f"{to_fixed(value, digits)}%"


def format_ratio(value: Optional[Number], digits: int = 2) -> str:
    if not value:
        return NOT_AVAILABLE
    return to_fixed(value, digits)


class Valuation(NamedTuple):
    label: str
    color: str
    score: int


def assess_valuation(forward_pe: Optional[Number]) -> Optional[Valuation]:
    """
    Bucket a forward P/E into a coarse valuation call with a 15-95 score.

    Below 15 is undervalued, below 25 fair, anything else overvalued.
    """
    if not forward_pe:
        return None
    if forward_pe < 15:
        return Valuation("Undervalued", "emerald", min(95, round_half_up(90 - forward_pe * 2)))
    if forward_pe < 25:
        return Valuation("Fair Value", "blue", round_half_up(70 - (forward_pe - 15)))
    return Valuation("Overvalued", "red", max(15, round_half_up(50 - (forward_pe - 25))))


def compute_upside(price_target: Optional[Number], current_price: Optional[Number]) -> Optional[float]:
    """Percent move from the current price to the analyst target."""
    if not price_target or not current_price:
        return None
    return ((price_target - current_price) / current_price) * 100


_SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def sparkline(closes: List[Optional[Number]]) -> str:
    """
    One-line block chart of closing prices, oldest first.
    Needs at least two closes; gaps are dropped.
    """
    values = [v for v in closes if v is not None]
    if len(values) < 2:
        return ""
    low, high = min(values), max(values)
    span = (high - low) or 1
    top = len(_SPARK_BLOCKS) - 1
    return "".join(_SPARK_BLOCKS[round_half_up((v - low) / span * top)] for v in values)


def trend_is_positive(closes: List[Optional[Number]]) -> bool:
    values = [v for v in closes if v is not None]
    return bool(values) and values[-1] >= values[0]


def target_progress(price_target: Optional[Number], current_price: Optional[Number]) -> float:
    """How far the price has travelled towards the target, clamped to 0-100."""
    if not price_target or not current_price:
        return 0.0
    return min(100.0, max(0.0, (current_price / price_target) * 100))
