from typing import Optional, List, Union
from pydantic import BaseModel, ConfigDict, Field

from .prices import Number, PricePoint


class RevenuePoint(BaseModel):
    """Annual revenue for one fiscal year."""
    model_config = ConfigDict(frozen=True)

    year: str
    revenue: Number


class CompanyFundamentals(BaseModel):
    """
    Normalized snapshot of one company's fundamentals, merged from the
    profile, statements, quote, price history and earnings calendar.

    Field names are snake_case in Python and camelCase on the wire
    (dump with by_alias=True). Everything except symbol may be None.
    """
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    # Company info
    symbol: str
    name: Optional[str] = None
    industry: Optional[str] = None
    sector: Optional[str] = None
    description: Optional[str] = None
    ceo: Optional[str] = None
    website: Optional[str] = None
    # FMP sends the headcount as a string
    employees: Optional[Union[Number, str]] = None
    ipo_date: Optional[str] = Field(None, alias="ipoDate")
    exchange: Optional[str] = None
    country: Optional[str] = None

    # Market data
    market_cap: str = Field("N/A", alias="marketCap")
    market_cap_raw: Optional[Number] = Field(None, alias="marketCapRaw")
    current_price: Optional[Number] = Field(None, alias="currentPrice")
    day_change: Optional[Number] = Field(None, alias="dayChange")
    day_change_percent: Optional[Number] = Field(None, alias="dayChangePercent")
    volume: Optional[Number] = None
    avg_volume: Optional[Number] = Field(None, alias="avgVolume")
    year_high: Optional[Number] = Field(None, alias="yearHigh")
    year_low: Optional[Number] = Field(None, alias="yearLow")
    beta: Optional[Number] = None

    # Valuation
    forward_pe: Optional[Number] = Field(None, alias="forwardPE")
    forward_eps: Optional[Number] = Field(None, alias="forwardEPS")
    pe_ratio: Optional[Number] = Field(None, alias="peRatio")
    price_target: Optional[Number] = Field(None, alias="priceTarget")

    # Earnings
    eps: Optional[Number] = None
    next_quarter_eps: Optional[Number] = Field(None, alias="nextQuarterEPS")

    # Growth
    revenue_growth: Optional[Number] = Field(None, alias="revenueGrowth")
    revenue_history: List[RevenuePoint] = Field(default_factory=list, alias="revenueHistory")

    # Profitability (percent)
    gross_margin: Optional[Number] = Field(None, alias="grossMargin")
    operating_margin: Optional[Number] = Field(None, alias="operatingMargin")
    net_margin: Optional[Number] = Field(None, alias="netMargin")

    # Financial health
    debt_to_equity: Optional[Number] = Field(None, alias="debtToEquity")
    current_ratio: Optional[Number] = Field(None, alias="currentRatio")
    book_value_per_share: Optional[Number] = Field(None, alias="bookValuePerShare")
    total_debt: Optional[Number] = Field(None, alias="totalDebt")
    total_cash: Optional[Number] = Field(None, alias="totalCash")

    # Cash flow
    free_cash_flow: Optional[Number] = Field(None, alias="freeCashFlow")
    operating_cash_flow: Optional[Number] = Field(None, alias="operatingCashFlow")
    capex: Optional[Number] = None

    # Sparkline, oldest first
    price_history: List[PricePoint] = Field(default_factory=list, alias="priceHistory")

    # Dividend (percent)
    dividend_yield: Optional[Number] = Field(None, alias="dividendYield")

    def to_wire(self) -> dict:
        """JSON-ready dict in the camelCase shape served by the API."""
        return self.model_dump(mode="json", by_alias=True)
