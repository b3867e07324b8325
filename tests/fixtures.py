"""Canned FMP payloads and a path-routing fake fetcher shared by the tests."""

APPLE_RESPONSES = {
    "profile": [{
        "companyName": "Apple Inc.",
        "industry": "Technology",
        "sector": "Tech",
        "mktCap": 2.8e12,
        "price": 195.5,
        "priceToEarningsRatio": 28.3,
        "analyticTarget": 210,
        "fullTimeEmployees": "164000",
        "exchangeShortName": "NASDAQ",
        "country": "US",
        "ceo": "Mr. Timothy D. Cook",
        "website": "https://www.apple.com",
        "description": "Apple designs phones.",
        "beta": 1.24,
        "lastDiv": 0.96,
    }],
    "income": [
        {"revenue": 394e9, "grossProfit": 180e9, "operatingIncome": 120e9,
         "netIncome": 100e9, "eps": 6.42, "calendarYear": "2025"},
        {"revenue": 365e9, "calendarYear": "2024"},
    ],
    "balance_sheet": [{
        "totalDebt": 111e9,
        "totalStockholdersEquity": 62e9,
        "totalCurrentAssets": 100e9,
        "totalCurrentLiabilities": 110e9,
        "cashAndCashEquivalents": 30e9,
        "commonStock": 73e9,
    }],
    "cash_flow": [{"freeCashFlow": 111e9, "operatingCashFlow": 122e9, "capitalExpenditure": -11e9}],
    "quote": [{"price": 195.5, "priceToEarningsRatio": 28.3, "yearHigh": 220, "yearLow": 150,
               "change": 1.5, "changesPercentage": 0.77, "volume": 5e7, "avgVolume": 6e7}],
    "history": {"historical": [{"date": "2026-01-02", "close": 195}, {"date": "2026-01-01", "close": 190}]},
    "earnings": [{"epsEstimated": 1.75}],
}

_ROUTES = [
    ("/profile/", "profile", []),
    ("/income-statement/", "income", []),
    ("/balance-sheet-statement/", "balance_sheet", []),
    ("/cash-flow-statement/", "cash_flow", []),
    ("/quote/", "quote", []),
    ("/historical-price-full/", "history", {"historical": []}),
    ("/earning_calendar/", "earnings", []),
]


class FakeFetcher:
    """
    Stand-in for FMPClient. Routes on the path prefix; a value that is an
    Exception instance is raised instead of returned. Records every path.
    """

    def __init__(self, **responses):
        self.responses = responses
        self.paths = []

    def __call__(self, path):
        self.paths.append(path)
        for prefix, key, default in _ROUTES:
            if path.startswith(prefix):
                value = self.responses.get(key, default)
                if isinstance(value, Exception):
                    raise value
                return value
        return []


def profile_only_fetcher(profile):
    """Profile succeeds, every other resource raises."""
    def fetch(path):
        if path.startswith("/profile/"):
            return profile
        raise RuntimeError("Endpoint unavailable")
    return fetch
