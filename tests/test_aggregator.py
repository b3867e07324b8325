import importlib.util
import unittest
import warnings
from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "fundanalyze" / "src"
sys.path.insert(0, str(SRC))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from fundanalyze.aggregator import aggregate_stock_data
from fundanalyze.errors import ValidationError
from fixtures import APPLE_RESPONSES, FakeFetcher, profile_only_fetcher


TEST_PROFILE = [{"companyName": "Test"}]


class TestCriticalProfile(unittest.TestCase):
    def test_empty_profile_returns_none(self):
        self.assertIsNone(aggregate_stock_data("XYZ", FakeFetcher(profile=[])))

    def test_profile_failure_returns_none(self):
        fetcher = FakeFetcher(profile=RuntimeError("FMP API error: 500"))
        self.assertIsNone(aggregate_stock_data("XYZ", fetcher))
        # Nothing else is attempted once the profile is missing
        self.assertEqual(fetcher.paths, ["/profile/XYZ"])

    def test_profile_without_usable_record_returns_none(self):
        self.assertIsNone(aggregate_stock_data("XYZ", FakeFetcher(profile={"Error Message": "Invalid"})))
        self.assertIsNone(aggregate_stock_data("XYZ", FakeFetcher(profile=[None])))
        self.assertIsNone(aggregate_stock_data("XYZ", FakeFetcher(profile=None)))

    def test_blank_ticker_is_rejected(self):
        with self.assertRaises(ValidationError):
            aggregate_stock_data("  ", FakeFetcher())


class TestIdentity(unittest.TestCase):
    def test_symbol_and_name_from_profile(self):
        result = aggregate_stock_data("aapl", FakeFetcher(profile=[
            {"companyName": "Apple Inc.", "industry": "Technology", "sector": "Tech"},
        ]))
        self.assertEqual(result.symbol, "AAPL")
        self.assertEqual(result.name, "Apple Inc.")
        self.assertEqual(result.industry, "Technology")
        self.assertEqual(result.sector, "Tech")

    def test_missing_identity_fields_fall_back(self):
        result = aggregate_stock_data("XYZ", FakeFetcher(profile=[{}]))
        self.assertEqual(result.name, "Unknown")
        self.assertEqual(result.industry, "Unknown")
        self.assertIsNone(result.sector)
        self.assertIsNone(result.ceo)
        self.assertIsNone(result.exchange)
        self.assertEqual(result.market_cap, "N/A")
        self.assertIsNone(result.market_cap_raw)

    def test_profile_passthrough(self):
        result = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES))
        self.assertEqual(result.exchange, "NASDAQ")
        self.assertEqual(result.employees, "164000")
        self.assertEqual(result.website, "https://www.apple.com")
        self.assertEqual(result.market_cap, "$2800.0B")
        self.assertEqual(result.market_cap_raw, 2.8e12)
        self.assertEqual(result.beta, 1.24)

    def test_resource_paths(self):
        fetcher = FakeFetcher(profile=TEST_PROFILE)
        aggregate_stock_data("msft", fetcher)
        self.assertEqual(fetcher.paths, [
            "/profile/MSFT",
            "/income-statement/MSFT?limit=5",
            "/balance-sheet-statement/MSFT?limit=1",
            "/cash-flow-statement/MSFT?limit=1",
            "/quote/MSFT",
            "/historical-price-full/MSFT?timeseries=30",
            "/earning_calendar/MSFT?limit=4",
        ])


class TestIncomeStatement(unittest.TestCase):
    def test_revenue_growth(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income=[{"revenue": 200, "calendarYear": "2025"}, {"revenue": 100, "calendarYear": "2024"}],
        ))
        self.assertEqual(result.revenue_growth, 100)

    def test_revenue_growth_needs_two_periods(self):
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, income=[{"revenue": 100}]))
        self.assertIsNone(result.revenue_growth)

    def test_zero_revenue_periods_are_skipped(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income=[{"revenue": 200}, {"revenue": 0}, {}, {"revenue": 100}],
        ))
        self.assertEqual(result.revenue_growth, 100)

    def test_profitability_margins(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income=[{"revenue": 1000, "grossProfit": 500, "operatingIncome": 300, "netIncome": 200, "eps": 1.5}],
        ))
        self.assertEqual(result.gross_margin, 50)
        self.assertEqual(result.operating_margin, 30)
        self.assertEqual(result.net_margin, 20)
        self.assertEqual(result.eps, 1.5)

    def test_zero_revenue_gives_no_margins(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income=[{"revenue": 0, "grossProfit": 500, "operatingIncome": 300, "netIncome": 200}],
        ))
        self.assertIsNone(result.gross_margin)
        self.assertIsNone(result.operating_margin)
        self.assertIsNone(result.net_margin)

    def test_revenue_history_is_chronological(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income=[
                {"revenue": 300, "calendarYear": "2025"},
                {"revenue": 200},
                {"revenue": 100, "calendarYear": 2023},
            ],
        ))
        self.assertEqual([(p.year, p.revenue) for p in result.revenue_history], [("2023", 100), ("2025", 300)])

    def test_malformed_income_payload_degrades(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            income={"Error Message": "Limit Reach"},
            quote=[{"price": 10}],
        ))
        self.assertIsNone(result.revenue_growth)
        self.assertIsNone(result.eps)
        self.assertEqual(result.revenue_history, [])
        self.assertEqual(result.current_price, 10)


class TestBalanceSheetAndCashFlow(unittest.TestCase):
    def test_balance_sheet_metrics(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "mktCap": 1000, "price": 10}],
            balance_sheet=[{
                "totalDebt": 500,
                "totalStockholdersEquity": 1000,
                "totalCurrentAssets": 300,
                "totalCurrentLiabilities": 200,
                "cashAndCashEquivalents": 150,
            }],
        ))
        self.assertEqual(result.debt_to_equity, 0.5)
        self.assertEqual(result.current_ratio, 1.5)
        self.assertEqual(result.total_debt, 500)
        self.assertEqual(result.total_cash, 150)
        # No commonStock line, no book value
        self.assertIsNone(result.book_value_per_share)

    def test_book_value_per_share_uses_implied_shares(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "mktCap": 1000, "price": 10}],
            balance_sheet=[{"totalStockholdersEquity": 1000, "commonStock": 50}],
        ))
        self.assertEqual(result.book_value_per_share, 10)

    def test_book_value_needs_profile_price(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "mktCap": 1000}],
            balance_sheet=[{"totalStockholdersEquity": 1000, "commonStock": 50}],
        ))
        self.assertIsNone(result.book_value_per_share)

    def test_zero_debt_is_reported_as_missing(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            balance_sheet=[{"totalDebt": 0, "totalStockholdersEquity": 1000}],
        ))
        self.assertIsNone(result.total_debt)
        self.assertIsNone(result.debt_to_equity)

    def test_balance_sheet_failure_leaves_fields_empty(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            balance_sheet=RuntimeError("FMP API error: 403"),
        ))
        self.assertIsNone(result.debt_to_equity)
        self.assertIsNone(result.current_ratio)
        self.assertIsNone(result.book_value_per_share)
        self.assertIsNone(result.total_debt)
        self.assertIsNone(result.total_cash)

    def test_cash_flow_metrics(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            cash_flow=[{"freeCashFlow": 50, "operatingCashFlow": 80, "capitalExpenditure": -30}],
        ))
        self.assertEqual(result.free_cash_flow, 50)
        self.assertEqual(result.operating_cash_flow, 80)
        self.assertEqual(result.capex, -30)

    def test_cash_flow_keeps_zero(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            cash_flow=[{"freeCashFlow": 50, "capitalExpenditure": 0}],
        ))
        self.assertEqual(result.capex, 0)
        self.assertIsNone(result.operating_cash_flow)


class TestMarketData(unittest.TestCase):
    def test_price_history_is_chronological(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            history={"historical": [
                {"date": "2026-01-02", "close": 102},
                {"date": "2026-01-01", "close": 100},
            ]},
        ))
        self.assertEqual(len(result.price_history), 2)
        self.assertEqual(result.price_history[0].close, 100)
        self.assertEqual(result.price_history[1].close, 102)
        self.assertEqual(result.price_history[0].date, "2026-01-01")

    def test_price_history_keeps_latest_thirty(self):
        historical = [{"date": f"2026-02-{40 - i:02d}", "close": 40 - i} for i in range(40)]
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, history={"historical": historical}))
        self.assertEqual(len(result.price_history), 30)
        self.assertEqual(result.price_history[0].close, 11)
        self.assertEqual(result.price_history[-1].close, 40)

    def test_rows_without_date_are_kept(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            history={"historical": [{"close": 1}, {"date": "2026-01-01", "close": 2}]},
        ))
        self.assertEqual([(p.date, p.close) for p in result.price_history], [("2026-01-01", 2), (None, 1)])

    def test_missing_historical_field(self):
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, history={}))
        self.assertEqual(result.price_history, [])
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, history=[]))
        self.assertEqual(result.price_history, [])

    def test_year_range_from_quote(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=TEST_PROFILE,
            quote=[{"price": 150, "yearHigh": 200, "yearLow": 100}],
        ))
        self.assertEqual(result.year_high, 200)
        self.assertEqual(result.year_low, 100)

    def test_quote_takes_precedence_over_profile(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "price": 90, "priceToEarningsRatio": 10}],
            quote=[{"price": 100, "priceToEarningsRatio": 20, "change": -1.2,
                    "changesPercentage": -1.19, "volume": 1000, "avgVolume": 1200}],
        ))
        self.assertEqual(result.current_price, 100)
        self.assertEqual(result.forward_pe, 20)
        self.assertEqual(result.pe_ratio, 20)
        self.assertEqual(result.forward_eps, 5)
        self.assertEqual(result.day_change, -1.2)
        self.assertEqual(result.day_change_percent, -1.19)
        self.assertEqual(result.volume, 1000)
        self.assertEqual(result.avg_volume, 1200)

    def test_profile_fills_in_for_missing_quote(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "price": 90, "priceToEarningsRatio": 10}],
            quote=[{"price": 0}],
        ))
        self.assertEqual(result.current_price, 90)
        self.assertEqual(result.forward_pe, 10)

    def test_forward_eps_rounding(self):
        result = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES))
        self.assertEqual(result.forward_eps, 6.91)

    def test_forward_eps_needs_pe(self):
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, quote=[{"price": 100}]))
        self.assertIsNone(result.forward_pe)
        self.assertIsNone(result.forward_eps)

    def test_non_finite_values_are_dropped(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "price": 50}],
            quote=[{"price": float("nan"), "yearHigh": float("inf")}],
        ))
        self.assertEqual(result.current_price, 50)
        self.assertIsNone(result.year_high)

    def test_dividend_yield(self):
        result = aggregate_stock_data("TEST", FakeFetcher(
            profile=[{"companyName": "Test", "lastDiv": 2, "price": 100}],
            quote=[{"price": 100}],
        ))
        self.assertEqual(result.dividend_yield, 2)

    def test_price_target(self):
        result = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES))
        self.assertEqual(result.price_target, 210)


class TestEarnings(unittest.TestCase):
    def test_next_quarter_eps(self):
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE, earnings=[{"epsEstimated": 1.75}, {"epsEstimated": 1.5}]))
        self.assertEqual(result.next_quarter_eps, 1.75)

    def test_earnings_calendar_failure(self):
        def fetch_json(path):
            if path.startswith("/profile/"):
                return TEST_PROFILE
            if path.startswith("/earning_calendar/"):
                raise RuntimeError("Premium only")
            return []

        result = aggregate_stock_data("TEST", fetch_json)
        self.assertIsNotNone(result)
        self.assertIsNone(result.next_quarter_eps)


class TestPartialFailure(unittest.TestCase):
    def test_only_profile_available(self):
        fetch_json = profile_only_fetcher([
            {"companyName": "Test Corp", "industry": "Tech", "mktCap": 1e9, "price": 50},
        ])
        result = aggregate_stock_data("TEST", fetch_json)

        self.assertIsNotNone(result)
        self.assertEqual(result.name, "Test Corp")
        self.assertEqual(result.industry, "Tech")
        self.assertEqual(result.current_price, 50)
        self.assertIsNone(result.revenue_growth)
        self.assertIsNone(result.free_cash_flow)
        self.assertEqual(result.price_history, [])
        self.assertIsNone(result.next_quarter_eps)
        self.assertEqual(result.market_cap, "$1.0B")

    def test_concurrent_fetch_matches_sequential(self):
        sequential = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES))
        concurrent = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES), max_workers=6)
        self.assertEqual(sequential, concurrent)

    def test_concurrent_failures_stay_isolated(self):
        responses = dict(APPLE_RESPONSES, earnings=RuntimeError("Premium only"), cash_flow=RuntimeError("down"))
        result = aggregate_stock_data("AAPL", FakeFetcher(**responses), max_workers=4)
        self.assertIsNone(result.next_quarter_eps)
        self.assertIsNone(result.free_cash_flow)
        self.assertEqual(result.revenue_history[-1].year, "2025")
        self.assertEqual(len(result.price_history), 2)


class TestRecord(unittest.TestCase):
    def test_full_record(self):
        result = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES))
        self.assertAlmostEqual(result.debt_to_equity, 1.79, places=2)
        self.assertAlmostEqual(result.current_ratio, 100 / 110)
        self.assertAlmostEqual(result.book_value_per_share, 62e9 / (2.8e12 / 195.5))
        self.assertAlmostEqual(result.revenue_growth, (394e9 - 365e9) / 365e9 * 100)
        self.assertAlmostEqual(result.dividend_yield, 0.96 / 195.5 * 100)
        self.assertEqual(result.next_quarter_eps, 1.75)
        self.assertEqual(result.eps, 6.42)

    def test_wire_shape_is_camel_case(self):
        wire = aggregate_stock_data("AAPL", FakeFetcher(**APPLE_RESPONSES)).to_wire()
        for key in ("symbol", "forwardPE", "forwardEPS", "nextQuarterEPS", "peRatio",
                    "marketCapRaw", "revenueHistory", "priceHistory", "dividendYield"):
            self.assertIn(key, wire)
        self.assertEqual(wire["priceHistory"][0], {"date": "2026-01-01", "close": 190})
        self.assertEqual(wire["revenueHistory"][0], {"year": "2024", "revenue": 365e9})

    def test_record_is_immutable(self):
        result = aggregate_stock_data("TEST", FakeFetcher(profile=TEST_PROFILE))
        with self.assertRaises(ValueError):
            result.name = "Other"

    def test_models_define_without_deprecation_warnings(self):
        models_dir = SRC / "fundanalyze" / "models"
        for name in ("prices", "fundamentals"):
            spec = importlib.util.spec_from_file_location(
                f"fundanalyze.models._fresh_{name}", models_dir / f"{name}.py"
            )
            module = importlib.util.module_from_spec(spec)
            with warnings.catch_warnings():
                warnings.simplefilter("error", DeprecationWarning)
                spec.loader.exec_module(module)


if __name__ == "__main__":
    unittest.main()
