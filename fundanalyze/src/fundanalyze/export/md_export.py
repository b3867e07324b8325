from pathlib import Path
from typing import List, Dict, Any

from ..formatting import (
    NOT_AVAILABLE,
    assess_valuation,
    compute_upside,
    format_large_number,
    format_percent,
    format_price,
    format_ratio,
    sparkline,
    target_progress,
    to_fixed,
    trend_is_positive,
)


def _value(v: Any) -> str:
    return NOT_AVAILABLE if v is None else str(v)


def render_fundamentals_md(data: Dict[str, Any]) -> str:
    """Render a camelCase fundamentals record as a Markdown company card."""
    lines: List[str] = []
    lines.append(f"# {data.get('symbol', 'UNKNOWN')}: {data.get('name') or 'Unknown'}")
    lines.append("")
    lines.append(f"**Sector**: {_value(data.get('sector'))} | **Industry**: {data.get('industry') or 'Unknown'}")
    lines.append(f"**Exchange**: {_value(data.get('exchange'))} | **Country**: {_value(data.get('country'))}")
    lines.append("")

    price = data.get('currentPrice')
    target = data.get('priceTarget')
    if price:
        lines.append("## Price")
        lines.append(f"- Current: {format_price(price)}")
        change = data.get('dayChange')
        change_pct = data.get('dayChangePercent')
        if change:
            pct = f" ({to_fixed(change_pct, 2)}%)" if change_pct else ""
            lines.append(f"- Day Change: {to_fixed(change, 2)}{pct}")
        if data.get('yearLow') and data.get('yearHigh'):
            lines.append(f"- 52-Week Range: {format_price(data['yearLow'])} - {format_price(data['yearHigh'])}")
        if target:
            lines.append(f"- Target: {format_price(target)}")
            lines.append(f"- Progress to Target: {to_fixed(target_progress(target, price), 0)}%")
        upside = compute_upside(target, price)
        if upside is not None:
            sign = "+" if upside >= 0 else ""
            lines.append(f"- Upside: {sign}{to_fixed(upside, 1)}%")
        lines.append("")

    closes = [p.get('close') for p in data.get('priceHistory') or []]
    chart = sparkline(closes)
    if chart:
        direction = "up" if trend_is_positive(closes) else "down"
        lines.append(f"`{chart}` 30-day trend {direction}")
        lines.append("")

    valuation = assess_valuation(data.get('forwardPE'))
    if valuation:
        lines.append("## Valuation")
        lines.append(f"**{valuation.label}** (score {valuation.score}/100, based on forward P/E)")
        lines.append("")

    lines.append("## Key Metrics")
    lines.append(f"- Forward P/E: {format_ratio(data.get('forwardPE'))}")
    lines.append(f"- Forward EPS: {format_price(data.get('forwardEPS'))}")
    lines.append(f"- Next Qtr EPS: {format_price(data.get('nextQuarterEPS'))}")
    lines.append(f"- Revenue Growth: {format_percent(data.get('revenueGrowth'))}")
    lines.append(f"- Market Cap: {data.get('marketCap') or NOT_AVAILABLE}")
    lines.append(f"- P/E Ratio (TTM): {format_ratio(data.get('peRatio'))}")
    lines.append(f"- EPS (TTM): {format_price(data.get('eps'))}")
    lines.append(f"- Dividend Yield: {format_percent(data.get('dividendYield'), 2)}")
    lines.append(f"- Beta: {format_ratio(data.get('beta'))}")
    lines.append("")

    lines.append("## Profitability")
    lines.append(f"- Gross Margin: {format_percent(data.get('grossMargin'))}")
    lines.append(f"- Operating Margin: {format_percent(data.get('operatingMargin'))}")
    lines.append(f"- Net Margin: {format_percent(data.get('netMargin'))}")
    lines.append("")

    lines.append("## Financial Health")
    lines.append(f"- Debt/Equity: {format_ratio(data.get('debtToEquity'))}")
    lines.append(f"- Current Ratio: {format_ratio(data.get('currentRatio'))}")
    lines.append(f"- Book Value/Share: {format_price(data.get('bookValuePerShare'))}")
    lines.append(f"- Total Debt: {format_large_number(data.get('totalDebt'))}")
    lines.append(f"- Total Cash: {format_large_number(data.get('totalCash'))}")
    lines.append("")

    lines.append("## Cash Flow")
    lines.append(f"- Free Cash Flow: {format_large_number(data.get('freeCashFlow'))}")
    lines.append(f"- Operating Cash Flow: {format_large_number(data.get('operatingCashFlow'))}")
    lines.append(f"- CapEx: {format_large_number(data.get('capex'))}")

    history = data.get('revenueHistory') or []
    if history:
        lines.append("")
        lines.append("## Revenue History")
        lines.append("| Year | Revenue |")
        lines.append("|------|---------|")
        for row in history:
            lines.append(f"| {row.get('year')} | {format_large_number(row.get('revenue'))} |")

    description = data.get('description')
    if description:
        lines.append("")
        lines.append("## About")
        if data.get('ceo'):
            lines.append(f"**CEO**: {data['ceo']}")
        if data.get('website'):
            lines.append(f"**Website**: {data['website']}")
        lines.append("")
        lines.append(description)

    return "\n".join(lines) + "\n"


def export_fundamentals_md(data: Dict[str, Any], path: Path):
    """Export fundamentals to Markdown."""
    with open(path, 'w') as f:
        f.write(render_fundamentals_md(data))


def render_watchlist_md(companies: List[Dict[str, Any]], title: str = "Watchlist") -> str:
    lines = [f"# {title}", ""]
    if not companies:
        lines.append("Your watchlist is empty. Add companies with `fundanalyze watchlist add`.")
        return "\n".join(lines) + "\n"

    lines.append(f"{len(companies)} saved companies")
    lines.append("")
    lines.append("| Symbol | Name | Forward P/E | Target |")
    lines.append("|--------|------|-------------|--------|")
    for c in companies:
        lines.append(
            f"| {c.get('symbol')} | {c.get('name') or ''} "
            f"| {format_ratio(c.get('forwardPE'))} | {format_price(c.get('priceTarget'))} |"
        )
    return "\n".join(lines) + "\n"


def export_watchlist_md(companies: List[Dict[str, Any]], path: Path, title: str = "Watchlist"):
    """Export saved companies to a Markdown table."""
    with open(path, 'w') as f:
        f.write(render_watchlist_md(companies, title=title))
