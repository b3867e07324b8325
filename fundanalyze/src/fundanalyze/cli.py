import sys
import json
import click
import logging
from .errors import format_error, NotFoundError, ValidationError
from .logging import configure_logging
from .aggregator import aggregate_stock_data
from .providers.fmp import create_fmp_fetcher
from .watchlist import Watchlist
from .export.paths import get_export_dir
from .export import json_export, csv_export, md_export
from pathlib import Path

from . import __version__ as VERSION

logger = logging.getLogger(__name__)


def _normalize_ticker(ticker: str) -> str:
    ticker = (ticker or "").strip().upper()
    if not ticker:
        raise click.BadParameter("ticker must be a non-empty symbol.")
    return ticker


def _aggregate(ticker: str, workers: int = 1):
    """Aggregate or raise NotFoundError, so the CLI reports a typed error."""
    if workers < 1:
        raise click.BadParameter("--workers must be >= 1.")
    company = aggregate_stock_data(ticker, create_fmp_fetcher(), max_workers=workers)
    if company is None:
        raise NotFoundError("Company not found", details={"ticker": ticker})
    return company


@click.group()
@click.option("--verbose", is_flag=True, help="Debug logging")
def cli(verbose):
    """fundanalyze: Forward-looking fundamental analysis."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@cli.command()
def version():
    """Print version information."""
    _print_json({"version": VERSION})


@cli.command()
@click.option("--ticker", required=True, help="Stock ticker symbol")
@click.option("--workers", default=1, show_default=True, type=int, help="Parallel fetches for secondary resources")
def fetch(ticker, workers):
    """Fetch and aggregate company fundamentals."""
    ticker = _normalize_ticker(ticker)
    company = _aggregate(ticker, workers)
    _print_json(company.to_wire())


@cli.command()
@click.option("--ticker", required=True, help="Stock ticker symbol")
@click.option("--out", default="./exports", help="Export root directory")
@click.option("--workers", default=1, show_default=True, type=int, help="Parallel fetches for secondary resources")
def export(ticker, out, workers):
    """
    Fetch fundamentals and export them to JSON/CSV/MD.

    Writes fundamentals.{json,csv,md} plus price_history.csv and
    revenue_history.csv when those series are available.
    """
    ticker = _normalize_ticker(ticker)
    company = _aggregate(ticker, workers)
    data = company.to_wire()

    export_dir = get_export_dir(ticker, root=out)
    results = []

    json_export.export_json(data, export_dir / "fundamentals.json")
    csv_export.export_fundamentals_csv(data, export_dir / "fundamentals.csv")
    md_export.export_fundamentals_md(data, export_dir / "fundamentals.md")
    results.append("fundamentals")

    if csv_export.export_price_history_csv(data, export_dir / "price_history.csv"):
        results.append("price_history")
    if csv_export.export_revenue_history_csv(data, export_dir / "revenue_history.csv"):
        results.append("revenue_history")

    _print_json({
        "exported": results,
        "directory": str(export_dir)
    })


@cli.group()
@click.option("--path", "watchlist_path", default=None, help="Watchlist YAML file (default: $FUNDANALYZE_WATCHLIST or watchlist.yaml)")
@click.pass_context
def watchlist(ctx, watchlist_path):
    """Manage saved companies."""
    ctx.obj = Watchlist(watchlist_path)


@watchlist.command("add")
@click.option("--ticker", required=True, help="Stock ticker symbol")
@click.pass_obj
def watchlist_add(wl, ticker):
    """Fetch a company and save its snapshot."""
    ticker = _normalize_ticker(ticker)
    if ticker in wl:
        _print_json({"added": False, "symbol": ticker, "symbols": wl.symbols()})
        return

    company = _aggregate(ticker)
    added = wl.add(company)
    _print_json({"added": added, "symbol": ticker, "symbols": wl.symbols()})


@watchlist.command("remove")
@click.option("--ticker", required=True, help="Stock ticker symbol")
@click.pass_obj
def watchlist_remove(wl, ticker):
    """Remove a saved company."""
    ticker = _normalize_ticker(ticker)
    removed = wl.remove(ticker)
    _print_json({"removed": removed, "symbol": ticker, "symbols": wl.symbols()})


@watchlist.command("list")
@click.pass_obj
def watchlist_list(wl):
    """Print saved companies."""
    _print_json({
        "name": wl.name,
        "count": len(wl),
        "companies": wl.companies(),
    })


@watchlist.command("export")
@click.option("--out", default="./exports", help="Export root directory")
@click.pass_obj
def watchlist_export(wl, out):
    """Export saved companies to watchlist.{json,md}."""
    out_dir = Path(out)
    out_dir.mkdir(parents=True, exist_ok=True)
    companies = wl.companies()

    json_export.export_json(companies, out_dir / "watchlist.json")
    md_export.export_watchlist_md(companies, out_dir / "watchlist.md", title=wl.name)

    _print_json({
        "exported": ["watchlist"],
        "directory": str(out_dir),
        "count": len(companies),
    })


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
def serve(host, port):
    """Serve GET /api/stock/{ticker} over HTTP."""
    import uvicorn

    logger.info(f"Serving on http://{host}:{port}")
    uvicorn.run("fundanalyze.api:app", host=host, port=port, log_config=None)


def _print_json(data):
    """Helper to print standard JSON envelope."""
    payload = {
        "ok": True,
        "data": data,
        "meta": {
            "version": 1
        }
    }
    click.echo(json.dumps(payload, indent=2))


def main():
    """Entry point for the CLI."""
    try:
        cli(standalone_mode=False)
    except Exception as e:
        if isinstance(e, click.exceptions.Exit):
             sys.exit(e.exit_code)
        if isinstance(e, click.exceptions.Abort):
             sys.exit(130)

        # Click usage errors (missing args) raise UsageError
        if isinstance(e, click.exceptions.UsageError):
             print(format_error(ValidationError(e.format_message())))
             sys.exit(2)

        print(format_error(e))
        sys.exit(1)

if __name__ == "__main__":
    main()
