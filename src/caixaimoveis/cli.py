"""Command-line runner for a single scrape.

Run via: python -m caixaimoveis --uf RJ --cidade 7084
Or through the installed ``caixa-scrape`` script.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from .collectors.collector import run_scrape
from .config import config
from .exceptions import DataSourceError
from .models.listing import ANY, ScrapeOptions, SearchFilters

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with Rich handler."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="caixa-scrape",
        description="Scrape property listings from Venda Imóveis Caixa into a CSV file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  caixa-scrape --uf RJ --cidade 7084
  caixa-scrape --uf RJ --cidade 7084 --max-pages 2 --with-details
  caixa-scrape --uf SP --cidade 9668 --tp-imovel 4 --out output/sp.csv -v
        """,
    )

    search = parser.add_argument_group("search filters")
    search.add_argument("--uf", required=True, help="State code (e.g. RJ)")
    search.add_argument("--cidade", required=True, help="Site city id (e.g. 7084)")
    search.add_argument("--bairro", default="", help='Neighborhood ids, e.g. "12345,23456"')
    search.add_argument("--tp-venda", default=ANY, help=f"hdn_tp_venda (default: {ANY})")
    search.add_argument("--tp-imovel", default=ANY, help=f"hdn_tp_imovel (default: {ANY})")
    search.add_argument("--area-util", default=ANY, help=f"hdn_area_util (default: {ANY})")
    search.add_argument("--faixa-vlr", default=ANY, help=f"hdn_faixa_vlr (default: {ANY})")
    search.add_argument("--quartos", default=ANY, help=f"hdn_quartos (default: {ANY})")
    search.add_argument("--vagas", default=ANY, help=f"hdn_vg_garagem (default: {ANY})")

    run = parser.add_argument_group("run options")
    run.add_argument(
        "--out",
        type=Path,
        default=config.output_dir / "output.csv",
        help="Output CSV file (default: %(default)s)",
    )
    run.add_argument("--max-pages", type=int, default=None, help="Only fetch the first N pages")
    run.add_argument(
        "--with-details",
        action="store_true",
        help="Fetch each property's detail page (photo gallery, registry PDF, ...)",
    )
    run.add_argument("--concurrency", type=int, default=config.concurrency, help="Pages in parallel (1-10)")
    run.add_argument(
        "--details-concurrency",
        type=int,
        default=config.details_concurrency,
        help="Detail pages in parallel (1-10)",
    )
    run.add_argument("--min-delay", type=float, default=config.min_delay, help="Seconds between requests")
    run.add_argument("--timeout", type=float, default=config.timeout, help="Per-request timeout in seconds")
    run.add_argument("--retries", type=int, default=config.retries, help="Retries for 429/5xx (0-8)")

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    return parser


def options_from_args(args: argparse.Namespace) -> ScrapeOptions:
    """Validate parsed arguments into ScrapeOptions."""
    filters = SearchFilters(
        state=args.uf,
        city_id=args.cidade,
        neighborhoods=args.bairro,
        sale_type=args.tp_venda,
        property_type=args.tp_imovel,
        usable_area=args.area_util,
        price_range=args.faixa_vlr,
        bedrooms=args.quartos,
        parking_spaces=args.vagas,
    )
    return ScrapeOptions(
        filters=filters,
        out=args.out,
        max_pages=args.max_pages,
        with_details=args.with_details,
        concurrency=args.concurrency,
        details_concurrency=args.details_concurrency,
        min_delay=args.min_delay,
        timeout=args.timeout,
        retries=args.retries,
    )


def main(argv: Optional[list[str]] = None) -> None:
    """Main entry point for CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        options = options_from_args(args)
    except ValidationError as e:
        parser.error(str(e))

    try:
        result = asyncio.run(run_scrape(options))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted[/yellow]")
        sys.exit(130)
    except DataSourceError as e:
        logging.getLogger(__name__).error(f"Scrape failed: {e}")
        if args.verbose:
            raise
        sys.exit(1)

    console.print(
        f"[bold]Done.[/bold] {result.rows} rows from {result.pages} pages -> {result.out_path}"
    )
    if result.details_failed:
        console.print(f"[yellow]{result.details_failed} detail pages failed[/yellow]")


if __name__ == "__main__":
    main()
