"""Data collection for the Venda Imóveis Caixa site.

Main Components:
    - CaixaClient: Rate-limited async client for the site's AJAX endpoints
    - ListingCollector: Orchestrates search, listing pages and detail pages
    - run_scrape: End-to-end run that writes a CSV file

Example usage:
    from caixaimoveis.collectors import CaixaClient, ListingCollector
    from caixaimoveis.models import SearchFilters

    async with CaixaClient() as client:
        collector = ListingCollector(client)
        items = await collector.collect(SearchFilters(state="RJ", city_id="7084"))
"""

from .caixa import CaixaClient, RateLimiter
from .collector import ListingCollector, run_scrape

__all__ = [
    "CaixaClient",
    "RateLimiter",
    "ListingCollector",
    "run_scrape",
]
