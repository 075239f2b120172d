"""Scrape orchestrator.

This module provides the ListingCollector class which drives a full scrape:
one search, the listing pages it points to, and optionally the detail page
of every property found. Pages and details are fetched through bounded
worker pools on top of a single rate-limited CaixaClient.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

from ..config import Settings, config
from ..models.listing import ListingDetail, ListingItem, ScrapeOptions, ScrapeResult, SearchFilters
from ..parsers.detail_page import parse_detail_page_html
from ..parsers.listing_page import parse_list_page_html
from ..storage.csv_writer import write_listings_csv
from .caixa import CaixaClient

logger = logging.getLogger(__name__)


class ListingCollector:
    """Collects listing rows for one search.

    Features:
        - Listing pages fetched concurrently (at most ``concurrency`` in flight)
        - Deterministic row order: by page, then by listing id
        - Optional detail enrichment (at most ``details_concurrency`` in flight),
          one request per unique listing id
        - Detail failures are logged and leave the row with an empty detail

    Example:
        async with CaixaClient() as client:
            collector = ListingCollector(client, concurrency=3)
            items = await collector.collect(
                SearchFilters(state="RJ", city_id="7084"),
                max_pages=2,
                with_details=True,
            )
    """

    def __init__(
        self,
        client: CaixaClient,
        concurrency: int = 3,
        details_concurrency: int = 2,
    ):
        """Initialize the collector.

        Args:
            client: Client used for every request
            concurrency: Listing pages fetched in parallel
            details_concurrency: Detail pages fetched in parallel
        """
        self.client = client
        self.concurrency = max(1, concurrency)
        self.details_concurrency = max(1, details_concurrency)

        # Stats of the last collect() call
        self.pages_fetched = 0
        self.details_failed = 0

    async def _fetch_page(
        self,
        semaphore: asyncio.Semaphore,
        filters: SearchFilters,
        token: str,
        page: int,
        total_pages: int,
    ) -> list[ListingItem]:
        async with semaphore:
            html = await self.client.fetch_list_page_html(token)
        items = parse_list_page_html(html, filters.state, filters.city_id, page)
        logger.info(f"[page {page}/{total_pages}] items={len(items)}")
        return items

    async def _fetch_detail(
        self, semaphore: asyncio.Semaphore, listing_id: str
    ) -> ListingDetail:
        """Fetch and parse one detail page; an empty detail when it fails."""
        async with semaphore:
            try:
                html = await self.client.fetch_detail_page_html(listing_id)
                return parse_detail_page_html(html)
            except Exception as e:
                logger.warning(f"[details] failed listing_id={listing_id}: {e}")
                self.details_failed += 1
                return ListingDetail()

    async def _gather_pages(
        self, filters: SearchFilters, tokens: list[str]
    ) -> list[list[ListingItem]]:
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.create_task(
                self._fetch_page(semaphore, filters, token, page, len(tokens))
            )
            for page, token in enumerate(tokens, start=1)
            if token
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # One failed page fails the run; stop the others.
            for task in tasks:
                task.cancel()
            raise

    async def enrich(self, items: list[ListingItem]) -> list[ListingItem]:
        """Merge detail page data into each item.

        Each unique listing id is fetched once, even when it shows up on
        several pages.

        Args:
            items: Rows from the listing pages

        Returns:
            New list of items, in the same order, with ``detail`` set; failed
            fetches get an empty ListingDetail
        """
        semaphore = asyncio.Semaphore(self.details_concurrency)
        cache: dict[str, asyncio.Task[ListingDetail]] = {}

        def get_detail(listing_id: str) -> "asyncio.Task[ListingDetail]":
            task = cache.get(listing_id)
            if task is None:
                task = asyncio.create_task(self._fetch_detail(semaphore, listing_id))
                cache[listing_id] = task
            return task

        details = await asyncio.gather(*(get_detail(item.listing_id) for item in items))
        return [
            item.model_copy(update={"detail": detail})
            for item, detail in zip(items, details)
        ]

    async def collect(
        self,
        filters: SearchFilters,
        max_pages: Optional[int] = None,
        with_details: bool = False,
    ) -> list[ListingItem]:
        """Run the search and collect every row it points to.

        Args:
            filters: Search filters
            max_pages: Only fetch the first N listing pages
            with_details: Also fetch each property's detail page

        Returns:
            ListingItem rows sorted by (page, listing_id)

        Raises:
            DataSourceError: If the search or any listing page fails
        """
        self.pages_fetched = 0
        self.details_failed = 0

        logger.info(
            f"[search] uf={filters.state} cidade={filters.city_id} "
            f"bairro={filters.neighborhoods or '-'} tp_venda={filters.sale_type} "
            f"tp_imovel={filters.property_type}"
        )
        search = await self.client.run_search(filters)

        tokens = search.page_tokens
        if max_pages is not None:
            tokens = tokens[:max_pages]
        logger.info(
            f"[search] qtdRegistros={search.total_records} qtdPag={search.total_pages} "
            f"pagesFound={len(search.page_tokens)} scrapingPages={len(tokens)}"
        )

        pages = await self._gather_pages(filters, tokens)
        self.pages_fetched = len(pages)

        items = [item for page_items in pages for item in page_items]
        items.sort(key=lambda item: (item.page, item.listing_id))

        if with_details:
            logger.info(
                f"[details] fetching details for {len(items)} rows (unique cache enabled)..."
            )
            items = await self.enrich(items)
            if self.details_failed:
                logger.warning(f"[details] {self.details_failed} detail pages failed")

        return items


async def run_scrape(
    options: ScrapeOptions,
    settings: Optional[Settings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    **client_kwargs: Any,
) -> ScrapeResult:
    """Scrape one search end to end and write the rows to CSV.

    Args:
        options: Validated run parameters
        settings: Site settings (defaults to the global config)
        transport: Optional httpx transport (used by tests)
        **client_kwargs: Extra CaixaClient arguments

    Returns:
        ScrapeResult with the output path and row count
    """
    settings = settings or config
    client = CaixaClient.from_settings(
        settings,
        timeout=options.timeout,
        retries=options.retries,
        min_delay=options.min_delay,
        transport=transport,
        **client_kwargs,
    )

    async with client:
        collector = ListingCollector(
            client,
            concurrency=options.concurrency,
            details_concurrency=options.details_concurrency,
        )
        items = await collector.collect(
            options.filters,
            max_pages=options.max_pages,
            with_details=options.with_details,
        )

    out_path = write_listings_csv(options.out, items, include_details=options.with_details)
    logger.info(f"[done] wrote={out_path} rows={len(items)}")

    return ScrapeResult(
        out_path=out_path,
        rows=len(items),
        pages=collector.pages_fetched,
        details_failed=collector.details_failed,
    )
