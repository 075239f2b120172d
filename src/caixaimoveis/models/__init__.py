"""Data models for caixaimoveis."""

from caixaimoveis.models.listing import (
    ANY,
    ListingDetail,
    ListingItem,
    ScrapeOptions,
    ScrapeResult,
    SearchFilters,
    SearchResult,
)

__all__ = [
    "ANY",
    "SearchFilters",
    "SearchResult",
    "ListingItem",
    "ListingDetail",
    "ScrapeOptions",
    "ScrapeResult",
]
