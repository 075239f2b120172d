"""Storage modules for scraped listing data.

Rows are persisted as CSV, one file per scrape run.
"""

from .csv_writer import DETAIL_COLUMNS, LISTING_COLUMNS, write_listings_csv

__all__ = ["write_listings_csv", "LISTING_COLUMNS", "DETAIL_COLUMNS"]
