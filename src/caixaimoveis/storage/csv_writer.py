"""CSV persistence for scraped listing rows."""

import csv
import logging
from pathlib import Path
from typing import Any, Iterable, Union

from ..models.listing import ListingItem

logger = logging.getLogger(__name__)

LISTING_COLUMNS = [
    "listing_id",
    "state",
    "city_id",
    "title",
    "sale_mode",
    "property_type",
    "usable_area_m2",
    "bedrooms",
    "parking_spaces",
    "appraisal_value",
    "minimum_price",
    "discount_percent",
    "address_raw",
    "notes_raw",
    "page",
    "photo_url",
    "photo_filename",
]

# ListingDetail fields, written as detail_<field>.
DETAIL_FIELDS = [
    "registry_pdf_url",
    "gallery_photo_filenames",
    "gallery_photo_urls",
    "property_type",
    "bedrooms",
    "parking_spaces",
    "property_number",
    "registry_numbers",
    "district_court",
    "registry_office",
    "municipal_registration",
    "failed_auctions_annotation",
    "total_area_m2",
    "private_area_m2",
    "address",
    "description",
    "payment_methods_raw",
    "accepts_own_funds",
    "accepts_fgts",
    "accepts_financing",
]
DETAIL_COLUMNS = [f"detail_{field}" for field in DETAIL_FIELDS]

LIST_SEPARATOR = "|"


def format_cell(value: Any) -> str:
    """Render a model value as a CSV cell.

    None becomes an empty cell, booleans are lowercase, integral floats drop
    their decimal part and lists are joined with ``|``.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else repr(value)
    if isinstance(value, (list, tuple)):
        return LIST_SEPARATOR.join(str(v) for v in value)
    return str(value)


def listing_to_row(item: ListingItem, include_details: bool = False) -> dict[str, str]:
    """Flatten a listing (and optionally its detail) into a CSV row."""
    row = {column: format_cell(getattr(item, column)) for column in LISTING_COLUMNS}
    if include_details:
        detail = item.detail
        for field, column in zip(DETAIL_FIELDS, DETAIL_COLUMNS):
            row[column] = format_cell(getattr(detail, field)) if detail else ""
    return row


def write_listings_csv(
    path: Union[str, Path],
    items: Iterable[ListingItem],
    include_details: bool = False,
) -> Path:
    """Write listing rows to a UTF-8 CSV file.

    The header row is always written, even when there are no rows. Cells are
    only quoted when they contain a comma, quote or line break.

    Args:
        path: Output file; parent directories are created
        items: Rows to write, in order
        include_details: Add the detail_* columns

    Returns:
        The path written to
    """
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    columns = LISTING_COLUMNS + (DETAIL_COLUMNS if include_details else [])

    count = 0
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(
            f, fieldnames=columns, quoting=csv.QUOTE_MINIMAL, lineterminator="\n"
        )
        writer.writeheader()
        for item in items:
            writer.writerow(listing_to_row(item, include_details))
            count += 1

    logger.debug(f"Wrote {count} rows to {out_path}")
    return out_path
