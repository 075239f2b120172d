"""Parser for listing pages (carregaListaImoveis.asp).

Each result card is an ``li.group-block-item``. The structured data lives in
three places on the card:

- the ``detalhe_imovel(<id>)`` onclick handler, which carries the property id;
- the card text, which has the appraisal value, minimum price and discount;
- a small ``<font style="...0.75em...">`` block whose lines hold the
  "type - area, bedrooms, parking - sale mode" summary, the property number,
  the address and the expense notes.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from ..models.listing import ListingItem
from .common import (
    BASE_URL,
    clean_text,
    first_match,
    parse_brazilian_number,
    parse_brl,
    to_absolute,
    url_filename,
)

logger = logging.getLogger(__name__)

_LISTING_ID_RE = re.compile(r"detalhe_imovel\((\d+)\)")
_APPRAISAL_RE = re.compile(r"Valor de avaliação:\s*R\$\s*([\d.,]+)", re.IGNORECASE)
_MINIMUM_PRICE_RE = re.compile(r"Valor mínimo de venda:\s*R\$\s*([\d.,]+)", re.IGNORECASE)
_DISCOUNT_RE = re.compile(r"desconto de\s*([\d.,]+)\s*%", re.IGNORECASE)

_TYPE_RE = re.compile(r"^(.+?)\s*-\s*")
_AREA_RE = re.compile(r"-\s*([\d.,]+)\s*m2", re.IGNORECASE)
_BEDROOMS_RE = re.compile(r",\s*(\d+)\s*quarto", re.IGNORECASE)
_PARKING_RE = re.compile(r",\s*(\d+)\s*vaga", re.IGNORECASE)

_PROPERTY_NUMBER_RE = re.compile(r"Número do imóvel:\s*", re.IGNORECASE)
_EXPENSES_RE = re.compile(r"Despesas do imóvel", re.IGNORECASE)


def _to_int(raw: Optional[str]) -> Optional[int]:
    return int(raw) if raw else None


def _description_lines(card: Tag) -> list[str]:
    """Lines of the 0.75em description block, trimmed, empties dropped."""
    font = next(
        (f for f in card.find_all("font") if "0.75em" in (f.get("style") or "")),
        None,
    )
    if font is None:
        return []

    for br in font.find_all("br"):
        br.replace_with("\n")

    text = font.get_text().replace("\r", "")
    return [line.strip() for line in text.split("\n") if line.strip()]


def _split_address_notes(lines: list[str]) -> tuple[Optional[str], Optional[str]]:
    """Address and expense notes follow the "Número do imóvel:" line."""
    parts = _PROPERTY_NUMBER_RE.split("\n".join(lines), maxsplit=2)
    after_number = parts[1] if len(parts) > 1 else ""
    if not after_number:
        return None, None

    # First line after the label is the number itself.
    tail = "\n".join(after_number.split("\n")[1:]).strip()
    if not tail:
        return None, None

    match = _EXPENSES_RE.search(tail)
    if not match:
        return tail, None
    address = tail[: match.start()].strip() or None
    notes = tail[match.start():].strip() or None
    return address, notes


def _card_photo(card: Tag) -> Optional[str]:
    for img in card.find_all("img"):
        src = (img.get("src") or "").strip()
        if "/fotos/" in src:
            return to_absolute(BASE_URL, src)
    return None


def _parse_card(card: Tag, state: str, city_id: str, page: int) -> Optional[ListingItem]:
    """Parse one result card; None when the card carries no property id."""
    trigger = card.select_one("[onclick*='detalhe_imovel']")
    onclick = trigger.get("onclick", "") if trigger else ""
    listing_id = first_match(onclick, _LISTING_ID_RE)
    if not listing_id:
        return None

    title_link = card.select_one("a[onclick*='detalhe_imovel']")
    title = clean_text(title_link.get_text()) if title_link else None

    counter_bold = card.select_one("div[id^='divContador'] b")
    counter_mode = clean_text(counter_bold.get_text()) if counter_bold else None

    card_text = clean_text(card.get_text()) or ""
    appraisal_value = parse_brl(first_match(card_text, _APPRAISAL_RE))
    minimum_price = parse_brl(first_match(card_text, _MINIMUM_PRICE_RE))
    discount_percent = parse_brazilian_number(first_match(card_text, _DISCOUNT_RE))

    lines = _description_lines(card)
    first_line = lines[0] if lines else ""

    property_type = first_match(first_line, _TYPE_RE)
    usable_area_m2 = parse_brazilian_number(first_match(first_line, _AREA_RE))
    bedrooms = _to_int(first_match(first_line, _BEDROOMS_RE))
    parking_spaces = _to_int(first_match(first_line, _PARKING_RE))

    # The last " - " segment of the summary is usually the sale mode.
    segments = [s.strip() for s in first_line.split(" - ") if s.strip()]
    line_mode = segments[-1] if len(segments) >= 2 else None

    address_raw, notes_raw = _split_address_notes(lines)

    photo_url = _card_photo(card)
    photo_filename = url_filename(photo_url) if photo_url else ""

    return ListingItem(
        listing_id=listing_id,
        state=state,
        city_id=city_id,
        title=title or "",
        page=page,
        photo_url=photo_url,
        photo_filename=photo_filename or None,
        sale_mode=line_mode or counter_mode,
        property_type=property_type,
        usable_area_m2=usable_area_m2,
        bedrooms=bedrooms,
        parking_spaces=parking_spaces,
        appraisal_value=appraisal_value,
        minimum_price=minimum_price,
        discount_percent=discount_percent,
        address_raw=address_raw,
        notes_raw=notes_raw,
    )


def parse_list_page_html(html: str, state: str, city_id: str, page: int) -> list[ListingItem]:
    """Parse every result card on a listing page.

    Args:
        html: Body of the listing page POST
        state: UF the search was run for
        city_id: City id the search was run for
        page: 1-based page number the html belongs to

    Returns:
        ListingItem objects in card order; cards without an id are skipped
    """
    soup = BeautifulSoup(html, "html.parser")

    items: list[ListingItem] = []
    for card in soup.select("li.group-block-item"):
        item = _parse_card(card, state, city_id, page)
        if item is None:
            logger.debug(f"Skipping card without detalhe_imovel id on page {page}")
            continue
        items.append(item)

    return items
