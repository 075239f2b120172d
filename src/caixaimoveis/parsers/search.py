"""Parser for the listing search response (carregaPesquisaImoveis.asp).

The search endpoint answers with a fragment of hidden inputs: the page and
record counts, an optional filter token, and one ``hdnImov{N}`` input per
result page holding the token that selects that page.
"""

import logging
import math
from typing import Optional

from bs4 import BeautifulSoup

from ..exceptions import CAIXA_SOURCE, ParseError
from ..models.listing import SearchResult

logger = logging.getLogger(__name__)

def _input_value(soup: BeautifulSoup, element_id: str) -> Optional[str]:
    elem = soup.find(id=element_id)
    if elem is None:
        return None
    value = elem.get("value")
    return value if isinstance(value, str) else None


def _parse_count(raw: Optional[str], field: str) -> int:
    """Integral count from a hidden input; a missing or empty value reads as 0."""
    value = (raw or "").strip()
    if not value:
        return 0
    try:
        number = float(value)
    except ValueError:
        number = math.nan
    if not math.isfinite(number) or not number.is_integer():
        raise ParseError(CAIXA_SOURCE, f'{field}: expected integer, got "{raw or ""}"')
    return int(number)


def parse_search_response(html: str) -> SearchResult:
    """Extract pagination tokens and counts from a search response.

    Args:
        html: Body of the search POST

    Returns:
        SearchResult with one token per result page

    Raises:
        ParseError: If the counts are not integers or no page token is present
    """
    soup = BeautifulSoup(html, "html.parser")

    total_pages = _parse_count(_input_value(soup, "hdnQtdPag"), "hdnQtdPag")
    total_records = _parse_count(
        _input_value(soup, "hdnQtdRegistros"), "hdnQtdRegistros"
    )
    filter_token = (_input_value(soup, "hdnFiltro") or "").strip() or None

    page_tokens: list[str] = []
    index = 1
    while True:
        token = _input_value(soup, f"hdnImov{index}")
        if not token:
            break
        page_tokens.append(token)
        index += 1

    if not page_tokens:
        raise ParseError(CAIXA_SOURCE, "Search response did not include any hdnImov{N} inputs")

    # The reported page count sometimes disagrees with the tokens; the tokens win.
    if total_pages != len(page_tokens):
        logger.debug(
            f"hdnQtdPag={total_pages} but {len(page_tokens)} page tokens found"
        )

    return SearchResult(
        page_tokens=page_tokens,
        total_pages=total_pages if total_pages > 0 else len(page_tokens),
        total_records=total_records,
        filter_token=filter_token,
    )
