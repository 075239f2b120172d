"""HTML parsers for the three Venda Imóveis Caixa response kinds.

- parse_search_response: hidden inputs with pagination tokens and counts
- parse_list_page_html: result cards of one listing page
- parse_detail_page_html: extended fields of one property
"""

from .common import clean_text, parse_brazilian_number, parse_brl
from .detail_page import parse_detail_page_html
from .listing_page import parse_list_page_html
from .search import parse_search_response

__all__ = [
    "parse_search_response",
    "parse_list_page_html",
    "parse_detail_page_html",
    "parse_brazilian_number",
    "parse_brl",
    "clean_text",
]
