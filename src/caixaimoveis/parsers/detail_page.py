"""Parser for listing detail pages (detalhe-imovel.asp).

Detail pages are regular server-rendered pages, not AJAX fragments. The
fields we care about are laid out as ``<span>Label: <strong>value</strong>``
pairs, plus a ``.related-box`` with the address, description and payment
rules, a ``#galeria-imagens`` photo strip, and a link that opens the property
registry (matrícula) PDF through ``ExibeDoc('...')``.
"""

import logging
import re
from typing import Optional

from bs4 import BeautifulSoup, Tag

from ..models.listing import ListingDetail
from .common import BASE_URL, clean_text, parse_brazilian_number, to_absolute, url_filename

logger = logging.getLogger(__name__)

_EXIBE_DOC_RES = (
    re.compile(r"ExibeDoc\('([^']+)'\)", re.IGNORECASE),
    re.compile(r'ExibeDoc\("([^"]+)"\)', re.IGNORECASE),
)
_PREVIEW_SRC_RES = (
    re.compile(r'preview\.src\s*=\s*"([^"]+)"'),
    re.compile(r"preview\.src\s*=\s*'([^']+)'"),
)
_NUMBER_RE = re.compile(r"([\d.,]+)")
_DIGITS_RE = re.compile(r"^\d+$")
_REGISTRY_SPLIT_RE = re.compile(r"[,\s]+")

_PAYMENT_START_RE = re.compile(r"FORMAS DE PAGAMENTO ACEITAS:", re.IGNORECASE)
_PAYMENT_END_RE = re.compile(r"REGRAS PARA PAGAMENTO", re.IGNORECASE)
_OWN_FUNDS_RE = re.compile(r"recursos próprios", re.IGNORECASE)
_FGTS_RE = re.compile(r"permite\s+utiliza(?:ç|c)[aã]o\s+de\s+fgts", re.IGNORECASE)
_FINANCING_RE = re.compile(r"financiamento", re.IGNORECASE)


def _spans_containing(soup: BeautifulSoup, label: str) -> list[Tag]:
    return [span for span in soup.find_all("span") if label in span.get_text()]


def _labelled_value(soup: BeautifulSoup, label: str) -> Optional[str]:
    """Text of the <strong> inside the first span mentioning label."""
    spans = _spans_containing(soup, label)
    if not spans:
        return None
    strong = spans[0].find("strong")
    return clean_text(strong.get_text()) if strong else None


def _labelled_count(soup: BeautifulSoup, label: str) -> Optional[int]:
    raw = _labelled_value(soup, label)
    return int(raw) if raw and _DIGITS_RE.match(raw) else None


def _labelled_area(soup: BeautifulSoup, label: str) -> Optional[float]:
    """First number found in any <strong> under a span mentioning label."""
    for span in _spans_containing(soup, label):
        strong = span.find("strong")
        if strong is None:
            continue
        raw = clean_text(strong.get_text())
        match = _NUMBER_RE.search(raw or "")
        return parse_brazilian_number(match.group(1)) if match else None
    return None


def _registry_pdf_url(soup: BeautifulSoup) -> Optional[str]:
    link = soup.select_one("a[onclick*='ExibeDoc']")
    if link is None:
        link = next(
            (a for a in soup.find_all("a") if "Baixar matrícula" in a.get_text()),
            None,
        )
    onclick = (link.get("onclick") or "") if link else ""

    for pattern in _EXIBE_DOC_RES:
        match = pattern.search(onclick)
        if match:
            return to_absolute(BASE_URL, match.group(1))

    pdf_link = soup.select_one("a[href$='.pdf']")
    href = pdf_link.get("href") if pdf_link else None
    return to_absolute(BASE_URL, href) if href else None


def _gallery_urls(soup: BeautifulSoup) -> list[str]:
    """Gallery photo URLs, de-duplicated in first-seen order."""
    sources: list[str] = []
    for img in soup.select("#galeria-imagens img"):
        src = img.get("src") or ""
        if "/fotos/" in src:
            sources.append(src)

        onclick = img.get("onclick") or ""
        for pattern in _PREVIEW_SRC_RES:
            match = pattern.search(onclick)
            if match:
                if "/fotos/" in match.group(1):
                    sources.append(match.group(1))
                break

    seen: set[str] = set()
    urls: list[str] = []
    for src in sources:
        src = src.strip()
        if not src or src in seen:
            continue
        seen.add(src)
        urls.append(to_absolute(BASE_URL, src))
    return urls


def _related_box_paragraph(soup: BeautifulSoup, label: str) -> Optional[str]:
    for p in soup.select(".related-box p"):
        if label in p.get_text():
            text = clean_text(p.get_text())
            if not text:
                return None
            return clean_text(re.sub(rf"^{re.escape(label)}\s*", "", text, flags=re.IGNORECASE))
    return None


def _payment_section(soup: BeautifulSoup) -> Optional[str]:
    box = soup.select_one(".related-box")
    box_text = clean_text(box.get_text()) if box else None
    if not box_text:
        return None

    start = _PAYMENT_START_RE.search(box_text)
    if not start:
        return None
    tail = box_text[start.start():]
    end = _PAYMENT_END_RE.search(tail)
    section = tail[: end.start()] if end else tail
    return clean_text(section)


def _mentions(section: Optional[str], pattern: "re.Pattern[str]") -> Optional[bool]:
    """True when the section mentions the payment method, otherwise None."""
    if section and pattern.search(section):
        return True
    return None


def parse_detail_page_html(html: str) -> ListingDetail:
    """Extract the extended fields of a detail page.

    Missing labels leave the corresponding field empty; this function never
    raises on an unexpected layout.

    Args:
        html: Body of the detail page POST

    Returns:
        ListingDetail with whatever fields could be found
    """
    soup = BeautifulSoup(html, "html.parser")

    gallery_photo_urls = _gallery_urls(soup)
    gallery_photo_filenames = [
        name for name in (url_filename(u) for u in gallery_photo_urls) if name
    ]

    registry_raw = _labelled_value(soup, "Matrícula")
    registry_numbers = (
        [p for p in _REGISTRY_SPLIT_RE.split(registry_raw) if p] if registry_raw else []
    )

    payment_methods_raw = _payment_section(soup)

    return ListingDetail(
        registry_pdf_url=_registry_pdf_url(soup),
        gallery_photo_urls=gallery_photo_urls,
        gallery_photo_filenames=gallery_photo_filenames,
        property_type=_labelled_value(soup, "Tipo de imóvel"),
        bedrooms=_labelled_count(soup, "Quartos"),
        parking_spaces=_labelled_count(soup, "Garagem"),
        property_number=_labelled_value(soup, "Número do imóvel"),
        registry_numbers=registry_numbers,
        district_court=_labelled_value(soup, "Comarca"),
        registry_office=_labelled_value(soup, "Ofício"),
        municipal_registration=_labelled_value(soup, "Inscrição imobiliária"),
        failed_auctions_annotation=_labelled_value(soup, "Averbação dos leilões negativos"),
        total_area_m2=_labelled_area(soup, "Área total"),
        private_area_m2=_labelled_area(soup, "Área privativa"),
        address=_related_box_paragraph(soup, "Endereço:"),
        description=_related_box_paragraph(soup, "Descrição:"),
        payment_methods_raw=payment_methods_raw,
        accepts_own_funds=_mentions(payment_methods_raw, _OWN_FUNDS_RE),
        accepts_fgts=_mentions(payment_methods_raw, _FGTS_RE),
        accepts_financing=_mentions(payment_methods_raw, _FINANCING_RE),
    )
