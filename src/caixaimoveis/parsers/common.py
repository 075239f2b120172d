"""Text and number helpers shared by the HTML parsers."""

import math
import re
from typing import Optional
from urllib.parse import urljoin, urlsplit

BASE_URL = "https://venda-imoveis.caixa.gov.br"

_WHITESPACE_RE = re.compile(r"\s+")
_BRL_PREFIX_RE = re.compile(r"R\$\s*", re.IGNORECASE)
_ABSOLUTE_RE = re.compile(r"^https?://", re.IGNORECASE)


def parse_brazilian_number(raw: Optional[str]) -> Optional[float]:
    """Parse a number written in Brazilian format ("1.234,56" -> 1234.56)."""
    if raw is None:
        return None
    trimmed = raw.strip()
    if not trimmed:
        return None
    normalized = trimmed.replace(".", "").replace(",", ".", 1)
    try:
        value = float(normalized)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_brl(raw: Optional[str]) -> Optional[float]:
    """Parse a BRL amount such as "R$ 117.000,00"."""
    if raw is None:
        return None
    return parse_brazilian_number(_BRL_PREFIX_RE.sub("", raw, count=1))


def clean_text(raw: Optional[str]) -> Optional[str]:
    """Collapse whitespace runs and trim; empty strings become None."""
    text = _WHITESPACE_RE.sub(" ", raw or "").strip()
    return text or None


def to_absolute(base: str, url: str) -> str:
    """Resolve a site-relative URL against the base URL."""
    if _ABSOLUTE_RE.match(url):
        return url
    return urljoin(base + "/", url)


def url_filename(url: str) -> str:
    """Last path segment of a URL, without query string."""
    segments = [s for s in urlsplit(url).path.split("/") if s]
    return segments[-1] if segments else ""


def first_match(text: str, pattern: "re.Pattern[str]") -> Optional[str]:
    """First capture group of pattern in text, trimmed; None when empty."""
    match = pattern.search(text)
    if not match or match.group(1) is None:
        return None
    return match.group(1).strip() or None
