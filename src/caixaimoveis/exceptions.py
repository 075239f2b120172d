"""Exceptions raised while talking to the auction site.

Every error carries the name of the source that raised it so that callers
juggling several sites (or logs aggregated across runs) can tell them apart.
"""

from typing import Optional

CAIXA_SOURCE = "caixa"


class DataSourceError(Exception):
    """Base exception for data source errors.

    Attributes:
        source: Name of the data source that raised the error
        message: Error description
    """

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"[{source}] {message}")


class UnexpectedStatusError(DataSourceError):
    """Raised when an endpoint answers with a non-200 status after retries."""

    def __init__(self, source: str, what: str, status_code: int):
        self.what = what
        self.status_code = status_code
        super().__init__(source, f"{what} failed: HTTP {status_code}")


class RateLimitError(UnexpectedStatusError):
    """Raised when the site still answers 429 once retries are exhausted."""

    def __init__(self, source: str, what: str, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(source, what, 429)
        if retry_after:
            self.message += f" (retry after {retry_after}s)"
            self.args = (f"[{source}] {self.message}",)


class ParseError(DataSourceError):
    """Raised when a response does not have the expected structure."""
