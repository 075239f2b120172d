"""Venda Imóveis Caixa HTTP client.

This module replays the internal AJAX endpoints of venda-imoveis.caixa.gov.br,
the site where Caixa Econômica Federal sells repossessed properties. It uses
httpx for async HTTP requests; parsing of the returned fragments lives in
``caixaimoveis.parsers``.

The site is classic ASP: the search only works inside a session, so the client
first loads the search form to obtain the session cookie and then keeps that
cookie for every following request.

Request sequence:
    1. GET  /sistema/busca-imovel.asp?sltTipoBusca=imoveis  (session cookie)
    2. POST /sistema/carregaPesquisaImoveis.asp             (page tokens)
    3. POST /sistema/carregaListaImoveis.asp                (one per page)
    4. POST /sistema/detalhe-imovel.asp                     (one per property)
"""

import asyncio
import logging
import random
import time
from typing import Any, Optional

import httpx

from ..config import DEFAULT_ACCEPT_LANGUAGE, DEFAULT_USER_AGENT, Settings
from ..exceptions import CAIXA_SOURCE, DataSourceError, RateLimitError, UnexpectedStatusError
from ..models.listing import SearchFilters, SearchResult
from ..parsers.search import parse_search_response

logger = logging.getLogger(__name__)


class RateLimiter:
    """Spaces request starts at least ``min_interval`` seconds apart.

    One limiter is shared by every task using a client. Each caller reserves
    the next free slot under the lock and sleeps outside it, so concurrent
    callers queue up in arrival order without holding the lock while waiting.
    """

    def __init__(self, min_interval: float):
        self.min_interval = min_interval
        self._next_allowed_at = 0.0
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        """Wait for this caller's slot."""
        async with self._lock:
            now = time.monotonic()
            delay = max(0.0, self._next_allowed_at - now)
            self._next_allowed_at = max(self._next_allowed_at, now) + self.min_interval

        if delay > 0:
            await asyncio.sleep(delay)


class CaixaClient:
    """Async client for the Venda Imóveis Caixa AJAX endpoints.

    Requests are rate limited, retried on 429/5xx and network errors with
    exponential backoff, and share one cookie jar.

    Example:
        async with CaixaClient() as client:
            search = await client.run_search(SearchFilters(state="RJ", city_id="7084"))
            html = await client.fetch_list_page_html(search.page_tokens[0])
    """

    name = CAIXA_SOURCE

    BASE_URL = "https://venda-imoveis.caixa.gov.br"
    SEARCH_FORM_PATH = "/sistema/busca-imovel.asp?sltTipoBusca=imoveis"
    SEARCH_PATH = "/sistema/carregaPesquisaImoveis.asp"
    LIST_PAGE_PATH = "/sistema/carregaListaImoveis.asp"
    DETAIL_PATH = "/sistema/detalhe-imovel.asp"

    # Retry settings
    BACKOFF_BASE = 0.75  # seconds, doubled on every attempt
    BACKOFF_CAP = 30.0
    JITTER = 0.2  # +/- 20%

    FORM_CONTENT_TYPE = "application/x-www-form-urlencoded; charset=UTF-8"

    def __init__(
        self,
        base_url: Optional[str] = None,
        user_agent: Optional[str] = None,
        accept_language: Optional[str] = None,
        timeout: float = 20.0,
        retries: int = 4,
        min_delay: float = 0.5,
        backoff_base: float = BACKOFF_BASE,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Site root (default: the production site)
            user_agent: Custom User-Agent string (uses settings default if None)
            accept_language: Accept-Language header value
            timeout: Request timeout in seconds
            retries: Extra attempts for retryable failures (0 = single attempt)
            min_delay: Minimum seconds between request starts
            backoff_base: First backoff delay in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.user_agent = user_agent or DEFAULT_USER_AGENT
        self.accept_language = accept_language or DEFAULT_ACCEPT_LANGUAGE
        self.timeout = timeout
        self.retries = max(0, retries)
        self.backoff_base = backoff_base
        self._transport = transport
        self._limiter = RateLimiter(min_delay)
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "CaixaClient":
        """Build a client from application settings."""
        kwargs: dict[str, Any] = {
            "base_url": settings.base_url,
            "user_agent": settings.user_agent,
            "accept_language": settings.accept_language,
            "timeout": settings.timeout,
            "retries": settings.retries,
            "min_delay": settings.min_delay,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @property
    def referer(self) -> str:
        return f"{self.base_url}{self.SEARCH_FORM_PATH}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers={
                    "Accept": "*/*",
                    "Accept-Language": self.accept_language,
                    "Origin": self.base_url,
                    "Referer": self.referer,
                    "User-Agent": self.user_agent,
                },
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    @staticmethod
    def _is_retryable_status(status_code: int) -> bool:
        return status_code == 429 or 500 <= status_code <= 599

    def _backoff_delay(self, attempt: int) -> float:
        base = min(self.BACKOFF_CAP, self.backoff_base * (2**attempt))
        delta = base * self.JITTER
        return random.uniform(base - delta, base + delta)

    async def _make_request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a rate-limited HTTP request with retry logic.

        Retryable statuses (429, 5xx) and transport errors are retried up to
        ``retries`` times. When attempts run out, the last retryable response
        is returned so that callers can report its status.

        Args:
            method: HTTP method (GET or POST)
            path: Path relative to the base URL
            **kwargs: Additional arguments passed to httpx

        Returns:
            httpx.Response object

        Raises:
            DataSourceError: If no attempt produced a response
        """
        client = await self._get_client()
        attempts = self.retries + 1

        last_response: Optional[httpx.Response] = None
        last_error: Optional[Exception] = None

        for attempt in range(attempts):
            try:
                await self._limiter.wait()
                response = await client.request(method, path, **kwargs)
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    f"{method} {path} failed: {e!r} (attempt {attempt + 1}/{attempts})"
                )
            else:
                if not self._is_retryable_status(response.status_code):
                    return response
                last_response = response
                logger.warning(
                    f"{method} {path} returned HTTP {response.status_code} "
                    f"(attempt {attempt + 1}/{attempts})"
                )

            if attempt < attempts - 1:
                await asyncio.sleep(self._backoff_delay(attempt))

        if last_response is not None:
            return last_response
        raise DataSourceError(self.name, f"HTTP request failed (no response): {last_error!r}")

    async def get(self, path: str) -> httpx.Response:
        """GET a path on the site."""
        return await self._make_request("GET", path)

    async def post_form(
        self,
        path: str,
        form: dict[str, str],
        xhr: bool = True,
        headers: Optional[dict[str, str]] = None,
    ) -> httpx.Response:
        """POST a url-encoded form.

        Args:
            path: Path relative to the base URL
            form: Form fields
            xhr: Send the request as an AJAX call (X-Requested-With)
            headers: Extra headers, overriding the defaults
        """
        request_headers = {"Content-Type": self.FORM_CONTENT_TYPE}
        if xhr:
            request_headers["X-Requested-With"] = "XMLHttpRequest"
        if headers:
            request_headers.update(headers)
        return await self._make_request("POST", path, data=form, headers=request_headers)

    def _check_status(self, response: httpx.Response, what: str) -> None:
        if response.status_code == 200:
            return
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After", "")
            raise RateLimitError(
                self.name, what, int(retry_after) if retry_after.isdigit() else None
            )
        raise UnexpectedStatusError(self.name, what, response.status_code)

    async def run_search(self, filters: SearchFilters) -> SearchResult:
        """Run a listing search and return its pagination tokens.

        Args:
            filters: Search filters

        Returns:
            SearchResult with one token per result page

        Raises:
            UnexpectedStatusError: If the search POST is not answered with 200
            ParseError: If the response has no page tokens
        """
        # Classic ASP: the search POST needs the session cookie from the form page.
        await self.get(self.SEARCH_FORM_PATH)

        response = await self.post_form(self.SEARCH_PATH, filters.to_form())
        self._check_status(response, "Search")
        return parse_search_response(response.text)

    async def fetch_list_page_html(self, page_token: str) -> str:
        """Fetch the HTML fragment of one listing page.

        Args:
            page_token: hdnImov token from the search result

        Raises:
            UnexpectedStatusError: On a non-200 answer
        """
        response = await self.post_form(self.LIST_PAGE_PATH, {"hdnImov": page_token})
        self._check_status(response, "List page")
        return response.text

    async def fetch_detail_page_html(self, listing_id: str) -> str:
        """Fetch a property's detail page.

        The detail page is a regular navigation, not an AJAX call.

        Args:
            listing_id: Site property id

        Raises:
            UnexpectedStatusError: On a non-200 answer
        """
        response = await self.post_form(
            self.DETAIL_PATH,
            {"hdnimovel": listing_id},
            xhr=False,
            headers={
                "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
                "Content-Type": "application/x-www-form-urlencoded",
            },
        )
        self._check_status(response, f"Detail page (listing_id={listing_id})")
        return response.text

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "CaixaClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()
