"""Pytest fixtures and test utilities."""

from typing import Callable, Optional
from urllib.parse import parse_qs

import httpx
import pytest

from caixaimoveis.collectors.caixa import CaixaClient
from caixaimoveis.models.listing import ListingDetail, ListingItem, SearchFilters

SEARCH_HTML = """
<input type="hidden" id="hdnQtdPag" value="3">
<input type="hidden" id="hdnQtdRegistros" value="52">
<input type="hidden" id="hdnFiltro" value=" RJ|7084 ">
<input type="hidden" id="hdnImov1" value="1000001234567||1000009876543">
<input type="hidden" id="hdnImov2" value="1000005555555">
<input type="hidden" id="hdnImov3" value="">
"""

LIST_PAGE_HTML = """
<ul class="no-bullets">
<li class="group-block-item">
  <div class="fotoimovel-col1">
    <img src="/fotos/F100000123456721.jpg?v=1" onclick="javascript:detalhe_imovel(1000001234567);">
  </div>
  <div class="dadosimovel-col2">
    <span><a onclick="javascript:detalhe_imovel(1000001234567);">  COPACABANA
      |  RIO DE JANEIRO </a></span>
    <font style="font-size:0.9em">Valor de avaliação: R$ 250.000,00<br>
    Valor mínimo de venda: R$ 150.000,00 ( desconto de 40,00%)</font>
    <br>
    <font style="font-size:0.75em;">Apartamento - 65,50 m2, 2 quarto(s), 1 vaga na garagem - Venda Direta Online<br>
    Número do imóvel: 1000001234567<br>
    RUA BARATA RIBEIRO, N. 100, APTO 301 - COPACABANA<br>
    Despesas do imóvel: condomínio sob responsabilidade do comprador.<br>
    </font>
  </div>
</li>
<li class="group-block-item">
  <a onclick="detalhe_imovel(1000009876543)">LOTE NO CENTRO</a>
  <div id="divContador1000009876543"><b>Leilão SFI - Edital Único</b></div>
  <font style="font-size: 0.75em">Terreno</font>
  <p>Valor de avaliação: R$ 1.200.000,00</p>
</li>
<li class="group-block-item">
  <a href="#">Anúncio sem imóvel</a>
</li>
</ul>
"""

DETAIL_HTML = """
<html><body>
<div id="galeria-imagens">
  <img src="/fotos/F100000123456721.jpg" onclick='preview.src="/fotos/F100000123456722.jpg?v=2"'>
  <img src="/fotos/F100000123456721.jpg">
  <img src="/imagens/logo.png">
</div>
<div class="content">
  <span>Tipo de imóvel: <strong>Apartamento</strong></span>
  <span>Quartos: <strong>2</strong></span>
  <span>Garagem: <strong>1</strong></span>
  <span>Número do imóvel: <strong>1000001234567</strong></span>
  <span>Matrícula(s): <strong>12345, 67890</strong></span>
  <span>Comarca: <strong>RIO DE JANEIRO-RJ</strong></span>
  <span>Ofício: <strong>05</strong></span>
  <span>Inscrição imobiliária: <strong>1234567-8</strong></span>
  <span>Averbação dos leilões negativos: <strong>Averbado</strong></span>
  <span>Área total = <strong>80,25m2</strong></span>
  <span>Área privativa = <strong>65,50m2</strong></span>
</div>
<div class="related-box">
  <p><strong>Endereço:</strong><br>
  RUA BARATA RIBEIRO, N. 100, APTO 301, COPACABANA - CEP: 22040-002, RIO DE JANEIRO - RIO DE JANEIRO</p>
  <p><strong>Descrição:</strong><br>
  Apartamento, 2 quartos, 1 vaga.</p>
  <p><strong>FORMAS DE PAGAMENTO ACEITAS:</strong></p>
  <p>Recursos próprios.</p>
  <p>Permite utilização de FGTS.</p>
  <p>Permite financiamento - somente SBPE.</p>
  <p><strong>REGRAS PARA PAGAMENTO DAS DESPESAS</strong></p>
  <p>Condomínio: sob responsabilidade do comprador.</p>
  <a onclick="javascript:ExibeDoc('/editais/matricula/RJ/1000001234567.pdf')">Baixar matrícula do imóvel</a>
</div>
</body></html>
"""


def make_card(listing_id: str, title: str = "IMOVEL") -> str:
    """Minimal result card carrying only an id and a title."""
    return (
        '<li class="group-block-item">'
        f'<a onclick="javascript:detalhe_imovel({listing_id});">{title}</a>'
        "</li>"
    )


def make_list_page(*listing_ids: str) -> str:
    return "<ul>" + "".join(make_card(i) for i in listing_ids) + "</ul>"


def make_search_html(*tokens: str) -> str:
    inputs = "".join(
        f'<input type="hidden" id="hdnImov{n}" value="{token}">'
        for n, token in enumerate(tokens, start=1)
    )
    return (
        f'<input type="hidden" id="hdnQtdPag" value="{len(tokens)}">'
        '<input type="hidden" id="hdnQtdRegistros" value="10">'
        + inputs
    )


def form_of(request: httpx.Request) -> dict[str, str]:
    """Decode a url-encoded request body into a flat dict."""
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {k: v[0] for k, v in parsed.items()}


class FakeSite:
    """In-memory stand-in for the auction site, served through MockTransport.

    Listing pages are keyed by their hdnImov token and detail pages by
    listing id. Every request is recorded for later assertions. Status
    overrides and transport errors can be set per page token or listing id.
    """

    def __init__(
        self,
        pages: dict[str, str],
        details: Optional[dict[str, str]] = None,
        search_html: Optional[str] = None,
    ):
        self.pages = pages
        self.details = details or {}
        self.search_html = search_html or make_search_html(*pages.keys())
        self.requests: list[httpx.Request] = []
        self.page_status: dict[str, int] = {}
        self.detail_status: dict[str, int] = {}
        self.detail_errors: dict[str, Exception] = {}

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path == "/sistema/busca-imovel.asp":
            return httpx.Response(
                200, text="<html></html>", headers={"Set-Cookie": "ASPSESSIONIDTEST=abc; path=/"}
            )
        if path == "/sistema/carregaPesquisaImoveis.asp":
            return httpx.Response(200, text=self.search_html)
        if path == "/sistema/carregaListaImoveis.asp":
            token = form_of(request)["hdnImov"]
            status = self.page_status.get(token, 200)
            return httpx.Response(status, text=self.pages.get(token, ""))
        if path == "/sistema/detalhe-imovel.asp":
            listing_id = form_of(request)["hdnimovel"]
            if listing_id in self.detail_errors:
                raise self.detail_errors[listing_id]
            status = self.detail_status.get(listing_id, 200)
            return httpx.Response(status, text=self.details.get(listing_id, "<html></html>"))
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def requests_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]


@pytest.fixture
def make_client() -> Callable[..., CaixaClient]:
    """Factory for clients with no delays, backed by a mock handler."""

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> CaixaClient:
        kwargs.setdefault("min_delay", 0)
        kwargs.setdefault("backoff_base", 0)
        kwargs.setdefault("retries", 2)
        return CaixaClient(transport=httpx.MockTransport(handler), **kwargs)

    return _make


@pytest.fixture
def filters() -> SearchFilters:
    """Search filters for Rio de Janeiro."""
    return SearchFilters(state="RJ", city_id="7084")


@pytest.fixture
def sample_item() -> ListingItem:
    """Listing row as produced by the listing page parser."""
    return ListingItem(
        listing_id="1000001234567",
        state="RJ",
        city_id="7084",
        title="COPACABANA | RIO DE JANEIRO",
        page=1,
        sale_mode="Venda Direta Online",
        property_type="Apartamento",
        usable_area_m2=65.5,
        bedrooms=2,
        parking_spaces=1,
        appraisal_value=250000.0,
        minimum_price=150000.0,
        discount_percent=40.0,
        address_raw="RUA BARATA RIBEIRO, N. 100, APTO 301 - COPACABANA",
    )


@pytest.fixture
def sample_detail() -> ListingDetail:
    """Detail data for sample_item."""
    return ListingDetail(
        registry_pdf_url="https://venda-imoveis.caixa.gov.br/editais/matricula/RJ/1000001234567.pdf",
        gallery_photo_urls=[
            "https://venda-imoveis.caixa.gov.br/fotos/a.jpg",
            "https://venda-imoveis.caixa.gov.br/fotos/b.jpg",
        ],
        gallery_photo_filenames=["a.jpg", "b.jpg"],
        registry_numbers=["12345", "67890"],
        total_area_m2=80.25,
        accepts_fgts=True,
    )
