"""Listing, search and scrape-run data models."""

from pathlib import Path

from pydantic import BaseModel, Field

# The site's sentinel for "any value" in a search filter.
ANY = "Selecione"


class SearchFilters(BaseModel):
    """Filters accepted by the listing search endpoint.

    Values are passed through to the site untouched, so every field is the
    raw string the search form would submit (site-specific ids or codes).
    """

    state: str = Field(..., min_length=2, description="UF, e.g. RJ")
    city_id: str = Field(..., min_length=1, description="Site city id, e.g. 7084")
    neighborhoods: str = Field(
        default="", description="Comma-separated neighborhood ids, empty for all"
    )
    sale_type: str = Field(default=ANY, description="Sale modality code")
    property_type: str = Field(default=ANY, description="Property type code")
    usable_area: str = Field(default=ANY, description="Usable area band code")
    price_range: str = Field(default=ANY, description="Price band code")
    bedrooms: str = Field(default=ANY, description="Bedroom count code")
    parking_spaces: str = Field(default=ANY, description="Parking space code")

    model_config = {
        "str_strip_whitespace": True,
    }

    def to_form(self) -> dict[str, str]:
        """Build the form payload expected by carregaPesquisaImoveis.asp."""
        return {
            "hdn_estado": self.state,
            "hdn_cidade": self.city_id,
            "hdn_bairro": self.neighborhoods,
            "hdn_tp_venda": self.sale_type,
            "hdn_tp_imovel": self.property_type,
            "hdn_area_util": self.usable_area,
            "hdn_faixa_vlr": self.price_range,
            "hdn_quartos": self.bedrooms,
            "hdn_vg_garagem": self.parking_spaces,
            "strValorSimulador": "",
            "strAceitaFGTS": "",
            "strAceitaFinanciamento": "",
        }


class SearchResult(BaseModel):
    """Pagination tokens returned by a listing search."""

    page_tokens: list[str] = Field(..., description="hdnImov tokens, index 0 is page 1")
    total_pages: int = Field(..., ge=0, description="Page count reported by the site")
    total_records: int = Field(..., description="Record count reported by the site")
    filter_token: str | None = Field(default=None, description="hdnFiltro value")


class ListingDetail(BaseModel):
    """Extended fields scraped from a listing's detail page.

    Every field is optional: detail pages vary a lot between property types
    and a missing label simply leaves the field empty.
    """

    registry_pdf_url: str | None = Field(default=None, description="Matrícula PDF link")
    gallery_photo_urls: list[str] = Field(default_factory=list)
    gallery_photo_filenames: list[str] = Field(default_factory=list)

    property_type: str | None = None
    bedrooms: int | None = Field(default=None, ge=0)
    parking_spaces: int | None = Field(default=None, ge=0)
    property_number: str | None = None
    registry_numbers: list[str] = Field(default_factory=list)
    district_court: str | None = Field(default=None, description="Comarca")
    registry_office: str | None = Field(default=None, description="Ofício")
    municipal_registration: str | None = Field(
        default=None, description="Inscrição imobiliária"
    )
    failed_auctions_annotation: str | None = Field(
        default=None, description="Averbação dos leilões negativos"
    )
    total_area_m2: float | None = Field(default=None, ge=0)
    private_area_m2: float | None = Field(default=None, ge=0)

    address: str | None = None
    description: str | None = None
    payment_methods_raw: str | None = None

    # True when the payment section mentions the method, None otherwise.
    accepts_own_funds: bool | None = None
    accepts_fgts: bool | None = None
    accepts_financing: bool | None = None


class ListingItem(BaseModel):
    """A single result card from a listing page.

    Represents one property offered by the auction site, optionally merged
    with the data from its detail page.
    """

    # Identification
    listing_id: str = Field(..., description="Site property id (hdnimovel)")
    state: str = Field(..., description="UF used in the search")
    city_id: str = Field(..., description="City id used in the search")
    title: str = Field(default="", description="Card title")
    page: int = Field(..., ge=1, description="Listing page the card came from")

    # Card thumbnail
    photo_url: str | None = None
    photo_filename: str | None = None

    # Description line
    sale_mode: str | None = Field(default=None, description="e.g. Venda Direta Online")
    property_type: str | None = None
    usable_area_m2: float | None = Field(default=None, ge=0)
    bedrooms: int | None = Field(default=None, ge=0)
    parking_spaces: int | None = Field(default=None, ge=0)

    # Pricing in BRL
    appraisal_value: float | None = Field(default=None, ge=0)
    minimum_price: float | None = Field(default=None, ge=0)
    discount_percent: float | None = None

    address_raw: str | None = None
    notes_raw: str | None = None

    detail: ListingDetail | None = None


class ScrapeResult(BaseModel):
    """Summary of a finished scrape run."""

    out_path: Path
    rows: int = Field(..., ge=0)
    pages: int = Field(default=0, ge=0, description="Listing pages fetched")
    details_failed: int = Field(default=0, ge=0, description="Detail fetches that failed")


class ScrapeOptions(BaseModel):
    """Validated parameters for one scrape run."""

    filters: SearchFilters
    out: Path = Field(default=Path("output/output.csv"), description="CSV output path")
    max_pages: int | None = Field(default=None, ge=1, description="Cap on listing pages")
    with_details: bool = Field(default=False, description="Fetch each detail page")

    concurrency: int = Field(default=3, ge=1, le=10)
    details_concurrency: int = Field(default=2, ge=1, le=10)
    min_delay: float = Field(default=0.5, ge=0, le=10, description="Seconds between requests")
    timeout: float = Field(default=20.0, ge=1, le=120, description="Per-request timeout")
    retries: int = Field(default=4, ge=0, le=8, description="Retries for 429/5xx")
