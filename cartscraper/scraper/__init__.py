"""Cart Scraper — Extraction pipeline data model."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import parse_qs, urlparse

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cartscraper.scraper.errors import InvalidCartUrl

if TYPE_CHECKING:
    from cartscraper.scraper.site_profile import SiteProfile

ProvenanceTier = Literal["network", "inline_state", "dom"]


def _query_params(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


class ExtractionRequest(BaseModel):
    """A validated cart-share URL. One per invocation."""

    model_config = ConfigDict(frozen=True)

    cart_url: str
    default_country: str = "AE"

    @classmethod
    def parse(
        cls,
        cart_url: str | None,
        profile: SiteProfile,
        default_country: str = "AE",
    ) -> ExtractionRequest:
        """
        Validate a raw URL against the site profile before any browser work.

        Raises:
            InvalidCartUrl: URL missing, wrong domain, or not a cart-share path.
        """
        if not cart_url or not isinstance(cart_url, str):
            raise InvalidCartUrl("cartShareUrl is required")

        cart_url = cart_url.strip()
        parsed = urlparse(cart_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise InvalidCartUrl(f"Not an absolute http(s) URL: {cart_url[:200]}")
        if not profile.matches_host(parsed.netloc):
            raise InvalidCartUrl(f"URL is not on {profile.name}: {parsed.netloc}")
        if profile.cart_path_marker not in parsed.path:
            raise InvalidCartUrl(f"URL is not a cart share link: {parsed.path}")

        return cls(cart_url=cart_url, default_country=default_country)

    @property
    def group_id(self) -> str | None:
        values = _query_params(self.cart_url).get("group_id")
        return values[0] if values else None

    @property
    def country(self) -> str:
        values = _query_params(self.cart_url).get("local_country")
        return values[0] if values else self.default_country

    @property
    def language(self) -> str:
        return "ar" if "/ar/" in urlparse(self.cart_url).path else "en"


class CapturedResponse(BaseModel):
    """A network response kept by the interceptor as a cart candidate."""

    source_url: str
    raw_payload: Any = None
    items: list[Any] = Field(default_factory=list)
    score: int
    item_count: int
    captured_at: datetime


class NormalizedItem(BaseModel):
    """Canonical cart item, identical in shape whichever tier produced it."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    product_id: str | None = None
    sku: str | None = None
    name: str | None = None
    price: float | None = None
    currency: str = "USD"
    qty: int = 1
    image: str | None = None
    images: list[str] = Field(default_factory=list)
    variant: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)


class ExtractionMetadata(BaseModel):
    group_id: str | None = None
    country: str | None = None
    language: str | None = None


class ExtractionResult(BaseModel):
    """Successful outcome of one extraction request. Never persisted."""

    items: list[NormalizedItem]
    provenance_tier: ProvenanceTier
    source_descriptor: str
    captured_at: datetime
    metadata: ExtractionMetadata

    @property
    def count(self) -> int:
        return len(self.items)


class NoCandidatesFound(BaseModel):
    """
    All three tiers came back empty.

    This is a normal negative outcome, carried as a value with enough
    diagnostics for a human to adjust selectors or patterns later.
    """

    captured_count: int = 0
    captured_urls: list[str] = Field(default_factory=list)
    captured_samples: list[dict[str, Any]] = Field(default_factory=list)
    rejected_urls: list[str] = Field(default_factory=list)
