"""
Cart Scraper — Item Normalizer

Maps a raw candidate item from any tier (network JSON, inline state, DOM
record) onto NormalizedItem. Every field is looked up through the ordered
rules in ItemFieldRules, so the output shape never depends on the tier.

normalize_item() never raises: unusable values become None, and qty and
currency fall back to their defaults.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, NamedTuple

import structlog

from cartscraper.scraper import NormalizedItem
from cartscraper.scraper.rules import first_value, is_present
from cartscraper.scraper.site_profile import ItemFieldRules

logger = structlog.get_logger(__name__)

_PRICE_TOKEN_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")


class TierDefaults(NamedTuple):
    """Values used when a raw item does not carry the field itself."""

    currency: str = "USD"
    qty: int = 1


DEFAULT_FIELD_RULES = ItemFieldRules()


def normalize_item(
    raw: Any,
    defaults: TierDefaults = TierDefaults(),
    fields: ItemFieldRules = DEFAULT_FIELD_RULES,
) -> NormalizedItem:
    """Normalize one raw candidate. Non-dict input yields an all-None item."""
    if not isinstance(raw, dict):
        return NormalizedItem(currency=defaults.currency, qty=defaults.qty, raw={"value": raw})

    try:
        image = _to_url(first_value(raw, fields.image))
        images = _to_url_list(first_value(raw, fields.images))
        if image is None and images:
            image = images[0]
        if image is not None and image not in images:
            images.insert(0, image)

        currency = first_value(raw, fields.currency)

        return NormalizedItem(
            product_id=_to_str(first_value(raw, fields.product_id)),
            sku=_to_str(first_value(raw, fields.sku)),
            name=_to_str(first_value(raw, fields.name)),
            price=parse_price(first_value(raw, fields.price)),
            currency=currency.strip().upper() if isinstance(currency, str) and currency.strip() else defaults.currency,
            qty=_to_qty(first_value(raw, fields.qty), defaults.qty),
            image=image,
            images=images,
            variant=_to_variant(first_value(raw, fields.variant)),
            raw=raw,
        )
    except Exception as e:
        logger.debug("normalize_item_failed", error=str(e), source="normalize")
        return NormalizedItem(currency=defaults.currency, qty=defaults.qty, raw=raw)


def normalize_items(
    raw_items: list[Any],
    defaults: TierDefaults = TierDefaults(),
    fields: ItemFieldRules = DEFAULT_FIELD_RULES,
) -> list[NormalizedItem]:
    return [normalize_item(raw, defaults, fields) for raw in raw_items]


def parse_price(value: Any) -> float | None:
    """
    Parse a price from a number, a decorated string ('$7.00', '1,299.50 AED')
    or an {amount: ...} object.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, dict):
        return parse_price(value.get("amount") or value.get("amountWithSymbol"))
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        token = price_token(value)
        if token:
            return float(token)
    return None


def price_token(text: str | None) -> str | None:
    """
    First number in a price label, without thousands separators.

    A sale label followed by the struck-through original ('$7.00 $10.00')
    yields the sale price only.
    """
    if not text:
        return None
    match = _PRICE_TOKEN_RE.search(text)
    return match.group().replace(",", "") if match else None


def _to_str(value: Any) -> str | None:
    if not is_present(value) or isinstance(value, (dict, list)):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _to_qty(value: Any, default: int) -> int:
    if isinstance(value, bool) or value is None:
        return default
    try:
        qty = int(float(value))
    except (TypeError, ValueError):
        return default
    return qty if qty >= 1 else default


def _to_url(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("url") or value.get("src")
    if not isinstance(value, str) or not value.strip():
        return None
    url = value.strip()
    if url.startswith("//"):
        return "https:" + url
    return url


def _to_url_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    urls: list[str] = []
    for entry in value:
        url = _to_url(entry)
        if url and url not in urls:
            urls.append(url)
    return urls


def _to_variant(value: Any) -> str | None:
    if not is_present(value):
        return None
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value).strip()
