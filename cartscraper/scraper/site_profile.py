"""
Cart Scraper — Site Profile

All storefront-specific knowledge the pipeline relies on: which hosts and
paths are valid, which network endpoints are noise, where item arrays hide
in JSON payloads, which inline-state blobs to look for, and which DOM
selectors identify cart items.

The pipeline takes a SiteProfile as input, so retargeting it at another
storefront means building another profile, not editing extraction code.
"""

from __future__ import annotations

import re
from typing import Any, NamedTuple

from pydantic import BaseModel, ConfigDict, Field

from cartscraper.scraper.rules import FieldRule, field_rules, has_any_field, is_present


class InlinePattern(NamedTuple):
    """A regex whose first group captures a JSON document embedded in HTML."""

    name: str
    regex: str


class SelectorStrategy(NamedTuple):
    """A CSS selector for cart-item containers, with how much we trust it."""

    selector: str
    confidence: float


class ItemFieldRules(BaseModel):
    """Ordered lookup rules per NormalizedItem field."""

    model_config = ConfigDict(frozen=True)

    product_id: tuple[FieldRule, ...] = field_rules("goods_id", "productId", "id", "goodsId")
    sku: tuple[FieldRule, ...] = field_rules("sku", "sku_id", "skuId")
    name: tuple[FieldRule, ...] = field_rules("goods_name", "name", "title", "goodsName")
    price: tuple[FieldRule, ...] = field_rules(
        "sale_price.amount", "price", "salePrice", "sale_price", "retail_price.amount"
    )
    currency: tuple[FieldRule, ...] = field_rules(
        "sale_price.currency", "currency", "price.currency"
    )
    qty: tuple[FieldRule, ...] = field_rules("quantity", "qty")
    image: tuple[FieldRule, ...] = field_rules("goods_img", "image", "goodsImg")
    images: tuple[FieldRule, ...] = field_rules("images", "imageList", "imgs")
    variant: tuple[FieldRule, ...] = field_rules("spec", "variant", "specInfo", "attr_value")


class SiteProfile(BaseModel):
    """Versioned, swappable site knowledge for one storefront."""

    model_config = ConfigDict(frozen=True)

    name: str
    version: str
    host_pattern: str
    cart_path_marker: str
    origin: str
    referer: str

    # Network interception
    json_content_types: tuple[str, ...] = ("application/json", "text/json")
    json_url_marker: str = ".json"
    denylist: tuple[str, ...] = ()
    network_item_paths: tuple[FieldRule, ...] = ()
    product_marker_fields: tuple[str, ...] = ()
    decoy_marker_field: str = "tinyUrl"
    decoy_exempt_fields: tuple[str, ...] = ("goods_id", "goods_name")

    # Inline page state
    inline_patterns: tuple[InlinePattern, ...] = ()
    inline_item_paths: tuple[FieldRule, ...] = ()
    window_globals: tuple[str, ...] = ()

    # DOM heuristics
    item_selectors: tuple[SelectorStrategy, ...] = ()
    scan_class_token: str = "cart"
    scan_class_companions: tuple[str, ...] = ("item", "goods")
    scan_attr_tokens: tuple[str, ...] = ("goods", "product")
    scan_attr_companions: tuple[str, ...] = ("id", "data")
    id_attributes: tuple[str, ...] = ()
    ancestor_id_attribute: str = "data-goods-id"
    name_selectors: tuple[str, ...] = ()
    name_attributes: tuple[str, ...] = ("title", "data-name", "alt")
    price_selector: str = '[class*="price"], [class*="Price"], .price, .sale-price'
    price_attribute: str = "data-price"
    lazy_image_attributes: tuple[str, ...] = (
        "data-src", "data-lazy-src", "data-original", "data-url", "data-img",
    )
    srcset_attributes: tuple[str, ...] = ("srcset", "data-srcset")
    image_attr_keywords: tuple[str, ...] = (
        "img", "image", "pic", "photo", "goods", "product", "data",
    )
    image_container_selectors: tuple[str, ...] = ()

    item_fields: ItemFieldRules = Field(default_factory=ItemFieldRules)

    def matches_host(self, host: str) -> bool:
        return re.search(self.host_pattern, host, re.IGNORECASE) is not None

    def is_decoy(self, item: Any) -> bool:
        """Campaign/telemetry rows that resemble item lists but carry no product ids."""
        if not isinstance(item, dict):
            return False
        if not is_present(item.get(self.decoy_marker_field)):
            return False
        return not has_any_field(item, self.decoy_exempt_fields)

    def looks_like_product(self, item: Any) -> bool:
        return has_any_field(item, self.product_marker_fields) and not self.is_decoy(item)

    @property
    def item_selector_list(self) -> str:
        """All item selectors joined, for in-page lazy-load materialization."""
        return ", ".join(s.selector for s in self.item_selectors)


SHEIN_PROFILE = SiteProfile(
    name="shein",
    version="2025.1",
    host_pattern=r"(^|\.)shein\.",
    cart_path_marker="cart/share",
    origin="https://m.shein.com",
    referer="https://m.shein.com/",
    denylist=(
        "/campaignsTinyUrlList",
        "/tracking/",
        "/analytics/",
        "/log/",
        "/beacon",
    ),
    network_item_paths=field_rules(
        "info.cart.items",
        "info.cart.goodsList",
        "data.cart.items",
        "data.cart.goodsList",
        "data.list.items",
        "result.cart.items",
        "result.cart.goodsList",
        "result.list.items",
        "cart.items",
        "cart.goodsList",
        "goodsList",
        "goods_list",
        "data.items",
        "result.items",
        "items",
    ),
    product_marker_fields=(
        "goods_id",
        "productId",
        "goodsId",
        "sku",
        "goods_name",
        "name",
        "title",
        "sale_price",
        "price",
        "goods_img",
        "image",
    ),
    inline_patterns=(
        InlinePattern("initial_state", r"window\.__INITIAL_STATE__\s*=\s*(\{.+?\});"),
        InlinePattern("redux_state", r"window\.__REDUX_STATE__\s*=\s*(\{.+?\});"),
        InlinePattern("cart_data", r"window\.cartData\s*=\s*(\{.+?\});"),
        InlinePattern("cart", r"window\.cart\s*=\s*(\{.+?\});"),
        InlinePattern("share_cart", r"window\.shareCart\s*=\s*(\{.+?\});"),
        InlinePattern("next_data", r"<script[^>]*id=\"__NEXT_DATA__\"[^>]*>(.*?)</script>"),
        InlinePattern("cart_items_fragment", r"\"cartItems?\":\s*(\[[^\]]+\])"),
        InlinePattern("items_fragment", r"\"items?\":\s*(\[[^\]]+\])"),
        InlinePattern("goods_list_fragment", r"\"goodsList\":\s*(\[[^\]]+\])"),
        InlinePattern("goods_list_snake_fragment", r"\"goods_list\":\s*(\[[^\]]+\])"),
    ),
    inline_item_paths=field_rules(
        "cart.items",
        "cart.goodsList",
        "cart.goods_list",
        "cartData.items",
        "cartData.goodsList",
        "pageProps.cart.items",
        "pageProps.cartData.items",
        "props.pageProps.cart.items",
        "props.cart.items",
        "data.cart.items",
        "data.items",
        "items",
        "",
    ),
    window_globals=(
        "__INITIAL_STATE__",
        "__REDUX_STATE__",
        "cartData",
        "cart",
        "goodsList",
        "shareCart",
    ),
    item_selectors=(
        SelectorStrategy('[class*="cart-be-shared-goods-item"]', 0.95),
        SelectorStrategy('[class*="cart-goods-item"]', 0.9),
        SelectorStrategy('[class*="share-cart-item"]', 0.85),
        SelectorStrategy("[data-goods-id]", 0.8),
        SelectorStrategy("[data-product-id]", 0.75),
        SelectorStrategy("[data-goods_id]", 0.75),
        SelectorStrategy(".cart-item", 0.5),
        SelectorStrategy(".goods-item", 0.4),
    ),
    id_attributes=(
        "data-goods-id",
        "data-goods_id",
        "data-product-id",
        "goods-id",
        "goods_id",
        "data-goods",
    ),
    name_selectors=(
        ".goods-name",
        ".product-name",
        '[class*="goods-name"]',
        '[class*="product-name"]',
        '[class*="name"]',
        "a[title]",
        "[title]",
    ),
    image_container_selectors=(
        '[class*="cart-item-goods-img"]',
        '[class*="goods-img"]',
        '[class*="cart-item-share"]',
        '[class*="bsc-cart-item"]',
        '[class*="gallery"]',
        '[class*="carousel"]',
        '[class*="swiper"]',
        '[class*="slider"]',
        '[class*="image"]',
        '[class*="img"]',
        '[class*="photo"]',
        '[class*="pic"]',
        "picture",
        '[role="img"]',
    ),
)
