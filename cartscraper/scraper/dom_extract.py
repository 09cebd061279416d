"""
Cart Scraper — DOM Heuristic Extractor (Tier 3 — EMERGENCY)

Last resort when no structured JSON was found anywhere. Works in two
halves:

1. materialize_lazy_content() runs in the live page: scrolls so lazy
   content loads, copies lazy-load attributes into `src`, and stamps each
   image's currentSrc and each element's computed background-image into
   data attributes so the HTML snapshot carries them.
2. extract_dom_items() mines that snapshot with BeautifulSoup, using the
   site profile's selector cascade and attribute/image heuristics.

Failures on a single element skip that element; they never abort the tier.
"""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any

import structlog
from bs4 import BeautifulSoup, Tag

from cartscraper.scraper.normalize import price_token
from cartscraper.scraper.site_profile import SelectorStrategy, SiteProfile

logger = structlog.get_logger(__name__)

CURRENT_SRC_ATTR = "data-cartscraper-current-src"
COMPUTED_BG_ATTR = "data-cartscraper-bg"
_STAMP_ATTRS = (CURRENT_SRC_ATTR, COMPUTED_BG_ATTR)

_IMAGE_HINTS = ("http", ".webp", ".jpg", ".jpeg", ".png")
_CSS_URL_RE = re.compile(r"url\(\s*['\"]?([^'\")]+)['\"]?\s*\)")
_STYLE_BG_RE = re.compile(r"background(?:-image)?\s*:([^;]*)", re.IGNORECASE)

_SCROLL_STEP_JS = "() => window.scrollBy(0, window.innerHeight)"

_MATERIALIZE_JS = """
(opts) => {
    const items = opts.itemSelector ? Array.from(document.querySelectorAll(opts.itemSelector)) : [];
    items.forEach((item) => {
        try { item.scrollIntoView({ behavior: 'instant', block: 'center' }); } catch (e) {}
    });
    document.querySelectorAll('img').forEach((img) => {
        try {
            if (!img.getAttribute('src')) {
                for (const attr of opts.lazyAttrs) {
                    const value = img.getAttribute(attr);
                    if (value) {
                        img.setAttribute('src', value.split(',')[0].trim().split(' ')[0]);
                        break;
                    }
                }
            }
            if (img.currentSrc) img.setAttribute(opts.currentSrcAttr, img.currentSrc);
        } catch (e) {}
    });
    const stamp = (el) => {
        try {
            const bg = window.getComputedStyle(el).backgroundImage;
            if (bg && bg.includes('url(')) el.setAttribute(opts.bgAttr, bg);
        } catch (e) {}
    };
    items.forEach((item) => {
        stamp(item);
        if (opts.containerSelector) {
            try { item.querySelectorAll(opts.containerSelector).forEach(stamp); } catch (e) {}
        }
    });
    return items.length;
}
"""


# ---------------------------------------------------------------------------
# In-page materialization
# ---------------------------------------------------------------------------


async def materialize_lazy_content(
    page: Any,
    profile: SiteProfile,
    scroll_steps: int = 4,
    scroll_wait: float = 0.5,
) -> int:
    """
    Force lazy-loaded content to render before the DOM snapshot is taken.

    Returns:
        Number of candidate item nodes found in the page (0 on failure).
    """
    try:
        for _ in range(scroll_steps):
            await page.evaluate(_SCROLL_STEP_JS)
            await asyncio.sleep(scroll_wait)

        count = await page.evaluate(
            _MATERIALIZE_JS,
            {
                "itemSelector": profile.item_selector_list,
                "lazyAttrs": [*profile.lazy_image_attributes, "data-srcset"],
                "containerSelector": ", ".join(profile.image_container_selectors),
                "currentSrcAttr": CURRENT_SRC_ATTR,
                "bgAttr": COMPUTED_BG_ATTR,
            },
        )
        return int(count or 0)
    except Exception as e:
        logger.warning("dom_materialize_failed", error=str(e), source="dom_extract")
        return 0


# ---------------------------------------------------------------------------
# Image harvesting
# ---------------------------------------------------------------------------


def normalize_image_url(url: Any, origin: str) -> str | None:
    """Absolute http(s) URL, or None for data URIs and unresolvable relatives."""
    if not isinstance(url, str):
        return None
    url = url.strip()
    if not url or "data:image" in url:
        return None
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/"):
        return origin.rstrip("/") + url
    if url.startswith("http"):
        return url
    return None


def parse_srcset(srcset: str | None) -> list[str]:
    """Every candidate URL in a srcset, not just the first."""
    if not srcset:
        return []
    urls = []
    for part in srcset.split(","):
        candidate = part.strip().split()
        if candidate:
            urls.append(candidate[0])
    return urls


class ImageCollector:
    """
    Ordered, de-duplicated image list for one item.

    An exact URL is never added twice. The base URL (without query string)
    only decides ordering: the first URL seen for a base is a primary image,
    later URLs on the same base are size/quality variants and are kept after
    the primaries.
    """

    def __init__(self, origin: str) -> None:
        self._origin = origin
        self._seen: set[str] = set()
        self._bases: set[str] = set()
        self._leading: list[str] = []
        self._primary: list[str] = []
        self._variants: list[str] = []

    def add(self, url: Any, leading: bool = False) -> bool:
        normalized = normalize_image_url(url, self._origin)
        if normalized is None or normalized in self._seen:
            return False
        self._seen.add(normalized)

        base = normalized.split("?", 1)[0]
        if leading:
            self._leading.append(normalized)
        elif base in self._bases:
            self._variants.append(normalized)
        else:
            self._primary.append(normalized)
        self._bases.add(base)
        return True

    @property
    def images(self) -> list[str]:
        return [*self._leading, *self._primary, *self._variants]


def _attr(tag: Tag, name: str) -> str | None:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _looks_like_image(value: str) -> bool:
    return any(hint in value for hint in _IMAGE_HINTS)


def images_from_attribute(value: str | None) -> list[str]:
    """Image URLs embedded in a data-* attribute: JSON arrays/objects or URL lists."""
    if not value:
        return []
    found: list[str] = []
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = None
        if _looks_like_image(value):
            parts = value.split(",") if "," in value else [value]
            found.extend(p.strip() for p in parts if _looks_like_image(p))
        return found

    if isinstance(parsed, str) and _looks_like_image(parsed):
        found.append(parsed)
    elif isinstance(parsed, list):
        for entry in parsed:
            if isinstance(entry, str) and _looks_like_image(entry):
                found.append(entry)
            elif isinstance(entry, dict) and isinstance(entry.get("url"), str):
                found.append(entry["url"])
    elif isinstance(parsed, dict):
        for key in ("images", "imgs", "imageList"):
            if isinstance(parsed.get(key), list):
                found.extend(v for v in parsed[key] if isinstance(v, str))
        for holder in (parsed, parsed.get("goods")):
            if not isinstance(holder, dict):
                continue
            goods_img = holder.get("goods_img")
            if isinstance(goods_img, list):
                found.extend(v for v in goods_img if isinstance(v, str))
            elif isinstance(goods_img, str):
                found.append(goods_img)
    return found


def background_image_url(tag: Tag) -> str | None:
    """Background image from the stamped computed style, else the inline style."""
    for source in (_attr(tag, COMPUTED_BG_ATTR), _inline_background(tag)):
        if source:
            match = _CSS_URL_RE.search(source)
            if match and "data:image" not in match.group(1):
                return match.group(1)
    return None


def _inline_background(tag: Tag) -> str | None:
    style = _attr(tag, "style")
    if not style:
        return None
    match = _STYLE_BG_RE.search(style)
    return match.group(1) if match else None


def _harvest_img(img: Tag, collector: ImageCollector, profile: SiteProfile) -> None:
    collector.add(_attr(img, "src"))
    collector.add(_attr(img, CURRENT_SRC_ATTR))
    for attr in profile.lazy_image_attributes:
        collector.add(_attr(img, attr))
    for attr in profile.srcset_attributes:
        for url in parse_srcset(_attr(img, attr)):
            collector.add(url)


def _harvest_source(source: Tag, collector: ImageCollector, profile: SiteProfile) -> None:
    for attr in profile.srcset_attributes:
        for url in parse_srcset(_attr(source, attr)):
            collector.add(url)
    collector.add(_attr(source, "src"))
    collector.add(_attr(source, "data-src"))


def collect_images(el: Tag, profile: SiteProfile) -> list[str]:
    """Every image reachable from an item element, de-duplicated and ordered."""
    collector = ImageCollector(profile.origin)

    # data-* attributes that embed image URLs or image arrays
    for name, value in el.attrs.items():
        if not name.startswith("data-") or name in _STAMP_ATTRS:
            continue
        if any(keyword in name for keyword in profile.image_attr_keywords):
            for url in images_from_attribute(value if isinstance(value, str) else None):
                collector.add(url)

    # <img> elements, including those inside galleries and <picture>
    imgs = ([el] if el.name == "img" else []) + el.find_all("img")
    for img in imgs:
        _harvest_img(img, collector, profile)
        picture = img.find_parent("picture")
        if picture is not None:
            for source in picture.find_all("source"):
                _harvest_source(source, collector, profile)
    for source in el.find_all("source"):
        _harvest_source(source, collector, profile)

    # Background images: the element's own is usually the main image
    own_bg = background_image_url(el)
    if own_bg:
        collector.add(own_bg, leading=True)
    for selector in profile.image_container_selectors:
        for container in _safe_select(el, selector):
            container_bg = background_image_url(container)
            if container_bg:
                collector.add(container_bg)

    return collector.images


# ---------------------------------------------------------------------------
# Item discovery
# ---------------------------------------------------------------------------


def _safe_select(root: Tag, selector: str) -> list[Tag]:
    try:
        return root.select(selector)
    except Exception as e:
        logger.debug("dom_selector_invalid", selector=selector, error=str(e), source="dom_extract")
        return []


def _class_string(tag: Tag) -> str:
    return _attr(tag, "class") or ""


def _looks_like_item(tag: Tag, profile: SiteProfile) -> bool:
    class_name = _class_string(tag)
    if profile.scan_class_token in class_name and any(
        token in class_name for token in profile.scan_class_companions
    ):
        return True
    return any(
        any(token in name for token in profile.scan_attr_tokens)
        and any(token in name for token in profile.scan_attr_companions)
        for name in tag.attrs
    )


def find_item_elements(
    soup: BeautifulSoup | Tag,
    profile: SiteProfile,
) -> tuple[list[Tag], SelectorStrategy | None]:
    """
    Walk the selector cascade; the first strategy with any match wins.
    Falls back to a full-document scan of class and attribute names.
    """
    for strategy in profile.item_selectors:
        found = _safe_select(soup, strategy.selector)
        if found:
            return found, strategy

    scanned = [tag for tag in soup.find_all(True) if _looks_like_item(tag, profile)]
    return scanned, None


# ---------------------------------------------------------------------------
# Field extraction
# ---------------------------------------------------------------------------


def extract_product_id(el: Tag, profile: SiteProfile) -> str | None:
    for attr in profile.id_attributes:
        value = _attr(el, attr)
        if value:
            return value
    ancestor = el.find_parent(attrs={profile.ancestor_id_attribute: True})
    if ancestor is not None:
        return _attr(ancestor, profile.ancestor_id_attribute)
    return None


def extract_name(el: Tag, profile: SiteProfile) -> str | None:
    """Visible text of the first name node, preferred over title/alt."""
    for selector in profile.name_selectors:
        for node in _safe_select(el, selector)[:1]:
            name = node.get_text(" ", strip=True) or _attr(node, "title") or _attr(node, "alt")
            if name:
                return name
    for attr in profile.name_attributes:
        value = _attr(el, attr)
        if value:
            return value
    return None


def extract_price_text(el: Tag, profile: SiteProfile) -> str | None:
    """First price in the price node, e.g. '$1,299.00 $1,500.00' -> '1299.00'."""
    nodes = _safe_select(el, profile.price_selector)
    raw = nodes[0].get_text(" ", strip=True) if nodes else _attr(el, profile.price_attribute)
    return price_token(raw)


def extract_record(el: Tag, profile: SiteProfile) -> dict[str, Any] | None:
    """
    Build a raw candidate item from one element.

    Returns:
        A dict, or None if the element carries no id, name or price.
    """
    product_id = extract_product_id(el, profile)
    name = extract_name(el, profile)
    price = extract_price_text(el, profile)
    if not (product_id or name or price):
        return None

    images = collect_images(el, profile)
    return {
        "productId": product_id,
        "name": name,
        "price": price,
        "images": images,
        "image": images[0] if images else None,
        "element": {
            "tagName": (el.name or "").upper(),
            "className": _class_string(el),
            "id": _attr(el, "id"),
        },
    }


def extract_dom_items(html: str, profile: SiteProfile) -> list[dict[str, Any]]:
    """
    Mine cart items out of a rendered HTML snapshot.

    Args:
        html: page.content() after materialize_lazy_content().
        profile: Site knowledge providing selectors and attribute names.

    Returns:
        Raw candidate records, unique by product id or name+price.
    """
    if not html:
        return []

    soup = BeautifulSoup(html, "lxml")
    elements, strategy = find_item_elements(soup, profile)
    logger.info(
        "dom_extract_elements_found",
        element_count=len(elements),
        selector=strategy.selector if strategy else "full_scan",
        confidence=strategy.confidence if strategy else 0.0,
        source="dom_extract",
    )

    records: list[dict[str, Any]] = []
    seen_keys: set[str] = set()
    for el in elements:
        try:
            record = extract_record(el, profile)
        except Exception as e:
            logger.debug(
                "dom_extract_element_failed",
                tag=el.name,
                error=str(e),
                source="dom_extract",
            )
            continue
        if record is None:
            continue

        key = record["productId"] or f"{record['name'] or ''}_{record['price'] or ''}"
        if key in seen_keys:
            continue
        seen_keys.add(key)
        records.append(record)

    return records
