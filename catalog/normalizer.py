"""
Coerce loosely-structured product and category payloads into the canonical schema.

Payloads arrive from the admin editor, from older exports and straight from the
remote store, so every field is optional and may carry the wrong type. Nothing
in here raises: products are always returned (with defaults filled in), and
category entries that cannot be identified are dropped.

Accepted product shapes:

- multi-color: ``{"colors": [{"name", "image", "sizes": [...]}, ...]}``
- legacy single-color: ``{"sizes": [...], "color": "...", "image": "..."}``
- bare: neither of the above; gets one synthetic "Default" color

Normalizing already-canonical output returns it unchanged, so the result of one
write cycle can be fed into the next.
"""
import math
from typing import Any, Callable, Dict, List, Mapping, Optional

from pydantic import BaseModel

from catalog.models import (
    Category,
    Color,
    DEFAULT_STATUS,
    PLACEHOLDER_IMAGE,
    PLACEHOLDER_TITLE,
    Product,
    Size,
    canonical_sizes,
)

MULTI_COLOR = "multi_color"
LEGACY_SINGLE_COLOR = "legacy_single_color"
BARE = "bare"

SYNTHETIC_COLOR_NAME = "Default"
UNNAMED_COLOR = "Unnamed"
DEFAULT_SIZE_NAME = "M"


# ---------------------------
# Field coercion
# ---------------------------
def _as_mapping(value: Any) -> Optional[Mapping]:
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return value
    return None


def _text(value: Any, default: str) -> str:
    if value is None or value == "":
        return default
    return str(value)


def _coerce_id(value: Any):
    if value is None or value == "" or isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return str(value)


def coerce_price(value: Any) -> float:
    """Parse a price; anything non-numeric, non-finite or negative is 0."""
    if isinstance(value, bool):
        return 0.0
    try:
        price = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price


def coerce_stock(value: Any) -> int:
    """Parse a stock count, truncating decimals ("3.7" -> 3); invalid or negative is 0."""
    if isinstance(value, bool):
        return 0
    try:
        stock = int(value)
    except (TypeError, ValueError, OverflowError):
        try:
            number = float(value)
        except (TypeError, ValueError, OverflowError):
            return 0
        if not math.isfinite(number):
            return 0
        stock = int(number)
    return max(stock, 0)


def _capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


# ---------------------------
# Colors and sizes
# ---------------------------
def _normalize_size(raw: Any) -> Size:
    if isinstance(raw, str):
        return Size(name=_text(raw, DEFAULT_SIZE_NAME), stock=0)
    size = _as_mapping(raw) or {}
    return Size(
        name=_text(size.get("name"), DEFAULT_SIZE_NAME),
        stock=coerce_stock(size.get("stock")),
    )


def _normalize_sizes(raw: Any) -> List[Size]:
    if not isinstance(raw, (list, tuple)) or not raw:
        return canonical_sizes()
    return [_normalize_size(entry) for entry in raw]


def _normalize_color(raw: Any, default_name: str = UNNAMED_COLOR) -> Color:
    color = _as_mapping(raw) or {}
    return Color(
        name=_text(color.get("name"), default_name),
        image=_text(color.get("image"), PLACEHOLDER_IMAGE),
        sizes=_normalize_sizes(color.get("sizes")),
    )


def product_shape(product: Mapping) -> str:
    """Classify a raw product mapping into one of the accepted input shapes."""
    colors = product.get("colors")
    if isinstance(colors, (list, tuple)) and colors:
        return MULTI_COLOR
    if product.get("sizes") is not None:
        return LEGACY_SINGLE_COLOR
    return BARE


def _colors_from_multi(product: Mapping) -> List[Color]:
    return [_normalize_color(entry) for entry in product["colors"]]


def _colors_from_legacy(product: Mapping) -> List[Color]:
    return [
        Color(
            name=_text(product.get("color"), SYNTHETIC_COLOR_NAME),
            image=_text(product.get("image"), PLACEHOLDER_IMAGE),
            sizes=_normalize_sizes(product.get("sizes")),
        )
    ]


def _colors_from_bare(product: Mapping) -> List[Color]:
    return [
        Color(
            name=SYNTHETIC_COLOR_NAME,
            image=_text(product.get("image"), PLACEHOLDER_IMAGE),
            sizes=canonical_sizes(),
        )
    ]


_COLOR_BUILDERS: Dict[str, Callable[[Mapping], List[Color]]] = {
    MULTI_COLOR: _colors_from_multi,
    LEGACY_SINGLE_COLOR: _colors_from_legacy,
    BARE: _colors_from_bare,
}


# ---------------------------
# Public API
# ---------------------------
def normalize_product(raw: Any) -> Product:
    product = _as_mapping(raw) or {}
    colors = _COLOR_BUILDERS[product_shape(product)](product)
    return Product(
        id=_coerce_id(product.get("id")),
        title=_text(product.get("title"), PLACEHOLDER_TITLE),
        category=_text(product.get("category"), ""),
        price=coerce_price(product.get("price")),
        description=_text(product.get("description"), ""),
        status=_text(product.get("status"), DEFAULT_STATUS),
        colors=colors,
    )


def normalize_products(raw: Any) -> List[Product]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [normalize_product(entry) for entry in raw]


def normalize_category(raw: Any) -> Optional[Category]:
    """Normalize one category entry, or return None when it has no usable id."""
    if isinstance(raw, str):
        if not raw:
            return None
        return Category(id=raw, name=_capitalize(raw), description=f"Categoria de {raw}")

    category = _as_mapping(raw)
    if category is None or not category.get("id"):
        return None

    category_id = str(category["id"])
    raw_name = category.get("name")
    return Category(
        id=category_id,
        name=_text(raw_name, _capitalize(category_id)),
        description=_text(
            category.get("description"), f"Categoria de {_text(raw_name, category_id)}"
        ),
    )


def normalize_categories(raw: Any) -> List[Category]:
    if not isinstance(raw, (list, tuple)):
        return []
    categories = []
    for entry in raw:
        category = normalize_category(entry)
        if category is not None:
            categories.append(category)
    return categories
