"""
Catalog operations behind the HTTP routes.

Writes are replace-style and not transactional: each step is a separate store
call, so a failure (or crash) part-way leaves whatever the earlier calls did.
"""
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Tuple

from catalog.cache import ProductCache
from catalog.database import RemoteStore
from catalog.errors import InvalidInput, NotFound, PartialWriteFailure, UpstreamFailure
from catalog.logging import get_logger
from catalog.models import Category, Product
from catalog.normalizer import normalize_categories, normalize_category, normalize_products

logger = get_logger(__name__)


@dataclass
class ReplaceResult:
    saved_count: int
    items: List[Any] = field(default_factory=list)


class CatalogService:
    """Normalizes, caches and writes the product and category collections."""

    def __init__(self, store: RemoteStore, cache: ProductCache):
        self.store = store
        self.cache = cache

    # ---------------------------
    # Reads
    # ---------------------------
    async def list_products(self) -> Tuple[List[Product], bool]:
        """Return (products, cache_hit). Store failures degrade to an empty list."""
        cached = self.cache.read()
        if cached is not None:
            logger.info("📦 Returning products from cache")
            return cached, True

        logger.info("🔄 Fetching products from store...")
        try:
            rows = await self.store.list_products()
        except UpstreamFailure as e:
            logger.error(f"❌ Failed to fetch products: {e.detail}")
            return [], False

        products = normalize_products(rows)
        self.cache.fill(products)
        logger.info(f"✅ {len(products)} products loaded")
        return products, False

    async def list_categories(self) -> List[Category]:
        """Categories are always read live so edits show up immediately."""
        try:
            rows = await self.store.list_categories()
        except UpstreamFailure as e:
            logger.error(f"❌ Failed to fetch categories: {e.detail}")
            return []
        return normalize_categories(rows)

    def clear_cache(self) -> None:
        self.cache.invalidate()

    # ---------------------------
    # Bulk replace
    # ---------------------------
    async def replace_all_products(self, raw: Any) -> ReplaceResult:
        """Replace the whole product collection with `raw`.

        Deletes every row, then bulk inserts the normalized list. If the bulk
        insert is rejected, rows are inserted one at a time; any row that still
        fails makes the whole call raise PartialWriteFailure. The delete is not
        rolled back, so the store then holds only the rows that went in.
        """
        if not isinstance(raw, (list, tuple)):
            raise InvalidInput("Invalid product data")

        products = normalize_products(raw)
        logger.info(f"💾 Saving {len(products)} products...")

        await self.store.delete_all_products()

        rows = [p.to_row() for p in products]
        if rows:
            try:
                await self.store.insert_products(rows)
            except UpstreamFailure as e:
                logger.error(f"❌ Bulk insert failed ({e.detail}), retrying row by row")
                await self._insert_row_by_row(rows)

        self.cache.invalidate()
        logger.info(f"✅ {len(products)} products saved")
        return ReplaceResult(saved_count=len(products), items=products)

    async def _insert_row_by_row(self, rows: List[Dict[str, Any]]) -> None:
        failures = []
        saved = 0
        for row in rows:
            try:
                await self.store.insert_product(row)
                saved += 1
            except UpstreamFailure as e:
                logger.error(f"❌ Failed to insert {row.get('title')}: {e.detail}")
                failures.append({"product": str(row.get("title")), "error": e.detail})

        if failures:
            # Rows that did go in are a change too
            self.cache.invalidate()
            raise PartialWriteFailure(failures, saved_count=saved)
        logger.info(f"✅ {saved} products inserted individually")

    async def replace_all_categories(self, raw: Any) -> ReplaceResult:
        """Merge-replace the category collection.

        Categories missing from `raw` are deleted and the rest upserted by id.
        Surviving ids are never absent, since products reference them.
        """
        categories = _unique_by_id(normalize_categories(raw))
        if not categories:
            raise InvalidInput("No valid category provided")

        logger.info(f"💾 Saving {len(categories)} categories...")
        keep_ids = [c.id for c in categories]
        await self.store.delete_categories_not_in(keep_ids)
        await self.store.upsert_categories([c.model_dump() for c in categories])

        logger.info("✅ Categories saved")
        return ReplaceResult(saved_count=len(categories), items=categories)

    # ---------------------------
    # Single category writes
    # ---------------------------
    async def upsert_category(self, payload: Any) -> Category:
        if not isinstance(payload, Mapping) or not payload.get("id") or not payload.get("name"):
            raise InvalidInput("Invalid category data")

        category = normalize_category(payload)
        logger.info(f"➕ Adding category: {category.name} (ID: {category.id})")
        await self.store.upsert_categories([category.model_dump()])
        return category

    async def delete_category(self, category_id: str) -> Dict[str, str]:
        """Delete a category after moving its products to another category.

        If no other category exists the products are left pointing at the
        deleted id; the delete still goes ahead.
        """
        row = await self.store.get_category(category_id)
        if row is None:
            raise NotFound("Category not found")
        name = str(row.get("name") or category_id)

        affected = await self.store.products_in_category(category_id)
        if affected:
            target = await self.store.first_other_category(category_id)
            if target is not None:
                moved = await self.store.reassign_products(category_id, target)
                self.cache.invalidate()
                logger.info(f"🔄 Moved {moved} products from '{category_id}' to '{target}'")
            else:
                logger.warning(
                    f"⚠️ No other category found, {len(affected)} products left on '{category_id}'"
                )

        await self.store.delete_category(category_id)
        logger.info(f"✅ Category \"{name}\" deleted")
        return {"deleted_name": name}

    # ---------------------------
    # Health
    # ---------------------------
    async def health(self) -> Dict[str, Any]:
        start = time.perf_counter()
        product_count = await self.store.count_products()
        category_count = await self.store.count_categories()
        latency_ms = int((time.perf_counter() - start) * 1000)

        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "latency": f"{latency_ms}ms",
            "services": {
                "database": "connected",
                "cache": "active" if self.cache.is_active else "inactive",
            },
            "counts": {"products": product_count, "categories": category_count},
        }


def _unique_by_id(categories: List[Category]) -> List[Category]:
    # Last occurrence wins, first position kept
    by_id: Dict[str, Category] = {}
    for category in categories:
        by_id[category.id] = category
    return list(by_id.values())
