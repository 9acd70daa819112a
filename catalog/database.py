import asyncio
import copy
import itertools
from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, List, Optional

from catalog.errors import UpstreamFailure

# This file holds the remote store contract and the in-memory store used for
# local runs and tests. Rows are plain dicts shaped like the `products` and
# `categories` tables.

Row = Dict[str, Any]


class RemoteStore(ABC):
    """Opaque CRUD/query interface over the `products` and `categories` tables.

    Every method is a single store call; nothing spans calls. Failures are
    raised as UpstreamFailure.
    """

    # products
    @abstractmethod
    async def list_products(self) -> List[Row]:
        """All product rows ordered by id."""

    @abstractmethod
    async def delete_all_products(self) -> None:
        pass

    @abstractmethod
    async def insert_products(self, rows: List[Row]) -> List[Row]:
        """Bulk insert; either every row lands or none does."""

    @abstractmethod
    async def insert_product(self, row: Row) -> Row:
        pass

    @abstractmethod
    async def products_in_category(self, category_id: str) -> List[Row]:
        pass

    @abstractmethod
    async def reassign_products(self, from_category: str, to_category: str) -> int:
        """Point every product in `from_category` at `to_category`; returns rows touched."""

    @abstractmethod
    async def count_products(self) -> int:
        pass

    # categories
    @abstractmethod
    async def list_categories(self) -> List[Row]:
        """All category rows ordered by name."""

    @abstractmethod
    async def get_category(self, category_id: str) -> Optional[Row]:
        pass

    @abstractmethod
    async def first_other_category(self, category_id: str) -> Optional[str]:
        """Id of any category other than `category_id`, or None."""

    @abstractmethod
    async def upsert_categories(self, rows: List[Row]) -> List[Row]:
        pass

    @abstractmethod
    async def delete_categories_not_in(self, keep_ids: Iterable[str]) -> None:
        pass

    @abstractmethod
    async def delete_category(self, category_id: str) -> None:
        pass

    @abstractmethod
    async def count_categories(self) -> int:
        pass

    async def close(self) -> None:
        pass


class InMemoryStore(RemoteStore):
    """Dict-backed store. Each call holds its table lock, so single calls are atomic."""

    def __init__(self, latency: float = 0.0):
        """
        Args:
            latency: Seconds to sleep inside every call, to make interleaving
                between concurrent requests observable
        """
        self.latency = latency
        self.products: Dict[int, Row] = {}
        self.categories: Dict[str, Row] = {}
        self._ids = itertools.count(1)
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_lock(self, key: str) -> asyncio.Lock:
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    async def _yield(self) -> None:
        await asyncio.sleep(self.latency)

    @staticmethod
    def _check_product_row(row: Row) -> None:
        title = row.get("title")
        if not isinstance(title, str) or not title:
            raise UpstreamFailure('null value in column "title" violates not-null constraint')
        price = row.get("price")
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise UpstreamFailure(f'invalid input syntax for type numeric: "{price}"')
        if not isinstance(row.get("colors"), list):
            raise UpstreamFailure('column "colors" must be a json array')

    def _store_product(self, row: Row) -> Row:
        stored = copy.deepcopy(row)
        stored["id"] = next(self._ids)
        self.products[stored["id"]] = stored
        return copy.deepcopy(stored)

    # ---------------------------
    # Products
    # ---------------------------
    async def list_products(self) -> List[Row]:
        await self._yield()
        async with self._get_lock("products"):
            return [copy.deepcopy(self.products[pid]) for pid in sorted(self.products)]

    async def delete_all_products(self) -> None:
        await self._yield()
        async with self._get_lock("products"):
            self.products.clear()

    async def insert_products(self, rows: List[Row]) -> List[Row]:
        await self._yield()
        async with self._get_lock("products"):
            for row in rows:
                self._check_product_row(row)
            return [self._store_product(row) for row in rows]

    async def insert_product(self, row: Row) -> Row:
        await self._yield()
        async with self._get_lock("products"):
            self._check_product_row(row)
            return self._store_product(row)

    async def products_in_category(self, category_id: str) -> List[Row]:
        await self._yield()
        async with self._get_lock("products"):
            return [
                copy.deepcopy(p) for pid, p in sorted(self.products.items())
                if p.get("category") == category_id
            ]

    async def reassign_products(self, from_category: str, to_category: str) -> int:
        await self._yield()
        async with self._get_lock("products"):
            moved = 0
            for p in self.products.values():
                if p.get("category") == from_category:
                    p["category"] = to_category
                    moved += 1
            return moved

    async def count_products(self) -> int:
        await self._yield()
        return len(self.products)

    # ---------------------------
    # Categories
    # ---------------------------
    async def list_categories(self) -> List[Row]:
        await self._yield()
        async with self._get_lock("categories"):
            rows = [copy.deepcopy(c) for c in self.categories.values()]
        return sorted(rows, key=lambda c: str(c.get("name", "")))

    async def get_category(self, category_id: str) -> Optional[Row]:
        await self._yield()
        row = self.categories.get(category_id)
        return copy.deepcopy(row) if row is not None else None

    async def first_other_category(self, category_id: str) -> Optional[str]:
        await self._yield()
        for cid in self.categories:
            if cid != category_id:
                return cid
        return None

    async def upsert_categories(self, rows: List[Row]) -> List[Row]:
        await self._yield()
        async with self._get_lock("categories"):
            for row in rows:
                if not row.get("id"):
                    raise UpstreamFailure('null value in column "id" violates not-null constraint')
            out = []
            for row in rows:
                existing = self.categories.setdefault(row["id"], {})
                existing.update(copy.deepcopy(row))
                out.append(copy.deepcopy(existing))
            return out

    async def delete_categories_not_in(self, keep_ids: Iterable[str]) -> None:
        await self._yield()
        keep = set(keep_ids)
        async with self._get_lock("categories"):
            for cid in [cid for cid in self.categories if cid not in keep]:
                del self.categories[cid]

    async def delete_category(self, category_id: str) -> None:
        await self._yield()
        async with self._get_lock("categories"):
            self.categories.pop(category_id, None)

    async def count_categories(self) -> int:
        await self._yield()
        return len(self.categories)
