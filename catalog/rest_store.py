"""
Remote store over a PostgREST endpoint (e.g. a Supabase project).

Tables are addressed as ``{base_url}/rest/v1/{table}``; filters use PostgREST
query syntax. Every transport or HTTP error is re-raised as UpstreamFailure.
"""
from typing import Any, Dict, Iterable, List, Optional

import httpx

from catalog.database import RemoteStore, Row
from catalog.errors import UpstreamFailure
from catalog.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = "products"
CATEGORIES = "categories"


def _in_list(values: Iterable[str]) -> str:
    quoted = ",".join('"{}"'.format(str(v).replace('"', '\\"')) for v in values)
    return f"({quoted})"


class PostgrestStore(RemoteStore):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self.client = httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/v1",
            headers=headers,
            timeout=timeout_seconds,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        table: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self.client.request(
                method, f"/{table}", params=params, json=json, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error(f"❌ {method} {table} failed ({e.response.status_code}): {message}")
            raise UpstreamFailure(message, cause=e) from e
        except httpx.HTTPError as e:
            logger.error(f"❌ {method} {table} failed: {e}")
            raise UpstreamFailure(f"Store unreachable: {e}", cause=e) from e
        return response

    @staticmethod
    def _rows(response: httpx.Response) -> List[Row]:
        if not response.content:
            return []
        return response.json()

    async def _count(self, table: str) -> int:
        response = await self._request(
            "HEAD", table, params={"select": "id"}, prefer="count=exact"
        )
        # Content-Range: 0-24/25 or */0
        content_range = response.headers.get("content-range", "")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    # ---------------------------
    # Products
    # ---------------------------
    async def list_products(self) -> List[Row]:
        response = await self._request(
            "GET", PRODUCTS, params={"select": "*", "order": "id.asc"}
        )
        return self._rows(response)

    async def delete_all_products(self) -> None:
        await self._request("DELETE", PRODUCTS, params={"id": "neq.0"})

    async def insert_products(self, rows: List[Row]) -> List[Row]:
        response = await self._request(
            "POST", PRODUCTS, json=rows, prefer="return=representation"
        )
        return self._rows(response)

    async def insert_product(self, row: Row) -> Row:
        response = await self._request(
            "POST", PRODUCTS, json=row, prefer="return=representation"
        )
        rows = self._rows(response)
        return rows[0] if rows else row

    async def products_in_category(self, category_id: str) -> List[Row]:
        response = await self._request(
            "GET", PRODUCTS, params={"select": "id,title", "category": f"eq.{category_id}"}
        )
        return self._rows(response)

    async def reassign_products(self, from_category: str, to_category: str) -> int:
        response = await self._request(
            "PATCH",
            PRODUCTS,
            params={"category": f"eq.{from_category}"},
            json={"category": to_category},
            prefer="return=representation",
        )
        return len(self._rows(response))

    async def count_products(self) -> int:
        return await self._count(PRODUCTS)

    # ---------------------------
    # Categories
    # ---------------------------
    async def list_categories(self) -> List[Row]:
        response = await self._request(
            "GET", CATEGORIES, params={"select": "*", "order": "name.asc"}
        )
        return self._rows(response)

    async def get_category(self, category_id: str) -> Optional[Row]:
        response = await self._request(
            "GET", CATEGORIES, params={"select": "*", "id": f"eq.{category_id}"}
        )
        rows = self._rows(response)
        return rows[0] if rows else None

    async def first_other_category(self, category_id: str) -> Optional[str]:
        response = await self._request(
            "GET",
            CATEGORIES,
            params={"select": "id", "id": f"neq.{category_id}", "limit": "1"},
        )
        rows = self._rows(response)
        return rows[0]["id"] if rows else None

    async def upsert_categories(self, rows: List[Row]) -> List[Row]:
        response = await self._request(
            "POST",
            CATEGORIES,
            params={"on_conflict": "id"},
            json=rows,
            prefer="resolution=merge-duplicates,return=representation",
        )
        return self._rows(response)

    async def delete_categories_not_in(self, keep_ids: Iterable[str]) -> None:
        await self._request(
            "DELETE", CATEGORIES, params={"id": f"not.in.{_in_list(keep_ids)}"}
        )

    async def delete_category(self, category_id: str) -> None:
        await self._request("DELETE", CATEGORIES, params={"id": f"eq.{category_id}"})

    async def count_categories(self) -> int:
        return await self._count(CATEGORIES)

    async def close(self) -> None:
        await self.client.aclose()
        logger.info("Closed remote store connection")


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("error") or str(body)
    return str(body)
