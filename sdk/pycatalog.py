# sdk/pycatalog.py
import requests
import httpx
from typing import Any, Dict, List, Optional


class CatalogClient:
    def __init__(self, base_url: str = "http://localhost:8085", token: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        self.token = token
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    # Products
    def list_products(self) -> List[Dict[str, Any]]:
        r = self.session.get(self._url("/api/products"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()["products"]

    def save_products(self, products: List[Dict[str, Any]]) -> Dict[str, Any]:
        # partial write failures come back as 500 with per-row details; return the body
        r = self.session.post(self._url("/api/products"), json={"products": products}, timeout=self.timeout)
        if r.status_code == 500:
            try:
                body = r.json()
            except ValueError:
                body = None
            if isinstance(body, dict) and "failures" in body:
                return body
        r.raise_for_status()
        return r.json()

    async def list_products_async(self) -> List[Dict[str, Any]]:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.get(self._url("/api/products"))
            r.raise_for_status()
            return r.json()["products"]

    async def save_products_async(self, products: List[Dict[str, Any]]) -> httpx.Response:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            # do not raise_for_status() - callers inspect partial failures
            return await client.post(self._url("/api/products"), json={"products": products}, headers=headers)

    # Categories
    def list_categories(self) -> List[Dict[str, Any]]:
        r = self.session.get(self._url("/api/categories"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()["categories"]

    def save_categories(self, categories: List[Any]) -> Dict[str, Any]:
        r = self.session.post(self._url("/api/categories"), json={"categories": categories}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def add_category(self, category_id: str, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        category = {"id": category_id, "name": name}
        if description:
            category["description"] = description
        r = self.session.post(self._url("/api/categories/add"), json={"category": category}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def delete_category(self, category_id: str) -> Dict[str, Any]:
        r = self.session.delete(self._url(f"/api/categories/{category_id}"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # Misc
    def clear_cache(self) -> Dict[str, Any]:
        r = self.session.post(self._url("/api/cache/clear"), timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def verify(self) -> bool:
        r = self.session.get(self._url("/api/auth/verify"), timeout=self.timeout)
        r.raise_for_status()
        return bool(r.json().get("valid"))

    def health(self) -> Dict[str, Any]:
        # 503 still carries a JSON body describing the failure
        r = self.session.get(self._url("/health"), timeout=self.timeout)
        return r.json()


if __name__ == "__main__":
    import argparse
    import json
    import os

    parser = argparse.ArgumentParser(description="Catalog sync CLI")
    parser.add_argument("--base-url", default=os.getenv("CATALOG_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--token", default=os.getenv("ADMIN_TOKEN"))
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---------------------------
    # Product commands
    # ---------------------------
    subparsers.add_parser("list-products", help="List all products")

    sp = subparsers.add_parser("save-products", help="Replace all products from a JSON file")
    sp.add_argument("--file", required=True, help="JSON file holding a list of products")

    # ---------------------------
    # Category commands
    # ---------------------------
    subparsers.add_parser("list-categories", help="List all categories")

    sc = subparsers.add_parser("save-categories", help="Merge-replace categories from a JSON file")
    sc.add_argument("--file", required=True, help="JSON file holding a list of categories")

    ac = subparsers.add_parser("add-category", help="Add or update one category")
    ac.add_argument("--id", required=True, help="Category ID")
    ac.add_argument("--name", required=True, help="Display name")
    ac.add_argument("--description", help="Optional description")

    dc = subparsers.add_parser("delete-category", help="Delete a category, moving its products")
    dc.add_argument("--id", required=True, help="Category ID")

    # ---------------------------
    # Misc
    # ---------------------------
    subparsers.add_parser("clear-cache", help="Drop the server-side product cache")
    subparsers.add_parser("verify", help="Check the admin token")
    subparsers.add_parser("health", help="Show store and cache health")

    args = parser.parse_args()
    c = CatalogClient(base_url=args.base_url, token=args.token)

    if args.command == "list-products":
        print(c.list_products())

    elif args.command == "save-products":
        with open(args.file) as f:
            print(c.save_products(json.load(f)))

    elif args.command == "list-categories":
        print(c.list_categories())

    elif args.command == "save-categories":
        with open(args.file) as f:
            print(c.save_categories(json.load(f)))

    elif args.command == "add-category":
        print(c.add_category(args.id, args.name, args.description))

    elif args.command == "delete-category":
        print(c.delete_category(args.id))

    elif args.command == "clear-cache":
        print(c.clear_cache())

    elif args.command == "verify":
        print(c.verify())

    elif args.command == "health":
        print(c.health())
