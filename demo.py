#!/usr/bin/env python
import os
from sdk.pycatalog import CatalogClient


def main():
    c = CatalogClient(
        base_url=os.getenv("CATALOG_URL", "http://127.0.0.1:8085"),
        token=os.getenv("ADMIN_TOKEN", "authenticated_admin_token"),
    )

    # -----------------------------
    # Categories
    # -----------------------------
    print("Saving categories...")
    print(c.save_categories(["camisa", {"id": "calca", "name": "Calças"}, "bermuda"]))

    # -----------------------------
    # Products (mixed shapes)
    # -----------------------------
    print("\nSaving products...")
    products = [
        {"title": "Tee", "price": "19.90", "category": "camisa", "colors": [{"name": "Red"}]},
        {
            "title": "Chino",
            "price": 129.9,
            "category": "calca",
            "color": "Khaki",
            "sizes": [{"name": "40", "stock": "3"}, {"name": "42", "stock": 5}],
        },
        {"title": "Board short", "price": "abc", "category": "bermuda"},
        {"title": "Polo", "price": 79, "category": "camisa"},
    ]
    print(c.save_products(products))

    # -----------------------------
    # Read twice: second call is served from the cache
    # -----------------------------
    print("\nListing products...")
    for p in c.list_products():
        print(f"  {p['id']}: {p['title']} [{p['category']}] {p['price']} colors={[col['name'] for col in p['colors']]}")
    c.list_products()

    # -----------------------------
    # Delete a category with products: they move to a surviving one
    # -----------------------------
    print("\nDeleting category 'camisa'...")
    print(c.delete_category("camisa"))
    for p in c.list_products():
        print(f"  {p['title']} -> {p['category']}")

    print("\nHealth:")
    print(c.health())


if __name__ == "__main__":
    main()
