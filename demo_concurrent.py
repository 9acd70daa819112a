import asyncio
import os
from sdk.pycatalog import CatalogClient


async def save(client, label, products):
    r = await client.save_products_async(products)
    if r.status_code == 200:
        print(f"✅ {label} saved {r.json()['count']} products")
    else:
        print(f"❌ {label} failed with {r.status_code}: {r.text}")


async def main():
    c = CatalogClient(
        base_url=os.getenv("CATALOG_URL", "http://127.0.0.1:8085"),
        token=os.getenv("ADMIN_TOKEN", "authenticated_admin_token"),
    )
    c.save_categories(["camisa"])

    editor_a = [{"title": f"A-{i}", "price": 10, "category": "camisa"} for i in range(3)]
    editor_b = [{"title": f"B-{i}", "price": 20, "category": "camisa"} for i in range(5)]

    # Two replace-all writes race: each is delete-then-insert, nothing serializes them
    print("\n⚡ Two editors saving at once...")
    await asyncio.gather(
        save(c, "editor A", editor_a),
        save(c, "editor B", editor_b),
    )

    final = await c.list_products_async()
    print("\n📦 Final titles:", [p["title"] for p in final])
    print("   (whichever insert landed last wins; both sets may survive if the deletes ran first)")


if __name__ == "__main__":
    asyncio.run(main())
