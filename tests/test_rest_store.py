# tests/test_rest_store.py
import asyncio
import json

import httpx
import pytest

from catalog.errors import UpstreamFailure
from catalog.rest_store import PostgrestStore


def make_store(handler):
    return PostgrestStore(
        "https://example.supabase.co/",
        "service-key",
        transport=httpx.MockTransport(handler),
    )


def run(store, coro_fn):
    async def scenario():
        try:
            return await coro_fn(store)
        finally:
            await store.close()

    return asyncio.run(scenario())


def test_list_products_query_and_headers():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1, "title": "Tee"}])

    rows = run(make_store(handler), lambda s: s.list_products())
    assert rows == [{"id": 1, "title": "Tee"}]
    req = seen[0]
    assert req.method == "GET"
    assert req.url.path == "/rest/v1/products"
    assert req.url.params["order"] == "id.asc"
    assert req.headers["apikey"] == "service-key"
    assert req.headers["authorization"] == "Bearer service-key"


def test_delete_all_products_uses_match_all_filter():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    run(make_store(handler), lambda s: s.delete_all_products())
    assert seen[0].method == "DELETE"
    assert seen[0].url.params["id"] == "neq.0"


def test_bulk_insert_sends_rows_and_asks_for_representation():
    seen = []

    def handler(request):
        seen.append(request)
        rows = json.loads(request.content)
        return httpx.Response(201, json=[dict(r, id=i + 1) for i, r in enumerate(rows)])

    rows = run(make_store(handler), lambda s: s.insert_products([{"title": "A"}, {"title": "B"}]))
    assert [r["id"] for r in rows] == [1, 2]
    assert seen[0].headers["prefer"] == "return=representation"


def test_reassign_products_patches_by_category():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=[{"id": 1}, {"id": 2}])

    moved = run(make_store(handler), lambda s: s.reassign_products("camisa", "calca"))
    assert moved == 2
    req = seen[0]
    assert req.method == "PATCH"
    assert req.url.params["category"] == "eq.camisa"
    assert json.loads(req.content) == {"category": "calca"}


def test_upsert_categories_merges_on_id():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(201, json=json.loads(request.content))

    run(make_store(handler), lambda s: s.upsert_categories([{"id": "a", "name": "A", "description": "d"}]))
    req = seen[0]
    assert req.url.params["on_conflict"] == "id"
    assert "resolution=merge-duplicates" in req.headers["prefer"]


def test_delete_categories_not_in_builds_quoted_list():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(204)

    run(make_store(handler), lambda s: s.delete_categories_not_in(["a", "b c"]))
    assert seen[0].url.params["id"] == 'not.in.("a","b c")'


def test_get_category_and_first_other():
    def handler(request):
        if request.url.params.get("limit") == "1":
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[{"id": "a", "name": "A"}])

    store = make_store(handler)

    async def both(s):
        return await s.get_category("a"), await s.first_other_category("a")

    category, other = run(store, both)
    assert category == {"id": "a", "name": "A"}
    assert other is None


@pytest.mark.parametrize("content_range,expected", [("0-24/25", 25), ("*/0", 0), ("", 0)])
def test_counts_read_content_range(content_range, expected):
    def handler(request):
        assert request.method == "HEAD"
        assert request.headers["prefer"] == "count=exact"
        headers = {"Content-Range": content_range} if content_range else {}
        return httpx.Response(200, headers=headers)

    assert run(make_store(handler), lambda s: s.count_products()) == expected


def test_http_error_becomes_upstream_failure():
    def handler(request):
        return httpx.Response(400, json={"message": 'column "colour" does not exist'})

    with pytest.raises(UpstreamFailure) as exc:
        run(make_store(handler), lambda s: s.list_products())
    assert exc.value.detail == 'column "colour" does not exist'


def test_transport_error_becomes_upstream_failure():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(UpstreamFailure) as exc:
        run(make_store(handler), lambda s: s.list_categories())
    assert "connection refused" in exc.value.detail
