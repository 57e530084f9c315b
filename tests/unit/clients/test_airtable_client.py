"""
Unit tests for the Airtable REST client.
"""
import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from cio.clients.airtable import AirtableClient, Record
from cio.clients.base import APIError


def _query(request: httpx.Request):
    return parse_qs(urlparse(str(request.url)).query)


@pytest.mark.asyncio
async def test_list_records_follows_offset(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        query = _query(request)
        if "offset" not in query:
            return httpx.Response(200, json={"records": [{"id": "rec1", "fields": {"name": "a"}}], "offset": "page2"})
        assert query["offset"] == ["page2"]
        return httpx.Response(200, json={"records": [{"id": "rec2", "fields": {"name": "b"}}]})

    http_client, recorder = mock_http(handler)
    client = AirtableClient("key", "appBase", http_client=http_client)

    records = await client.list_records("Mailing List Signups")

    assert [r.id for r in records] == ["rec1", "rec2"]
    assert len(recorder.requests) == 2
    first = recorder.requests[0]
    assert first.url.path == "/v0/appBase/Mailing List Signups"
    assert first.headers["Authorization"] == "Bearer key"
    assert _query(first)["view"] == ["Grid view"]


@pytest.mark.asyncio
async def test_create_records_batches_by_ten(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert body["typecast"] is True
        return httpx.Response(200, json={
            "records": [{"id": f"rec{r['fields']['id']}", "fields": r["fields"]} for r in body["records"]],
        })

    http_client, recorder = mock_http(handler)
    client = AirtableClient("key", "appBase", http_client=http_client)

    created = await client.create_records("Functions", [{"id": i} for i in range(23)])

    assert len(created) == 23
    assert [len(json.loads(r.content)["records"]) for r in recorder.requests] == [10, 10, 3]


@pytest.mark.asyncio
async def test_update_records_patches_ids_and_fields(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "PATCH"
        return httpx.Response(200, json=json.loads(request.content))

    http_client, recorder = mock_http(handler)
    client = AirtableClient("key", "appBase", http_client=http_client)

    updated = await client.update_records("Companies", [Record(id="rec1", fields={"name": "Oxide"})])

    assert updated[0].id == "rec1"
    assert json.loads(recorder.requests[0].content)["records"] == [{"id": "rec1", "fields": {"name": "Oxide"}}]


@pytest.mark.asyncio
async def test_delete_records_returns_deleted_ids(mock_http):
    def handler(request: httpx.Request) -> httpx.Response:
        ids = _query(request)["records[]"]
        return httpx.Response(200, json={"records": [{"id": i, "deleted": True} for i in ids]})

    http_client, _ = mock_http(handler)
    client = AirtableClient("key", "appBase", http_client=http_client)

    assert await client.delete_records("Bookings", ["rec1", "rec2"]) == ["rec1", "rec2"]


@pytest.mark.asyncio
async def test_unexpected_status_raises_api_error(mock_http):
    http_client, _ = mock_http(lambda request: httpx.Response(422, json={"error": "INVALID_REQUEST"}))
    client = AirtableClient("key", "appBase", http_client=http_client)

    with pytest.raises(APIError) as exc_info:
        await client.get_record("Companies", "rec1")

    assert exc_info.value.status_code == 422
    assert "INVALID_REQUEST" in exc_info.value.body
