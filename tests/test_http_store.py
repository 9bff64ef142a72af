"""
Tests for HttpRemoteStore against an httpx.MockTransport.
"""
import asyncio
import json

import httpx
import pytest

from roadboard.exceptions import InvalidOperationError, NotFoundError, RemoteStoreError
from roadboard.managers.csv_importer import parse_import
from roadboard.managers.http_store import HttpRemoteStore
from roadboard.models.base import RoadmapStatus
from roadboard.models.kinds import EntityKind

BASE_URL = "https://db.example.org/rest/v1"

ROADMAP_ROW = {"id": "roadmap-1", "title": "Remote Roadmap", "owner": "ana"}
ITEM_ROW = {"id": "item-1", "roadmap_id": "roadmap-1", "title": "Ship v2", "status": "now", "tags": None}


class Recorder:
    """Mock transport handler that records requests and replies from a table."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path.rsplit("/", 1)[-1])
        reply = self.routes.get(key, httpx.Response(200, json=[]))
        if isinstance(reply, Exception):
            raise reply
        return reply


def call(routes, action, api_key="secret"):
    """Run action(store) against a store backed by the given routes."""
    handler = Recorder(routes)

    async def main():
        async with HttpRemoteStore(BASE_URL, api_key=api_key, transport=httpx.MockTransport(handler)) as store:
            return await action(store)

    return asyncio.run(main()), handler.requests


class TestFetch:
    def test_fetch_all(self):
        routes = {
            ("GET", "roadmaps"): httpx.Response(200, json=[ROADMAP_ROW]),
            ("GET", "objectives"): httpx.Response(200, json=[
                {"id": "obj-1", "roadmap_id": "roadmap-1", "title": "Growth", "order_index": 0},
            ]),
            ("GET", "roadmap_items"): httpx.Response(200, json=[ITEM_ROW]),
        }
        snapshot, requests = call(routes, lambda store: store.fetch_all("roadmap-1"))

        assert snapshot.roadmap.title == "Remote Roadmap"
        assert [o.title for o in snapshot.objectives] == ["Growth"]
        assert snapshot.modules == []
        assert snapshot.items[0].status == RoadmapStatus.NOW
        assert snapshot.items[0].tags == []

        assert requests[0].url.params["id"] == "eq.roadmap-1"
        children = [r for r in requests if r.url.path.endswith("/roadmap_items")][0]
        assert children.url.params["roadmap_id"] == "eq.roadmap-1"
        assert children.url.params["order"] == "order_index.asc"

    def test_fetch_unknown_roadmap(self):
        with pytest.raises(NotFoundError):
            call({("GET", "roadmaps"): httpx.Response(200, json=[])}, lambda store: store.fetch_all("nope"))

    def test_auth_headers(self):
        _, requests = call({}, lambda store: store.list_roadmaps())
        assert requests[0].headers["apikey"] == "secret"
        assert requests[0].headers["authorization"] == "Bearer secret"

    def test_no_auth_headers_without_key(self):
        _, requests = call({}, lambda store: store.list_roadmaps(), api_key=None)
        assert "apikey" not in requests[0].headers
        assert "authorization" not in requests[0].headers


class TestWrites:
    def test_create_posts_body_without_server_fields(self):
        routes = {("POST", "roadmap_items"): httpx.Response(201, json=[ITEM_ROW])}
        item, requests = call(routes, lambda store: store.create(
            EntityKind.ITEM, {"id": "x", "roadmap_id": "roadmap-1", "title": "Ship v2", "status": RoadmapStatus.NOW}
        ))

        assert item.id == "item-1"
        body = json.loads(requests[0].content)
        assert body == {"roadmap_id": "roadmap-1", "title": "Ship v2", "status": "now"}
        assert requests[0].headers["prefer"] == "return=representation"

    def test_import_record_without_tags_posts_no_tags(self):
        record = parse_import("Ship v2;;now", has_headers=False).records[0]
        routes = {("POST", "roadmap_items"): httpx.Response(201, json=[ITEM_ROW])}
        item, requests = call(routes, lambda store: store.create(
            EntityKind.ITEM, {**record.to_item_fields(), "roadmap_id": "roadmap-1"}
        ))

        body = json.loads(requests[0].content)
        assert "tags" not in body
        assert body["status"] == "now"
        assert item.tags == []

    def test_update_patches_by_id(self):
        routes = {("PATCH", "roadmap_items"): httpx.Response(200, json=[{**ITEM_ROW, "status": "later"}])}
        item, requests = call(routes, lambda store: store.update(EntityKind.ITEM, "item-1", {"status": "later"}))

        assert item.status == RoadmapStatus.LATER
        assert requests[0].method == "PATCH"
        assert requests[0].url.params["id"] == "eq.item-1"
        assert json.loads(requests[0].content) == {"status": "later"}

    def test_update_with_no_matching_row(self):
        routes = {("PATCH", "teams"): httpx.Response(200, json=[])}
        with pytest.raises(NotFoundError):
            call(routes, lambda store: store.update(EntityKind.TEAM, "nope", {"title": "T"}))

    def test_delete(self):
        routes = {("DELETE", "modules"): httpx.Response(204)}
        result, requests = call(routes, lambda store: store.delete(EntityKind.MODULE, "mod-1"))
        assert result is None
        assert requests[0].url.params["id"] == "eq.mod-1"


class TestErrors:
    def test_server_error(self):
        routes = {("PATCH", "roadmap_items"): httpx.Response(500, json={"message": "boom"})}
        with pytest.raises(RemoteStoreError, match="HTTP 500"):
            call(routes, lambda store: store.update(EntityKind.ITEM, "item-1", {"status": "now"}))

    def test_not_found_status(self):
        routes = {("GET", "roadmaps"): httpx.Response(404)}
        with pytest.raises(NotFoundError):
            call(routes, lambda store: store.list_roadmaps())

    def test_timeout(self):
        routes = {("GET", "roadmaps"): httpx.ReadTimeout("too slow")}
        with pytest.raises(RemoteStoreError, match="timed out"):
            call(routes, lambda store: store.list_roadmaps())

    def test_connection_error(self):
        routes = {("GET", "roadmaps"): httpx.ConnectError("refused")}
        with pytest.raises(RemoteStoreError):
            call(routes, lambda store: store.list_roadmaps())

    def test_invalid_json(self):
        routes = {("GET", "roadmaps"): httpx.Response(200, content=b"<html>")}
        with pytest.raises(RemoteStoreError, match="invalid JSON"):
            call(routes, lambda store: store.list_roadmaps())

    def test_unexpected_payload(self):
        routes = {("GET", "roadmaps"): httpx.Response(200, json=[{"id": "r"}])}
        with pytest.raises(RemoteStoreError, match="Unexpected roadmap payload"):
            call(routes, lambda store: store.list_roadmaps())

    def test_requires_context_manager(self):
        store = HttpRemoteStore(BASE_URL)
        with pytest.raises(InvalidOperationError):
            asyncio.run(store.list_roadmaps())
