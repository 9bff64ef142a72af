"""
HTTP client wrapper for a PostgREST-style roadmap backend.

Maps RemoteStore calls onto REST requests against one collection per entity
kind and turns every transport problem into RemoteStoreError.
"""

from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError
from pydantic_core import to_jsonable_python

from roadboard.constants import DEFAULT_STORE_TIMEOUT
from roadboard.exceptions import InvalidOperationError, NotFoundError, RemoteStoreError
from roadboard.logger import get_logger
from roadboard.managers.remote_store import SERVER_FIELDS, RemoteStore
from roadboard.models.base import BaseEntity
from roadboard.models.files import RoadmapSnapshot
from roadboard.models.kinds import EntityKind
from roadboard.models.roadmap import Roadmap

logger = get_logger(__name__)


class HttpRemoteStore(RemoteStore):
    """RemoteStore over HTTP with a shared httpx.AsyncClient.

    Usage:
        async with HttpRemoteStore("https://example.org/rest/v1", api_key="...") as store:
            snapshot = await store.fetch_all(roadmap_id)
    """

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = DEFAULT_STORE_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=self._headers(),
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Make a request and return the decoded JSON body (None when empty)."""
        if not self._client:
            raise InvalidOperationError("Client not initialized. Use 'async with' context manager.")

        logger.debug(f"API Request: {method} {path} {params or ''}")
        try:
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
            logger.debug(f"API Response: {response.status_code} for {method} {path}")
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise RemoteStoreError(f"{method} {path} timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            message = f"{method} {path} failed with HTTP {e.response.status_code}"
            if e.response.status_code == 404:
                raise NotFoundError(message) from e
            raise RemoteStoreError(message) from e
        except httpx.HTTPError as e:
            raise RemoteStoreError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise RemoteStoreError(f"{method} {path} returned invalid JSON") from e

    @staticmethod
    def _parse(kind: EntityKind, payload: Any) -> BaseEntity:
        try:
            return kind.model.model_validate(payload)
        except PydanticValidationError as e:
            raise RemoteStoreError(f"Unexpected {kind.value} payload: {e}") from e

    def _single(self, kind: EntityKind, rows: Any, record_id: str = "") -> BaseEntity:
        if not rows:
            raise NotFoundError(f"{kind.value} '{record_id}' not found")
        return self._parse(kind, rows[0])

    async def _children(self, kind: EntityKind, roadmap_id: str) -> List[Any]:
        rows = await self._request(
            "GET",
            f"/{kind.collection}",
            params={"roadmap_id": f"eq.{roadmap_id}", "order": "order_index.asc"},
        )
        return [self._parse(kind, row) for row in rows or []]

    async def fetch_all(self, roadmap_id: str) -> RoadmapSnapshot:
        rows = await self._request(
            "GET", f"/{EntityKind.ROADMAP.collection}", params={"id": f"eq.{roadmap_id}"}
        )
        return RoadmapSnapshot(
            roadmap=self._single(EntityKind.ROADMAP, rows, roadmap_id),
            objectives=await self._children(EntityKind.OBJECTIVE, roadmap_id),
            modules=await self._children(EntityKind.MODULE, roadmap_id),
            teams=await self._children(EntityKind.TEAM, roadmap_id),
            items=await self._children(EntityKind.ITEM, roadmap_id),
        )

    async def list_roadmaps(self) -> List[Roadmap]:
        rows = await self._request("GET", f"/{EntityKind.ROADMAP.collection}")
        return [self._parse(EntityKind.ROADMAP, row) for row in rows or []]

    async def create(self, kind: EntityKind, fields: Dict[str, Any]) -> BaseEntity:
        body = {k: v for k, v in fields.items() if k not in SERVER_FIELDS}
        rows = await self._request(
            "POST",
            f"/{kind.collection}",
            json=to_jsonable_python(body),
            headers={"Prefer": "return=representation"},
        )
        return self._single(kind, rows)

    async def update(self, kind: EntityKind, record_id: str, fields: Dict[str, Any]) -> BaseEntity:
        body = {k: v for k, v in fields.items() if k not in SERVER_FIELDS}
        rows = await self._request(
            "PATCH",
            f"/{kind.collection}",
            params={"id": f"eq.{record_id}"},
            json=to_jsonable_python(body),
            headers={"Prefer": "return=representation"},
        )
        return self._single(kind, rows, record_id)

    async def delete(self, kind: EntityKind, record_id: str) -> None:
        # Clearing item foreign keys is done server side (ON DELETE SET NULL)
        await self._request(
            "DELETE", f"/{kind.collection}", params={"id": f"eq.{record_id}"}
        )
