"""
HTTP transport for the Chroma v1 REST API.

One method per service endpoint.  Every request carries the headers
captured in ApiConfig at construction time (API keys for a gateway in
front of Chroma, tenant tags, ...).  Each call opens its own short-lived
httpx.AsyncClient, so an ApiClient holds no connection state and is safe
to share between concurrent tasks.

Errors:
  - status >= 400  -> RemoteError carrying the service's own message
  - network errors -> httpx exceptions propagate unchanged
Nothing is retried here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

import httpx

from chroma_extended.errors import RemoteError

logger = logging.getLogger(__name__)

DEFAULT_PATH = "http://localhost:8000"
API_PREFIX = "/api/v1"


@dataclass(frozen=True)
class ApiConfig:
    """Read-only transport settings shared by every request."""
    base_path: str = DEFAULT_PATH
    headers: Mapping[str, str] = field(default_factory=dict)
    timeout: float = 30.0

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_path", (self.base_path or DEFAULT_PATH).rstrip("/"))
        # Copy so later mutation of the caller's dict can't leak into requests
        clean = {str(k): str(v) for k, v in dict(self.headers or {}).items() if v}
        object.__setattr__(self, "headers", MappingProxyType(clean))


def _compact(body: dict) -> dict:
    """Drop unset keys; the service treats a missing key as 'not given'."""
    return {k: v for k, v in body.items() if v is not None}


def _error_message(resp: httpx.Response) -> str:
    """Pull the service's error text out of a failed response."""
    try:
        data = resp.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return resp.text or f"HTTP {resp.status_code}"


class ApiClient:
    """Thin binding over the Chroma HTTP API with uniform header injection."""

    def __init__(self, config: ApiConfig, transport: httpx.AsyncBaseTransport | None = None):
        self.config = config
        self._transport = transport

    async def _request(self, method: str, path: str, body: dict | None = None) -> Any:
        url = f"{self.config.base_path}{API_PREFIX}{path}"
        logger.debug("%s %s", method, url)
        async with httpx.AsyncClient(
            timeout=self.config.timeout,
            headers=dict(self.config.headers),
            transport=self._transport,
        ) as client:
            resp = await client.request(
                method,
                url,
                json=_compact(body) if body is not None else None,
            )

        if resp.status_code >= 400:
            message = _error_message(resp)
            logger.warning("%s %s failed: HTTP %d: %s", method, path, resp.status_code, message)
            raise RemoteError(message, status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as e:
            logger.warning("%s %s returned non-JSON body: HTTP %d", method, path, resp.status_code)
            raise RemoteError(resp.text[:200], status_code=resp.status_code) from e

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    async def heartbeat(self) -> dict:
        return await self._request("GET", "")

    async def version(self) -> str:
        return await self._request("GET", "/version")

    async def reset(self) -> bool:
        return await self._request("POST", "/reset")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def list_collections(self) -> list[dict]:
        return await self._request("GET", "/collections")

    async def create_collection(
        self,
        name: str,
        metadata: dict | None = None,
        get_or_create: bool | None = None,
    ) -> dict:
        return await self._request(
            "POST",
            "/collections",
            {"name": name, "metadata": metadata, "get_or_create": get_or_create},
        )

    async def get_collection(self, name: str) -> dict:
        return await self._request("GET", f"/collections/{name}")

    async def update_collection(
        self,
        collection_id: str,
        new_name: str | None = None,
        new_metadata: dict | None = None,
    ) -> Any:
        return await self._request(
            "PUT",
            f"/collections/{collection_id}",
            {"new_name": new_name, "new_metadata": new_metadata},
        )

    async def delete_collection(self, name: str) -> Any:
        return await self._request("DELETE", f"/collections/{name}")

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def add(self, collection_id: str, body: dict) -> Any:
        return await self._request("POST", f"/collections/{collection_id}/add", body)

    async def upsert(self, collection_id: str, body: dict) -> Any:
        return await self._request("POST", f"/collections/{collection_id}/upsert", body)

    async def update(self, collection_id: str, body: dict) -> Any:
        return await self._request("POST", f"/collections/{collection_id}/update", body)

    async def get(self, collection_id: str, body: dict) -> dict:
        return await self._request("POST", f"/collections/{collection_id}/get", body)

    async def delete(self, collection_id: str, body: dict) -> list[str]:
        return await self._request("POST", f"/collections/{collection_id}/delete", body)

    async def query(self, collection_id: str, body: dict) -> dict:
        return await self._request("POST", f"/collections/{collection_id}/query", body)

    async def count(self, collection_id: str) -> int:
        return await self._request("GET", f"/collections/{collection_id}/count")

    def __repr__(self) -> str:
        return (
            f"<{self.__class__.__name__} base_path={self.config.base_path!r} "
            f"headers={sorted(self.config.headers)!r}>"
        )
