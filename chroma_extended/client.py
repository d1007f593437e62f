"""
ChromaClientExtended — Chroma HTTP client that sends custom headers.

Behaves like a regular async Chroma client, but every request it (and
every Collection it hands out) makes carries the headers given at
construction.  Typical use is an API gateway in front of Chroma that
wants an `x-api-key`:

    client = ChromaClientExtended(
        path="https://chroma.example.com",
        headers={"x-api-key": "..."},
    )
    collection = await client.get_or_create_collection("docs")
    await collection.add(ids="a", embeddings=[0.1, 0.2, 0.3])

Or from config.yaml:

    client = ChromaClientExtended.from_config()
"""

from __future__ import annotations

import logging
from pathlib import Path

import httpx

from chroma_extended.api import DEFAULT_PATH, ApiClient, ApiConfig
from chroma_extended.collection import Collection
from chroma_extended.config import get_config, load_config, setup_logging
from chroma_extended.embeddings import make_embedding_function

logger = logging.getLogger(__name__)


class ChromaClientExtended:
    """
    Service-level operations and collection lifecycle.

    The headers, path and timeout are fixed once the client exists;
    build a new client to change them.
    """

    def __init__(
        self,
        path: str | None = None,
        headers: dict | None = None,
        timeout: float = 30.0,
        embedding_function=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api = ApiClient(
            ApiConfig(base_path=path or DEFAULT_PATH, headers=headers or {}, timeout=timeout),
            transport=transport,
        )
        # Used for collections opened without their own embedding function
        self.embedding_function = embedding_function
        logger.info(
            "ChromaClientExtended initialised (path=%s, headers=%s)",
            self._api.config.base_path,
            sorted(self._api.config.headers),
        )

    @classmethod
    def from_config(
        cls,
        cfg: dict | None = None,
        path: Path | str | None = None,
        **kwargs,
    ) -> "ChromaClientExtended":
        """
        Build a client from the `chroma` and `embedding` config sections.

        With no `cfg`, config.yaml is loaded from `path` (default: the
        working directory).  A `logging` section, when present, is applied
        via setup_logging().
        """
        if cfg is None:
            cfg = load_config(path) if path is not None else get_config()
        if cfg.get("logging"):
            setup_logging(cfg)
        chroma_cfg = cfg.get("chroma") or {}
        kwargs.setdefault("path", chroma_cfg.get("path"))
        kwargs.setdefault("headers", chroma_cfg.get("headers") or {})
        kwargs.setdefault("timeout", float(chroma_cfg.get("timeout", 30)))
        if "embedding_function" not in kwargs:
            kwargs["embedding_function"] = make_embedding_function(cfg.get("embedding"))
        return cls(**kwargs)

    @property
    def path(self) -> str:
        return self._api.config.base_path

    @property
    def headers(self) -> dict:
        """Copy of the headers attached to every request."""
        return dict(self._api.config.headers)

    def _collection(self, data: dict, metadata, embedding_function) -> Collection:
        return Collection(
            data.get("name"),
            data.get("id"),
            self._api,
            metadata,
            embedding_function if embedding_function is not None else self.embedding_function,
        )

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    async def reset(self) -> bool:
        """Wipe the whole database (the server must allow resets)."""
        return await self._api.reset()

    async def version(self) -> str:
        return await self._api.version()

    async def heartbeat(self) -> int:
        """Server time in nanoseconds; doubles as a liveness check."""
        data = await self._api.heartbeat()
        return data["nanosecond heartbeat"]

    async def persist(self):
        raise NotImplementedError("persist is not available over HTTP")

    # ------------------------------------------------------------------
    # Collections
    # ------------------------------------------------------------------

    async def create_collection(
        self,
        name: str,
        metadata: dict | None = None,
        embedding_function=None,
    ) -> Collection:
        """Create a collection; fails remotely if the name is taken."""
        data = await self._api.create_collection(name, metadata)
        logger.debug("Created collection '%s' (%s)", name, data.get("id"))
        return self._collection({**data, "name": name}, metadata, embedding_function)

    async def get_or_create_collection(
        self,
        name: str,
        metadata: dict | None = None,
        embedding_function=None,
    ) -> Collection:
        """Return the named collection, creating it first if needed."""
        data = await self._api.create_collection(name, metadata, get_or_create=True)
        return self._collection(
            {**data, "name": name}, data.get("metadata"), embedding_function
        )

    async def get_collection(self, name: str, embedding_function=None) -> Collection:
        data = await self._api.get_collection(name)
        return self._collection(data, data.get("metadata"), embedding_function)

    async def list_collections(self) -> list[dict]:
        return await self._api.list_collections()

    async def delete_collection(self, name: str) -> None:
        await self._api.delete_collection(name)
        logger.debug("Deleted collection '%s'", name)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} path={self.path!r}>"
