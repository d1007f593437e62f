"""
Collection — record operations on one Chroma collection.

Instances come from ChromaClientExtended (create_collection,
get_or_create_collection, get_collection); they share the client's
ApiClient and therefore its headers.

Write paths (add / upsert / update) and query run the validation layer
first, so a malformed batch never reaches the network.
"""

from __future__ import annotations

import logging
from typing import Any

from chroma_extended.api import ApiClient
from chroma_extended.errors import MissingInputError
from chroma_extended.models import (
    ID,
    IDs,
    Document,
    Documents,
    Embedding,
    Embeddings,
    Include,
    Metadata,
    Metadatas,
    Where,
    WhereDocument,
)
from chroma_extended.validation import to_list, validate_batch, validate_query

logger = logging.getLogger(__name__)


def _include(include: list[Include | str] | None) -> list[str] | None:
    if include is None:
        return None
    return [getattr(i, "value", i) for i in include]


class Collection:
    """A named set of records held by the service."""

    def __init__(
        self,
        name: str,
        id: str,
        api: ApiClient,
        metadata: dict | None = None,
        embedding_function=None,
    ):
        self.name = name
        self.id = id
        self.metadata = metadata
        self.embedding_function = embedding_function
        self._api = api

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def add(
        self,
        ids: ID | IDs,
        embeddings: Embedding | Embeddings | None = None,
        metadatas: Metadata | Metadatas | None = None,
        documents: Document | Documents | None = None,
    ) -> Any:
        """
        Add records.  Every field takes a single value or a list.

        When embeddings are omitted they are generated from documents
        with the collection's embedding function.

            await collection.add(
                ids=["id1", "id2"],
                embeddings=[[1, 2, 3], [4, 5, 6]],
                metadatas=[{"key": "value"}, {"key": "value"}],
                documents=["document1", "document2"],
            )
        """
        batch = await validate_batch(
            True, ids, embeddings, metadatas, documents, self.embedding_function
        )
        logger.debug("add: %d record(s) to '%s'", len(batch.ids), self.name)
        return await self._api.add(self.id, batch._asdict())

    async def upsert(
        self,
        ids: ID | IDs,
        embeddings: Embedding | Embeddings | None = None,
        metadatas: Metadata | Metadatas | None = None,
        documents: Document | Documents | None = None,
    ) -> Any:
        """Insert records, overwriting any that already exist."""
        batch = await validate_batch(
            True, ids, embeddings, metadatas, documents, self.embedding_function
        )
        logger.debug("upsert: %d record(s) to '%s'", len(batch.ids), self.name)
        return await self._api.upsert(self.id, batch._asdict())

    async def update(
        self,
        ids: ID | IDs,
        embeddings: Embedding | Embeddings | None = None,
        metadatas: Metadata | Metadatas | None = None,
        documents: Document | Documents | None = None,
    ) -> Any:
        """
        Update embeddings, documents and/or metadatas of existing records.

        At least one of the three must be given; fields left out are not
        touched on the service.
        """
        if embeddings is None and documents is None and metadatas is None:
            raise MissingInputError(
                "embeddings, documents, and metadatas cannot all be undefined"
            )
        batch = await validate_batch(
            False, ids, embeddings, metadatas, documents, self.embedding_function
        )
        logger.debug("update: %d record(s) in '%s'", len(batch.ids), self.name)
        return await self._api.update(self.id, batch._asdict())

    async def delete(
        self,
        ids: ID | IDs | None = None,
        where: Where | None = None,
        where_document: WhereDocument | None = None,
    ) -> list[str]:
        """Delete records by id and/or filter.  Returns the deleted ids."""
        return await self._api.delete(
            self.id,
            {
                "ids": to_list(ids) if ids is not None else None,
                "where": where,
                "where_document": where_document,
            },
        )

    async def modify(self, name: str | None = None, metadata: dict | None = None) -> Any:
        """Rename the collection and/or replace its metadata."""
        resp = await self._api.update_collection(
            self.id, new_name=name, new_metadata=metadata
        )
        self.name = name or self.name
        self.metadata = metadata or self.metadata
        return resp

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def count(self) -> int:
        return await self._api.count(self.id)

    async def get(
        self,
        ids: ID | IDs | None = None,
        where: Where | None = None,
        limit: int | None = None,
        offset: int | None = None,
        include: list[Include | str] | None = None,
        where_document: WhereDocument | None = None,
    ) -> dict:
        """Fetch records by id and/or filter."""
        return await self._api.get(
            self.id,
            {
                "ids": to_list(ids) if ids is not None else None,
                "where": where,
                "limit": limit,
                "offset": offset,
                "include": _include(include),
                "where_document": where_document,
            },
        )

    async def peek(self, limit: int = 10) -> dict:
        """First `limit` records of the collection."""
        return await self._api.get(self.id, {"limit": limit})

    async def query(
        self,
        query_embeddings: Embedding | Embeddings | None = None,
        n_results: int = 10,
        where: Where | None = None,
        query_texts: Document | Documents | None = None,
        where_document: WhereDocument | None = None,
        include: list[Include | str] | None = None,
    ) -> dict:
        """
        Nearest-neighbour search.

        Pass exactly one of query_embeddings or query_texts; texts are
        embedded with the collection's embedding function first.
        """
        vectors = await validate_query(
            query_embeddings, query_texts, self.embedding_function
        )
        return await self._api.query(
            self.id,
            {
                "query_embeddings": vectors,
                "n_results": n_results,
                "where": where,
                "where_document": where_document,
                "include": _include(include),
            },
        )

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} id={self.id!r}>"
