"""
Request normalization and validation for bulk record operations.

Callers may pass a single id / vector / metadata dict / document or a list
of them.  validate_batch() resolves every field to a list once, derives
missing vectors from documents through the embedding function, and checks
the batch structure (id types, equal lengths, unique ids) before anything
is sent to the service.

Usage:
    ids, embeddings, metadatas, documents = await validate_batch(
        True, ids="a", embeddings=[0.1, 0.2], embedding_function=ef,
    )
"""

from __future__ import annotations

import inspect
import logging
from numbers import Number
from typing import Any

from chroma_extended.errors import (
    ConflictingInputError,
    DuplicateIDError,
    EmbeddingError,
    EmbeddingFunctionMissingError,
    InvalidIDError,
    InvariantError,
    LengthMismatchError,
    MissingInputError,
)
from chroma_extended.models import NormalizedBatch

logger = logging.getLogger(__name__)

_NO_EMBEDDING_FUNCTION = (
    "embedding_function is undefined. Please configure an embedding function"
)


# ---------------------------------------------------------------------------
# Scalar-or-list coercion
# ---------------------------------------------------------------------------

def _plain(value: Any) -> Any:
    """Unwrap array-likes (numpy arrays etc.) into plain Python lists."""
    if hasattr(value, "tolist") and not isinstance(value, (str, bytes)):
        return value.tolist()
    return value


def to_list(value: Any) -> list:
    """Wrap a lone value in a list; pass lists (and tuples) through as lists."""
    value = _plain(value)
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def to_list_of_lists(value: Any) -> list[list]:
    """
    Normalize one vector or a list of vectors into a list of vectors.

    A flat sequence of numbers is a single vector and becomes a one-element
    list.  An empty sequence is an empty batch.
    """
    value = to_list(value)
    if not value:
        return []
    if _is_number(value[0]):
        return [value]
    return [list(_plain(v)) for v in value]


# ---------------------------------------------------------------------------
# Embedding
# ---------------------------------------------------------------------------

async def embed(embedding_function, texts: list[str]) -> list[list[float]]:
    """
    Run the embedding function over texts.

    Accepts both plain and coroutine `generate` implementations.
    """
    if embedding_function is None:
        raise EmbeddingFunctionMissingError(_NO_EMBEDDING_FUNCTION)
    logger.debug(
        "Embedding %d document(s) with %s", len(texts), type(embedding_function).__name__
    )
    result = embedding_function.generate(texts)
    if inspect.isawaitable(result):
        result = await result
    if result is None:
        raise EmbeddingError(
            f"{type(embedding_function).__name__}.generate returned no vectors"
        )
    return to_list_of_lists(result)


# ---------------------------------------------------------------------------
# Validators
# ---------------------------------------------------------------------------

async def validate_batch(
    require_embeddings_or_documents: bool,
    ids,
    embeddings=None,
    metadatas=None,
    documents=None,
    embedding_function=None,
) -> NormalizedBatch:
    """
    Normalize and validate a batch for add / upsert / update.

    require_embeddings_or_documents is True for inserts and False for
    updates, where a metadata-only batch is allowed and the returned
    embeddings may be None.

    Raises:
        MissingInputError: insert with neither embeddings nor documents.
        EmbeddingFunctionMissingError: documents need embedding, none configured.
        InvariantError: insert ended up without embeddings.
        InvalidIDError: an id is not a string.
        LengthMismatchError: fields disagree in length.
        DuplicateIDError: ids repeat within the batch.
    """
    if require_embeddings_or_documents and embeddings is None and documents is None:
        raise MissingInputError("embeddings and documents cannot both be undefined")

    if embeddings is None and documents is not None:
        embeddings = await embed(embedding_function, to_list(documents))

    if require_embeddings_or_documents and embeddings is None:
        raise InvariantError("embeddings is undefined but shouldn't be")

    ids_list = to_list(ids)
    embeddings_list = to_list_of_lists(embeddings) if embeddings is not None else None
    metadatas_list = to_list(metadatas) if metadatas is not None else None
    documents_list = to_list(documents) if documents is not None else None

    for i, item in enumerate(ids_list):
        if not isinstance(item, str):
            raise InvalidIDError(
                f"Expected ids to be strings, found {type(item).__name__} at index {i}",
                index=i,
            )

    lengths = {"ids": len(ids_list)}
    for name, field in (
        ("embeddings", embeddings_list),
        ("metadatas", metadatas_list),
        ("documents", documents_list),
    ):
        if field is not None:
            lengths[name] = len(field)
    if len(set(lengths.values())) > 1:
        detail = ", ".join(f"{k}={v}" for k, v in lengths.items())
        raise LengthMismatchError(
            "ids, embeddings, metadatas, and documents must all be the same length "
            f"(got {detail})",
            lengths=lengths,
        )

    seen: set[str] = set()
    duplicates: list[str] = []
    for item in ids_list:
        if item in seen and item not in duplicates:
            duplicates.append(item)
        seen.add(item)
    if duplicates:
        raise DuplicateIDError(
            f"Expected IDs to be unique, found duplicates for: {', '.join(duplicates)}",
            duplicates=duplicates,
        )

    logger.debug("Validated batch of %d record(s)", len(ids_list))
    return NormalizedBatch(ids_list, embeddings_list, metadatas_list, documents_list)


async def validate_query(
    query_embeddings=None,
    query_texts=None,
    embedding_function=None,
) -> list[list[float]]:
    """Resolve query input to a list of query vectors; exactly one source allowed."""
    if query_embeddings is None and query_texts is None:
        raise MissingInputError("query_embeddings and query_texts cannot both be undefined")
    if query_embeddings is not None and query_texts is not None:
        raise ConflictingInputError(
            "Provide either query_embeddings or query_texts, not both"
        )

    if query_embeddings is not None:
        return to_list_of_lists(query_embeddings)

    texts = to_list(query_texts)
    vectors = to_list_of_lists(await embed(embedding_function, texts))
    if len(vectors) != len(texts):
        lengths = {"query_texts": len(texts), "query_embeddings": len(vectors)}
        raise LengthMismatchError(
            f"Embedding function returned {len(vectors)} vector(s) "
            f"for {len(texts)} query text(s)",
            lengths=lengths,
        )
    return vectors
