"""
Shapes of the values that flow between callers and the Chroma service.

Record fields accept either a single value or a list of values; the
validation layer turns both into lists before anything is sent.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, NamedTuple, Union

ID = str
IDs = list[str]
Embedding = list[float]
Embeddings = list[Embedding]
Metadata = dict[str, Union[str, int, float, bool]]
Metadatas = list[Metadata]
Document = str
Documents = list[str]

# Filter documents are passed through to the service as-is
Where = dict[str, Any]
WhereDocument = dict[str, Any]


class Include(str, Enum):
    """Fields the service can return from get/query."""
    EMBEDDINGS = "embeddings"
    DOCUMENTS = "documents"
    METADATAS = "metadatas"
    DISTANCES = "distances"


class NormalizedBatch(NamedTuple):
    """Aligned record columns ready for a bulk endpoint."""
    ids: IDs
    embeddings: Embeddings | None
    metadatas: Metadatas | None
    documents: Documents | None
