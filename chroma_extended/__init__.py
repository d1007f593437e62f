"""
chroma-extended — async Chroma HTTP client with custom request headers.
"""
from chroma_extended.client import ChromaClientExtended
from chroma_extended.collection import Collection
from chroma_extended.embeddings import (
    EmbeddingFunction,
    OllamaEmbeddingFunction,
    OpenAIEmbeddingFunction,
    make_embedding_function,
)
from chroma_extended.errors import (
    ChromaExtendedError,
    ConflictingInputError,
    DuplicateIDError,
    EmbeddingError,
    EmbeddingFunctionMissingError,
    InvalidIDError,
    InvariantError,
    LengthMismatchError,
    MissingInputError,
    RemoteError,
)
from chroma_extended.models import Include, NormalizedBatch

__version__ = "0.1.0"

__all__ = [
    "ChromaClientExtended",
    "Collection",
    "EmbeddingFunction",
    "OllamaEmbeddingFunction",
    "OpenAIEmbeddingFunction",
    "make_embedding_function",
    "ChromaExtendedError",
    "ConflictingInputError",
    "DuplicateIDError",
    "EmbeddingError",
    "EmbeddingFunctionMissingError",
    "InvalidIDError",
    "InvariantError",
    "LengthMismatchError",
    "MissingInputError",
    "RemoteError",
    "Include",
    "NormalizedBatch",
]
