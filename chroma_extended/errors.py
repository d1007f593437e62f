"""
Error taxonomy for chroma-extended.

Every failure raised by this package derives from ChromaExtendedError and
also from the builtin exception a caller would naturally expect
(ValueError for bad input, TypeError for a bad id, RuntimeError for
configuration problems), so both

    except ChromaExtendedError: ...
    except ValueError: ...

work.  Validation errors are always raised before any request is sent.
"""

from __future__ import annotations


class ChromaExtendedError(Exception):
    """Base for all errors raised by chroma-extended."""

    code = "CHROMA_EXTENDED_ERROR"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def asdict(self) -> dict:
        return {"code": self.code, "error": type(self).__name__, "message": self.message}


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class MissingInputError(ChromaExtendedError, ValueError):
    """Neither vectors nor text were supplied where at least one is required."""

    code = "MISSING_INPUT"


class ConflictingInputError(ChromaExtendedError, ValueError):
    """Mutually exclusive inputs were supplied together."""

    code = "CONFLICTING_INPUT"


class InvalidIDError(ChromaExtendedError, TypeError):
    """An id in the batch is not a string."""

    code = "INVALID_ID"

    def __init__(self, message: str, index: int):
        super().__init__(message)
        self.index = index


class LengthMismatchError(ChromaExtendedError, ValueError):
    """Normalized batch fields disagree in length."""

    code = "LENGTH_MISMATCH"

    def __init__(self, message: str, lengths: dict[str, int] | None = None):
        super().__init__(message)
        self.lengths = dict(lengths or {})


class DuplicateIDError(ChromaExtendedError, ValueError):
    """The batch repeats one or more ids."""

    code = "DUPLICATE_ID"

    def __init__(self, message: str, duplicates: list[str]):
        super().__init__(message)
        self.duplicates = list(duplicates)


# ---------------------------------------------------------------------------
# Configuration / internal state
# ---------------------------------------------------------------------------

class EmbeddingFunctionMissingError(ChromaExtendedError, RuntimeError):
    """Text needs embedding but no embedding function is configured."""

    code = "EMBEDDING_FUNCTION_MISSING"


class InvariantError(ChromaExtendedError, RuntimeError):
    """A state validation should have made unreachable."""

    code = "INVARIANT_VIOLATION"


# ---------------------------------------------------------------------------
# Remote services
# ---------------------------------------------------------------------------

class RemoteError(ChromaExtendedError):
    """
    The Chroma service answered with an error status.

    `message` is the service's own error text, passed through unchanged.
    """

    code = "REMOTE_ERROR"

    def __init__(self, message: str, status_code: int = 0):
        super().__init__(message)
        self.status_code = status_code

    def asdict(self) -> dict:
        d = super().asdict()
        d["status_code"] = self.status_code
        return d


class EmbeddingError(ChromaExtendedError, RuntimeError):
    """The embedding service failed or returned an unusable result."""

    code = "EMBEDDING_FAILED"
