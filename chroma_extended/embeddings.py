"""
Embedding functions — turn documents into vectors before they are sent.

An embedding function is anything with a `generate(texts)` method that
returns one vector per text, in order.  `generate` may be a plain method
or a coroutine; the validation layer awaits it when needed.

Two HTTP implementations ship here:
  OllamaEmbeddingFunction  : Ollama's /api/embed endpoint
  OpenAIEmbeddingFunction  : any OpenAI-compatible /v1/embeddings endpoint

The factory builds one from the `embedding` config section:

    from chroma_extended.embeddings import make_embedding_function
    ef = make_embedding_function({"provider": "ollama", "model": "nomic-embed-text"})
"""

from __future__ import annotations

import logging
from typing import Awaitable, Protocol, Union, runtime_checkable

import httpx

from chroma_extended.errors import EmbeddingError

logger = logging.getLogger(__name__)


@runtime_checkable
class EmbeddingFunction(Protocol):
    """Anything that maps a list of texts to a list of vectors."""

    def generate(
        self, texts: list[str]
    ) -> Union[list[list[float]], Awaitable[list[list[float]]]]:
        ...


def _check_count(model: str, texts: list[str], embeddings) -> list[list[float]]:
    if not embeddings or len(embeddings) != len(texts):
        raise EmbeddingError(
            f"Embedding model '{model}' returned {len(embeddings or [])} vector(s) "
            f"for {len(texts)} input(s)"
        )
    return embeddings


class OllamaEmbeddingFunction:
    """Embeddings from a local Ollama instance."""

    def __init__(
        self,
        model: str,
        url: str = "http://localhost:11434",
        timeout: float = 30.0,
        headers: dict | None = None,
    ):
        self.model = model
        self.url = url.rstrip("/")
        self.timeout = timeout
        self.headers = dict(headers or {})

    async def generate(self, texts: list[str]) -> list[list[float]]:
        """Embed texts in a single /api/embed call."""
        if not texts:
            return []
        async with httpx.AsyncClient(timeout=self.timeout, headers=self.headers) as client:
            try:
                resp = await client.post(
                    f"{self.url}/api/embed",
                    json={"model": self.model, "input": list(texts)},
                )
                resp.raise_for_status()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise EmbeddingError(
                        f"Embedding model '{self.model}' not found; "
                        f"run: ollama pull {self.model}"
                    ) from e
                raise EmbeddingError(
                    f"Embedding request failed: HTTP {e.response.status_code}"
                ) from e
            try:
                data = resp.json()
            except ValueError as e:
                raise EmbeddingError(
                    f"Embedding endpoint returned non-JSON response: {resp.text[:200]}"
                ) from e
        return _check_count(self.model, texts, data.get("embeddings"))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model!r} url={self.url!r}>"


class OpenAIEmbeddingFunction:
    """Embeddings from an OpenAI-compatible /v1/embeddings endpoint."""

    def __init__(
        self,
        model: str,
        url: str = "https://api.openai.com",
        api_key: str = "",
        timeout: float = 30.0,
    ):
        self.model = model
        self.url = url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def generate(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.post(
                f"{self.url}/v1/embeddings",
                json={"model": self.model, "input": list(texts)},
                headers=self._headers(),
            )
            if resp.status_code >= 400:
                raise EmbeddingError(
                    f"Embedding request failed: HTTP {resp.status_code}: {resp.text[:200]}"
                )
            try:
                data = resp.json()
            except ValueError as e:
                raise EmbeddingError(
                    f"Embedding endpoint returned non-JSON response: {resp.text[:200]}"
                ) from e
        # Results carry an index; the API does not promise input order
        items = sorted(data.get("data", []), key=lambda d: d.get("index", 0))
        return _check_count(self.model, texts, [d.get("embedding") for d in items])

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model!r} url={self.url!r}>"


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_REGISTRY: dict[str, type] = {
    "ollama": OllamaEmbeddingFunction,
    "openai": OpenAIEmbeddingFunction,
}


def make_embedding_function(cfg: dict | None) -> EmbeddingFunction | None:
    """
    Instantiate an embedding function from an `embedding` config section.

    Returns None when no provider is configured.

    Raises:
        ValueError: If the provider is not registered.
    """
    cfg = cfg or {}
    provider = (cfg.get("provider") or "").strip().lower()
    if provider in ("", "none"):
        return None

    cls = _REGISTRY.get(provider)
    if cls is None:
        available = ", ".join(_REGISTRY.keys())
        raise ValueError(
            f"Unknown embedding provider: '{provider}'. Available: {available}"
        )

    kwargs: dict = {"model": cfg.get("model", "")}
    if cfg.get("url"):
        kwargs["url"] = cfg["url"]
    if cfg.get("timeout"):
        kwargs["timeout"] = float(cfg["timeout"])
    if provider == "openai":
        kwargs["api_key"] = cfg.get("api_key", "")
    elif cfg.get("headers"):
        kwargs["headers"] = {k: v for k, v in cfg["headers"].items() if v}

    ef = cls(**kwargs)
    logger.info("Embedding function configured: %r", ef)
    return ef
