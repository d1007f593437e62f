"""
Tests for ChromaClientExtended and Collection.
Run with: pytest tests/test_client.py

The HTTP layer is patched, so these exercise request shaping, header
propagation into collections, and the validate-before-send guarantee.
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

from chroma_extended import ChromaClientExtended, Collection, Include
from chroma_extended.embeddings import OllamaEmbeddingFunction
from chroma_extended.errors import (
    DuplicateIDError,
    EmbeddingFunctionMissingError,
    MissingInputError,
    RemoteError,
)

API = "chroma_extended.api.httpx.AsyncClient"
BASE = "http://fake:8000/api/v1"


def _resp(status=200, data=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = data
    resp.text = text
    return resp


def _install(mock_client_cls, *responses):
    mock_client = AsyncMock()
    mock_client.request.side_effect = list(responses)
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


class FakeEmbedder:
    def __init__(self, dims=3):
        self.dims = dims
        self.calls = []

    async def generate(self, texts):
        self.calls.append(list(texts))
        return [[float(i)] * self.dims for i, _ in enumerate(texts)]


@pytest.fixture
def client():
    return ChromaClientExtended(path="http://fake:8000", headers={"x-api-key": "k"})


@pytest.fixture
def collection(client):
    return Collection("docs", "c1", client._api)


# ---------------------------------------------------------------------------
# Client construction
# ---------------------------------------------------------------------------

def test_client_defaults():
    c = ChromaClientExtended()
    assert c.path == "http://localhost:8000"
    assert c.headers == {}
    assert c.embedding_function is None


def test_client_headers_property_is_a_copy(client):
    h = client.headers
    h["x-api-key"] = "tampered"
    assert client.headers == {"x-api-key": "k"}


def test_from_config():
    """Client picks up path, headers, timeout and embedding from config."""
    cfg = {
        "chroma": {
            "path": "http://cfg:9000",
            "timeout": 5,
            "headers": {"x-api-key": "abc", "x-unset": ""},
        },
        "embedding": {"provider": "ollama", "model": "nomic-embed-text"},
    }
    c = ChromaClientExtended.from_config(cfg)
    assert c.path == "http://cfg:9000"
    assert c.headers == {"x-api-key": "abc"}
    assert c._api.config.timeout == 5.0
    assert isinstance(c.embedding_function, OllamaEmbeddingFunction)


def test_from_config_without_embedding():
    c = ChromaClientExtended.from_config({"chroma": {}, "embedding": {"provider": "none"}})
    assert c.path == "http://localhost:8000"
    assert c.embedding_function is None


def test_from_config_explicit_override():
    ef = FakeEmbedder()
    c = ChromaClientExtended.from_config(
        {"embedding": {"provider": "bogus"}}, embedding_function=ef
    )
    assert c.embedding_function is ef


# ---------------------------------------------------------------------------
# Service calls
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_heartbeat_returns_nanoseconds(client):
    with patch(API) as mock_client_cls:
        _install(mock_client_cls, _resp(data={"nanosecond heartbeat": 1234}))
        assert await client.heartbeat() == 1234
    assert mock_client_cls.call_args.kwargs["headers"] == {"x-api-key": "k"}


@pytest.mark.asyncio
async def test_version_and_reset(client):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data="0.4.24"), _resp(data=True))
        assert await client.version() == "0.4.24"
        assert await client.reset() is True
    assert mc.request.call_args_list[1].args == ("POST", f"{BASE}/reset")


@pytest.mark.asyncio
async def test_persist_not_implemented(client):
    with pytest.raises(NotImplementedError):
        await client.persist()


# ---------------------------------------------------------------------------
# Collection lifecycle
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_collection(client):
    with patch(API) as mock_client_cls:
        _install(mock_client_cls, _resp(data={"id": "c1", "name": "docs", "metadata": None}))
        col = await client.create_collection("docs", metadata={"description": "d"})

    assert col.name == "docs"
    assert col.id == "c1"
    assert col.metadata == {"description": "d"}


@pytest.mark.asyncio
async def test_create_collection_remote_failure(client):
    """A service-side failure surfaces the service's message."""
    with patch(API) as mock_client_cls:
        _install(
            mock_client_cls,
            _resp(status=500, data={"error": "ValueError('Collection docs already exists')"}),
        )
        with pytest.raises(RemoteError, match="already exists"):
            await client.create_collection("docs")


@pytest.mark.asyncio
async def test_get_or_create_uses_service_metadata(client):
    with patch(API) as mock_client_cls:
        mc = _install(
            mock_client_cls,
            _resp(data={"id": "c1", "name": "docs", "metadata": {"existing": True}}),
        )
        col = await client.get_or_create_collection("docs", metadata={"new": True})

    assert col.metadata == {"existing": True}
    assert mc.request.call_args.kwargs["json"]["get_or_create"] is True


@pytest.mark.asyncio
async def test_get_collection_inherits_client_embedding_function():
    ef = FakeEmbedder()
    c = ChromaClientExtended(path="http://fake:8000", embedding_function=ef)
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data={"id": "c1", "name": "docs", "metadata": {}}))
        col = await c.get_collection("docs")

    assert col.embedding_function is ef
    assert mc.request.call_args.args == ("GET", f"{BASE}/collections/docs")


@pytest.mark.asyncio
async def test_collection_embedding_function_overrides_default():
    default, own = FakeEmbedder(), FakeEmbedder()
    c = ChromaClientExtended(path="http://fake:8000", embedding_function=default)
    with patch(API) as mock_client_cls:
        _install(mock_client_cls, _resp(data={"id": "c1", "name": "docs"}))
        col = await c.get_collection("docs", embedding_function=own)
    assert col.embedding_function is own


@pytest.mark.asyncio
async def test_list_and_delete_collection(client):
    with patch(API) as mock_client_cls:
        mc = _install(
            mock_client_cls,
            _resp(data=[{"id": "c1", "name": "docs", "metadata": None}]),
            _resp(data=None),
        )
        listed = await client.list_collections()
        await client.delete_collection("docs")

    assert listed[0]["name"] == "docs"
    assert mc.request.call_args.args == ("DELETE", f"{BASE}/collections/docs")


# ---------------------------------------------------------------------------
# Collection writes
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_add_sends_normalized_batch(collection):
    """Scalar inputs are normalized before they are sent."""
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=True))
        await collection.add(ids="a", embeddings=[1, 2, 3], metadatas={"test": "test"})

    assert mc.request.call_args.args == ("POST", f"{BASE}/collections/c1/add")
    assert mc.request.call_args.kwargs["json"] == {
        "ids": ["a"],
        "embeddings": [[1, 2, 3]],
        "metadatas": [{"test": "test"}],
    }
    assert mock_client_cls.call_args.kwargs["headers"] == {"x-api-key": "k"}


@pytest.mark.asyncio
async def test_add_embeds_documents(client):
    ef = FakeEmbedder(dims=2)
    col = Collection("docs", "c1", client._api, embedding_function=ef)
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=True))
        await col.add(ids=["a", "b"], documents=["one", "two"])

    body = mc.request.call_args.kwargs["json"]
    assert body["embeddings"] == [[0.0, 0.0], [1.0, 1.0]]
    assert body["documents"] == ["one", "two"]
    assert ef.calls == [["one", "two"]]


@pytest.mark.asyncio
async def test_invalid_batch_never_hits_network(collection):
    """Validation failures abort before any request is made."""
    with patch(API) as mock_client_cls:
        with pytest.raises(DuplicateIDError):
            await collection.add(ids=["a", "a"], embeddings=[[1], [2]])
        with pytest.raises(MissingInputError):
            await collection.upsert(ids=["a"])
        with pytest.raises(EmbeddingFunctionMissingError):
            await collection.add(ids=["a"], documents=["text"])
    mock_client_cls.assert_not_called()


@pytest.mark.asyncio
async def test_upsert(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=True))
        assert await collection.upsert(ids=["a"], embeddings=[[0.5]], documents=["d"]) is True
    assert mc.request.call_args.args == ("POST", f"{BASE}/collections/c1/upsert")


@pytest.mark.asyncio
async def test_update_requires_something_to_change(collection):
    """Update with nothing to change has its own error message."""
    with patch(API) as mock_client_cls:
        with pytest.raises(MissingInputError, match="cannot all be undefined"):
            await collection.update(ids=["a"])
    mock_client_cls.assert_not_called()


@pytest.mark.asyncio
async def test_update_metadata_only(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=True))
        await collection.update(ids="a", metadatas={"k": "v"})

    assert mc.request.call_args.args == ("POST", f"{BASE}/collections/c1/update")
    assert mc.request.call_args.kwargs["json"] == {"ids": ["a"], "metadatas": [{"k": "v"}]}


@pytest.mark.asyncio
async def test_delete(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=["a"]))
        deleted = await collection.delete(ids="a", where={"k": "v"})

    assert deleted == ["a"]
    assert mc.request.call_args.kwargs["json"] == {"ids": ["a"], "where": {"k": "v"}}


@pytest.mark.asyncio
async def test_modify_updates_local_state(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=None), _resp(data=None))
        await collection.modify(name="renamed")
        assert collection.name == "renamed"
        assert collection.metadata is None

        await collection.modify(metadata={"v": 2})
        assert collection.name == "renamed"
        assert collection.metadata == {"v": 2}

    assert mc.request.call_args_list[0].args == ("PUT", f"{BASE}/collections/c1")
    assert mc.request.call_args_list[0].kwargs["json"] == {"new_name": "renamed"}


@pytest.mark.asyncio
async def test_modify_failure_keeps_local_state(collection):
    with patch(API) as mock_client_cls:
        _install(mock_client_cls, _resp(status=409, data={"error": "name taken"}))
        with pytest.raises(RemoteError):
            await collection.modify(name="other")
    assert collection.name == "docs"


# ---------------------------------------------------------------------------
# Collection reads
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_count(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data=42))
        assert await collection.count() == 42
    assert mc.request.call_args.args == ("GET", f"{BASE}/collections/c1/count")


@pytest.mark.asyncio
async def test_get_with_filters(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data={"ids": ["a"]}))
        await collection.get(
            ids="a",
            limit=5,
            include=[Include.METADATAS, "documents"],
            where_document={"$contains": "x"},
        )

    assert mc.request.call_args.kwargs["json"] == {
        "ids": ["a"],
        "limit": 5,
        "include": ["metadatas", "documents"],
        "where_document": {"$contains": "x"},
    }


@pytest.mark.asyncio
async def test_peek(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data={"ids": []}))
        await collection.peek()
    assert mc.request.call_args.kwargs["json"] == {"limit": 10}


@pytest.mark.asyncio
async def test_query_with_embeddings(collection):
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data={"ids": [["a"]]}))
        res = await collection.query(query_embeddings=[0.1, 0.2], n_results=3)

    assert res == {"ids": [["a"]]}
    assert mc.request.call_args.kwargs["json"] == {
        "query_embeddings": [[0.1, 0.2]],
        "n_results": 3,
    }


@pytest.mark.asyncio
async def test_query_with_texts(client):
    ef = FakeEmbedder(dims=2)
    col = Collection("docs", "c1", client._api, embedding_function=ef)
    with patch(API) as mock_client_cls:
        mc = _install(mock_client_cls, _resp(data={"ids": [[]]}))
        await col.query(query_texts="hello")

    body = mc.request.call_args.kwargs["json"]
    assert body["query_embeddings"] == [[0.0, 0.0]]
    assert body["n_results"] == 10


@pytest.mark.asyncio
async def test_query_without_input_never_hits_network(collection):
    with patch(API) as mock_client_cls:
        with pytest.raises(MissingInputError):
            await collection.query()
    mock_client_cls.assert_not_called()
