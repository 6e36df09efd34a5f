"""
Test suite for the embedding clients.

HTTP traffic is served by httpx.MockTransport, so no backend is needed.
"""

import json

import httpx
import pytest

from shared.clients.embed.EmbedClientManager import EmbedClientManager
from shared.clients.embed.ollama.EmbedClientOllama import EmbedClientOllama
from shared.clients.embed.openai.EmbedClientOpenai import EmbedClientOpenai
from shared.exceptions import EmbeddingError


@pytest.fixture
def ollama_env(monkeypatch):
    monkeypatch.setenv("EMBED_ENGINE", "ollama")
    monkeypatch.setenv("EMBED_MODEL", "nomic-embed-text")
    monkeypatch.setenv("EMBED_OLLAMA_BASE_URL", "http://ollama.local:11434/")


@pytest.fixture
def openai_env(monkeypatch):
    monkeypatch.setenv("EMBED_ENGINE", "openai")
    monkeypatch.setenv("EMBED_MODEL", "text-embedding-3-small")
    monkeypatch.setenv("EMBED_OPENAI_API_KEY", "sk-test")


def _fake_vector(text: str) -> list[float]:
    return [float(len(text)), 1.0]


class RecordingHandler:
    """MockTransport handler that remembers every request it answered."""

    def __init__(self, respond):
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)


async def _booted(client, handler):
    await client.boot(transport=httpx.MockTransport(handler))
    return client


class TestOllama:
    @pytest.mark.asyncio
    async def test_embeds_a_batch_in_one_request(self, helper_config, ollama_env) -> None:
        def respond(request):
            body = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [_fake_vector(t) for t in body["input"]]})

        handler = RecordingHandler(respond)
        client = await _booted(EmbedClientOllama(helper_config=helper_config), handler)
        try:
            vectors = await client.do_embed(["one", "three"])
        finally:
            await client.close()

        assert vectors == [[3.0, 1.0], [5.0, 1.0]]
        assert len(handler.requests) == 1
        request = handler.requests[0]
        assert request.method == "POST"
        assert str(request.url) == "http://ollama.local:11434/api/embed"
        assert json.loads(request.content) == {"model": "nomic-embed-text", "input": ["one", "three"]}
        assert "authorization" not in request.headers

    @pytest.mark.asyncio
    async def test_single_string_yields_single_vector(self, helper_config, ollama_env) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(200, json={"embeddings": [[0.5, 0.5]]}))
        client = await _booted(EmbedClientOllama(helper_config=helper_config), handler)
        try:
            assert await client.embed("hello") == [0.5, 0.5]
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_api_key_is_sent_as_bearer(self, helper_config, ollama_env, monkeypatch) -> None:
        monkeypatch.setenv("EMBED_OLLAMA_API_KEY", "secret")
        handler = RecordingHandler(lambda request: httpx.Response(200, json={"embeddings": [[1.0]]}))
        client = await _booted(EmbedClientOllama(helper_config=helper_config), handler)
        try:
            await client.do_embed(["x"])
        finally:
            await client.close()
        assert handler.requests[0].headers["authorization"] == "Bearer secret"

    @pytest.mark.asyncio
    async def test_empty_input_makes_no_request(self, helper_config, ollama_env) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(500))
        client = await _booted(EmbedClientOllama(helper_config=helper_config), handler)
        try:
            assert await client.do_embed([]) == []
        finally:
            await client.close()
        assert handler.requests == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [
            httpx.Response(500, text="model not loaded"),
            httpx.Response(200, json={"error": "nope"}),
            httpx.Response(200, json={"embeddings": [[1.0]]}),
            httpx.Response(200, text="not json"),
        ],
        ids=["server-error", "missing-key", "count-mismatch", "invalid-json"],
    )
    async def test_bad_answers_raise_embedding_error(self, helper_config, ollama_env, response) -> None:
        client = await _booted(EmbedClientOllama(helper_config=helper_config), RecordingHandler(lambda request: response))
        try:
            with pytest.raises(EmbeddingError):
                await client.do_embed(["a", "b"])
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_unreachable_backend_raises_embedding_error(self, helper_config, ollama_env) -> None:
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = await _booted(EmbedClientOllama(helper_config=helper_config), refuse)
        try:
            with pytest.raises(EmbeddingError):
                await client.do_embed(["a"])
            assert await client.do_healthcheck() is False
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_healthcheck_hits_root(self, helper_config, ollama_env) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(200, text="Ollama is running"))
        client = await _booted(EmbedClientOllama(helper_config=helper_config), handler)
        try:
            assert await client.do_healthcheck() is True
        finally:
            await client.close()
        url = handler.requests[0].url
        assert (url.host, url.port, url.path) == ("ollama.local", 11434, "/")

    def test_missing_base_url_is_rejected(self, helper_config, ollama_env, monkeypatch) -> None:
        monkeypatch.delenv("EMBED_OLLAMA_BASE_URL")
        with pytest.raises(ValueError):
            EmbedClientOllama(helper_config=helper_config)

    def test_missing_model_is_rejected(self, helper_config, ollama_env, monkeypatch) -> None:
        monkeypatch.delenv("EMBED_MODEL")
        with pytest.raises(ValueError):
            EmbedClientOllama(helper_config=helper_config)


class TestOpenai:
    @pytest.mark.asyncio
    async def test_vectors_follow_the_index_field(self, helper_config, openai_env) -> None:
        def respond(request):
            return httpx.Response(200, json={
                "data": [
                    {"index": 1, "embedding": [0.0, 1.0]},
                    {"index": 0, "embedding": [1.0, 0.0]},
                ],
            })

        handler = RecordingHandler(respond)
        client = await _booted(EmbedClientOpenai(helper_config=helper_config), handler)
        try:
            vectors = await client.do_embed(["first", "second"])
        finally:
            await client.close()

        assert vectors == [[1.0, 0.0], [0.0, 1.0]]
        request = handler.requests[0]
        assert str(request.url) == "https://api.openai.com/v1/embeddings"
        assert request.headers["authorization"] == "Bearer sk-test"
        assert json.loads(request.content)["model"] == "text-embedding-3-small"

    @pytest.mark.asyncio
    async def test_custom_base_url(self, helper_config, openai_env, monkeypatch) -> None:
        monkeypatch.setenv("EMBED_OPENAI_BASE_URL", "http://proxy.local:8080")
        handler = RecordingHandler(lambda request: httpx.Response(200, json={"data": [{"index": 0, "embedding": [1.0]}]}))
        client = await _booted(EmbedClientOpenai(helper_config=helper_config), handler)
        try:
            await client.do_embed("x")
        finally:
            await client.close()
        assert str(handler.requests[0].url) == "http://proxy.local:8080/v1/embeddings"

    @pytest.mark.asyncio
    async def test_empty_data_raises_embedding_error(self, helper_config, openai_env) -> None:
        handler = RecordingHandler(lambda request: httpx.Response(200, json={"data": []}))
        client = await _booted(EmbedClientOpenai(helper_config=helper_config), handler)
        try:
            with pytest.raises(EmbeddingError):
                await client.do_embed(["x"])
        finally:
            await client.close()

    def test_missing_api_key_is_rejected(self, helper_config, openai_env, monkeypatch) -> None:
        monkeypatch.delenv("EMBED_OPENAI_API_KEY")
        with pytest.raises(ValueError):
            EmbedClientOpenai(helper_config=helper_config)


class TestManager:
    def test_selects_ollama(self, helper_config, ollama_env) -> None:
        client = EmbedClientManager(helper_config=helper_config).get_client()
        assert isinstance(client, EmbedClientOllama)
        assert client.get_model_id() == "nomic-embed-text"
        assert client.get_engine_name() == "ollama"

    def test_selects_openai_case_insensitively(self, helper_config, openai_env, monkeypatch) -> None:
        monkeypatch.setenv("EMBED_ENGINE", "  OpenAI ")
        assert isinstance(EmbedClientManager(helper_config=helper_config).get_client(), EmbedClientOpenai)

    def test_unknown_engine_is_rejected(self, helper_config, ollama_env, monkeypatch) -> None:
        monkeypatch.setenv("EMBED_ENGINE", "word2vec")
        with pytest.raises(ValueError, match="Unsupported embed engine"):
            EmbedClientManager(helper_config=helper_config)

    def test_missing_engine_is_rejected(self, helper_config) -> None:
        with pytest.raises(ValueError):
            EmbedClientManager(helper_config=helper_config)
