"""
Test suite for the HTTP API.

The application is built with create_app() and a test lifespan that wires a
real SQLite store and the FakeEmbedClient into app.state, so requests run the
complete ingestion and search paths without any network access.
"""

import logging
import shutil
from contextlib import asynccontextmanager

import pytest
from fastapi.testclient import TestClient

from server.api.api_app import create_app
from server.api.services.SearchService import SearchService
from services.kb_ingest.IngestService import IngestService
from shared.clients.store.sqlite.VectorStoreSqlite import VectorStoreSqlite
from shared.helper.HelperConfig import HelperConfig
from shared.logging.logging_setup import ColorLogger
from tests.conftest import FakeEmbedClient


@asynccontextmanager
async def _test_lifespan(app):
    app.state.logging = ColorLogger(logging.getLogger("kb_bridge.tests.api"))
    app.state.config = HelperConfig(logger=app.state.logging)

    store = VectorStoreSqlite(helper_config=app.state.config)
    await store.initialize()
    embed_client = FakeEmbedClient()
    app.state.embed_client = embed_client
    app.state.ingest_service = IngestService(helper_config=app.state.config, store=store, embed_client=embed_client)
    app.state.search_service = SearchService(helper_config=app.state.config, store=store, embed_client=embed_client)
    yield
    await store.close()


@pytest.fixture
def client(kb_dir, store_path):
    (kb_dir / "fruit.md").write_text("Apples are crunchy and sweet.\n\nBananas are soft and yellow.")
    (kb_dir / "guides").mkdir()
    (kb_dir / "guides" / "cherry.txt").write_text("Cherries have a stone in the middle.")
    with TestClient(create_app(lifespan_handler=_test_lifespan)) as test_client:
        yield test_client


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["ok"] is True
    assert "version" in response.json()


class TestIngestEndpoint:
    def test_ingest_reports_the_run(self, client, kb_dir) -> None:
        response = client.post("/ingest")

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["files"] == 2
        assert body["totalChunks"] == 2
        assert body["embedded"] == 2
        assert body["kbDir"] == str(kb_dir.resolve())
        assert body["model"] == "fake-embed"

    def test_ingest_accepts_reindex_flag(self, client) -> None:
        assert client.post("/ingest", json={"reindex": True}).status_code == 200
        assert client.post("/ingest", json={"reindex": True}).json()["embedded"] == 2

    def test_missing_knowledge_dir_is_reported_as_error(self, client, kb_dir) -> None:
        shutil.rmtree(kb_dir)

        response = client.post("/ingest")

        assert response.status_code == 500
        assert response.json()["ok"] is False
        assert "Knowledge directory not found" in response.json()["error"]


class TestSearchEndpoint:
    def test_get_search_returns_ranked_results(self, client) -> None:
        client.post("/ingest")

        response = client.get("/search", params={"q": "Cherries have a stone in the middle.", "k": 1})

        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert body["q"] == "Cherries have a stone in the middle."
        assert len(body["results"]) == 1
        hit = body["results"][0]
        assert hit["id"] == "guides/cherry.txt::0"
        assert hit["score"] == pytest.approx(1.0)
        assert "embedding" not in hit

    def test_post_search_uses_the_body(self, client) -> None:
        client.post("/ingest")

        response = client.post("/search", json={"q": "apples", "k": 10})

        assert response.status_code == 200
        assert len(response.json()["results"]) == 2

    def test_default_k_applies(self, client) -> None:
        client.post("/ingest")
        assert len(client.get("/search", params={"q": "fruit"}).json()["results"]) == 2

    @pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
    def test_missing_query_is_a_bad_request(self, client, params) -> None:
        response = client.get("/search", params=params)

        assert response.status_code == 400
        assert response.json() == {"ok": False, "error": "Missing q"}
        assert client.app.state.embed_client.calls == []

    def test_non_numeric_k_is_a_bad_request(self, client) -> None:
        response = client.get("/search", params={"q": "apples", "k": "abc"})

        assert response.status_code == 400
        assert response.json()["ok"] is False

    def test_zero_k_is_a_bad_request(self, client) -> None:
        response = client.post("/search", json={"q": "apples", "k": 0})

        assert response.status_code == 400
        assert response.json()["ok"] is False


class TestApiKey:
    def test_requests_without_key_are_refused_when_configured(self, client, monkeypatch) -> None:
        monkeypatch.setenv("APP_API_KEY", "s3cret")

        response = client.get("/search", params={"q": "apples"})

        assert response.status_code == 401
        assert response.json()["ok"] is False

    def test_requests_with_key_pass(self, client, monkeypatch) -> None:
        monkeypatch.setenv("APP_API_KEY", "s3cret")

        response = client.get("/search", params={"q": "apples"}, headers={"X-API-Key": "s3cret"})

        assert response.status_code == 200

    def test_health_needs_no_key(self, client, monkeypatch) -> None:
        monkeypatch.setenv("APP_API_KEY", "s3cret")
        assert client.get("/health").status_code == 200
