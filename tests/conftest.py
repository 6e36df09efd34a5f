"""
Shared test fixtures and configuration for the entire test suite.

Provides: isolated environment, HelperConfig, a temporary SQLite vector store,
a deterministic fake embedding client and a knowledge directory.
"""

import logging
import os
import string
import tempfile

import pytest

# logs of the app under test go to a throwaway directory, set before any app import
os.environ.setdefault("ROOT_DIR", tempfile.mkdtemp(prefix="kb-bridge-tests-"))

from shared.clients.store.sqlite.VectorStoreSqlite import VectorStoreSqlite  # noqa: E402
from shared.exceptions import EmbeddingError  # noqa: E402
from shared.helper.HelperConfig import HelperConfig  # noqa: E402
from shared.logging.logging_setup import ColorLogger  # noqa: E402

_ENV_PREFIXES = ("KB_", "CHUNK_", "EMBED_", "STORE_", "APP_API_KEY")


def letter_vector(text: str) -> list[float]:
    """Deterministic 26-dimensional embedding: letter frequencies of the text."""
    lowered = text.lower()
    return [float(lowered.count(letter)) for letter in string.ascii_lowercase]


class FakeEmbedClient:
    """Stand-in for an EmbedClientInterface that never leaves the process.

    Records every batch it receives; fails on the n-th call when fail_on_call is set.
    """

    def __init__(self, model_id: str = "fake-embed", fail_on_call: int | None = None) -> None:
        self.model_id = model_id
        self.fail_on_call = fail_on_call
        self.calls: list[list[str]] = []

    def get_model_id(self) -> str:
        return self.model_id

    async def do_embed(self, texts: list[str] | str) -> list[list[float]]:
        texts = [texts] if isinstance(texts, str) else list(texts)
        self.calls.append(texts)
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise EmbeddingError("Embedding backend unreachable.")
        return [letter_vector(text) for text in texts]

    async def embed(self, input: str | list[str]) -> list[float] | list[list[float]]:
        vectors = await self.do_embed(input)
        return vectors[0] if isinstance(input, str) else vectors


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Remove every project setting inherited from the developer's shell."""
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIXES):
            monkeypatch.delenv(key, raising=False)
    yield monkeypatch


@pytest.fixture
def helper_config() -> HelperConfig:
    """Provide a HelperConfig with a ColorLogger, as the application builds it."""
    return HelperConfig(logger=ColorLogger(logging.getLogger("kb_bridge.tests")))


@pytest.fixture
def fake_embed_client() -> FakeEmbedClient:
    return FakeEmbedClient()


@pytest.fixture
def store_path(tmp_path, monkeypatch):
    path = tmp_path / "store" / "vectors.sqlite"
    monkeypatch.setenv("STORE_SQLITE_PATH", str(path))
    return path


@pytest.fixture
async def sqlite_store(helper_config, store_path):
    """
    Create an initialised SQLite vector store in a temporary directory.

    Yields:
        VectorStoreSqlite: Ready-to-use store, closed after the test
    """
    store = VectorStoreSqlite(helper_config=helper_config)
    await store.initialize()
    yield store
    await store.close()


@pytest.fixture
def kb_dir(tmp_path, monkeypatch):
    """Empty knowledge directory configured through KB_DIR."""
    path = tmp_path / "knowledge"
    path.mkdir()
    monkeypatch.setenv("KB_DIR", str(path))
    return path
