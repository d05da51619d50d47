"""Shared fixtures: a fresh catalog, an activity factory and a fake embedder."""

import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

import pytest

from recommender.core.db import init_db, insert_activity
from recommender.core.errors import ProviderError
from recommender.core.schemas import ActivityType
from recommender.providers.base import EmbeddingProvider

BASE_TIME = datetime(2024, 3, 1, 9, 0, 0)


@pytest.fixture()
def db(tmp_path):  # type: ignore[no-untyped-def]
    """Provide a fresh SQLite catalog per test."""
    conn = init_db(tmp_path / "test.db")
    yield conn
    conn.close()


@pytest.fixture()
def add_activity(db) -> Callable[..., int]:  # type: ignore[no-untyped-def]
    """Insert activities with strictly increasing created_at (later = newer)."""
    counter = {"n": 0}

    def _add(
        title: str,
        *,
        activity_type: ActivityType = ActivityType.OTHER,
        tags: tuple[str, ...] = (),
        **kw: Any,
    ) -> int:
        counter["n"] += 1
        kw.setdefault("created_at", BASE_TIME + timedelta(minutes=counter["n"]))
        return insert_activity(db, title=title, activity_type=activity_type, tags=tags, **kw)

    return _add


class KeywordEmbedder(EmbeddingProvider):
    """Fake embedder: one dimension per vocabulary word plus a small bias."""

    def __init__(self, vocab: list[str], fail_on: tuple[str, ...] = ()) -> None:
        self.vocab = [w.lower() for w in vocab]
        self.fail_on = fail_on
        self.calls: list[str] = []
        self._lock = threading.Lock()

    @property
    def provider_id(self) -> str:
        return "fake"

    @property
    def env_var(self) -> None:
        return None

    @property
    def default_embedding_model(self) -> str:
        return "fake-embed"

    def embed(self, text: str, model: str | None = None) -> list[float]:
        with self._lock:
            self.calls.append(text)
        if any(word in text for word in self.fail_on):
            msg = "embedding backend unavailable"
            raise ProviderError(msg)
        lowered = text.lower()
        return [1.0 if w in lowered else 0.0 for w in self.vocab] + [0.01]


@pytest.fixture()
def make_embedder() -> type[KeywordEmbedder]:
    return KeywordEmbedder
