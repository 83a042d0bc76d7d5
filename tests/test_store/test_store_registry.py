"""Tests for create_store() and the settings it reads."""

import pytest

from config.settings import Settings
from store.file_store import JsonFileStore
from store.redis_store import RedisStateStore
from store.registry import create_store


def test_file_backend(tmp_path):
    config = Settings(STATE_BACKEND="file", QUEUE_FILE=str(tmp_path / "q.json"))
    store = create_store(config)
    assert isinstance(store, JsonFileStore)
    assert store.backend_name == "file"


def test_redis_backend_is_lazy():
    """Building the client must not connect; nothing runs on localhost here."""
    config = Settings(STATE_BACKEND="REDIS", REDIS_STATE_KEY="test:state")
    store = create_store(config)
    assert isinstance(store, RedisStateStore)
    assert store.backend_name == "redis"


def test_unknown_backend():
    with pytest.raises(ValueError, match="Unknown state backend"):
        create_store(Settings(STATE_BACKEND="sqlite"))


@pytest.mark.parametrize("raw, expected", [(0, 1), (2, 2), (9, 4)])
def test_concurrency_is_clamped(raw, expected):
    assert Settings(MAX_CONCURRENT_BUILDS=raw).MAX_CONCURRENT_BUILDS == expected


def test_admin_ids_parsed():
    config = Settings(ADMIN_IDS=" 9001, 9002 ,,")
    assert config.admin_ids == ["9001", "9002"]
    assert config.max_build_seconds == 45 * 60
