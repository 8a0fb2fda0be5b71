import json
from unittest.mock import AsyncMock, MagicMock, Mock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from voice_chat_resilience.exceptions import StorageError
from voice_chat_resilience.storage.redis import RedisStorage


class TestRedisStorage:
    @pytest.fixture
    def mock_pipeline(self):
        pipe = MagicMock()
        pipe.__aenter__.return_value = pipe
        pipe.execute = AsyncMock(return_value=[1, True])
        return pipe

    @pytest.fixture
    def mock_redis(self, mock_pipeline):
        mock = AsyncMock()
        mock.ping.return_value = True
        mock.pipeline = Mock(return_value=mock_pipeline)
        return mock

    @pytest.fixture
    def storage(self, mock_redis):
        return RedisStorage(redis_client=mock_redis, namespace="test")

    def test_init_defaults(self, monkeypatch):
        monkeypatch.delenv("REDIS_URL", raising=False)
        storage = RedisStorage()
        assert storage.redis_url == "redis://localhost:6379"
        assert storage.namespace == "voice_chat"

    def test_init_reads_env(self, monkeypatch):
        monkeypatch.setenv("REDIS_URL", "redis://cache:6380")
        assert RedisStorage().redis_url == "redis://cache:6380"

    @pytest.mark.asyncio
    async def test_append_log_trims_in_one_transaction(
        self, storage, mock_redis, mock_pipeline
    ):
        await storage.append_log("errors", {"code": "API.timeout"}, max_entries=100)

        mock_redis.pipeline.assert_called_once_with(transaction=True)
        mock_pipeline.rpush.assert_called_once_with(
            "test:log:errors", json.dumps({"code": "API.timeout"})
        )
        mock_pipeline.ltrim.assert_called_once_with("test:log:errors", -100, -1)
        mock_pipeline.execute.assert_awaited_once()
        mock_redis.rpush.assert_not_called()
        mock_redis.ltrim.assert_not_called()

    @pytest.mark.asyncio
    async def test_read_log_skips_corrupt_entries(self, storage, mock_redis):
        mock_redis.lrange.return_value = ['{"n": 1}', "not json", '{"n": 2}']

        assert await storage.read_log("errors") == [{"n": 1}, {"n": 2}]
        mock_redis.lrange.assert_awaited_once_with("test:log:errors", 0, -1)

    @pytest.mark.asyncio
    async def test_state_roundtrip(self, storage, mock_redis):
        await storage.set_state("metrics", {"a": 1})
        mock_redis.set.assert_awaited_once_with(
            "test:state:metrics", json.dumps({"a": 1}), ex=None
        )

        mock_redis.get.return_value = json.dumps({"a": 1})
        assert await storage.get_state("metrics") == {"a": 1}

    @pytest.mark.asyncio
    async def test_get_state_missing_or_corrupt(self, storage, mock_redis):
        mock_redis.get.return_value = None
        assert await storage.get_state("metrics") is None

        mock_redis.get.return_value = "{broken"
        assert await storage.get_state("metrics") is None

        mock_redis.get.return_value = "[1, 2]"
        assert await storage.get_state("metrics") is None

    @pytest.mark.asyncio
    async def test_key_ttl_applied(self, mock_redis):
        storage = RedisStorage(redis_client=mock_redis, namespace="test", key_ttl=60)
        await storage.set_cache("k", {"v": 1})
        mock_redis.set.assert_awaited_once_with(
            "test:cache:k", json.dumps({"v": 1}), ex=60
        )

    @pytest.mark.asyncio
    async def test_reads_degrade_on_redis_errors(self, storage, mock_redis):
        mock_redis.lrange.side_effect = RedisConnectionError("down")
        mock_redis.get.side_effect = RedisConnectionError("down")

        assert await storage.read_log("errors") == []
        assert await storage.get_state("metrics") is None
        assert await storage.get_cache("k") is None

    @pytest.mark.asyncio
    async def test_writes_raise_storage_error(self, storage, mock_redis, mock_pipeline):
        mock_pipeline.execute.side_effect = RedisConnectionError("down")
        mock_redis.set.side_effect = RedisConnectionError("down")
        mock_redis.delete.side_effect = RedisConnectionError("down")

        with pytest.raises(StorageError) as exc_info:
            await storage.append_log("errors", {}, max_entries=10)
        assert exc_info.value.operation == "append_log"

        with pytest.raises(StorageError):
            await storage.set_state("metrics", {})
        with pytest.raises(StorageError):
            await storage.delete_state("metrics")
        with pytest.raises(StorageError):
            await storage.clear_log("errors")

    @pytest.mark.asyncio
    async def test_clear_cache_scans_namespace(self, storage, mock_redis):
        keys = [f"test:cache:{i}" for i in range(150)]

        async def scan_iter(match, count):
            assert match == "test:cache:*"
            for key in keys:
                yield key

        mock_redis.scan_iter = scan_iter
        mock_redis.delete.side_effect = lambda *batch: len(batch)

        assert await storage.clear_cache() == 150
        assert mock_redis.delete.await_count == 2

    @pytest.mark.asyncio
    async def test_health_check(self, storage, mock_redis):
        result = await storage.health_check()
        assert result.healthy is True
        assert result.backend_type == "redis"

        mock_redis.ping.side_effect = RedisConnectionError("down")
        result = await storage.health_check()
        assert result.healthy is False
        assert "down" in result.error

    @pytest.mark.asyncio
    async def test_close_leaves_injected_client_open(self, storage, mock_redis):
        await storage.close()
        mock_redis.aclose.assert_not_called()
