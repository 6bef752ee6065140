"""Tests for the global per-IP rate limiter (src/app/core/rate_limit.py)."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from starlette.requests import Request
from starlette.responses import Response

from src.app.core import rate_limit
from src.app.core.rate_limit import (
    _check_in_memory_rate_limit,
    get_rate_limit_key,
    global_rate_limit_middleware,
)

pytestmark = pytest.mark.unit


@pytest.fixture(autouse=True)
def _reset_rate_limit_state(reset_rate_limit_buckets):
    yield


@pytest.fixture
def mock_request() -> MagicMock:
    request = MagicMock(spec=Request)
    request.headers = {}
    request.query_params = {}
    request.client = MagicMock()
    request.client.host = "192.168.1.100"
    request.url.path = "/api/v1/workflows"
    return request


@pytest.fixture
def mock_settings() -> MagicMock:
    """Rate limiting is disabled when app_env='testing', so pretend otherwise."""
    settings = MagicMock()
    settings.app_env = "development"
    settings.global_rate_limit_per_second = 10
    settings.global_rate_limit_burst = 20
    settings.redis_url = None
    return settings


@pytest.fixture
def no_redis(mock_settings):
    with (
        patch("src.app.core.rate_limit.get_settings", return_value=mock_settings),
        patch("src.app.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get_redis,
    ):
        mock_get_redis.return_value = None
        yield mock_get_redis


class TestGetRateLimitKey:
    def test_returns_ip(self, mock_request: MagicMock) -> None:
        with patch("src.app.core.rate_limit.get_remote_address", return_value="192.168.1.100"):
            assert get_rate_limit_key(mock_request) == "192.168.1.100"

    def test_org_id_query_is_ignored(self, mock_request: MagicMock) -> None:
        """orgId is caller-controlled; rotating it must not open new buckets."""
        mock_request.query_params = {"orgId": "org_rotating"}

        with patch("src.app.core.rate_limit.get_remote_address", return_value="10.0.0.1"):
            assert get_rate_limit_key(mock_request) == "10.0.0.1"

    def test_returns_unknown_when_ip_not_available(self, mock_request: MagicMock) -> None:
        with patch("src.app.core.rate_limit.get_remote_address", return_value=None):
            assert get_rate_limit_key(mock_request) == "unknown"


class TestTokenBucket:
    def test_take_spends_and_refills(self) -> None:
        bucket = rate_limit.TokenBucket(tokens=1.0, last_update=100.0)

        assert bucket.take(100.0, rate=2, burst=5) is True
        assert bucket.take(100.0, rate=2, burst=5) is False
        # Half a second at 2 tokens/s buys one more request
        assert bucket.take(100.5, rate=2, burst=5) is True

    def test_refill_is_capped_at_burst(self) -> None:
        bucket = rate_limit.TokenBucket(tokens=0.0, last_update=0.0)

        bucket.take(1000.0, rate=10, burst=3)

        assert bucket.tokens == 2.0


@pytest.mark.parametrize(
    ("path", "throttled"),
    [
        ("/health", False),
        ("/api/v1/internal/jobs/claim", False),
        ("/api/v1/workflows", True),
        ("/api/v1/workflows/public/contact-form", True),
    ],
)
def test_is_throttled_path(path: str, throttled: bool) -> None:
    assert rate_limit.is_throttled_path(path) is throttled


class TestCheckInMemoryRateLimit:
    async def test_denies_when_bucket_empty(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 3

        with patch("src.app.core.rate_limit.get_settings", return_value=mock_settings):
            results = [await _check_in_memory_rate_limit("203.0.113.9") for _ in range(4)]

        assert results == [True, True, True, False]

    async def test_separate_buckets_per_client(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 1

        with patch("src.app.core.rate_limit.get_settings", return_value=mock_settings):
            assert await _check_in_memory_rate_limit("client-a") is True
            assert await _check_in_memory_rate_limit("client-a") is False
            assert await _check_in_memory_rate_limit("client-b") is True

    async def test_replenishes_tokens_over_time(self, mock_settings: MagicMock) -> None:
        mock_settings.global_rate_limit_burst = 1

        with patch("src.app.core.rate_limit.get_settings", return_value=mock_settings):
            await _check_in_memory_rate_limit("slow-client")
            # One second at 10 tokens/s refills the bucket to its burst cap
            rate_limit._rate_limit_buckets["slow-client"].last_update -= 1.0
            assert await _check_in_memory_rate_limit("slow-client") is True


class TestGlobalRateLimitMiddleware:
    @pytest.mark.parametrize(
        "path",
        ["/health", "/metrics", "/docs", "/api/v1/internal/jobs/claim"],
    )
    async def test_exempt_paths_bypass_rate_limit(
        self, mock_request: MagicMock, mock_settings: MagicMock, no_redis, path: str
    ) -> None:
        mock_settings.global_rate_limit_burst = 0
        call_next = AsyncMock(return_value=Response(content=b"OK"))
        mock_request.url.path = path

        response = await global_rate_limit_middleware(mock_request, call_next)

        assert response.body == b"OK"

    async def test_public_execute_is_limited(
        self, mock_request: MagicMock, mock_settings: MagicMock, no_redis
    ) -> None:
        mock_settings.global_rate_limit_burst = 1
        call_next = AsyncMock(return_value=Response(content=b"Accepted"))
        mock_request.url.path = "/api/v1/workflows/public/lead-intake/execute"

        with patch("src.app.core.rate_limit.get_remote_address", return_value="198.51.100.1"):
            first = await global_rate_limit_middleware(mock_request, call_next)
            second = await global_rate_limit_middleware(mock_request, call_next)

        assert first.body == b"Accepted"
        assert second.status_code == 429
        assert second.headers["Retry-After"] == "1"
        body = json.loads(second.body)
        assert body == {"detail": "Too many requests. Please slow down.", "retry_after": 1}
        call_next.assert_called_once_with(mock_request)


class TestRedisBackend:
    async def test_uses_redis_when_available(self, mock_settings: MagicMock) -> None:
        mock_redis = AsyncMock()
        mock_redis.script_load = AsyncMock(return_value="script-sha")
        mock_redis.evalsha = AsyncMock(return_value=1)

        with (
            patch("src.app.core.rate_limit.get_settings", return_value=mock_settings),
            patch("src.app.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get_redis,
        ):
            mock_get_redis.return_value = mock_redis
            assert await rate_limit._check_global_rate_limit("10.1.1.1") is True

        args = mock_redis.evalsha.call_args[0]
        assert args[0] == "script-sha"
        assert args[2] == "global_ratelimit:10.1.1.1"
        # TTL covers a full refill plus a minute
        assert args[6] == str(int(20 / 10) + 60)

    async def test_falls_back_to_memory_on_redis_error(self, mock_settings: MagicMock) -> None:
        rate_limit._script_sha = "old-sha"
        mock_redis = AsyncMock()
        mock_redis.evalsha = AsyncMock(side_effect=Exception("NOSCRIPT"))

        with (
            patch("src.app.core.rate_limit.get_settings", return_value=mock_settings),
            patch("src.app.core.rate_limit.get_redis", new_callable=AsyncMock) as mock_get_redis,
        ):
            mock_get_redis.return_value = mock_redis
            assert await rate_limit._check_global_rate_limit("error-ip") is True

        assert "error-ip" in rate_limit._rate_limit_buckets
        assert rate_limit._script_sha is None

    async def test_script_registered_once(self) -> None:
        mock_redis = AsyncMock()
        mock_redis.script_load = AsyncMock(return_value="sha-1")

        assert await rate_limit._get_or_register_script(mock_redis) == "sha-1"
        assert await rate_limit._get_or_register_script(mock_redis) == "sha-1"
        mock_redis.script_load.assert_called_once()


def test_limiter_disabled_in_testing():
    assert rate_limit.limiter.enabled is False
