"""
Integration tests for the API request facade.

The facade is wired to a scripted transport, a fake clock and zero jitter, so
the queue, retry and normalization layers run for real without network I/O.
"""

import asyncio

import pytest

from karakeep_adapter.core.data_models import (
    ApiRequestOptions,
    KarakeepCredentials,
    RateLimitConfig,
    RetryConfig,
)
from karakeep_adapter.utils.error_handler import (
    APIError,
    ConfigurationError,
    ConnectivityError,
    QueueTimeoutError,
)

USERS_ME = ApiRequestOptions("GET", "users/me")


class TestEndToEnd:
    """Test complete request flows."""

    @pytest.mark.asyncio
    async def test_first_try_success(self, make_api):
        api, transport = make_api([{"data": {"id": "u1"}}])

        response = await api.request(USERS_ME)

        assert response.to_dict() == {"data": {"id": "u1"}}
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self, make_api, fake_clock):
        api, transport = make_api(
            [
                APIError("unavailable", status_code=503),
                APIError("unavailable", status_code=503),
                {"data": {"ok": True}},
            ]
        )

        response = await api.request(
            USERS_ME, retry_config={"max_retries": 3, "base_delay": 0.01}
        )

        assert response.data == {"ok": True}
        assert transport.call_count == 3
        assert fake_clock.sleeps == pytest.approx([0.01, 0.02])

    @pytest.mark.asyncio
    async def test_invalid_url_fails_before_transport(self, make_api):
        api, transport = make_api(
            [{"data": {}}],
            creds=KarakeepCredentials(instance_url="not-a-url", api_key="abc1234567"),
        )

        with pytest.raises(ConfigurationError):
            await api.request(USERS_ME)

        assert transport.call_count == 0
        assert api.queue_length == 0
        assert api.is_processing is False

    @pytest.mark.asyncio
    async def test_missing_credentials(self, make_api):
        api, transport = make_api([{"data": {}}], creds=None)

        with pytest.raises(ConfigurationError, match="No credentials found"):
            await api.request(USERS_ME)

        assert transport.call_count == 0

    @pytest.mark.asyncio
    async def test_mapping_credentials_accepted(self, make_api):
        api, transport = make_api(
            [{"id": "u1"}],
            creds={"instanceUrl": "https://x.example", "apiKey": "abc1234567"},
        )

        response = await api.request(USERS_ME)

        assert response.data == {"id": "u1"}


class TestErrorPropagation:
    """Test that normalized errors reach the caller unchanged."""

    @pytest.mark.asyncio
    async def test_non_retryable_error(self, make_api):
        not_found = APIError("Bookmark not found", code="NOT_FOUND", status_code=404)
        api, transport = make_api([not_found])

        with pytest.raises(APIError) as exc_info:
            await api.request(ApiRequestOptions("GET", "bookmarks/missing"))

        assert exc_info.value is not_found
        assert transport.call_count == 1

    @pytest.mark.asyncio
    async def test_network_error_after_retries(self, make_api):
        api, transport = make_api([ConnectivityError("refused")])

        with pytest.raises(ConnectivityError):
            await api.request(USERS_ME, retry_config={"max_retries": 2})

        assert transport.call_count == 3

    @pytest.mark.asyncio
    async def test_stale_entry_rejected(self, make_api, fake_clock):
        api, transport = make_api([{"data": {}}])

        async def slow_then_ok(options, credentials):
            fake_clock.advance(10.0)
            return await original(options, credentials)

        original = transport.execute
        transport.execute = slow_then_ok

        first = asyncio.ensure_future(api.request(USERS_ME))
        second = asyncio.ensure_future(
            api.request(USERS_ME, rate_limit_config={"queue_timeout": 5.0})
        )

        await first
        with pytest.raises(QueueTimeoutError):
            await second
        assert transport.call_count == 1


class TestQueueing:
    """Test ordering and introspection through the facade."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_fifo(self, make_api):
        api, transport = make_api([{"ok": True}])
        endpoints = [f"bookmarks/{i}" for i in range(5)]

        await asyncio.gather(
            *(api.request(ApiRequestOptions("GET", endpoint)) for endpoint in endpoints)
        )

        assert [call.endpoint for call in transport.calls] == endpoints

    @pytest.mark.asyncio
    async def test_rate_limit_spacing(self, make_api, fake_clock):
        api, transport = make_api(
            [{"ok": True}], rate_limit_config=RateLimitConfig(max_requests_per_second=4)
        )

        await asyncio.gather(*(api.request(USERS_ME) for _ in range(3)))

        gaps = [b - a for a, b in zip(transport.call_times, transport.call_times[1:])]
        assert all(gap >= 0.25 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_queue_status(self, make_api):
        api, transport = make_api([{"ok": True}])

        assert api.get_queue_status() == {"queueLength": 0, "isProcessing": False}

        pending = [asyncio.ensure_future(api.request(USERS_ME)) for _ in range(2)]
        await asyncio.sleep(0)
        status = api.get_queue_status()
        assert status["isProcessing"] is True

        await asyncio.gather(*pending)
        await asyncio.sleep(0)
        assert api.get_queue_status() == {"queueLength": 0, "isProcessing": False}

    @pytest.mark.asyncio
    async def test_clear_queue(self, make_api):
        api, transport = make_api([{"ok": True}])

        pending = asyncio.ensure_future(api.request(USERS_ME))
        await asyncio.sleep(0)
        api.clear_queue()

        assert api.queue_length == 0
        assert api.is_processing is False
        pending.cancel()

    @pytest.mark.asyncio
    async def test_default_configs_applied(self, make_api):
        api, transport = make_api([{"ok": True}])

        assert api.retry_config == RetryConfig()
        assert api.rate_limit_config == RateLimitConfig()
        with pytest.raises(ValueError, match="Unknown RetryConfig option"):
            await api.request(USERS_ME, retry_config={"retries": 1})


class TestConnectionProbe:
    """Test test_connection."""

    @pytest.mark.asyncio
    async def test_success(self, make_api):
        api, transport = make_api([{"id": "u1"}])

        assert await api.test_connection() is True
        assert transport.calls[0].endpoint == "users/me"
        assert api.queue.total_processed == 0

    @pytest.mark.asyncio
    async def test_failure_returns_false(self, make_api):
        api, transport = make_api([APIError("Unauthorized", status_code=401)])

        assert await api.test_connection() is False

    @pytest.mark.asyncio
    async def test_invalid_credentials_return_false(self, make_api):
        api, transport = make_api([{"id": "u1"}])

        result = await api.test_connection(
            KarakeepCredentials(instance_url="ftp://x.example", api_key="abc1234567")
        )

        assert result is False
        assert transport.call_count == 0

    @pytest.mark.asyncio
    async def test_missing_credentials_return_false(self, make_api):
        api, transport = make_api([{"id": "u1"}], creds=None)

        assert await api.test_connection() is False
