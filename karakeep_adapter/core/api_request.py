"""
Karakeep API Request Facade

The single entry point every resource handler calls. A request is validated,
queued behind earlier requests, paced, retried and normalized before the
caller's coroutine returns.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Union

from karakeep_adapter.core.context import KarakeepContext
from karakeep_adapter.core.data_models import (
    ApiRequestOptions,
    KarakeepCredentials,
    KarakeepResponse,
    QueuedRequest,
    RateLimitConfig,
    RetryConfig,
)
from karakeep_adapter.core.request_queue import RequestQueue
from karakeep_adapter.core.retry_executor import RetryExecutor
from karakeep_adapter.core.transport import KarakeepTransport
from karakeep_adapter.utils.credential_validator import (
    sanitize_for_logging,
    validate_credentials,
)
from karakeep_adapter.utils.error_handler import ConfigurationError

CONNECTION_TEST_ENDPOINT = "users/me"

RetryOverrides = Union[RetryConfig, Mapping[str, Any], None]
RateLimitOverrides = Union[RateLimitConfig, Mapping[str, Any], None]


class KarakeepApiRequest:
    """
    Authenticated, rate-limited and retrying client for the Karakeep API.

    Each instance owns its own request queue. Share one instance between all
    handlers that should be paced together.

    Example:
        >>> async with HttpxContext(credentials) as context:
        ...     api = KarakeepApiRequest(context)
        ...     response = await api.request(
        ...         ApiRequestOptions(method="GET", endpoint="bookmarks")
        ...     )
        ...     bookmarks = response.data
    """

    def __init__(
        self,
        context: KarakeepContext,
        retry_config: Optional[RetryConfig] = None,
        rate_limit_config: Optional[RateLimitConfig] = None,
        transport: Optional[KarakeepTransport] = None,
        queue: Optional[RequestQueue] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ):
        """
        Initialize the facade.

        Args:
            context: Host capability supplying credentials and raw HTTP calls
            retry_config: Default retry settings
            rate_limit_config: Default queue pacing settings
            transport: Optional transport override
            queue: Optional queue override (must service entries with
                ``self.execute_entry``)
            sleep: Coroutine used for backoff and pacing waits
            jitter: Source of uniform values in [0, 1) for backoff jitter
        """
        self.context = context
        self.retry_config = retry_config or RetryConfig()
        self.rate_limit_config = rate_limit_config or RateLimitConfig()
        self.transport = transport or KarakeepTransport(context)
        self.retry_executor = RetryExecutor(self.transport, sleep=sleep, jitter=jitter)
        self.queue = queue or RequestQueue(self.execute_entry, sleep=sleep)
        self.logger = logging.getLogger(self.__class__.__name__)

    async def _get_credentials(self) -> KarakeepCredentials:
        credentials = await self.context.get_credentials()
        if not credentials:
            raise ConfigurationError("No credentials found for Karakeep API")
        if isinstance(credentials, Mapping):
            credentials = KarakeepCredentials.from_dict(credentials)
        return credentials

    async def request(
        self,
        options: ApiRequestOptions,
        retry_config: RetryOverrides = None,
        rate_limit_config: RateLimitOverrides = None,
    ) -> KarakeepResponse:
        """
        Make an authenticated API request.

        Args:
            options: Request descriptor
            retry_config: Partial or full retry overrides for this call
            rate_limit_config: Partial or full pacing overrides for this call

        Returns:
            Normalized response

        Raises:
            ConfigurationError: Credentials are missing or malformed (never queued)
            QueueTimeoutError: The request expired while waiting in the queue
            APIError: Non-2xx response after retries
            ConnectivityError: Instance unreachable after retries
            RequestTimeoutError: Deadline exceeded after retries
        """
        credentials = await self._get_credentials()
        validate_credentials(credentials)

        entry = QueuedRequest(
            options=options,
            credentials=credentials,
            retry_config=self.retry_config.with_overrides(retry_config),
            rate_limit_config=self.rate_limit_config.with_overrides(rate_limit_config),
            timestamp=self.queue.clock(),
            future=asyncio.get_running_loop().create_future(),
        )
        self.queue.enqueue(entry)

        return await entry.future

    async def execute_entry(self, entry: QueuedRequest) -> KarakeepResponse:
        """Service one dequeued entry through the retry executor."""
        return await self.retry_executor.execute(
            entry.options, entry.credentials, entry.retry_config
        )

    async def test_connection(
        self, credentials: Optional[KarakeepCredentials] = None
    ) -> bool:
        """
        Test API connectivity with one direct call, bypassing the queue.

        Args:
            credentials: Credentials to test (defaults to the context's)

        Returns:
            True if the instance answered successfully, never raises
        """
        try:
            if credentials is None:
                credentials = await self._get_credentials()
            validate_credentials(credentials)
            await self.transport.execute(
                ApiRequestOptions(method="GET", endpoint=CONNECTION_TEST_ENDPOINT),
                credentials,
            )
        except Exception as e:
            key = getattr(credentials, "api_key", "") or ""
            self.logger.info(
                f"Connection test failed (key {sanitize_for_logging(key)}): "
                f"{type(e).__name__}"
            )
            return False

        return True

    @property
    def queue_length(self) -> int:
        return self.queue.queue_length

    @property
    def is_processing(self) -> bool:
        return self.queue.is_processing

    def get_queue_status(self) -> Dict[str, Any]:
        """
        Get queue status (useful for monitoring).

        Returns:
            Dictionary with queueLength and isProcessing
        """
        status = self.queue.get_status()
        return {"queueLength": status.queue_length, "isProcessing": status.is_processing}

    def clear_queue(self) -> None:
        """
        Clear the request queue (useful for testing).

        Pending callers are never settled. Do not use in production.
        """
        self.queue.clear()
