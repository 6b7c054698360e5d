"""
Retry Executor

Wraps the transport with bounded exponential-backoff retry. The retryable
status set comes from the per-call ``RetryConfig``; the jitter source and the
sleep function are injectable so tests can run deterministically.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable

from karakeep_adapter.core.data_models import (
    ApiRequestOptions,
    KarakeepCredentials,
    KarakeepResponse,
    RetryConfig,
)
from karakeep_adapter.core.transport import KarakeepTransport
from karakeep_adapter.utils.credential_validator import mask_in_error_message
from karakeep_adapter.utils.error_handler import is_retryable_error

JITTER_RATIO = 0.1


class RetryExecutor:
    """Retries transport calls with capped, jittered exponential backoff."""

    def __init__(
        self,
        transport: KarakeepTransport,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter: Callable[[], float] = random.random,
    ):
        """
        Initialize the executor.

        Args:
            transport: Single-shot transport to wrap
            sleep: Coroutine used to wait out backoff delays
            jitter: Source of uniform values in [0, 1)
        """
        self.transport = transport
        self._sleep = sleep
        self._jitter = jitter
        self.logger = logging.getLogger(__name__)

        # Request statistics
        self.attempt_count = 0
        self.retry_count = 0

    def calculate_delay(self, attempt: int, retry_config: RetryConfig) -> float:
        """
        Calculate retry delay using exponential backoff with jitter.

        Args:
            attempt: Zero-based index of the attempt that just failed
            retry_config: Retry settings for this call

        Returns:
            Delay in seconds
        """
        delay = min(retry_config.base_delay * (2**attempt), retry_config.max_delay)
        return delay + self._jitter() * JITTER_RATIO * delay

    async def execute(
        self,
        options: ApiRequestOptions,
        credentials: KarakeepCredentials,
        retry_config: RetryConfig,
    ) -> KarakeepResponse:
        """
        Run the transport up to ``max_retries + 1`` times.

        Args:
            options: Request descriptor
            credentials: Credentials snapshot for this call
            retry_config: Retry settings for this call

        Returns:
            Normalized response from the first successful attempt

        Raises:
            The last error observed, unchanged, once retries are exhausted or
            a non-retryable error occurs
        """
        total_attempts = retry_config.max_retries + 1

        for attempt in range(total_attempts):
            self.attempt_count += 1
            try:
                return await self.transport.execute(options, credentials)
            except Exception as e:
                if not is_retryable_error(e, retry_config.retryable_status_codes):
                    raise

                if attempt >= retry_config.max_retries:
                    self.logger.error(
                        f"{options.method} {options.endpoint} failed after "
                        f"{total_attempts} attempt(s): "
                        f"{mask_in_error_message(str(e), [credentials.api_key])}"
                    )
                    raise

                delay = self.calculate_delay(attempt, retry_config)
                self.retry_count += 1
                self.logger.warning(
                    f"{options.method} {options.endpoint} failed (attempt "
                    f"{attempt + 1}/{total_attempts}): "
                    f"{mask_in_error_message(str(e), [credentials.api_key])}. "
                    f"Retrying in {delay:.2f}s"
                )
                await self._sleep(delay)

        # Unreachable: the loop either returns or raises
        raise RuntimeError("Retry loop exited without a result")
