"""
Rate limiting and API request management for external services.

This module provides a per-service rate limiter and a small HTTP client that
combines it with the bounded retry executor, so provider adapters respect
upstream limits and recover from transient failures.
"""

from dataclasses import dataclass, field
from typing import Any

import aiohttp
from aiolimiter import AsyncLimiter
from loguru import logger

from itinerary_pipeline.utils.error_handling import APIError, with_retry
from itinerary_pipeline.utils.logging import AgentLogger

# HTTP Status Codes
HTTP_STATUS_OK = 200
HTTP_STATUS_REDIRECT = 300
HTTP_STATUS_TOO_MANY_REQUESTS = 429


@dataclass
class RateLimitConfig:
    """Configuration for a service's rate limits."""

    service_name: str
    requests_per_minute: int
    max_retries: int = 3
    base_delay_ms: int = 500
    timeout_seconds: float = 10.0
    retry_status_codes: list[int] = field(
        default_factory=lambda: [429, 500, 502, 503, 504]
    )


class ServiceRateLimiter:
    """Rate limiter for a specific service."""

    def __init__(self, config: RateLimitConfig):
        """
        Initialize the rate limiter.

        Args:
            config: Rate limit configuration
        """
        self.config = config
        # At least one request per fifty seconds
        requests_per_second = max(0.02, config.requests_per_minute / 60)
        self.limiter = AsyncLimiter(requests_per_second, 1)

        logger.info(
            f"Initialized rate limiter for {config.service_name} "
            f"({config.requests_per_minute}/min)"
        )

    def should_retry_exception(self, exception: BaseException) -> bool:
        """
        Determine if an exception should trigger a retry.

        Args:
            exception: The exception to check

        Returns:
            True if should retry, False otherwise
        """
        if isinstance(
            exception,
            aiohttp.ClientConnectionError | aiohttp.ServerTimeoutError | TimeoutError,
        ):
            return True

        return (
            isinstance(exception, APIError)
            and exception.status_code in self.config.retry_status_codes
        )


class APIClient:
    """
    Base client for API requests with rate limiting and retries.

    Provides a foundation for provider adapters with built-in rate limiting,
    exponential backoff and error handling.
    """

    def __init__(
        self,
        base_url: str,
        rate_limit: RateLimitConfig,
        api_key: str | None = None,
    ):
        """
        Initialize the API client.

        Args:
            base_url: Base URL for API requests
            rate_limit: Rate limit configuration for the service
            api_key: API key sent as the ``key`` query parameter (optional)
        """
        self.service_name = rate_limit.service_name
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.limiter = ServiceRateLimiter(rate_limit)
        self.logger = AgentLogger(f"{self.service_name}-client")

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """
        Make an API request with rate limiting and retries.

        Args:
            method: HTTP method (GET, POST, etc.)
            endpoint: API endpoint path
            params: Query parameters (optional)
            headers: Additional HTTP headers (optional)

        Returns:
            Parsed JSON response

        Raises:
            APIError: If the request fails after retries
        """
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        request_params = dict(params or {})
        if self.api_key:
            request_params["key"] = self.api_key
        config = self.limiter.config
        self.logger.log_api_request(self.service_name, endpoint, params)

        async def do_request() -> dict[str, Any]:
            timeout = aiohttp.ClientTimeout(total=config.timeout_seconds)
            async with self.limiter.limiter:
                async with aiohttp.ClientSession(timeout=timeout) as session:
                    async with session.request(
                        method, url, params=request_params, headers=headers
                    ) as response:
                        status_code = response.status
                        response_text = await response.text()

                        if status_code == HTTP_STATUS_TOO_MANY_REQUESTS:
                            logger.warning(
                                f"Rate limited by {self.service_name} API "
                                f"(Retry-After: {response.headers.get('Retry-After')})"
                            )
                            raise APIError(
                                "Rate limit exceeded",
                                self.service_name,
                                status_code=status_code,
                            )

                        if not (HTTP_STATUS_OK <= status_code < HTTP_STATUS_REDIRECT):
                            raise APIError(
                                f"API request failed: {response_text}",
                                self.service_name,
                                status_code=status_code,
                            )

                        try:
                            return await response.json()
                        except aiohttp.ContentTypeError:
                            return {"text": response_text}

        try:
            return await with_retry(
                do_request,
                max_attempts=config.max_retries,
                base_delay_ms=config.base_delay_ms,
                retry_if=self.limiter.should_retry_exception,
            )
        except Exception as e:
            logger.error(
                f"Request to {self.service_name} failed after "
                f"{config.max_retries} attempts: {e!s}"
            )
            raise
