"""
Base API Client for External Service Integrations

This module provides the foundational API client class with:
- Shared httpx connection handling and explicit lifecycle
- Retry with exponential backoff for transient failures
- Error handling and logging
- Request metrics for health reporting
"""

import time
from abc import ABC
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

import httpx
import structlog
from tenacity import (
    AsyncRetrying, RetryCallState, retry_if_exception,
    stop_after_attempt, wait_exponential
)

logger = structlog.get_logger(__name__)

RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


class ClientStatus(str, Enum):
    """API client status states"""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class RetryConfig:
    """Retry configuration"""
    max_attempts: int = 3
    initial_wait: float = 0.5
    max_wait: float = 8.0
    exponential_base: float = 2.0


@dataclass
class APIMetrics:
    """API client metrics"""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    average_response_time: float = 0.0
    last_request_time: Optional[datetime] = None
    last_success_time: Optional[datetime] = None
    last_failure_time: Optional[datetime] = None


def is_transient_error(error: BaseException) -> bool:
    """Network failures, rate limiting and server errors are worth retrying"""
    if isinstance(error, httpx.TransportError):
        return True
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    return False


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Retrying request after transient failure",
        attempt=retry_state.attempt_number,
        error=str(error),
    )


class BaseAPIClient(ABC):
    """Base class for all API clients with common functionality"""

    def __init__(
        self,
        service_name: str,
        base_url: str,
        retry_config: Optional[RetryConfig] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        user_agent: str = "CRM-Insights-Engine",
    ):
        self.service_name = service_name
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self.user_agent = user_agent

        # Metrics
        self.metrics = APIMetrics()

        # HTTP client
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        """Async context manager entry"""
        await self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit"""
        await self.close()

    async def _ensure_client(self):
        """Ensure HTTP client is initialized"""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout),
                headers=self._get_default_headers(),
                transport=self._transport,
                limits=httpx.Limits(
                    max_keepalive_connections=5,
                    max_connections=10,
                    keepalive_expiry=30
                )
            )

    async def close(self):
        """Close HTTP client and cleanup resources"""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_default_headers(self) -> Dict[str, str]:
        """Get default HTTP headers"""
        return {
            "User-Agent": self.user_agent,
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _make_request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Make HTTP request, retrying transient failures"""
        await self._ensure_client()

        url = f"{self.base_url}/{endpoint.lstrip('/')}"

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=self.retry_config.initial_wait,
                exp_base=self.retry_config.exponential_base,
                max=self.retry_config.max_wait,
            ),
            retry=retry_if_exception(is_transient_error),
            before_sleep=_log_retry,
            reraise=True,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    response = await self._make_raw_request(
                        method, url, json=data, params=params, headers=headers
                    )
        except Exception:
            self._record_failure()
            raise

        self._record_success()
        return response

    async def _make_raw_request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """Make a single HTTP request"""
        start_time = time.monotonic()
        self.metrics.total_requests += 1
        self.metrics.last_request_time = datetime.now(timezone.utc)

        try:
            response = await self._client.request(method, url, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.error("Request failed", service=self.service_name, method=method, error=str(e))
            raise
        finally:
            response_time = time.monotonic() - start_time
            if self.metrics.average_response_time == 0:
                self.metrics.average_response_time = response_time
            else:
                # Exponential moving average
                self.metrics.average_response_time = (
                    0.9 * self.metrics.average_response_time + 0.1 * response_time
                )

    def _record_success(self):
        self.metrics.successful_requests += 1
        self.metrics.last_success_time = datetime.now(timezone.utc)

    def _record_failure(self):
        self.metrics.failed_requests += 1
        self.metrics.last_failure_time = datetime.now(timezone.utc)

    def get_status(self) -> ClientStatus:
        """Derive client status from recent outcomes"""
        if self.metrics.last_failure_time is None:
            return ClientStatus.HEALTHY
        if self.metrics.last_success_time and self.metrics.last_success_time > self.metrics.last_failure_time:
            return ClientStatus.DEGRADED
        return ClientStatus.UNHEALTHY

    async def get_health_status(self) -> Dict[str, Any]:
        """Get client health status"""
        calls = self.metrics.successful_requests + self.metrics.failed_requests
        return {
            "service": self.service_name,
            "status": self.get_status().value,
            "metrics": {
                "total_requests": self.metrics.total_requests,
                "success_rate": self.metrics.successful_requests / max(1, calls),
                "average_response_time": self.metrics.average_response_time,
                "last_request": self.metrics.last_request_time.isoformat() if self.metrics.last_request_time else None,
                "last_success": self.metrics.last_success_time.isoformat() if self.metrics.last_success_time else None,
                "last_failure": self.metrics.last_failure_time.isoformat() if self.metrics.last_failure_time else None,
            }
        }
