"""
Common HTTP plumbing for internal service clients.
"""

from typing import Any, Dict, Optional

import httpx

from shared.errors import (
    CrossTenantAccessDenied, DataUnavailable, InsufficientPermission, NotFoundError,
    SchoolyException, Unauthenticated,
)
from shared.logging import get_logger, get_request_id
from shared.retry import RetryConfig, call_with_retry


class UpstreamServerError(Exception):
    """5xx answer from an internal service; retried like a transport error."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"Upstream returned {status_code}")


RETRYABLE_ERRORS = (httpx.TransportError, UpstreamServerError)


class ServiceClient:
    """Thin JSON client with bounded retries for one internal service."""

    upstream = "service"

    def __init__(self, base_url: str, retry_config: Optional[RetryConfig] = None,
                 timeout: float = 10.0, metrics=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.metrics = metrics
        self.retry_config = retry_config or RetryConfig(
            max_attempts=3,
            base_delay=0.2,
            max_delay=2.0,
            exponential_base=2.0,
            jitter=True
        )
        self.logger = get_logger(f"gateway.{self.upstream}_client")

    def _headers(self, token: str) -> Dict[str, str]:
        headers = {"Authorization": f"Bearer {token}"}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id
        return headers

    def _record(self, outcome: str):
        if self.metrics is not None:
            self.metrics.increment_counter("upstream_requests_total", upstream=self.upstream, outcome=outcome)

    async def _send(self, method: str, path: str, token: str, json: Optional[Dict[str, Any]] = None) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.request(
                method,
                f"{self.base_url}{path}",
                headers=self._headers(token),
                json=json
            )
        if response.status_code >= 500:
            raise UpstreamServerError(response.status_code)
        return response

    async def request(self, method: str, path: str, token: str,
                      json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Send a request; transient failures are retried, then surface as DataUnavailable."""
        try:
            response = await call_with_retry(
                self._send, method, path, token, json,
                exceptions=RETRYABLE_ERRORS,
                config=self.retry_config
            )
        except RETRYABLE_ERRORS as e:
            self._record("unavailable")
            self.logger.error("Upstream unavailable", path=path, error=str(e))
            raise DataUnavailable(f"{self.upstream.title()} service unavailable", details={"error": str(e)})

        if response.status_code >= 400:
            self._record("rejected")
            raise self._error_from(response)

        self._record("ok")
        return response.json()

    def _error_from(self, response: httpx.Response) -> SchoolyException:
        """Rebuild the shared error an upstream answered with."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        code = body.get("code", "UPSTREAM_ERROR")
        message = body.get("message", "Upstream request failed")

        if response.status_code == 401:
            return Unauthenticated(message)
        if response.status_code == 403:
            if code == "CROSS_TENANT_ACCESS_DENIED":
                return CrossTenantAccessDenied()
            return InsufficientPermission()
        if response.status_code == 404 and code == "NOT_FOUND":
            return NotFoundError(message, details=body.get("details"))

        error = SchoolyException(code, message, body.get("details"))
        error.status_code = response.status_code
        return error
