"""
Thin JSON-over-HTTPS client for the marketplace API.

Every outbound call from the client-side pipeline goes through here so
base URL, timeout and request logging live in one place. Callers map
httpx errors onto the pipeline's own exceptions.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import httpx

from quickpost.config import get_settings
from quickpost.logging_config import get_logger, trace_id_var

settings = get_settings()
logger = get_logger(__name__)


class ApiClient:
    """
    POST JSON to ``{base_url}{path}`` and return the decoded body.

    Pass an ``httpx.AsyncClient`` to reuse a connection pool (or to
    stub the transport in tests); otherwise one is opened per call.
    """

    def __init__(
        self,
        base_url: str | None = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float | None = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client

    async def post(self, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        headers = {"Content-Type": "application/json"}
        trace_id = trace_id_var.get("")
        if trace_id:
            headers["X-Request-ID"] = trace_id

        start = time.monotonic()
        if self._client is not None:
            response = await self._client.post(url, json=payload, headers=headers, timeout=self.timeout)
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=payload, headers=headers)

        logger.info(
            "api_call",
            path=path,
            status=response.status_code,
            elapsed_ms=round((time.monotonic() - start) * 1000, 1),
        )
        response.raise_for_status()
        return response.json()


def error_message(error: httpx.HTTPStatusError) -> str:
    """Best-effort ``message`` from an error response body."""
    try:
        body = error.response.json()
    except ValueError:
        return error.response.text or str(error)
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)
