"""Async HTTP transport for the chunk storage service.

Request lifecycle:

1. Send the request with the optional bearer header.
2. On ``2xx`` -- return the parsed JSON response (``{}`` for empty bodies).
3. On ``429`` / ``5xx`` / network error -- back off and retry while the
   :class:`RetryPolicy` has attempts left.  The default policy has none.
4. On any other status, or a retryable one with retry disabled -- raise
   :class:`TransferError` carrying the server's message.
5. On attempts exhausted -- raise :class:`TransferRetryExhaustedError`.
"""

from __future__ import annotations

import asyncio
import json as _json
import sys
import time
from typing import Any

import httpx

from imagepdf.config import ImagePdfConfig
from imagepdf.errors import (
    TransferError,
    TransferNetworkError,
    TransferRetryExhaustedError,
)
from imagepdf.observability import get_logger, resolve_metrics

from .retries import RETRYABLE_STATUSES, RetryPolicy

log = get_logger("imagepdf.transport")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _parse_retry_after(response: httpx.Response) -> float | None:
    """Extract the ``Retry-After`` header value as a float, or ``None``."""
    raw = response.headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except (ValueError, TypeError):
        return None


def _server_message(response: httpx.Response) -> str:
    """Best-effort human message from an error response body."""
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    elif isinstance(body, list) and body and isinstance(body[0], dict):
        # Platforms that return a list of error objects.
        value = body[0].get("message")
        if isinstance(value, str) and value:
            return value
    return response.text[:500]


def _raise_for_status(response: httpx.Response, method: str, path: str) -> None:
    """Raise :class:`TransferError` for a non-retryable error response."""
    status = response.status_code
    message = _server_message(response) or f"HTTP {status} on {method} {path}"
    raise TransferError(
        message=message,
        context={"status_code": status, "method": method, "path": path},
    )


def _dump_payload(
    method: str,
    url: str,
    payload: dict | None,
    response_status: int | None,
    response_body: Any | None,
    token: str | None = None,
) -> None:
    """Write a redacted debug dump of the request/response to stderr."""
    from imagepdf.utils.redact import redact

    dump: dict[str, Any] = {
        "method": method,
        "url": url,
    }
    if payload is not None:
        dump["request_body"] = payload
    if response_status is not None:
        dump["response_status"] = response_status
    if response_body is not None:
        dump["response_body"] = response_body
    print(
        _json.dumps(redact(dump, token), indent=2, default=str),
        file=sys.stderr,
    )


def _json_body(response: httpx.Response, method: str, path: str) -> dict:
    """Parse a success body into a dict.

    A bare JSON string or a non-JSON text body is taken as an id, the way
    chunk endpoints that return only the file id answer.

    Raises
    ------
    TransferError
        If the body is JSON but neither an object nor a string.
    """
    if response.status_code == 204 or not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return {"id": text} if text else {}
    if isinstance(body, str):
        return {"id": body}
    if not isinstance(body, dict):
        raise TransferError(
            message=(
                f"Unexpected {type(body).__name__} response body "
                f"from {method} {path}"
            ),
            context={
                "status_code": response.status_code,
                "method": method,
                "path": path,
            },
        )
    return body


# ---------------------------------------------------------------------------
# Async transport
# ---------------------------------------------------------------------------

class AsyncTransport:
    """Asynchronous HTTP transport with optional auth and retry.

    Parameters
    ----------
    config:
        An :class:`ImagePdfConfig` controlling base URL, timeout, proxy,
        auth and retry behaviour.
    """

    def __init__(self, config: ImagePdfConfig) -> None:
        self._config = config
        self._metrics = resolve_metrics(config.metrics)
        self._policy = RetryPolicy.from_config(config)

        headers = {"Content-Type": "application/json"}
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=headers,
            timeout=httpx.Timeout(config.timeout_seconds),
            proxy=config.http_proxy,
        )

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def request(self, method: str, path: str, **kwargs: Any) -> dict:
        """Execute an HTTP request against the storage service.

        Parameters
        ----------
        method:
            HTTP method.
        path:
            Path relative to ``base_url``.
        **kwargs:
            Forwarded to :meth:`httpx.AsyncClient.request`.

        Returns
        -------
        dict
            Parsed JSON response body.  A bare JSON string or a plain-text
            body is returned as ``{"id": <text>}``.

        Raises
        ------
        TransferError
            On non-retryable error responses, and on success bodies that
            are JSON but not an object or a string.
        TransferNetworkError
            On transport failures once no retry remains.
        TransferRetryExhaustedError
            When every attempt got a retryable status.
        """
        policy = self._policy
        last_status: int | None = None

        for attempt in range(policy.max_attempts):
            try:
                response = await self._send(method, path, kwargs)
            except httpx.TransportError as exc:
                if not policy.retryable_exception(exc, attempt):
                    raise TransferNetworkError(
                        message=f"Network error on {method} {path}: {exc}",
                        context={"method": method, "path": path, "attempt": attempt + 1},
                        cause=exc,
                    ) from exc
                await self._back_off(method, path, attempt, reason="network_error")
                continue

            if response.is_success:
                return _json_body(response, method, path)

            last_status = response.status_code
            if not policy.retryable_status(last_status, attempt):
                if policy.enabled and last_status in RETRYABLE_STATUSES:
                    break
                _raise_for_status(response, method, path)

            await self._back_off(
                method,
                path,
                attempt,
                reason=str(last_status),
                retry_after=_parse_retry_after(response) if last_status == 429 else None,
            )

        raise TransferRetryExhaustedError(
            message=(
                f"All {policy.max_attempts} attempts exhausted for {method} {path} "
                f"(last status: {last_status})"
            ),
            context={"attempts": policy.max_attempts, "last_status_code": last_status},
        )

    async def _send(
        self,
        method: str,
        path: str,
        kwargs: dict[str, Any],
    ) -> httpx.Response:
        """One round-trip, with metrics and the optional debug dump."""
        t0 = time.monotonic()
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TransportError as exc:
            self._metrics.increment(
                "imagepdf.requests_total",
                tags={"method": method, "path": path, "status": "error"},
            )
            log.warning(
                "Request network error",
                extra={
                    "extra_fields": {
                        "op": "request",
                        "method": method,
                        "path": path,
                        "error": str(exc),
                    }
                },
            )
            raise

        tags = {"method": method, "path": path, "status": str(response.status_code)}
        self._metrics.increment("imagepdf.requests_total", tags=tags)
        self._metrics.timing(
            "imagepdf.request_duration_ms", (time.monotonic() - t0) * 1000, tags=tags,
        )
        if self._config.debug_dump_payload:
            self._emit_debug_dump(method, response, kwargs.get("json"))
        return response

    async def _back_off(
        self,
        method: str,
        path: str,
        attempt: int,
        *,
        reason: str,
        retry_after: float | None = None,
    ) -> None:
        delay = self._policy.delay(attempt, retry_after)
        self._metrics.increment(
            "imagepdf.retries_total",
            tags={"method": method, "path": path, "reason": reason},
        )
        log.warning(
            "Retrying request to storage service",
            extra={
                "extra_fields": {
                    "op": "request",
                    "method": method,
                    "path": path,
                    "reason": reason,
                    "attempt": attempt + 1,
                    "delay": delay,
                }
            },
        )
        await asyncio.sleep(delay)

    def _emit_debug_dump(
        self,
        method: str,
        response: httpx.Response,
        json_payload: Any,
    ) -> None:
        try:
            resp_body = response.json()
        except ValueError:
            resp_body = response.text[:1000]
        _dump_payload(
            method, str(response.url), json_payload,
            response.status_code, resp_body,
            token=self._config.token or None,
        )

    async def close(self) -> None:
        """Close the underlying async HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> AsyncTransport:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()
