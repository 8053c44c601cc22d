"""HTTP transport: the read/write seam the rest of the client talks through."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import Config
from .errors import ApiError, TransportError
from .options import RequestOptions, resolve

_LOGGER = logging.getLogger(__name__)

USER_AGENT = "hosted-index-python"


@runtime_checkable
class ApiWrapper(Protocol):
    """Protocol for the request layer."""

    def read(self, method: str, path: str, options: RequestOptions | None = None) -> dict:
        """Send a read request. May retry transient failures internally."""
        ...

    def write(
        self,
        method: str,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
    ) -> dict:
        """Send a write request exactly once."""
        ...

    def close(self) -> None:
        """Release pooled connections."""
        ...


def _should_retry_read(exception: BaseException) -> bool:
    if isinstance(exception, TransportError):
        return True
    return isinstance(exception, ApiError) and exception.status_code >= 500


class HttpApiWrapper:
    """ApiWrapper over a single httpx.Client.

    Reads are retried with exponential backoff on transport errors and 5xx
    responses, up to ``config.read_retries`` attempts. Writes are sent once.

    Args:
        config: Credentials, endpoint and timeouts.
        client: Pre-built client to use instead of creating one (tests pass
            one backed by ``httpx.MockTransport``).
    """

    def __init__(self, config: Config, client: httpx.Client | None = None) -> None:
        self._config = config
        if client is None:
            client = httpx.Client(
                base_url=config.resolved_base_url,
                headers={
                    "X-Algolia-Application-Id": config.app_id or "",
                    "X-Algolia-API-Key": config.api_key or "",
                    "User-Agent": USER_AGENT,
                },
                timeout=httpx.Timeout(config.read_timeout, connect=config.connect_timeout),
            )
        self._client = client

    def read(self, method: str, path: str, options: RequestOptions | None = None) -> dict:
        options = resolve(options)
        body = options.body or None
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self._config.read_retries)),
            wait=wait_exponential(multiplier=self._config.retry_backoff, max=2),
            retry=retry_if_exception(_should_retry_read),
            before_sleep=before_sleep_log(_LOGGER, logging.WARNING),
            reraise=True,
        )
        return retrying(self._send, method, path, body, options, self._config.read_timeout)

    def write(
        self,
        method: str,
        path: str,
        body: Any = None,
        options: RequestOptions | None = None,
    ) -> dict:
        options = resolve(options)
        if body is None:
            body = dict(options.body)
        elif isinstance(body, dict):
            body = {**body, **options.body}
        return self._send(method, path, body, options, self._config.write_timeout)

    def close(self) -> None:
        self._client.close()

    def _send(
        self,
        method: str,
        path: str,
        body: Any,
        options: RequestOptions,
        default_timeout: float,
    ) -> dict:
        timeout = options.timeout if options.timeout is not None else default_timeout
        _LOGGER.debug("%s %s params=%s", method, path, options.query)
        try:
            response = self._client.request(
                method,
                path,
                params=options.query or None,
                content=json.dumps(body) if body is not None else None,
                headers={"Content-Type": "application/json", **options.headers},
                timeout=httpx.Timeout(timeout, connect=self._config.connect_timeout),
            )
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            # JSONDecodeError, or UnicodeDecodeError for bytes that aren't UTF-8
            raise ApiError(response.status_code, f"Invalid JSON in response: {exc}") from exc
        if not isinstance(payload, dict):
            raise ApiError(
                response.status_code,
                f"Expected a JSON object in response, got {type(payload).__name__}",
            )
        return payload


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        try:
            text = response.content.decode("utf-8").strip()
        except UnicodeDecodeError:
            text = ""
        return text or response.reason_phrase
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return response.reason_phrase
