"""Ship one batch of metric points to the remote-write endpoint."""

from __future__ import annotations

import logging
from collections.abc import Sequence

import httpx

from .config.model import RuntimeConfig
from .const import (
    DEFAULT_PUSH_TIMEOUT,
    REMOTE_WRITE_CONTENT_TYPE,
    REMOTE_WRITE_ENCODING,
    REMOTE_WRITE_VERSION,
    USER_AGENT,
)
from .records import MetricPoint
from .remote_write import WriteRequest

logger = logging.getLogger("tethermon.pusher")

_RESPONSE_PREVIEW = 200


class PushError(Exception):
    """The remote write failed; the batch is dropped."""


class Pusher:
    """Single-attempt remote-write client.

    A new HTTP client is opened per push so no connection state leaks
    between cycles.
    """

    def __init__(
        self,
        url: str,
        *,
        username: str | None = None,
        password: str | None = None,
        timeout: float = DEFAULT_PUSH_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._auth = httpx.BasicAuth(username, password or "") if username else None
        self._transport = transport

    @classmethod
    def from_config(cls, config: RuntimeConfig, *, transport: httpx.AsyncBaseTransport | None = None) -> Pusher:
        return cls(
            config.push_url,
            username=config.push_username,
            password=config.push_password,
            timeout=config.push_timeout,
            transport=transport,
        )

    async def push(self, points: Sequence[MetricPoint]) -> None:
        body = WriteRequest.from_points(points).compress()
        headers = {
            "Content-Encoding": REMOTE_WRITE_ENCODING,
            "Content-Type": REMOTE_WRITE_CONTENT_TYPE,
            "X-Prometheus-Remote-Write-Version": REMOTE_WRITE_VERSION,
            "User-Agent": USER_AGENT,
        }
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                auth=self._auth,
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, content=body, headers=headers)
        except httpx.HTTPError as exc:
            raise PushError(f"remote write to {self.url} failed: {exc!r}") from exc

        if not response.is_success:
            detail = response.text[:_RESPONSE_PREVIEW].strip()
            raise PushError(
                f"remote write to {self.url} rejected with HTTP {response.status_code}"
                + (f": {detail}" if detail else "")
            )
        logger.debug("Pushed %d points (%d bytes)", len(points), len(body))


__all__ = ["PushError", "Pusher"]
