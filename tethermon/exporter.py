"""Agent self-metrics and an optional Prometheus scrape endpoint."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable

from prometheus_client import CONTENT_TYPE_LATEST, CollectorRegistry, Counter, Gauge, generate_latest

logger = logging.getLogger("tethermon.exporter")

_TEXT_PLAIN = "text/plain; charset=utf-8"
_MAX_HEADER_LINES = 100
_REASONS = {
    200: "OK",
    400: "Bad Request",
    404: "Not Found",
    405: "Method Not Allowed",
    503: "Service Unavailable",
}


class AgentStats:
    """Counters describing the agent's own behaviour.

    Kept in a private registry so tests and multiple instances never clash
    with the process-wide default registry.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.cycles = Counter(
            "tethermon_cycles",
            "Collection cycles completed",
            registry=self.registry,
        )
        self.step_errors = Counter(
            "tethermon_step_errors",
            "Failed collection steps",
            labelnames=("step",),
            registry=self.registry,
        )
        self.label_errors = Counter(
            "tethermon_label_errors",
            "Interfaces skipped because the device label lookup failed",
            registry=self.registry,
        )
        self.push_failures = Counter(
            "tethermon_push_failures",
            "Remote writes that failed",
            registry=self.registry,
        )
        self.points_pushed = Counter(
            "tethermon_points_pushed",
            "Metric points accepted by the remote endpoint",
            registry=self.registry,
        )
        self.last_cycle_duration = Gauge(
            "tethermon_last_cycle_duration_seconds",
            "Wall time of the most recent cycle",
            registry=self.registry,
        )
        self.last_cycle_timestamp = Gauge(
            "tethermon_last_cycle_timestamp_seconds",
            "Unix time at which the most recent cycle finished",
            registry=self.registry,
        )

    def sample(self, name: str, labels: dict[str, str] | None = None) -> float:
        value = self.registry.get_sample_value(name, labels or {})
        return value if value is not None else 0.0

    def render(self) -> bytes:
        return generate_latest(self.registry)


class PrometheusExporter:
    """Serve ``AgentStats`` over plain HTTP.

    ``/metrics`` (or ``/``) returns the text exposition format. When
    ``stale_after`` is set, ``/healthz`` answers 503 once no cycle has
    finished for that many seconds.
    """

    def __init__(
        self,
        stats: AgentStats,
        host: str,
        port: int,
        *,
        stale_after: float | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._stats = stats
        self._host = host
        self._port = port
        self._stale_after = stale_after
        self._clock = clock
        self._started_at: float | None = None
        self._server: asyncio.Server | None = None

    @property
    def port(self) -> int:
        """Bound port; differs from the requested one when that was 0."""
        if self._server is not None and self._server.sockets:
            return int(self._server.sockets[0].getsockname()[1])
        return self._port

    @property
    def serving(self) -> bool:
        return self._server is not None

    async def start(self) -> None:
        if self._server is not None:
            return
        self._server = await asyncio.start_server(self._serve, self._host, self._port)
        self._started_at = self._clock()
        logger.info("Self-metrics endpoint on %s:%d", self._host, self.port, extra={"port": self.port})

    async def stop(self) -> None:
        server, self._server = self._server, None
        if server is None:
            return
        server.close()
        await server.wait_closed()
        logger.info("Self-metrics endpoint closed")

    async def run(self) -> None:
        """Serve until cancelled; returns early if the address cannot be bound."""
        try:
            await self.start()
        except OSError as exc:
            logger.error(
                "Self-metrics endpoint unavailable on %s:%d: %s",
                self._host,
                self._port,
                exc,
                extra={"port": self._port},
            )
            return
        assert self._server is not None
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    def healthy(self) -> bool:
        if self._stale_after is None or self._started_at is None:
            return True
        last_cycle = self._stats.sample("tethermon_last_cycle_timestamp_seconds") or self._started_at
        return self._clock() - last_cycle <= self._stale_after

    def _route(self, method: str, target: str) -> tuple[int, bytes, str]:
        if method not in ("GET", "HEAD"):
            return 405, b"", _TEXT_PLAIN
        path = target.split("?", 1)[0]
        if path in ("/", "/metrics"):
            return 200, self._stats.render(), CONTENT_TYPE_LATEST
        if path == "/healthz":
            if self.healthy():
                return 200, b"ok\n", _TEXT_PLAIN
            return 503, b"stale\n", _TEXT_PLAIN
        return 404, b"", _TEXT_PLAIN

    async def _serve(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            request_line = await reader.readline()
            parts = request_line.decode("ascii", errors="ignore").split()
            if len(parts) < 2:
                if request_line:
                    await _respond(writer, 400, b"", _TEXT_PLAIN)
                return
            await _skip_headers(reader)
            method = parts[0].upper()
            status, body, content_type = self._route(method, parts[1])
            await _respond(writer, status, body, content_type, include_body=method != "HEAD")
        except (OSError, ValueError) as exc:
            logger.warning("Self-metrics request failed: %s", exc)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (OSError, RuntimeError):
                logger.debug("Error closing self-metrics connection", exc_info=True)


async def _skip_headers(reader: asyncio.StreamReader) -> None:
    for _ in range(_MAX_HEADER_LINES):
        line = await reader.readline()
        if line in (b"", b"\r\n", b"\n"):
            return


async def _respond(
    writer: asyncio.StreamWriter,
    status: int,
    body: bytes,
    content_type: str,
    *,
    include_body: bool = True,
) -> None:
    head = "\r\n".join(
        (
            f"HTTP/1.1 {status} {_REASONS.get(status, 'Error')}",
            f"Content-Type: {content_type}",
            f"Content-Length: {len(body)}",
            "Connection: close",
            "",
            "",
        )
    )
    writer.write(head.encode("ascii") + (body if include_body else b""))
    await writer.drain()


__all__ = ["AgentStats", "PrometheusExporter"]
