"""Tests for agent self-metrics and the scrape endpoint."""

from __future__ import annotations

import asyncio

import pytest

from tethermon.exporter import AgentStats, PrometheusExporter


def test_agent_stats_are_isolated_per_instance() -> None:
    first = AgentStats()
    second = AgentStats()

    first.cycles.inc()
    first.step_errors.labels(step="traffic").inc(2)

    assert first.sample("tethermon_cycles_total") == 1.0
    assert first.sample("tethermon_step_errors_total", {"step": "traffic"}) == 2.0
    assert second.sample("tethermon_cycles_total") == 0.0


def test_render_uses_text_exposition_format() -> None:
    stats = AgentStats()
    stats.points_pushed.inc(5)

    body = stats.render().decode("utf-8")

    assert "# TYPE tethermon_points_pushed_total counter" in body
    assert "tethermon_points_pushed_total 5.0" in body


async def _get(port: int, path: str) -> bytes:
    return await _request(port, "GET", path)


async def _request(port: int, method: str, path: str) -> bytes:
    reader, writer = await asyncio.open_connection("127.0.0.1", port)
    writer.write(f"{method} {path} HTTP/1.1\r\nHost: localhost\r\n\r\n".encode("ascii"))
    await writer.drain()
    response = await reader.read()
    writer.close()
    await writer.wait_closed()
    return response


@pytest.mark.asyncio
async def test_exporter_serves_metrics() -> None:
    stats = AgentStats()
    stats.cycles.inc(3)
    exporter = PrometheusExporter(stats, "127.0.0.1", 0)
    await exporter.start()
    try:
        assert exporter.port != 0
        response = await _get(exporter.port, "/metrics")
        missing = await _get(exporter.port, "/nope")
    finally:
        await exporter.stop()

    assert response.startswith(b"HTTP/1.1 200 OK")
    assert b"tethermon_cycles_total 3.0" in response
    assert missing.startswith(b"HTTP/1.1 404")


@pytest.mark.asyncio
async def test_exporter_run_is_cancellable() -> None:
    exporter = PrometheusExporter(AgentStats(), "127.0.0.1", 0)
    task = asyncio.create_task(exporter.run())
    await asyncio.sleep(0.05)

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.asyncio
async def test_exporter_head_and_method_handling() -> None:
    exporter = PrometheusExporter(AgentStats(), "127.0.0.1", 0)
    await exporter.start()
    try:
        head = await _request(exporter.port, "HEAD", "/metrics")
        post = await _request(exporter.port, "POST", "/metrics")
    finally:
        await exporter.stop()

    assert head.startswith(b"HTTP/1.1 200 OK")
    assert head.endswith(b"\r\n\r\n")
    assert post.startswith(b"HTTP/1.1 405")


@pytest.mark.asyncio
async def test_healthz_reports_stale_agent() -> None:
    now = [1000.0]
    stats = AgentStats()
    exporter = PrometheusExporter(stats, "127.0.0.1", 0, stale_after=90, clock=lambda: now[0])
    await exporter.start()
    try:
        fresh = await _get(exporter.port, "/healthz")
        now[0] = 1200.0
        stale = await _get(exporter.port, "/healthz")
        stats.last_cycle_timestamp.set(1150.0)
        recovered = await _get(exporter.port, "/healthz?verbose=1")
    finally:
        await exporter.stop()

    assert fresh.startswith(b"HTTP/1.1 200")
    assert stale.startswith(b"HTTP/1.1 503")
    assert recovered.startswith(b"HTTP/1.1 200")


def test_healthz_without_threshold_is_always_healthy() -> None:
    assert PrometheusExporter(AgentStats(), "127.0.0.1", 0).healthy() is True


@pytest.mark.asyncio
async def test_run_returns_when_port_is_taken() -> None:
    blocker = await asyncio.start_server(lambda reader, writer: None, "127.0.0.1", 0)
    port = blocker.sockets[0].getsockname()[1]
    exporter = PrometheusExporter(AgentStats(), "127.0.0.1", port)
    try:
        await asyncio.wait_for(exporter.run(), timeout=1)
    finally:
        blocker.close()
        await blocker.wait_closed()

    assert exporter.serving is False
