#!/usr/bin/env python3
"""Async entry point for the tether router monitor.

Architecture:
    main() -> MonitorDaemon -> TaskGroup
        ├── scheduler (one TelemetryPipeline cycle per interval)
        ├── prometheus-exporter (optional)

SIGINT and SIGTERM stop the scheduler; an in-flight cycle is cancelled and
the exporter is torn down once the scheduler returns.
"""

from __future__ import annotations

import asyncio
import logging
import signal
import sys
from typing import NoReturn

import uvloop

from tethermon.config.logging import configure_logging
from tethermon.config.settings import RuntimeConfig, load_runtime_config
from tethermon.exporter import AgentStats, PrometheusExporter
from tethermon.pipeline import TelemetryPipeline
from tethermon.scheduler import Scheduler

logger = logging.getLogger("tethermon.daemon")

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)
# Missed cycles tolerated before /healthz reports the agent stale.
HEALTH_STALE_CYCLES = 3


class MonitorDaemon:
    """Wires the pipeline, scheduler and exporter together."""

    def __init__(
        self,
        config: RuntimeConfig,
        *,
        pipeline: TelemetryPipeline | None = None,
        stats: AgentStats | None = None,
    ) -> None:
        self.config = config
        self.stats = stats or AgentStats()
        self.pipeline = pipeline or TelemetryPipeline.from_config(config, stats=self.stats)
        self.scheduler = Scheduler(self.pipeline.run_cycle, config.push_interval)
        self.exporter: PrometheusExporter | None = None
        if config.metrics_enabled:
            self.exporter = PrometheusExporter(
                self.stats,
                config.metrics_host,
                config.metrics_port,
                stale_after=config.push_interval * HEALTH_STALE_CYCLES,
            )

    def _install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self.scheduler.request_shutdown, sig.name)
            except (NotImplementedError, RuntimeError):
                logger.debug("Signal handler for %s not supported on this loop", sig.name)

    def _remove_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        for sig in _SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                logger.debug("Could not remove %s handler", sig.name, exc_info=True)

    async def run(self) -> None:
        """Main async entry point."""
        loop = asyncio.get_running_loop()
        self._install_signal_handlers(loop)
        try:
            async with asyncio.TaskGroup() as task_group:
                exporter_task = None
                if self.exporter is not None:
                    exporter_task = task_group.create_task(self.exporter.run(), name="prometheus-exporter")
                await self.scheduler.run()
                if exporter_task is not None:
                    exporter_task.cancel()
        except* Exception as exc_group:
            for group_exc in exc_group.exceptions:
                logger.critical(
                    "Unhandled exception in main task group: %s",
                    group_exc,
                    exc_info=group_exc,
                )
            raise
        finally:
            self._remove_signal_handlers(loop)
            logger.info("Tether monitor stopped.")


def main() -> NoReturn:
    try:
        config = load_runtime_config()
    except ValueError as exc:
        logger.critical("Startup aborted: %s", exc)
        sys.exit(1)

    configure_logging(config)
    logger.info(
        "Starting tether monitor. Push: %s every %ds (auth=%s, labels=%s)",
        config.push_url,
        config.push_interval,
        "on" if config.auth_enabled else "off",
        "on" if config.labels_enabled else "off",
    )

    try:
        daemon = MonitorDaemon(config)
        asyncio.run(daemon.run(), loop_factory=uvloop.new_event_loop)
        sys.exit(0)
    except KeyboardInterrupt:
        logger.info("Monitor interrupted by user.")
        sys.exit(0)
    except ExceptionGroup as exc_group:
        for group_exc in exc_group.exceptions:
            logger.critical("Fatal error in task group: %s", group_exc, exc_info=group_exc)
        sys.exit(1)
    except OSError as exc:
        logger.critical("System/OS error during monitor execution: %s", exc, exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
