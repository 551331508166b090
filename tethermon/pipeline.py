"""One collection cycle: collect, merge, build and push."""

from __future__ import annotations

import logging
import time

import msgspec

from .collector import Collector
from .config.model import RuntimeConfig
from .exporter import AgentStats
from .merger import merge
from .metrics import Clock, build_all
from .pusher import PushError, Pusher
from .records import MetricPoint, StepError

logger = logging.getLogger("tethermon.pipeline")


class CycleReport(msgspec.Struct):
    """Summary of one cycle, mostly for logs and tests."""

    points: list[MetricPoint] = msgspec.field(default_factory=list)
    errors: list[StepError] = msgspec.field(default_factory=list)
    records: int = 0
    skipped_labels: int = 0
    pushed: bool = False
    push_error: str | None = None


class TelemetryPipeline:
    def __init__(
        self,
        collector: Collector,
        pusher: Pusher,
        *,
        stats: AgentStats | None = None,
        clock: Clock = time.time,
    ) -> None:
        self.collector = collector
        self.pusher = pusher
        self.stats = stats or AgentStats()
        self.clock = clock

    @classmethod
    def from_config(cls, config: RuntimeConfig, *, stats: AgentStats | None = None) -> TelemetryPipeline:
        return cls(Collector.from_config(config), Pusher.from_config(config), stats=stats)

    async def run_cycle(self) -> CycleReport:
        started = time.monotonic()
        report = CycleReport()

        collection = await self.collector.collect()
        report.errors = collection.errors
        for error in collection.errors:
            self.stats.step_errors.labels(step=error.step).inc()

        combined = merge(collection.interfaces, collection.statuses, collection.traffic)
        resolved = await self.collector.resolve_labels(combined)
        report.records = len(resolved)
        report.skipped_labels = len(combined) - len(resolved)
        if report.skipped_labels:
            self.stats.label_errors.inc(report.skipped_labels)

        report.points = build_all(resolved, self.clock)
        if report.points:
            try:
                await self.pusher.push(report.points)
            except PushError as exc:
                report.push_error = str(exc)
                self.stats.push_failures.inc()
                logger.error("Failed to push metrics: %s", exc)
            else:
                report.pushed = True
                self.stats.points_pushed.inc(len(report.points))
        else:
            logger.info("No metric points this cycle; skipping push")

        self.stats.cycles.inc()
        self.stats.last_cycle_duration.set(time.monotonic() - started)
        self.stats.last_cycle_timestamp.set_to_current_time()
        logger.info(
            "Cycle finished: %d records, %d points, %d step errors, pushed=%s",
            report.records,
            len(report.points),
            len(report.errors),
            report.pushed,
        )
        return report


__all__ = ["CycleReport", "TelemetryPipeline"]
