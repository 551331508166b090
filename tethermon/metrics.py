"""Map combined interface records to metric points."""

from __future__ import annotations

import time
from collections.abc import Callable, Iterable

from .const import (
    METRIC_ONLINE_TIME,
    METRIC_RX,
    METRIC_STATUS_ENABLED,
    METRIC_STATUS_ONLINE,
    METRIC_STATUS_TRACKING,
    METRIC_TX,
    METRIC_UP_TIME,
    STATUS_DISABLED,
    STATUS_ONLINE,
    TRACKING_ACTIVE,
)
from .records import CombinedRecord, MetricPoint

Clock = Callable[[], float]


def _flag(condition: bool) -> float:
    return 1.0 if condition else 0.0


def build(record: CombinedRecord, now: float) -> list[MetricPoint]:
    """Return the series for one interface, all stamped with *now*."""

    labels = (("device", record.device_label), ("interface", record.interface_name))
    values: list[tuple[str, float]] = [
        (METRIC_UP_TIME, record.total_uptime_seconds),
        (METRIC_ONLINE_TIME, record.online_duration_seconds),
        (METRIC_STATUS_ONLINE, _flag(record.status == STATUS_ONLINE)),
        (METRIC_STATUS_ENABLED, _flag(record.status != STATUS_DISABLED)),
        (METRIC_STATUS_TRACKING, _flag(record.tracking == TRACKING_ACTIVE)),
    ]
    if record.traffic_available:
        values.append((METRIC_TX, float(record.transmitted_bytes)))
        values.append((METRIC_RX, float(record.received_bytes)))

    return [MetricPoint(name=name, labels=labels, value=value, timestamp=now) for name, value in values]


def build_all(records: Iterable[CombinedRecord], clock: Clock = time.time) -> list[MetricPoint]:
    """Build points for every record; the clock is sampled once per record."""

    points: list[MetricPoint] = []
    for record in records:
        points.extend(build(record, clock()))
    return points


__all__ = ["Clock", "build", "build_all"]
