"""Join inventory, failover status and traffic counters per interface."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from .parsers import parse_duration
from .records import CombinedRecord, FailoverStatusRecord, InterfaceRecord, TrafficCounters

logger = logging.getLogger("tethermon.merger")


def merge(
    interfaces: Iterable[InterfaceRecord],
    statuses: Iterable[FailoverStatusRecord],
    traffic: Mapping[str, TrafficCounters] | None,
) -> list[CombinedRecord]:
    """Inner-join *statuses* with *interfaces* by interface name.

    Counters are looked up by the resolved device name; a miss yields zero
    counters. ``traffic=None`` means counters were not collected this cycle.
    Output order follows *statuses*.
    """

    by_interface: dict[str, InterfaceRecord] = {}
    for record in interfaces:
        # Later duplicates win.
        by_interface[record.interface_name] = record

    counters_by_device = traffic or {}
    combined: list[CombinedRecord] = []
    for status in statuses:
        interface = by_interface.get(status.interface_name)
        if interface is None:
            logger.debug("No tethered device for interface %s; skipping", status.interface_name)
            continue

        counters = counters_by_device.get(interface.device_name)
        combined.append(
            CombinedRecord(
                interface_name=interface.interface_name,
                device_name=interface.device_name,
                device_label=interface.device_name,
                status=status.status,
                online_time=status.online_time,
                uptime=status.uptime,
                online_duration_seconds=parse_duration(status.online_time),
                total_uptime_seconds=parse_duration(status.uptime),
                tracking=status.tracking,
                received_bytes=counters.received_bytes if counters is not None else 0,
                transmitted_bytes=counters.transmitted_bytes if counters is not None else 0,
                traffic_available=traffic is not None,
            )
        )
    return combined


__all__ = ["merge"]
