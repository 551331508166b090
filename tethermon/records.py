"""Record types flowing through one collection cycle.

All records are immutable ``msgspec`` structs. Records decoded from
collaborator JSON use field renames so that unknown keys are ignored and
missing keys fall back to empty defaults.
"""

from __future__ import annotations

import msgspec


class InterfaceRecord(msgspec.Struct, frozen=True):
    """One entry of the interface inventory (``ifdev``)."""

    interface_name: str = msgspec.field(default="", name="interface")
    device_name: str = msgspec.field(default="", name="device")


class FailoverStatusRecord(msgspec.Struct, frozen=True):
    """One entry of the WAN failover status (``mwan3ifstatus``)."""

    interface_name: str = msgspec.field(default="", name="interface")
    status: str = ""
    online_time: str = ""
    uptime: str = ""
    tracking: str = ""


class DeviceLabel(msgspec.Struct, frozen=True):
    """Response of the device label lookup (``ifusb``)."""

    description: str = ""


class TrafficCounters(msgspec.Struct, frozen=True):
    device_name: str
    received_bytes: int = 0
    transmitted_bytes: int = 0


class CombinedRecord(msgspec.Struct, frozen=True):
    """Joined per-interface view consumed by the metric builder."""

    interface_name: str
    device_name: str
    device_label: str
    status: str
    online_time: str
    uptime: str
    online_duration_seconds: float
    total_uptime_seconds: float
    tracking: str
    received_bytes: int = 0
    transmitted_bytes: int = 0
    traffic_available: bool = False


class MetricPoint(msgspec.Struct, frozen=True):
    name: str
    labels: tuple[tuple[str, str], ...]
    value: float
    timestamp: float


class StepError(msgspec.Struct, frozen=True):
    step: str
    message: str


class CollectionResult(msgspec.Struct):
    """Output of one collection pass.

    ``traffic`` is ``None`` when the traffic step failed, which suppresses
    the traffic series for the cycle.
    """

    interfaces: list[InterfaceRecord] = msgspec.field(default_factory=list)
    statuses: list[FailoverStatusRecord] = msgspec.field(default_factory=list)
    traffic: dict[str, TrafficCounters] | None = None
    errors: list[StepError] = msgspec.field(default_factory=list)


__all__ = [
    "CollectionResult",
    "CombinedRecord",
    "DeviceLabel",
    "FailoverStatusRecord",
    "InterfaceRecord",
    "MetricPoint",
    "StepError",
    "TrafficCounters",
]
