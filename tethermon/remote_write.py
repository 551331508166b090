"""Prometheus remote-write wire format.

The ``WriteRequest`` protobuf message is small enough to describe directly
with Construct: every message field is a tag byte followed by a varint
length prefix, doubles are little-endian fixed64 and timestamps are varints.
The encoded message is snappy block-compressed before it is sent.

The schema is a fixed tag sequence: every label carries both name and value
and every sample carries both value and timestamp, even when they hold
protobuf default values. It therefore parses only messages built the same
way; a generic encoder that omits default fields produces bytes this schema
rejects.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, ClassVar

import msgspec
import snappy
from construct import (  # type: ignore
    Const,
    Construct,
    Float64l,
    FocusedSeq,
    GreedyRange,
    PascalString,
    Prefixed,
    Struct as BinStruct,
    VarInt,
)

from .const import METRIC_NAME_LABEL
from .records import MetricPoint


def _message_field(tag: int, subcon: Construct) -> Construct:
    """Repeated length-delimited field number *tag*."""
    return GreedyRange(FocusedSeq("value", Const(bytes([(tag << 3) | 2])), "value" / Prefixed(VarInt, subcon)))


_LABEL = BinStruct(
    Const(b"\x0a"),
    "name" / PascalString(VarInt, "utf-8"),
    Const(b"\x12"),
    "value" / PascalString(VarInt, "utf-8"),
)

_SAMPLE = BinStruct(
    Const(b"\x09"),
    "value" / Float64l,
    Const(b"\x10"),
    "timestamp" / VarInt,
)

_TIME_SERIES = BinStruct(
    "labels" / _message_field(1, _LABEL),
    "samples" / _message_field(2, _SAMPLE),
)


class Label(msgspec.Struct, frozen=True):
    name: str
    value: str


class Sample(msgspec.Struct, frozen=True):
    value: float
    timestamp: int  # milliseconds since the epoch


class TimeSeries(msgspec.Struct, frozen=True):
    labels: tuple[Label, ...]
    samples: tuple[Sample, ...]


class WriteRequest(msgspec.Struct, frozen=True):
    """Typed remote-write batch with its binary schema."""

    timeseries: tuple[TimeSeries, ...]

    _SCHEMA: ClassVar[Construct] = BinStruct("timeseries" / _message_field(1, _TIME_SERIES))

    @classmethod
    def from_points(cls, points: Iterable[MetricPoint]) -> WriteRequest:
        return cls(timeseries=tuple(_series_for(point) for point in points))

    @classmethod
    def parse(cls, data: bytes) -> Any:
        """Parse an uncompressed request into a Construct container."""
        return cls._SCHEMA.parse(data)

    def encode(self) -> bytes:
        return self._SCHEMA.build(msgspec.to_builtins(self))

    def compress(self) -> bytes:
        return snappy.compress(self.encode())


def _series_for(point: MetricPoint) -> TimeSeries:
    labels = [Label(name=METRIC_NAME_LABEL, value=point.name)]
    labels.extend(Label(name=key, value=value) for key, value in point.labels)
    # Receivers require labels sorted by name.
    labels.sort(key=lambda label: label.name)
    return TimeSeries(
        labels=tuple(labels),
        samples=(Sample(value=point.value, timestamp=round(point.timestamp * 1000)),),
    )


__all__ = ["Label", "Sample", "TimeSeries", "WriteRequest"]
