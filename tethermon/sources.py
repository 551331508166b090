"""Collaborator data sources.

Each source is a small capability with one query method. Production
implementations shell out to the OpenWrt utilities; tests substitute
in-memory fakes.
"""

from __future__ import annotations

import asyncio
import logging
import subprocess
from collections.abc import Sequence
from typing import Any, Protocol

import msgspec

from .const import STEP_INVENTORY, STEP_LABEL, STEP_STATUS, STEP_TRAFFIC
from .parsers import parse_counters
from .records import DeviceLabel, FailoverStatusRecord, InterfaceRecord, TrafficCounters

logger = logging.getLogger("tethermon.sources")

_STDERR_PREVIEW = 200


class SourceError(Exception):
    """A collaborator invocation failed or produced undecodable output."""

    def __init__(self, step: str, message: str) -> None:
        super().__init__(f"{step}: {message}")
        self.step = step
        self.message = message


class InventorySource(Protocol):
    async def fetch(self) -> list[InterfaceRecord]: ...


class StatusSource(Protocol):
    async def fetch(self) -> list[FailoverStatusRecord]: ...


class TrafficSource(Protocol):
    async def fetch(self) -> dict[str, TrafficCounters]: ...


class LabelSource(Protocol):
    async def lookup(self, key: str) -> str: ...


async def run_command(argv: Sequence[str], *, timeout: float, step: str) -> bytes:
    """Run *argv* and return its stdout.

    Raises ``SourceError`` on spawn failure, timeout or non-zero exit. The
    child is killed if the caller is cancelled or the timeout expires.
    """

    if not argv:
        raise SourceError(step, "empty command line")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as exc:
        raise SourceError(step, f"cannot execute {argv[0]}: {exc}") from exc

    try:
        async with asyncio.timeout(timeout):
            stdout, stderr = await proc.communicate()
    except TimeoutError as exc:
        await _kill(proc)
        raise SourceError(step, f"{argv[0]} timed out after {timeout:g}s") from exc
    except asyncio.CancelledError:
        await _kill(proc)
        raise

    if proc.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip()[:_STDERR_PREVIEW]
        raise SourceError(
            step,
            f"{argv[0]} exited with status {proc.returncode}" + (f": {detail}" if detail else ""),
        )
    return stdout


async def _kill(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        return
    try:
        await proc.wait()
    except OSError:
        logger.debug("Failed to reap killed process %s", proc.pid, exc_info=True)


def _drop_nulls(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _drop_nulls(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [_drop_nulls(item) for item in value]
    return value


def decode_json(payload: bytes, type_: Any, *, step: str) -> Any:
    """Permissively decode collaborator JSON into *type_*.

    Object keys holding ``null`` are treated as absent, so the field falls
    back to its default instead of failing the whole step.
    """

    try:
        return msgspec.convert(_drop_nulls(msgspec.json.decode(payload)), type=type_)
    except (msgspec.DecodeError, msgspec.ValidationError) as exc:
        raise SourceError(step, f"undecodable output: {exc}") from exc


class CommandSource:
    """Base for sources backed by a single external command."""

    step = ""

    def __init__(self, argv: Sequence[str], *, timeout: float) -> None:
        self.argv = tuple(argv)
        self.timeout = timeout

    async def _run(self, *extra: str) -> bytes:
        return await run_command((*self.argv, *extra), timeout=self.timeout, step=self.step)


class CommandInventorySource(CommandSource):
    step = STEP_INVENTORY

    async def fetch(self) -> list[InterfaceRecord]:
        return decode_json(await self._run(), list[InterfaceRecord], step=self.step)


class CommandStatusSource(CommandSource):
    step = STEP_STATUS

    async def fetch(self) -> list[FailoverStatusRecord]:
        return decode_json(await self._run(), list[FailoverStatusRecord], step=self.step)


class CommandTrafficSource(CommandSource):
    step = STEP_TRAFFIC

    async def fetch(self) -> dict[str, TrafficCounters]:
        output = await self._run()
        return parse_counters(output.decode("utf-8", errors="replace"))


class CommandLabelSource(CommandSource):
    """Resolve a human readable modem label, e.g. ``ifusb usb0``."""

    step = STEP_LABEL

    async def lookup(self, key: str) -> str:
        label: DeviceLabel = decode_json(await self._run(key), DeviceLabel, step=self.step)
        description = label.description.strip()
        if not description:
            raise SourceError(self.step, f"no description reported for {key}")
        return description


__all__ = [
    "CommandInventorySource",
    "CommandLabelSource",
    "CommandStatusSource",
    "CommandTrafficSource",
    "InventorySource",
    "LabelSource",
    "SourceError",
    "StatusSource",
    "TrafficSource",
    "decode_json",
    "run_command",
]
