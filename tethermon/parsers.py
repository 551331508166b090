"""Defensive parsers for collaborator text formats."""

from __future__ import annotations

import logging
import math
import re

import msgspec

from .records import TrafficCounters

logger = logging.getLogger("tethermon.parsers")

_NUMBER = r"(\d+(?:\.\d+)?)"
# Accepts "2h:03m:04s", "2:03:04" and mixed forms.
_DURATION_RE = re.compile(
    rf"^\s*{_NUMBER}\s*h?\s*:\s*{_NUMBER}\s*m?\s*:\s*{_NUMBER}\s*s?\s*$",
    re.IGNORECASE,
)
_BLOCK_SPLIT_RE = re.compile(r"\n[ \t]*\n")
_RX_TX_RE = re.compile(r"RX bytes:\s*(\d+)\b.*?TX bytes:\s*(\d+)")


class DurationResult(msgspec.Struct, frozen=True):
    """Outcome of a duration parse; ``ok`` is False when the text was rejected."""

    seconds: float
    ok: bool


_FAILED = DurationResult(seconds=0.0, ok=False)


def parse_duration_result(text: str | None) -> DurationResult:
    if not text:
        return _FAILED
    match = _DURATION_RE.match(text)
    if match is None:
        return _FAILED
    hours, minutes, seconds = (float(group) for group in match.groups())
    total = hours * 3600 + minutes * 60 + seconds
    if not math.isfinite(total):
        return _FAILED
    return DurationResult(seconds=total, ok=True)


def parse_duration(text: str | None) -> float:
    """Return the number of seconds encoded in *text*, or 0.0 if unparseable."""

    result = parse_duration_result(text)
    if not result.ok and text:
        logger.debug("Unparseable duration %r; using 0", text)
    return result.seconds


def parse_counters(raw_text: str) -> dict[str, TrafficCounters]:
    """Extract per-device RX/TX byte counters from ``ifconfig`` output.

    Blocks are separated by blank lines and keyed by the first token of
    their first line. Blocks without an RX/TX byte line are skipped.
    """

    counters: dict[str, TrafficCounters] = {}
    normalised = raw_text.replace("\r\n", "\n")
    for block in _BLOCK_SPLIT_RE.split(normalised):
        lines = block.strip("\n").splitlines()
        if not lines:
            continue
        tokens = lines[0].split()
        if not tokens:
            continue
        device = tokens[0].rstrip(":")
        for line in lines:
            match = _RX_TX_RE.search(line)
            if match is None:
                continue
            counters[device] = TrafficCounters(
                device_name=device,
                received_bytes=int(match.group(1)),
                transmitted_bytes=int(match.group(2)),
            )
            break
    return counters


__all__ = [
    "DurationResult",
    "parse_counters",
    "parse_duration",
    "parse_duration_result",
]
