"""Collection step: query collaborators and normalise their output."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Iterable
from typing import TypeVar

import msgspec

from .config.model import RuntimeConfig
from .const import DEFAULT_DEVICE_PREFIX, STEP_INVENTORY, STEP_STATUS, STEP_TRAFFIC
from .records import CollectionResult, CombinedRecord, InterfaceRecord, StepError
from .sources import (
    CommandInventorySource,
    CommandLabelSource,
    CommandStatusSource,
    CommandTrafficSource,
    InventorySource,
    LabelSource,
    SourceError,
    StatusSource,
    TrafficSource,
)

logger = logging.getLogger("tethermon.collector")

T = TypeVar("T")


def filter_tethered(records: Iterable[InterfaceRecord], prefix: str = DEFAULT_DEVICE_PREFIX) -> list[InterfaceRecord]:
    """Keep only interfaces backed by a USB tethering device."""
    return [record for record in records if record.device_name.startswith(prefix)]


class Collector:
    """Run the collection sources for one cycle.

    Steps are independent: a failing source contributes a ``StepError`` and
    an empty result, and the remaining steps still run.
    """

    def __init__(
        self,
        inventory: InventorySource,
        status: StatusSource,
        traffic: TrafficSource,
        labels: LabelSource | None = None,
        *,
        device_prefix: str = DEFAULT_DEVICE_PREFIX,
        label_key: str = "device",
    ) -> None:
        self.inventory = inventory
        self.status = status
        self.traffic = traffic
        self.labels = labels
        self.device_prefix = device_prefix
        self.label_key = label_key

    @classmethod
    def from_config(cls, config: RuntimeConfig) -> Collector:
        timeout = config.command_timeout
        labels = CommandLabelSource(config.label_command, timeout=timeout) if config.labels_enabled else None
        return cls(
            CommandInventorySource(config.inventory_command, timeout=timeout),
            CommandStatusSource(config.status_command, timeout=timeout),
            CommandTrafficSource(config.traffic_command, timeout=timeout),
            labels,
            device_prefix=config.device_prefix,
            label_key=config.label_key,
        )

    async def collect(self) -> CollectionResult:
        result = CollectionResult()

        interfaces = await self._step(STEP_INVENTORY, self.inventory.fetch(), result.errors)
        if interfaces is not None:
            result.interfaces = filter_tethered(interfaces, self.device_prefix)
            logger.debug(
                "Inventory: %d interfaces, %d tethered",
                len(interfaces),
                len(result.interfaces),
            )

        statuses = await self._step(STEP_STATUS, self.status.fetch(), result.errors)
        if statuses is not None:
            result.statuses = statuses

        result.traffic = await self._step(STEP_TRAFFIC, self.traffic.fetch(), result.errors)
        return result

    async def _step(self, step: str, query: Awaitable[T], errors: list[StepError]) -> T | None:
        try:
            return await query
        except SourceError as exc:
            logger.error("Collection step '%s' failed: %s", step, exc.message, extra={"step": step})
            errors.append(StepError(step=step, message=exc.message))
            return None

    async def resolve_labels(self, records: Iterable[CombinedRecord]) -> list[CombinedRecord]:
        """Replace each record's device label with the collaborator's description.

        Records whose lookup fails are dropped for this cycle.
        """
        if self.labels is None:
            return list(records)

        resolved: list[CombinedRecord] = []
        for record in records:
            key = record.interface_name if self.label_key == "interface" else record.device_name
            try:
                label = await self.labels.lookup(key)
            except SourceError as exc:
                logger.warning(
                    "Label lookup failed for interface %s: %s",
                    record.interface_name,
                    exc.message,
                    extra={"interface": record.interface_name, "device": record.device_name},
                )
                continue
            resolved.append(msgspec.structs.replace(record, device_label=label))
        return resolved


__all__ = ["Collector", "filter_tethered"]
