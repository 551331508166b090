"""Data model for tether monitor configuration."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..const import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEBUG_LOGGING,
    DEFAULT_DEVICE_PREFIX,
    DEFAULT_INVENTORY_COMMAND,
    DEFAULT_LABEL_COMMAND,
    DEFAULT_LABEL_KEY,
    DEFAULT_METRICS_ENABLED,
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    DEFAULT_PUSH_TIMEOUT,
    DEFAULT_STATUS_COMMAND,
    DEFAULT_TRAFFIC_COMMAND,
)


@dataclass(slots=True, frozen=True)
class RuntimeConfig:
    """Strongly typed configuration for the agent.

    Built once at startup and handed to the scheduler; never mutated.
    """

    push_url: str
    push_interval: int
    push_username: str | None = None
    push_password: str | None = field(default=None, repr=False)
    push_timeout: float = DEFAULT_PUSH_TIMEOUT
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    inventory_command: tuple[str, ...] = (DEFAULT_INVENTORY_COMMAND,)
    status_command: tuple[str, ...] = (DEFAULT_STATUS_COMMAND,)
    traffic_command: tuple[str, ...] = (DEFAULT_TRAFFIC_COMMAND,)
    label_command: tuple[str, ...] = (DEFAULT_LABEL_COMMAND,)
    label_key: str = DEFAULT_LABEL_KEY
    device_prefix: str = DEFAULT_DEVICE_PREFIX
    debug_logging: bool = DEFAULT_DEBUG_LOGGING
    metrics_enabled: bool = DEFAULT_METRICS_ENABLED
    metrics_host: str = DEFAULT_METRICS_HOST
    metrics_port: int = DEFAULT_METRICS_PORT

    @property
    def auth_enabled(self) -> bool:
        return bool(self.push_username)

    @property
    def labels_enabled(self) -> bool:
        return bool(self.label_command)
