"""Constants shared across the tether monitor."""

from __future__ import annotations

from typing import Final

# Collaborator commands (OpenWrt utilities)
DEFAULT_INVENTORY_COMMAND: Final[str] = "ifdev"
DEFAULT_STATUS_COMMAND: Final[str] = "mwan3ifstatus"
DEFAULT_TRAFFIC_COMMAND: Final[str] = "ifconfig"
DEFAULT_LABEL_COMMAND: Final[str] = "ifusb"
DEFAULT_LABEL_KEY: Final[str] = "device"
LABEL_KEYS: Final[frozenset[str]] = frozenset({"device", "interface"})

DEFAULT_DEVICE_PREFIX: Final[str] = "usb"
DEFAULT_COMMAND_TIMEOUT: Final[float] = 10.0
DEFAULT_PUSH_TIMEOUT: Final[float] = 60.0

DEFAULT_DEBUG_LOGGING: Final[bool] = False
DEFAULT_METRICS_ENABLED: Final[bool] = False
DEFAULT_METRICS_HOST: Final[str] = "127.0.0.1"
DEFAULT_METRICS_PORT: Final[int] = 9131

# Collection step names
STEP_INVENTORY: Final[str] = "inventory"
STEP_STATUS: Final[str] = "status"
STEP_TRAFFIC: Final[str] = "traffic"
STEP_LABEL: Final[str] = "label"

# Emitted series
METRIC_UP_TIME: Final[str] = "tether_iface_up_time"
METRIC_ONLINE_TIME: Final[str] = "tether_iface_online_time"
METRIC_STATUS_ONLINE: Final[str] = "tether_iface_status_online"
METRIC_STATUS_ENABLED: Final[str] = "tether_iface_status_enabled"
METRIC_STATUS_TRACKING: Final[str] = "tether_iface_status_tracking"
METRIC_TX: Final[str] = "tether_iface_tx"
METRIC_RX: Final[str] = "tether_iface_rx"

STATUS_ONLINE: Final[str] = "online"
STATUS_DISABLED: Final[str] = "disabled"
TRACKING_ACTIVE: Final[str] = "active"

# Remote-write wire protocol
REMOTE_WRITE_VERSION: Final[str] = "0.1.0"
REMOTE_WRITE_CONTENT_TYPE: Final[str] = "application/x-protobuf"
REMOTE_WRITE_ENCODING: Final[str] = "snappy"
METRIC_NAME_LABEL: Final[str] = "__name__"
USER_AGENT: Final[str] = "tethermon/1.0"
