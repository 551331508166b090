"""Pytest configuration for tether monitor tests."""

from __future__ import annotations

import logging

import pytest

from tethermon.config.model import RuntimeConfig
from tethermon.const import DEFAULT_COMMAND_TIMEOUT, DEFAULT_PUSH_TIMEOUT


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Close and remove all logging handlers after each test to prevent ResourceWarnings."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        try:
            handler.close()
        except (OSError, RuntimeError):
            pass
        root.removeHandler(handler)


@pytest.fixture()
def base_environ() -> dict[str, str]:
    return {
        "PUSH_URL": "https://metrics.example.net/api/v1/write",
        "PUSH_INTERVAL_SECONDS": "30",
    }


@pytest.fixture()
def runtime_config() -> RuntimeConfig:
    return RuntimeConfig(
        push_url="https://metrics.example.net/api/v1/write",
        push_interval=30,
        push_username=None,
        push_password=None,
        push_timeout=DEFAULT_PUSH_TIMEOUT,
        command_timeout=DEFAULT_COMMAND_TIMEOUT,
        inventory_command=("ifdev",),
        status_command=("mwan3ifstatus",),
        traffic_command=("ifconfig",),
        label_command=(),
        label_key="device",
        device_prefix="usb",
        debug_logging=False,
        metrics_enabled=False,
    )
