"""Settings loader for the tether monitor.

Configuration is read once from the process environment and validated by
``RuntimeConfigSchema``. Any validation failure is reported as a single
``ValueError`` so the entry point can fail fast before scheduling.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from marshmallow import ValidationError

from .model import RuntimeConfig
from .schema import RuntimeConfigSchema

logger = logging.getLogger(__name__)


def _format_errors(messages: object) -> str:
    if isinstance(messages, dict):
        parts = []
        for key, value in sorted(messages.items()):
            detail = "; ".join(str(item) for item in value) if isinstance(value, list) else str(value)
            parts.append(f"{key}: {detail}")
        return ", ".join(parts)
    return str(messages)


def load_runtime_config(environ: Mapping[str, str] | None = None) -> RuntimeConfig:
    """Load configuration from *environ* (defaults to ``os.environ``)."""

    raw = dict(os.environ if environ is None else environ)
    try:
        config = RuntimeConfigSchema().load(raw)
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration: {_format_errors(exc.messages)}") from exc

    if not config.push_url.startswith("https://") and config.auth_enabled:
        logger.warning("Basic auth credentials will be sent over plain HTTP to %s", config.push_url)
    return config


__all__ = ["RuntimeConfig", "load_runtime_config"]
