"""Marshmallow schema for RuntimeConfig validation."""

from __future__ import annotations

import shlex
from typing import Any, Dict

from marshmallow import EXCLUDE, Schema, ValidationError, fields, post_load, pre_load, validate

from ..const import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_DEVICE_PREFIX,
    DEFAULT_INVENTORY_COMMAND,
    DEFAULT_LABEL_COMMAND,
    DEFAULT_LABEL_KEY,
    DEFAULT_METRICS_HOST,
    DEFAULT_METRICS_PORT,
    DEFAULT_PUSH_TIMEOUT,
    DEFAULT_STATUS_COMMAND,
    DEFAULT_TRAFFIC_COMMAND,
    LABEL_KEYS,
)
from .model import RuntimeConfig


class CommandLine(fields.Field):
    """A shell-style command line split into an argv tuple."""

    def _deserialize(self, value: Any, attr: str | None, data: Any, **kwargs: Any) -> tuple[str, ...]:
        if isinstance(value, (list, tuple)):
            return tuple(str(item) for item in value)
        if not isinstance(value, str):
            raise ValidationError("Command line must be a string.")
        try:
            return tuple(shlex.split(value))
        except ValueError as exc:
            raise ValidationError(f"Malformed command line: {exc}") from exc


def _require_argv(value: tuple[str, ...]) -> bool:
    if not value:
        raise ValidationError("Command line must not be empty.")
    return True


class RuntimeConfigSchema(Schema):
    """Declarative validation of the agent environment."""

    class Meta:
        unknown = EXCLUDE

    # Push destination
    push_url = fields.Str(
        data_key="PUSH_URL",
        required=True,
        validate=[
            validate.Length(min=1),
            validate.URL(schemes={"http", "https"}, require_tld=False),
        ],
    )
    push_interval = fields.Int(
        data_key="PUSH_INTERVAL_SECONDS",
        required=True,
        validate=validate.Range(min=1),
    )
    push_username = fields.Str(data_key="PUSH_USERNAME", load_default=None, allow_none=True)
    push_password = fields.Str(data_key="PUSH_PASSWORD", load_default=None, allow_none=True)
    push_timeout = fields.Float(
        data_key="TETHERMON_PUSH_TIMEOUT",
        load_default=DEFAULT_PUSH_TIMEOUT,
        validate=validate.Range(min=0.1),
    )

    # Collaborators
    command_timeout = fields.Float(
        data_key="TETHERMON_COMMAND_TIMEOUT",
        load_default=DEFAULT_COMMAND_TIMEOUT,
        validate=validate.Range(min=0.1),
    )
    inventory_command = CommandLine(
        data_key="TETHERMON_INVENTORY_COMMAND",
        load_default=(DEFAULT_INVENTORY_COMMAND,),
        validate=_require_argv,
    )
    status_command = CommandLine(
        data_key="TETHERMON_STATUS_COMMAND",
        load_default=(DEFAULT_STATUS_COMMAND,),
        validate=_require_argv,
    )
    traffic_command = CommandLine(
        data_key="TETHERMON_TRAFFIC_COMMAND",
        load_default=(DEFAULT_TRAFFIC_COMMAND,),
        validate=_require_argv,
    )
    # Empty label command disables label resolution.
    label_command = CommandLine(
        data_key="TETHERMON_LABEL_COMMAND",
        load_default=(DEFAULT_LABEL_COMMAND,),
    )
    label_key = fields.Str(
        data_key="TETHERMON_LABEL_KEY",
        load_default=DEFAULT_LABEL_KEY,
        validate=validate.OneOf(sorted(LABEL_KEYS)),
    )
    device_prefix = fields.Str(
        data_key="TETHERMON_DEVICE_PREFIX",
        load_default=DEFAULT_DEVICE_PREFIX,
        validate=validate.Length(min=1),
    )

    # Observability
    debug_logging = fields.Bool(data_key="TETHERMON_DEBUG", load_default=False)
    metrics_enabled = fields.Bool(data_key="TETHERMON_METRICS_ENABLED", load_default=False)
    metrics_host = fields.Str(
        data_key="TETHERMON_METRICS_HOST",
        load_default=DEFAULT_METRICS_HOST,
        validate=validate.Length(min=1),
    )
    metrics_port = fields.Int(
        data_key="TETHERMON_METRICS_PORT",
        load_default=DEFAULT_METRICS_PORT,
        validate=validate.Range(min=0, max=65535),
    )

    @pre_load
    def strip_values(self, data: Dict[str, Any], **kwargs: Any) -> Dict[str, Any]:
        cleaned: Dict[str, Any] = {}
        for key, value in data.items():
            if isinstance(value, str):
                value = value.strip()
                # Blank optional variables behave as if unset.
                if not value and key != "TETHERMON_LABEL_COMMAND":
                    continue
            cleaned[key] = value
        return cleaned

    @post_load
    def make_config(self, data: Dict[str, Any], **kwargs: Any) -> RuntimeConfig:
        if not data.get("push_username"):
            data["push_username"] = None
            data["push_password"] = None
        return RuntimeConfig(**data)
