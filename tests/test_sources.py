"""Tests for the command-backed collaborator sources."""

from __future__ import annotations

import pytest

from tethermon.records import FailoverStatusRecord, InterfaceRecord
from tethermon.sources import (
    CommandInventorySource,
    CommandLabelSource,
    CommandStatusSource,
    CommandTrafficSource,
    SourceError,
    decode_json,
    run_command,
)


def _sh(script: str) -> tuple[str, ...]:
    return ("sh", "-c", script)


@pytest.mark.asyncio
async def test_run_command_returns_stdout() -> None:
    assert await run_command(_sh("printf hello"), timeout=5, step="inventory") == b"hello"


@pytest.mark.asyncio
async def test_run_command_non_zero_exit_includes_stderr() -> None:
    with pytest.raises(SourceError) as excinfo:
        await run_command(_sh("echo nope >&2; exit 3"), timeout=5, step="status")

    assert excinfo.value.step == "status"
    assert "exited with status 3: nope" in excinfo.value.message


@pytest.mark.asyncio
async def test_run_command_timeout_kills_child() -> None:
    with pytest.raises(SourceError, match="timed out"):
        await run_command(("sleep", "5"), timeout=0.1, step="traffic")


@pytest.mark.asyncio
async def test_run_command_missing_binary() -> None:
    with pytest.raises(SourceError, match="cannot execute"):
        await run_command(("/nonexistent/ifdev",), timeout=1, step="inventory")


@pytest.mark.asyncio
async def test_run_command_rejects_empty_argv() -> None:
    with pytest.raises(SourceError, match="empty command line"):
        await run_command((), timeout=1, step="inventory")


@pytest.mark.asyncio
async def test_inventory_decoding_is_permissive() -> None:
    script = """printf '[{"interface":"wan1","device":"usb0","proto":"dhcp"},{"interface":"lan"}]'"""
    source = CommandInventorySource(_sh(script), timeout=5)

    records = await source.fetch()

    assert records == [
        InterfaceRecord(interface_name="wan1", device_name="usb0"),
        InterfaceRecord(interface_name="lan", device_name=""),
    ]


@pytest.mark.asyncio
async def test_status_decoding() -> None:
    script = (
        """printf '[{"interface":"wan1","status":"online","online_time":"0h:10m:00s",'"""
        """'"uptime":"1h:00m:00s","tracking":"active","score":5}]'"""
    )
    source = CommandStatusSource(_sh(script), timeout=5)

    (record,) = await source.fetch()

    assert record == FailoverStatusRecord(
        interface_name="wan1",
        status="online",
        online_time="0h:10m:00s",
        uptime="1h:00m:00s",
        tracking="active",
    )


@pytest.mark.asyncio
async def test_undecodable_output_is_a_step_error() -> None:
    source = CommandStatusSource(_sh("echo not json"), timeout=5)

    with pytest.raises(SourceError, match="undecodable output") as excinfo:
        await source.fetch()
    assert excinfo.value.step == "status"


@pytest.mark.asyncio
async def test_traffic_source_parses_ifconfig_text() -> None:
    script = "printf 'usb0      Link encap:Ethernet\\n          RX bytes:42 (42.0 B)  TX bytes:7 (7.0 B)\\n'"
    source = CommandTrafficSource(_sh(script), timeout=5)

    counters = await source.fetch()

    assert counters["usb0"].received_bytes == 42
    assert counters["usb0"].transmitted_bytes == 7


@pytest.mark.asyncio
async def test_label_source_passes_key_as_argument() -> None:
    source = CommandLabelSource(_sh("""printf '{"description": "Phone %s"}' "$0" """), timeout=5)

    assert await source.lookup("usb0") == "Phone usb0"


@pytest.mark.asyncio
async def test_label_source_rejects_blank_description() -> None:
    source = CommandLabelSource(_sh("""printf '{"description": "  "}' """), timeout=5)

    with pytest.raises(SourceError, match="no description"):
        await source.lookup("usb0")


@pytest.mark.asyncio
async def test_null_fields_fall_back_to_defaults() -> None:
    script = (
        """printf '[{"interface":"wan1","status":"online","online_time":"0h:10m:00s",'"""
        """'"uptime":"1h:00m:00s","tracking":"active"},'"""
        """'{"interface":"wan2","status":"disabled","online_time":null,"uptime":null,"tracking":null}]'"""
    )
    source = CommandStatusSource(_sh(script), timeout=5)

    first, second = await source.fetch()

    assert first.online_time == "0h:10m:00s"
    assert second == FailoverStatusRecord(interface_name="wan2", status="disabled")


def test_decode_json_treats_null_device_as_missing() -> None:
    records = decode_json(
        b'[{"interface":"wan1","device":null},{"interface":"wan2","device":"usb1"}]',
        list[InterfaceRecord],
        step="inventory",
    )

    assert records == [
        InterfaceRecord(interface_name="wan1", device_name=""),
        InterfaceRecord(interface_name="wan2", device_name="usb1"),
    ]


def test_decode_json_still_rejects_wrong_types() -> None:
    with pytest.raises(SourceError, match="undecodable output"):
        decode_json(b'[{"interface":5}]', list[InterfaceRecord], step="inventory")
