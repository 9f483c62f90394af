import sys

import pytest

from weighbridge.core.errors import LocalQueueError
from weighbridge.services.local_queue import (
    CupsPrintCapability,
    MacPrintCapability,
    WindowsPrintCapability,
    parse_lpstat,
    parse_wmic_csv,
    run_command,
    select_local_capability,
)


def test_parse_lpstat():
    output = (
        "Office_Laser accepting requests since Sat 17 Oct 2026 09:12:01 AM IST\n"
        "\n"
        "Counter_DotMatrix accepting requests since Sat 17 Oct 2026 09:12:05 AM IST\n"
    )
    assert parse_lpstat(output) == [
        {"name": "Office_Laser", "status": "available"},
        {"name": "Counter_DotMatrix", "status": "available"},
    ]


def test_parse_wmic_csv_skips_header_and_blank_lines():
    output = "\r\n\r\nNode,Name,Status\r\nCOUNTER-PC,EPSON LQ-310,OK\r\nCOUNTER-PC,Microsoft Print to PDF,Unknown\r\n"
    assert parse_wmic_csv(output) == [
        {"name": "EPSON LQ-310", "status": "OK"},
        {"name": "Microsoft Print to PDF", "status": "Unknown"},
    ]


@pytest.mark.parametrize(
    "platform, expected",
    [
        ("linux", CupsPrintCapability),
        ("darwin", MacPrintCapability),
        ("win32", WindowsPrintCapability),
    ],
)
def test_select_local_capability(platform, expected):
    assert type(select_local_capability(platform)) is expected


@pytest.mark.asyncio
async def test_run_command_missing_executable():
    with pytest.raises(LocalQueueError) as excinfo:
        await run_command(["weighbridge-no-such-spooler", "-d", "Counter"])
    assert excinfo.value.kind == "local_queue_error"
    assert "weighbridge-no-such-spooler" in str(excinfo.value)


@pytest.mark.asyncio
async def test_run_command_nonzero_exit():
    code = "import sys; sys.stderr.write('lp: The printer or class does not exist.'); sys.exit(1)"
    with pytest.raises(LocalQueueError) as excinfo:
        await run_command([sys.executable, "-c", code])
    assert "does not exist" in str(excinfo.value)


@pytest.mark.asyncio
async def test_run_command_timeout():
    with pytest.raises(LocalQueueError) as excinfo:
        await run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=0.2)
    assert "timed out" in str(excinfo.value)


@pytest.mark.asyncio
async def test_cups_listing_degrades_to_empty(monkeypatch):
    async def failing(argv, **kwargs):
        raise LocalQueueError("lpstat: No destinations added.")

    monkeypatch.setattr("weighbridge.services.local_queue.run_command", failing)
    assert await CupsPrintCapability().list_printers() == []


@pytest.mark.asyncio
async def test_cups_commands(monkeypatch, tmp_path):
    calls = []

    async def recording(argv, **kwargs):
        calls.append(list(argv))
        return ""

    monkeypatch.setattr("weighbridge.services.local_queue.run_command", recording)
    job = tmp_path / "bill_1.html"
    cups = CupsPrintCapability()
    await cups.print_document(job, printer="Counter", copies=2)
    await cups.print_raw(job, printer="", copies=1)
    assert calls == [
        ["lp", "-d", "Counter", "-n", "2", str(job)],
        ["lpr", "-#1", str(job)],
    ]
