"""Operating system print queue integration."""
from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Sequence

from weighbridge.core.errors import LocalQueueError
from weighbridge.core.log import get_logger

LOG = get_logger("printer.local")

COMMAND_TIMEOUT = 30.0
LIST_TIMEOUT = 5.0


class LocalPrintCapability(Protocol):
    """Print through the spooler of the machine running the backend."""

    async def print_document(self, path: Path, *, printer: str, copies: int) -> None: ...

    async def print_raw(self, path: Path, *, printer: str, copies: int) -> None: ...

    async def print_pdf(self, path: Path, *, printer: str, copies: int) -> None: ...

    async def list_printers(self) -> List[Dict[str, str]]: ...


async def run_command(argv: Sequence[str], *, timeout: float = COMMAND_TIMEOUT) -> str:
    """Run ``argv`` without a shell; raise ``LocalQueueError`` unless it exits 0."""

    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as exc:
        raise LocalQueueError(f"{argv[0]}: {exc.strerror or exc}") from exc
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise LocalQueueError(f"{argv[0]} timed out after {timeout:.0f}s") from None
    if proc.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()
        raise LocalQueueError(f"{argv[0]} exited with {proc.returncode}: {message or 'no output'}")
    return stdout.decode("utf-8", errors="replace")


def parse_lpstat(output: str) -> List[Dict[str, str]]:
    """Parse ``lpstat -a`` lines such as ``Office accepting requests since ...``."""

    printers = []
    for line in output.splitlines():
        name = line.strip().split(" ", 1)[0]
        if name:
            printers.append({"name": name, "status": "available"})
    return printers


def parse_wmic_csv(output: str) -> List[Dict[str, str]]:
    """Parse ``wmic printer get name,status /format:csv`` (Node,Name,Status)."""

    rows = [line.strip() for line in output.splitlines() if "," in line]
    printers = []
    for row in rows[1:]:
        parts = row.split(",")
        name = parts[1].strip() if len(parts) > 1 else ""
        if name:
            printers.append({"name": name, "status": parts[2].strip() if len(parts) > 2 else ""})
    return printers


class CupsPrintCapability:
    """Linux CUPS (``lp``) queue."""

    async def print_document(self, path: Path, *, printer: str, copies: int) -> None:
        argv = ["lp"]
        if printer:
            argv += ["-d", printer]
        argv += ["-n", str(copies), str(path)]
        await run_command(argv)

    async def print_raw(self, path: Path, *, printer: str, copies: int) -> None:
        argv = ["lpr"]
        if printer:
            argv += ["-P", printer]
        argv += [f"-#{copies}", str(path)]
        await run_command(argv)

    async def print_pdf(self, path: Path, *, printer: str, copies: int) -> None:
        await self.print_raw(path, printer=printer, copies=copies)

    async def list_printers(self) -> List[Dict[str, str]]:
        try:
            output = await run_command(["lpstat", "-a"], timeout=LIST_TIMEOUT)
        except LocalQueueError as exc:
            LOG.debug("lpstat failed: %s", exc)
            return []
        return parse_lpstat(output)


class MacPrintCapability(CupsPrintCapability):
    """macOS queue driven through ``lpr``."""

    async def print_document(self, path: Path, *, printer: str, copies: int) -> None:
        await self.print_raw(path, printer=printer, copies=copies)


class WindowsPrintCapability:
    """Windows spooler through PowerShell, ``copy /b`` and Acrobat Reader."""

    def __init__(self, pdf_reader: str = "AcroRd32.exe") -> None:
        self.pdf_reader = pdf_reader

    async def print_document(self, path: Path, *, printer: str, copies: int) -> None:
        target = str(path).replace("'", "''")
        if printer:
            script = (
                "$ie = New-Object -ComObject InternetExplorer.Application; "
                f"$ie.Navigate('file:///{target.replace(chr(92), '/')}'); Start-Sleep 2; "
                "$ie.ExecWB(6,2); Start-Sleep 2; $ie.Quit()"
            )
        else:
            script = f"Start-Process -FilePath '{target}' -Verb Print -Wait"
        for _ in range(copies):
            await run_command(["powershell", "-NoProfile", "-Command", script])

    async def print_raw(self, path: Path, *, printer: str, copies: int) -> None:
        destination = f"\\\\localhost\\{printer}" if printer else "PRN"
        for _ in range(copies):
            await run_command(["cmd", "/c", "copy", "/b", str(path), destination])

    async def print_pdf(self, path: Path, *, printer: str, copies: int) -> None:
        argv = [self.pdf_reader, "/P", "/T", str(path)]
        if printer:
            argv.append(printer)
        for _ in range(copies):
            await run_command(argv)

    async def list_printers(self) -> List[Dict[str, str]]:
        try:
            output = await run_command(
                ["wmic", "printer", "get", "name,status", "/format:csv"], timeout=LIST_TIMEOUT
            )
        except LocalQueueError as exc:
            LOG.debug("wmic failed: %s", exc)
            return []
        return parse_wmic_csv(output)


def select_local_capability(platform: Optional[str] = None) -> LocalPrintCapability:
    platform = platform or sys.platform
    if platform.startswith("win"):
        return WindowsPrintCapability()
    if platform == "darwin":
        return MacPrintCapability()
    return CupsPrintCapability()


__all__ = [
    "CupsPrintCapability",
    "LocalPrintCapability",
    "MacPrintCapability",
    "WindowsPrintCapability",
    "parse_lpstat",
    "parse_wmic_csv",
    "run_command",
    "select_local_capability",
]
