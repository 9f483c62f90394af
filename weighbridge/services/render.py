"""HTML to PDF rendering with a raw control-code fallback."""
from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Protocol

from weighbridge.config.settings import CompanySettings
from weighbridge.core.errors import RenderEngineError, RenderEngineUnavailable
from weighbridge.core.log import get_logger
from weighbridge.models.print_job import BillSnapshot
from weighbridge.services.raw_document import build_raw_document

LOG = get_logger("printer.render")

RENDER_TIMEOUT = 30.0


class PdfEngine(Protocol):
    async def render(self, html: str, workdir: Path, stem: str, *, page_size: Optional[str] = None) -> bytes: ...


class PdfRenderer:
    """Run a wkhtmltopdf compatible executable on a job's HTML."""

    def __init__(self, engine: str = "wkhtmltopdf", *, timeout: float = RENDER_TIMEOUT) -> None:
        self.engine = engine
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.engine) is not None

    async def render(self, html: str, workdir: Path, stem: str, *, page_size: Optional[str] = None) -> bytes:
        executable = shutil.which(self.engine)
        if executable is None:
            raise RenderEngineUnavailable(f"{self.engine} not found on PATH")

        html_path = workdir / f"{stem}.html"
        pdf_path = workdir / f"{stem}.pdf"
        html_path.write_text(html, encoding="utf-8")

        argv = [executable, "--quiet"]
        if page_size:
            argv += ["--page-size", page_size]
        argv += [str(html_path), str(pdf_path)]

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise RenderEngineUnavailable(f"{self.engine} not found: {exc}") from exc
        except OSError as exc:
            raise RenderEngineError(f"{self.engine} failed to start: {exc}") from exc

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            raise RenderEngineError(f"{self.engine} timed out after {self.timeout:.0f}s") from None

        if proc.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise RenderEngineError(f"{self.engine} exited with {proc.returncode}: {message or 'no output'}")
        try:
            return pdf_path.read_bytes()
        except OSError as exc:
            raise RenderEngineError(f"{self.engine} produced no PDF: {exc}") from exc


@dataclass(frozen=True, slots=True)
class RenderedJob:
    payload: bytes
    kind: str
    fallback_reason: Optional[str] = None

    @property
    def is_pdf(self) -> bool:
        return self.kind == "pdf"


RawBuilder = Callable[[BillSnapshot, CompanySettings], bytes]


class RenderFallbackChain:
    """PDF first, then the raw PJL/PCL text document; one step, no retries."""

    def __init__(self, engine: PdfEngine, raw_builder: RawBuilder = build_raw_document) -> None:
        self._engine = engine
        self._raw_builder = raw_builder

    async def render(
        self,
        html: str,
        bill: BillSnapshot,
        company: CompanySettings,
        workdir: Path,
        stem: str,
    ) -> RenderedJob:
        try:
            payload = await self._engine.render(html, workdir, stem)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            LOG.warning("PDF render unavailable for bill %s, using raw PCL: %s", bill.bill_no, exc)
            return RenderedJob(self._raw_builder(bill, company), "raw", str(exc))
        return RenderedJob(payload, "pdf")


__all__ = ["PdfEngine", "PdfRenderer", "RenderFallbackChain", "RenderedJob"]
