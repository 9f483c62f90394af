"""Route a completed bill to the selected output backend."""
from __future__ import annotations

import contextlib
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from weighbridge.config.settings import PrinterSettings
from weighbridge.core.errors import LocalQueueError, PrintError
from weighbridge.core.log import get_logger
from weighbridge.models.print_job import PrintMode, PrintRequest, PrintResult
from weighbridge.services.local_queue import LocalPrintCapability, select_local_capability
from weighbridge.services.raw_document import build_raw_document
from weighbridge.services.raw_socket import RawProtocolWriter
from weighbridge.services.receipt import DocumentRenderer, render_receipt_html
from weighbridge.services.render import PdfEngine, PdfRenderer, RenderFallbackChain

LOG = get_logger("printer")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def _job_stem(bill_no: str) -> str:
    safe = _UNSAFE_CHARS.sub("_", bill_no).strip("_") or "bill"
    return f"bill_{safe}_{int(time.time() * 1000)}"


class PrintDispatcher:
    """Execute one print request and describe what actually happened.

    Every failure is returned as a ``PrintResult``; ``dispatch`` does not raise
    for unreachable printers, missing engines or spooler errors.
    """

    def __init__(
        self,
        settings: Optional[PrinterSettings] = None,
        *,
        local_queue: Optional[LocalPrintCapability] = None,
        renderer: DocumentRenderer = render_receipt_html,
        pdf_engine: Optional[PdfEngine] = None,
        raw_writer: Optional[RawProtocolWriter] = None,
    ) -> None:
        self.settings = settings or PrinterSettings()
        self.local_queue = local_queue or select_local_capability()
        self.renderer = renderer
        self.pdf_engine = pdf_engine or PdfRenderer(self.settings.pdf_engine)
        self.raw_writer = raw_writer or RawProtocolWriter()
        self.fallback_chain = RenderFallbackChain(self.pdf_engine)

    def status(self) -> Dict[str, Any]:
        return {
            "defaultType": self.settings.default_type,
            "localPrinter": self.settings.local_name or "(system default)",
            "ipHost": self.settings.ip_host,
            "ipPort": self.settings.ip_port,
            "paperWidth": self.settings.paper_width_mm,
            "htmlToPdfEngine": self.settings.pdf_engine,
        }

    async def list_printers(self) -> list[Dict[str, str]]:
        return await self.local_queue.list_printers()

    @contextlib.contextmanager
    def _job_workspace(self, bill_no: str) -> Iterator[tuple[Path, str]]:
        stem = _job_stem(bill_no)
        base = Path(self.settings.temp_dir)
        base.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f"{stem}_", dir=base) as workdir:
            yield Path(workdir), stem

    async def dispatch(self, request: PrintRequest) -> PrintResult:
        mode = request.mode or PrintMode(self.settings.default_type)
        LOG.info("Printing bill #%s via [%s]", request.bill.bill_no, mode.value)
        try:
            html = self.renderer(request.bill, request.company)
        except Exception as exc:
            LOG.exception("Receipt rendering failed for bill %s", request.bill.bill_no)
            return PrintResult.failed(mode.value, f"Receipt rendering failed: {exc}", "render_error")

        if mode is PrintMode.HTML:
            return PrintResult.ok("html", html=html)
        try:
            if mode is PrintMode.IP:
                return await self._print_ip(request, html)
            if mode is PrintMode.PDF:
                return await self._print_pdf(request, html)
            return await self._print_local(request, html)
        except Exception as exc:
            LOG.exception("Unexpected print failure for bill %s", request.bill.bill_no)
            return PrintResult.failed(mode.value, str(exc) or type(exc).__name__, "internal_error")

    async def _print_local(self, request: PrintRequest, html: str) -> PrintResult:
        printer = request.target.name or self.settings.local_name
        with self._job_workspace(request.bill.bill_no) as (workdir, stem):
            html_path = workdir / f"{stem}.html"
            html_path.write_text(html, encoding="utf-8")
            try:
                await self.local_queue.print_document(html_path, printer=printer, copies=request.copies)
                return PrintResult.ok("local", printer=printer or "default")
            except LocalQueueError as exc:
                LOG.warning("Local HTML print failed, trying raw text fallback: %s", exc)

            raw_path = workdir / f"{stem}.prn"
            raw_path.write_bytes(build_raw_document(request.bill, request.company))
            try:
                await self.local_queue.print_raw(raw_path, printer=printer, copies=request.copies)
            except LocalQueueError as exc:
                LOG.error("Raw text fallback failed for bill %s: %s", request.bill.bill_no, exc)
                return PrintResult.failed("raw_text", str(exc), exc.kind, printer=printer or "default")
            return PrintResult.ok("raw_text", printer=printer or "default")

    async def _print_ip(self, request: PrintRequest, html: str) -> PrintResult:
        host = request.target.host or self.settings.ip_host
        port = request.target.port or self.settings.ip_port
        if not host:
            return PrintResult.failed("ip", "host is required", "invalid_request")

        with self._job_workspace(request.bill.bill_no) as (workdir, stem):
            job = await self.fallback_chain.render(html, request.bill, request.company, workdir, stem)
            method = "ip_pdf" if job.is_pdf else "ip_raw"
            for copy_index in range(request.copies):
                try:
                    await self.raw_writer.send(host, port, job.payload)
                except PrintError as exc:
                    LOG.error("IP print of bill %s failed on copy %d: %s", request.bill.bill_no, copy_index + 1, exc)
                    return PrintResult.failed(method, str(exc), exc.kind, host=host, port=port, copiesSent=copy_index)
        return PrintResult.ok(method, host=host, port=port, copies=request.copies)

    async def _print_pdf(self, request: PrintRequest, html: str) -> PrintResult:
        printer = request.target.name or self.settings.local_name
        with self._job_workspace(request.bill.bill_no) as (workdir, stem):
            try:
                payload = await self.pdf_engine.render(html, workdir, stem, page_size="A4")
                pdf_path = workdir / f"{stem}.pdf"
                if not pdf_path.exists():
                    pdf_path.write_bytes(payload)
                await self.local_queue.print_pdf(pdf_path, printer=printer, copies=request.copies)
            except PrintError as exc:
                LOG.error("PDF print failed for bill %s: %s", request.bill.bill_no, exc)
                return PrintResult.failed("pdf", f"PDF print failed: {exc}", exc.kind, printer=printer or "default")
        return PrintResult.ok("pdf", printer=printer or "default")


__all__ = ["PrintDispatcher"]
