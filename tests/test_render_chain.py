import os
import stat
import sys
from pathlib import Path

import pytest

from bills import CAMERA_DATA, make_bill
from fakes import FailingPdfEngine, StaticPdfEngine
from weighbridge.config.settings import CompanySettings
from weighbridge.core.errors import RenderEngineError, RenderEngineUnavailable
from weighbridge.services.render import PdfRenderer, RenderFallbackChain

HTML = f'<html><body><img src="{CAMERA_DATA}"/></body></html>'


@pytest.mark.asyncio
async def test_chain_prefers_pdf(tmp_path):
    engine = StaticPdfEngine()
    job = await RenderFallbackChain(engine).render(HTML, make_bill(), CompanySettings(), tmp_path, "bill_1042")
    assert job.is_pdf
    assert job.payload == b"%PDF-1.4 fake"
    assert job.fallback_reason is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [
        RenderEngineUnavailable("wkhtmltopdf not found on PATH"),
        RenderEngineError("wkhtmltopdf timed out after 30s"),
        OSError("disk full"),
        RuntimeError("engine crashed"),
    ],
)
async def test_chain_falls_back_to_raw_once(tmp_path, exc):
    engine = FailingPdfEngine(exc)
    job = await RenderFallbackChain(engine).render(HTML, make_bill(), CompanySettings(), tmp_path, "bill_1042")
    assert not job.is_pdf
    assert job.kind == "raw"
    assert job.payload.startswith(b"\x1b%-12345X@PJL")
    assert CAMERA_DATA.encode() not in job.payload
    assert str(exc) in job.fallback_reason
    assert engine.calls == 1


@pytest.mark.asyncio
async def test_pdf_renderer_reports_missing_engine(tmp_path):
    renderer = PdfRenderer("weighbridge-no-such-pdf-engine")
    assert not renderer.available()
    with pytest.raises(RenderEngineUnavailable):
        await renderer.render(HTML, tmp_path, "bill_1")


def _script(path: Path, body: str) -> Path:
    path.write_text("#!/bin/sh\n" + body, encoding="utf-8")
    path.chmod(path.stat().st_mode | stat.S_IXUSR)
    return path


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform.startswith("win") or not os.path.exists("/bin/sh"), reason="needs /bin/sh")
async def test_pdf_renderer_runs_engine_with_page_size(tmp_path):
    args_file = tmp_path / "args.txt"
    engine = _script(
        tmp_path / "fake-wkhtmltopdf",
        f'echo "$@" > "{args_file}"\nfor last; do :; done\nprintf "%%PDF-fake" > "$last"\n',
    )
    workdir = tmp_path / "job"
    workdir.mkdir()

    payload = await PdfRenderer(str(engine)).render(HTML, workdir, "bill_7", page_size="A4")

    assert payload == b"%PDF-fake"
    assert (workdir / "bill_7.html").read_text(encoding="utf-8") == HTML
    assert "--quiet --page-size A4" in args_file.read_text(encoding="utf-8")


@pytest.mark.asyncio
@pytest.mark.skipif(sys.platform.startswith("win") or not os.path.exists("/bin/sh"), reason="needs /bin/sh")
async def test_pdf_renderer_maps_engine_failure(tmp_path):
    engine = _script(tmp_path / "broken-engine", 'echo "Exit with code 1 due to network error" >&2\nexit 1\n')
    with pytest.raises(RenderEngineError) as excinfo:
        await PdfRenderer(str(engine)).render(HTML, tmp_path, "bill_8")
    assert "network error" in str(excinfo.value)
