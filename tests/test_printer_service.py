import pytest

from bills import CAMERA_DATA, make_bill
from fakes import FailingPdfEngine, FakeLocalQueue, RecordingWriter, StaticPdfEngine
from weighbridge.config.settings import CompanySettings, PrinterSettings
from weighbridge.models.print_job import PrintMode, PrintRequest, PrintTarget
from weighbridge.services.printer_service import PrintDispatcher


def _dispatcher(tmp_path, *, local=None, engine=None, writer=None, **settings):
    settings.setdefault("ip_host", "10.0.0.5")
    return PrintDispatcher(
        PrinterSettings(temp_dir=tmp_path, **settings),
        local_queue=local or FakeLocalQueue(),
        pdf_engine=engine or FailingPdfEngine(),
        raw_writer=writer or RecordingWriter(),
    )


@pytest.mark.asyncio
async def test_html_mode_returns_document(tmp_path):
    local = FakeLocalQueue()
    result = await _dispatcher(tmp_path, local=local).dispatch(
        PrintRequest(bill=make_bill(), mode=PrintMode.HTML, company=CompanySettings(name="KAVERI WEIGH BRIDGE"))
    )
    assert result.success
    assert result.method == "html"
    assert "KAVERI WEIGH BRIDGE" in result.detail["html"]
    assert CAMERA_DATA in result.detail["html"]
    assert local.calls == []


@pytest.mark.asyncio
async def test_local_document_print(tmp_path):
    local = FakeLocalQueue()
    result = await _dispatcher(tmp_path, local=local).dispatch(
        PrintRequest(bill=make_bill(), mode="local", target=PrintTarget(name="Counter"), copies=2)
    )
    assert result.as_dict() == {"success": True, "method": "local", "printer": "Counter"}
    assert local.calls == [("document", "Counter", 2)]
    assert b"TN 25 AX 4411" in local.payloads["document"]


@pytest.mark.asyncio
async def test_local_failure_falls_back_to_raw_text_once(tmp_path):
    local = FakeLocalQueue(fail=("document",))
    result = await _dispatcher(tmp_path, local=local).dispatch(PrintRequest(bill=make_bill(), mode="local"))

    assert result.success
    assert result.method == "raw_text"
    assert result.detail["printer"] == "default"
    assert local.calls == [("document", "", 1), ("raw", "", 1)]
    assert local.payloads["raw"].startswith(b"\x1b%-12345X@PJL")


@pytest.mark.asyncio
async def test_local_and_raw_failures_are_reported(tmp_path):
    local = FakeLocalQueue(fail=("document", "raw"))
    result = await _dispatcher(tmp_path, local=local).dispatch(PrintRequest(bill=make_bill(), mode="local"))

    assert not result.success
    assert result.method == "raw_text"
    assert result.error_kind == "local_queue_error"
    assert "raw spooler rejected job" in result.error


@pytest.mark.asyncio
async def test_ip_print_without_engine_sends_raw_copies(tmp_path):
    writer = RecordingWriter()
    engine = FailingPdfEngine()
    result = await _dispatcher(tmp_path, writer=writer, engine=engine).dispatch(
        PrintRequest(bill=make_bill(), mode="ip", copies=3)
    )

    assert result.as_dict() == {"success": True, "method": "ip_raw", "host": "10.0.0.5", "port": 9100, "copies": 3}
    assert engine.calls == 1
    assert len(writer.sent) == 3
    for host, port, data in writer.sent:
        assert (host, port) == ("10.0.0.5", 9100)
        assert data.startswith(b"\x1b%-12345X@PJL")
        assert CAMERA_DATA.encode() not in data


@pytest.mark.asyncio
async def test_ip_print_prefers_pdf_and_honours_target(tmp_path):
    writer = RecordingWriter()
    engine = StaticPdfEngine()
    result = await _dispatcher(tmp_path, writer=writer, engine=engine).dispatch(
        PrintRequest(bill=make_bill(), mode="ip", target=PrintTarget(host="192.168.1.77", port=9101))
    )

    assert result.method == "ip_pdf"
    assert result.detail["host"] == "192.168.1.77"
    assert writer.sent == [("192.168.1.77", 9101, b"%PDF-1.4 fake")]


@pytest.mark.asyncio
async def test_ip_print_reports_copies_sent_before_failure(tmp_path):
    writer = RecordingWriter(fail_on=2)
    result = await _dispatcher(tmp_path, writer=writer).dispatch(PrintRequest(bill=make_bill(), mode="ip", copies=3))

    assert not result.success
    assert result.method == "ip_raw"
    assert result.error_kind == "connection_error"
    assert result.detail["copiesSent"] == 1
    assert len(writer.sent) == 2


@pytest.mark.asyncio
async def test_ip_print_requires_host(tmp_path):
    writer = RecordingWriter()
    result = await _dispatcher(tmp_path, writer=writer, ip_host="").dispatch(
        PrintRequest(bill=make_bill(), mode="ip")
    )
    assert not result.success
    assert result.error_kind == "invalid_request"
    assert writer.sent == []


@pytest.mark.asyncio
async def test_pdf_mode_without_engine_fails_without_spooling(tmp_path):
    local = FakeLocalQueue()
    result = await _dispatcher(tmp_path, local=local).dispatch(PrintRequest(bill=make_bill(), mode="pdf"))

    assert not result.success
    assert result.method == "pdf"
    assert result.error_kind == "render_engine_unavailable"
    assert result.error.startswith("PDF print failed:")
    assert local.calls == []


@pytest.mark.asyncio
async def test_pdf_mode_renders_a4_and_spools(tmp_path):
    local = FakeLocalQueue()
    engine = StaticPdfEngine()
    result = await _dispatcher(tmp_path, local=local, engine=engine).dispatch(
        PrintRequest(bill=make_bill(), mode="pdf", copies=2)
    )

    assert result.success
    assert engine.calls == ["A4"]
    assert local.calls == [("pdf", "", 2)]
    assert local.payloads["pdf"] == b"%PDF-1.4 fake"


@pytest.mark.asyncio
async def test_pdf_spooler_failure_is_reported(tmp_path):
    local = FakeLocalQueue(fail=("pdf",))
    result = await _dispatcher(tmp_path, local=local, engine=StaticPdfEngine()).dispatch(
        PrintRequest(bill=make_bill(), mode="pdf")
    )
    assert not result.success
    assert result.error_kind == "local_queue_error"


@pytest.mark.asyncio
async def test_job_files_are_removed_after_dispatch(tmp_path):
    dispatcher = _dispatcher(tmp_path, local=FakeLocalQueue(fail=("document",)))
    await dispatcher.dispatch(PrintRequest(bill=make_bill(), mode="local"))
    await dispatcher.dispatch(PrintRequest(bill=make_bill(), mode="ip"))
    assert list(tmp_path.iterdir()) == []


@pytest.mark.asyncio
async def test_default_mode_comes_from_settings(tmp_path):
    result = await _dispatcher(tmp_path, default_type="html").dispatch(PrintRequest(bill=make_bill()))
    assert result.method == "html"


@pytest.mark.asyncio
async def test_renderer_failure_is_a_result_not_an_exception(tmp_path):
    def broken(bill, company):
        raise KeyError("template")

    dispatcher = _dispatcher(tmp_path)
    dispatcher.renderer = broken
    result = await dispatcher.dispatch(PrintRequest(bill=make_bill(), mode="ip"))
    assert not result.success
    assert result.error_kind == "render_error"


def test_status_describes_configuration(tmp_path):
    status = _dispatcher(tmp_path, local_name="Counter", paper_width_mm=80).status()
    assert status == {
        "defaultType": "local",
        "localPrinter": "Counter",
        "ipHost": "10.0.0.5",
        "ipPort": 9100,
        "paperWidth": 80,
        "htmlToPdfEngine": "wkhtmltopdf",
    }


@pytest.mark.asyncio
async def test_ip_print_survives_unexpected_engine_error(tmp_path):
    writer = RecordingWriter()
    engine = FailingPdfEngine(RuntimeError("engine crashed"))
    result = await _dispatcher(tmp_path, writer=writer, engine=engine).dispatch(
        PrintRequest(bill=make_bill(), mode="ip")
    )
    assert result.success
    assert result.method == "ip_raw"
    assert len(writer.sent) == 1
