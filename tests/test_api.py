import socket

import pytest
from fastapi.testclient import TestClient

from bills import BILL_FIELDS
from fakes import FailingPdfEngine, FakeEndpoints, FakeLocalQueue, FakeTransport, RecordingWriter, TransportFactory
from weighbridge.config.settings import PrinterSettings, SerialSettings, WeighbridgeSettings
from weighbridge.container import WeighbridgeServices
from weighbridge.core.events import Broadcaster
from weighbridge.main import create_app
from weighbridge.serial_scale_service import ConnectionManager
from weighbridge.services.printer_service import PrintDispatcher


@pytest.fixture
def services(tmp_path):
    settings = WeighbridgeSettings(
        serial=SerialSettings(port="/dev/ttyUSB0", baud_rate=9600),
        printer=PrinterSettings(temp_dir=tmp_path, ip_host="10.0.0.5"),
    )
    broadcaster = Broadcaster()
    factory = TransportFactory(FakeTransport(), FakeTransport())
    connection = ConnectionManager(
        broadcaster,
        transport_factory=factory,
        list_endpoints=FakeEndpoints("/dev/ttyUSB0"),
        poll_interval=60.0,
        simulation_interval=60.0,
    )
    dispatcher = PrintDispatcher(
        settings.printer,
        local_queue=FakeLocalQueue(),
        pdf_engine=FailingPdfEngine(),
        raw_writer=RecordingWriter(),
    )
    return WeighbridgeServices(settings, broadcaster=broadcaster, connection=connection, dispatcher=dispatcher)


@pytest.fixture
def client(services):
    with TestClient(create_app(services)) as test_client:
        yield test_client
    assert not services.started


def test_health(client):
    body = client.get("/api/health").json()
    assert body["status"] == "ok"
    assert body["serialPort"] is True
    assert body["simulation"] is False


def test_scale_status_and_weight(client):
    status = client.get("/api/scale/status").json()
    assert status == {
        "state": "connected",
        "connected": True,
        "simulation": False,
        "port": "/dev/ttyUSB0",
        "baudRate": 9600,
    }
    weight = client.get("/api/scale/weight").json()
    assert weight["weight"] == 0
    assert weight["timestamp"].endswith("Z")


def test_scale_ports(client):
    assert client.get("/api/scale/ports").json() == {"ports": [{"path": "/dev/ttyUSB0"}]}


def test_scale_config_reconnects(client, services):
    response = client.post("/api/scale/config", json={"port": "/dev/ttyS3", "baudRate": 4800})
    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert body["port"] == "/dev/ttyS3"
    assert body["connected"] is True
    assert services.settings.serial.baud_rate == 4800


def test_scale_config_rejects_bad_baud(client):
    assert client.post("/api/scale/config", json={"port": "/dev/ttyS3", "baudRate": 0}).status_code == 422


def test_websocket_sends_snapshot_then_answers_ping(client):
    with client.websocket_connect("/ws") as websocket:
        first = websocket.receive_json()
        second = websocket.receive_json()
        assert first["type"] == "weight"
        assert first["stable"] is False
        assert second == {"type": "status", "connected": True, "simulation": False}

        websocket.send_text("not json")
        websocket.send_json({"type": "ping"})
        assert websocket.receive_json() == {"type": "pong"}


def test_print_html(client):
    response = client.post("/api/printer/print", json={"mode": "html", "bill": BILL_FIELDS})
    assert response.status_code == 200
    body = response.json()
    assert body["billNo"] == "1042"
    assert body["success"] is True
    assert body["method"] == "html"
    assert "TN 25 AX 4411" in body["html"]


def test_print_applies_company_override(client):
    response = client.post(
        "/api/printer/print",
        json={"mode": "html", "bill": BILL_FIELDS, "companySettings": {"name": "KAVERI WEIGH BRIDGE"}},
    )
    assert "KAVERI WEIGH BRIDGE" in response.json()["html"]


def test_print_ip_falls_back_to_raw(client, services):
    response = client.post("/api/printer/print", json={"mode": "ip", "copies": 2, "bill": BILL_FIELDS})
    body = response.json()
    assert body["success"] is True
    assert body["method"] == "ip_raw"
    assert len(services.dispatcher.raw_writer.sent) == 2


def test_print_without_bill_number_is_rejected(client):
    bill = {key: value for key, value in BILL_FIELDS.items() if key != "billNo"}
    response = client.post("/api/printer/print", json={"mode": "html", "bill": bill})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_print_rejects_zero_copies(client):
    response = client.post("/api/printer/print", json={"mode": "ip", "copies": 0, "bill": BILL_FIELDS})
    assert response.status_code == 422


def test_printer_status_and_listing(client):
    assert client.get("/api/printer/status").json()["ipHost"] == "10.0.0.5"
    assert client.get("/api/printer/printers").json() == {"printers": [{"name": "Counter", "status": "available"}]}


def test_reachability_check_requires_host(client):
    response = client.post("/api/printer/test-ip", json={})
    assert response.status_code == 400
    assert response.json() == {"error": "host is required"}


def test_reachability_check_on_closed_port(client):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    body = client.post("/api/printer/test-ip", json={"host": "127.0.0.1", "port": port}).json()
    assert body["reachable"] is False
    assert body["port"] == port
