#!/usr/bin/env python3
"""Tests for the Flask JSON API."""

import io
import shutil
from pathlib import Path

import openpyxl
import pytest

import web.app as web_app
from fleet import load_fleet
from fleet.config import Settings
from fleet.notifications import MessageBirdClient

EXAMPLE_FILE = Path(__file__).parent.parent / "fleet.example.yaml"


@pytest.fixture
def fleet_file(tmp_path):
    path = tmp_path / "fleet.yaml"
    shutil.copy(EXAMPLE_FILE, path)
    return path


@pytest.fixture
def client(fleet_file, monkeypatch):
    monkeypatch.setitem(web_app.app.config, "FLEET_DATA_FILE", fleet_file)
    monkeypatch.setattr(web_app, "settings", Settings())
    web_app.app.config["TESTING"] = True
    with web_app.app.test_client() as client:
        yield client


class FakeQueue:
    def __init__(self):
        self.items = []
        self.started = False

    def enqueue(self, item):
        self.items.append(item)

    def start(self):
        self.started = True


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.ok = status_code < 400
        self._body = body

    def json(self):
        if self._body is None:
            raise ValueError("No JSON")
        return self._body


class FakeSession:
    def __init__(self, response):
        self.response = response
        self.calls = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append(json)
        return self.response


def xlsx_upload(rows):
    workbook = openpyxl.Workbook()
    for row in rows:
        workbook.active.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    buffer.seek(0)
    return buffer


class TestIndex:
    """Tests for the fleet overview."""

    def test_status_counts(self, client):
        data = client.get("/").get_json()
        assert data["status"] == {
            "active": 2,
            "service-soon": 1,
            "needs-service": 0,
            "unknown": 0,
        }
        bolt = data["categories"][0]
        assert bolt["name"] == "Bolt"
        assert bolt["scooters"] == 1
        assert bolt["status"]["service-soon"] == 1


class TestScooterDetail:
    """Tests for the scooter detail endpoint."""

    def test_detail(self, client):
        data = client.get("/scooter/B-001").get_json()
        assert data["status"] == "service-soon"
        assert data["nextServiceKm"] == 9000
        assert data["intervalKm"] == 3000
        assert data["damageAlert"] == "1 damage reported"
        assert data["services"][0]["serviceDetails"] == "Oil change, rear brake pads"
        assert data["damages"][0]["resolved"] is False

    def test_unknown_scooter(self, client):
        response = client.get("/scooter/X-1")
        assert response.status_code == 404
        assert "not found" in response.get_json()["error"]


class TestLogService:
    """Tests for manual service entry."""

    def test_creates_record(self, client, fleet_file):
        response = client.post(
            "/scooter/P-014/service",
            json={"serviceDate": "2024-05-01", "currentKm": "3,200", "serviceDetails": "Oil"},
        )
        assert response.status_code == 201
        data = response.get_json()
        assert data["nextKm"] == 7700
        assert data["status"] == "active"

        scooter = load_fleet(fleet_file).get_scooter("P-014")
        assert scooter.current_km == 3200
        assert len(scooter.services) == 1

    def test_missing_km(self, client):
        response = client.post("/scooter/P-014/service", json={"serviceDetails": "Oil"})
        assert response.status_code == 400

    def test_invalid_date(self, client):
        response = client.post(
            "/scooter/P-014/service", json={"serviceDate": "someday", "currentKm": 10}
        )
        assert response.status_code == 400
        assert "Invalid date format" in response.get_json()["error"]

    def test_queues_notification_when_enabled(self, client, monkeypatch):
        settings = Settings(
            messagebird_api_key="key",
            messagebird_channel_id="channel",
            primary_number="+40700000001",
        )
        queue = FakeQueue()
        monkeypatch.setattr(web_app, "settings", settings)
        monkeypatch.setattr(web_app, "notification_queue", queue)

        response = client.post(
            "/scooter/B-001/service",
            json={"serviceDate": "2024-05-01", "currentKm": 9000, "serviceDetails": "Oil"},
        )
        assert response.status_code == 201
        service_data, category = queue.items[0]
        assert service_data["nextKm"] == 12000
        assert category == "Bolt"
        assert queue.started

    def test_form_post(self, client):
        response = client.post(
            "/scooter/T-203/service",
            data={"serviceDate": "2024-05-01", "currentKm": "2600"},
        )
        assert response.status_code == 201
        assert response.get_json()["nextKm"] == 5100


class TestUpdateKm:
    """Tests for the km update endpoint."""

    def test_update(self, client):
        response = client.post("/scooter/B-001/km", json={"currentKm": 9100})
        assert response.get_json() == {
            "currentKm": 9100,
            "nextKm": 9000,
            "status": "needs-service",
        }

    def test_invalid_value(self, client):
        assert client.post("/scooter/B-001/km", json={"currentKm": "x"}).status_code == 400
        assert client.post("/scooter/B-001/km", json={"currentKm": -1}).status_code == 400

    def test_fraction_and_boolean_rejected(self, client, fleet_file):
        before = fleet_file.read_text()
        for value in (12.7, True):
            response = client.post("/scooter/B-001/km", json={"currentKm": value})
            assert response.status_code == 400
            assert "Invalid kilometer value" in response.get_json()["error"]
        assert fleet_file.read_text() == before

    def test_unknown_scooter(self, client):
        assert client.post("/scooter/X-1/km", json={"currentKm": 1}).status_code == 404


class TestImportHistory:
    """Tests for spreadsheet upload."""

    def test_partial_import(self, client, fleet_file):
        upload = xlsx_upload(
            [
                ["SERVICE DATE", "MILAGE", "NEXT SERVICE AT", "DONE"],
                ["15-Jan-24", 100, 2600, "First"],
                ["01-Dec-23", "5,000", 4000, "Bad"],
            ]
        )
        response = client.post(
            "/scooter/T-203/import",
            data={"file": (upload, "history.xlsx")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 201
        data = response.get_json()
        assert data["acceptedCount"] == 1
        assert data["rejectedCount"] == 1
        assert data["rejections"][0]["kind"] == "KilometerOrderViolation"
        assert len(load_fleet(fleet_file).get_scooter("T-203").services) == 2

    def test_no_valid_records(self, client):
        upload = io.BytesIO(b"DATE,KM,NEXT KM\nbad,1,2\n")
        response = client.post(
            "/scooter/T-203/import",
            data={"file": (upload, "history.csv")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 422
        assert response.get_json()["noValidRecords"] is True

    def test_missing_columns(self, client):
        upload = io.BytesIO(b"DATE,KM\n15-Jan-24,1\n")
        response = client.post(
            "/scooter/T-203/import",
            data={"file": (upload, "history.csv")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert "next_km" in response.get_json()["error"]

    def test_unsupported_file(self, client):
        response = client.post(
            "/scooter/T-203/import",
            data={"file": (io.BytesIO(b"%PDF"), "history.pdf")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_no_file(self, client):
        assert client.post("/scooter/T-203/import").status_code == 400


class TestExport:
    """Tests for category export."""

    def test_csv(self, client):
        response = client.get("/category/Bolt/export?start=2024-01-01")
        assert response.status_code == 200
        assert response.mimetype == "text/csv"
        lines = response.get_data(as_text=True).splitlines()
        assert lines[0].startswith("Service Date,Scooter")
        assert len(lines) == 2

    def test_pdf(self, client):
        response = client.get("/category/Bolt/export?format=pdf")
        assert response.mimetype == "application/pdf"
        assert response.get_data().startswith(b"%PDF")

    def test_unknown_format(self, client):
        assert client.get("/category/Bolt/export?format=xml").status_code == 400

    def test_unknown_category(self, client):
        assert client.get("/category/Racing/export").status_code == 404


class TestFleetManagement:
    """Tests for the category, scooter and service management endpoints."""

    def test_create_category(self, client, fleet_file):
        response = client.post("/category", json={"name": "Long Term"})
        assert response.status_code == 201
        assert "Long Term" in load_fleet(fleet_file).categories

    def test_duplicate_category(self, client):
        response = client.post("/category", json={"name": "bolt"})
        assert response.status_code == 400
        assert "already exists" in response.get_json()["error"]

    def test_category_name_required(self, client):
        assert client.post("/category", json={"name": "  "}).status_code == 400

    def test_create_scooter(self, client, fleet_file):
        response = client.post(
            "/scooter",
            json={
                "id": "T-300",
                "category": "Tourist",
                "ccType": "50cc",
                "currentKm": 1200,
            },
        )
        assert response.status_code == 201
        scooter = load_fleet(fleet_file).get_scooter("T-300")
        assert scooter.cc_type == "50cc"
        assert scooter.current_km == 1200
        assert scooter.next_service_km == 3700

    def test_bolt_scooter_gets_bolt_engine_type(self, client, fleet_file):
        response = client.post(
            "/scooter", json={"id": "B-002", "category": "Bolt", "ccType": "50cc"}
        )
        assert response.status_code == 201
        assert response.get_json()["ccType"] == "125cc BOLT"
        assert load_fleet(fleet_file).get_scooter("B-002").cc_type == "125cc BOLT"

    def test_create_scooter_rejects_bad_input(self, client):
        assert client.post("/scooter", json={"id": "X-1"}).status_code == 400
        assert (
            client.post("/scooter", json={"id": "X-1", "category": "Nope"}).status_code
            == 400
        )
        assert (
            client.post("/scooter", json={"id": "b-001", "category": "Bolt"}).status_code
            == 400
        )
        response = client.post(
            "/scooter", json={"id": "X-1", "category": "Tourist", "currentKm": 10.5}
        )
        assert response.status_code == 400

    def test_delete_scooter(self, client, fleet_file):
        assert client.delete("/scooter/b-001").status_code == 204
        fleet = load_fleet(fleet_file)
        assert fleet.get_scooter("B-001") is None
        assert all(s.scooter_id != "B-001" for s in fleet.services_for_category("Bolt"))

    def test_delete_unknown_scooter(self, client):
        assert client.delete("/scooter/X-1").status_code == 404

    def test_delete_service(self, client, fleet_file):
        assert client.delete("/scooter/T-203/service/0").status_code == 204
        fleet = load_fleet(fleet_file)
        assert fleet.get_scooter("T-203").services == []
        assert len(fleet.get_scooter("B-001").services) == 1

    def test_delete_service_out_of_range(self, client):
        assert client.delete("/scooter/T-203/service/1").status_code == 404
        assert client.delete("/scooter/X-1/service/0").status_code == 404


class TestResendNotification:
    """Tests for the notification resend endpoint."""

    SETTINGS = Settings(
        messagebird_api_key="key",
        messagebird_channel_id="channel",
        primary_number="+40700000001",
        bolt_number="+40700000002",
    )

    def use_session(self, monkeypatch, response):
        session = FakeSession(response)
        monkeypatch.setattr(web_app, "settings", self.SETTINGS)
        monkeypatch.setattr(
            web_app,
            "MessageBirdClient",
            lambda settings: MessageBirdClient(settings, session=session),
        )
        return session

    def test_resend_to_bolt_number(self, client, monkeypatch):
        session = self.use_session(monkeypatch, FakeResponse())
        response = client.post(
            "/scooter/B-001/service/0/resend", json={"numberType": "bolt"}
        )
        assert response.status_code == 200
        assert response.get_json() == {"sent": True, "numberType": "bolt"}
        assert session.calls[0]["to"] == "+40700000002"

    def test_resend_defaults_to_primary(self, client, monkeypatch):
        session = self.use_session(monkeypatch, FakeResponse())
        assert client.post("/scooter/T-203/service/0/resend").status_code == 200
        assert session.calls[0]["to"] == "+40700000001"

    def test_send_failure(self, client, monkeypatch):
        self.use_session(
            monkeypatch, FakeResponse(401, {"errors": [{"description": "Bad key"}]})
        )
        response = client.post("/scooter/B-001/service/0/resend")
        assert response.status_code == 502

    def test_not_configured(self, client):
        assert client.post("/scooter/B-001/service/0/resend").status_code == 503

    def test_unknown_service(self, client, monkeypatch):
        self.use_session(monkeypatch, FakeResponse())
        assert client.post("/scooter/B-001/service/5/resend").status_code == 404
        assert client.post("/scooter/X-1/service/0/resend").status_code == 404

    def test_unknown_number_type(self, client, monkeypatch):
        self.use_session(monkeypatch, FakeResponse())
        response = client.post(
            "/scooter/B-001/service/0/resend", json={"numberType": "other"}
        )
        assert response.status_code == 400
