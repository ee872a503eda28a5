from __future__ import annotations

import pytest

from crew_ledger.container import build_container
from crew_ledger.core.enums import ChangeKind
from crew_ledger.core.exceptions import TransportError
from crew_ledger.ledger.memory_repository import InMemoryLedgerRepository
from crew_ledger.main import create_app


@pytest.fixture
def container(remote):
    return build_container(repo=InMemoryLedgerRepository(), remote=remote)


@pytest.fixture
def client(container):
    app = create_app("crew_ledger.config.testing", container=container)
    return app.test_client()


@pytest.fixture
def jan_id(client) -> str:
    resp = client.post("/api/employees", json={"name": "Jan Kowalski", "position": "Cieśla"})
    assert resp.status_code == 201
    return resp.get_json()["employee"]["id"]


def test_add_and_list_employees(client, jan_id):
    resp = client.get("/api/employees")

    body = resp.get_json()
    assert body["success"] is True
    assert [e["id"] for e in body["employees"]] == [jan_id]


def test_invalid_employee_is_a_bad_request(client):
    resp = client.post("/api/employees", json={"name": "J", "position": "Cieśla"})

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_put_entry_replaces_and_returns_previous(client, jan_id):
    first = client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 8, "status": "work"})
    second = client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 4, "status": "sick"})

    assert first.get_json()["previous"] is None
    assert second.get_json()["previous"]["hours"] == 8.0
    assert second.get_json()["entry"]["status"] == "sick"


def test_entry_errors_map_to_status_codes(client, jan_id):
    assert client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 30, "status": "work"}).status_code == 400
    assert client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 8, "status": "party"}).status_code == 400
    assert client.put("/api/entries/ghost/2024-03-05", json={"hours": 8, "status": "work"}).status_code == 404
    assert client.put(f"/api/entries/{jan_id}/2024-03-05", data="oops").status_code == 400
    assert client.delete(f"/api/entries/{jan_id}/2024-03-09").status_code == 404


def test_non_text_note_is_a_bad_request(client, jan_id):
    resp = client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 8, "status": "work", "notes": 5})

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
    assert client.get(f"/api/entries?employee_id={jan_id}").get_json()["entries"] == []


def test_cleared_entries_are_hidden_unless_requested(client, jan_id):
    client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 8, "status": "work"})

    resp = client.delete(f"/api/entries/{jan_id}/2024-03-05")

    assert resp.status_code == 200
    assert client.get(f"/api/entries?employee_id={jan_id}").get_json()["entries"] == []
    cleared = client.get(f"/api/entries?employee_id={jan_id}&include_cleared=1").get_json()["entries"]
    assert cleared[0]["status"] is None


def test_bulk_partial_failure_returns_multi_status(client, jan_id):
    resp = client.post(
        "/api/entries/bulk",
        json={"employee_ids": [jan_id, "ghost"], "date": "2024-03-06", "hours": 8, "status": "work"},
    )

    assert resp.status_code == 207
    body = resp.get_json()
    assert body["succeeded"] == [jan_id]
    assert body["failed"][0]["employee_id"] == "ghost"


@pytest.mark.parametrize("employee_ids", [None, "abc", [["x"]], [{"id": "x"}], [1, 2]])
def test_bulk_with_malformed_selection_is_a_bad_request(client, jan_id, employee_ids):
    resp = client.post(
        "/api/entries/bulk",
        json={"employee_ids": employee_ids, "date": "2024-03-06", "hours": 8, "status": "work"},
    )

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False
    assert client.get("/api/summary/daily/2024-03-06").get_json()["summary"]["employees_count"] == 0


def test_summary_history_and_export(client, jan_id):
    client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 8, "status": "work"})
    client.put(f"/api/entries/{jan_id}/2024-03-05", json={"hours": 4, "status": "sick"})
    client.post("/api/entries/bulk", json={"employee_ids": "all", "date": "2024-03-06", "hours": 8, "status": "work"})

    summary = client.get(f"/api/summary/{jan_id}/2024-03").get_json()["summary"]
    assert summary["hours"]["work"] == 8.0
    assert summary["hours"]["sick"] == 4.0

    daily = client.get("/api/summary/daily/2024-03-06").get_json()["summary"]
    assert daily["employees_count"] == 1

    csv_resp = client.get("/api/export/2024-03.csv")
    assert csv_resp.status_code == 200
    assert csv_resp.mimetype == "text/csv"
    text = csv_resp.data.decode("utf-8-sig")
    assert text.splitlines()[0].startswith("employee_id,employee_name")
    assert "Jan Kowalski" in text

    xlsx_resp = client.get("/api/export/2024-03.xlsx")
    assert xlsx_resp.status_code == 200
    assert xlsx_resp.data[:2] == b"PK"

    assert client.get("/api/export/2024-03.pdf").status_code == 400

    history = client.get("/api/history?limit=2").get_json()
    assert history["total"] == 6
    assert [h["action"] for h in history["history"]] == ["export", "export"]


def test_sync_endpoints(client, jan_id, remote):
    resp = client.post("/api/sync")

    assert resp.status_code == 200
    assert resp.get_json()["pushed"] == 1
    assert len(remote.pushed) == 1

    status = client.get("/api/sync/status").get_json()
    assert status["synced"] == 1
    assert status["pending"] == 0
    assert status["phase"] == "idle"


def test_sync_with_a_refused_change_answers_multi_status(client, jan_id, remote):
    remote.rejections[(ChangeKind.EMPLOYEE, jan_id, None)] = TransportError(
        "Remote store rejected employee with 422", retryable=False, status_code=422
    )

    resp = client.post("/api/sync")

    assert resp.status_code == 207
    body = resp.get_json()
    assert body["phase"] == "idle"
    assert body["pushed"] == 0
    assert body["errors"][0]["error"] == "Remote store rejected employee with 422"
    status = client.get("/api/sync/status").get_json()
    assert (status["pending"], status["failed"]) == (1, 0)


def test_sync_and_ocr_without_configuration_are_unavailable():
    container = build_container(repo=InMemoryLedgerRepository())
    client = create_app("crew_ledger.config.testing", container=container).test_client()

    assert client.post("/api/sync").status_code == 503
    assert client.get("/api/sync/status").status_code == 503
    assert client.post("/api/ocr/proposal").status_code == 503
