# test_transcriptions_api.py
#
#
# Imports
from unittest.mock import patch
#
# Third-Party Imports
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
#
# Local Imports
from transcriptions_Server_API.app.api.v1.endpoints import transcriptions as transcriptions_router_module
from transcriptions_Server_API.app.core.config import settings
from transcriptions_Server_API.app.core.Sync.upsert_engine import UpsertEngine
#
########################################################################################################################
#
# Functions:

EDIT_KEY = "test-edit-key"
READ_ONLY_KEY = "test-read-only-key"
BASE = "/api/v1/transcriptions"


@pytest.fixture
def test_app(sync_context, monkeypatch):
    monkeypatch.setitem(settings, "SYNC_API_KEY", EDIT_KEY)
    monkeypatch.setitem(settings, "READONLY_API_KEY", READ_ONLY_KEY)
    app = FastAPI()
    app.include_router(transcriptions_router_module.router, prefix=BASE, tags=["transcriptions"])
    app.dependency_overrides[transcriptions_router_module.get_sync_context] = lambda: sync_context
    return app


@pytest.fixture
def client(test_app):
    return TestClient(test_app, headers={"X-API-KEY": EDIT_KEY})


# --- Authentication / authorization ---
def test_missing_api_key_is_401(test_app):
    response = TestClient(test_app).post(f"{BASE}/entry", json={"externalId": "a", "title": "b"})
    assert response.status_code == 401


def test_wrong_api_key_is_401(test_app):
    response = TestClient(test_app, headers={"X-API-KEY": "nope"}).get(f"{BASE}/entry/a")
    assert response.status_code == 401


def test_read_only_key_is_403_without_side_effects(test_app, db_instance):
    read_only = TestClient(test_app, headers={"X-API-KEY": READ_ONLY_KEY})
    response = read_only.post(f"{BASE}/entry", json={"externalId": "a", "title": "b"})
    assert response.status_code == 403
    assert response.json()["status"] == "error"
    assert db_instance.list_entities() == []


def test_read_only_key_is_403_even_for_malformed_body(test_app):
    read_only = TestClient(test_app, headers={"X-API-KEY": READ_ONLY_KEY})
    response = read_only.post(f"{BASE}/entry", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 403


# --- Create / update ---
def test_post_creates_then_updates(client):
    payload = {"externalId": "5xYz", "title": "Sama'i Bayati", "composer": "Ibrahim Efendi", "maqam": "Bayati"}
    created = client.post(f"{BASE}/entry", json=payload)
    assert created.status_code == 201
    body = created.json()
    assert body["status"] == "created"
    assert isinstance(body["entityId"], int)
    assert body["url"] == "https://example.org/transcriptions/sama-i-bayati/"

    updated = client.post(f"{BASE}/entry", json=payload)
    assert updated.status_code == 200
    assert updated.json() == {**body, "status": "updated"}


def test_post_validation_errors(client, db_instance):
    response = client.post(f"{BASE}/entry", json={"title": "No id"})
    assert response.status_code == 400
    assert response.json()["errorKind"] == "MissingField"

    response = client.post(f"{BASE}/entry", json={"externalId": "x1"})
    assert response.status_code == 400
    assert response.json()["field"] == "title"

    response = client.post(f"{BASE}/entry", json={"externalId": "x2", "title": "t", "pdfUrl": "not-a-url"})
    assert response.status_code == 400
    assert response.json()["errorKind"] == "InvalidField"
    assert db_instance.list_entities() == []


def test_post_malformed_json_is_400(client):
    response = client.post(f"{BASE}/entry", content=b"{not json", headers={"Content-Type": "application/json"})
    assert response.status_code == 400
    assert response.json()["status"] == "error"


def test_put_updates_existing_and_path_wins(client):
    client.post(f"{BASE}/entry", json={"externalId": "put1", "title": "Before"})
    response = client.put(f"{BASE}/entry/put1", json={"externalId": "ignored", "title": "After"})
    assert response.status_code == 200
    assert response.json()["status"] == "updated"
    assert client.get(f"{BASE}/entry/put1").json()["data"]["title"] == "After"


def test_put_unknown_is_404(client, db_instance):
    response = client.put(f"{BASE}/entry/unknown", json={"title": "x"})
    assert response.status_code == 404
    assert db_instance.list_entities() == []


# --- Get / delete ---
def test_get_full_record(client):
    client.post(f"{BASE}/entry", json={"externalId": "get1", "title": "Getter", "form": "Longa",
                                       "about": "<p><strong>bold</strong></p>"})
    response = client.get(f"{BASE}/entry/get1")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["form"] == "Longa"
    assert data["about"] == "<p><strong>bold</strong></p>"
    assert data["pdfUrl"] == ""


def test_get_unknown_is_404(client):
    assert client.get(f"{BASE}/entry/missing").status_code == 404


def test_delete_then_get_404(client):
    client.post(f"{BASE}/entry", json={"externalId": "del1", "title": "Doomed"})
    response = client.delete(f"{BASE}/entry/del1")
    assert response.status_code == 200
    assert response.json() == {"status": "deleted"}
    assert client.get(f"{BASE}/entry/del1").status_code == 404
    assert client.delete(f"{BASE}/entry/del1").status_code == 404


def test_identifier_outside_pattern_is_404(client):
    assert client.get(f"{BASE}/entry/bad%20id").status_code == 404


def test_list_entries(client):
    client.post(f"{BASE}/entry", json={"externalId": "l2", "title": "Zeta"})
    client.post(f"{BASE}/entry", json={"externalId": "l1", "title": "Alpha"})
    response = client.get(f"{BASE}/entries")
    assert response.status_code == 200
    assert [item["title"] for item in response.json()["data"]] == ["Alpha", "Zeta"]


def test_internal_error_does_not_leak(client):
    with patch.object(UpsertEngine, "upsert", side_effect=RuntimeError("sqlite path /srv/secret.db")):
        response = client.post(f"{BASE}/entry", json={"externalId": "boom", "title": "x"})
    assert response.status_code == 500
    assert response.json() == {"status": "error", "message": "Internal server error"}
    assert "secret" not in response.text

#
# End of test_transcriptions_api.py
########################################################################################################################
