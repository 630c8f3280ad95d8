# test_pages_api.py
#
#
# Imports
#
# Third-Party Imports
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
#
# Local Imports
from transcriptions_Server_API.app.api.v1.endpoints import pages as pages_router_module
from transcriptions_Server_API.app.core.Sync.models import RecordPayload
#
########################################################################################################################
#
# Functions:


@pytest.fixture
def client(sync_context):
    app = FastAPI()
    app.include_router(pages_router_module.router, prefix="/transcriptions", tags=["pages"])
    app.dependency_overrides[pages_router_module.get_sync_context] = lambda: sync_context
    return TestClient(app)


@pytest.fixture
def seeded(engine):
    engine.upsert(RecordPayload.from_body({
        "externalId": "s1", "title": "Sama'i Hijaz", "composer": "Tatyos Efendi", "maqam": "Hijaz",
        "form": "Sama'i", "pdfUrl": "https://cdn.example.org/s1.pdf", "about": "First line\nSecond line"}))
    engine.upsert(RecordPayload.from_body({
        "externalId": "s2", "title": "Longa Rast", "composer": "Riyad al-Sunbati", "maqam": "Rast"}))
    return engine


def test_list_page_defaults_to_maqam(client, seeded):
    response = client.get("/transcriptions")
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/html")
    assert 'data-group-by="maqam"' in response.text
    assert "Hijaz" in response.text and "Rast" in response.text


def test_list_page_by_composer(client, seeded):
    response = client.get("/transcriptions", params={"groupby": "composer"})
    assert 'data-group-by="composer"' in response.text
    # Sorted by last name: al-Sunbati before Efendi
    assert response.text.index("Riyad al-Sunbati") < response.text.index("Tatyos Efendi")


def test_unknown_grouping_falls_back(client, seeded):
    response = client.get("/transcriptions", params={"groupby": "weather"})
    assert response.status_code == 200
    assert 'data-group-by="maqam"' in response.text


def test_empty_list_page(client):
    response = client.get("/transcriptions")
    assert "No transcriptions found." in response.text


def test_detail_page(client, seeded):
    response = client.get("/transcriptions/sama-i-hijaz/")
    assert response.status_code == 200
    assert 'data-pdf-url="https://cdn.example.org/s1.pdf"' in response.text
    assert "<p>First line<br />\nSecond line</p>" in response.text


def test_detail_without_pdf_has_no_viewer(client, seeded):
    response = client.get("/transcriptions/longa-rast/")
    assert response.status_code == 200
    assert "data-pdf-url" not in response.text


def test_unknown_slug_is_404(client):
    assert client.get("/transcriptions/nothing-here/").status_code == 404


def test_draft_is_not_public(client, seeded, db_instance):
    entity_id = seeded.identity_index.find_entity_id("s2")
    db_instance.set_entity_status(entity_id, "draft")
    assert client.get("/transcriptions/longa-rast/").status_code == 404

#
# End of test_pages_api.py
########################################################################################################################
