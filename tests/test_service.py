import pytest
from fastapi.testclient import TestClient

from report_assembly import service


@pytest.fixture
def client():
    return TestClient(service.app)


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_empty_html_is_rejected(client):
    resp = client.post("/generate-pdf", json={"html": "   ", "title": "x"})
    assert resp.status_code == 400
    assert resp.json() == {"error": "HTML content is required"}


def test_pdf_is_returned_as_attachment(client, monkeypatch):
    monkeypatch.setattr(service, "html_to_pdf_bytes", lambda html: b"%PDF-1.7 test")

    resp = client.post("/generate-pdf", json={"html": "<p>hi</p>", "title": "Sucursal Sevilla"})

    assert resp.status_code == 200
    assert resp.headers["content-type"] == "application/pdf"
    assert resp.content == b"%PDF-1.7 test"
    disposition = resp.headers["content-disposition"]
    assert disposition.startswith('attachment; filename="sucursal-sevilla-')
    assert resp.headers["cache-control"] == "no-store"


def test_missing_renderer_asks_for_client_fallback(client, monkeypatch):
    def unavailable(html):
        raise service.RendererUnavailable("weasyprint is not usable")

    monkeypatch.setattr(service, "html_to_pdf_bytes", unavailable)

    resp = client.post("/generate-pdf", json={"html": "<p>hi</p>"})

    assert resp.status_code == 503
    body = resp.json()
    assert body["useClientFallback"] is True
    assert body["version"] == service.SERVICE_VERSION


def test_render_crash_is_a_500_with_fallback_flag(client, monkeypatch):
    def crash(html):
        raise ValueError("bad markup")

    monkeypatch.setattr(service, "html_to_pdf_bytes", crash)

    resp = client.post("/generate-pdf", json={"html": "<p>hi</p>"})

    assert resp.status_code == 500
    assert resp.json()["useClientFallback"] is True
    assert resp.json()["message"] == "bad markup"
