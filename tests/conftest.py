import json
from io import BytesIO

import pytest
from PIL import Image

from report_assembly import imaging
from report_assembly.context import Artifact, HtmlPayload, ImagePayload
from report_assembly.pdf import RemoteResponse
from report_assembly.surfaces import Surface


class BitmapSurface(Surface):
    """Surface that paints a solid block of its full extent without Kaleido."""

    kind = "bitmap"

    def __init__(self, width, height, color="#3b82f6", viewport=None, fail=False):
        super().__init__(width, height, viewport)
        self.color = color
        self.fail = fail
        self.rasterize_calls = 0

    def rasterize(self, scale, background="#ffffff"):
        self.rasterize_calls += 1
        if self.fail:
            raise RuntimeError("renderer crashed")
        return Image.new("RGB", (self.scroll_width * scale, self.scroll_height * scale), self.color)

    def outer_html(self):
        return f'<div {self._attrs()}><p>bitmap {self.surface_id}</p></div>'


class FakeTransport:
    """Stands in for ``post_json``; replays queued responses and records every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def __call__(self, url, payload, timeout):
        self.calls.append((url, payload, timeout))
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        return item


def png_of(width, height, color="#ef4444"):
    buf = BytesIO()
    Image.new("RGB", (width, height), color).save(buf, format="PNG")
    return buf.getvalue()


def make_artifact(key, name=None, period="2025", html=None, notes=""):
    if html is not None:
        payload = HtmlPayload(html_data=html)
    else:
        payload = ImagePayload(image_data=imaging.to_data_uri(Image.new("RGB", (40, 20), "#10b981")))
    return Artifact(view_name=name or key, unique_key=key, period=period, payload=payload, notes=notes)


@pytest.fixture
def png_factory():
    return png_of


@pytest.fixture
def bitmap_surface():
    return BitmapSurface


@pytest.fixture
def artifact_factory():
    return make_artifact


@pytest.fixture
def pdf_response():
    return RemoteResponse(200, "application/pdf", b"%PDF-1.7 remote body")


@pytest.fixture
def fallback_response():
    body = json.dumps(
        {"error": "Renderer not available", "message": "no GTK", "useClientFallback": True}
    ).encode("utf-8")
    return RemoteResponse(503, "application/json", body)


@pytest.fixture
def fake_transport():
    return FakeTransport
