import asyncio
import re
from datetime import date

import pytest

from report_assembly.download import DirectorySink, Download, MemorySink, export_filename, filename_slug, slugify
from report_assembly.errors import CaptureUnavailable, EmptyReport, FallbackFailed
from report_assembly.pdf import RemoteRenderer, RenderPipeline
from report_assembly.renderers import REPORT_KEY, ReportExporter, ViewExporter
from report_assembly.report_queue import ExportTracker
from report_assembly.report_store import ReportStore
from report_assembly.surfaces import Document, Stylesheet

FILENAME = re.compile(r"^[a-z0-9-]+-\d{4}-\d{2}-\d{2}\.pdf$")


def make_pipeline(transport, url="http://render.local/generate-pdf"):
    return RenderPipeline(RemoteRenderer(url, timeout=5.0, attempts=1, transport=transport))


def test_empty_report_raises_without_any_request(fake_transport, pdf_response):
    transport = fake_transport(pdf_response)
    sink = MemorySink()
    exporter = ReportExporter(ReportStore(), make_pipeline(transport), sink)

    with pytest.raises(EmptyReport):
        asyncio.run(exporter.export_report())

    assert transport.calls == []
    assert sink.downloads == []
    assert not exporter.is_running(REPORT_KEY)


def test_report_document_has_one_section_per_artifact_in_order(fake_transport, pdf_response, artifact_factory):
    store = ReportStore()
    store.insert(artifact_factory("sales|2025|a", name="Sales charts"))
    store.insert(artifact_factory("combo|2025|b", name="EBITDA combo", html="<div class='combo'>grid</div>"))
    store.insert(artifact_factory("table|2025|c", name="Consolidated", notes="Check March"))
    transport = fake_transport(pdf_response)
    sink = MemorySink()

    download = asyncio.run(ReportExporter(store, make_pipeline(transport), sink).export_report())

    (_, payload, _), = transport.calls
    html = payload["html"]
    keys = re.findall(r'<div class="artifact-page" data-key="([^"]+)"', html)
    assert keys == ["sales|2025|a", "combo|2025|b", "table|2025|c"]
    assert html.count('<img src="data:image/png;base64,') == 2
    assert "<div class='combo'>grid</div>" in html
    assert "Check March" in html
    assert "page-break-before: always" in html
    assert download.renderer == "remote"
    assert download.data == pdf_response.body
    assert FILENAME.match(download.filename)
    assert sink.downloads == [download]
    assert sink.messages[-1][0] == "success"


def test_report_falls_back_to_local_tiles(fake_transport, fallback_response, artifact_factory):
    store = ReportStore()
    store.insert(artifact_factory("a", notes="first"))
    store.insert(artifact_factory("b", html="<p>Highlights</p>"))
    sink = MemorySink()

    download = asyncio.run(ReportExporter(store, make_pipeline(fake_transport(fallback_response)), sink).export_report())

    assert download.renderer == "local"
    assert download.data.startswith(b"%PDF")
    level, message = sink.messages[-1]
    assert level == "warning"
    assert "compatibility mode" in message


def test_concurrent_view_exports_make_one_request(fake_transport, pdf_response, bitmap_surface):
    """A second trigger while the first export is in flight is ignored."""
    transport = fake_transport(pdf_response)
    sink = MemorySink()
    exporter = ViewExporter(make_pipeline(transport), sink)
    surface = Document().mount(bitmap_surface(100, 50))

    async def double_click():
        return await asyncio.gather(
            exporter.export_view(surface, "consolidated"),
            exporter.export_view(surface, "consolidated"),
        )

    first, second = asyncio.run(double_click())

    assert len(transport.calls) == 1
    assert len(sink.downloads) == 1
    assert [first, second].count(None) == 1
    assert not exporter.is_running("view:consolidated")


def test_view_export_injects_overrides_and_page_styles(fake_transport, pdf_response, bitmap_surface):
    transport = fake_transport(pdf_response)
    document = Document([Stylesheet(text=".app-theme { color: teal; }")])
    surface = document.mount(bitmap_surface(100, 50))
    exporter = ViewExporter(make_pipeline(transport), MemorySink())

    download = asyncio.run(
        exporter.export_view(surface, "Sucursal Sevilla", style_overrides="th { background: #0f766e !important; }", heading="Sevilla")
    )

    html = transport.calls[0][1]["html"]
    assert ".app-theme { color: teal; }" in html
    assert html.index("th { background: #0f766e !important; }") > html.index("/* view overrides */")
    assert f'data-surface="{surface.surface_id}"' in html
    assert "<h1>Sevilla</h1>" in html
    assert download.filename == f"sucursal-sevilla-{date.today().isoformat()}.pdf"


def test_view_export_of_unmounted_surface_fails_and_clears_flag(fake_transport, pdf_response, bitmap_surface):
    transport = fake_transport(pdf_response)
    exporter = ViewExporter(make_pipeline(transport), MemorySink())
    surface = Document().mount(bitmap_surface(10, 10))
    surface.unmount()

    with pytest.raises(CaptureUnavailable):
        asyncio.run(exporter.export_view(surface, "branch"))
    assert transport.calls == []
    assert not exporter.is_running("view:branch")
    (job,) = exporter.tracker.history("view:branch")
    assert job.status == "failed"


def test_view_export_fails_when_both_tiers_fail(fake_transport, fallback_response, bitmap_surface):
    sink = MemorySink()
    exporter = ViewExporter(make_pipeline(fake_transport(fallback_response)), sink)
    surface = Document().mount(bitmap_surface(10, 10))
    surface.fail = True

    with pytest.raises(FallbackFailed):
        asyncio.run(exporter.export_view(surface, "branch"))
    assert surface.rasterize_calls == 1
    assert sink.downloads == []
    assert not exporter.is_running("view:branch")


def test_view_export_without_url_scheme_still_exports_locally(fake_transport, bitmap_surface):
    transport = fake_transport(ValueError("unknown url type: 'localhost/generate-pdf'"))
    sink = MemorySink()
    exporter = ViewExporter(make_pipeline(transport, url="localhost/generate-pdf"), sink)
    surface = Document().mount(bitmap_surface(40, 20))

    download = asyncio.run(exporter.export_view(surface, "branch"))

    assert len(transport.calls) == 1
    assert surface.rasterize_calls == 1
    assert download.renderer == "local"
    assert download.data.startswith(b"%PDF")
    assert sink.downloads == [download]


def test_export_filename_and_slug():
    assert export_filename("Month vs Annual", on=date(2025, 1, 31)) == "month-vs-annual-2025-01-31.pdf"
    assert slugify("  ") == "report"
    assert FILENAME.match(export_filename("graficos-ventas"))


def test_directory_sink_writes_file(tmp_path):
    sink = DirectorySink(tmp_path / "exports")
    sink.deliver(Download(filename="report-2025-01-31.pdf", data=b"%PDF-1.7"))
    assert (tmp_path / "exports" / "report-2025-01-31.pdf").read_bytes() == b"%PDF-1.7"
    assert sink.saved == [tmp_path / "exports" / "report-2025-01-31.pdf"]


def test_filename_slug_undoes_export_filename():
    assert filename_slug(export_filename("Sucursal Sevilla-2025", on=date(2025, 1, 31))) == "sucursal-sevilla-2025"
    assert filename_slug("report-2025-01-31.pdf") == "report"


def test_tracker_history_is_capped_but_keeps_running_jobs():
    tracker = ExportTracker(max_history=2)
    running = tracker.begin("view:long")
    for n in range(3):
        tracker.complete(tracker.begin(f"view:{n}"), "remote")
    last = tracker.begin("view:last")

    assert len(tracker.jobs) == 2
    assert tracker.get(running.id) is running
    assert tracker.get(last.id) is last
    assert tracker.is_running("view:long")
