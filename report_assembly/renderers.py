import asyncio
import logging
from datetime import date
from typing import List, Optional, Sequence

from PIL import Image

from . import imaging
from .capture import collect_styles, rasterize, serialize
from .config import FALLBACK_SCALE, EngineSettings
from .context import Artifact, RenderRequest
from .download import Download, DownloadSink, export_filename, slugify
from .errors import EmptyReport, FallbackFailed, ReportEngineError
from .html_report import TemplateRenderer
from .pdf import FallbackSource, RenderPipeline
from .report_queue import ExportTracker
from .report_store import ReportStore
from .surfaces import HtmlSurface, Surface

logger = logging.getLogger(__name__)

REPORT_KEY = "report"


class _Exporter:
    def __init__(
        self,
        pipeline: RenderPipeline,
        sink: DownloadSink,
        templates: Optional[TemplateRenderer] = None,
        tracker: Optional[ExportTracker] = None,
        fallback_scale: int = FALLBACK_SCALE,
    ):
        self.pipeline = pipeline
        self.sink = sink
        self.templates = templates or TemplateRenderer()
        self.tracker = tracker or ExportTracker()
        self.fallback_scale = fallback_scale

    def is_running(self, key: str) -> bool:
        return self.tracker.is_running(key)

    def _abort(self, job, exc: Exception) -> ReportEngineError:
        """Clear the in-flight flag and map ``exc`` to an engine error."""
        self.tracker.fail(job, str(exc))
        if isinstance(exc, ReportEngineError):
            return exc
        logger.error("Export %s failed unexpectedly", job.key, exc_info=exc)
        failure = FallbackFailed(f"Export failed: {exc}")
        failure.__cause__ = exc
        return failure

    async def _render_and_deliver(
        self,
        job,
        request: RenderRequest,
        fallback_source: FallbackSource,
        filename: str,
    ) -> Download:
        outcome = await self.pipeline.render(request, fallback_source)
        pdf = outcome.raise_for_failure()
        download = Download(filename=filename, data=pdf, renderer=outcome.renderer)
        self.sink.deliver(download)
        self.tracker.complete(job, outcome.renderer)
        if outcome.renderer == "remote":
            self.sink.notify(f"PDF ready: {filename}")
        else:
            self.sink.notify(f"PDF ready (compatibility mode): {filename}", level="warning")
        return download


class ViewExporter(_Exporter):
    """
    "Export PDF" for one dashboard view. Each view passes its own CSS
    override block; the exporter injects it verbatim after the print sheet.
    """

    async def export_view(
        self,
        target: Optional[Surface],
        title_slug: str,
        style_overrides: str = "",
        heading: Optional[str] = None,
    ) -> Optional[Download]:
        """
        Returns the delivered download, or None when an export of the same
        view is already running.
        """
        slug = slugify(title_slug)
        key = f"view:{slug}"
        job = self.tracker.begin(key)
        if job is None:
            return None

        filename = export_filename(slug)
        title = filename[: -len(".pdf")]

        async def rasterize_view() -> List[Image.Image]:
            return [await rasterize(target, self.fallback_scale)]

        try:
            body = await serialize(target)
            page_styles = await asyncio.to_thread(collect_styles, target.document)
            html = self.templates.view_document(
                body=body,
                title=title,
                heading=heading or title_slug,
                page_styles=page_styles,
                style_overrides=style_overrides,
            )
            return await self._render_and_deliver(job, RenderRequest(html=html, title=title), rasterize_view, filename)
        except Exception as exc:
            raise self._abort(job, exc)


class ReportExporter(_Exporter):
    """Assembles every registered artifact into one paginated PDF."""

    def __init__(self, store: ReportStore, pipeline: RenderPipeline, sink: DownloadSink, **kwargs):
        super().__init__(pipeline, sink, **kwargs)
        self.store = store

    def build_request(self, artifacts: Sequence[Artifact], title_slug: str, heading: str) -> RenderRequest:
        title = f"{slugify(title_slug)}-{date.today().isoformat()}"
        html = self.templates.report_document(artifacts, title=title, heading=heading)
        return RenderRequest(html=html, title=title)

    async def export_report(self, title_slug: str = "report", heading: str = "Custom Report") -> Optional[Download]:
        artifacts = self.store.list()
        if not artifacts:
            raise EmptyReport("The report has no artifacts.")
        job = self.tracker.begin(REPORT_KEY)
        if job is None:
            return None

        async def rasterize_artifacts() -> List[Image.Image]:
            return await asyncio.to_thread(self._raster_sections, artifacts)

        try:
            request = self.build_request(artifacts, title_slug, heading)
            return await self._render_and_deliver(job, request, rasterize_artifacts, f"{request.title}.pdf")
        except Exception as exc:
            raise self._abort(job, exc)

    def _raster_sections(self, artifacts: Sequence[Artifact]) -> List[Image.Image]:
        scale = self.fallback_scale
        sections = []
        for artifact in artifacts:
            if artifact.is_image:
                body = imaging.from_data_uri(artifact.image_data)
            else:
                body = HtmlSurface(artifact.html_data).rasterize(scale)
            width = max(body.width // scale, 1)
            label = "\n".join(part for part in (artifact.view_name, artifact.period) if part)
            parts = [imaging.text_image(label, width, 48, scale), body]
            if artifact.notes:
                parts.append(imaging.text_image(f"Notes: {artifact.notes}", width, 80, scale))
            sections.append(imaging.stack_vertically(parts, body.width))
        return sections


def build_exporters(store: ReportStore, settings: EngineSettings, sink: DownloadSink, pipeline: Optional[RenderPipeline] = None):
    """Wire both exporters to one pipeline and one template set."""
    pipeline = pipeline or RenderPipeline.from_settings(settings)
    templates = TemplateRenderer(settings.template_dir)
    view = ViewExporter(pipeline, sink, templates=templates, fallback_scale=settings.fallback_scale)
    report = ReportExporter(store, pipeline, sink, templates=templates, fallback_scale=settings.fallback_scale)
    return view, report
