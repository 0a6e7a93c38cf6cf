import asyncio
from dataclasses import dataclass
from typing import Optional

import streamlit as st

from . import imaging
from .capture import CaptureSpec, ImageCapture, add_to_report
from .config import EngineSettings
from .context import ViewKey
from .download import Download, filename_slug, slugify
from .errors import DuplicateArtifact, EmptyReport, ReportEngineError
from .renderers import REPORT_KEY, ReportExporter, ViewExporter, build_exporters
from .report_presets import get_preset
from .report_store import ReportStore
from .surfaces import Surface

SESSION_KEY = "report_session"
DOWNLOAD_KEY = "report_downloads"


class StreamlitSink:
    """Keeps the latest finished PDF per export slug in session state for ``st.download_button``."""

    def __init__(self, state_key: str = DOWNLOAD_KEY):
        self.state_key = state_key

    def deliver(self, download: Download) -> None:
        st.session_state.setdefault(self.state_key, {})[filename_slug(download.filename)] = download

    def notify(self, message: str, level: str = "success") -> None:
        icons = {"success": "✅", "warning": "⚠️", "error": "❌"}
        st.toast(message, icon=icons.get(level, "ℹ️"))

    def latest(self, slug: str) -> Optional[Download]:
        return st.session_state.get(self.state_key, {}).get(slug)


@dataclass
class ReportSession:
    """The registry and exporters one analyst session shares across reruns."""

    settings: EngineSettings
    store: ReportStore
    sink: StreamlitSink
    view_exporter: ViewExporter
    report_exporter: ReportExporter


def get_report_session(settings: Optional[EngineSettings] = None) -> ReportSession:
    if SESSION_KEY not in st.session_state:
        settings = settings or EngineSettings.from_env()
        store = ReportStore(max_artifacts=settings.max_artifacts)
        sink = StreamlitSink()
        view, report = build_exporters(store, settings, sink)
        st.session_state[SESSION_KEY] = ReportSession(settings, store, sink, view, report)
    return st.session_state[SESSION_KEY]


def _run(coro):
    return asyncio.run(coro)


def render_add_to_report_button(
    session: ReportSession,
    target: Optional[Surface],
    *,
    view_name: str,
    view_key: ViewKey,
    spec: Optional[CaptureSpec] = None,
    key: Optional[str] = None,
) -> bool:
    spec = spec or ImageCapture(scale=session.settings.capture_scale)
    unique_key = view_key.unique_key()
    already = unique_key in session.store
    clicked = st.button(
        "Already added" if already else "Add to report",
        key=key or f"add_{unique_key}",
        disabled=already,
        help="Capture this view and append it to the custom report.",
    )
    if not clicked:
        return False
    try:
        with st.spinner("Capturing..."):
            added = _run(
                add_to_report(
                    session.store,
                    spec,
                    target,
                    view_name=view_name,
                    unique_key=unique_key,
                    period=view_key.period,
                )
            )
    except ReportEngineError as exc:
        st.error(exc.user_message)
        return False
    if not added:
        session.sink.notify(DuplicateArtifact.user_message, level="warning")
        return False
    session.sink.notify(f"{view_name} added to the report")
    return True


def _download_button(download: Optional[Download], key: str) -> None:
    if download is None:
        return
    st.download_button(
        "Download PDF",
        download.data,
        download.filename,
        download.mime,
        key=key,
        width="stretch",
    )


def render_export_view_button(
    session: ReportSession,
    target: Optional[Surface],
    view_id: str,
    period: str = "",
    total_columns: Optional[int] = None,
    key: Optional[str] = None,
) -> None:
    preset = get_preset(view_id)
    slug = f"{preset.slug}-{period}" if period else preset.slug
    busy = session.view_exporter.is_running(f"view:{slug}")
    clicked = st.button("Export PDF", key=key or f"export_{view_id}", disabled=busy)
    if clicked:
        try:
            with st.status("Generating PDF...", expanded=False):
                _run(
                    session.view_exporter.export_view(
                        target,
                        slug,
                        style_overrides=preset.overrides(total_columns),
                        heading=f"{preset.label} {period}".strip(),
                    )
                )
        except ReportEngineError as exc:
            st.error(exc.user_message)
    _download_button(session.sink.latest(slugify(slug)), key=f"dl_{key or view_id}")


def render_report_panel(session: ReportSession, clear_on_success: bool = False) -> None:
    """Sidebar list of registered artifacts with notes, removal and export."""
    store = session.store
    st.subheader(f"My report ({len(store)})")
    if not len(store):
        st.caption("Use “Add to report” on any view to collect charts and tables here.")

    for idx, artifact in enumerate(store.list(), start=1):
        with st.container(border=True):
            st.markdown(f"**{idx}. {artifact.view_name}**")
            if artifact.period:
                st.caption(artifact.period)
            if artifact.is_image:
                st.image(imaging.from_data_uri(artifact.image_data), width="stretch")
            else:
                st.caption("HTML snapshot")
            notes = st.text_input("Notes", value=artifact.notes, key=f"notes_{artifact.unique_key}")
            if notes != artifact.notes:
                store.annotate(artifact.unique_key, notes)
            if st.button("Remove", key=f"remove_{artifact.unique_key}"):
                store.remove(artifact.unique_key)
                st.rerun()

    busy = session.report_exporter.is_running(REPORT_KEY)
    if st.button("Generate report PDF", disabled=busy or not len(store), type="primary", key="report_generate"):
        try:
            with st.status("Generating PDF...", expanded=False):
                download = _run(session.report_exporter.export_report())
            if download is not None and clear_on_success:
                store.clear()
        except EmptyReport as exc:
            st.warning(exc.user_message)
        except ReportEngineError as exc:
            st.error(exc.user_message)

    _download_button(session.sink.latest("report"), key="report_dl")

    if len(store) and st.button("Clear all", key="report_clear"):
        store.clear()
        st.rerun()
