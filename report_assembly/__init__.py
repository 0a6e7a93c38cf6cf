"""
Report assembly for the analytics dashboards.

Captures dashboard views as images or HTML snapshots, keeps them in a
session-scoped registry and assembles them into PDFs, through a remote
rendering service with a local FPDF fallback.
"""

from .capture import GeneratedHtmlCapture, GenericHtmlCapture, ImageCapture, add_to_report, capture
from .config import EngineSettings
from .context import Artifact, HtmlPayload, ImagePayload, ViewKey
from .errors import (
    CaptureUnavailable,
    DuplicateArtifact,
    EmptyReport,
    FallbackFailed,
    RegistryFull,
    RemoteUnavailable,
    ReportEngineError,
)
from .renderers import ReportExporter, ViewExporter, build_exporters
from .report_store import ReportStore

__all__ = [
    "Artifact",
    "CaptureUnavailable",
    "DuplicateArtifact",
    "EmptyReport",
    "EngineSettings",
    "FallbackFailed",
    "GeneratedHtmlCapture",
    "GenericHtmlCapture",
    "HtmlPayload",
    "ImageCapture",
    "ImagePayload",
    "RegistryFull",
    "RemoteUnavailable",
    "ReportEngineError",
    "ReportExporter",
    "ReportStore",
    "ViewExporter",
    "ViewKey",
    "add_to_report",
    "build_exporters",
    "capture",
]
