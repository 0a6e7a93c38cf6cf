import logging
import re
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from .config import PDF_CONTENT_TYPE

logger = logging.getLogger(__name__)


def slugify(value: str, default: str = "report") -> str:
    s = re.sub(r"[^A-Za-z0-9]+", "-", str(value or "")).strip("-").lower()
    return s or default


def export_filename(slug: str, on: Optional[date] = None) -> str:
    """``<slug>-<ISO date>.pdf``"""
    return f"{slugify(slug)}-{(on or date.today()).isoformat()}.pdf"


def filename_slug(filename: str) -> str:
    """Inverse of :func:`export_filename`: drop the date and extension."""
    stem = filename[: -len(".pdf")] if filename.endswith(".pdf") else filename
    return re.sub(r"-\d{4}-\d{2}-\d{2}$", "", stem)


@dataclass(frozen=True)
class Download:
    filename: str
    data: bytes
    mime: str = PDF_CONTENT_TYPE
    renderer: str = "remote"


class DownloadSink(Protocol):
    """Receiver of finished exports and of the transient notifications around them."""

    def deliver(self, download: Download) -> None:
        ...

    def notify(self, message: str, level: str = "success") -> None:
        ...


@dataclass
class MemorySink:
    """Collects downloads in memory; used by tests and embedding callers."""

    downloads: List[Download] = field(default_factory=list)
    messages: List[Tuple[str, str]] = field(default_factory=list)

    def deliver(self, download: Download) -> None:
        self.downloads.append(download)

    def notify(self, message: str, level: str = "success") -> None:
        self.messages.append((level, message))


def save_pdf(pdf_bytes: bytes, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(pdf_bytes)
    return path


@dataclass
class DirectorySink:
    """Writes each download into a local folder, like a browser's save dialog."""

    folder: Path
    saved: List[Path] = field(default_factory=list)

    def deliver(self, download: Download) -> None:
        self.saved.append(save_pdf(download.data, Path(self.folder) / download.filename))

    def notify(self, message: str, level: str = "success") -> None:
        log = logger.error if level == "error" else logger.info
        log(message)
