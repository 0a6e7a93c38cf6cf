"""
Capture strategies: turn a live surface into a portable payload.

The strategy is chosen once by the caller through a ``CaptureSpec`` variant
and dispatched in :func:`capture`. Nothing here mutates the live surface.
"""
import asyncio
import http.client
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Union

from PIL import Image

from . import imaging
from .config import CAPTURE_BACKGROUND, CAPTURE_SCALE
from .context import Artifact, HtmlPayload, ImagePayload, Payload
from .errors import CaptureUnavailable
from .html_report import TemplateRenderer
from .report_store import ReportStore
from .surfaces import Document, Surface

logger = logging.getLogger(__name__)

HtmlGenerator = Callable[[], Awaitable[str]]


@dataclass(frozen=True)
class ImageCapture:
    scale: int = CAPTURE_SCALE
    background: str = CAPTURE_BACKGROUND


@dataclass(frozen=True)
class GenericHtmlCapture:
    pass


@dataclass(frozen=True)
class GeneratedHtmlCapture:
    generator: HtmlGenerator


CaptureSpec = Union[ImageCapture, GenericHtmlCapture, GeneratedHtmlCapture]


def _require_mounted(target: Optional[Surface]) -> Surface:
    if target is None:
        raise CaptureUnavailable("No capture target was supplied.")
    if not target.mounted:
        raise CaptureUnavailable(f"Surface {target.surface_id} is not mounted.")
    return target


def collect_styles(document: Optional[Document]) -> str:
    """
    Concatenate every stylesheet of ``document``. A sheet that cannot be
    read counts as empty instead of failing the whole capture.
    """
    if document is None:
        return ""
    chunks = []
    for sheet in document.stylesheets:
        try:
            chunks.append(sheet.read())
        except (OSError, UnicodeDecodeError, ValueError, http.client.HTTPException) as exc:
            logger.warning("Skipping unreadable stylesheet %s: %s", sheet.label, exc)
            chunks.append("")
    return "\n".join(chunks)


async def rasterize(target: Optional[Surface], scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
    """Rasterize the full scrollable extent of ``target`` off the event loop."""
    surface = _require_mounted(target)
    try:
        return await asyncio.to_thread(surface.rasterize, scale, background)
    except CaptureUnavailable:
        raise
    except Exception as exc:
        raise CaptureUnavailable(f"Could not rasterize {surface.surface_id}: {exc}") from exc


async def serialize(target: Optional[Surface]) -> str:
    """Outer markup of ``target`` with drawing surfaces swapped for images."""
    surface = _require_mounted(target)
    try:
        return await asyncio.to_thread(surface.outer_html)
    except Exception as exc:
        raise CaptureUnavailable(f"Could not serialize {surface.surface_id}: {exc}") from exc


async def capture(
    spec: CaptureSpec,
    target: Optional[Surface],
    renderer: Optional[TemplateRenderer] = None,
) -> Payload:
    if isinstance(spec, GeneratedHtmlCapture):
        try:
            html = await spec.generator()
        except Exception as exc:
            raise CaptureUnavailable(f"HTML generator failed: {exc}") from exc
        if not isinstance(html, str):
            raise CaptureUnavailable(f"HTML generator returned {type(html).__name__}, expected str.")
        return HtmlPayload(html_data=html)

    if isinstance(spec, ImageCapture):
        image = await rasterize(target, spec.scale, spec.background)
        logger.debug("Captured %s as %sx%s image", target.surface_id, image.width, image.height)
        return ImagePayload(image_data=imaging.to_data_uri(image))

    if isinstance(spec, GenericHtmlCapture):
        body = await serialize(target)
        styles = await asyncio.to_thread(collect_styles, target.document)
        shell = (renderer or TemplateRenderer()).snapshot(body=body, styles=styles)
        return HtmlPayload(html_data=shell)

    raise TypeError(f"Unknown capture spec: {spec!r}")


async def add_to_report(
    store: ReportStore,
    spec: CaptureSpec,
    target: Optional[Surface],
    *,
    view_name: str,
    unique_key: str,
    period: str,
    notes: str = "",
    renderer: Optional[TemplateRenderer] = None,
) -> bool:
    """
    Capture ``target`` and register it. Returns False when the key is
    already registered. Capture failures propagate before the store is
    touched.
    """
    if unique_key in store:
        return False
    payload = await capture(spec, target, renderer)
    artifact = Artifact(
        view_name=view_name,
        unique_key=unique_key,
        period=period,
        payload=payload,
        notes=notes,
    )
    return store.insert(artifact)
