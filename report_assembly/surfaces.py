"""
Handles to regions a dashboard is currently showing.

A surface knows its full scrollable extent and its visible viewport, can
serialize itself to self-contained markup and can be rasterized. Drawing
surfaces (Plotly figures) always serialize as static ``<img>`` tags so the
markup renders without JavaScript.
"""
import html
import itertools
import logging
import urllib.request
from dataclasses import dataclass
from html.parser import HTMLParser
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import pandas as pd
import plotly.graph_objects as go
from PIL import Image

from . import charts, imaging
from .config import CAPTURE_BACKGROUND, DEFAULT_FIGURE_SIZE, DEFAULT_VIEWPORT

logger = logging.getLogger(__name__)

_ids = itertools.count(1)


class Surface:
    """Base class for anything that can be captured."""

    kind = "surface"

    def __init__(self, width: int, height: int, viewport: Optional[Tuple[int, int]] = None):
        self.surface_id = f"{self.kind}-{next(_ids)}"
        self.scroll_width = int(width)
        self.scroll_height = int(height)
        vw, vh = viewport or DEFAULT_VIEWPORT
        self.viewport_width = min(int(vw), self.scroll_width)
        self.viewport_height = min(int(vh), self.scroll_height)
        self.document: Optional["Document"] = None
        self.mounted = True

    def unmount(self) -> None:
        self.mounted = False

    def outer_html(self) -> str:
        raise NotImplementedError

    def rasterize(self, scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
        """Bitmap of the full scrollable extent, ``scale`` pixels per CSS pixel."""
        raise NotImplementedError

    def _attrs(self) -> str:
        return f'data-surface="{self.surface_id}" class="surface surface-{self.kind}"'


class FigureSurface(Surface):
    kind = "figure"

    def __init__(self, figure: go.Figure, title: str = "", viewport: Optional[Tuple[int, int]] = None):
        width = figure.layout.width or DEFAULT_FIGURE_SIZE[0]
        height = figure.layout.height or DEFAULT_FIGURE_SIZE[1]
        super().__init__(width, height, viewport)
        self.figure = figure
        self.title = title

    def rasterize(self, scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
        png = charts.figure_to_png(self.figure, self.scroll_width, self.scroll_height, scale)
        return imaging.load_png(png, background)

    def outer_html(self) -> str:
        # Swap the live chart for a static image, as a printed page needs.
        src = imaging.to_data_uri(self.rasterize(scale=2))
        caption = f"<h3>{html.escape(self.title)}</h3>" if self.title else ""
        return (
            f"<figure {self._attrs()}>{caption}"
            f'<img src="{src}" alt="{html.escape(self.title or "chart")}" '
            f'style="width:100%;height:auto;object-fit:contain" /></figure>'
        )


class TableSurface(Surface):
    kind = "table"

    def __init__(
        self,
        frame: pd.DataFrame,
        title: str = "",
        width: Optional[int] = None,
        index: bool = False,
        viewport: Optional[Tuple[int, int]] = None,
    ):
        cols = len(frame.columns) + (1 if index else 0)
        super().__init__(width or max(120 * cols, 480), charts.table_height(frame), viewport)
        self.frame = frame
        self.title = title
        self.index = index

    def _display_frame(self) -> pd.DataFrame:
        return self.frame.reset_index() if self.index else self.frame

    def rasterize(self, scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
        fig = charts.table_figure(self._display_frame(), self.scroll_width, self.scroll_height)
        png = charts.figure_to_png(fig, self.scroll_width, self.scroll_height, scale)
        return imaging.load_png(png, background)

    def outer_html(self) -> str:
        table = self.frame.to_html(index=self.index, border=0, classes="report-table", escape=True)
        caption = f"<h3>{html.escape(self.title)}</h3>" if self.title else ""
        return f"<div {self._attrs()}>{caption}{table}</div>"


class _TextExtractor(HTMLParser):
    _skip = {"style", "script", "head", "title"}
    _breaks = {"p", "div", "br", "li", "tr", "h1", "h2", "h3", "h4", "section", "table"}

    def __init__(self):
        super().__init__()
        self.parts: List[str] = []
        self._depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self._skip:
            self._depth += 1
        elif tag in self._breaks:
            self.parts.append("\n")

    def handle_endtag(self, tag):
        if tag in self._skip and self._depth:
            self._depth -= 1
        elif tag in ("td", "th"):
            self.parts.append("  ")

    def handle_data(self, data):
        if not self._depth:
            self.parts.append(data)


def html_text(markup: str) -> str:
    parser = _TextExtractor()
    parser.feed(markup)
    parser.close()
    lines = (" ".join(line.split()) for line in "".join(parser.parts).splitlines())
    return "\n".join(line for line in lines if line)


class HtmlSurface(Surface):
    kind = "html"

    def __init__(self, markup: str, width: int = 900, height: Optional[int] = None, viewport=None):
        text = html_text(markup)
        super().__init__(width, height or max(120, 18 * (text.count("\n") + 3)), viewport)
        self.markup = markup

    def rasterize(self, scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
        return imaging.text_image(html_text(self.markup), self.scroll_width, self.scroll_height, scale, background)

    def outer_html(self) -> str:
        return f"<div {self._attrs()}>{self.markup}</div>"


class PanelSurface(Surface):
    """An ordered group of surfaces laid out top to bottom, like a dashboard card."""

    kind = "panel"
    gap = 16

    def __init__(self, children: Sequence[Surface], title: str = "", viewport=None):
        self.children = list(children)
        width = max((c.scroll_width for c in self.children), default=1)
        height = sum(c.scroll_height for c in self.children) + self.gap * max(len(self.children) - 1, 0)
        super().__init__(width, max(height, 1), viewport)
        self.title = title

    def unmount(self) -> None:
        super().unmount()
        for child in self.children:
            child.unmount()

    def rasterize(self, scale: int, background: str = CAPTURE_BACKGROUND) -> Image.Image:
        parts = [child.rasterize(scale, background) for child in self.children]
        return imaging.stack_vertically(parts, self.scroll_width * scale, self.gap * scale, background)

    def outer_html(self) -> str:
        caption = f"<h2>{html.escape(self.title)}</h2>" if self.title else ""
        inner = "\n".join(child.outer_html() for child in self.children)
        return f"<section {self._attrs()}>{caption}{inner}</section>"


@dataclass(frozen=True)
class Stylesheet:
    """One stylesheet of a page: inline CSS, a local file or a remote URL."""

    text: Optional[str] = None
    path: Optional[Path] = None
    url: Optional[str] = None

    def read(self, timeout: float = 10.0) -> str:
        if self.text is not None:
            return self.text
        if self.path is not None:
            return Path(self.path).read_text(encoding="utf-8")
        if self.url:
            req = urllib.request.Request(self.url, headers={"User-Agent": "Mozilla/5.0"})
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                return resp.read().decode("utf-8")
        return ""

    @property
    def label(self) -> str:
        if self.path is not None:
            return str(self.path)
        return self.url or "<inline>"


class Document:
    """The page that owns surfaces and the stylesheets in effect for them."""

    def __init__(self, stylesheets: Sequence[Stylesheet] = ()):
        self.stylesheets: List[Stylesheet] = list(stylesheets)
        self.surfaces: List[Surface] = []

    def add_css(self, css: str) -> None:
        self.stylesheets.append(Stylesheet(text=css))

    def mount(self, surface: Surface) -> Surface:
        surface.document = self
        surface.mounted = True
        self.surfaces.append(surface)
        return surface
