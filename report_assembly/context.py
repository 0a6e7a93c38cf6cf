import hashlib
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Union


@dataclass(frozen=True)
class ImagePayload:
    """Rasterized capture stored as a PNG data URI."""

    image_data: str

    def __post_init__(self):
        if not self.image_data.startswith("data:image/"):
            raise ValueError("image_data must be an image data URI")


@dataclass(frozen=True)
class HtmlPayload:
    """Self-contained HTML snapshot or generator-produced fragment."""

    html_data: str


Payload = Union[ImagePayload, HtmlPayload]


@dataclass(frozen=True)
class ViewKey:
    """
    Everything that distinguishes one capture of a view from another.
    Two captures of the same view under different filters or periods
    must produce different keys.
    """

    view_id: str
    period: str = ""
    filters: Dict[str, str] = field(default_factory=dict)

    def cache_key(self) -> str:
        parts = sorted((str(k), str(v)) for k, v in self.filters.items())
        return hashlib.sha256(repr(parts).encode("utf-8")).hexdigest()[:16]

    def unique_key(self) -> str:
        return f"{self.view_id}|{self.period}|{self.cache_key()}"

    @classmethod
    def of(cls, view_id: str, period: str = "", filters: Optional[Mapping[str, object]] = None) -> "ViewKey":
        clean = {str(k): str(v) for k, v in (filters or {}).items() if v not in (None, "")}
        return cls(view_id=view_id, period=period, filters=clean)


@dataclass(frozen=True)
class Artifact:
    """
    One unit the analyst chose to include in the report. Exactly one
    payload kind is carried; ``sequence`` and ``inserted_at`` are stamped
    by the report store on insert.
    """

    view_name: str
    unique_key: str
    period: str
    payload: Payload
    notes: str = ""
    sequence: int = -1
    inserted_at: float = 0.0

    def __post_init__(self):
        if not isinstance(self.payload, (ImagePayload, HtmlPayload)):
            raise TypeError("Artifact payload must be an ImagePayload or an HtmlPayload")
        if not self.unique_key:
            raise ValueError("Artifact unique_key must not be empty")

    @property
    def image_data(self) -> Optional[str]:
        return self.payload.image_data if isinstance(self.payload, ImagePayload) else None

    @property
    def html_data(self) -> Optional[str]:
        return self.payload.html_data if isinstance(self.payload, HtmlPayload) else None

    @property
    def is_image(self) -> bool:
        return isinstance(self.payload, ImagePayload)


@dataclass(frozen=True)
class RenderRequest:
    """A complete, self-contained HTML document plus the download title."""

    html: str
    title: str

    def as_json(self) -> Dict[str, str]:
        return {"html": self.html, "title": self.title}
