import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Environment variables read by the app shell and the render service.
ENV_RENDER_URL = "REPORT_RENDER_URL"
ENV_RENDER_TIMEOUT = "REPORT_RENDER_TIMEOUT"
ENV_MAX_ARTIFACTS = "REPORT_MAX_ARTIFACTS"
ENV_LOG_LEVEL = "REPORT_LOG_LEVEL"

# Jinja2 templates for snapshots, single views and the assembled report.
DEFAULT_TEMPLATE_DIR = Path(__file__).resolve().parent / "templates"

# Raster capture. Line charts stay legible at print resolution at 3x.
CAPTURE_SCALE = 3
FALLBACK_SCALE = 2
CAPTURE_BACKGROUND = "#ffffff"
DEFAULT_VIEWPORT = (1920, 1080)
DEFAULT_FIGURE_SIZE = (900, 500)

# Remote rendering. Image-heavy documents need tens of seconds.
REMOTE_TIMEOUT_SECONDS = 60.0
REMOTE_ATTEMPTS = 2
PDF_CONTENT_TYPE = "application/pdf"

# Upper bound on artifacts held by one session's registry.
MAX_ARTIFACTS = 40

# Shared Plotly defaults so charts look consistent across app and PDF.
PLOTLY_CONFIG = {
    "displaylogo": False,
    "modeBarButtonsToRemove": [
        "lasso2d",
        "select2d",
        "autoScale2d",
        "resetScale2d",
        "toImage",
    ],
}


def _env_number(name: str, default, cast):
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def resolve_render_url() -> str:
    """
    Resolve the remote rendering endpoint from the environment.
    Returns an empty string when unset so the pipeline can skip the remote path.
    """
    return os.getenv(ENV_RENDER_URL, "").strip()


@dataclass(frozen=True)
class EngineSettings:
    """Knobs for capture, the registry and the rendering pipeline."""

    render_url: str = ""
    remote_timeout: float = REMOTE_TIMEOUT_SECONDS
    remote_attempts: int = REMOTE_ATTEMPTS
    max_artifacts: int = MAX_ARTIFACTS
    capture_scale: int = CAPTURE_SCALE
    fallback_scale: int = FALLBACK_SCALE
    template_dir: Path = DEFAULT_TEMPLATE_DIR

    @classmethod
    def from_env(cls, render_url: Optional[str] = None) -> "EngineSettings":
        return cls(
            render_url=resolve_render_url() if render_url is None else render_url,
            remote_timeout=_env_number(ENV_RENDER_TIMEOUT, REMOTE_TIMEOUT_SECONDS, float),
            max_artifacts=_env_number(ENV_MAX_ARTIFACTS, MAX_ARTIFACTS, int),
        )
