from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, select_autoescape

from .config import DEFAULT_TEMPLATE_DIR
from .context import Artifact

DEFAULT_LANG = "en"


def _build_env(template_dir: Path) -> Environment:
    return Environment(
        loader=FileSystemLoader(template_dir),
        autoescape=select_autoescape(enabled_extensions=("html", "j2")),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class TemplateRenderer:
    """
    Thin wrapper around Jinja2 so capture and both exporters share one set
    of document shells. Missing templates raise; a report built from a
    half-rendered shell is worse than a visible failure.
    """

    def __init__(self, template_dir: Optional[Path] = None):
        self.template_dir = template_dir or DEFAULT_TEMPLATE_DIR
        self.env = _build_env(self.template_dir)

    def render(self, template_name: str, payload: Dict[str, Any]) -> str:
        return self.env.get_template(template_name).render(**payload)

    def snapshot(self, body: str, styles: str, lang: str = DEFAULT_LANG) -> str:
        """Minimal shell for a generic HTML capture."""
        return self.render("snapshot.html", {"body": body, "styles": styles, "lang": lang})

    def view_document(
        self,
        body: str,
        title: str,
        heading: str,
        page_styles: str = "",
        style_overrides: str = "",
        generated: Optional[str] = None,
    ) -> str:
        """Single-view export: print stylesheet plus the view's own overrides."""
        return self.render(
            "view.html",
            {
                "body": body,
                "title": title,
                "heading": heading,
                "page_styles": page_styles,
                "style_overrides": style_overrides,
                "generated": generated or _generated_label(),
                "lang": DEFAULT_LANG,
            },
        )

    def report_document(
        self,
        artifacts: Sequence[Artifact],
        title: str,
        heading: str = "Custom Report",
        generated: Optional[str] = None,
    ) -> str:
        """One cover page then one page-broken section per artifact, in order."""
        return self.render(
            "report.html",
            {
                "artifacts": list(artifacts),
                "title": title,
                "heading": heading,
                "generated": generated or _generated_label(),
                "lang": DEFAULT_LANG,
            },
        )


def _generated_label(moment: Optional[datetime] = None) -> str:
    return (moment or datetime.now()).strftime("%Y-%m-%d %H:%M")
