"""
Remote rendering service: loads a self-contained HTML document in WeasyPrint
and answers with PDF bytes. Failures answer JSON with ``useClientFallback``
so callers switch to their local renderer without retrying.

Run with ``python -m report_assembly.service``.
"""
import logging
import os
import time
from pathlib import Path

from fastapi import FastAPI
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from .config import PDF_CONTENT_TYPE
from .download import slugify
from .logging_conf import configure_logging

logger = logging.getLogger(__name__)

SERVICE_VERSION = "1.0-weasyprint"


class RendererUnavailable(RuntimeError):
    pass


class RenderBody(BaseModel):
    html: str = ""
    title: str = "dashboard"


GTK_RUNTIME = Path(r"C:\Program Files\GTK3-Runtime Win64")


def _inject_windows_gtk(root: Path = GTK_RUNTIME) -> None:
    """WeasyPrint loads Pango and Cairo from the GTK runtime; expose it on Windows."""
    if os.name != "nt":
        return
    for folder in (root / "bin", root / "lib"):
        if not folder.exists():
            continue
        os.add_dll_directory(str(folder))
        os.environ["PATH"] = os.pathsep.join([str(folder), os.environ.get("PATH", "")])


def html_to_pdf_bytes(html: str) -> bytes:
    """Convert HTML to PDF with WeasyPrint; raises RendererUnavailable without it."""
    _inject_windows_gtk()
    try:
        from weasyprint import HTML
    except (ImportError, OSError) as exc:
        raise RendererUnavailable(f"weasyprint is not usable: {exc}") from exc
    return HTML(string=html).write_pdf()


def _failure(status: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        {
            "error": error,
            "message": message,
            "useClientFallback": True,
            "version": SERVICE_VERSION,
        },
        status_code=status,
    )


app = FastAPI(title="Report render service")


@app.get("/health")
def health():
    return {"status": "ok", "service": "report-render", "version": SERVICE_VERSION}


@app.post("/generate-pdf")
def generate_pdf(body: RenderBody):
    if not body.html.strip():
        return JSONResponse({"error": "HTML content is required"}, status_code=400)

    started = time.perf_counter()
    try:
        pdf = html_to_pdf_bytes(body.html)
    except RendererUnavailable as exc:
        logger.warning("Renderer unavailable: %s", exc)
        return _failure(503, "Renderer not available", str(exc))
    except Exception as exc:
        logger.error("PDF generation failed for %s", body.title, exc_info=True)
        return _failure(500, "PDF generation failed", str(exc))

    filename = f"{slugify(body.title, 'dashboard')}-{int(time.time() * 1000)}.pdf"
    logger.info("Rendered %s (%d bytes) in %.2fs", filename, len(pdf), time.perf_counter() - started)
    return Response(
        content=pdf,
        media_type=PDF_CONTENT_TYPE,
        headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "Cache-Control": "no-store",
        },
    )


def run(host: str = "127.0.0.1", port: int = 8077) -> None:
    import uvicorn

    configure_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run()
