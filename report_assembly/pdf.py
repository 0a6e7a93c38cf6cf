"""
Two-tier HTML to PDF pipeline.

The remote renderer is always tried first. Only once it has fully resolved
with a failure does the pipeline re-rasterize the original surfaces and tile
them locally (see :mod:`report_assembly.pdf_legacy`). The flow is an explicit
state machine::

    REMOTE --pdf received--------------------------> DONE
    REMOTE --RemoteUnavailable--> FALLBACK --ok----> DONE
                                  FALLBACK --error-> FAILED
"""
import asyncio
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence

from PIL import Image

from .config import PDF_CONTENT_TYPE, REMOTE_ATTEMPTS, REMOTE_TIMEOUT_SECONDS, EngineSettings
from .context import RenderRequest
from .errors import FallbackFailed, RemoteUnavailable
from .pdf_legacy import tile_pdf

logger = logging.getLogger(__name__)

FallbackSource = Callable[[], Awaitable[Sequence[Image.Image]]]


@dataclass(frozen=True)
class RemoteResponse:
    status: int
    content_type: str
    body: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def is_pdf(self) -> bool:
        return PDF_CONTENT_TYPE in (self.content_type or "").lower()

    def error_details(self) -> dict:
        try:
            data = json.loads(self.body.decode("utf-8"))
        except (UnicodeDecodeError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}


Transport = Callable[[str, dict, float], RemoteResponse]


def post_json(url: str, payload: dict, timeout: float) -> RemoteResponse:
    """Blocking JSON POST. HTTP error statuses come back as responses, not exceptions."""
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={
            "Content-Type": "application/json",
            "Accept": f"{PDF_CONTENT_TYPE}, application/json",
            "Cache-Control": "no-cache",
        },
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return RemoteResponse(resp.status, resp.headers.get("Content-Type", ""), resp.read())
    except urllib.error.HTTPError as exc:
        content_type = exc.headers.get("Content-Type", "") if exc.headers else ""
        return RemoteResponse(exc.code, content_type, exc.read() or b"")


class RemoteRenderer:
    """
    Client for the remote rendering service. Any outcome other than a 2xx
    PDF answer raises :class:`RemoteUnavailable`.
    """

    def __init__(
        self,
        url: str,
        timeout: float = REMOTE_TIMEOUT_SECONDS,
        attempts: int = REMOTE_ATTEMPTS,
        transport: Transport = post_json,
    ):
        self.url = url
        self.timeout = timeout
        self.attempts = max(1, attempts)
        self.transport = transport

    async def render(self, request: RenderRequest) -> bytes:
        if not self.url:
            raise RemoteUnavailable("No remote renderer configured.", client_fallback=True)

        last_error: Optional[RemoteUnavailable] = None
        for attempt in range(1, self.attempts + 1):
            try:
                response = await asyncio.wait_for(
                    asyncio.to_thread(self.transport, self.url, request.as_json(), self.timeout),
                    timeout=self.timeout,
                )
            except asyncio.TimeoutError as exc:
                raise RemoteUnavailable(f"Remote renderer timed out after {self.timeout:g}s.") from exc
            except Exception as exc:
                last_error = RemoteUnavailable(f"Remote renderer unreachable: {exc}")
                last_error.__cause__ = exc
                logger.warning("Attempt %s/%s: %s", attempt, self.attempts, last_error)
                continue

            if response.ok and response.is_pdf:
                return response.body

            details = response.error_details()
            message = details.get("message") or details.get("error") or f"HTTP {response.status}"
            last_error = RemoteUnavailable(
                f"Remote renderer answered {response.status} ({response.content_type or 'no content type'}): {message}",
                status=response.status,
                client_fallback=bool(details.get("useClientFallback")),
            )
            logger.warning("Attempt %s/%s: %s", attempt, self.attempts, last_error)
            if last_error.client_fallback or 400 <= response.status < 500:
                break
        raise last_error


class RenderState(str, Enum):
    REMOTE = "remote"
    FALLBACK = "fallback"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class Transition:
    source: RenderState
    target: RenderState
    reason: str


@dataclass
class RenderOutcome:
    state: RenderState = RenderState.REMOTE
    pdf: Optional[bytes] = None
    renderer: Optional[str] = None
    error: Optional[FallbackFailed] = None
    transitions: List[Transition] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.state is RenderState.DONE

    def move(self, target: RenderState, reason: str) -> None:
        self.transitions.append(Transition(self.state, target, reason))
        logger.info("Render %s -> %s: %s", self.state.value, target.value, reason)
        self.state = target

    def raise_for_failure(self) -> bytes:
        if self.state is RenderState.FAILED:
            raise self.error or FallbackFailed("Rendering failed.")
        return self.pdf


class RenderPipeline:
    def __init__(self, remote: RemoteRenderer):
        self.remote = remote

    @classmethod
    def from_settings(cls, settings: EngineSettings, transport: Transport = post_json) -> "RenderPipeline":
        return cls(
            RemoteRenderer(
                settings.render_url,
                timeout=settings.remote_timeout,
                attempts=settings.remote_attempts,
                transport=transport,
            )
        )

    async def render(self, request: RenderRequest, fallback_source: FallbackSource) -> RenderOutcome:
        outcome = RenderOutcome()
        while outcome.state not in (RenderState.DONE, RenderState.FAILED):
            if outcome.state is RenderState.REMOTE:
                await self._remote_step(request, outcome)
            else:
                await self._fallback_step(request, fallback_source, outcome)
        return outcome

    async def _remote_step(self, request: RenderRequest, outcome: RenderOutcome) -> None:
        try:
            outcome.pdf = await self.remote.render(request)
        except RemoteUnavailable as exc:
            outcome.move(RenderState.FALLBACK, str(exc))
            return
        outcome.renderer = "remote"
        outcome.move(RenderState.DONE, "remote PDF received")

    async def _fallback_step(
        self,
        request: RenderRequest,
        fallback_source: FallbackSource,
        outcome: RenderOutcome,
    ) -> None:
        generated = datetime.now().strftime("%Y-%m-%d %H:%M")
        try:
            sections = await fallback_source()
            outcome.pdf = await asyncio.to_thread(tile_pdf, list(sections), request.title, generated)
        except Exception as exc:
            logger.error("Local fallback failed for %s", request.title, exc_info=True)
            failure = FallbackFailed(f"Local fallback failed: {exc}")
            failure.__cause__ = exc
            outcome.error = failure
            outcome.move(RenderState.FAILED, str(exc))
            return
        outcome.renderer = "local"
        outcome.move(RenderState.DONE, "local PDF assembled")
