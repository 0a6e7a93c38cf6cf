import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


@dataclass
class ExportJob:
    id: str
    key: str
    status: str = "running"
    renderer: Optional[str] = None
    error: Optional[str] = None
    started_at: float = field(default_factory=time.time)
    finished_at: Optional[float] = None


class ExportTracker:
    """
    In-flight flags for exports, one per view or report key.

    ``begin`` is synchronous, so an exporter that calls it before its first
    ``await`` is guaranteed that a second trigger for the same key sees the
    flag and backs off.
    """

    def __init__(self, max_history: int = 50):
        self.max_history = max_history
        self.jobs: Dict[str, ExportJob] = {}
        self._active: Dict[str, str] = {}

    def begin(self, key: str) -> Optional[ExportJob]:
        if key in self._active:
            logger.info("Export for %s already in flight; ignoring trigger", key)
            return None
        job = ExportJob(id=uuid.uuid4().hex[:12], key=key)
        self.jobs[job.id] = job
        self._active[key] = job.id
        self._prune()
        return job

    def complete(self, job: ExportJob, renderer: Optional[str]) -> None:
        job.status = "completed"
        job.renderer = renderer
        self._finish(job)

    def fail(self, job: ExportJob, error: str) -> None:
        job.status = "failed"
        job.error = error
        self._finish(job)

    def _finish(self, job: ExportJob) -> None:
        job.finished_at = time.time()
        if self._active.get(job.key) == job.id:
            del self._active[job.key]

    def _prune(self) -> None:
        # Oldest finished jobs go first; running ones are never dropped.
        running = set(self._active.values())
        for job_id in [j for j in self.jobs if j not in running]:
            if len(self.jobs) <= self.max_history:
                break
            del self.jobs[job_id]

    def is_running(self, key: str) -> bool:
        return key in self._active

    def get(self, job_id: str) -> Optional[ExportJob]:
        return self.jobs.get(job_id)

    def history(self, key: Optional[str] = None) -> List[ExportJob]:
        return [j for j in self.jobs.values() if key is None or j.key == key]
