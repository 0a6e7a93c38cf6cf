import itertools
import logging
import time
from dataclasses import replace
from typing import Dict, Iterator, Optional, Tuple

from .config import MAX_ARTIFACTS
from .context import Artifact
from .errors import RegistryFull

logger = logging.getLogger(__name__)


class ReportStore:
    """
    Session-scoped registry of captured artifacts, keyed by ``unique_key``.

    Iteration order is insertion order and doubles as the page order of the
    assembled report. Every mutator is synchronous so a cooperative task
    can never observe a half-applied change. One store is created per
    session and handed to whichever component needs it.
    """

    def __init__(self, max_artifacts: int = MAX_ARTIFACTS):
        self.max_artifacts = max_artifacts
        self._items: Dict[str, Artifact] = {}
        self._sequence = itertools.count()

    def insert(self, artifact: Artifact) -> bool:
        """
        Append ``artifact`` unless its key is already registered.
        Returns False (and leaves the store untouched) for duplicates.
        """
        if artifact.unique_key in self._items:
            logger.debug("Rejected duplicate artifact %s", artifact.unique_key)
            return False
        if len(self._items) >= self.max_artifacts:
            raise RegistryFull(
                f"Registry holds {len(self._items)} artifacts (limit {self.max_artifacts})."
            )
        stamped = replace(artifact, sequence=next(self._sequence), inserted_at=time.time())
        self._items[stamped.unique_key] = stamped
        logger.debug("Registered artifact %s (%s)", stamped.unique_key, stamped.view_name)
        return True

    def list(self) -> Tuple[Artifact, ...]:
        return tuple(self._items.values())

    def get(self, unique_key: str) -> Optional[Artifact]:
        return self._items.get(unique_key)

    def remove(self, unique_key: str) -> None:
        if self._items.pop(unique_key, None) is not None:
            logger.debug("Removed artifact %s", unique_key)

    def clear(self) -> None:
        self._items.clear()
        logger.debug("Cleared report store")

    def annotate(self, unique_key: str, notes: str) -> bool:
        """Replace the notes of a registered artifact; payload and position stay."""
        current = self._items.get(unique_key)
        if current is None:
            return False
        self._items[unique_key] = replace(current, notes=notes or "")
        logger.debug("Annotated artifact %s", unique_key)
        return True

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, unique_key: object) -> bool:
        return unique_key in self._items

    def __iter__(self) -> Iterator[Artifact]:
        return iter(self.list())
