"""In-memory tracking of per-repository indexing status."""

import threading
from typing import Optional

from ..models.status import IndexingStatus, IndexStatus


class IndexStatusTracker:
    """Lock-guarded map of repository id to its latest status snapshot.

    Records are replaced whole, never mutated in place.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, IndexStatus] = {}
        self._lock = threading.Lock()

    def get(self, repository_id: str) -> Optional[IndexStatus]:
        with self._lock:
            return self._statuses.get(repository_id)

    def set(self, repository_id: str, status: IndexStatus) -> None:
        with self._lock:
            self._statuses[repository_id] = status

    def remove(self, repository_id: str) -> None:
        with self._lock:
            self._statuses.pop(repository_id, None)

    def try_begin(self, repository_id: str, status: IndexStatus) -> Optional[IndexStatus]:
        """Record a new in-progress run unless one is already active.

        Returns:
            The active status if a run is in progress (nothing is changed),
            otherwise None after storing `status`.
        """
        with self._lock:
            current = self._statuses.get(repository_id)
            if current is not None and current.status == IndexingStatus.IN_PROGRESS:
                return current
            self._statuses[repository_id] = status
            return None
