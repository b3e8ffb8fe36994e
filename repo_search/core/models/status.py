"""Indexing status models."""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class IndexingStatus(Enum):
    """Lifecycle of a repository indexing run."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"
    REFRESHING = "refreshing"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class IndexStatus:
    """Snapshot of a repository's indexing state.

    Instances are immutable; progress is reported by replacing the record.
    """
    status: IndexingStatus = IndexingStatus.NOT_STARTED
    documents_indexed: int = 0
    total_documents: int = 0
    last_indexed: Optional[datetime] = None
    estimated_completion: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def progress_percentage(self) -> float:
        if self.total_documents <= 0:
            return 0.0
        return self.documents_indexed / self.total_documents * 100

    @classmethod
    def error(cls, message: str) -> "IndexStatus":
        return cls(status=IndexingStatus.ERROR, error_message=message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "documents_indexed": self.documents_indexed,
            "total_documents": self.total_documents,
            "progress_percentage": round(self.progress_percentage, 2),
            "last_indexed": self.last_indexed.isoformat() if self.last_indexed else None,
            "estimated_completion": (
                self.estimated_completion.isoformat() if self.estimated_completion else None
            ),
            "error_message": self.error_message,
        }
