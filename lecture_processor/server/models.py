"""
Data models for the lecture processing server.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class ProcessingStatus(Enum):
    """Lifecycle status of a lecture in the processing pipeline."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingStatus.COMPLETED, ProcessingStatus.ERROR)


@dataclass
class WorkItem:
    """A recorded lecture awaiting or undergoing processing."""

    id: str
    source_ref: Optional[str]
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_detail: Optional[str] = None


@dataclass
class QueueEntry:
    """In-memory queue projection of a work item, owned by the processing queue."""

    id: str
    status: ProcessingStatus = ProcessingStatus.PENDING
    error_detail: Optional[str] = None
    discovered_via: str = "scan"
    discovered_at: datetime = field(default_factory=datetime.now)

    def to_dict(self):
        return {
            "id": self.id,
            "status": self.status.value,
            "error": self.error_detail,
            "discovered_via": self.discovered_via,
            "discovered_at": self.discovered_at.isoformat(),
        }


@dataclass
class PendingItem:
    """A catalog row returned by a discovery scan."""

    id: str
    artifact_locator: Optional[str]


@dataclass(frozen=True)
class CreatedEvent:
    """Change-feed notification that a lecture was created."""

    id: str


@dataclass
class TranscriptionResult:
    """Output of the transcription stage."""

    text: str
    language: Optional[str] = None
    confidence_score: Optional[float] = None


@dataclass
class SummaryResult:
    """Output of the summarization stage."""

    summary_text: str
    key_points: List[str] = field(default_factory=list)


@dataclass
class StatusRecord:
    """Persisted processing status for one lecture."""

    id: str
    status: ProcessingStatus
    error_detail: Optional[str] = None
    updated_at: Optional[str] = None

    def to_dict(self):
        return {
            "lecture_id": self.id,
            "status": self.status.value,
            "error_message": self.error_detail,
            "updated_at": self.updated_at,
        }


@dataclass
class PipelineOutcome:
    """Identifiers written by one successful pipeline run."""

    item_id: str
    transcript_id: str
    summary_id: str
    duration: float = 0.0
