"""
Protocols describing the collaborators of the processing queue.

The queue and the pipeline only depend on these contracts. LectureStore
implements the storage side; AudioTranscriber and LectureSummarizer
implement the engines.
"""

from typing import Iterator, List, Optional, Protocol

from .models import CreatedEvent, PendingItem, ProcessingStatus, StatusRecord, SummaryResult, TranscriptionResult, WorkItem


class ChangeFeed(Protocol):
    """A lazy, infinite stream of created-lecture notifications."""

    def __iter__(self) -> Iterator[CreatedEvent]:
        ...

    def close(self) -> None:
        """Unsubscribe and end iteration."""


class IngestionSource(Protocol):
    """Catalog of recorded lectures plus its change feed."""

    def list_items_missing_transcript(self) -> List[PendingItem]:
        """Return lectures without a transcription. Raises QueryError."""

    def get_item(self, item_id: str) -> WorkItem:
        """Return a lecture. Raises NotFoundError."""

    def subscribe_created(self) -> ChangeFeed:
        """Subscribe to created-lecture notifications."""


class ArtifactStore(Protocol):
    """Object storage holding raw recordings."""

    def download(self, locator: str) -> bytes:
        """Return the recording bytes. Raises NotFoundError."""


class TranscriptionEngine(Protocol):
    """Protocol describing a speech-to-text backend."""

    def transcribe(self, audio_input: bytes, filename: str = "audio.mp3") -> TranscriptionResult:
        """Transcribe *audio_input*; *filename* hints the format. Raises EngineError."""


class SummarizationEngine(Protocol):
    """Protocol describing a summarization backend."""

    def summarize(self, transcript_text: str) -> SummaryResult:
        """Summarize *transcript_text*. Raises EngineError."""


class StatusStore(Protocol):
    """Durable per-lecture processing status."""

    def upsert_status(
        self, item_id: str, status: ProcessingStatus, error_detail: Optional[str] = None
    ) -> StatusRecord:
        """Create or replace the status record. Raises StoreError."""

    def get_status(self, item_id: str) -> StatusRecord:
        """Return the status record. Raises NotFoundError."""


class ResultStore(Protocol):
    """Persistence for pipeline results."""

    def save_transcript(self, item_id: str, result: TranscriptionResult) -> str:
        """Persist a transcription and return its id. Raises StoreError."""

    def save_summary(self, transcript_id: str, result: SummaryResult) -> str:
        """Persist a summary and return its id. Raises StoreError."""
