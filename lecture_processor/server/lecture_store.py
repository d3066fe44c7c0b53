"""
Filesystem-based storage for lectures and their processing results.

This module stores every record as a JSON file in a per-table directory:
- lectures/            the lecture catalog (one record per recording)
- recordings/          raw audio, addressed by a relative locator
- transcriptions/      one transcription per lecture
- summaries/           one summary per transcription
- processing_status/   durable status record per lecture

It also provides the created-lecture change feed consumed by the
processing queue.
"""

import json
import logging
import os
import shutil
import threading
import uuid
from datetime import datetime
from pathlib import Path
from queue import Queue
from typing import Any, Callable, Dict, Iterator, List, Optional

from ..errors import NotFoundError, QueryError, StoreError
from .models import (
    CreatedEvent,
    PendingItem,
    ProcessingStatus,
    StatusRecord,
    SummaryResult,
    TranscriptionResult,
    WorkItem,
)

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "New Recording"


class ChangeSubscription:
    """
    Blocking iterator over created-lecture notifications.

    Iteration waits for new events until close() is called. A subscription
    can only be iterated once.
    """

    _CLOSED = object()

    def __init__(self, on_close: Optional[Callable[["ChangeSubscription"], None]] = None):
        self._events: Queue = Queue()
        self._on_close = on_close
        self._closed = False
        self._started = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: CreatedEvent) -> None:
        if not self._closed:
            self._events.put(event)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._on_close:
            self._on_close(self)
        self._events.put(self._CLOSED)

    def __iter__(self) -> Iterator[CreatedEvent]:
        if self._started:
            raise RuntimeError("Change subscription cannot be restarted")
        self._started = True
        return self._iterate()

    def _iterate(self) -> Iterator[CreatedEvent]:
        while True:
            event = self._events.get()
            if event is self._CLOSED:
                return
            yield event


class LectureStore:
    """Manages lectures, recordings, results and processing status on disk."""

    def __init__(self, data_dir: str = "lecture_data"):
        """
        Initialize the lecture store.

        Args:
            data_dir: Directory holding all tables and recordings
        """
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # Directory names for the different tables
        self.TABLES = {
            "lectures": "lectures",
            "recordings": "recordings",
            "transcriptions": "transcriptions",
            "summaries": "summaries",
            "status": "processing_status",
        }
        for name in self.TABLES.values():
            (self.data_dir / name).mkdir(exist_ok=True)

        self._lock = threading.RLock()
        self._subscribers: List[ChangeSubscription] = []

    # Catalog

    def create_lecture(
        self,
        title: Optional[str],
        original_filename: str,
        audio_file_path: str,
        duration: Optional[float] = None,
    ) -> str:
        """
        Register a new lecture and store its recording.

        Publishes a CreatedEvent to every open subscription.

        Args:
            title: Display title of the lecture
            original_filename: Sanitized name of the uploaded file
            audio_file_path: Path to the recording to copy into storage
            duration: Recording length in seconds, if known

        Returns:
            Lecture ID (UUID string)
        """
        lecture_id = str(uuid.uuid4())
        recording_dir = self._table_dir("recordings") / lecture_id
        recording_dir.mkdir(exist_ok=True)

        target_path = recording_dir / original_filename
        shutil.copy2(audio_file_path, target_path)

        record = {
            "id": lecture_id,
            "title": title or DEFAULT_TITLE,
            "original_filename": original_filename,
            "file_path": f"{lecture_id}/{original_filename}",
            "file_size": target_path.stat().st_size,
            "duration": duration,
            "created_at": datetime.now().isoformat(),
        }
        with self._lock:
            self._save_record("lectures", lecture_id, record)

        logger.info(f"Lecture {lecture_id} created from {original_filename}")
        self._publish(CreatedEvent(id=lecture_id))
        return lecture_id

    def get_lecture(self, lecture_id: str) -> Optional[Dict[str, Any]]:
        """Get the raw lecture record."""
        return self._load_record("lectures", lecture_id)

    def get_item(self, item_id: str) -> WorkItem:
        """
        Get a lecture as a work item.

        Raises:
            NotFoundError: If the lecture does not exist
        """
        record = self.get_lecture(item_id)
        if record is None:
            raise NotFoundError(f"Lecture {item_id} not found")

        item = WorkItem(id=item_id, source_ref=record.get("file_path"))
        status = self._load_record("status", item_id)
        if status:
            item.status = ProcessingStatus(status["status"])
            item.error_detail = status.get("error_message")
        return item

    def list_items_missing_transcript(self) -> List[PendingItem]:
        """
        List lectures that have no transcription yet, oldest first.

        Raises:
            QueryError: If the catalog cannot be read
        """
        try:
            transcribed = {record["lecture_id"] for record in self._iter_records("transcriptions")}
            lectures = [record for record in self._iter_records("lectures") if record["id"] not in transcribed]
        except (OSError, ValueError, KeyError) as e:
            raise QueryError(f"Failed to query lectures: {e}") from e

        lectures.sort(key=lambda x: x.get("created_at", ""))
        return [PendingItem(id=record["id"], artifact_locator=record.get("file_path")) for record in lectures]

    def list_lectures(self, status_filter: Optional[str] = None, limit: int = 100) -> List[Dict[str, Any]]:
        """
        List lectures with their processing status.

        Args:
            status_filter: Filter by status (pending, processing, completed, error)
            limit: Maximum number of lectures to return

        Returns:
            List of lecture records, newest first
        """
        lectures = []
        for record in self._iter_records("lectures"):
            status = self._load_record("status", record["id"]) or {}
            record["status"] = status.get("status", ProcessingStatus.PENDING.value)
            record["error"] = status.get("error_message")

            if status_filter and record["status"] != status_filter:
                continue
            lectures.append(record)

        lectures.sort(key=lambda x: x.get("created_at", ""), reverse=True)
        return lectures[:limit]

    def get_lecture_detail(self, lecture_id: str) -> Optional[Dict[str, Any]]:
        """
        Get everything known about a lecture.

        Returns:
            Dictionary with lecture metadata, status, transcript and summary,
            or None if the lecture does not exist
        """
        lecture = self.get_lecture(lecture_id)
        if lecture is None:
            return None

        status = self._load_record("status", lecture_id) or {}
        result = {
            "lecture_id": lecture_id,
            "title": lecture.get("title"),
            "metadata": lecture,
            "status": status.get("status", ProcessingStatus.PENDING.value),
            "error": status.get("error_message"),
            "transcript": "",
            "language": None,
            "confidence": None,
            "summary": None,
            "key_points": [],
        }

        transcription = self.get_transcription(lecture_id)
        if transcription:
            result["transcript"] = transcription.get("content", "")
            result["language"] = transcription.get("language")
            result["confidence"] = transcription.get("confidence")

            summary = self.get_summary(transcription["id"])
            if summary:
                result["summary"] = summary.get("content")
                result["key_points"] = summary.get("key_points", [])

        return result

    # Object storage

    def download(self, locator: str) -> bytes:
        """
        Read a stored recording.

        Args:
            locator: Path of the recording relative to the recordings directory

        Raises:
            NotFoundError: If the locator does not point at a stored recording
        """
        root = self._table_dir("recordings").resolve()
        path = (root / locator).resolve()
        if not path.is_relative_to(root) or not path.is_file():
            raise NotFoundError(f"Recording not found: {locator}")

        return path.read_bytes()

    # Results

    def save_transcript(self, item_id: str, result: TranscriptionResult) -> str:
        """
        Save the transcription for a lecture.

        Returns:
            Transcription ID

        Raises:
            StoreError: If the lecture is unknown or already has a transcription
        """
        with self._lock:
            if self.get_lecture(item_id) is None:
                raise StoreError(f"Lecture {item_id} does not exist")
            if self.get_transcription(item_id) is not None:
                raise StoreError(f"Transcription already exists for lecture {item_id}")

            transcript_id = str(uuid.uuid4())
            record = {
                "id": transcript_id,
                "lecture_id": item_id,
                "content": result.text,
                "language": result.language,
                "confidence": result.confidence_score,
                "created_at": datetime.now().isoformat(),
            }
            self._save_record("transcriptions", transcript_id, record)

        return transcript_id

    def save_summary(self, transcript_id: str, result: SummaryResult) -> str:
        """
        Save the summary for a transcription.

        Returns:
            Summary ID

        Raises:
            StoreError: If the transcription is unknown or already summarized
        """
        with self._lock:
            if self._load_record("transcriptions", transcript_id) is None:
                raise StoreError(f"Transcription {transcript_id} does not exist")
            if self.get_summary(transcript_id) is not None:
                raise StoreError(f"Summary already exists for transcription {transcript_id}")

            summary_id = str(uuid.uuid4())
            record = {
                "id": summary_id,
                "transcription_id": transcript_id,
                "content": result.summary_text,
                "key_points": list(result.key_points),
                "created_at": datetime.now().isoformat(),
            }
            self._save_record("summaries", summary_id, record)

        return summary_id

    def get_transcription(self, lecture_id: str) -> Optional[Dict[str, Any]]:
        """Get the transcription record of a lecture."""
        for record in self._iter_records("transcriptions"):
            if record.get("lecture_id") == lecture_id:
                return record
        return None

    def get_summary(self, transcript_id: str) -> Optional[Dict[str, Any]]:
        """Get the summary record of a transcription."""
        for record in self._iter_records("summaries"):
            if record.get("transcription_id") == transcript_id:
                return record
        return None

    # Status store

    def upsert_status(
        self, item_id: str, status: ProcessingStatus, error_detail: Optional[str] = None
    ) -> StatusRecord:
        """
        Create or replace the processing status of a lecture.

        The error message is only kept for the error status.
        """
        record = {
            "lecture_id": item_id,
            "status": status.value,
            "error_message": error_detail if status == ProcessingStatus.ERROR else None,
            "updated_at": datetime.now().isoformat(),
        }
        with self._lock:
            self._save_record("status", item_id, record)

        return StatusRecord(
            id=item_id, status=status, error_detail=record["error_message"], updated_at=record["updated_at"]
        )

    def get_status(self, item_id: str) -> StatusRecord:
        """
        Get the processing status of a lecture.

        Raises:
            NotFoundError: If no status was recorded yet
        """
        record = self._load_record("status", item_id)
        if record is None:
            raise NotFoundError(f"No processing status for lecture {item_id}")

        return StatusRecord(
            id=item_id,
            status=ProcessingStatus(record["status"]),
            error_detail=record.get("error_message"),
            updated_at=record.get("updated_at"),
        )

    # Change feed

    def subscribe_created(self) -> ChangeSubscription:
        """Subscribe to notifications for newly created lectures."""
        subscription = ChangeSubscription(on_close=self._unsubscribe)
        with self._lock:
            self._subscribers.append(subscription)
        return subscription

    def _unsubscribe(self, subscription: ChangeSubscription) -> None:
        with self._lock:
            if subscription in self._subscribers:
                self._subscribers.remove(subscription)

    def _publish(self, event: CreatedEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for subscription in subscribers:
            subscription.publish(event)

    # Files

    def _table_dir(self, table: str) -> Path:
        return self.data_dir / self.TABLES[table]

    def _iter_records(self, table: str) -> Iterator[Dict[str, Any]]:
        """Yield every readable JSON record of a table, skipping corrupt files."""
        for path in sorted(self._table_dir(table).iterdir()):
            if path.suffix != ".json":
                continue
            try:
                with open(path, "r", encoding="utf-8") as f:
                    record = json.load(f)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable {table} record {path.name}: {e}")
                continue
            yield record

    def _save_record(self, table: str, record_id: str, data: Dict[str, Any]) -> None:
        """Save a record as JSON, replacing any previous version atomically."""
        file_path = self._table_dir(table) / f"{record_id}.json"
        tmp_path = file_path.with_name(f"{file_path.name}.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise StoreError(f"Failed to write {table} record {record_id}: {e}") from e

    def _load_record(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        """Load a record, or None if it is missing or unreadable."""
        file_path = self._table_dir(table) / f"{record_id}.json"
        if not file_path.exists():
            return None

        try:
            with open(file_path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return None
