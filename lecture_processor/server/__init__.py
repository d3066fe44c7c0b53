"""
Lecture processing server package.

This package provides the background processing queue that transcribes and
summarizes uploaded lectures one at a time, the filesystem store it works
against, and a Flask API server (lecture_processor.server.app).
"""

from .lecture_store import ChangeSubscription, LectureStore
from .models import ProcessingStatus, QueueEntry, StatusRecord, SummaryResult, TranscriptionResult, WorkItem
from .processing_queue import ProcessingQueue
from .processor import LectureProcessor

__all__ = [
    "ChangeSubscription",
    "LectureStore",
    "LectureProcessor",
    "ProcessingQueue",
    "ProcessingStatus",
    "QueueEntry",
    "StatusRecord",
    "SummaryResult",
    "TranscriptionResult",
    "WorkItem",
]
