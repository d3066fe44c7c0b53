"""
Error hierarchy for lecture processing.

All project exceptions inherit from ProcessingError so callers can catch
everything at a run boundary while deeper code catches specific failures.

Hierarchy:
    ProcessingError
    ├── QueryError              discovery scan failed (retried on next scan)
    ├── NotFoundError           referenced record or artifact is missing
    ├── ResolutionError         lecture or its recording could not be resolved
    ├── EngineError             transcription or summarization engine failed
    │   ├── TranscriptionError
    │   └── SummarizationError
    └── StoreError              writing results or status failed
        └── PersistenceError
"""


class ProcessingError(Exception):
    """Base class for all lecture processing errors."""


class QueryError(ProcessingError):
    """Raised when the lecture catalog cannot be queried."""


class NotFoundError(ProcessingError):
    """Raised when a lecture, record or recording does not exist."""


class ResolutionError(ProcessingError):
    """Raised when a lecture or its recording locator cannot be resolved."""


class EngineError(ProcessingError):
    """Raised when an external AI engine call fails."""


class TranscriptionError(EngineError):
    """Raised when the transcription stage fails."""


class SummarizationError(EngineError):
    """Raised when the summarization stage fails."""


class StoreError(ProcessingError):
    """Raised when a record cannot be written."""


class PersistenceError(StoreError):
    """Raised when a pipeline result cannot be persisted."""


__all__ = [
    "ProcessingError",
    "QueryError",
    "NotFoundError",
    "ResolutionError",
    "EngineError",
    "TranscriptionError",
    "SummarizationError",
    "StoreError",
    "PersistenceError",
]
