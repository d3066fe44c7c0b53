"""Background transcription and summarization of recorded lectures."""

__version__ = "0.1.0"
