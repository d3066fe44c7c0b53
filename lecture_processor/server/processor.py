"""
Lecture processing pipeline: transcription followed by summarization.

This module contains the logic for driving one lecture through the stages:
1. Resolve the lecture's recording
2. Transcribe it
3. Persist the transcription
4. Summarize the transcript
5. Persist the summary

Each failing step raises its own error type. Results written by earlier
steps are never rolled back.
"""

import logging
import time
from pathlib import PurePosixPath

from ..errors import PersistenceError, ResolutionError, SummarizationError, TranscriptionError
from .interfaces import ArtifactStore, IngestionSource, ResultStore, SummarizationEngine, TranscriptionEngine
from .models import PipelineOutcome, TranscriptionResult

logger = logging.getLogger(__name__)


class LectureProcessor:
    """Runs a single lecture through the transcribe and summarize stages."""

    def __init__(
        self,
        source: IngestionSource,
        artifacts: ArtifactStore,
        results: ResultStore,
        transcriber: TranscriptionEngine,
        summarizer: SummarizationEngine,
    ):
        """
        Initialize the lecture processor.

        Args:
            source: Lecture catalog used to resolve recordings
            artifacts: Object storage holding the recordings
            results: Persistence for transcriptions and summaries
            transcriber: Speech-to-text engine
            summarizer: Summarization engine
        """
        self.source = source
        self.artifacts = artifacts
        self.results = results
        self.transcriber = transcriber
        self.summarizer = summarizer

    def process(self, item_id: str) -> PipelineOutcome:
        """
        Process a lecture through all stages.

        Args:
            item_id: Lecture identifier

        Returns:
            PipelineOutcome with the ids of the persisted records

        Raises:
            ResolutionError, TranscriptionError, SummarizationError, PersistenceError
        """
        start_time = time.time()
        logger.info(f"Starting processing for lecture {item_id}")

        locator, audio_bytes = self._resolve(item_id)
        transcription = self._transcribe(item_id, locator, audio_bytes)

        try:
            transcript_id = self.results.save_transcript(item_id, transcription)
        except Exception as e:
            raise PersistenceError(str(e)) from e

        summary = self._summarize(item_id, transcription)

        try:
            summary_id = self.results.save_summary(transcript_id, summary)
        except Exception as e:
            raise PersistenceError(str(e)) from e

        processing_time = time.time() - start_time
        logger.info(f"Lecture {item_id} completed in {processing_time:.2f} seconds")

        return PipelineOutcome(
            item_id=item_id, transcript_id=transcript_id, summary_id=summary_id, duration=processing_time
        )

    def _resolve(self, item_id: str):
        """Look up the recording locator and download the recording."""
        try:
            item = self.source.get_item(item_id)
        except Exception as e:
            raise ResolutionError(str(e)) from e

        if not item.source_ref:
            raise ResolutionError(f"No file path found for lecture {item_id}")

        try:
            audio_bytes = self.artifacts.download(item.source_ref)
        except Exception as e:
            raise ResolutionError(str(e)) from e

        return item.source_ref, audio_bytes

    def _transcribe(self, item_id: str, locator: str, audio_bytes: bytes) -> TranscriptionResult:
        logger.info(f"Starting transcription for lecture {item_id}")
        try:
            result = self.transcriber.transcribe(audio_bytes, filename=PurePosixPath(locator).name)
        except Exception as e:
            raise TranscriptionError(str(e)) from e

        logger.info(f"Transcription completed for lecture {item_id} ({len(result.text)} characters)")
        return result

    def _summarize(self, item_id: str, transcription: TranscriptionResult):
        logger.info(f"Starting summarization for lecture {item_id}")
        try:
            summary = self.summarizer.summarize(transcription.text)
        except Exception as e:
            raise SummarizationError(str(e)) from e

        logger.info(f"Summarization completed for lecture {item_id}: {len(summary.key_points)} key points")
        return summary
