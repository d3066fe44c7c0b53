"""
Audio transcription functionality using OpenAI Whisper.

This module handles speech-to-text transcription of lecture recordings.
Two backends are supported:
- "openai": the hosted Whisper API (default)
- "local": a local Whisper model loaded with the openai-whisper package

Both return a TranscriptionResult with the text, the detected language and a
confidence score derived from the per-segment log probabilities.
"""

import logging
import math
import os
import tempfile
from typing import Any, Iterable, Optional

from ..errors import EngineError
from ..server.models import TranscriptionResult

logger = logging.getLogger(__name__)

BACKENDS = ("openai", "local")

# The hosted API does not always return segments to derive a score from
DEFAULT_API_CONFIDENCE = 0.9


def _field(obj: Any, name: str, default=None):
    """Read a field from either an API response object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def confidence_from_segments(segments: Optional[Iterable[Any]], default: Optional[float] = None) -> Optional[float]:
    """
    Estimate a transcription confidence score from Whisper segments.

    Args:
        segments: Whisper segments carrying an avg_logprob field
        default: Value returned when no segment has a log probability

    Returns:
        Mean per-segment probability clamped to [0, 1], or default
    """
    probabilities = []
    for segment in segments or []:
        avg_logprob = _field(segment, "avg_logprob")
        if avg_logprob is None:
            continue
        probabilities.append(math.exp(avg_logprob))

    if not probabilities:
        return default

    score = sum(probabilities) / len(probabilities)
    return round(min(max(score, 0.0), 1.0), 4)


class AudioTranscriber:
    """
    Handle audio transcription using OpenAI Whisper.

    The client or model is loaded lazily on the first transcription so that
    constructing a transcriber never touches the network or the GPU.
    """

    def __init__(
        self,
        backend: str = "openai",
        model_name: str = "whisper-1",
        language: Optional[str] = "en",
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        """
        Initialize transcriber.

        Args:
            backend: "openai" for the hosted API or "local" for a local Whisper model
            model_name: API model (whisper-1) or local model size (tiny, base, small, medium, large)
            language: Language code for transcription, None to auto-detect
            api_key: OpenAI API key (openai backend only)
            base_url: Optional custom API endpoint (openai backend only)
            client: Preconfigured client or model, mostly for tests
        """
        if backend not in BACKENDS:
            raise ValueError(f"Unsupported transcription backend: {backend}")

        self.backend = backend
        self.model_name = model_name
        self.language = language or None
        self.api_key = api_key
        self.base_url = base_url
        self.client = client

    def load_model(self):
        """Load the API client or the local Whisper model."""
        if self.client is not None:
            return

        if self.backend == "openai":
            from openai import OpenAI

            if self.base_url:
                self.client = OpenAI(api_key=self.api_key, base_url=self.base_url)
            else:
                self.client = OpenAI(api_key=self.api_key)
            logger.info(f"OpenAI transcription client loaded (model: {self.model_name})")
        else:
            import whisper

            self.client = whisper.load_model(self.model_name)
            logger.info(f"Loaded Whisper model: {self.model_name}")

    def transcribe(self, audio_input: bytes, filename: str = "audio.mp3") -> TranscriptionResult:
        """
        Transcribe a recording to text.

        Args:
            audio_input: Raw bytes of the recording
            filename: File name hint used for format detection

        Returns:
            TranscriptionResult with text, language and confidence score

        Raises:
            EngineError: If the backend fails
        """
        if not isinstance(audio_input, (bytes, bytearray)):
            raise EngineError(f"Unsupported audio input type: {type(audio_input)}")

        try:
            self.load_model()
            if self.backend == "openai":
                return self._transcribe_api(bytes(audio_input), filename)
            return self._transcribe_local(bytes(audio_input), filename)
        except EngineError:
            raise
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            raise EngineError(str(e)) from e

    def _transcribe_api(self, audio_bytes: bytes, filename: str) -> TranscriptionResult:
        kwargs = {"file": (filename, audio_bytes), "model": self.model_name, "response_format": "verbose_json"}
        if self.language:
            kwargs["language"] = self.language

        response = self.client.audio.transcriptions.create(**kwargs)

        return TranscriptionResult(
            text=(_field(response, "text") or "").strip(),
            language=_field(response, "language") or self.language,
            confidence_score=confidence_from_segments(_field(response, "segments"), DEFAULT_API_CONFIDENCE),
        )

    def _transcribe_local(self, audio_bytes: bytes, filename: str) -> TranscriptionResult:
        # Whisper decodes through ffmpeg, which needs a file on disk
        suffix = os.path.splitext(filename)[1] or ".mp3"
        with tempfile.NamedTemporaryFile(delete=False, suffix=suffix) as tmp_file:
            tmp_file.write(audio_bytes)
            temp_file_path = tmp_file.name

        try:
            result = self.client.transcribe(temp_file_path, language=self.language)
        finally:
            if os.path.exists(temp_file_path):
                os.unlink(temp_file_path)

        return TranscriptionResult(
            text=result.get("text", "").strip(),
            language=result.get("language") or self.language,
            confidence_score=confidence_from_segments(result.get("segments")),
        )
