"""
Speech-to-text and summarization engines for lecture recordings.

Main components:
- AudioTranscriber: Speech-to-text using the OpenAI Whisper API or a local Whisper model
- LectureSummarizer: Summary and key points using OpenAI chat completions

Example usage:
    from lecture_processor.audio import AudioTranscriber, LectureSummarizer

    transcriber = AudioTranscriber(api_key=key)
    transcription = transcriber.transcribe(audio_bytes)

    summarizer = LectureSummarizer(api_key=key)
    summary = summarizer.summarize(transcription.text)
"""

from .summarizer import LectureSummarizer, parse_summary, summarize_transcript
from .transcription import AudioTranscriber, confidence_from_segments

__all__ = [
    "AudioTranscriber",
    "confidence_from_segments",
    "LectureSummarizer",
    "parse_summary",
    "summarize_transcript",
]
