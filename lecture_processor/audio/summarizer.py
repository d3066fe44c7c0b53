"""
Lecture summarization functionality using OpenAI API.

This module turns a lecture transcript into a short summary plus an ordered
list of key points using OpenAI's chat completion API in JSON mode.

Important: OpenAI client is initialized only when first needed to prevent
unnecessary API calls and allow for flexible configuration.
"""

import json
import logging
from typing import Any, Optional

from ..errors import EngineError
from ..server.models import SummaryResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an expert at summarizing academic lectures. Create a concise summary and extract key points "
    'from the lecture transcript. Format the response as JSON with "summary" and "keyPoints" fields.'
)


class LectureSummarizer:
    """
    Handle lecture summarization using OpenAI API.

    Uses lazy loading to avoid unnecessary API initialization.
    """

    def __init__(self, api_key: Optional[str], model: str = "gpt-4", base_url: Optional[str] = None, client=None):
        """
        Initialize summarizer with OpenAI API key.

        Args:
            api_key: OpenAI API authentication key
            model: OpenAI model to use (default: "gpt-4")
            base_url: Optional custom OpenAI-compatible endpoint
            client: Preconfigured client, mostly for tests
        """
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.client = client

    def _load_client(self):
        """Lazy load the OpenAI client."""
        if self.client is not None:
            return

        from openai import OpenAI

        if self.base_url:
            self.client = OpenAI(api_key=self.api_key, base_url=self.base_url)
        else:
            self.client = OpenAI(api_key=self.api_key)
        logger.info(f"OpenAI client loaded (model: {self.model})")

    def summarize(self, transcript_text: str) -> SummaryResult:
        """
        Generate a lecture summary from transcript text.

        Args:
            transcript_text: Full transcript text to summarize

        Returns:
            SummaryResult with summary text and key points. An empty transcript
            yields an empty summary without calling the API.

        Raises:
            EngineError: If the API call fails or returns a malformed response
        """
        if not transcript_text or not transcript_text.strip():
            logger.warning("Empty transcript provided, skipping summarization")
            return SummaryResult(summary_text="", key_points=[])

        try:
            self._load_client()
            logger.info(f"Generating summary using {self.model}...")

            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": transcript_text},
                ],
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content
        except Exception as e:
            logger.error(f"Summarization failed: {e}")
            raise EngineError(str(e)) from e

        if not content:
            raise EngineError(f"No summary content received from {self.model}")

        return parse_summary(content)


def parse_summary(content: str) -> SummaryResult:
    """
    Parse the JSON object returned by the model.

    Raises:
        EngineError: If the content is not a JSON object with a string
            "summary" and a list "keyPoints"
    """
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as e:
        raise EngineError(f"Summary response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise EngineError("Summary response is not a JSON object")

    summary = data.get("summary")
    key_points = data.get("keyPoints", [])
    if not isinstance(summary, str):
        raise EngineError('Summary response is missing the "summary" field')
    if not isinstance(key_points, list):
        raise EngineError('Summary response field "keyPoints" is not a list')

    points = [str(point).strip() for point in key_points if point is not None and str(point).strip()]
    return SummaryResult(summary_text=summary.strip(), key_points=points)


def summarize_transcript(transcript_text: str, api_key: str, model: str = "gpt-4") -> SummaryResult:
    """
    Convenience function to summarize a transcript.

    Creates a LectureSummarizer instance and generates a summary in one call.

    Args:
        transcript_text: Full transcript text to summarize
        api_key: OpenAI API authentication key
        model: OpenAI model to use (default: "gpt-4")
    """
    summarizer = LectureSummarizer(api_key=api_key, model=model)
    return summarizer.summarize(transcript_text)
