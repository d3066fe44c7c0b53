import sys
import time
import uuid
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from lecture_processor.server.lecture_store import LectureStore
from lecture_processor.server.models import SummaryResult, TranscriptionResult
from lecture_processor.server.processing_queue import ProcessingQueue
from lecture_processor.server.processor import LectureProcessor


class FakeTranscriber:
    """Transcribes a recording to its own text content."""

    def __init__(self):
        self.calls = []
        self.failures = {}
        self.on_call = None

    def transcribe(self, audio_input, filename="audio.mp3"):
        content = audio_input.decode("utf-8").strip()
        self.calls.append(content)
        if self.on_call:
            self.on_call(content)
        if content in self.failures:
            raise self.failures[content]
        return TranscriptionResult(text=content, language="en", confidence_score=0.9)


class FakeSummarizer:
    """Summarizes a transcript into its first word plus one key point per word."""

    def __init__(self):
        self.calls = []
        self.failures = {}

    def summarize(self, transcript_text):
        self.calls.append(transcript_text)
        if transcript_text in self.failures:
            raise self.failures[transcript_text]
        return SummaryResult(summary_text=transcript_text.split()[0], key_points=transcript_text.split())


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


@pytest.fixture()
def store(tmp_path: Path) -> LectureStore:
    return LectureStore(str(tmp_path / "data"))


@pytest.fixture()
def make_lecture(store: LectureStore, tmp_path: Path):
    """Create a lecture whose recording holds *content* as UTF-8 text."""

    def _make(content: str = "hello world", title=None) -> str:
        source = tmp_path / f"{uuid.uuid4()}.mp3"
        source.write_text(content, encoding="utf-8")
        return store.create_lecture(title, "recording.mp3", str(source))

    return _make


@pytest.fixture()
def transcriber() -> FakeTranscriber:
    return FakeTranscriber()


@pytest.fixture()
def summarizer() -> FakeSummarizer:
    return FakeSummarizer()


@pytest.fixture()
def processor(store, transcriber, summarizer) -> LectureProcessor:
    return LectureProcessor(store, store, store, transcriber, summarizer)


@pytest.fixture()
def processing_queue(store, processor):
    queue = ProcessingQueue(store, processor, scan_interval=0.05, queue_check_interval=0.05)
    yield queue
    queue.stop()
