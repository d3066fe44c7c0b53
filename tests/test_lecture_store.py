import logging
import shutil

import pytest

from lecture_processor.errors import NotFoundError, QueryError, StoreError
from lecture_processor.server.lecture_store import DEFAULT_TITLE, LectureStore
from lecture_processor.server.models import CreatedEvent, ProcessingStatus, SummaryResult, TranscriptionResult


def test_create_lecture_stores_record_and_recording(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture("lecture audio", title="Sorting")

    record = store.get_lecture(lecture_id)
    assert record["title"] == "Sorting"
    assert record["file_path"] == f"{lecture_id}/recording.mp3"
    assert record["file_size"] == len("lecture audio")
    assert store.download(record["file_path"]) == b"lecture audio"

    item = store.get_item(lecture_id)
    assert item.source_ref == record["file_path"]
    assert item.status == ProcessingStatus.PENDING


def test_create_lecture_defaults_title(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture()
    assert store.get_lecture(lecture_id)["title"] == DEFAULT_TITLE


def test_created_events_reach_open_subscriptions(store: LectureStore, make_lecture) -> None:
    subscription = store.subscribe_created()
    first = make_lecture("one")
    second = make_lecture("two")
    subscription.close()
    make_lecture("after close")

    assert list(subscription) == [CreatedEvent(id=first), CreatedEvent(id=second)]


def test_subscription_cannot_be_restarted(store: LectureStore) -> None:
    subscription = store.subscribe_created()
    subscription.close()
    assert list(subscription) == []

    with pytest.raises(RuntimeError):
        iter(subscription)


def test_closing_subscription_unsubscribes(store: LectureStore) -> None:
    subscription = store.subscribe_created()
    subscription.close()
    subscription.close()

    assert subscription.closed
    assert store._subscribers == []


def test_list_items_missing_transcript(store: LectureStore, make_lecture) -> None:
    first = make_lecture("first")
    second = make_lecture("second")
    third = make_lecture("third")
    store.save_transcript(second, TranscriptionResult(text="second"))

    pending = store.list_items_missing_transcript()

    assert [item.id for item in pending] == [first, third]
    assert pending[0].artifact_locator == f"{first}/recording.mp3"


def test_list_items_missing_transcript_raises_query_error(store: LectureStore, make_lecture) -> None:
    make_lecture()
    shutil.rmtree(store.data_dir / "lectures")

    with pytest.raises(QueryError):
        store.list_items_missing_transcript()


def test_get_item_and_download_not_found(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture()

    with pytest.raises(NotFoundError):
        store.get_item("missing")
    with pytest.raises(NotFoundError):
        store.download(f"{lecture_id}/other.mp3")
    with pytest.raises(NotFoundError):
        store.download("../lectures/" + lecture_id + ".json")


def test_results_are_created_once(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture()

    transcript_id = store.save_transcript(lecture_id, TranscriptionResult(text="hi", language="en", confidence_score=0.9))
    with pytest.raises(StoreError):
        store.save_transcript(lecture_id, TranscriptionResult(text="again"))

    store.save_summary(transcript_id, SummaryResult(summary_text="greeting", key_points=["hi"]))
    with pytest.raises(StoreError):
        store.save_summary(transcript_id, SummaryResult(summary_text="again"))


def test_results_require_existing_parent(store: LectureStore) -> None:
    with pytest.raises(StoreError):
        store.save_transcript("missing", TranscriptionResult(text="hi"))
    with pytest.raises(StoreError):
        store.save_summary("missing", SummaryResult(summary_text="hi"))


def test_status_store(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture()

    with pytest.raises(NotFoundError):
        store.get_status(lecture_id)

    store.upsert_status(lecture_id, ProcessingStatus.ERROR, "rate limited")
    record = store.get_status(lecture_id)
    assert record.status == ProcessingStatus.ERROR
    assert record.error_detail == "rate limited"

    store.upsert_status(lecture_id, ProcessingStatus.COMPLETED, "ignored")
    record = store.get_status(lecture_id)
    assert record.status == ProcessingStatus.COMPLETED
    assert record.error_detail is None


def test_lecture_detail_and_listing(store: LectureStore, make_lecture) -> None:
    done = make_lecture("done", title="Done")
    waiting = make_lecture("waiting", title="Waiting")
    transcript_id = store.save_transcript(done, TranscriptionResult(text="hello world", language="en", confidence_score=0.8))
    store.save_summary(transcript_id, SummaryResult(summary_text="greeting", key_points=["hello", "world"]))
    store.upsert_status(done, ProcessingStatus.COMPLETED)

    detail = store.get_lecture_detail(done)
    assert detail["title"] == "Done"
    assert detail["status"] == "completed"
    assert detail["transcript"] == "hello world"
    assert detail["confidence"] == 0.8
    assert detail["summary"] == "greeting"
    assert detail["key_points"] == ["hello", "world"]

    pending_detail = store.get_lecture_detail(waiting)
    assert pending_detail["status"] == "pending"
    assert pending_detail["summary"] is None
    assert store.get_lecture_detail("missing") is None

    lectures = store.list_lectures()
    assert [lecture["id"] for lecture in lectures] == [waiting, done]
    assert [lecture["id"] for lecture in store.list_lectures(status_filter="completed")] == [done]
    assert len(store.list_lectures(limit=1)) == 1


def test_corrupt_record_is_skipped_by_scan_and_reads(store: LectureStore, make_lecture, caplog) -> None:
    done = make_lecture("done")
    waiting = make_lecture("waiting")
    transcript_id = store.save_transcript(done, TranscriptionResult(text="hello world"))
    store.save_summary(transcript_id, SummaryResult(summary_text="greeting", key_points=["hello"]))
    (store.data_dir / "transcriptions" / "half.json").write_text("{", encoding="utf-8")
    (store.data_dir / "summaries" / "half.json").write_text("{", encoding="utf-8")

    with caplog.at_level(logging.WARNING):
        assert [item.id for item in store.list_items_missing_transcript()] == [waiting]
    assert "half.json" in caplog.text

    assert store.get_lecture_detail(done)["summary"] == "greeting"
    assert store.get_lecture_detail(waiting)["transcript"] == ""
    assert {lecture["id"] for lecture in store.list_lectures()} == {done, waiting}


def test_records_are_written_without_leftover_temp_files(store: LectureStore, make_lecture) -> None:
    lecture_id = make_lecture()
    store.upsert_status(lecture_id, ProcessingStatus.PROCESSING)
    store.upsert_status(lecture_id, ProcessingStatus.COMPLETED)

    status_dir = store.data_dir / "processing_status"
    assert [path.name for path in status_dir.iterdir()] == [f"{lecture_id}.json"]
    assert store.get_status(lecture_id).status == ProcessingStatus.COMPLETED
