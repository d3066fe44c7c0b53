"""
Queue-based lecture processing coordinator.

This module discovers lectures that still need processing, keeps them in an
ordered in-memory queue and runs them through the pipeline one at a time.

Discovery has two paths:
- a periodic scan of the catalog for lectures without a transcription
- the catalog's created-lecture change feed

A dispatch thread waits for "queue changed" signals and admits the oldest
pending entry whenever nothing is processing. Admission is guarded by a lock
and an explicit active-lecture flag, so at most one entry is ever in the
processing state no matter which thread calls process_pending().
"""

import dataclasses
import logging
import threading
from queue import Empty, Queue
from typing import Any, Dict, List, Optional

from ..errors import QueryError
from .interfaces import IngestionSource, StatusStore
from .models import CreatedEvent, ProcessingStatus, QueueEntry
from .processor import LectureProcessor

logger = logging.getLogger(__name__)


class ProcessingQueue:
    """Discovers lectures and processes them sequentially on a background thread."""

    def __init__(
        self,
        store: IngestionSource,
        processor: LectureProcessor,
        scan_interval: float = 30.0,
        queue_check_interval: float = 1.0,
        status_store: Optional[StatusStore] = None,
        join_timeout: float = 5.0,
    ):
        """
        Initialize the processing queue.

        Args:
            store: Lecture catalog providing scans and the change feed
            processor: Pipeline run for each admitted lecture
            scan_interval: How often to scan the catalog (seconds)
            queue_check_interval: How long the dispatch thread blocks per wait (seconds)
            status_store: Durable status record, defaults to the store itself
            join_timeout: How long stop() waits for each worker thread (seconds)
        """
        self.store = store
        self.status_store = status_store if status_store is not None else store
        self.processor = processor
        self.scan_interval = scan_interval
        self.queue_check_interval = queue_check_interval
        self.join_timeout = join_timeout

        # Queue state, in discovery order
        self._entries: List[QueueEntry] = []
        self._known: Dict[str, QueueEntry] = {}
        self._active_id: Optional[str] = None

        # Threading components
        self._signals: Queue = Queue()
        self._stop_event = threading.Event()
        self._subscription = None
        self._threads: List[threading.Thread] = []
        self.is_running = False

        # Lock for thread safety
        self._lock = threading.Lock()

    def start(self):
        """Subscribe to the change feed and start the worker threads."""
        if self.is_running:
            logger.warning("Processing queue is already running")
            return

        self.is_running = True
        self._stop_event.clear()

        # Subscribe before the first scan so no lecture falls between the two paths
        self._subscription = self.store.subscribe_created()

        self._threads = [
            threading.Thread(target=self._dispatch_worker, name="lecture-dispatch", daemon=True),
            threading.Thread(target=self._event_worker, args=(self._subscription,), name="lecture-events", daemon=True),
            threading.Thread(target=self._scan_worker, name="lecture-scan", daemon=True),
        ]
        for thread in self._threads:
            thread.start()

        logger.info(f"Processing queue started (scan interval {self.scan_interval}s)")

    def stop(self):
        """Unsubscribe and stop the worker threads. A running pipeline is not cancelled."""
        if not self.is_running:
            return

        logger.info("Stopping processing queue...")
        self.is_running = False
        self._stop_event.set()

        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

        # Wake the dispatch thread
        self._signals.put(None)

        for thread in self._threads:
            thread.join(timeout=self.join_timeout)
            if thread.is_alive():
                logger.warning(f"Worker thread {thread.name} did not stop within {self.join_timeout}s")
        self._threads = []

        logger.info("Processing queue stopped")

    def enqueue(self, item_id: str, discovered_via: str = "scan") -> bool:
        """
        Add a lecture to the queue as pending.

        Args:
            item_id: Lecture identifier
            discovered_via: Discovery path, "scan" or "event"

        Returns:
            True if the lecture was enqueued, False if it is already known
        """
        with self._lock:
            if item_id in self._known:
                logger.debug(f"Lecture {item_id} is already queued, ignoring {discovered_via} discovery")
                return False

            entry = QueueEntry(id=item_id, discovered_via=discovered_via)
            self._entries.append(entry)
            self._known[item_id] = entry

        logger.info(f"Lecture {item_id} enqueued via {discovered_via}")
        self._signals.put(item_id)
        return True

    def scan(self) -> int:
        """
        Enqueue every lecture that has no transcription yet.

        Returns:
            Number of newly enqueued lectures. A failed query is logged and
            counts as zero.
        """
        try:
            items = self.store.list_items_missing_transcript()
        except QueryError as e:
            logger.error(f"Error fetching pending lectures: {e}")
            return 0

        added = sum(1 for item in items if self.enqueue(item.id, "scan"))
        if added:
            logger.info(f"Scan found {added} new lecture(s)")
        return added

    def handle_created(self, event: CreatedEvent) -> bool:
        """Enqueue a lecture announced by the change feed."""
        return self.enqueue(event.id, "event")

    def process_pending(self) -> int:
        """
        Process pending lectures one at a time until none is left.

        Returns immediately if another thread holds the admission. Once the
        queue is stopped no further lecture is admitted.

        Returns:
            Number of lectures settled by this call
        """
        settled = 0
        while not self._stop_event.is_set():
            item_id = self._admit_next()
            if item_id is None:
                return settled

            self._run(item_id)
            settled += 1

        return settled

    def get_entry(self, item_id: str) -> Optional[QueueEntry]:
        """Get a copy of the queue entry for a lecture."""
        with self._lock:
            entry = self._known.get(item_id)
            return dataclasses.replace(entry) if entry else None

    def get_entries(self) -> List[QueueEntry]:
        """Get copies of all queue entries in discovery order."""
        with self._lock:
            return [dataclasses.replace(entry) for entry in self._entries]

    def get_queue_status(self) -> Dict[str, Any]:
        """Get status information about the processing queue."""
        with self._lock:
            counts = {status.value: 0 for status in ProcessingStatus}
            for entry in self._entries:
                counts[entry.status.value] += 1
            active_item = self._active_id

        return {
            "is_running": self.is_running,
            "queue_size": counts[ProcessingStatus.PENDING.value],
            "active_item": active_item,
            "counts": counts,
            "scan_interval": self.scan_interval,
        }

    def _admit_next(self) -> Optional[str]:
        """Promote the oldest pending entry to processing if nothing else is processing."""
        with self._lock:
            if self._active_id is not None:
                return None

            entry = next((e for e in self._entries if e.status == ProcessingStatus.PENDING), None)
            if entry is None:
                return None

            entry.status = ProcessingStatus.PROCESSING
            self._active_id = entry.id

        self._write_status(entry.id, ProcessingStatus.PROCESSING)
        return entry.id

    def _run(self, item_id: str):
        """Run the pipeline for an admitted lecture and settle its status."""
        try:
            self.processor.process(item_id)
        except Exception as e:
            message = str(e) or "Unknown error occurred"
            logger.error(f"Error processing lecture {item_id}: {message}")
            self._settle(item_id, ProcessingStatus.ERROR, message)
        else:
            logger.info(f"Lecture {item_id} completed successfully")
            self._settle(item_id, ProcessingStatus.COMPLETED)

    def _settle(self, item_id: str, status: ProcessingStatus, error_detail: Optional[str] = None):
        try:
            with self._lock:
                entry = self._known[item_id]
                entry.status = status
                entry.error_detail = error_detail

            self._write_status(item_id, status, error_detail)
        finally:
            with self._lock:
                self._active_id = None

    def _write_status(self, item_id: str, status: ProcessingStatus, error_detail: Optional[str] = None):
        """Persist a status transition. Failures leave the stored record stale."""
        try:
            self.status_store.upsert_status(item_id, status, error_detail)
        except Exception as e:
            logger.error(f"Failed to persist status {status.value} for lecture {item_id}: {e}")

    def _dispatch_worker(self):
        """Main dispatch thread: re-evaluate admission whenever the queue changes."""
        logger.info("Dispatch worker thread started")

        while self.is_running:
            try:
                self._signals.get(timeout=self.queue_check_interval)
            except Empty:
                continue

            if not self.is_running:
                break

            try:
                self.process_pending()
            except Exception as e:
                logger.error(f"Error in dispatch worker: {e}")

        logger.info("Dispatch worker thread stopped")

    def _event_worker(self, subscription):
        """Consume the change feed until the subscription is closed."""
        logger.info("Change feed listener started")

        for event in subscription:
            try:
                self.handle_created(event)
            except Exception as e:
                logger.error(f"Error handling created lecture {getattr(event, 'id', event)}: {e}")

        logger.info("Change feed listener stopped")

    def _scan_worker(self):
        """Scan the catalog now and then every scan_interval seconds."""
        while self.is_running:
            try:
                self.scan()
            except Exception as e:
                logger.error(f"Error in scan worker: {e}")

            if self._stop_event.wait(self.scan_interval):
                break
