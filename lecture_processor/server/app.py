"""
Flask API server for lecture processing.

This server provides endpoints for:
- Uploading lecture recordings
- Listing lectures and reading a lecture's transcript and summary
- Checking processing status of a lecture and of the queue

Uploaded lectures reach the processing queue through the store's change
feed; the queue also scans the store periodically for unprocessed lectures.
"""

import atexit
import logging
import os
import tempfile
from datetime import datetime
from typing import Optional

from flask import Flask, jsonify, request
from flask_cors import CORS
from werkzeug.utils import secure_filename

from ..audio import AudioTranscriber, LectureSummarizer
from ..config import ConfigManager
from ..errors import NotFoundError
from .lecture_store import LectureStore
from .processing_queue import ProcessingQueue
from .processor import LectureProcessor

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {"wav", "mp3", "mp4", "m4a", "flac", "aac", "ogg", "wma", "webm"}

# Reasonable minimum size for audio files (1KB)
MIN_FILE_SIZE = 1024


def allowed_file(filename: str) -> bool:
    """Check if the uploaded file has an allowed extension."""
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def create_app(store: LectureStore, processing_queue: ProcessingQueue) -> Flask:
    """
    Create the Flask application.

    Args:
        store: Lecture store backing all read and upload endpoints
        processing_queue: Processing queue reported by the status endpoints
    """
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = 500 * 1024 * 1024  # 500MB max file size
    CORS(app)

    @app.route("/health", methods=["GET"])
    def health_check():
        """Health check endpoint."""
        queue_status = processing_queue.get_queue_status()
        return jsonify(
            {
                "status": "healthy",
                "timestamp": datetime.now().isoformat(),
                "queue_running": queue_status["is_running"],
                "queue_size": queue_status["queue_size"],
                "active_item": queue_status["active_item"],
            }
        )

    @app.route("/upload", methods=["POST"])
    def upload_recording():
        """
        Upload a lecture recording.

        Expected form data:
        - file: Audio file to process
        - title: Optional lecture title
        - duration: Optional recording length in seconds

        Returns:
        - lecture_id: Identifier of the new lecture
        - status: Initial status (pending)
        """
        if "file" not in request.files:
            return jsonify({"error": "No file provided"}), 400

        file = request.files["file"]
        if file.filename == "":
            return jsonify({"error": "No file selected"}), 400

        if not allowed_file(file.filename):
            allowed_types = ", ".join(sorted(ALLOWED_EXTENSIONS))
            return jsonify({"error": f"File type not allowed. Allowed types: {allowed_types}"}), 400

        # Validate filename is not empty after sanitization
        original_filename = secure_filename(file.filename)
        if not original_filename or "." not in original_filename:
            return jsonify({"error": "Invalid filename"}), 400

        duration = None
        if request.form.get("duration"):
            try:
                duration = float(request.form["duration"])
            except ValueError:
                return jsonify({"error": "Invalid duration"}), 400

        # Save file temporarily
        with tempfile.NamedTemporaryFile(
            delete=False, suffix=f".{original_filename.rsplit('.', 1)[1].lower()}"
        ) as tmp_file:
            file.save(tmp_file.name)
            temp_file_path = tmp_file.name

        try:
            file_size = os.path.getsize(temp_file_path)

            if file_size == 0:
                return jsonify({"error": "Empty file not allowed"}), 400

            if file_size < MIN_FILE_SIZE:
                return jsonify({"error": "File too small to be a valid audio file"}), 400

            lecture_id = store.create_lecture(
                title=request.form.get("title"),
                original_filename=original_filename,
                audio_file_path=temp_file_path,
                duration=duration,
            )

            return jsonify(
                {
                    "lecture_id": lecture_id,
                    "status": "pending",
                    "message": "Recording uploaded successfully and queued for processing",
                }
            ), 201

        finally:
            # Clean up temporary file
            if os.path.exists(temp_file_path):
                os.unlink(temp_file_path)

    @app.route("/lectures", methods=["GET"])
    def list_lectures():
        """
        List lectures.

        Query parameters:
        - status: Filter by status (pending, processing, completed, error)
        - limit: Limit number of results (default: 100)
        - offset: Offset for pagination (default: 0)

        Returns list of lectures sorted by creation time (newest first).
        """
        status_filter = request.args.get("status")
        try:
            limit = int(request.args.get("limit", 100))
            offset = int(request.args.get("offset", 0))
        except ValueError:
            return jsonify({"error": "limit and offset must be integers"}), 400
        if limit < 0 or offset < 0:
            return jsonify({"error": "limit and offset must not be negative"}), 400

        lectures = store.list_lectures(status_filter=status_filter, limit=limit + offset)

        # Apply pagination
        total = len(lectures)
        lectures = lectures[offset : offset + limit]

        return jsonify({"lectures": lectures, "total": total, "limit": limit, "offset": offset})

    @app.route("/lectures/<lecture_id>", methods=["GET"])
    def get_lecture(lecture_id: str):
        """
        Get a lecture with its transcript and summary.

        Returns:
        - transcript: Full transcript text (empty until transcribed)
        - summary, key_points: AI summary (once summarized)
        - status, error: Persisted processing status
        """
        result = store.get_lecture_detail(lecture_id)
        if result is None:
            return jsonify({"error": "Lecture not found"}), 404

        return jsonify(result)

    @app.route("/status/<lecture_id>", methods=["GET"])
    def get_lecture_status(lecture_id: str):
        """Get the persisted processing status, falling back to the queue entry."""
        try:
            return jsonify(store.get_status(lecture_id).to_dict())
        except NotFoundError:
            pass

        entry = processing_queue.get_entry(lecture_id)
        if entry is not None:
            return jsonify(
                {
                    "lecture_id": entry.id,
                    "status": entry.status.value,
                    "error_message": entry.error_detail,
                    "updated_at": None,
                }
            )

        if store.get_lecture(lecture_id) is not None:
            return jsonify({"lecture_id": lecture_id, "status": "pending", "error_message": None, "updated_at": None})

        return jsonify({"error": "Lecture not found"}), 404

    @app.route("/queue/status", methods=["GET"])
    def get_queue_status():
        """Get detailed queue status information."""
        status = processing_queue.get_queue_status()
        status["entries"] = [entry.to_dict() for entry in processing_queue.get_entries()]
        return jsonify(status)

    return app


def build_processing_queue(store: LectureStore, api_key: Optional[str] = None) -> ProcessingQueue:
    """
    Wire the engines, the pipeline and the queue from configuration.

    Args:
        store: Lecture store used as catalog, object storage, result and status store
        api_key: OpenAI API key override
    """
    openai_key = ConfigManager.get("OPENAI_API_KEY", api_key) or None
    llm_base_url = ConfigManager.get("LLM_API_BASE_URL") or None
    if not openai_key:
        logger.warning("No OpenAI API key configured, API calls will fail")

    backend = ConfigManager.get("TRANSCRIPTION_BACKEND")
    transcriber = AudioTranscriber(
        backend=backend,
        model_name=ConfigManager.get("TRANSCRIPTION_MODEL"),
        language=ConfigManager.get("TRANSCRIPTION_LANGUAGE") or None,
        api_key=openai_key,
        base_url=llm_base_url,
    )
    summarizer = LectureSummarizer(api_key=openai_key, model=ConfigManager.get("LLM_MODEL"), base_url=llm_base_url)
    processor = LectureProcessor(store, store, store, transcriber, summarizer)

    return ProcessingQueue(
        store,
        processor,
        scan_interval=ConfigManager.get_float("SCAN_INTERVAL"),
        queue_check_interval=ConfigManager.get_float("QUEUE_CHECK_INTERVAL"),
    )


def main():
    """Run the API server with its background processing queue."""
    log_level = ConfigManager.get("LOG_LEVEL").upper()
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))

    # Reduce request logging verbosity
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    store = LectureStore(ConfigManager.get("DATA_DIR"))
    processing_queue = build_processing_queue(store)
    app = create_app(store, processing_queue)

    processing_queue.start()
    atexit.register(processing_queue.stop)

    try:
        app.run(host=ConfigManager.get("SERVER_HOST"), port=ConfigManager.get_int("SERVER_PORT"))
    finally:
        processing_queue.stop()


if __name__ == "__main__":
    main()
