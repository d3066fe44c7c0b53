"""
Client module for communicating with the lecture processing API server.

This module provides a simple interface for recorder front-ends to:
- Upload lecture recordings
- Check processing status
- List lectures and read transcripts and summaries
"""

import time
from pathlib import Path
from typing import Any, Dict, Optional

import requests
from requests.exceptions import ConnectionError, RequestException


class APIClient:
    """Client for communicating with the lecture processing API server."""

    def __init__(self, base_url: str = "http://localhost:5001", timeout: int = 30):
        """
        Initialize the API client.

        Args:
            base_url: Base URL of the API server
            timeout: Default request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = requests.Session()

    def health_check(self) -> Dict[str, Any]:
        """
        Check if the API server is healthy.

        Raises:
            ConnectionError: If unable to connect to the server
        """
        try:
            response = self.session.get(f"{self.base_url}/health", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise ConnectionError(f"Unable to connect to API server: {e}")

    def upload_recording(
        self, file_path: str, title: Optional[str] = None, duration: Optional[float] = None, timeout: int = 300
    ) -> Dict[str, Any]:
        """
        Upload a lecture recording.

        Args:
            file_path: Path to the audio file to upload
            title: Optional lecture title
            duration: Optional recording length in seconds
            timeout: Request timeout in seconds

        Returns:
            Dictionary containing lecture_id and initial status

        Raises:
            FileNotFoundError: If the file doesn't exist
            RequestException: If the upload fails
        """
        file_path = Path(file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        data = {}
        if title:
            data["title"] = title
        if duration is not None:
            data["duration"] = str(duration)

        try:
            with open(file_path, "rb") as audio_file:
                files = {"file": (file_path.name, audio_file)}
                response = self.session.post(f"{self.base_url}/upload", files=files, data=data, timeout=timeout)
                response.raise_for_status()
                return response.json()
        except RequestException as e:
            raise RequestException(f"Upload failed: {e}")

    def get_status(self, lecture_id: str) -> Dict[str, Any]:
        """
        Get the processing status of a lecture.

        Raises:
            RequestException: If the request fails
        """
        try:
            response = self.session.get(f"{self.base_url}/status/{lecture_id}", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to get lecture status: {e}")

    def list_lectures(self, status_filter: Optional[str] = None, limit: int = 100, offset: int = 0) -> Dict[str, Any]:
        """
        List lectures.

        Args:
            status_filter: Filter by status (pending, processing, completed, error)
            limit: Maximum number of lectures to return
            offset: Offset for pagination

        Raises:
            RequestException: If the request fails
        """
        params = {"limit": limit, "offset": offset}
        if status_filter:
            params["status"] = status_filter

        try:
            response = self.session.get(f"{self.base_url}/lectures", params=params, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to list lectures: {e}")

    def get_lecture(self, lecture_id: str) -> Dict[str, Any]:
        """
        Get a lecture with its transcript, summary and key points.

        Raises:
            RequestException: If the request fails
        """
        try:
            response = self.session.get(f"{self.base_url}/lectures/{lecture_id}", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to get lecture: {e}")

    def get_queue_status(self) -> Dict[str, Any]:
        """Get the processing queue status."""
        try:
            response = self.session.get(f"{self.base_url}/queue/status", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except RequestException as e:
            raise RequestException(f"Failed to get queue status: {e}")

    def wait_for_completion(self, lecture_id: str, poll_interval: float = 5, timeout: float = 3600) -> Dict[str, Any]:
        """
        Wait for a lecture to be processed and return it.

        Args:
            lecture_id: Lecture identifier
            poll_interval: Time to wait between status checks (seconds)
            timeout: Maximum time to wait (seconds)

        Returns:
            Lecture detail including transcript and summary

        Raises:
            TimeoutError: If processing doesn't finish within the timeout
            RequestException: If processing failed or any API call fails
        """
        start_time = time.time()

        while time.time() - start_time < timeout:
            status_info = self.get_status(lecture_id)
            status = status_info.get("status")

            if status == "completed":
                return self.get_lecture(lecture_id)
            elif status == "error":
                error = status_info.get("error_message") or "Unknown error"
                raise RequestException(f"Processing failed: {error}")

            time.sleep(poll_interval)

        raise TimeoutError(f"Lecture {lecture_id} was not processed within {timeout} seconds")


# Convenience function for quick uploads
def upload_and_process(
    file_path: str,
    title: Optional[str] = None,
    api_url: str = "http://localhost:5001",
    wait_for_result: bool = True,
    poll_interval: float = 5,
    timeout: float = 3600,
) -> Dict[str, Any]:
    """
    Upload a recording and optionally wait for processing to complete.

    Returns:
        Dictionary containing either upload info or the processed lecture
    """
    client = APIClient(api_url)

    upload_result = client.upload_recording(file_path, title=title)
    lecture_id = upload_result["lecture_id"]

    if wait_for_result:
        return client.wait_for_completion(lecture_id, poll_interval, timeout)
    return upload_result
