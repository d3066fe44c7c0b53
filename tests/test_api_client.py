import pytest
from requests.exceptions import ConnectionError, RequestException

from lecture_processor.client.api_client import APIClient


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise RequestException(f"HTTP {self.status_code}")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requests = []

    def _next(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        response = self.responses[url].pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def get(self, url, **kwargs):
        return self._next("GET", url, **kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, **kwargs)


def make_client(responses):
    client = APIClient("http://api.test/")
    client.session = FakeSession(responses)
    return client


def test_wait_for_completion_returns_lecture_detail() -> None:
    client = make_client(
        {
            "http://api.test/status/abc": [
                FakeResponse({"status": "pending"}),
                FakeResponse({"status": "processing"}),
                FakeResponse({"status": "completed"}),
            ],
            "http://api.test/lectures/abc": [FakeResponse({"lecture_id": "abc", "summary": "greeting"})],
        }
    )

    result = client.wait_for_completion("abc", poll_interval=0)

    assert result["summary"] == "greeting"


def test_wait_for_completion_raises_on_error_status() -> None:
    client = make_client(
        {"http://api.test/status/abc": [FakeResponse({"status": "error", "error_message": "rate limited"})]}
    )

    with pytest.raises(RequestException) as exc_info:
        client.wait_for_completion("abc", poll_interval=0)

    assert "rate limited" in str(exc_info.value)


def test_wait_for_completion_times_out() -> None:
    client = make_client({"http://api.test/status/abc": [FakeResponse({"status": "pending"})] * 100})

    with pytest.raises(TimeoutError):
        client.wait_for_completion("abc", poll_interval=0.01, timeout=0)


def test_upload_recording_sends_title_and_file(tmp_path) -> None:
    recording = tmp_path / "lecture.webm"
    recording.write_bytes(b"audio")
    client = make_client({"http://api.test/upload": [FakeResponse({"lecture_id": "abc", "status": "pending"}, 201)]})

    result = client.upload_recording(str(recording), title="Optics", duration=12.0)

    assert result["lecture_id"] == "abc"
    _, _, kwargs = client.session.requests[0]
    assert kwargs["data"] == {"title": "Optics", "duration": "12.0"}
    assert kwargs["files"]["file"][0] == "lecture.webm"


def test_upload_missing_file(tmp_path) -> None:
    client = make_client({})

    with pytest.raises(FileNotFoundError):
        client.upload_recording(str(tmp_path / "missing.mp3"))


def test_list_lectures_passes_filters() -> None:
    client = make_client({"http://api.test/lectures": [FakeResponse({"lectures": [], "total": 0})]})

    client.list_lectures(status_filter="error", limit=10)

    _, _, kwargs = client.session.requests[0]
    assert kwargs["params"] == {"limit": 10, "offset": 0, "status": "error"}


def test_health_check_connection_failure() -> None:
    client = make_client({"http://api.test/health": [RequestException("refused")]})

    with pytest.raises(ConnectionError):
        client.health_check()
