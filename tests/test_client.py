"""Tests for the removal API client."""

import json

import pytest
import requests
import responses
from responses import matchers
from unittest.mock import patch
from bgcompose.client import (
    BGRemoverClient,
    CreateJobFileUpload,
    CreateJobUrlDownload,
    StartJobRequest,
    BackgroundOptions,
    JobStatus,
    ApiError,
    InsufficientCreditsError,
    JobNotFoundError,
    ProcessingError,
)
from bgcompose.core import BackgroundType, ConfigurationError, TransparentFormat

API = "https://api.videobgremover.com"


def status_body(status, **extra):
    body = {
        "id": "job_123",
        "status": status,
        "filename": "test.mp4",
        "created_at": "2024-01-01T10:00:00Z",
    }
    body.update(extra)
    return body


class TestBGRemoverClient:
    """Test the API client."""

    def test_init(self):
        client = BGRemoverClient("test_key")
        assert client.base_url == API
        assert client.session.headers["X-Api-Key"] == "test_key"
        assert client.session.headers["User-Agent"].startswith("bgcompose-python/")

    def test_init_custom_url(self):
        client = BGRemoverClient("test_key", base_url="https://custom.api.com/")
        assert client.base_url == "https://custom.api.com"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("BGCOMPOSE_API_KEY", "env_key")
        monkeypatch.setenv("BGCOMPOSE_BASE_URL", "http://localhost:3000/api/")
        client = BGRemoverClient.from_env()
        assert client.session.headers["X-Api-Key"] == "env_key"
        assert client.base_url == "http://localhost:3000/api"

    def test_from_env_requires_key(self, monkeypatch):
        monkeypatch.delenv("BGCOMPOSE_API_KEY", raising=False)
        with pytest.raises(ConfigurationError):
            BGRemoverClient.from_env()

    @responses.activate
    def test_create_job_file_success(self):
        responses.add(
            responses.POST,
            f"{API}/v1/jobs",
            json={"id": "job_123", "upload_url": "https://storage.example.com/signed"},
            status=200,
        )

        client = BGRemoverClient("test_key")
        result = client.create_job_file(
            CreateJobFileUpload(filename="test.mp4", content_type="video/mp4")
        )

        assert result["id"] == "job_123"
        assert json.loads(responses.calls[0].request.body) == {
            "filename": "test.mp4",
            "content_type": "video/mp4",
        }

    @responses.activate
    def test_create_job_url_success(self):
        responses.add(
            responses.POST,
            f"{API}/v1/jobs",
            json={"id": "job_456", "status": "uploaded"},
            status=200,
        )

        client = BGRemoverClient("test_key")
        result = client.create_job_url(
            CreateJobUrlDownload(video_url="https://example.com/video.mp4")
        )

        assert result["id"] == "job_456"
        body = json.loads(responses.calls[0].request.body)
        assert body["video_url"] == "https://example.com/video.mp4"

    @responses.activate
    def test_start_job_sends_only_set_fields(self):
        responses.add(
            responses.POST,
            f"{API}/v1/jobs/job_123/start",
            json={"id": "job_123", "status": "processing"},
            status=200,
        )

        client = BGRemoverClient("test_key")
        req = StartJobRequest(
            webhook_url="https://example.com/webhooks",
            background=BackgroundOptions(
                type=BackgroundType.TRANSPARENT,
                transparent_format=TransparentFormat.PRO_BUNDLE,
            ),
        )
        client.start_job("job_123", req)

        assert json.loads(responses.calls[0].request.body) == {
            "format": "mp4",
            "webhook_url": "https://example.com/webhooks",
            "background": {"type": "transparent", "transparent_format": "pro_bundle"},
        }

    @responses.activate
    def test_status_success(self):
        responses.add(
            responses.GET,
            f"{API}/v1/jobs/job_123/status",
            json=status_body(
                "completed",
                length_seconds=10.0,
                processed_video_url="https://example.com/processed.webm",
            ),
            status=200,
        )

        status = BGRemoverClient("test_key").status("job_123")

        assert isinstance(status, JobStatus)
        assert status.status == "completed"
        assert status.length_seconds == 10.0

    @responses.activate
    def test_wait_reports_each_status_once(self):
        url = f"{API}/v1/jobs/job_123/status"
        responses.add(responses.GET, url, json=status_body("processing"))
        responses.add(responses.GET, url, json=status_body("processing"))
        responses.add(responses.GET, url, json=status_body("completed"))

        client = BGRemoverClient("test_key")
        seen = []
        with patch("time.sleep") as sleep:
            status = client.wait("job_123", poll_seconds=0.1, on_status=seen.append)

        assert status.status == "completed"
        assert seen == ["processing", "completed"]
        assert sleep.call_count == 2

    @responses.activate
    def test_wait_failed_job(self):
        responses.add(
            responses.GET,
            f"{API}/v1/jobs/job_123/status",
            json=status_body("failed", message="Corrupt input"),
        )

        with pytest.raises(ProcessingError, match="Corrupt input") as exc_info:
            BGRemoverClient("test_key").wait("job_123")

        assert exc_info.value.response_data["job_id"] == "job_123"

    @responses.activate
    def test_wait_timeout(self):
        responses.add(
            responses.GET,
            f"{API}/v1/jobs/job_123/status",
            json=status_body("processing"),
        )

        client = BGRemoverClient("test_key")
        with patch("time.sleep"):
            with pytest.raises(TimeoutError):
                client.wait("job_123", poll_seconds=0.1, timeout=0.05)

    @responses.activate
    def test_credits_success(self):
        responses.add(
            responses.GET,
            f"{API}/v1/credits",
            json={
                "user_id": "user_123",
                "total_credits": 100.0,
                "remaining_credits": 50.0,
                "used_credits": 50.0,
            },
        )

        credits = BGRemoverClient("test_key").credits()

        assert credits.user_id == "user_123"
        assert credits.remaining_credits == 50.0

    @responses.activate
    def test_webhook_deliveries(self):
        responses.add(
            responses.GET,
            f"{API}/v1/webhooks/deliveries",
            match=[matchers.query_param_matcher({"video_id": "job_123"})],
            json={
                "video_id": "job_123",
                "total_deliveries": 1,
                "deliveries": [{"event_type": "job.completed", "delivery_status": "delivered"}],
            },
        )

        deliveries = BGRemoverClient("test_key").webhook_deliveries("job_123")

        assert deliveries["total_deliveries"] == 1
        assert deliveries["deliveries"][0]["event_type"] == "job.completed"


class TestErrorMapping:
    """HTTP and transport errors become ApiError subclasses."""

    @responses.activate
    def test_401(self):
        responses.add(responses.GET, f"{API}/v1/credits", status=401)

        with pytest.raises(ApiError, match="Invalid API key") as exc_info:
            BGRemoverClient("test_key").credits()

        assert exc_info.value.status_code == 401

    @responses.activate
    def test_402(self):
        responses.add(
            responses.POST,
            f"{API}/v1/jobs/job_123/start",
            json={"error": "Insufficient credits"},
            status=402,
        )

        with pytest.raises(InsufficientCreditsError) as exc_info:
            BGRemoverClient("test_key").start_job("job_123")

        assert exc_info.value.status_code == 402
        assert exc_info.value.response_data == {"error": "Insufficient credits"}

    @responses.activate
    def test_404(self):
        responses.add(
            responses.GET,
            f"{API}/v1/jobs/nonexistent/status",
            json={"error": "Job not found"},
            status=404,
        )

        with pytest.raises(JobNotFoundError):
            BGRemoverClient("test_key").status("nonexistent")

    @responses.activate
    def test_processing_message(self):
        responses.add(
            responses.POST,
            f"{API}/v1/jobs/job_123/start",
            json={"error": "Video processing failed"},
            status=500,
        )

        with pytest.raises(ProcessingError, match="Video processing failed"):
            BGRemoverClient("test_key").start_job("job_123")

    @responses.activate
    def test_generic_error_without_body(self):
        responses.add(responses.GET, f"{API}/v1/credits", body="oops", status=503)

        with pytest.raises(ApiError, match="HTTP 503") as exc_info:
            BGRemoverClient("test_key").credits()

        assert not isinstance(exc_info.value, ProcessingError)
        assert exc_info.value.response_data is None

    @responses.activate
    def test_connection_error(self):
        responses.add(
            responses.GET,
            f"{API}/v1/credits",
            body=requests.exceptions.ConnectionError("refused"),
        )

        with pytest.raises(ApiError, match="Failed to connect"):
            BGRemoverClient("test_key").credits()


class TestPydanticModels:
    """Request model validation."""

    def test_background_options_color_validation(self):
        bg = BackgroundOptions(type=BackgroundType.COLOR, color="#FF0000")
        assert bg.color == "#FF0000"

        with pytest.raises(ValueError, match="color required"):
            BackgroundOptions(type=BackgroundType.COLOR)
        with pytest.raises(ValueError):
            BackgroundOptions(type=BackgroundType.COLOR, color="red")

    def test_background_options_transparent_validation(self):
        bg = BackgroundOptions(
            type=BackgroundType.TRANSPARENT,
            transparent_format=TransparentFormat.WEBM_VP9,
        )
        assert bg.transparent_format == TransparentFormat.WEBM_VP9

        with pytest.raises(ValueError, match="transparent_format required"):
            BackgroundOptions(type=BackgroundType.TRANSPARENT)

    def test_create_job_file_upload_content_type(self):
        with pytest.raises(ValueError):
            CreateJobFileUpload(filename="clip.avi", content_type="video/avi")

    def test_start_job_request_defaults(self):
        req = StartJobRequest()
        assert req.format == "mp4"
        assert req.background is None
