"""REST client for the background removal API."""

import os
import time
import requests
from typing import Optional, Dict, Any, Callable
from ..__version__ import __version__
from ..core.errors import ConfigurationError
from .models import (
    CreateJobFileUpload,
    CreateJobUrlDownload,
    StartJobRequest,
    JobStatus,
    CreditBalance,
    ApiError,
    InsufficientCreditsError,
    JobNotFoundError,
    ProcessingError,
)

DEFAULT_BASE_URL = "https://api.videobgremover.com"

_STATUS_ERRORS = {
    402: (InsufficientCreditsError, "Insufficient credits"),
    404: (JobNotFoundError, "Resource not found"),
}


class BGRemoverClient:
    """Client for the background removal API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: float = 30.0,
    ):
        """
        Initialize the API client.

        Args:
            api_key: API key sent as X-Api-Key
            base_url: Base URL for the API
            session: Optional requests session to use
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

        self.session.headers.update(
            {"X-Api-Key": api_key, "User-Agent": f"bgcompose-python/{__version__}"}
        )

    @classmethod
    def from_env(cls, session: Optional[requests.Session] = None) -> "BGRemoverClient":
        """
        Build a client from BGCOMPOSE_API_KEY and BGCOMPOSE_BASE_URL.

        Raises:
            ConfigurationError: If BGCOMPOSE_API_KEY is not set
        """
        api_key = os.getenv("BGCOMPOSE_API_KEY")
        if not api_key:
            raise ConfigurationError("BGCOMPOSE_API_KEY environment variable is not set")
        return cls(
            api_key,
            base_url=os.getenv("BGCOMPOSE_BASE_URL") or DEFAULT_BASE_URL,
            session=session,
        )

    def _request(self, method: str, endpoint: str, **kwargs) -> Dict[str, Any]:
        """Make a request and map error responses to ApiError subclasses."""
        url = f"{self.base_url}{endpoint}"
        kwargs.setdefault("timeout", self.timeout)

        try:
            response = self.session.request(method, url, **kwargs)
        except requests.exceptions.Timeout as e:
            raise ApiError(f"Request timed out after {self.timeout} seconds") from e
        except requests.exceptions.ConnectionError as e:
            raise ApiError("Failed to connect to the API") from e
        except requests.exceptions.RequestException as e:
            raise ApiError(f"Request failed: {e}") from e

        if response.status_code >= 400:
            raise _error_for(response)
        return response.json()

    def create_job_file(self, req: CreateJobFileUpload) -> Dict[str, Any]:
        """
        Create a job for file upload.

        Returns:
            Job creation response with id and upload_url
        """
        return self._request("POST", "/v1/jobs", json=req.model_dump())

    def create_job_url(self, req: CreateJobUrlDownload) -> Dict[str, Any]:
        """Create a job that downloads its video from a public URL."""
        return self._request("POST", "/v1/jobs", json=req.model_dump(mode="json"))

    def start_job(
        self, job_id: str, req: Optional[StartJobRequest] = None
    ) -> Dict[str, Any]:
        """
        Start processing a job.

        Args:
            job_id: The job ID to start
            req: Optional job configuration
        """
        data = req.model_dump(mode="json", exclude_none=True) if req else {}
        return self._request("POST", f"/v1/jobs/{job_id}/start", json=data)

    def status(self, job_id: str) -> JobStatus:
        response = self._request("GET", f"/v1/jobs/{job_id}/status")
        return JobStatus.model_validate(response)

    def wait(
        self,
        job_id: str,
        poll_seconds: float = 2.0,
        timeout: Optional[float] = None,
        on_status: Optional[Callable[[str], None]] = None,
    ) -> JobStatus:
        """
        Poll a job until it completes.

        Args:
            job_id: The job ID to wait for
            poll_seconds: Polling interval in seconds
            timeout: Maximum time to wait (None for no timeout)
            on_status: Called with each new status string

        Returns:
            Final (completed) job status

        Raises:
            TimeoutError: If timeout is reached
            ProcessingError: If the job fails
        """
        started = time.monotonic()
        last_status = None

        while True:
            status = self.status(job_id)

            if on_status and status.status != last_status:
                on_status(status.status)
                last_status = status.status

            if status.status == "completed":
                return status
            if status.status == "failed":
                raise ProcessingError(
                    status.message or "Job processing failed",
                    response_data={"job_id": job_id, "status": status.model_dump(mode="json")},
                )

            if timeout is not None and time.monotonic() - started > timeout:
                raise TimeoutError(f"Job {job_id} did not complete within {timeout} seconds")

            time.sleep(poll_seconds)

    def credits(self) -> CreditBalance:
        response = self._request("GET", "/v1/credits")
        return CreditBalance.model_validate(response)

    def webhook_deliveries(self, video_id: str) -> Dict[str, Any]:
        """Webhook delivery attempts recorded for a job."""
        return self._request(
            "GET", "/v1/webhooks/deliveries", params={"video_id": video_id}
        )


def _error_for(response: requests.Response) -> ApiError:
    """Exception matching an error response."""
    code = response.status_code
    try:
        data = response.json()
    except ValueError:
        data = None

    if code == 401:
        return ApiError("Invalid API key", code, data)
    if code in _STATUS_ERRORS:
        cls, message = _STATUS_ERRORS[code]
        return cls(message, code, data)

    message = f"HTTP {code}"
    if isinstance(data, dict) and data.get("error"):
        message = str(data["error"])
    if "processing" in message.lower() or "failed" in message.lower():
        return ProcessingError(message, code, data)
    return ApiError(message, code, data)
