"""Client for the background removal API."""

from .api import BGRemoverClient
from .models import (
    CreateJobFileUpload,
    CreateJobUrlDownload,
    BackgroundOptions,
    StartJobRequest,
    JobStatus,
    CreditBalance,
    ApiError,
    InsufficientCreditsError,
    JobNotFoundError,
    ProcessingError,
)

__all__ = [
    "BGRemoverClient",
    "CreateJobFileUpload",
    "CreateJobUrlDownload",
    "BackgroundOptions",
    "StartJobRequest",
    "JobStatus",
    "CreditBalance",
    "ApiError",
    "InsufficientCreditsError",
    "JobNotFoundError",
    "ProcessingError",
]
