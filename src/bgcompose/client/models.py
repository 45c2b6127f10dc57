"""Request and response models of the background removal API."""

from pydantic import BaseModel, HttpUrl, StringConstraints, model_validator
from typing import Optional, Literal, Annotated
from ..core.types import BackgroundType, TransparentFormat

HexColor = Annotated[str, StringConstraints(pattern=r"^#[0-9A-Fa-f]{6}([0-9A-Fa-f]{2})?$")]

VideoContentType = Literal["video/mp4", "video/mov", "video/webm"]


class CreateJobFileUpload(BaseModel):
    """Create a job whose video is uploaded to a signed URL."""

    filename: str
    content_type: VideoContentType


class CreateJobUrlDownload(BaseModel):
    """Create a job whose video the API downloads itself."""

    video_url: HttpUrl


class BackgroundOptions(BaseModel):
    """Output background requested for a job."""

    type: BackgroundType
    color: Optional[HexColor] = None
    transparent_format: Optional[TransparentFormat] = None

    @model_validator(mode="after")
    def _check_type_fields(self) -> "BackgroundOptions":
        if self.type == BackgroundType.COLOR and not self.color:
            raise ValueError("color required when type='color'")
        if self.type == BackgroundType.TRANSPARENT and not self.transparent_format:
            raise ValueError("transparent_format required when type='transparent'")
        return self


class StartJobRequest(BaseModel):
    format: Literal["mp4"] = "mp4"
    model: Optional[str] = None
    background: Optional[BackgroundOptions] = None
    webhook_url: Optional[str] = None


class JobStatus(BaseModel):
    """Job status response."""

    id: str
    status: Literal["created", "uploaded", "processing", "completed", "failed"]
    filename: str
    created_at: str
    length_seconds: Optional[float] = None
    thumbnail_url: Optional[HttpUrl] = None
    processed_video_url: Optional[HttpUrl] = None
    processed_mask_url: Optional[HttpUrl] = None
    message: Optional[str] = None
    background: Optional[BackgroundOptions] = None
    output_format: Optional[str] = None


class CreditBalance(BaseModel):
    user_id: str
    total_credits: float
    remaining_credits: float
    used_credits: float


class ApiError(Exception):
    """Error response (or transport failure) from the API."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_data: Optional[dict] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_data = response_data


class InsufficientCreditsError(ApiError):
    """HTTP 402: the account has no credits left."""


class JobNotFoundError(ApiError):
    """HTTP 404: unknown job or resource."""


class ProcessingError(ApiError):
    """The job failed on the server side."""
