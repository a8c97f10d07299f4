"""Storage data transfer objects."""
from typing import Callable, Optional
from pydantic import BaseModel


# Receives a fraction in [0, 1]; see utils.ProgressReporter for the contract
ProgressCallback = Callable[[float], None]


class UploadResult(BaseModel):
    """Upload operation result."""
    key: str
    url: str
    size: int
    content_type: Optional[str] = None
    payload_sha256: Optional[str] = None
    etag: Optional[str] = None
