"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, model_serializer
from typing import Optional
from datetime import datetime, timezone

from domain.bucket import S3Object


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                ts = value if value.tzinfo else value.replace(tzinfo=timezone.utc)
                s = ts.astimezone(timezone.utc).isoformat()
                return s.replace("+00:00", "Z")
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, tuple):
                return tuple(convert(v) for v in value)
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


class UploadedFileDTO(DTOBase):
    """上传结果"""
    key: str = Field(..., description="存储键")
    url: str = Field(..., description="可分享的URL")
    filename: str = Field(..., description="原始文件名")
    content_type: str
    size: int = Field(..., ge=0)
    content_hash: Optional[str] = Field(None, description="重命名哈希，否则为负载SHA-256")
    uploaded_at: datetime

    def to_object(self) -> S3Object:
        """Listing entry for the new object, so callers need not re-list."""
        return S3Object(key=self.key, size=self.size, last_modified=self.uploaded_at)


class BatchUploadItemDTO(DTOBase):
    """批量上传中单个文件的结果"""
    filename: str
    path: Optional[str] = None
    result: Optional[UploadedFileDTO] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.result is not None
