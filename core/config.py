"""
配置文件 - 项目配置管理

Process-level settings only. Bucket credentials and endpoints are not settings:
callers pass a fully resolved BucketEndpointConfig into every operation.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import BaseModel, Field, field_validator


class S3Settings(BaseModel):
    # Read/write timeout for a single request, in seconds
    timeout: float = 60.0
    connect_timeout: float = 10.0
    verify_ssl: bool = True
    # ListObjectsV2 page size used when the caller does not pass one
    list_max_keys: int = 200
    # Upload/download streaming granularity (also the progress granularity)
    progress_chunk_size: int = 64 * 1024
    user_agent: str = "BucketDrop/1.0"
    # Debug-level request/response logging (authorization is always redacted)
    log_requests: bool = False

    @field_validator("list_max_keys")
    @classmethod
    def _validate_max_keys(cls, v: int) -> int:
        # S3 caps a single ListObjectsV2 page at 1000 keys
        if v < 1 or v > 1000:
            raise ValueError("list_max_keys must be between 1 and 1000")
        return v

    @field_validator("progress_chunk_size")
    @classmethod
    def _validate_chunk_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("progress_chunk_size must be positive")
        return v


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = "BucketDrop"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    s3: S3Settings = Field(default_factory=S3Settings)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or "INFO"
        return v


settings = Settings()
