"""Configuration management for the process warden."""

from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FRAMINGS = ("line", "fixed")
LOG_FORMATS = ("plain", "json", "console")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class Settings(BaseSettings):
    """Supervisor configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="WARDEN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Pool
    pool_size: int = Field(3, description="Number of ordinary workers (N)")
    privileged_index: int = Field(1, description="Worker whose death restarts the whole pool")
    spawn_delay: float = Field(0.3, description="Pause between spawns at startup, in seconds")

    # Output resources
    worker_output: Optional[str] = Field(None, description="Shared log file for all workers")
    supervisor_output: Optional[str] = Field(None, description="Log file for the supervisor")

    # Announcement channel
    channel_path: str = Field("/tmp/myfifo", description="Named pipe the pool is announced on")
    channel_framing: str = Field("line", description="Record framing: line or fixed")
    frame_width: int = Field(30, description="Record size for fixed framing")

    # Observability
    log_level: str = Field("INFO")
    log_format: str = Field("plain")

    @field_validator("pool_size")
    @classmethod
    def validate_pool_size(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"pool_size must be at least 1, got: {v}")
        return v

    @field_validator("spawn_delay")
    @classmethod
    def validate_spawn_delay(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"spawn_delay cannot be negative, got: {v}")
        return v

    @field_validator("channel_framing")
    @classmethod
    def validate_framing(cls, v: str) -> str:
        v = v.lower()
        if v not in FRAMINGS:
            raise ValueError(f"channel_framing must be one of {FRAMINGS}, got: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got: {v}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got: {v}")
        return v

    @field_validator("frame_width")
    @classmethod
    def validate_frame_width(cls, v: int) -> int:
        # "P<index> <pid>\n" never fits in fewer bytes than this
        if v < 8:
            raise ValueError(f"frame_width too small to carry a record, got: {v}")
        return v

    @model_validator(mode="after")
    def validate_privileged_index(self) -> "Settings":
        if not 1 <= self.privileged_index <= self.pool_size:
            raise ValueError(
                f"privileged_index must be between 1 and {self.pool_size}, "
                f"got: {self.privileged_index}"
            )
        return self
