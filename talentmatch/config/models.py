"""Configuration schema models using Pydantic."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .duration import DurationParseError, parse_duration, validate_duration_range


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


class MatchingConfig(BaseModel):
    """Thresholds applied around a matching run."""

    notify_min_score: int = Field(
        25, ge=0, le=100, description="Lowest overall score that triggers a notification"
    )


class ScoringConfig(BaseModel):
    """HTTP Score Provider settings."""

    endpoint_url: str = Field(..., min_length=1, description="Score Provider endpoint")
    timeout_seconds: int = Field(
        60, ge=5, le=300, description="Per-request timeout for scoring calls"
    )
    user_agent: str = Field(
        "TalentMatch/1.0", min_length=1, description="User-Agent for scoring requests"
    )

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped.startswith(("http://", "https://")):
            raise ValueError("endpoint_url must start with http:// or https://")
        return stripped

    @field_validator("user_agent")
    @classmethod
    def strip_user_agent(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError("user_agent cannot be empty")
        return stripped


class NotificationsConfig(BaseModel):
    """Match notification settings."""

    enabled: bool = Field(True, description="Send notifications after matching runs")
    batch_size: int = Field(
        100, ge=1, le=100, description="Candidate messages per batch send"
    )
    app_name: str = Field("IP Lawyer Recruiting", min_length=1)
    app_url: str = Field("http://localhost:3000", min_length=1)

    @field_validator("app_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


class EmailConfig(BaseModel):
    """SMTP delivery settings."""

    use_tls: bool = Field(True, description="Use TLS/STARTTLS for secure connection")
    max_retries: int = Field(
        3, ge=0, le=10, description="Number of retry attempts for failed sends"
    )
    retry_backoff_multiplier: float = Field(
        2.0, ge=1.0, le=5.0, description="Exponential backoff multiplier for retries"
    )
    retry_initial_delay: int = Field(
        5, ge=1, le=60, description="Initial retry delay in seconds"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True}


class AppConfig(BaseModel):
    """Root configuration object for talentmatch."""

    sweep_interval: str = Field("15m", description="Interval between scheduled sweeps")
    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    scoring: ScoringConfig = Field(..., description="Score Provider settings")
    notifications: NotificationsConfig = Field(default_factory=NotificationsConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Computed from sweep_interval
    sweep_interval_seconds: Optional[int] = None

    @field_validator("sweep_interval")
    @classmethod
    def validate_sweep_interval(cls, v: str) -> str:
        try:
            seconds = parse_duration(v)
            validate_duration_range(
                seconds, min_seconds=300, max_seconds=86400, label="Sweep interval"
            )
        except DurationParseError as e:
            raise ValueError(str(e)) from e
        return v

    @model_validator(mode="after")
    def compute_sweep_interval_seconds(self):
        self.sweep_interval_seconds = parse_duration(self.sweep_interval)
        return self
