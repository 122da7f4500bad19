from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.enums import Channel

SINK_NAMES = frozenset({"log", "memory", "sql", "kafka"})


class DispatchConfig(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DISPATCH_")

    log_level: str = "INFO"
    max_concurrency: int = Field(default=10, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    backoff_base_seconds: float = Field(default=0.5, ge=0)
    backoff_cap_seconds: float = Field(default=30.0, ge=0)
    backoff_jitter: float = Field(default=0.2, ge=0, le=1)
    attempt_timeout_seconds: float = Field(default=10.0, gt=0)
    result_sinks: list[str] = ["log"]

    @field_validator("result_sinks")
    @classmethod
    def _known_sinks(cls, value: list[str]) -> list[str]:
        names = [name.strip().lower() for name in value]
        unknown = sorted(set(names) - SINK_NAMES)
        if unknown:
            raise ValueError(
                f"Unknown result sink(s) {unknown}; expected any of {sorted(SINK_NAMES)}"
            )
        return names

    @model_validator(mode="after")
    def _cap_not_below_base(self) -> "DispatchConfig":
        if self.backoff_cap_seconds < self.backoff_base_seconds:
            raise ValueError("backoff_cap_seconds must be >= backoff_base_seconds")
        return self


class ProviderConfig(BaseSettings):
    """Provider endpoints, read from EMAIL_API_BASE_URL and friends."""

    model_config = SettingsConfigDict(env_prefix="")

    email_api_base_url: str | None = None
    sms_api_base_url: str | None = None
    push_api_base_url: str | None = None

    def base_url_for(self, channel: str) -> str | None:
        """Return the configured base URL for *channel* (None when unset)."""
        urls = {
            Channel.EMAIL: self.email_api_base_url,
            Channel.SMS: self.sms_api_base_url,
            Channel.PUSH: self.push_api_base_url,
        }
        key = Channel.parse(channel)
        return urls[key] or None
