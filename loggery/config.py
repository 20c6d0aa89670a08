from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from loggery.records import Level


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOGGERY_", env_file=".env", env_file_encoding="utf-8")

    # App
    app_name: str = "loggery"
    log_level: str = "INFO"  # level for the stdlib root logger

    # CORS — comma-separated list of allowed origins
    cors_origins: str = "http://localhost:3000"

    # Ring buffer
    buffer_capacity: int = Field(default=1000, gt=0)

    # Viewer defaults
    default_min_level: Level = Level.TRACE
    default_refresh_ms: int = Field(default=1000, gt=0)
    min_refresh_ms: int = Field(default=200, gt=0)
    max_refresh_ms: int = Field(default=60_000, gt=0)

    # Viewer transport limits
    max_pending_batches: int = Field(default=64, gt=0)
    send_timeout_ms: int = Field(default=2000, gt=0)
    max_transient_failures: int = Field(default=3, ge=0)
    idle_timeout_s: float = Field(default=300.0, ge=0)  # 0 disables

    # Sinks
    log_file: str | None = None  # mirror of published records, e.g. "./.loggery.log"
    capture_stdlib: bool = True  # attach PublisherHandler to the root logger

    @field_validator("default_min_level", mode="before")
    @classmethod
    def parse_level(cls, value: object) -> Level:
        return Level.parse(value)  # type: ignore[arg-type]

    @model_validator(mode="after")
    def clamp_refresh(self) -> "Settings":
        """Keep the refresh bounds ordered and the default inside them."""
        if self.max_refresh_ms < self.min_refresh_ms:
            raise ValueError("max_refresh_ms must be >= min_refresh_ms")
        self.default_refresh_ms = self.clamp_refresh_ms(self.default_refresh_ms)
        return self

    def clamp_refresh_ms(self, value: int) -> int:
        return max(self.min_refresh_ms, min(self.max_refresh_ms, value))


settings = Settings()
