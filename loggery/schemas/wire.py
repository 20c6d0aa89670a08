from datetime import datetime
from enum import IntEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from loggery.records import Level, LogRecord


class Status(IntEnum):
    OK = 0  # data follows
    HEARTBEAT = 1  # no new data
    TERMINATED = 2  # subscription terminated


class RecordOut(BaseModel):
    level: str
    timestamp: int  # epoch milliseconds
    message: str
    sequence: int

    @classmethod
    def from_record(cls, record: LogRecord) -> "RecordOut":
        return cls(**record.to_wire())


class LogBatch(BaseModel):
    status: Status
    records: list[RecordOut] = Field(default_factory=list)
    cursor: int = 0
    reason: str | None = None

    @classmethod
    def of(cls, records: list[LogRecord], cursor: int) -> "LogBatch":
        return cls(
            status=Status.OK if records else Status.HEARTBEAT,
            records=[RecordOut.from_record(r) for r in records],
            cursor=cursor,
        )

    @classmethod
    def terminated(cls, reason: str, cursor: int) -> "LogBatch":
        return cls(status=Status.TERMINATED, cursor=cursor, reason=reason)


class ViewerControl(BaseModel):
    """Inbound WebSocket frame: {"min_level": "WARN"}, {"refresh_ms": 500}, {"type": "ping"|"close"}."""

    model_config = ConfigDict(extra="forbid")

    type: str | None = None
    min_level: Level | None = None
    refresh_ms: int | None = Field(default=None, gt=0)

    @field_validator("min_level", mode="before")
    @classmethod
    def parse_level(cls, value: object) -> Level | None:
        return None if value is None else Level.parse(value)  # type: ignore[arg-type]

    @field_validator("type")
    @classmethod
    def known_type(cls, value: str | None) -> str | None:
        if value not in (None, "ping", "close"):
            raise ValueError(f"Unknown control type: {value!r}")
        return value


class SubscriptionInfo(BaseModel):
    id: str
    state: str
    min_level: str
    refresh_ms: int
    cursor: int
    delivered: int
    connected_at: datetime
