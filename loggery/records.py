"""Log record model: severity levels and the immutable record value."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import IntEnum
from typing import TypedDict


class Level(IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4

    @classmethod
    def parse(cls, value: Level | int | str) -> Level:
        """Accept a member, its int value, or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, int):
            return cls(value)
        if isinstance(value, str):
            name = value.strip().upper()
            if name.isdigit():
                return cls(int(name))
            name = _ALIASES.get(name, name)
            try:
                return cls[name]
            except KeyError:
                raise ValueError(f"Unknown log level: {value!r}") from None
        raise ValueError(f"Unknown log level of type {type(value).__name__}")

    @classmethod
    def from_stdlib(cls, levelno: int) -> Level:
        if levelno < logging.DEBUG:
            return cls.TRACE
        if levelno < logging.INFO:
            return cls.DEBUG
        if levelno < logging.WARNING:
            return cls.INFO
        if levelno < logging.ERROR:
            return cls.WARN
        return cls.ERROR


_ALIASES = {
    "WARNING": "WARN",
    "CRITICAL": "ERROR",
    "FATAL": "ERROR",
}


class WireRecord(TypedDict):
    level: str
    timestamp: int  # epoch milliseconds
    message: str
    sequence: int


def now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass(frozen=True, slots=True)
class LogRecord:
    level: Level
    timestamp: int
    message: str
    sequence: int

    def to_wire(self) -> WireRecord:
        return {
            "level": self.level.name,
            "timestamp": self.timestamp,
            "message": self.message,
            "sequence": self.sequence,
        }
