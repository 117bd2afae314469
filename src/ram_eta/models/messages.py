"""Messages exchanged between area workers and the region orchestrator."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class MessageType(str, Enum):
    STATUS = "status"
    DEBUG = "debug"
    SQUARE_COUNT = "squarecount"
    SQUARE = "square"
    ERROR = "error"
    DONE = "done"


@dataclass(slots=True)
class WorkerMessage:
    """Tagged event sent upward by an area worker.

    Only ``DONE`` carries results and only ``ERROR`` carries failure details;
    every other type is progress reporting.
    """

    type: MessageType
    worker_id: Any
    data: Any = None
    stack: Optional[str] = None

    @classmethod
    def status(cls, worker_id: Any, text: str) -> WorkerMessage:
        return cls(MessageType.STATUS, worker_id, text)

    @classmethod
    def debug(cls, worker_id: Any, text: str) -> WorkerMessage:
        return cls(MessageType.DEBUG, worker_id, text)

    @classmethod
    def square_count(cls, worker_id: Any, count: int) -> WorkerMessage:
        return cls(MessageType.SQUARE_COUNT, worker_id, count)

    @classmethod
    def square(cls, worker_id: Any, outcome: str) -> WorkerMessage:
        return cls(MessageType.SQUARE, worker_id, outcome)

    @classmethod
    def error(cls, worker_id: Any, text: str, stack: str | None = None) -> WorkerMessage:
        return cls(MessageType.ERROR, worker_id, text, stack)

    @classmethod
    def done(cls, worker_id: Any, records: list) -> WorkerMessage:
        return cls(MessageType.DONE, worker_id, records)
