"""Hand-off points between the frame worker and the presentation side."""

from __future__ import annotations

import threading
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class LatestValue(Generic[T]):
    """Single-slot, latest-value-wins box guarded by one lock.

    Readers never block on the writer for longer than a pointer swap and
    never see a half-written value.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._value: Optional[T] = None
        self._version = 0

    def publish(self, value: T) -> int:
        with self._lock:
            self._value = value
            self._version += 1
            return self._version

    def get(self) -> tuple[Optional[T], int]:
        with self._lock:
            return self._value, self._version


class Command(str, Enum):
    RESET = "reset"
    CANCEL_COUNTDOWN = "cancel_countdown"
    MARK = "mark"


# order in which pending commands are applied
_APPLY_ORDER = (Command.RESET, Command.CANCEL_COUNTDOWN, Command.MARK)


class CommandInbox:
    """Pending user commands. Posting a command that is already pending is a no-op."""

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: set[Command] = set()

    def post(self, command: Command) -> None:
        with self._lock:
            self._pending.add(Command(command))

    def drain(self) -> list[Command]:
        with self._lock:
            pending, self._pending = self._pending, set()
        return [c for c in _APPLY_ORDER if c in pending]
