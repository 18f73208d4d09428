"""Snowflake-style identifier generation."""

from __future__ import annotations

import threading
import time

_MACHINE_MASK = 0x3FF
_SEQUENCE_LIMIT = 4096


class IDGenerator:
    """Monotonic 64-bit ids: milliseconds << 22 | machine << 12 | sequence."""

    def __init__(self, machine_id: int = 0) -> None:
        self._machine_id = machine_id & _MACHINE_MASK
        self._lock = threading.Lock()
        self._last_ms = 0
        self._sequence = 0

    def generate(self) -> str:
        with self._lock:
            now = _now_ms()
            if now == self._last_ms:
                self._sequence += 1
                if self._sequence >= _SEQUENCE_LIMIT:
                    while now <= self._last_ms:
                        time.sleep(0.0001)
                        now = _now_ms()
                    self._sequence = 0
            else:
                self._sequence = 0
            self._last_ms = now
            return str((now << 22) | (self._machine_id << 12) | self._sequence)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000
