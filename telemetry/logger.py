from __future__ import annotations

import json
import logging
import os
import threading
import time
from collections import deque
from typing import Any, Deque, Dict, Optional, TextIO

from robot.api import TelemetrySink

logger = logging.getLogger(__name__)


class TelemetryLogger(TelemetrySink):
    """Structured JSONL logger for drivetrain telemetry.

    Thread-safe, append-only logging of key/value records, one JSON object per
    line. Write failures are logged and dropped; the control loop never sees
    them.
    """

    def __init__(self, path: str) -> None:
        self.path = path
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        self._lock = threading.Lock()
        self._fp: Optional[TextIO] = open(self.path, "a", encoding="utf-8")

    def publish(self, key: str, value: Any) -> None:
        """Append a single {t, key, value} record."""
        self.log_step({"t": time.time(), "key": key, "value": value})

    def log_step(self, record: Dict[str, Any]) -> None:
        """Append a single telemetry record to the JSONL file."""
        if self._fp is None:
            return
        try:
            line = json.dumps(record, separators=(",", ":"), default=str)
            with self._lock:
                self._fp.write(line + "\n")
                self._fp.flush()
        except (OSError, TypeError, ValueError) as exc:
            logger.debug("Dropped telemetry record: %s", exc)

    def close(self) -> None:
        if self._fp is not None:
            self._fp.close()
            self._fp = None


class MemoryTelemetry(TelemetrySink):
    """In-process sink keeping the latest value per key and a record history.

    The history is bounded to the most recent `max_records` entries.
    """

    def __init__(self, max_records: int = 10000) -> None:
        self.latest: Dict[str, Any] = {}
        self.records: Deque[Dict[str, Any]] = deque(maxlen=max_records)
        self._lock = threading.Lock()

    def publish(self, key: str, value: Any) -> None:
        with self._lock:
            self.latest[key] = value
            self.records.append({"key": key, "value": value})
