"""Log handlers for rollupbridge."""

import sys
from typing import Any, Dict, List, Optional

from .core import LogEntry, LogHandler


class ConsoleHandler(LogHandler):
    """Console log handler."""

    def __init__(self, stream: Any = None):
        super().__init__()
        self.stream = stream or sys.stdout

    def emit(self, entry: LogEntry) -> None:
        with self._lock:
            self.stream.write(self.format(entry) + "\n")
            self.stream.flush()

    def close(self) -> None:
        with self._lock:
            self.stream.flush()


class MemoryHandler(LogHandler):
    """Keeps the most recent entries in memory."""

    def __init__(self, max_size: int = 1000):
        super().__init__()
        self.max_size = max_size
        self.buffer: List[Dict[str, Any]] = []

    def emit(self, entry: LogEntry) -> None:
        with self._lock:
            self.buffer.append(
                {
                    "timestamp": entry.timestamp,
                    "level": entry.level.value,
                    "message": entry.message,
                    "logger_name": entry.logger_name,
                    "context": entry.context.to_dict(),
                    "formatted": self.format(entry),
                }
            )
            if len(self.buffer) > self.max_size:
                self.buffer.pop(0)

    def get_logs(self, level: Optional[str] = None) -> List[Dict[str, Any]]:
        with self._lock:
            if level is None:
                return list(self.buffer)
            return [log for log in self.buffer if log["level"] == level]

    def clear_logs(self) -> None:
        with self._lock:
            self.buffer.clear()

    def close(self) -> None:
        self.clear_logs()
