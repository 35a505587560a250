"""Log formatters for rollupbridge."""

import json
import time
import traceback
from typing import Any, Dict, Optional

from .core import LogContext, LogEntry, LogFormatter


class JSONFormatter(LogFormatter):
    """JSON log formatter."""

    def __init__(
        self,
        include_context: bool = True,
        include_exception: bool = True,
        include_extra: bool = True,
        include_thread: bool = False,
        timestamp_format: str = "iso",
        indent: Optional[int] = None,
    ):
        self.include_context = include_context
        self.include_exception = include_exception
        self.include_extra = include_extra
        self.include_thread = include_thread
        self.timestamp_format = timestamp_format
        self.indent = indent

    def format(self, entry: LogEntry) -> str:
        data: Dict[str, Any] = {
            "timestamp": self._format_timestamp(entry.timestamp),
            "level": entry.level.value,
            "logger": entry.logger_name,
            "message": entry.message,
        }

        if self.include_context:
            context = {k: v for k, v in entry.context.to_dict().items() if v}
            if context:
                data["context"] = context

        if self.include_exception and entry.exception:
            data["exception"] = {
                "type": type(entry.exception).__name__,
                "message": str(entry.exception),
                "traceback": "".join(
                    traceback.format_exception(
                        type(entry.exception),
                        entry.exception,
                        entry.exception.__traceback__,
                    )
                ),
            }

        if self.include_extra and entry.extra:
            data["extra"] = entry.extra

        if self.include_thread:
            data["thread_id"] = entry.thread_id
            data["process_id"] = entry.process_id

        return json.dumps(data, indent=self.indent, default=str)

    def _format_timestamp(self, timestamp: float) -> str:
        if self.timestamp_format == "iso":
            return (
                time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(timestamp))
                + f".{int((timestamp % 1) * 1000000):06d}Z"
            )
        elif self.timestamp_format == "unix":
            return str(timestamp)
        return time.strftime(self.timestamp_format, time.gmtime(timestamp))


class TextFormatter(LogFormatter):
    """Single-line text formatter with the cross-chain context appended."""

    def __init__(
        self,
        format_string: Optional[str] = None,
        include_context: bool = True,
        timestamp_format: str = "%Y-%m-%d %H:%M:%S",
    ):
        self.include_context = include_context
        self.timestamp_format = timestamp_format
        self.format_string = format_string or "%(timestamp)s [%(level)s] %(logger)s: %(message)s"

    def format(self, entry: LogEntry) -> str:
        line = self.format_string % {
            "timestamp": time.strftime(self.timestamp_format, time.gmtime(entry.timestamp)),
            "level": entry.level.value.upper(),
            "logger": entry.logger_name,
            "message": entry.message,
        }
        if self.include_context:
            context = self._format_context(entry.context)
            if context:
                line = f"{line} | {context}"
        return line

    def _format_context(self, context: LogContext) -> str:
        parts = []
        if context.chain_id is not None:
            parts.append(f"chain={context.chain_id}")
        if context.operation:
            parts.append(f"op={context.operation}")
        if context.tx_hash:
            parts.append(f"tx={context.tx_hash}")
        if context.ticket_id:
            parts.append(f"ticket={context.ticket_id}")
        return " ".join(parts)
