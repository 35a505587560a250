"""Core logging interfaces and data structures for rollupbridge.

Structured log entries carry the cross-chain context of the operation that
produced them (chain id, transaction hash, ticket id), so a deposit can be
followed from its L1 submission to its L2 redemption in the logs.
"""

import json
import os
import sys
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional


class LogLevel(Enum):
    """Log levels."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


_LEVEL_ORDER = {level: i for i, level in enumerate(LogLevel)}


@dataclass
class LogContext:
    """Log context information."""

    chain_id: Optional[int] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    tx_hash: Optional[str] = None
    ticket_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def merge(self, other: Optional["LogContext"]) -> "LogContext":
        """Overlay ``other`` on top of this context."""
        if other is None:
            return self
        return LogContext(
            chain_id=other.chain_id if other.chain_id is not None else self.chain_id,
            component=other.component or self.component,
            operation=other.operation or self.operation,
            tx_hash=other.tx_hash or self.tx_hash,
            ticket_id=other.ticket_id or self.ticket_id,
            metadata={**self.metadata, **other.metadata},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert context to dictionary."""
        return {
            "chain_id": self.chain_id,
            "component": self.component,
            "operation": self.operation,
            "tx_hash": self.tx_hash,
            "ticket_id": self.ticket_id,
            "metadata": self.metadata,
        }


@dataclass
class LogEntry:
    """Log entry data structure."""

    timestamp: float
    level: LogLevel
    message: str
    logger_name: str
    context: LogContext
    exception: Optional[BaseException] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    thread_id: Optional[int] = None
    process_id: Optional[int] = None

    def __post_init__(self):
        if self.thread_id is None:
            self.thread_id = threading.get_ident()
        if self.process_id is None:
            self.process_id = os.getpid()

    def to_dict(self) -> Dict[str, Any]:
        """Convert log entry to dictionary."""
        return {
            "timestamp": self.timestamp,
            "level": self.level.value,
            "message": self.message,
            "logger_name": self.logger_name,
            "context": self.context.to_dict(),
            "exception": str(self.exception) if self.exception else None,
            "extra": self.extra,
            "thread_id": self.thread_id,
            "process_id": self.process_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class LogConfig:
    """Log configuration."""

    def __init__(
        self,
        name: str = "rollupbridge",
        level: LogLevel = LogLevel.INFO,
        format_type: str = "text",
        handlers: Optional[List[str]] = None,
    ):
        self.name = name
        self.level = level
        self.format_type = format_type
        self.handlers = handlers or ["console"]

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Build configuration from ``BRIDGE_LOG_LEVEL`` / ``BRIDGE_LOG_FORMAT``."""
        level = LogLevel(os.environ.get("BRIDGE_LOG_LEVEL", "info").lower())
        format_type = os.environ.get("BRIDGE_LOG_FORMAT", "text").lower()
        return cls(level=level, format_type=format_type)


class LogFormatter(ABC):
    """Abstract log formatter."""

    @abstractmethod
    def format(self, entry: LogEntry) -> str:
        """Format log entry."""


class LogHandler(ABC):
    """Abstract log handler."""

    def __init__(self, name: Optional[str] = None):
        self.name = name or self.__class__.__name__
        self.formatter: Optional[LogFormatter] = None
        self.level: LogLevel = LogLevel.DEBUG
        self._lock = threading.RLock()

    def set_formatter(self, formatter: LogFormatter) -> None:
        with self._lock:
            self.formatter = formatter

    def set_level(self, level: LogLevel) -> None:
        with self._lock:
            self.level = level

    def should_handle(self, entry: LogEntry) -> bool:
        with self._lock:
            return _LEVEL_ORDER[entry.level] >= _LEVEL_ORDER[self.level]

    def format(self, entry: LogEntry) -> str:
        if self.formatter:
            return self.formatter.format(entry)
        return (
            f"{entry.timestamp:.3f} [{entry.level.value.upper()}] "
            f"{entry.logger_name}: {entry.message}"
        )

    @abstractmethod
    def emit(self, entry: LogEntry) -> None:
        """Emit log entry."""

    def handle(self, entry: LogEntry) -> None:
        if self.should_handle(entry):
            self.emit(entry)

    def close(self) -> None:
        """Release handler resources."""


class LogManager:
    """Owns handlers and loggers and routes entries between them."""

    def __init__(self, config: Optional[LogConfig] = None):
        self.config = config or LogConfig()
        self.loggers: Dict[str, "BridgeLogger"] = {}
        self.handlers: Dict[str, LogHandler] = {}
        self._lock = threading.RLock()
        self._context = LogContext()

        self._setup_defaults()

    def _setup_defaults(self) -> None:
        from .formatters import JSONFormatter, TextFormatter
        from .handlers import ConsoleHandler

        console = ConsoleHandler(stream=sys.stderr)
        if self.config.format_type == "json":
            console.set_formatter(JSONFormatter())
        else:
            console.set_formatter(TextFormatter())
        self.add_handler("console", console)

    def get_logger(self, name: str) -> "BridgeLogger":
        with self._lock:
            if name not in self.loggers:
                self.loggers[name] = BridgeLogger(name, self)
            return self.loggers[name]

    def add_handler(self, name: str, handler: LogHandler) -> None:
        with self._lock:
            self.handlers[name] = handler
            if name not in self.config.handlers:
                self.config.handlers.append(name)

    def remove_handler(self, name: str) -> None:
        with self._lock:
            self.handlers.pop(name, None)
            if name in self.config.handlers:
                self.config.handlers.remove(name)

    def set_context(self, context: LogContext) -> None:
        with self._lock:
            self._context = context

    def get_context(self) -> LogContext:
        with self._lock:
            return self._context

    def log(
        self,
        level: LogLevel,
        message: str,
        logger_name: str = "root",
        context: Optional[LogContext] = None,
        exception: Optional[BaseException] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        with self._lock:
            entry = LogEntry(
                timestamp=time.time(),
                level=level,
                message=message,
                logger_name=logger_name,
                context=self._context.merge(context),
                exception=exception,
                extra=extra or {},
            )

            for handler_name in self.config.handlers:
                handler = self.handlers.get(handler_name)
                if handler is not None:
                    handler.handle(entry)

    def shutdown(self) -> None:
        with self._lock:
            for handler in self.handlers.values():
                handler.close()
            self.loggers.clear()
            self.handlers.clear()


class BridgeLogger:
    """Named logger.

    Without an explicit manager the logger follows the global one, so
    module-level loggers keep working after :func:`setup_logging`.
    """

    def __init__(
        self,
        name: str,
        manager: Optional[LogManager] = None,
        level: Optional[LogLevel] = None,
    ):
        self.name = name
        self._manager = manager
        self.level = level
        self._bound = LogContext()

    @property
    def manager(self) -> LogManager:
        return self._manager if self._manager is not None else get_log_manager()

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def is_enabled_for(self, level: LogLevel) -> bool:
        threshold = self.level if self.level is not None else self.manager.config.level
        return _LEVEL_ORDER[level] >= _LEVEL_ORDER[threshold]

    def bind(self, **fields: Any) -> "BridgeLogger":
        """Return a child logger whose entries always carry ``fields``."""
        child = BridgeLogger(self.name, self._manager, self.level)
        known = {k: v for k, v in fields.items() if k in LogContext.__dataclass_fields__}
        unknown = {k: v for k, v in fields.items() if k not in known}
        child._bound = replace(
            self._bound.merge(LogContext(**known)),
            metadata={**self._bound.metadata, **unknown},
        )
        return child

    def log(
        self,
        level: LogLevel,
        message: str,
        context: Optional[LogContext] = None,
        exception: Optional[BaseException] = None,
        extra: Optional[Dict[str, Any]] = None,
    ) -> None:
        if self.is_enabled_for(level):
            self.manager.log(
                level=level,
                message=message,
                logger_name=self.name,
                context=self._bound.merge(context),
                exception=exception,
                extra=extra,
            )

    def trace(self, message: str, **kwargs) -> None:
        self.log(LogLevel.TRACE, message, **kwargs)

    def debug(self, message: str, **kwargs) -> None:
        self.log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs) -> None:
        self.log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs) -> None:
        self.log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs) -> None:
        self.log(LogLevel.ERROR, message, **kwargs)

    def critical(self, message: str, **kwargs) -> None:
        self.log(LogLevel.CRITICAL, message, **kwargs)

    def exception(self, message: str, **kwargs) -> None:
        exc = sys.exc_info()[1]
        if exc is not None:
            kwargs["exception"] = exc
        self.log(LogLevel.ERROR, message, **kwargs)


# Global log manager instance
_global_manager: Optional[LogManager] = None
_global_lock = threading.Lock()


def get_log_manager() -> LogManager:
    global _global_manager
    with _global_lock:
        if _global_manager is None:
            _global_manager = LogManager(LogConfig.from_env())
        return _global_manager


_module_loggers: Dict[str, BridgeLogger] = {}


def get_logger(name: str = "rollupbridge") -> BridgeLogger:
    """Get a logger that follows the global manager."""
    with _global_lock:
        if name not in _module_loggers:
            _module_loggers[name] = BridgeLogger(name)
        return _module_loggers[name]


def setup_logging(config: LogConfig) -> LogManager:
    """Replace the global log manager."""
    global _global_manager
    with _global_lock:
        if _global_manager is not None:
            _global_manager.shutdown()
        _global_manager = LogManager(config)
        return _global_manager


def shutdown_logging() -> None:
    global _global_manager
    with _global_lock:
        if _global_manager is not None:
            _global_manager.shutdown()
            _global_manager = None
