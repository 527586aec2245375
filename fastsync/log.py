"""Named loggers registered per topic on top of the global logger."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from fastsync import log_setup

MERKLE_TREE = "log:MerkleTree"
PRIOR_SYNC = "log:PriorSync"
SYNC = "log:Protocols"
HEADER_SYNC = "log:HeaderSync"
TRANSPORT = "log:Transport"
DATA_SYNC = "log:DataSync"

_LOG_DIR = "logs"
_LOG_FILE_NAME = ""


@dataclass
class LoggingMetadata:
    """Where a topic's logs are kept."""

    dir: str = ""
    keep_logs: bool = False


def _flush_chain(logger: logging.Logger) -> None:
    current: logging.Logger | None = logger
    while current is not None:
        for handler in current.handlers:
            handler.flush()
        current = current.parent if current.propagate else None


@dataclass
class NamedLogging:
    """A logger bound to one topic."""

    topic: str = ""
    file_name: str = ""
    logger: logging.Logger | None = None
    metadata: LoggingMetadata | None = None

    def bind(self, global_logger: logging.Logger) -> "NamedLogging":
        """Derive this topic's logger from ``global_logger``; returns self."""
        self.logger = global_logger.getChild(self.topic) if self.topic else global_logger
        return self

    def _require_logger(self) -> logging.Logger:
        if self.logger is None:
            raise RuntimeError("NamedLogger is not initialized")
        return self.logger

    def close(self) -> None:
        """Flush pending output and close this logger's handlers."""
        logger = self._require_logger()
        _flush_chain(logger)
        log_setup.shutdown(logger)

    def sync(self) -> None:
        """Flush pending output of this logger and its parents."""
        _flush_chain(self._require_logger())


@dataclass
class AsyncLogger:
    """Registry of topic loggers sharing one global logger."""

    global_logger: logging.Logger | None = None
    loggers: dict[str, NamedLogging] = field(default_factory=dict)

    def _require_global(self) -> logging.Logger:
        if self.global_logger is None:
            raise RuntimeError("GlobalLogger is not initialized")
        return self.global_logger

    def named_logger(self, topic: str, file_name: str = "") -> NamedLogging:
        """Return the logger for ``topic``, creating it on first use."""
        existing = self.loggers.get(topic)
        if existing is not None and existing.logger is not None:
            return existing
        named = NamedLogging(topic=topic, file_name=file_name).bind(self._require_global())
        self.loggers[topic] = named
        return named

    def get_named_logger(self, topic: str) -> NamedLogging:
        """Return the logger already registered for ``topic``."""
        try:
            return self.loggers[topic]
        except KeyError:
            raise LookupError(f"Named logger for topic '{topic}' not found") from None

    def sync(self) -> None:
        """Flush the global logger."""
        _flush_chain(self._require_global())

    def shutdown(self) -> None:
        """Flush and close the global logger."""
        log_setup.shutdown(self._require_global())

    def close(self, topic: str) -> None:
        """Close the logger registered for ``topic``."""
        self.get_named_logger(topic).close()


_instance: AsyncLogger | None = None
_instance_lock = threading.Lock()


def get_async_logger() -> AsyncLogger:
    """Return the process-wide logger registry, creating it on first use."""
    global _instance
    with _instance_lock:
        if _instance is None:
            global_logger, _ = log_setup.setup(_LOG_DIR, _LOG_FILE_NAME)
            _instance = AsyncLogger(global_logger=global_logger)
        return _instance


def logger(name: str) -> logging.Logger:
    """Return the logger for topic ``name``."""
    named = get_async_logger().named_logger(name, "").logger
    assert named is not None
    return named