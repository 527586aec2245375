"""Process-wide logger setup: console output plus optional telemetry settings."""

from __future__ import annotations

import logging
import os
import sys
import threading
from dataclasses import dataclass, field

SERVICE_NAME = "fastsync"
VERSION = "0.1.0"
DEVELOPMENT = False
LOG_LEVEL = "info"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "fatal": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

_COLORS = {
    logging.DEBUG: "\x1b[36m",
    logging.INFO: "\x1b[32m",
    logging.WARNING: "\x1b[33m",
    logging.ERROR: "\x1b[31m",
    logging.CRITICAL: "\x1b[35m",
}
_RESET = "\x1b[0m"


@dataclass(frozen=True)
class LogConfig:
    """Settings the global logger is built from."""

    service_name: str = SERVICE_NAME
    version: str = VERSION
    development: bool = DEVELOPMENT
    level: str = LOG_LEVEL
    console_enabled: bool = True
    console_format: str = "pretty"
    console_color: bool = True
    errors_to_stderr: bool = True
    file_enabled: bool = False
    file_dir: str = ""
    file_name: str = ""
    otel_enabled: bool = False
    otel_endpoint: str = ""
    otel_protocol: str = "grpc"
    otel_insecure: bool = True
    otel_username: str = ""
    otel_password: str = field(default="", repr=False)
    otel_batch_size: int = 512
    otel_export_interval: float = 5.0
    tracing_enabled: bool = False
    tracing_sampler: str = ""


class _ConsoleHandler(logging.Handler):
    """Writes records to stdout, and errors to stderr when asked to."""

    def __init__(self, errors_to_stderr: bool, color: bool) -> None:
        super().__init__()
        self._errors_to_stderr = errors_to_stderr
        self._color = color

    def _stream_for(self, record: logging.LogRecord):
        if self._errors_to_stderr and record.levelno >= logging.ERROR:
            return sys.stderr
        return sys.stdout

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            stream = self._stream_for(record)
            isatty = getattr(stream, "isatty", None)
            if self._color and callable(isatty) and isatty():
                message = f"{_COLORS.get(record.levelno, '')}{message}{_RESET}"
            stream.write(message + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def flush(self) -> None:
        for stream in (sys.stdout, sys.stderr):
            flush = getattr(stream, "flush", None)
            if callable(flush):
                flush()


def _level_number(name: str) -> int:
    try:
        return _LEVELS[name.lower()]
    except KeyError:
        raise ValueError(f"unknown log level: {name!r}") from None


def _config_for(log_dir: str, log_file_name: str) -> LogConfig:
    endpoint = os.environ.get("OTEL_EXPORTER_OTLP_ENDPOINT", "")
    if not endpoint:
        return LogConfig(file_dir=log_dir, file_name=log_file_name)
    return LogConfig(
        file_dir=log_dir,
        file_name=log_file_name,
        otel_enabled=True,
        otel_endpoint=endpoint,
        otel_username=os.environ.get("OTEL_USERNAME", ""),
        otel_password=os.environ.get("OTEL_PASSWORD", ""),
        tracing_enabled=True,
        tracing_sampler="always",
    )


def _build_logger(config: LogConfig) -> tuple[logging.Logger, list[str]]:
    level = _level_number(config.level)
    warnings: list[str] = []
    logger = logging.getLogger(config.service_name)
    logger.setLevel(level)
    logger.propagate = False
    if config.console_enabled:
        handler = _ConsoleHandler(config.errors_to_stderr, config.console_color)
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
        )
        logger.addHandler(handler)
    if config.otel_enabled:
        warnings.append(
            f"telemetry export to {config.otel_endpoint} requested but no exporter "
            "is available; logs stay on the console"
        )
    return logger, warnings


_lock = threading.Lock()
_initialized = False
_result: tuple[logging.Logger, list[str]] | None = None
_init_error: Exception | None = None


def setup(log_dir: str, log_file_name: str) -> tuple[logging.Logger, list[str]]:
    """Build the global logger once and return it with any setup warnings.

    Later calls return the outcome of the first call, whatever their arguments.
    File output stays disabled; telemetry settings follow the
    ``OTEL_EXPORTER_OTLP_ENDPOINT`` environment variable.
    """
    global _initialized, _result, _init_error
    with _lock:
        if not _initialized:
            try:
                _result = _build_logger(_config_for(log_dir, log_file_name))
            except Exception as err:
                _init_error = err
            _initialized = True
    if _init_error is not None:
        raise _init_error
    assert _result is not None
    logger, warnings = _result
    return logger, list(warnings)


def shutdown(logger: logging.Logger | None) -> None:
    """Flush and close every handler attached to ``logger``."""
    if logger is None:
        return
    for handler in list(logger.handlers):
        handler.flush()
        handler.close()
        logger.removeHandler(handler)