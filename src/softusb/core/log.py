"""
Component-tagged logging for the USB stack.

Wraps the standard library logging package with a process-wide threshold
and active sink, both guarded by a reader/writer lock so that protocol
worker threads can log while the configuration is being changed.

Every record carries a ``component`` field naming the subsystem that
emitted it:

    set_level(Level.DEBUG)
    log_info(Component.DEVICE, "device configured", "config", 1)

Key/value arguments are an alternating sequence of ``str`` keys and
values. An item found in key position that is not a ``str``, or a
trailing key with no value, is emitted as the value of a ``!BADKEY``
field and pairing resumes with the next item.
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum, IntEnum
from itertools import count
from pathlib import Path
from typing import IO, TYPE_CHECKING, Any, Callable, Sequence

from softusb.core.rwlock import RWLock

if TYPE_CHECKING:
    from softusb.config import LoggingConfig


BADKEY = "!BADKEY"

# LogRecord attribute holding the ordered key/value pairs
FIELDS_ATTR = "softusb_fields"


class Level(IntEnum):
    """Log severity, numerically aligned with the logging module."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARN = logging.WARNING
    ERROR = logging.ERROR


_LEVEL_NAMES: dict[str, Level] = {
    "debug": Level.DEBUG,
    "info": Level.INFO,
    "warn": Level.WARN,
    "warning": Level.WARN,
    "error": Level.ERROR,
}


def parse_level(value: Level | int | str) -> Level:
    """
    Convert a level name or number to a Level.

    Raises:
        ValueError: If the value names no known level
    """
    if isinstance(value, str):
        level = _LEVEL_NAMES.get(value.strip().lower())
        if level is None:
            raise ValueError(f"Invalid log level: {value!r}")
        return level
    try:
        return Level(value)
    except ValueError:
        raise ValueError(f"Invalid log level: {value!r}") from None


class Component(str, Enum):
    """USB stack subsystems, used for log filtering."""

    DEVICE = "device"
    HOST = "host"
    STACK = "stack"
    HAL = "hal"
    TRANSFER = "transfer"
    ENDPOINT = "endpoint"

    def __str__(self) -> str:
        return self.value


class LogFormat(Enum):
    """Output format for log sinks."""

    TEXT = "text"
    JSON = "json"


def pairs(args: Sequence[Any]) -> list[tuple[str, Any]]:
    """Group alternating key/value arguments into (key, value) pairs."""
    fields: list[tuple[str, Any]] = []
    i = 0
    while i < len(args):
        key = args[i]
        if isinstance(key, str) and i + 1 < len(args):
            fields.append((str(key), args[i + 1]))
            i += 2
        else:
            fields.append((BADKEY, key))
            i += 1
    return fields


def _timestamp(record: logging.LogRecord) -> str:
    return (
        datetime.fromtimestamp(record.created, tz=timezone.utc)
        .astimezone()
        .isoformat(timespec="milliseconds")
    )


def _level_label(levelno: int) -> str:
    try:
        return Level(levelno).name
    except ValueError:
        return logging.getLevelName(levelno)


def _needs_quoting(text: str) -> bool:
    if not text:
        return True
    return any(c.isspace() or c in '="' or not c.isprintable() for c in text)


def _text_value(value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    if _needs_quoting(text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _json_value(value: Any) -> str:
    # NaN/Infinity and unencodable containers fall back to their str() form
    try:
        return json.dumps(value, ensure_ascii=False, default=str, allow_nan=False)
    except (TypeError, ValueError):
        return json.dumps(str(value), ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """Render records as a single line of ``key=value`` tokens.

    Example: time=2025-01-01T10:00:00.000+00:00 level=INFO msg="info message" component=host
    """

    def format(self, record: logging.LogRecord) -> str:
        tokens = [
            f"time={_timestamp(record)}",
            f"level={_text_value(_level_label(record.levelno))}",
            f"msg={_text_value(record.getMessage())}",
        ]
        for key, value in getattr(record, FIELDS_ATTR, ()):
            tokens.append(f"{_text_value(key)}={_text_value(value)}")
        return " ".join(tokens)


class StructuredFormatter(logging.Formatter):
    """Render records as one JSON object per line.

    Keys appear in order: time, level, msg, then the record's fields.
    Repeated keys are kept in order rather than merged.
    """

    def format(self, record: logging.LogRecord) -> str:
        items: list[tuple[str, Any]] = [
            ("time", _timestamp(record)),
            ("level", _level_label(record.levelno)),
            ("msg", record.getMessage()),
        ]
        items.extend(getattr(record, FIELDS_ATTR, ()))
        body = ",".join(f"{_json_value(str(k))}:{_json_value(v)}" for k, v in items)
        return "{" + body + "}"


_FORMATTERS: dict[LogFormat, type[logging.Formatter]] = {
    LogFormat.TEXT: TextFormatter,
    LogFormat.JSON: StructuredFormatter,
}


@dataclass
class SinkOptions:
    """Sink settings.

    A level of None follows a shared threshold read on every call:
    ``level_source`` when given (e.g. ``state.get_level`` of a separate
    LoggingState), otherwise the process-wide get_level().
    """

    level: Level | int | str | None = None
    level_source: Callable[[], Level] | None = None


class Sink:
    """
    A logging destination and format.

    Wraps a stdlib logger. A sink with a fixed level filters on that
    level; otherwise it reads the process-wide threshold on every call,
    so later set_level() calls apply to it.
    """

    def __init__(
        self,
        logger: logging.Logger,
        level: Level | int | str | None = None,
        level_source: Callable[[], Level] | None = None,
    ) -> None:
        self.logger = logger
        self._level = parse_level(level) if level is not None else None
        self._level_source = level_source or get_level

    @property
    def threshold(self) -> Level:
        """Effective minimum level."""
        if self._level is not None:
            return self._level
        return self._level_source()

    def enabled(self, level: int) -> bool:
        """Check whether a record at level would be written."""
        return level >= self.threshold

    def log(self, level: int, msg: str, *args: Any) -> None:
        """Emit a record if level meets the threshold."""
        if not self.enabled(level):
            return
        self.logger.log(level, msg, extra={FIELDS_ATTR: pairs(args)})

    def debug(self, msg: str, *args: Any) -> None:
        """Emit a debug record."""
        self.log(Level.DEBUG, msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        """Emit an info record."""
        self.log(Level.INFO, msg, *args)

    def warn(self, msg: str, *args: Any) -> None:
        """Emit a warning record."""
        self.log(Level.WARN, msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        """Emit an error record."""
        self.log(Level.ERROR, msg, *args)

    def close(self) -> None:
        """
        Close the sink's handlers.

        File handlers release their file; stream handlers flush and leave
        the wrapped stream open. Handler.close takes the handler lock, so
        a write already in progress finishes first.
        """
        for handler in list(self.logger.handlers):
            handler.close()


_sink_ids = count(1)


def _build_sink(
    handler: logging.Handler,
    fmt: LogFormat,
    options: SinkOptions | None,
    level_source: Callable[[], Level] | None = None,
) -> Sink:
    options = options or SinkOptions()
    handler.setFormatter(_FORMATTERS[fmt]())
    # Instantiated directly to keep sinks out of the logging registry
    logger = logging.Logger(f"softusb.sink.{next(_sink_ids)}")
    logger.propagate = False
    logger.addHandler(handler)
    return Sink(logger, options.level, level_source or options.level_source)


def new_text_logger(writer: IO[str], options: SinkOptions | None = None) -> Sink:
    """
    Create a sink writing ``key=value`` lines to a text stream.

    Args:
        writer: Destination stream; concurrent writes are serialised
            by the handler lock
        options: Sink options; without a level the sink follows the
            process-wide threshold

    Returns:
        New Sink
    """
    return _build_sink(logging.StreamHandler(writer), LogFormat.TEXT, options)


def new_structured_logger(writer: IO[str], options: SinkOptions | None = None) -> Sink:
    """
    Create a sink writing one JSON object per line to a text stream.

    Args:
        writer: Destination stream
        options: Sink options; without a level the sink follows the
            process-wide threshold

    Returns:
        New Sink
    """
    return _build_sink(logging.StreamHandler(writer), LogFormat.JSON, options)


def _component_tag(component: Component | str) -> str:
    if isinstance(component, Component):
        return component.value
    return str(component)


class LoggingState:
    """
    Threshold and active sink shared by all logging call sites.

    Readers (get_level, the sink lookup of every log call) hold the lock
    shared; set_level, set_logger and configure hold it exclusively. The
    lock is released before the record is handed to the sink.
    """

    def __init__(self, level: Level | int | str = Level.INFO, logger: Sink | None = None) -> None:
        self._lock = RWLock()
        self._level = parse_level(level)
        if logger is None:
            logger = _build_sink(
                logging.StreamHandler(sys.stderr), LogFormat.TEXT, None, self.get_level
            )
        self._logger = logger

    def set_level(self, level: Level | int | str) -> None:
        """Replace the threshold."""
        level = parse_level(level)
        with self._lock.write_locked():
            self._level = level

    def get_level(self) -> Level:
        """Return the current threshold."""
        with self._lock.read_locked():
            return self._level

    def set_logger(self, logger: Sink) -> Sink:
        """
        Replace the active sink.

        Returns:
            The sink that was replaced; it is left open

        Raises:
            TypeError: If logger is None
        """
        if logger is None:
            raise TypeError("logger must not be None")
        with self._lock.write_locked():
            previous, self._logger = self._logger, logger
        return previous

    def get_logger(self) -> Sink:
        """Return the active sink."""
        with self._lock.read_locked():
            return self._logger

    def configure(self, level: Level | int | str, logger: Sink) -> Sink:
        """
        Replace threshold and sink in a single exclusive section.

        Log calls see either the old pair or the new pair, never a mix.

        Returns:
            The sink that was replaced; it is left open
        """
        if logger is None:
            raise TypeError("logger must not be None")
        level = parse_level(level)
        with self._lock.write_locked():
            previous, self._logger = self._logger, logger
            self._level = level
        return previous

    def log(self, level: Level, component: Component | str, msg: str, *args: Any) -> None:
        """Emit through the active sink with a leading component field."""
        logger = self.get_logger()
        logger.log(level, msg, "component", _component_tag(component), *args)


_state = LoggingState()


def set_level(level: Level | int | str) -> None:
    """Set the minimum level for all USB stack logging."""
    _state.set_level(level)


def get_level() -> Level:
    """Return the current minimum level."""
    return _state.get_level()


def set_logger(logger: Sink) -> None:
    """Replace the active sink used by the log_* functions."""
    _state.set_logger(logger)


def get_logger() -> Sink:
    """Return the active sink."""
    return _state.get_logger()


def set_log_format(fmt: LogFormat | str) -> None:
    """
    Replace the active sink with a stderr sink of the given format.

    The replaced sink is closed.
    """
    sink = _build_sink(logging.StreamHandler(sys.stderr), LogFormat(fmt), None)
    _state.set_logger(sink).close()


def configure_logging(config: LoggingConfig) -> Sink:
    """
    Apply a logging configuration to the process-wide state.

    Threshold and sink are swapped together and the replaced sink is
    closed, releasing any log file it held.

    Args:
        config: Loaded logging configuration

    Returns:
        The newly installed sink

    Raises:
        ValueError: If the level or format is invalid
    """
    level = parse_level(config.level)
    fmt = LogFormat(config.format)

    if config.output == "stderr":
        handler: logging.Handler = logging.StreamHandler(sys.stderr)
    elif config.output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        path = Path(config.output).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(path, mode="a", encoding="utf-8")

    sink = _build_sink(handler, fmt, None)
    _state.configure(level, sink).close()
    return sink


def log_debug(component: Component | str, msg: str, *args: Any) -> None:
    """Log a debug message for the given component."""
    _state.log(Level.DEBUG, component, msg, *args)


def log_info(component: Component | str, msg: str, *args: Any) -> None:
    """Log an info message for the given component."""
    _state.log(Level.INFO, component, msg, *args)


def log_warn(component: Component | str, msg: str, *args: Any) -> None:
    """Log a warning message for the given component."""
    _state.log(Level.WARN, component, msg, *args)


def log_error(component: Component | str, msg: str, *args: Any) -> None:
    """Log an error message for the given component."""
    _state.log(Level.ERROR, component, msg, *args)
