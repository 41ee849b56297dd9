"""
Shared utilities for the device and host stacks.

Sentinel USB errors, transfer completion status, and component-tagged
logging.
"""

from softusb.core.errors import (
    ErrorKind,
    TransferStatus,
    USBError,
    all_kinds,
    classify_usb_error,
    fails_with,
    status_error,
    status_name,
)
from softusb.core.log import (
    BADKEY,
    Component,
    Level,
    LogFormat,
    LoggingState,
    Sink,
    SinkOptions,
    StructuredFormatter,
    TextFormatter,
    configure_logging,
    get_level,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warn,
    new_structured_logger,
    new_text_logger,
    parse_level,
    set_level,
    set_log_format,
    set_logger,
)
from softusb.core.rwlock import RWLock

__all__ = [
    # Errors
    "ErrorKind",
    "TransferStatus",
    "USBError",
    "all_kinds",
    "classify_usb_error",
    "fails_with",
    "status_error",
    "status_name",
    # Logging
    "BADKEY",
    "Component",
    "Level",
    "LogFormat",
    "LoggingState",
    "Sink",
    "SinkOptions",
    "StructuredFormatter",
    "TextFormatter",
    "configure_logging",
    "get_level",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warn",
    "new_structured_logger",
    "new_text_logger",
    "parse_level",
    "set_level",
    "set_log_format",
    "set_logger",
    # Locking
    "RWLock",
]
