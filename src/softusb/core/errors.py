"""
USB protocol error taxonomy.

Sentinel error kinds shared by the device and host stacks, the transfer
completion status enumeration, and helpers to convert between them.
"""

from __future__ import annotations

import errno
from enum import Enum, IntEnum

import usb.core


class ErrorKind(Enum):
    """Sentinel USB error conditions.

    Kinds are identity-compared singletons. The message is descriptive only
    and is never used to decide whether two errors are the same kind.
    """

    STALL = (1, "endpoint stalled")
    NAK = (2, "NAK received")
    TIMEOUT = (3, "transfer timeout")
    CANCELLED = (4, "transfer cancelled")
    OVERRUN = (5, "data overrun")
    UNDERRUN = (6, "data underrun")
    CRC = (7, "CRC error")
    BIT_STUFF = (8, "bit stuffing error")
    PROTOCOL = (9, "protocol error")
    NO_DEVICE = (10, "device not present")
    NOT_CONFIGURED = (11, "device not configured")
    INVALID_ENDPOINT = (12, "invalid endpoint")
    INVALID_STATE = (13, "invalid device state")
    INVALID_REQUEST = (14, "invalid request")
    BUFFER_TOO_SMALL = (15, "buffer too small")
    NOT_SUPPORTED = (16, "not supported")
    BUSY = (17, "resource busy")
    NO_MEMORY = (18, "insufficient memory")
    BANDWIDTH = (19, "insufficient bandwidth")  # isochronous scheduling
    FRAME_OVERRUN = (20, "frame overrun")  # isochronous scheduling
    DESCRIPTOR_TOO_SHORT = (21, "descriptor too short")
    DESCRIPTOR_TYPE_MISMATCH = (22, "descriptor type mismatch")
    SETUP_PACKET_TOO_SHORT = (23, "setup packet too short")
    ALREADY_RUNNING = (24, "already running")
    NOT_RUNNING = (25, "not running")
    INVALID_PARAMETER = (26, "invalid parameter")
    NO_RESOURCES = (27, "no resources available")  # e.g. pending transfer slots
    RESET = (28, "bus reset")

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message

    def __str__(self) -> str:
        return self.message

    def error(self, detail: str | None = None) -> USBError:
        """Build a raisable USBError of this kind."""
        return USBError(self, detail)


class USBError(Exception):
    """Exception carrying a sentinel ErrorKind."""

    def __init__(self, kind: ErrorKind, detail: str | None = None) -> None:
        self.kind = kind
        self.detail = detail
        if detail:
            super().__init__(f"{kind.message}: {detail}")
        else:
            super().__init__(kind.message)


def all_kinds() -> tuple[ErrorKind, ...]:
    """Return every sentinel kind in declaration order."""
    return tuple(ErrorKind)


def _wrapped(exc: BaseException) -> BaseException | None:
    if exc.__cause__ is not None:
        return exc.__cause__
    if exc.__suppress_context__:
        return None
    return exc.__context__


def fails_with(err: BaseException | ErrorKind | None, kind: ErrorKind) -> bool:
    """
    Check whether an error is (or wraps) the given sentinel kind.

    Follows ``__cause__`` and unsuppressed ``__context__`` so that a
    USBError re-raised inside another exception still matches.
    ``raise ... from None`` cuts the chain.

    Args:
        err: ErrorKind, exception, or None
        kind: Sentinel kind to test for

    Returns:
        True if err is of the given kind
    """
    if err is None:
        return False
    if isinstance(err, ErrorKind):
        return err is kind

    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, USBError) and current.kind is kind:
            return True
        current = _wrapped(current)
    return False


class TransferStatus(IntEnum):
    """Completion status of a USB transfer."""

    SUCCESS = 0
    ERROR = 1
    STALL = 2
    NAK = 3
    TIMEOUT = 4
    CANCELLED = 5
    OVERRUN = 6
    UNDERRUN = 7

    def __str__(self) -> str:
        return status_name(self)

    @property
    def error(self) -> ErrorKind | None:
        """Sentinel kind for this status, None on success."""
        return status_error(self)

    @classmethod
    def from_error(cls, err: BaseException | ErrorKind | None) -> TransferStatus:
        """Map a completion error back to a transfer status."""
        if err is None:
            return cls.SUCCESS
        kind = err if isinstance(err, ErrorKind) else classify_usb_error(err)
        return _KIND_STATUS.get(kind, cls.ERROR)


# Indexed by TransferStatus value
_STATUS_NAMES: tuple[str, ...] = (
    "success",
    "error",
    "stall",
    "nak",
    "timeout",
    "cancelled",
    "overrun",
    "underrun",
)

_STATUS_ERRORS: tuple[ErrorKind | None, ...] = (
    None,
    ErrorKind.PROTOCOL,
    ErrorKind.STALL,
    ErrorKind.NAK,
    ErrorKind.TIMEOUT,
    ErrorKind.CANCELLED,
    ErrorKind.OVERRUN,
    ErrorKind.UNDERRUN,
)

_KIND_STATUS: dict[ErrorKind, TransferStatus] = {
    ErrorKind.STALL: TransferStatus.STALL,
    ErrorKind.NAK: TransferStatus.NAK,
    ErrorKind.TIMEOUT: TransferStatus.TIMEOUT,
    ErrorKind.CANCELLED: TransferStatus.CANCELLED,
    ErrorKind.OVERRUN: TransferStatus.OVERRUN,
    ErrorKind.UNDERRUN: TransferStatus.UNDERRUN,
}

_MAX_STATUS = len(_STATUS_NAMES) - 1


def status_name(value: int) -> str:
    """Return the canonical name of a transfer status, or "unknown"."""
    if not 0 <= value <= _MAX_STATUS:
        return "unknown"
    return _STATUS_NAMES[value]


def status_error(value: int) -> ErrorKind | None:
    """
    Return the sentinel kind for a raw transfer status value.

    Success maps to None. ERROR and any value outside the defined
    range map to ErrorKind.PROTOCOL.
    """
    if not 0 <= value <= _MAX_STATUS:
        return ErrorKind.PROTOCOL
    return _STATUS_ERRORS[value]


# errno names reported by usbfs and libusb; some are Linux-only
_ERRNO_NAMES: tuple[tuple[str, ErrorKind], ...] = (
    ("EPIPE", ErrorKind.STALL),
    ("ENODEV", ErrorKind.NO_DEVICE),
    ("ENXIO", ErrorKind.NO_DEVICE),
    ("EAGAIN", ErrorKind.NAK),
    ("ETIMEDOUT", ErrorKind.TIMEOUT),
    ("ENOENT", ErrorKind.CANCELLED),
    ("ECONNRESET", ErrorKind.CANCELLED),
    ("ESHUTDOWN", ErrorKind.CANCELLED),
    ("EOVERFLOW", ErrorKind.OVERRUN),
    ("EREMOTEIO", ErrorKind.UNDERRUN),
    ("EILSEQ", ErrorKind.CRC),
    ("EPROTO", ErrorKind.PROTOCOL),
    ("EBUSY", ErrorKind.BUSY),
    ("ENOMEM", ErrorKind.NO_MEMORY),
    ("ENOSPC", ErrorKind.BANDWIDTH),
    ("EINVAL", ErrorKind.INVALID_PARAMETER),
    ("ENOSYS", ErrorKind.NOT_SUPPORTED),
    ("EOPNOTSUPP", ErrorKind.NOT_SUPPORTED),
)

ERRNO_KINDS: dict[int, ErrorKind] = {
    getattr(errno, name): kind
    for name, kind in _ERRNO_NAMES
    if hasattr(errno, name)
}

# libusb_error codes (libusb.h)
LIBUSB_ERROR_KINDS: dict[int, ErrorKind] = {
    -2: ErrorKind.INVALID_PARAMETER,
    -4: ErrorKind.NO_DEVICE,
    -5: ErrorKind.NO_DEVICE,
    -6: ErrorKind.BUSY,
    -7: ErrorKind.TIMEOUT,
    -8: ErrorKind.OVERRUN,
    -9: ErrorKind.STALL,
    -10: ErrorKind.CANCELLED,
    -11: ErrorKind.NO_MEMORY,
    -12: ErrorKind.NOT_SUPPORTED,
}


def classify_usb_error(exc: BaseException | None) -> ErrorKind:
    """
    Classify an exception raised by a USB backend as a sentinel kind.

    Understands USBError, PyUSB exceptions (errno first, then the libusb
    backend error code) and plain OSError. Wrapped exceptions are
    classified through their cause chain. Anything unrecognised is a
    protocol error.

    Args:
        exc: Exception raised during USB communication

    Returns:
        The matching ErrorKind
    """
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        seen.add(id(exc))

        if isinstance(exc, USBError):
            return exc.kind
        if isinstance(exc, usb.core.USBTimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(exc, usb.core.NoBackendError):
            return ErrorKind.NOT_SUPPORTED

        if isinstance(exc, OSError):
            kind = ERRNO_KINDS.get(exc.errno)
            if kind is not None:
                return kind
        if isinstance(exc, usb.core.USBError):
            kind = LIBUSB_ERROR_KINDS.get(exc.backend_error_code)
            if kind is not None:
                return kind

        exc = _wrapped(exc)

    return ErrorKind.PROTOCOL
