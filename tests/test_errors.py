"""
Tests for the USB error taxonomy and transfer status mapping.
"""

from __future__ import annotations

import errno

import pytest
import usb.core

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


class TestErrorKind:
    """Tests for sentinel error kinds."""

    def test_kind_count(self) -> None:
        """Test the taxonomy has 28 kinds."""
        assert len(all_kinds()) == 28

    def test_kinds_have_messages(self) -> None:
        """Test every kind has a non-empty message."""
        for kind in all_kinds():
            assert kind is not None
            assert kind.message

    def test_kinds_pairwise_distinct(self) -> None:
        """Test no kind matches another under fails_with."""
        kinds = all_kinds()
        for i, a in enumerate(kinds):
            for j, b in enumerate(kinds):
                assert fails_with(a, b) == (i == j)
                assert fails_with(a.error(), b) == (i == j)

    def test_codes_unique(self) -> None:
        """Test kind codes are unique."""
        codes = [kind.code for kind in all_kinds()]
        assert len(set(codes)) == len(codes)

    @pytest.mark.parametrize(
        "kind,message",
        [
            (ErrorKind.STALL, "endpoint stalled"),
            (ErrorKind.NAK, "NAK received"),
            (ErrorKind.TIMEOUT, "transfer timeout"),
            (ErrorKind.NO_DEVICE, "device not present"),
            (ErrorKind.BANDWIDTH, "insufficient bandwidth"),
            (ErrorKind.RESET, "bus reset"),
        ],
    )
    def test_messages(self, kind: ErrorKind, message: str) -> None:
        """Test well-known messages."""
        assert str(kind) == message
        assert str(kind.error()) == message


class TestUSBError:
    """Tests for USBError and fails_with."""

    def test_detail_in_message(self) -> None:
        """Test detail is appended to the kind message."""
        err = ErrorKind.INVALID_ENDPOINT.error("0x81")
        assert str(err) == "invalid endpoint: 0x81"
        assert err.kind is ErrorKind.INVALID_ENDPOINT
        assert err.detail == "0x81"

    def test_raise_and_match(self) -> None:
        """Test raised errors match their kind."""
        with pytest.raises(USBError) as exc_info:
            raise ErrorKind.STALL.error()
        assert fails_with(exc_info.value, ErrorKind.STALL)
        assert not fails_with(exc_info.value, ErrorKind.NAK)

    def test_match_through_cause(self) -> None:
        """Test a wrapped USBError still matches."""
        try:
            try:
                raise ErrorKind.TIMEOUT.error()
            except USBError as e:
                raise RuntimeError("control transfer failed") from e
        except RuntimeError as wrapped:
            assert fails_with(wrapped, ErrorKind.TIMEOUT)
            assert not fails_with(wrapped, ErrorKind.STALL)

    def test_implicit_context_matches(self) -> None:
        """Test an error raised while handling a USBError still matches."""
        try:
            try:
                raise ErrorKind.NAK.error()
            except USBError:
                raise RuntimeError("retry exhausted")
        except RuntimeError as wrapped:
            assert fails_with(wrapped, ErrorKind.NAK)

    def test_suppressed_context_does_not_match(self) -> None:
        """Test raise ... from None hides the original kind."""
        try:
            try:
                raise ErrorKind.TIMEOUT.error()
            except USBError:
                raise RuntimeError("control transfer failed") from None
        except RuntimeError as wrapped:
            assert not fails_with(wrapped, ErrorKind.TIMEOUT)

    def test_same_message_different_kind(self) -> None:
        """Test identity, not message text, decides the kind."""
        err = USBError(ErrorKind.OVERRUN)
        assert str(err) == ErrorKind.OVERRUN.message
        assert not fails_with(err, ErrorKind.FRAME_OVERRUN)

    def test_none_never_fails(self) -> None:
        """Test None matches no kind."""
        assert not any(fails_with(None, kind) for kind in all_kinds())

    def test_foreign_exception(self) -> None:
        """Test unrelated exceptions match no kind."""
        assert not fails_with(ValueError("endpoint stalled"), ErrorKind.STALL)


class TestTransferStatus:
    """Tests for TransferStatus names and error mapping."""

    @pytest.mark.parametrize(
        "status,name",
        [
            (TransferStatus.SUCCESS, "success"),
            (TransferStatus.ERROR, "error"),
            (TransferStatus.STALL, "stall"),
            (TransferStatus.NAK, "nak"),
            (TransferStatus.TIMEOUT, "timeout"),
            (TransferStatus.CANCELLED, "cancelled"),
            (TransferStatus.OVERRUN, "overrun"),
            (TransferStatus.UNDERRUN, "underrun"),
        ],
    )
    def test_names(self, status: TransferStatus, name: str) -> None:
        """Test canonical names for defined statuses."""
        assert str(status) == name
        assert status_name(int(status)) == name

    def test_declaration_order(self) -> None:
        """Test statuses are numbered 0-7 in declaration order."""
        assert [int(s) for s in TransferStatus] == list(range(8))

    @pytest.mark.parametrize("value", [-1, 8, 99, -(2**31), 2**63])
    def test_out_of_range(self, value: int) -> None:
        """Test out-of-range values are unknown protocol errors."""
        assert status_name(value) == "unknown"
        assert status_error(value) is ErrorKind.PROTOCOL

    @pytest.mark.parametrize(
        "status,kind",
        [
            (TransferStatus.SUCCESS, None),
            (TransferStatus.ERROR, ErrorKind.PROTOCOL),
            (TransferStatus.STALL, ErrorKind.STALL),
            (TransferStatus.NAK, ErrorKind.NAK),
            (TransferStatus.TIMEOUT, ErrorKind.TIMEOUT),
            (TransferStatus.CANCELLED, ErrorKind.CANCELLED),
            (TransferStatus.OVERRUN, ErrorKind.OVERRUN),
            (TransferStatus.UNDERRUN, ErrorKind.UNDERRUN),
        ],
    )
    def test_error_mapping(self, status: TransferStatus, kind: ErrorKind | None) -> None:
        """Test status to error mapping."""
        assert status.error is kind
        assert status_error(int(status)) is kind
        if kind is not None:
            assert fails_with(status.error, kind)

    @pytest.mark.parametrize(
        "err,status",
        [
            (None, TransferStatus.SUCCESS),
            (ErrorKind.STALL, TransferStatus.STALL),
            (ErrorKind.NAK, TransferStatus.NAK),
            (ErrorKind.TIMEOUT, TransferStatus.TIMEOUT),
            (ErrorKind.CANCELLED, TransferStatus.CANCELLED),
            (ErrorKind.OVERRUN, TransferStatus.OVERRUN),
            (ErrorKind.UNDERRUN, TransferStatus.UNDERRUN),
            (ErrorKind.PROTOCOL, TransferStatus.ERROR),
            (ErrorKind.CRC, TransferStatus.ERROR),
        ],
    )
    def test_from_error(self, err: ErrorKind | None, status: TransferStatus) -> None:
        """Test error to status mapping."""
        assert TransferStatus.from_error(err) is status

    def test_from_raised_error(self) -> None:
        """Test from_error accepts exceptions."""
        assert TransferStatus.from_error(ErrorKind.NAK.error()) is TransferStatus.NAK
        assert TransferStatus.from_error(RuntimeError("boom")) is TransferStatus.ERROR


class TestClassifyUSBError:
    """Tests for classify_usb_error."""

    @pytest.mark.parametrize(
        "code,kind",
        [
            (errno.EPIPE, ErrorKind.STALL),
            (errno.ENODEV, ErrorKind.NO_DEVICE),
            (errno.ETIMEDOUT, ErrorKind.TIMEOUT),
            (errno.EBUSY, ErrorKind.BUSY),
            (errno.ENOMEM, ErrorKind.NO_MEMORY),
            (errno.EOVERFLOW, ErrorKind.OVERRUN),
        ],
    )
    def test_pyusb_errno(self, code: int, kind: ErrorKind) -> None:
        """Test PyUSB errors classified by errno."""
        exc = usb.core.USBError("transfer failed", errno=code)
        assert classify_usb_error(exc) is kind

    def test_pyusb_backend_code(self) -> None:
        """Test fallback to the libusb error code."""
        exc = usb.core.USBError("pipe error", error_code=-9)
        assert classify_usb_error(exc) is ErrorKind.STALL

    def test_pyusb_timeout(self) -> None:
        """Test PyUSB timeout exceptions."""
        exc = usb.core.USBTimeoutError("Operation timed out", error_code=-7, errno=errno.ETIMEDOUT)
        assert classify_usb_error(exc) is ErrorKind.TIMEOUT

    def test_no_backend(self) -> None:
        """Test missing libusb backend."""
        assert classify_usb_error(usb.core.NoBackendError("No backend")) is ErrorKind.NOT_SUPPORTED

    def test_os_error(self) -> None:
        """Test plain OSError errno mapping."""
        assert classify_usb_error(OSError(errno.ENODEV, "No such device")) is ErrorKind.NO_DEVICE

    def test_usb_error_passthrough(self) -> None:
        """Test USBError keeps its own kind."""
        assert classify_usb_error(ErrorKind.RESET.error()) is ErrorKind.RESET

    def test_cause_chain(self) -> None:
        """Test classification through wrapped exceptions."""
        try:
            try:
                raise usb.core.USBError("pipe", errno=errno.EPIPE)
            except usb.core.USBError as e:
                raise RuntimeError("clear halt failed") from e
        except RuntimeError as wrapped:
            assert classify_usb_error(wrapped) is ErrorKind.STALL

    def test_suppressed_context(self) -> None:
        """Test raise ... from None stops classification at the outer error."""
        try:
            try:
                raise usb.core.USBError("pipe", errno=errno.EPIPE)
            except usb.core.USBError:
                raise RuntimeError("clear halt failed") from None
        except RuntimeError as wrapped:
            assert classify_usb_error(wrapped) is ErrorKind.PROTOCOL

    def test_unknown(self) -> None:
        """Test unrecognised exceptions are protocol errors."""
        assert classify_usb_error(ValueError("bad")) is ErrorKind.PROTOCOL
        assert classify_usb_error(usb.core.USBError("odd")) is ErrorKind.PROTOCOL
