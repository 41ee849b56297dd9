"""
softusb - shared core of a software USB device/host stack.

Provides the USB protocol error taxonomy, transfer completion status,
and thread-safe component-tagged logging used throughout the stack.
"""

__version__ = "0.1.0"
__author__ = "softusb Contributors"

from softusb.config import LoggingConfig, SoftUSBConfig, load_config

__all__ = ["LoggingConfig", "SoftUSBConfig", "load_config", "__version__"]
