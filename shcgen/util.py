"""
Utility functions for the SMART Health Card generator.

Provides base64url encoding and time utilities.
"""

import base64
import time


def b64url_encode(b: bytes) -> str:
    """URL-safe base64 encode bytes to string (no padding)."""
    return base64.urlsafe_b64encode(b).rstrip(b'=').decode('ascii')


def b64url_decode(s: str) -> bytes:
    """URL-safe base64 decode string to bytes (handles missing padding)."""
    padding = 4 - (len(s) % 4)
    if padding != 4:
        s += '=' * padding
    return base64.urlsafe_b64decode(s.encode('ascii'))


def now_epoch_ms() -> int:
    """Get current Unix timestamp in whole milliseconds."""
    return time.time_ns() // 1_000_000


def int_to_bytes(value: int, length: int) -> bytes:
    """Big-endian fixed-width encoding used for JWK coordinates."""
    return value.to_bytes(length, 'big')


def bytes_to_int(data: bytes) -> int:
    return int.from_bytes(data, 'big')
