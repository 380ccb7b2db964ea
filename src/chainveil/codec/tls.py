"""Big-endian integer and length-prefixed vector encoding helpers.

These are the primitives the envelope and padding codecs are built from.
All multi-byte integers are encoded in network byte order.

Conventions
- "write_*" functions return encoded bytes for the given value and raise
  ValueError when the value does not fit the field.
- "read_*" functions take a buffer and an offset, and return a tuple of
  (decoded_value, new_offset). They raise DecodeError if the buffer
  does not contain enough data starting at the given offset.
- Vector helpers implement opaque vectors with 1- or 4-byte length
  prefixes (opaque8/opaque32) and fixed-size fields (read_fixed).
"""

from __future__ import annotations


class DecodeError(Exception):
    """Raised when decoding fails due to insufficient or malformed input."""


def _require_length(buf: bytes, offset: int, need: int) -> None:
    """Ensure that buf holds at least 'need' bytes starting at offset.

    Raises
    - DecodeError: If fewer than 'need' bytes remain.
    """
    have = len(buf) - offset
    if offset < 0 or have < need:
        raise DecodeError(f"buffer too short: need {need}, have {max(have, 0)}")


def _write_uint(x: int, size: int) -> bytes:
    if x < 0 or x >= 1 << (8 * size):
        raise ValueError(f"value {x} does not fit in {size * 8} bits")
    return x.to_bytes(size, "big")


def write_uint8(x: int) -> bytes:
    """Encode an unsigned 8-bit integer."""
    return _write_uint(x, 1)


def write_uint16(x: int) -> bytes:
    """Encode an unsigned 16-bit integer in big-endian format."""
    return _write_uint(x, 2)


def write_uint32(x: int) -> bytes:
    """Encode an unsigned 32-bit integer in big-endian format."""
    return _write_uint(x, 4)


def write_uint64(x: int) -> bytes:
    """Encode an unsigned 64-bit integer in big-endian format.

    Used for block timestamps in key derivation.
    """
    return _write_uint(x, 8)


def _read_uint(buf: bytes, offset: int, size: int) -> tuple[int, int]:
    _require_length(buf, offset, size)
    return int.from_bytes(buf[offset : offset + size], "big"), offset + size


def read_uint8(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned 8-bit integer from buf starting at offset.

    Returns
    - (value, new_offset) where new_offset = offset + 1.
    """
    return _read_uint(buf, offset, 1)


def read_uint16(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned 16-bit integer from buf starting at offset.

    Returns
    - (value, new_offset) where new_offset = offset + 2.
    """
    return _read_uint(buf, offset, 2)


def read_uint32(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned 32-bit integer from buf starting at offset.

    Returns
    - (value, new_offset) where new_offset = offset + 4.
    """
    return _read_uint(buf, offset, 4)


def read_uint64(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned 64-bit integer from buf starting at offset.

    Returns
    - (value, new_offset) where new_offset = offset + 8.
    """
    return _read_uint(buf, offset, 8)


def read_fixed(buf: bytes, offset: int, size: int) -> tuple[bytes, int]:
    """Read exactly 'size' raw bytes.

    Raises
    - DecodeError: If fewer than 'size' bytes remain.
    """
    _require_length(buf, offset, size)
    return bytes(buf[offset : offset + size]), offset + size


def write_opaque8(data: bytes) -> bytes:
    """Encode an opaque vector with an 8-bit length prefix (max 255 bytes)."""
    return write_uint8(len(data)) + bytes(data)


def write_opaque32(data: bytes) -> bytes:
    """Encode an opaque vector with a 32-bit length prefix."""
    return write_uint32(len(data)) + bytes(data)


def read_opaque8(buf: bytes, offset: int = 0) -> tuple[bytes, int]:
    """Decode an opaque vector with an 8-bit length prefix.

    Returns:
        (payload, new_offset) where new_offset points past the decoded vector.

    Raises:
        DecodeError: If the buffer is too short for the length or payload.
    """
    length, offset = read_uint8(buf, offset)
    return read_fixed(buf, offset, length)


def read_opaque32(buf: bytes, offset: int = 0) -> tuple[bytes, int]:
    """Decode an opaque vector with a 32-bit length prefix.

    Raises:
        DecodeError: If the buffer is too short for the length or payload.
    """
    length, offset = read_uint32(buf, offset)
    return read_fixed(buf, offset, length)
