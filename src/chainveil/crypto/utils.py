from __future__ import annotations


def secure_wipe(buf: bytearray) -> None:
    """
    Overwrite the provided bytearray with zeros in-place.
    """
    buf[:] = bytes(len(buf))
