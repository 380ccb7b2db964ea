"""Bucketed padding for the outer layer.

A padded buffer is exactly one bucket long:

    uint32_be(len(plaintext)) || plaintext || 0x00 * filler

The filler is constant so only the chosen bucket is observable.
"""
from __future__ import annotations

from enum import IntEnum
from typing import Tuple

from ..codec.tls import DecodeError, read_uint32, write_uint32
from ..exceptions import PaddingCorrupt, PayloadTooLarge

LENGTH_PREFIX_SIZE = 4


class PaddingBucket(IntEnum):
    KIB_1 = 1024
    KIB_16 = 16 * 1024
    KIB_256 = 256 * 1024
    MIB_1 = 1024 * 1024

    @property
    def capacity(self) -> int:
        """Largest plaintext this bucket can carry."""
        return int(self) - LENGTH_PREFIX_SIZE


BUCKETS: Tuple[PaddingBucket, ...] = tuple(sorted(PaddingBucket))
MAX_PAYLOAD = BUCKETS[-1].capacity


def select_bucket(length: int) -> PaddingBucket:
    """Smallest bucket that holds ``length`` plaintext bytes plus the prefix.

    Raises:
        PayloadTooLarge: If no bucket is large enough.
    """
    need = length + LENGTH_PREFIX_SIZE
    for bucket in BUCKETS:
        if need <= bucket:
            return bucket
    raise PayloadTooLarge(length, MAX_PAYLOAD)


def bucket_for_size(size: int) -> PaddingBucket:
    """Bucket whose padded size is exactly ``size``.

    Raises:
        PaddingCorrupt: If ``size`` is not a bucket size.
    """
    try:
        return PaddingBucket(size)
    except ValueError:
        raise PaddingCorrupt(f"{size} bytes is not a padding bucket size") from None


def pad(plaintext: bytes) -> Tuple[PaddingBucket, bytes]:
    bucket = select_bucket(len(plaintext))
    buf = bytearray(int(bucket))
    buf[:LENGTH_PREFIX_SIZE] = write_uint32(len(plaintext))
    buf[LENGTH_PREFIX_SIZE : LENGTH_PREFIX_SIZE + len(plaintext)] = plaintext
    return bucket, bytes(buf)


def unpad(padded: bytes, bucket: PaddingBucket) -> bytes:
    """Strip padding from a bucket-sized buffer.

    Raises:
        PaddingCorrupt: If the buffer is not bucket-sized or the length prefix
            points past the bucket's capacity.
    """
    if len(padded) != int(bucket):
        raise PaddingCorrupt(f"padded buffer is {len(padded)} bytes, expected {int(bucket)}")
    try:
        length, off = read_uint32(padded, 0)
    except DecodeError as e:
        raise PaddingCorrupt("missing length prefix") from e
    if length > bucket.capacity:
        raise PaddingCorrupt(f"length prefix {length} exceeds bucket capacity {bucket.capacity}")
    return bytes(padded[off : off + length])
