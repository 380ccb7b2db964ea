"""Transport key derivation from block linkage data.

A transport key is ``SHA-256(block_hash || prev_hash || uint64_be(timestamp))``.
Anyone with chain access can compute it; it only provides unlinkability for
the lifetime of a block, never long-term secrecy.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import TracebackType
from typing import Optional, Type

from cryptography.hazmat.primitives import hashes

from ..chain.header import HASH_SIZE, BlockHeader
from ..codec.tls import write_uint64
from .utils import secure_wipe

KEY_SIZE = 32


def derive(block_hash: bytes, prev_hash: bytes, timestamp: int) -> bytes:
    """Derive the 32-byte outer AEAD key for a block.

    Parameters:
        block_hash: 32-byte hash of the block.
        prev_hash: 32-byte hash of its parent.
        timestamp: Block timestamp as an unsigned 64-bit integer.

    Returns:
        32 key bytes.

    Raises:
        ValueError: If a hash has the wrong length or the timestamp does not
            fit in 64 bits.
    """
    if len(block_hash) != HASH_SIZE or len(prev_hash) != HASH_SIZE:
        raise ValueError(f"block hashes must be {HASH_SIZE} bytes")
    h = hashes.Hash(hashes.SHA256())
    h.update(bytes(block_hash))
    h.update(bytes(prev_hash))
    h.update(write_uint64(timestamp))
    return h.finalize()


def derive_for_header(header: BlockHeader) -> bytes:
    return derive(header.hash, header.prev_hash, header.timestamp)


@dataclass
class TransportKey:
    """Key material bound to the header it was derived from.

    Use as a context manager; the key bytes are zeroed on exit so they do not
    outlive the operation that needed them.
    """

    key: bytearray
    derived_from: bytes

    @classmethod
    def for_header(cls, header: BlockHeader) -> "TransportKey":
        return cls(key=bytearray(derive_for_header(header)), derived_from=header.hash)

    def wipe(self) -> None:
        secure_wipe(self.key)

    def __enter__(self) -> "TransportKey":
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.wipe()

    def __repr__(self) -> str:
        return f"TransportKey(derived_from={self.derived_from[:6].hex()}...)"
