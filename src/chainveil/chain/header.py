from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

HASH_SIZE = 32
_UINT64_MAX = (1 << 64) - 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class BlockHeader:
    """Linkage data of one observed block.

    ``hash`` and ``prev_hash`` are raw 32-byte digests, ``timestamp`` is the
    block's own unsigned 64-bit timestamp, and ``observed_at`` is the local
    wall-clock time the header was first seen. Headers are immutable once
    constructed.
    """

    hash: bytes
    prev_hash: bytes
    height: int
    timestamp: int
    observed_at: datetime = field(default_factory=_utcnow, compare=False)

    def __post_init__(self) -> None:
        if len(self.hash) != HASH_SIZE:
            raise ValueError(f"block hash must be {HASH_SIZE} bytes, got {len(self.hash)}")
        if len(self.prev_hash) != HASH_SIZE:
            raise ValueError(f"prev hash must be {HASH_SIZE} bytes, got {len(self.prev_hash)}")
        if self.height < 0:
            raise ValueError("height cannot be negative")
        if not 0 <= self.timestamp <= _UINT64_MAX:
            raise ValueError("timestamp must fit in an unsigned 64-bit integer")
        # Normalize bytearray/memoryview inputs so headers hash and compare by value.
        object.__setattr__(self, "hash", bytes(self.hash))
        object.__setattr__(self, "prev_hash", bytes(self.prev_hash))

    @property
    def hash_hex(self) -> str:
        return self.hash.hex()

    @property
    def short_id(self) -> str:
        """Abbreviated hash for log lines."""
        return f"{self.height}:{self.hash[:6].hex()}"

    @classmethod
    def from_hex(
        cls,
        hash_hex: str,
        prev_hash_hex: str,
        height: int,
        timestamp: int,
        observed_at: datetime | None = None,
    ) -> "BlockHeader":
        """Build a header from the hex strings most node RPCs return."""
        return cls(
            hash=bytes.fromhex(hash_hex),
            prev_hash=bytes.fromhex(prev_hash_hex),
            height=int(height),
            timestamp=int(timestamp),
            observed_at=observed_at or _utcnow(),
        )
