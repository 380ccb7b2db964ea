from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..exceptions import ConfigurationError, NoHeaderAvailable
from .header import BlockHeader

if TYPE_CHECKING:
    from ..config import TransportPolicy

logger = logging.getLogger(__name__)

MIN_CAPACITY = 4
DEFAULT_LOOKBACK = 3


class HeaderWindow:
    """The most recent block headers, oldest evicted first.

    Storage is a fixed arena of ``capacity`` slots; a new header overwrites
    the slot of the oldest one. Readers never take the lock: every
    ``observe`` publishes a fresh immutable snapshot (oldest to newest) and
    index, swapped in a single assignment.

    Parameters:
        capacity: Number of headers retained (at least 4).
        lookback: Headers behind the current one offered to decoders.

    Raises:
        ConfigurationError: If the capacity cannot hold current + lookback.
    """

    def __init__(self, capacity: int = MIN_CAPACITY, lookback: int = DEFAULT_LOOKBACK):
        if capacity < MIN_CAPACITY:
            raise ConfigurationError(f"window capacity must be at least {MIN_CAPACITY}")
        if lookback < 0 or capacity < lookback + 1:
            raise ConfigurationError(f"capacity {capacity} cannot cover lookback {lookback}")
        self._capacity = capacity
        self._lookback = lookback
        self._slots: List[Optional[BlockHeader]] = [None] * capacity
        self._next = 0  # slot the next insert overwrites
        self._count = 0
        self._write_lock = threading.Lock()
        self._view: Tuple[Tuple[BlockHeader, ...], Dict[bytes, BlockHeader]] = ((), {})

    @classmethod
    def from_policy(cls, policy: "TransportPolicy") -> "HeaderWindow":
        return cls(capacity=policy.window_capacity, lookback=policy.lookback_depth)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def lookback(self) -> int:
        return self._lookback

    def observe(self, header: BlockHeader) -> bool:
        """Insert a newly reported header.

        Returns:
            True if inserted, False if the hash was already present or the
            header is older than the current one.
        """
        with self._write_lock:
            ordered, index = self._view
            if header.hash in index:
                return False
            if ordered and header.height < ordered[-1].height:
                logger.warning(
                    "dropping stale header %s, current is %s",
                    header.short_id,
                    ordered[-1].short_id,
                )
                return False
            if ordered and header.height == ordered[-1].height:
                logger.warning(
                    "header %s competes with %s at the same height (reorg)",
                    header.short_id,
                    ordered[-1].short_id,
                )
            evicted = self._slots[self._next]
            self._slots[self._next] = header
            self._next = (self._next + 1) % self._capacity
            self._count = min(self._count + 1, self._capacity)
            self._publish()
        if evicted is not None:
            logger.debug("observed header %s, evicted %s", header.short_id, evicted.short_id)
        else:
            logger.debug("observed header %s", header.short_id)
        return True

    def _publish(self) -> None:
        # Oldest entry sits at _next once the arena has wrapped.
        start = self._next if self._count == self._capacity else 0
        ordered = tuple(
            h
            for h in (self._slots[(start + i) % self._capacity] for i in range(self._count))
            if h is not None
        )
        self._view = (ordered, {h.hash: h for h in ordered})

    def current(self) -> BlockHeader:
        """Newest header, used for encoding.

        Raises:
            NoHeaderAvailable: If nothing has been observed yet.
        """
        ordered, _ = self._view
        if not ordered:
            raise NoHeaderAvailable("header window is empty; observe a header first")
        return ordered[-1]

    def candidates_for_decode(self) -> Tuple[BlockHeader, ...]:
        """Current header then up to ``lookback`` predecessors, newest first."""
        ordered, _ = self._view
        return tuple(reversed(ordered[-(self._lookback + 1) :]))

    def get(self, block_hash: bytes) -> Optional[BlockHeader]:
        return self._view[1].get(bytes(block_hash))

    def snapshot(self) -> Tuple[BlockHeader, ...]:
        """All retained headers, oldest first."""
        return self._view[0]

    def clear(self) -> None:
        with self._write_lock:
            self._slots = [None] * self._capacity
            self._next = 0
            self._count = 0
            self._view = ((), {})

    def __contains__(self, block_hash: object) -> bool:
        if not isinstance(block_hash, (bytes, bytearray)):
            return False
        return bytes(block_hash) in self._view[1]

    def __len__(self) -> int:
        return len(self._view[0])

    def __repr__(self) -> str:
        ids = ", ".join(h.short_id for h in self._view[0])
        return f"HeaderWindow(capacity={self._capacity}, headers=[{ids}])"
