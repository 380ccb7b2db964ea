"""Header-source collaborator interface and window feeding.

Fetching headers from a node or indexer is the only suspension point in the
system and lives here, outside the protocol core. ``HeaderFollower`` turns
source queries into ``HeaderWindow.observe`` calls.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..exceptions import HeaderNotFound
from .header import BlockHeader
from .window import HeaderWindow

logger = logging.getLogger(__name__)


class HeaderSource(ABC):
    @abstractmethod
    def get_latest_header(self) -> BlockHeader:
        """Return the current chain tip."""
        pass

    @abstractmethod
    def get_header(self, block_hash: bytes) -> BlockHeader:
        """
        Return the header for ``block_hash``.

        Raises:
            HeaderNotFound: If the source does not know the block.
        """
        pass


class InMemoryHeaderSource(HeaderSource):
    """A header source backed by a list, for tests and local demos."""

    def __init__(self, headers: Optional[List[BlockHeader]] = None):
        self._chain: List[BlockHeader] = []
        self._by_hash: Dict[bytes, BlockHeader] = {}
        for h in headers or []:
            self.append(h)

    def append(self, header: BlockHeader) -> None:
        self._chain.append(header)
        self._by_hash[header.hash] = header

    def get_latest_header(self) -> BlockHeader:
        if not self._chain:
            raise HeaderNotFound("source has no headers")
        return self._chain[-1]

    def get_header(self, block_hash: bytes) -> BlockHeader:
        try:
            return self._by_hash[bytes(block_hash)]
        except KeyError:
            raise HeaderNotFound(f"unknown block {bytes(block_hash)[:6].hex()}") from None

    def __len__(self) -> int:
        return len(self._chain)


class HeaderFollower:
    """Keeps a HeaderWindow in step with a HeaderSource.

    Parameters:
        source: Where headers come from.
        window: Window to feed.
        backfill: How many ancestors of a new tip to fetch when they are
            missing from the window; defaults to the window's lookback.
    """

    def __init__(self, source: HeaderSource, window: HeaderWindow, backfill: Optional[int] = None):
        self._source = source
        self._window = window
        self._backfill = window.lookback if backfill is None else max(0, backfill)

    def poll_once(self) -> int:
        """Fetch the tip and any missing recent ancestors.

        Returns:
            Number of headers newly observed.
        """
        tip = self._source.get_latest_header()
        if tip.hash in self._window:
            return 0

        pending = [tip]
        cursor = tip
        while len(pending) <= self._backfill and cursor.height > 0 and cursor.prev_hash not in self._window:
            try:
                cursor = self._source.get_header(cursor.prev_hash)
            except HeaderNotFound:
                logger.warning("cannot backfill parent of %s; window will have a gap", cursor.short_id)
                break
            pending.append(cursor)

        observed = 0
        # Oldest first so insertion order matches chain order.
        for header in reversed(pending):
            if self._window.observe(header):
                observed += 1
        logger.debug("poll observed %d header(s), tip %s", observed, tip.short_id)
        return observed

    async def run(self, interval: float, stop: Optional[asyncio.Event] = None) -> None:
        """Poll the source every ``interval`` seconds until ``stop`` is set."""
        stop = stop or asyncio.Event()
        while not stop.is_set():
            try:
                self.poll_once()
            except HeaderNotFound as e:
                logger.warning("header source not ready: %s", e)
            try:
                await asyncio.wait_for(stop.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass
