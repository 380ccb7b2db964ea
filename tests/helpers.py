from __future__ import annotations

import hashlib
from typing import List

from chainveil import BlockHeader, HeaderWindow, ProtocolEngine, TransportPolicy

GENESIS_PREV = b"\x00" * 32
BASE_TIMESTAMP = 1_700_000_000


def block_hash(height: int, fork: bytes = b"") -> bytes:
    return hashlib.sha256(b"block-" + fork + str(height).encode()).digest()


def make_chain(length: int, start_height: int = 800_000, fork: bytes = b"") -> List[BlockHeader]:
    """Linked headers at consecutive heights, ten minutes apart."""
    headers: List[BlockHeader] = []
    prev = block_hash(start_height - 1, fork) if start_height > 0 else GENESIS_PREV
    for i in range(length):
        height = start_height + i
        h = BlockHeader(
            hash=block_hash(height, fork),
            prev_hash=prev,
            height=height,
            timestamp=BASE_TIMESTAMP + 600 * i,
        )
        headers.append(h)
        prev = h.hash
    return headers


def make_window(headers: List[BlockHeader], capacity: int = 4, lookback: int = 3) -> HeaderWindow:
    window = HeaderWindow(capacity=capacity, lookback=lookback)
    for h in headers:
        window.observe(h)
    return window


def make_engine(headers: List[BlockHeader], policy: TransportPolicy | None = None) -> ProtocolEngine:
    policy = policy or TransportPolicy.recommended()
    window = make_window(headers, policy.window_capacity, policy.lookback_depth)
    return ProtocolEngine(window, policy)
