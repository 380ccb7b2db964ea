"""Exception hierarchy for chainveil.

Only ``NoHeaderAvailable``, ``PayloadTooLarge``, ``PaddingCorrupt``,
``MalformedFrame`` and ``DecryptionExhausted`` escape the protocol engine.
``AuthenticationFailure`` is the per-candidate rejection signal consumed by
the decode loop.
"""
from __future__ import annotations


class ChainVeilError(Exception):
    """Base class for all chainveil errors."""


class ConfigurationError(ChainVeilError):
    """Invalid or unsupported configuration."""


class NoHeaderAvailable(ChainVeilError):
    """The header window is empty; nothing to derive an encoding key from."""


class HeaderNotFound(ChainVeilError):
    """A header source does not know the requested block hash."""


class PayloadTooLarge(ChainVeilError):
    """The payload does not fit the largest padding bucket."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"payload of {size} bytes exceeds limit of {limit} bytes")
        self.size = size
        self.limit = limit


class PaddingCorrupt(ChainVeilError):
    """A padded buffer has an inconsistent length prefix or size."""


class MalformedFrame(ChainVeilError):
    """Wire envelope is missing fields or has fields of the wrong length."""


class AuthenticationFailure(ChainVeilError):
    """AEAD tag mismatch for a candidate key."""


class DecryptionExhausted(ChainVeilError):
    """Every candidate header failed to open the envelope."""

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class InnerCipherError(ChainVeilError):
    """The inner-layer collaborator could not seal or open a payload."""
