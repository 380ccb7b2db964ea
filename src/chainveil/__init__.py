"""chainveil: transport obfuscation keyed by public blockchain header data."""

__version__: str = "0.1.0"

from .chain.header import BlockHeader  # noqa: E402
from .chain.source import HeaderFollower, HeaderSource, InMemoryHeaderSource  # noqa: E402
from .chain.window import HeaderWindow  # noqa: E402
from .codec.frame import Envelope  # noqa: E402
from .config import TransportPolicy  # noqa: E402
from .crypto.aeads import OuterAead  # noqa: E402
from .crypto.kdf import TransportKey, derive  # noqa: E402
from .crypto.outer_cipher import OuterCipher  # noqa: E402
from .exceptions import (  # noqa: E402
    ChainVeilError,
    DecryptionExhausted,
    MalformedFrame,
    NoHeaderAvailable,
    PaddingCorrupt,
    PayloadTooLarge,
)
from .protocol.engine import ProtocolEngine  # noqa: E402
from .protocol.padding import PaddingBucket  # noqa: E402

__all__ = [
    "BlockHeader",
    "HeaderFollower",
    "HeaderSource",
    "InMemoryHeaderSource",
    "HeaderWindow",
    "Envelope",
    "TransportPolicy",
    "OuterAead",
    "TransportKey",
    "derive",
    "OuterCipher",
    "ChainVeilError",
    "DecryptionExhausted",
    "MalformedFrame",
    "NoHeaderAvailable",
    "PaddingCorrupt",
    "PayloadTooLarge",
    "ProtocolEngine",
    "PaddingBucket",
]
