from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from cryptography.hazmat.primitives import hashes

from ..chain.header import BlockHeader
from ..chain.window import HeaderWindow
from ..codec import frame
from ..codec.frame import Envelope
from ..config import TransportPolicy
from ..crypto.inner import InnerCipher
from ..protocol.engine import ProtocolEngine

RECIPIENT_REF_SIZE = 16


def recipient_ref_for(identity: bytes) -> bytes:
    """Short routing hint for an inner-layer identity (truncated SHA-256)."""
    h = hashes.Hash(hashes.SHA256())
    h.update(identity)
    return h.finalize()[:RECIPIENT_REF_SIZE]


class VeilChannel:
    """Two-layer messaging over chain-keyed transport obfuscation.

    Wraps an inner-layer cipher (payload confidentiality, long-term keys) and
    a ProtocolEngine (outer layer, block-derived keys). The header window
    must be fed with ``observe`` or a ``HeaderFollower`` before sending.

    Parameters:
        inner: Inner-layer collaborator.
        engine: Outer-layer engine; a new one is built from ``policy`` when
            omitted.
        policy: Transport policy used when building the engine.
    """

    def __init__(
        self,
        inner: InnerCipher,
        engine: Optional[ProtocolEngine] = None,
        policy: Optional[TransportPolicy] = None,
    ):
        self._inner = inner
        self._engine = engine or ProtocolEngine.from_policy(policy or TransportPolicy.recommended())

    @property
    def engine(self) -> ProtocolEngine:
        return self._engine

    @property
    def window(self) -> HeaderWindow:
        return self._engine.window

    def observe(self, header: BlockHeader) -> bool:
        return self._engine.window.observe(header)

    # --- Byte/Envelope I/O ---
    def send(self, recipient_identity: bytes, plaintext: bytes) -> Envelope:
        """Inner-encrypt for the recipient, then outer-encode.

        Raises:
            InnerCipherError: If the inner layer cannot seal the message.
            PayloadTooLarge: If the inner ciphertext does not fit a bucket.
            NoHeaderAvailable: If no header has been observed yet.
        """
        sealed = self._inner.encrypt(recipient_identity, plaintext)
        return self._engine.encode(sealed, recipient_ref_for(recipient_identity))

    def receive(self, data: Union[bytes, Envelope], sender_identity: bytes) -> bytes:
        """Outer-decode then inner-decrypt a message from ``sender_identity``.

        Raises:
            MalformedFrame, DecryptionExhausted, PaddingCorrupt: From the
                outer layer.
            InnerCipherError: If the inner layer rejects the payload.
        """
        sealed = self._engine.decode(data)
        return self._inner.decrypt(sender_identity, sealed)

    # --- Transport event I/O ---
    def send_event(self, recipient_identity: bytes, plaintext: bytes) -> Dict[str, Any]:
        return frame.to_event(self.send(recipient_identity, plaintext))

    def receive_event(self, event: Mapping[str, Any], sender_identity: bytes) -> bytes:
        return self.receive(frame.from_event(event), sender_identity)

    def is_addressed_to(self, envelope: Envelope, identity: bytes) -> bool:
        """Whether the envelope's routing hint matches ``identity``."""
        return envelope.recipient_ref == recipient_ref_for(identity)
