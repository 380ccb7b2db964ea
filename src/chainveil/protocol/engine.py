"""Encode/decode orchestration for the outer layer.

Encode is single pass against the freshest header. Decode walks the header
window newest first, deriving a key per candidate and stopping at the first
one whose AEAD tag verifies. A wrong candidate is an expected outcome;
only exhausting every candidate is reported to the caller.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple, Union

from ..chain.header import BlockHeader
from ..chain.window import HeaderWindow
from ..codec import frame
from ..codec.frame import MAX_RECIPIENT_REF, Envelope
from ..config import TransportPolicy
from ..crypto.aeads import OuterAead
from ..crypto.kdf import TransportKey
from ..crypto.outer_cipher import OuterCipher
from ..exceptions import (
    AuthenticationFailure,
    ChainVeilError,
    DecryptionExhausted,
    MalformedFrame,
)
from .padding import bucket_for_size, pad, unpad

logger = logging.getLogger(__name__)


class OperationState(Enum):
    IDLE = "idle"
    ENCODING = "encoding"
    ENCODED = "encoded"
    DECODING = "decoding"
    DECODED = "decoded"
    FAILED = "failed"


_TRANSITIONS = {
    OperationState.IDLE: {OperationState.ENCODING, OperationState.DECODING},
    OperationState.ENCODING: {OperationState.ENCODED, OperationState.FAILED},
    OperationState.DECODING: {OperationState.DECODED, OperationState.FAILED},
}


class _Operation:
    """State of a single encode or decode call."""

    def __init__(self, kind: str):
        self.kind = kind
        self.state = OperationState.IDLE

    def advance(self, new_state: OperationState) -> None:
        if new_state not in _TRANSITIONS.get(self.state, ()):
            raise RuntimeError(f"invalid {self.kind} transition {self.state.value} -> {new_state.value}")
        logger.debug("%s: %s -> %s", self.kind, self.state.value, new_state.value)
        self.state = new_state


@dataclass(frozen=True)
class DecodeResult:
    plaintext: bytes
    header: BlockHeader
    attempts: int
    state: OperationState = OperationState.DECODED


WireInput = Union[bytes, bytearray, Envelope]


class ProtocolEngine:
    """Outer-layer encoder/decoder bound to one HeaderWindow.

    Parameters:
        window: Header window supplying the encoding header and decode
            candidates. Fed by the caller (see ``chain.source``).
        policy: Transport policy; defaults to ``TransportPolicy.recommended()``.
    """

    def __init__(self, window: HeaderWindow, policy: Optional[TransportPolicy] = None):
        self._window = window
        self._policy = (policy or TransportPolicy.recommended()).validate()
        self._ciphers: Dict[OuterAead, OuterCipher] = {}
        self._cipher = self._cipher_for(self._policy.aead)

    @classmethod
    def from_policy(cls, policy: TransportPolicy) -> "ProtocolEngine":
        """Build an engine with a fresh, empty window sized by ``policy``."""
        return cls(HeaderWindow.from_policy(policy.validate()), policy)

    @property
    def window(self) -> HeaderWindow:
        return self._window

    @property
    def policy(self) -> TransportPolicy:
        return self._policy

    def _cipher_for(self, aead: OuterAead) -> OuterCipher:
        cipher = self._ciphers.get(aead)
        if cipher is None:
            cipher = self._ciphers[aead] = OuterCipher(aead)
        return cipher

    # --- Encode ---
    def encode(self, payload: bytes, recipient_ref: bytes = b"") -> Envelope:
        """Pad and outer-encrypt an inner-layer ciphertext.

        Parameters:
            payload: Bytes already encrypted by the inner layer.
            recipient_ref: Opaque routing hint (at most 255 bytes).

        Returns:
            The Envelope, keyed from the window's current header.

        Raises:
            PayloadTooLarge: Before any key derivation if the payload exceeds
                the largest bucket.
            NoHeaderAvailable: If the window is empty.
            MalformedFrame: If ``recipient_ref`` is too long.
        """
        op = _Operation("encode")
        op.advance(OperationState.ENCODING)
        try:
            if len(recipient_ref) > MAX_RECIPIENT_REF:
                raise MalformedFrame("recipient reference longer than 255 bytes")
            bucket, padded = pad(payload)
            header = self._window.current()
            nonce = self._cipher.new_nonce()
            aad = frame.associated_data(header.hash, recipient_ref)
            with TransportKey.for_header(header) as tkey:
                ciphertext = self._cipher.encrypt(tkey.key, nonce, padded, aad)
            env = frame.encode(header.hash, recipient_ref, nonce, ciphertext, self._cipher.aead)
        except ChainVeilError:
            op.advance(OperationState.FAILED)
            raise
        op.advance(OperationState.ENCODED)
        logger.debug("encoded %d-byte payload into %s bucket under %s", len(payload), bucket.name, header.short_id)
        return env

    def encode_bytes(self, payload: bytes, recipient_ref: bytes = b"") -> bytes:
        return self.encode(payload, recipient_ref).serialize()

    # --- Decode ---
    def decode(self, data: WireInput) -> bytes:
        """Open an envelope (or its wire bytes) and return the inner payload.

        Raises:
            MalformedFrame: If the wire bytes cannot be parsed.
            DecryptionExhausted: If no candidate header opens the envelope.
            PaddingCorrupt: If the decrypted buffer has an inconsistent prefix.
        """
        return self.decode_detailed(data).plaintext

    def decode_detailed(self, data: WireInput) -> DecodeResult:
        op = _Operation("decode")
        op.advance(OperationState.DECODING)
        try:
            env, candidates = self._prepare(data)
            for attempt, (header, padded) in enumerate(self._attempts(env, candidates), start=1):
                if padded is not None:
                    return self._finish(op, header, padded, attempt)
            raise self._exhausted(env, len(candidates))
        except ChainVeilError:
            op.advance(OperationState.FAILED)
            raise

    async def decode_async(self, data: WireInput) -> bytes:
        """Like ``decode`` but yields to the event loop between candidates.

        Cancellation can only take effect between attempts, never while an
        AEAD operation is in progress.
        """
        op = _Operation("decode")
        op.advance(OperationState.DECODING)
        try:
            env, candidates = self._prepare(data)
            attempts = self._attempts(env, candidates)
            for attempt in range(1, len(candidates) + 1):
                await asyncio.sleep(0)
                header, padded = next(attempts)
                if padded is not None:
                    return self._finish(op, header, padded, attempt).plaintext
            raise self._exhausted(env, len(candidates))
        except ChainVeilError:
            op.advance(OperationState.FAILED)
            raise

    def _prepare(self, data: WireInput) -> Tuple[Envelope, Tuple[BlockHeader, ...]]:
        if isinstance(data, Envelope):
            env = frame.encode(data.header_ref, data.recipient_ref, data.nonce, data.ciphertext, data.aead)
        else:
            env = frame.decode(bytes(data))
        candidates = self._window.candidates_for_decode()
        if env.header_ref not in self._window:
            logger.warning(
                "envelope references header %s which is not in the window",
                env.header_ref[:6].hex(),
            )
            raise DecryptionExhausted("referenced header is outside the lookback window", attempts=0)
        if self._policy.prefer_referenced_header:
            candidates = tuple(sorted(candidates, key=lambda h: h.hash != env.header_ref))
        return env, candidates

    def _attempts(
        self, env: Envelope, candidates: Tuple[BlockHeader, ...]
    ) -> Iterator[Tuple[BlockHeader, Optional[bytes]]]:
        cipher = self._cipher_for(env.aead)
        aad = env.associated_data()
        for header in candidates:
            with TransportKey.for_header(header) as tkey:
                try:
                    padded = cipher.decrypt(tkey.key, env.nonce, env.ciphertext, aad)
                except AuthenticationFailure:
                    logger.debug("candidate %s rejected", header.short_id)
                    padded = None
            yield header, padded

    def _finish(self, op: _Operation, header: BlockHeader, padded: bytes, attempts: int) -> DecodeResult:
        plaintext = unpad(padded, bucket_for_size(len(padded)))
        op.advance(OperationState.DECODED)
        logger.debug("decoded envelope with %s after %d attempt(s)", header.short_id, attempts)
        return DecodeResult(plaintext=plaintext, header=header, attempts=attempts, state=op.state)

    def _exhausted(self, env: Envelope, attempts: int) -> DecryptionExhausted:
        logger.warning(
            "no candidate header opened envelope referencing %s (%d attempt(s))",
            env.header_ref[:6].hex(),
            attempts,
        )
        return DecryptionExhausted(f"all {attempts} candidate header(s) failed", attempts=attempts)
