"""Wire envelope for outer-encrypted messages.

Binary layout (all integers big-endian):

    uint8   version            (= 1)
    uint16  aead_id            (OuterAead)
    opaque  header_ref[32]     hash of the block used for key derivation
    opaque8 recipient_ref      routing hint for the inner layer
    opaque8 nonce              outer AEAD nonce (length fixed by aead_id)
    opaque32 content           padded ciphertext || tag

The same fields can be carried in a publish/subscribe event (``to_event`` /
``from_event``) with a base64 content body and hex tags. Event timestamps
and signatures belong to the transport layer.
"""
from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Union

from ..crypto.aeads import OuterAead, get_aead_params
from ..exceptions import MalformedFrame
from .tls import (
    DecodeError,
    read_fixed,
    read_opaque8,
    read_opaque32,
    read_uint8,
    read_uint16,
    write_opaque8,
    write_opaque32,
    write_uint8,
    write_uint16,
)

FRAME_VERSION = 1
HEADER_REF_SIZE = 32
MAX_RECIPIENT_REF = 0xFF

TAG_HEADER = "h"
TAG_RECIPIENT = "p"
TAG_NONCE = "n"
TAG_AEAD = "a"


@dataclass(frozen=True)
class Envelope:
    """One outer-encrypted message, as carried on the wire."""

    header_ref: bytes
    recipient_ref: bytes
    nonce: bytes
    ciphertext: bytes
    aead: OuterAead = OuterAead.AES_256_GCM

    @property
    def header_ref_hex(self) -> str:
        return self.header_ref.hex()

    def associated_data(self) -> bytes:
        return associated_data(self.header_ref, self.recipient_ref)

    def serialize(self) -> bytes:
        return (
            write_uint8(FRAME_VERSION)
            + write_uint16(int(self.aead))
            + self.header_ref
            + write_opaque8(self.recipient_ref)
            + write_opaque8(self.nonce)
            + write_opaque32(self.ciphertext)
        )


def associated_data(header_ref: bytes, recipient_ref: bytes) -> bytes:
    """AEAD associated data binding the routing fields to the ciphertext."""
    return bytes(header_ref) + write_opaque8(recipient_ref)


def _validated(env: Envelope) -> Envelope:
    params = get_aead_params(env.aead)
    if params is None:
        raise MalformedFrame(f"unknown outer AEAD id {int(env.aead):#06x}")
    if len(env.header_ref) != HEADER_REF_SIZE:
        raise MalformedFrame(f"header reference must be {HEADER_REF_SIZE} bytes, got {len(env.header_ref)}")
    if len(env.recipient_ref) > MAX_RECIPIENT_REF:
        raise MalformedFrame("recipient reference longer than 255 bytes")
    if len(env.nonce) != params.nonce_size:
        raise MalformedFrame(f"{params.name} nonce must be {params.nonce_size} bytes, got {len(env.nonce)}")
    if len(env.ciphertext) < params.tag_size:
        raise MalformedFrame("ciphertext shorter than authentication tag")
    return env


def encode(
    header_hash: bytes,
    recipient_ref: bytes,
    nonce: bytes,
    ciphertext: bytes,
    aead: OuterAead = OuterAead.AES_256_GCM,
) -> Envelope:
    """Assemble an Envelope from its fields.

    Raises:
        MalformedFrame: If any field has the wrong length.
    """
    if get_aead_params(aead) is None:
        raise MalformedFrame(f"unknown outer AEAD id {int(aead):#06x}")
    return _validated(
        Envelope(
            header_ref=bytes(header_hash),
            recipient_ref=bytes(recipient_ref),
            nonce=bytes(nonce),
            ciphertext=bytes(ciphertext),
            aead=OuterAead(aead),
        )
    )


def decode(wire: bytes) -> Envelope:
    """Parse wire bytes into an Envelope.

    Raises:
        MalformedFrame: If a field is missing, truncated, of the wrong length,
            or trailing bytes follow the content.
    """
    try:
        version, off = read_uint8(wire, 0)
        if version != FRAME_VERSION:
            raise MalformedFrame(f"unsupported frame version {version}")
        aead_id, off = read_uint16(wire, off)
        header_ref, off = read_fixed(wire, off, HEADER_REF_SIZE)
        recipient_ref, off = read_opaque8(wire, off)
        nonce, off = read_opaque8(wire, off)
        content, off = read_opaque32(wire, off)
    except DecodeError as e:
        raise MalformedFrame(str(e)) from e
    if off != len(wire):
        raise MalformedFrame(f"{len(wire) - off} trailing bytes after content")
    if get_aead_params(aead_id) is None:
        raise MalformedFrame(f"unknown outer AEAD id {aead_id:#06x}")
    return _validated(Envelope(header_ref, recipient_ref, nonce, content, OuterAead(aead_id)))


def to_event(env: Envelope) -> Dict[str, Any]:
    """Render an Envelope as a pub/sub event body (content + tags)."""
    tags: List[List[str]] = [
        [TAG_HEADER, env.header_ref.hex()],
        [TAG_RECIPIENT, env.recipient_ref.hex()],
        [TAG_NONCE, env.nonce.hex()],
        [TAG_AEAD, str(int(env.aead))],
    ]
    return {"content": base64.b64encode(env.ciphertext).decode("ascii"), "tags": tags}


def _header_ref_from_tag(value: Union[str, bytes]) -> bytes:
    # Header references may arrive hex-encoded or raw.
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return bytes.fromhex(value)


def from_event(event: Mapping[str, Any]) -> Envelope:
    """Parse a pub/sub event body produced by ``to_event``.

    Raises:
        MalformedFrame: If required tags are missing or badly encoded.
    """
    raw_tags = event.get("tags") or []
    if not isinstance(raw_tags, (list, tuple)):
        raise MalformedFrame("event tags must be a list")
    tags: Dict[str, Any] = {}
    for tag in raw_tags:
        if isinstance(tag, (list, tuple)) and len(tag) >= 2 and isinstance(tag[0], str) and tag[0] not in tags:
            tags[tag[0]] = tag[1]
    for required in (TAG_HEADER, TAG_NONCE):
        if required not in tags:
            raise MalformedFrame(f"event missing '{required}' tag")
    content = event.get("content")
    if not isinstance(content, str):
        raise MalformedFrame("event content must be a base64 string")
    try:
        header_ref = _header_ref_from_tag(tags[TAG_HEADER])
        recipient_ref = bytes.fromhex(tags.get(TAG_RECIPIENT, ""))
        nonce = bytes.fromhex(tags[TAG_NONCE])
        aead_id = int(tags.get(TAG_AEAD, int(OuterAead.AES_256_GCM)))
        ciphertext = base64.b64decode(content, validate=True)
    except (ValueError, TypeError, binascii.Error) as e:
        raise MalformedFrame(f"invalid event encoding: {e}") from e
    if get_aead_params(aead_id) is None:
        raise MalformedFrame(f"unknown outer AEAD id {aead_id:#06x}")
    return _validated(Envelope(header_ref, recipient_ref, nonce, ciphertext, OuterAead(aead_id)))
