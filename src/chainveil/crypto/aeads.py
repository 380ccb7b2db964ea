from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional, Type, Union

from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305


class OuterAead(IntEnum):
    """
    Outer-layer AEAD identifiers. The numeric value is carried on the wire.
    Values mirror the HPKE AEAD registry (RFC 9180 §7.3).
    """

    AES_256_GCM = 0x0002
    CHACHA20_POLY1305 = 0x0003


@dataclass(frozen=True)
class AeadParams:
    """
    Sizes (bytes) and implementation class for an outer AEAD.
    """

    aead: OuterAead
    name: str
    key_size: int
    nonce_size: int
    tag_size: int
    impl: Type[Union[AESGCM, ChaCha20Poly1305]]


# All registered ciphers take a 256-bit key so a derived transport key can
# be used directly without expansion.
_REGISTRY: Dict[OuterAead, AeadParams] = {
    OuterAead.AES_256_GCM: AeadParams(
        aead=OuterAead.AES_256_GCM,
        name="AES-256-GCM",
        key_size=32,
        nonce_size=12,
        tag_size=16,
        impl=AESGCM,
    ),
    OuterAead.CHACHA20_POLY1305: AeadParams(
        aead=OuterAead.CHACHA20_POLY1305,
        name="ChaCha20-Poly1305",
        key_size=32,
        nonce_size=12,
        tag_size=16,
        impl=ChaCha20Poly1305,
    ),
}


def get_aead_params(aead_id: int) -> Optional[AeadParams]:
    """Return the registered parameters for an AEAD id, or None if unknown."""
    try:
        return _REGISTRY[OuterAead(aead_id)]
    except ValueError:
        return None


def aead_by_name(name: str) -> OuterAead:
    """Resolve an AEAD from a config string such as ``"chacha20-poly1305"``.

    Raises:
        ValueError: If the name matches no registered AEAD.
    """
    norm = name.strip().upper().replace("-", "_")
    known = list_aeads()
    for params in known:
        if norm in (params.aead.name, params.name.upper().replace("-", "_")):
            return params.aead
    choices = ", ".join(p.name for p in known)
    raise ValueError(f"unknown outer AEAD: {name!r} (expected one of: {choices})")


def list_aeads() -> list[AeadParams]:
    return list(_REGISTRY.values())
