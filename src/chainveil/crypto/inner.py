"""Inner-layer confidentiality collaborator.

The protocol core treats inner ciphertext as opaque bytes. ``InnerCipher`` is
the interface it expects; ``HpkeInnerCipher`` is a reference implementation
using HPKE base mode (RFC 9180) via the rfc9180-py package (imported as
``rfc9180``).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Tuple

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from rfc9180 import AEADID, HPKE, KDFID, KEMID
from rfc9180.exceptions import OpenError

from ..codec.tls import DecodeError, read_opaque8, write_opaque8
from ..exceptions import InnerCipherError

INNER_INFO = b"chainveil inner v1"


class InnerCipher(ABC):
    @abstractmethod
    def encrypt(self, recipient_identity: bytes, plaintext: bytes) -> bytes:
        pass

    @abstractmethod
    def decrypt(self, sender_identity: bytes, data: bytes) -> bytes:
        pass


def generate_identity() -> Tuple[bytes, bytes]:
    """Return a fresh raw X25519 (private_key, public_key) pair."""
    sk = X25519PrivateKey.generate()
    return sk.private_bytes_raw(), sk.public_key().public_bytes_raw()


class HpkeInnerCipher(InnerCipher):
    """HPKE base mode, DHKEM(X25519, HKDF-SHA256) / HKDF-SHA256 / ChaCha20-Poly1305.

    Identities are raw X25519 public keys. Output is
    ``opaque8(kem_output) || ciphertext``. The sender's identity is bound as
    AEAD associated data, so opening with the wrong claimed sender fails.
    Base mode does not prove the sender holds that identity's private key.

    Parameters:
        private_key: This party's raw X25519 private key.
        public_key: This party's raw X25519 public key (its identity).
    """

    def __init__(self, private_key: bytes, public_key: bytes):
        self._private_key = private_key
        self._public_key = public_key
        self._hpke = HPKE(KEMID.DHKEM_X25519_HKDF_SHA256, KDFID.HKDF_SHA256, AEADID.CHACHA20_POLY1305)

    @classmethod
    def generate(cls) -> "HpkeInnerCipher":
        return cls(*generate_identity())

    @property
    def identity(self) -> bytes:
        return self._public_key

    def encrypt(self, recipient_identity: bytes, plaintext: bytes) -> bytes:
        try:
            kem_output, ciphertext = self._hpke.seal_base(
                recipient_identity, INNER_INFO, self._public_key, plaintext
            )
        except Exception as e:
            raise InnerCipherError(f"inner seal failed: {e}") from e
        return write_opaque8(kem_output) + ciphertext

    def decrypt(self, sender_identity: bytes, data: bytes) -> bytes:
        try:
            kem_output, off = read_opaque8(data, 0)
        except DecodeError as e:
            raise InnerCipherError("truncated inner ciphertext") from e
        try:
            return self._hpke.open_base(kem_output, self._private_key, INNER_INFO, sender_identity, data[off:])
        except OpenError as e:
            raise InnerCipherError("inner ciphertext did not open") from e
        except Exception as e:
            # Malformed KEM output fails before the AEAD step.
            raise InnerCipherError(f"invalid inner ciphertext: {e}") from e
