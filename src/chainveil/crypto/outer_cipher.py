"""Outer-layer AEAD keyed by chain-derived transport keys.

Ciphertexts are returned as ``ciphertext || tag`` (the layout the
``cryptography`` AEAD classes produce). Tag verification is constant time
inside the library; a mismatch surfaces as ``AuthenticationFailure``.
"""
from __future__ import annotations

import os
from typing import Union

from cryptography.exceptions import InvalidTag

from ..exceptions import AuthenticationFailure, ConfigurationError
from .aeads import AeadParams, OuterAead, get_aead_params

BytesLike = Union[bytes, bytearray, memoryview]


class OuterCipher:
    """AEAD encrypt/decrypt for the outer layer.

    Parameters:
        aead: Outer AEAD to use (default AES-256-GCM).

    Raises:
        ConfigurationError: If the AEAD id is not registered.
    """

    def __init__(self, aead: OuterAead = OuterAead.AES_256_GCM):
        params = get_aead_params(aead)
        if params is None:
            raise ConfigurationError(f"Unsupported outer AEAD id: {int(aead):#06x}")
        self._params: AeadParams = params

    @property
    def aead(self) -> OuterAead:
        return self._params.aead

    @property
    def nonce_size(self) -> int:
        return self._params.nonce_size

    @property
    def key_size(self) -> int:
        return self._params.key_size

    @property
    def tag_size(self) -> int:
        return self._params.tag_size

    def new_nonce(self) -> bytes:
        """Fresh random nonce for one message."""
        return os.urandom(self._params.nonce_size)

    def _check(self, key: BytesLike, nonce: BytesLike) -> None:
        if len(key) != self._params.key_size:
            raise ValueError(f"{self._params.name} key must be {self._params.key_size} bytes")
        if len(nonce) != self._params.nonce_size:
            raise ValueError(f"{self._params.name} nonce must be {self._params.nonce_size} bytes")

    def encrypt(self, key: BytesLike, nonce: BytesLike, payload: BytesLike, aad: bytes = b"") -> bytes:
        self._check(key, nonce)
        return self._params.impl(key).encrypt(nonce, payload, aad)

    def decrypt(self, key: BytesLike, nonce: BytesLike, ciphertext: BytesLike, aad: bytes = b"") -> bytes:
        """Open ``ciphertext || tag``.

        Raises:
            AuthenticationFailure: On tag mismatch, including ciphertexts too
                short to carry a tag.
        """
        self._check(key, nonce)
        if len(ciphertext) < self._params.tag_size:
            raise AuthenticationFailure("ciphertext shorter than tag")
        try:
            return self._params.impl(key).decrypt(nonce, ciphertext, aad)
        except InvalidTag as e:
            raise AuthenticationFailure("outer AEAD tag mismatch") from e
