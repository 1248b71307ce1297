"""Hybrid RSA-OAEP + AES-GCM sealing, byte-compatible with kubeseal.

Wire format of one field, before base64::

    uint16 big-endian len(rsa_ct) | rsa_ct | aes_gcm_ct

``rsa_ct`` is a fresh 32-byte session key under RSA-OAEP(SHA-256) with the
binding label as the OAEP label; ``aes_gcm_ct`` is the field value under
AES-256-GCM with an all-zero nonce (safe because every session key is used
exactly once).
"""

from __future__ import annotations

import base64
import os
import struct
from collections.abc import Mapping

from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from resealer.models.resources import BindingIdentity, KeyMaterial
from resealer.sealing.base import Sealer

_SESSION_KEY_BYTES = 32
_NONCE = b"\x00" * 12


def load_rsa_public_key(der: bytes) -> rsa.RSAPublicKey:
    """Load a DER SubjectPublicKeyInfo and insist on RSA."""
    key = serialization.load_der_public_key(der)
    if not isinstance(key, rsa.RSAPublicKey):
        raise TypeError(f"sealing key must be RSA, got {type(key).__name__}")
    return key


class KubesealSealer(Sealer):
    """Seals fields the way the SealedSecrets controller expects to unseal them."""

    def encrypt(
        self,
        plaintext_fields: Mapping[str, bytes],
        key: KeyMaterial,
        identity: BindingIdentity,
    ) -> dict[str, str]:
        public_key = load_rsa_public_key(key.public_key_der)
        label = identity.label()
        return {
            field_name: base64.b64encode(self.seal(public_key, value, label)).decode("ascii")
            for field_name, value in plaintext_fields.items()
        }

    @staticmethod
    def seal(public_key: rsa.RSAPublicKey, plaintext: bytes, label: bytes) -> bytes:
        session_key = os.urandom(_SESSION_KEY_BYTES)
        rsa_ct = public_key.encrypt(
            session_key,
            padding.OAEP(
                mgf=padding.MGF1(algorithm=hashes.SHA256()),
                algorithm=hashes.SHA256(),
                label=label or None,
            ),
        )
        aes_ct = AESGCM(session_key).encrypt(_NONCE, plaintext, None)
        return struct.pack(">H", len(rsa_ct)) + rsa_ct + aes_ct
