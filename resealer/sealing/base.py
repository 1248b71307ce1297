"""Capability interface for producing ciphertext.

Implementations receive only public key material. Nothing on this interface
can carry, construct or return a private key.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping

from resealer.models.resources import BindingIdentity, KeyMaterial


class Sealer(ABC):
    """Turns plaintext fields into ciphertext fields under a public key."""

    @abstractmethod
    def encrypt(
        self,
        plaintext_fields: Mapping[str, bytes],
        key: KeyMaterial,
        identity: BindingIdentity,
    ) -> dict[str, str]:
        """Encrypt every field, binding each ciphertext to *identity*.

        Returns a mapping with exactly the keys of *plaintext_fields*; values
        are base64 ciphertext as stored in ``spec.encryptedData``.
        """
