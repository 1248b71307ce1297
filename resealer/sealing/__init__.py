"""Encryption capability used by the Reconciler.

Exports:
    Sealer        -- Capability interface: plaintext fields + public key + identity -> ciphertext fields.
    KubesealSealer -- Implementation compatible with the SealedSecrets controller's hybrid scheme.
"""

from resealer.sealing.base import Sealer
from resealer.sealing.kubeseal import KubesealSealer

__all__ = ["KubesealSealer", "Sealer"]
