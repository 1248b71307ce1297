"""SealedSecret discovery."""

from resealer.discovery.enumerator import SealedSecretEnumerator, parse_sealed_secret

__all__ = ["SealedSecretEnumerator", "parse_sealed_secret"]
