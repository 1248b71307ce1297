"""Resource, key and identity data structures."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum

SEALED_SECRET_GROUP = "bitnami.com"
SEALED_SECRET_VERSION = "v1alpha1"
SEALED_SECRET_PLURAL = "sealedsecrets"

NAMESPACE_WIDE_ANNOTATION = "sealedsecrets.bitnami.com/namespace-wide"
CLUSTER_WIDE_ANNOTATION = "sealedsecrets.bitnami.com/cluster-wide"
FINGERPRINT_ANNOTATION = "resealer.io/key-fingerprint"


class SealingScope(StrEnum):
    """How much of a SealedSecret's identity the ciphertext is bound to."""

    STRICT = "strict"
    NAMESPACE_WIDE = "namespace-wide"
    CLUSTER_WIDE = "cluster-wide"

    @classmethod
    def from_annotations(cls, annotations: dict[str, str]) -> SealingScope:
        if annotations.get(CLUSTER_WIDE_ANNOTATION, "").lower() == "true":
            return cls.CLUSTER_WIDE
        if annotations.get(NAMESPACE_WIDE_ANNOTATION, "").lower() == "true":
            return cls.NAMESPACE_WIDE
        return cls.STRICT


@dataclass(frozen=True)
class BindingIdentity:
    """Identity the ciphertext's authenticated data is bound to."""

    namespace: str
    name: str
    scope: SealingScope = SealingScope.STRICT

    def label(self) -> bytes:
        """Return the OAEP label the controller expects for this scope."""
        if self.scope is SealingScope.CLUSTER_WIDE:
            return b""
        if self.scope is SealingScope.NAMESPACE_WIDE:
            return self.namespace.encode()
        return f"{self.namespace}/{self.name}".encode()


@dataclass(frozen=True)
class ListScope:
    """Restricts discovery. No namespace means cluster-wide."""

    namespace: str | None = None
    label_selector: str | None = None

    def describe(self) -> str:
        where = f"namespace={self.namespace}" if self.namespace else "all-namespaces"
        if self.label_selector:
            return f"{where} selector={self.label_selector}"
        return where


@dataclass(frozen=True)
class EncryptedResourceRef:
    """One SealedSecret as observed by the Enumerator.

    Read-only; a successful write supersedes it rather than mutating it.
    """

    namespace: str
    name: str
    resource_version: str
    encrypted_data: dict[str, str]
    key_fingerprint: str | None = None
    scope: SealingScope = SealingScope.STRICT
    raw: dict[str, object] = field(default_factory=dict, repr=False, compare=False)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    def binding(self) -> BindingIdentity:
        return BindingIdentity(namespace=self.namespace, name=self.name, scope=self.scope)


@dataclass(frozen=True)
class PlainSnapshot:
    """Point-in-time read of the Secret a SealedSecret unseals into.

    Held by exactly one reconcile attempt and dropped afterwards.
    """

    namespace: str
    name: str
    data: dict[str, bytes] = field(repr=False)


@dataclass(frozen=True)
class KeyMaterial:
    """The active public key for this run."""

    fingerprint: str
    public_key_der: bytes = field(repr=False)
    rotated_at: datetime
    fetched_at: datetime

    @property
    def short_fingerprint(self) -> str:
        return self.fingerprint[:16]
