"""Core data structures for resealer."""

from resealer.models.config import ResealerConfig
from resealer.models.outcomes import (
    FailureReason,
    OutcomeKind,
    ReconcileOutcome,
    ReencryptionPlan,
    RunReport,
)
from resealer.models.resources import (
    BindingIdentity,
    EncryptedResourceRef,
    KeyMaterial,
    ListScope,
    PlainSnapshot,
    SealingScope,
)

__all__ = [
    "BindingIdentity",
    "EncryptedResourceRef",
    "FailureReason",
    "KeyMaterial",
    "ListScope",
    "OutcomeKind",
    "PlainSnapshot",
    "ReconcileOutcome",
    "ReencryptionPlan",
    "ResealerConfig",
    "RunReport",
    "SealingScope",
]
