"""Per-item outcomes and the aggregated run report."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from resealer.models.resources import EncryptedResourceRef


class OutcomeKind(StrEnum):
    """Category of a per-item result."""

    UPDATED = "updated"
    SKIPPED_UP_TO_DATE = "skipped-up-to-date"
    SKIPPED_MISSING_DEPENDENT = "skipped-missing-dependent"
    FAILED = "failed"


class FailureReason(StrEnum):
    """Why an item ended up as ``failed``."""

    ENCRYPTION = "encryption"
    CONFLICT_EXHAUSTED = "conflict-exhausted"
    TRANSPORT = "transport"
    RESOURCE_DELETED = "resource-deleted"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class ReconcileOutcome:
    """Tagged result for one SealedSecret. Consumed only by the Reporter."""

    kind: OutcomeKind
    namespace: str
    name: str
    reason: FailureReason | None = None
    detail: str = ""
    attempts: int = 1
    dry_run: bool = False

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def updated(cls, ref: EncryptedResourceRef, attempts: int = 1, dry_run: bool = False) -> ReconcileOutcome:
        return cls(OutcomeKind.UPDATED, ref.namespace, ref.name, attempts=attempts, dry_run=dry_run)

    @classmethod
    def up_to_date(cls, ref: EncryptedResourceRef, attempts: int = 1) -> ReconcileOutcome:
        return cls(OutcomeKind.SKIPPED_UP_TO_DATE, ref.namespace, ref.name, attempts=attempts)

    @classmethod
    def missing_dependent(cls, ref: EncryptedResourceRef, attempts: int = 1) -> ReconcileOutcome:
        return cls(
            OutcomeKind.SKIPPED_MISSING_DEPENDENT,
            ref.namespace,
            ref.name,
            detail="secret not found",
            attempts=attempts,
        )

    @classmethod
    def failed(
        cls,
        ref: EncryptedResourceRef,
        reason: FailureReason,
        detail: str = "",
        attempts: int = 1,
    ) -> ReconcileOutcome:
        return cls(OutcomeKind.FAILED, ref.namespace, ref.name, reason=reason, detail=detail, attempts=attempts)


@dataclass(frozen=True)
class ReencryptionPlan:
    """New ciphertext for one SealedSecret plus the write precondition."""

    ref: EncryptedResourceRef
    encrypted_data: dict[str, str] = field(repr=False)
    expected_version: str
    fingerprint: str


@dataclass
class RunReport:
    """Summary of a run, built by the Reporter."""

    counts: dict[OutcomeKind, int]
    outcomes: list[ReconcileOutcome] = field(default_factory=list)
    dry_run: bool = False
    fatal: str | None = None

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    @property
    def not_updated(self) -> list[ReconcileOutcome]:
        return [o for o in self.outcomes if o.kind is not OutcomeKind.UPDATED]

    @property
    def exit_code(self) -> int:
        if self.fatal is not None:
            return 2
        if self.counts.get(OutcomeKind.FAILED, 0) or self.counts.get(OutcomeKind.SKIPPED_MISSING_DEPENDENT, 0):
            return 1
        return 0
