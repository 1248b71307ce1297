"""Reporter: collects per-item outcomes into counts, a summary and an exit code."""

from __future__ import annotations

import threading

from resealer.models.outcomes import OutcomeKind, ReconcileOutcome, RunReport
from resealer.observability.metrics import outcomes_total


class Reporter:
    """Thread-safe accumulator for ReconcileOutcome values.

    The lock keeps counters consistent even if a worker records from a
    thread (the sealer runs off the event loop).
    """

    def __init__(self, dry_run: bool = False) -> None:
        self._dry_run = dry_run
        self._lock = threading.Lock()
        self._counts: dict[OutcomeKind, int] = {kind: 0 for kind in OutcomeKind}
        self._outcomes: list[ReconcileOutcome] = []
        self._fatal: str | None = None

    def record(self, outcome: ReconcileOutcome) -> None:
        with self._lock:
            self._counts[outcome.kind] += 1
            self._outcomes.append(outcome)
        outcomes_total.labels(outcome=outcome.kind.value).inc()

    def record_fatal(self, error: BaseException) -> None:
        """Mark the run as aborted. The first fatal error wins."""
        with self._lock:
            if self._fatal is None:
                self._fatal = f"{type(error).__name__}: {error}"

    def count(self, kind: OutcomeKind) -> int:
        with self._lock:
            return self._counts[kind]

    def summary(self) -> RunReport:
        with self._lock:
            return RunReport(
                counts=dict(self._counts),
                outcomes=sorted(self._outcomes, key=lambda o: (o.namespace, o.name)),
                dry_run=self._dry_run,
                fatal=self._fatal,
            )


def render_summary(report: RunReport, verbose: bool = False) -> str:
    """Human-readable summary for stdout."""
    header = "resealer summary (dry run)" if report.dry_run else "resealer summary"
    lines = [header]
    updated_label = "would update" if report.dry_run else "updated"
    labels = {
        OutcomeKind.UPDATED: updated_label,
        OutcomeKind.SKIPPED_UP_TO_DATE: "up to date",
        OutcomeKind.SKIPPED_MISSING_DEPENDENT: "missing secret",
        OutcomeKind.FAILED: "failed",
    }
    for kind in OutcomeKind:
        lines.append(f"  {labels[kind]:<15} {report.counts.get(kind, 0)}")
    lines.append(f"  {'total':<15} {report.total}")

    if report.fatal is not None:
        lines.append(f"aborted: {report.fatal}")

    if verbose and report.not_updated:
        lines.append("not updated:")
        for outcome in report.not_updated:
            reason = outcome.reason.value if outcome.reason else outcome.kind.value
            detail = f" ({outcome.detail})" if outcome.detail else ""
            lines.append(f"  {outcome.key}: {reason}{detail}")
    return "\n".join(lines)


def report_payload(report: RunReport) -> dict[str, object]:
    """Serialise *report* to a plain dict for JSON encoding."""
    return {
        "dry_run": report.dry_run,
        "exit_code": report.exit_code,
        "fatal": report.fatal,
        "total": report.total,
        "counts": {kind.value: count for kind, count in report.counts.items()},
        "not_updated": [
            {
                "namespace": o.namespace,
                "name": o.name,
                "outcome": o.kind.value,
                "reason": o.reason.value if o.reason else None,
                "detail": o.detail,
                "attempts": o.attempts,
            }
            for o in report.not_updated
        ],
    }
