"""Orchestrator: one producer feeding a bounded queue, N workers draining it.

Fatal errors (key fetch, discovery, authentication) cancel every task and are
re-raised once the pool has been torn down. Per-item errors become ``failed``
outcomes and never touch sibling work.
"""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import replace

import structlog

from resealer.discovery.enumerator import SealedSecretEnumerator, parse_sealed_secret
from resealer.errors import (
    DiscoveryError,
    EncryptionError,
    FatalError,
    ResourceGoneError,
    TransportError,
    VersionConflict,
)
from resealer.keys.provider import KeyProvider
from resealer.kube.gateway import ClusterGateway
from resealer.models.config import ResealerConfig
from resealer.models.outcomes import FailureReason, ReconcileOutcome, RunReport
from resealer.models.resources import EncryptedResourceRef, KeyMaterial, ListScope
from resealer.observability.metrics import retries_total
from resealer.reconcile.applier import Applier
from resealer.reconcile.reconciler import Reconciler
from resealer.reconcile.retry import retry_transport
from resealer.report.reporter import Reporter

_log = structlog.get_logger(component="orchestrator")

_DONE = None


class Orchestrator:
    """Drives one run from key fetch to the final RunReport."""

    def __init__(
        self,
        config: ResealerConfig,
        key_provider: KeyProvider,
        enumerator: SealedSecretEnumerator,
        reconciler: Reconciler,
        applier: Applier,
        gateway: ClusterGateway,
        reporter: Reporter,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._config = config
        self._keys = key_provider
        self._enumerator = enumerator
        self._reconciler = reconciler
        self._applier = applier
        self._gateway = gateway
        self._reporter = reporter
        self._sleep = sleep
        self._rng = rng or random.Random()

    @property
    def reporter(self) -> Reporter:
        return self._reporter

    async def run(self, scope: ListScope | None = None) -> RunReport:
        """Re-seal everything in *scope* (default: the configured scope).

        Raises:
            FatalError: after cancelling all in-flight work. Outcomes recorded
                before the failure remain in the Reporter.
        """
        scope = scope or self._config.scope.to_list_scope()
        try:
            active_key = await self._keys.fetch_active_key()
        except FatalError as exc:
            self._reporter.record_fatal(exc)
            _log.error("run_aborted", stage="key_fetch", error=str(exc))
            raise

        _log.info(
            "run_started",
            scope=scope.describe(),
            concurrency=self._config.concurrency,
            dry_run=self._config.dry_run,
            fingerprint=active_key.short_fingerprint,
        )

        queue: asyncio.Queue[EncryptedResourceRef | None] = asyncio.Queue(maxsize=self._config.concurrency)
        producer = asyncio.create_task(self._produce(scope, queue), name="enumerator")
        workers = [
            asyncio.create_task(self._work(i, queue, active_key), name=f"worker-{i}")
            for i in range(self._config.concurrency)
        ]
        tasks = [producer, *workers]
        try:
            done, _pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
            for task in done:
                if task.cancelled():
                    continue
                exc = task.exception()
                if exc is not None:
                    self._reporter.record_fatal(exc)
                    _log.error("run_aborted", stage=task.get_name(), error=str(exc))
                    raise exc
        finally:
            await _cancel_all(tasks)

        report = self._reporter.summary()
        _log.info(
            "run_finished",
            total=report.total,
            **{kind.value.replace("-", "_"): count for kind, count in report.counts.items()},
        )
        return report

    async def _produce(self, scope: ListScope, queue: asyncio.Queue[EncryptedResourceRef | None]) -> None:
        try:
            async for ref in self._enumerator.list(scope):
                await queue.put(ref)
        except FatalError:
            raise
        except Exception as exc:
            raise DiscoveryError(f"enumeration failed ({scope.describe()}): {type(exc).__name__}: {exc}") from exc
        for _ in range(self._config.concurrency):
            await queue.put(_DONE)

    async def _work(self, index: int, queue: asyncio.Queue[EncryptedResourceRef | None], key: KeyMaterial) -> None:
        with structlog.contextvars.bound_contextvars(worker=index):
            while True:
                ref = await queue.get()
                if ref is _DONE:
                    return
                outcome = await self.process(ref, key)
                self._reporter.record(outcome)

    async def process(self, ref: EncryptedResourceRef, key: KeyMaterial) -> ReconcileOutcome:
        """Reconcile and apply one item, re-running the whole cycle on conflicts.

        Raises only FatalError; everything else is folded into the outcome.
        """
        ceiling = self._config.retry.conflict_attempts
        current = ref
        attempt = 0
        while True:
            attempt += 1
            try:
                if attempt > 1:
                    current = await self._refresh(ref)
                result = await self._reconciler.reconcile(current, key)
                if isinstance(result, ReconcileOutcome):
                    return replace(result, attempts=attempt)
                if self._config.dry_run:
                    _log.info("sealedsecret_would_update", namespace=ref.namespace, name=ref.name)
                    return ReconcileOutcome.updated(current, attempts=attempt, dry_run=True)
                await self._applier.apply(result)
                return ReconcileOutcome.updated(current, attempts=attempt)
            except VersionConflict as exc:
                if attempt >= ceiling:
                    _log.error(
                        "conflict_retries_exhausted",
                        namespace=ref.namespace,
                        name=ref.name,
                        attempts=attempt,
                    )
                    return ReconcileOutcome.failed(ref, FailureReason.CONFLICT_EXHAUSTED, str(exc), attempt)
                retries_total.labels(kind="conflict").inc()
                delay = self._rng.uniform(0, self._config.retry.conflict_backoff_max)
                _log.warning(
                    "version_conflict",
                    namespace=ref.namespace,
                    name=ref.name,
                    attempt=attempt,
                    max_attempts=ceiling,
                    delay_s=round(delay, 3),
                )
                await self._sleep(delay)
            except ResourceGoneError as exc:
                _log.warning("sealedsecret_deleted", namespace=ref.namespace, name=ref.name)
                return ReconcileOutcome.failed(ref, FailureReason.RESOURCE_DELETED, str(exc), attempt)
            except EncryptionError as exc:
                _log.error("encryption_failed", namespace=ref.namespace, name=ref.name, error=str(exc))
                return ReconcileOutcome.failed(ref, FailureReason.ENCRYPTION, str(exc), attempt)
            except TransportError as exc:
                _log.error("transport_failed", namespace=ref.namespace, name=ref.name, error=str(exc))
                return ReconcileOutcome.failed(ref, FailureReason.TRANSPORT, str(exc), attempt)
            except FatalError:
                raise
            except Exception as exc:  # noqa: BLE001
                _log.exception("item_unexpected_error", namespace=ref.namespace, name=ref.name)
                return ReconcileOutcome.failed(ref, FailureReason.UNEXPECTED, f"{type(exc).__name__}: {exc}", attempt)

    async def _refresh(self, ref: EncryptedResourceRef) -> EncryptedResourceRef:
        """Re-read the SealedSecret so the next attempt sees its current version."""
        obj = await retry_transport(
            lambda: self._gateway.get_sealed_secret(ref.namespace, ref.name),
            self._config.retry,
            description="get sealedsecret",
            namespace=ref.namespace,
            name=ref.name,
        )
        fresh = parse_sealed_secret(obj) if obj is not None else None
        if fresh is None:
            raise ResourceGoneError(ref.namespace, ref.name)
        return fresh


async def _cancel_all(tasks: list[asyncio.Task[None]]) -> None:
    for task in tasks:
        if not task.done():
            task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
