"""Run bootstrap for resealer.

Wires all components in dependency order for a single run:
    logging → K8s client → rate-limited gateway → key provider → enumerator
            → reconciler/applier → orchestrator → reporter

After the run (successful, fatal or interrupted) the summary is published
(Pushgateway, webhook) and the K8s client is closed. A failure while
publishing is logged and never changes the exit code.
"""

from __future__ import annotations

import asyncio
import contextlib
import signal
from collections.abc import Iterator
from typing import TYPE_CHECKING

from resealer import __version__
from resealer.discovery.enumerator import SealedSecretEnumerator
from resealer.errors import FatalError
from resealer.keys.provider import KeyProvider, build_cert_source
from resealer.kube.gateway import ClusterGateway, RateLimitedGateway
from resealer.kube.ratelimit import TokenBucket
from resealer.models.config import ResealerConfig
from resealer.models.outcomes import RunReport
from resealer.models.resources import KeyMaterial
from resealer.notifications.webhook import SummaryWebhook
from resealer.observability.logging import bind_run_context, get_logger, setup_logging
from resealer.observability.metrics import push_metrics
from resealer.orchestrator.pool import Orchestrator
from resealer.reconcile.applier import Applier
from resealer.reconcile.reconciler import Reconciler
from resealer.report.reporter import Reporter
from resealer.sealing.base import Sealer
from resealer.sealing.kubeseal import KubesealSealer

if TYPE_CHECKING:
    import structlog


class _ComponentError(FatalError):
    """Raised when a mandatory component fails to start."""

    def __init__(self, component: str, cause: Exception) -> None:
        super().__init__(f"Component '{component}' failed to start: {cause}")
        self.component = component
        self.cause = cause


class ResealerApp:
    """Owns every component of one run.

    ``gateway`` and ``sealer`` may be injected; otherwise a kubernetes-asyncio
    gateway and the kubeseal-compatible sealer are built.
    """

    def __init__(
        self,
        config: ResealerConfig,
        gateway: ClusterGateway | None = None,
        sealer: Sealer | None = None,
    ) -> None:
        self.config = config
        self.reporter = Reporter(dry_run=config.dry_run)
        self._base_gateway = gateway
        self._owns_gateway = gateway is None
        self._sealer = sealer or KubesealSealer()
        self._gateway: ClusterGateway | None = None
        self._key_provider: KeyProvider | None = None
        self._orchestrator: Orchestrator | None = None
        self._log: structlog.stdlib.BoundLogger = get_logger("app")

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Build the pipeline. Raises _ComponentError if the cluster is unreachable."""
        self._log.info("resealer starting", version=__version__, dry_run=self.config.dry_run)
        await self._start_gateway()
        assert self._gateway is not None

        self._key_provider = KeyProvider(build_cert_source(self.config.controller, self._gateway))
        self._orchestrator = Orchestrator(
            config=self.config,
            key_provider=self._key_provider,
            enumerator=SealedSecretEnumerator(self._gateway, page_size=self.config.scope.page_size),
            reconciler=Reconciler(self._gateway, self._sealer, self.config.retry),
            applier=Applier(self._gateway, self.config.retry),
            gateway=self._gateway,
            reporter=self.reporter,
        )

    async def _start_gateway(self) -> None:
        """Initialise the kubernetes-asyncio client unless a gateway was injected."""
        base = self._base_gateway
        if base is None:
            self._log.debug("starting k8s client")
            try:
                # Import lazily: kubernetes-asyncio is only needed when no gateway is injected.
                from resealer.kube.client import KubernetesGateway, load_api_client

                base = KubernetesGateway(await load_api_client(self.config.kube))
            except Exception as exc:
                raise _ComponentError("k8s_client", exc) from exc
            self._base_gateway = base

        bucket = TokenBucket(self.config.rate_limit.qps, self.config.rate_limit.burst)
        self._gateway = RateLimitedGateway(base, bucket)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def reseal(self) -> RunReport:
        assert self._orchestrator is not None
        return await self._orchestrator.run()

    async def fetch_key(self) -> KeyMaterial:
        assert self._key_provider is not None
        return await self._key_provider.fetch_active_key()

    async def publish(self, report: RunReport) -> None:
        """Push metrics and send the summary webhook, if configured."""
        if self.config.metrics.pushgateway:
            await asyncio.to_thread(push_metrics, self.config.metrics.pushgateway, self.config.metrics.job)
        notifications = self.config.notifications
        if notifications.webhook_url:
            headers = {"Authorization": f"Bearer {notifications.webhook_token}"} if notifications.webhook_token else None
            await SummaryWebhook(notifications.webhook_url, headers=headers).send(report, cluster=self.config.cluster_id)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def stop(self) -> None:
        """Close the K8s client if we created it. Safe to call more than once."""
        if self._owns_gateway and self._base_gateway is not None:
            await self._base_gateway.close()
            self._base_gateway = None


# ---------------------------------------------------------------------------
# Async entrypoints
# ---------------------------------------------------------------------------


async def run(config: ResealerConfig, gateway: ClusterGateway | None = None, sealer: Sealer | None = None) -> RunReport:
    """Execute one re-seal run and return its report.

    Never raises for fatal conditions or SIGINT/SIGTERM: those are recorded on
    the report (exit code 2) together with every outcome completed before.
    """
    setup_logging(config.log.level)
    bind_run_context(config.dry_run)
    app = ResealerApp(config, gateway=gateway, sealer=sealer)
    log = get_logger("app")

    with _cancel_on_signals():
        try:
            await app.start()
            report = await app.reseal()
        except _ComponentError as exc:
            log.critical("fatal startup error", component=exc.component, error=str(exc.cause))
            app.reporter.record_fatal(exc)
            report = app.reporter.summary()
        except FatalError:
            # Already recorded by the orchestrator.
            report = app.reporter.summary()
        except asyncio.CancelledError:
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            log.warning("run interrupted; reporting partial results")
            app.reporter.record_fatal(asyncio.CancelledError("interrupted by signal"))
            report = app.reporter.summary()
        finally:
            await app.stop()

    await app.publish(report)
    return report


async def fetch_key(config: ResealerConfig, gateway: ClusterGateway | None = None) -> KeyMaterial:
    """Return the active key without touching any SealedSecret."""
    setup_logging(config.log.level)
    if gateway is None and config.controller.cert:
        return await KeyProvider(build_cert_source(config.controller, None)).fetch_active_key()
    app = ResealerApp(config, gateway=gateway)
    try:
        await app.start()
        return await app.fetch_key()
    finally:
        await app.stop()


@contextlib.contextmanager
def _cancel_on_signals() -> Iterator[None]:
    """Cancel the current task on SIGINT/SIGTERM for the duration of the block."""
    loop = asyncio.get_running_loop()
    task = asyncio.current_task()
    installed: list[signal.Signals] = []
    if task is not None:
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
            except (NotImplementedError, RuntimeError):
                # not the main thread, or no signal support on this platform
                continue
            installed.append(sig)
    try:
        yield
    finally:
        for sig in installed:
            loop.remove_signal_handler(sig)
