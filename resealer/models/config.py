"""Configuration data structures.

Built once by ``resealer.config.load_config`` and passed explicitly to every
component; frozen so nothing can flip a flag mid-run.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from resealer.models.resources import ListScope


@dataclass(frozen=True)
class ScopeConfig:
    """Which SealedSecrets to discover."""

    namespace: str | None = None
    label_selector: str | None = None
    page_size: int = 100

    def to_list_scope(self) -> ListScope:
        return ListScope(namespace=self.namespace, label_selector=self.label_selector)


@dataclass(frozen=True)
class ControllerConfig:
    """Where the sealing controller publishes its certificate."""

    namespace: str = "kube-system"
    name: str = "sealed-secrets-controller"
    port: str = "http"
    cert: str = ""  # URL or file path; overrides the service proxy when set


@dataclass(frozen=True)
class RateLimitConfig:
    """Token bucket shared by every cluster API call."""

    qps: float = 20.0
    burst: int = 40


@dataclass(frozen=True)
class RetryConfig:
    """Per-item retry ceilings and backoff shape."""

    conflict_attempts: int = 3
    transport_attempts: int = 5
    backoff_base: float = 0.2
    backoff_max: float = 5.0
    conflict_backoff_max: float = 0.5


@dataclass(frozen=True)
class KubeConfig:
    """How to reach the cluster."""

    kubeconfig: str = ""
    context: str = ""


@dataclass(frozen=True)
class NotificationConfig:
    """Run-summary notification."""

    webhook_url: str = ""
    webhook_token: str = ""  # sent as a Bearer token when set


@dataclass(frozen=True)
class MetricsConfig:
    """Prometheus Pushgateway export."""

    pushgateway: str = ""
    job: str = "resealer"


@dataclass(frozen=True)
class LogConfig:
    """Logging configuration."""

    level: str = "info"


@dataclass(frozen=True)
class ResealerConfig:
    """Top-level resealer configuration."""

    concurrency: int = 8
    dry_run: bool = False
    verbose: bool = False
    cluster_id: str = ""
    scope: ScopeConfig = field(default_factory=ScopeConfig)
    controller: ControllerConfig = field(default_factory=ControllerConfig)
    rate_limit: RateLimitConfig = field(default_factory=RateLimitConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    kube: KubeConfig = field(default_factory=KubeConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    metrics: MetricsConfig = field(default_factory=MetricsConfig)
    log: LogConfig = field(default_factory=LogConfig)
