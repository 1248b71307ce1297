"""Configuration loading from environment variables and CLI overrides."""

from __future__ import annotations

import os
import re
from dataclasses import replace
from typing import Any

from resealer.models.config import (
    ControllerConfig,
    KubeConfig,
    LogConfig,
    MetricsConfig,
    NotificationConfig,
    RateLimitConfig,
    ResealerConfig,
    RetryConfig,
    ScopeConfig,
)

_DNS_LABEL = re.compile(r"^[a-z0-9]([-a-z0-9]{0,61}[a-z0-9])?$")


def _env(key: str, default: str = "") -> str:
    return os.environ.get(f"RESEALER_{key}", default)


def _env_bool(key: str, default: bool = False) -> bool:
    val = _env(key, str(default).lower())
    return val.lower() in ("true", "1", "yes")


def _env_int(key: str, default: int, min_val: int | None = None, max_val: int | None = None) -> int:
    return _clamp(int(_env(key, str(default))), min_val, max_val)


def _env_float(key: str, default: float) -> float:
    return float(_env(key, str(default)))


def _clamp(val: int, min_val: int | None = None, max_val: int | None = None) -> int:
    if min_val is not None:
        val = max(val, min_val)
    if max_val is not None:
        val = min(val, max_val)
    return val


def _validate_log_level(value: str) -> str:
    valid = {"debug", "info", "warning", "error"}
    if value.lower() not in valid:
        raise ValueError(f"Invalid log level: {value}. Must be one of {valid}")
    return value.lower()


def _validate_namespace(value: str | None) -> str | None:
    if not value:
        return None
    if not _DNS_LABEL.match(value):
        raise ValueError(f"Invalid namespace: {value!r}")
    return value


def _validate_positive(name: str, value: float) -> float:
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {value}")
    return value


def load_config(**overrides: Any) -> ResealerConfig:
    """Load configuration from RESEALER_* environment variables.

    Keyword overrides (typically CLI flags) win over the environment; a
    ``None`` override means "not given" and leaves the environment value.
    Supported overrides: namespace, label_selector, concurrency, qps, burst,
    dry_run, verbose, controller_namespace, controller_name, controller_port,
    cert, kubeconfig, context, log_level.
    """
    config = ResealerConfig(
        concurrency=_env_int("CONCURRENCY", 8, min_val=1, max_val=64),
        dry_run=_env_bool("DRY_RUN", False),
        verbose=_env_bool("VERBOSE", False),
        cluster_id=_env("CLUSTER_ID", ""),
        scope=ScopeConfig(
            namespace=_validate_namespace(_env("NAMESPACE", "")),
            label_selector=_env("LABEL_SELECTOR", "") or None,
            page_size=_env_int("PAGE_SIZE", 100, min_val=10, max_val=500),
        ),
        controller=ControllerConfig(
            namespace=_env("CONTROLLER_NAMESPACE", "kube-system"),
            name=_env("CONTROLLER_NAME", "sealed-secrets-controller"),
            port=_env("CONTROLLER_PORT", "http"),
            cert=_env("CERT", ""),
        ),
        rate_limit=RateLimitConfig(
            qps=_validate_positive("qps", _env_float("QPS", 20.0)),
            burst=_env_int("BURST", 40, min_val=1),
        ),
        retry=RetryConfig(
            conflict_attempts=_env_int("CONFLICT_ATTEMPTS", 3, min_val=1, max_val=10),
            transport_attempts=_env_int("TRANSPORT_ATTEMPTS", 5, min_val=1, max_val=10),
            backoff_base=_validate_positive("backoff base", _env_float("BACKOFF_BASE", 0.2)),
            backoff_max=_validate_positive("backoff max", _env_float("BACKOFF_MAX", 5.0)),
        ),
        kube=KubeConfig(
            kubeconfig=_env("KUBECONFIG", ""),
            context=_env("CONTEXT", ""),
        ),
        notifications=NotificationConfig(
            webhook_url=_env("NOTIFICATIONS_WEBHOOK_URL", ""),
            webhook_token=_env("NOTIFICATIONS_WEBHOOK_TOKEN", ""),
        ),
        metrics=MetricsConfig(
            pushgateway=_env("METRICS_PUSHGATEWAY", ""),
        ),
        log=LogConfig(
            level=_validate_log_level(_env("LOG_LEVEL", "info")),
        ),
    )
    return _apply_overrides(config, {k: v for k, v in overrides.items() if v is not None})


def _apply_overrides(config: ResealerConfig, overrides: dict[str, Any]) -> ResealerConfig:
    unknown = set(overrides) - _OVERRIDE_KEYS
    if unknown:
        raise ValueError(f"Unknown configuration overrides: {sorted(unknown)}")

    scope = config.scope
    if "namespace" in overrides:
        scope = replace(scope, namespace=_validate_namespace(overrides["namespace"]))
    if "label_selector" in overrides:
        scope = replace(scope, label_selector=overrides["label_selector"] or None)

    controller = config.controller
    for key, attr in (
        ("controller_namespace", "namespace"),
        ("controller_name", "name"),
        ("controller_port", "port"),
        ("cert", "cert"),
    ):
        if key in overrides:
            controller = replace(controller, **{attr: overrides[key]})

    rate_limit = config.rate_limit
    if "qps" in overrides:
        rate_limit = replace(rate_limit, qps=_validate_positive("qps", float(overrides["qps"])))
    if "burst" in overrides:
        rate_limit = replace(rate_limit, burst=_clamp(int(overrides["burst"]), min_val=1))

    kube = config.kube
    if "kubeconfig" in overrides:
        kube = replace(kube, kubeconfig=overrides["kubeconfig"])
    if "context" in overrides:
        kube = replace(kube, context=overrides["context"])

    log = config.log
    if "log_level" in overrides:
        log = LogConfig(level=_validate_log_level(overrides["log_level"]))

    return replace(
        config,
        concurrency=_clamp(int(overrides.get("concurrency", config.concurrency)), min_val=1, max_val=64),
        dry_run=bool(overrides.get("dry_run", config.dry_run)),
        verbose=bool(overrides.get("verbose", config.verbose)),
        scope=scope,
        controller=controller,
        rate_limit=rate_limit,
        kube=kube,
        log=log,
    )


_OVERRIDE_KEYS = frozenset(
    {
        "namespace",
        "label_selector",
        "concurrency",
        "qps",
        "burst",
        "dry_run",
        "verbose",
        "controller_namespace",
        "controller_name",
        "controller_port",
        "cert",
        "kubeconfig",
        "context",
        "log_level",
    }
)
