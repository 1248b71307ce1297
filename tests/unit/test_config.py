"""Tests for configuration loading and overrides."""

from __future__ import annotations

import os

import pytest

from resealer.config import load_config


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("RESEALER_"):
            monkeypatch.delenv(key)


class TestDefaults:
    def test_defaults(self) -> None:
        config = load_config()
        assert config.concurrency == 8
        assert config.dry_run is False
        assert config.scope.namespace is None
        assert config.scope.label_selector is None
        assert config.controller.namespace == "kube-system"
        assert config.controller.name == "sealed-secrets-controller"
        assert config.rate_limit.qps == 20.0
        assert config.retry.conflict_attempts == 3
        assert config.log.level == "info"

    def test_default_scope_is_cluster_wide(self) -> None:
        scope = load_config().scope.to_list_scope()
        assert scope.namespace is None
        assert scope.label_selector is None


class TestEnvironment:
    def test_values_are_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "team")
        monkeypatch.setenv("RESEALER_LABEL_SELECTOR", "app=web")
        monkeypatch.setenv("RESEALER_DRY_RUN", "yes")
        monkeypatch.setenv("RESEALER_QPS", "5.5")
        monkeypatch.setenv("RESEALER_LOG_LEVEL", "DEBUG")
        config = load_config()
        assert config.scope.namespace == "team"
        assert config.scope.label_selector == "app=web"
        assert config.dry_run is True
        assert config.rate_limit.qps == 5.5
        assert config.log.level == "debug"

    def test_notification_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_CLUSTER_ID", "prod-eu")
        monkeypatch.setenv("RESEALER_NOTIFICATIONS_WEBHOOK_URL", "https://hooks.example.com")
        monkeypatch.setenv("RESEALER_NOTIFICATIONS_WEBHOOK_TOKEN", "t0k")
        config = load_config()
        assert config.cluster_id == "prod-eu"
        assert config.notifications.webhook_url == "https://hooks.example.com"
        assert config.notifications.webhook_token == "t0k"

    @pytest.mark.parametrize(("raw", "expected"), [("0", 1), ("1000", 64), ("12", 12)])
    def test_concurrency_is_clamped(self, monkeypatch: pytest.MonkeyPatch, raw: str, expected: int) -> None:
        monkeypatch.setenv("RESEALER_CONCURRENCY", raw)
        assert load_config().concurrency == expected

    def test_invalid_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_LOG_LEVEL", "loud")
        with pytest.raises(ValueError, match="Invalid log level"):
            load_config()

    def test_invalid_namespace(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "Not_A_Namespace")
        with pytest.raises(ValueError, match="Invalid namespace"):
            load_config()

    def test_non_positive_qps(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_QPS", "0")
        with pytest.raises(ValueError, match="qps"):
            load_config()


class TestOverrides:
    def test_overrides_win_over_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "team")
        config = load_config(namespace="other", concurrency=2, dry_run=True, cert="/tmp/cert.pem")
        assert config.scope.namespace == "other"
        assert config.concurrency == 2
        assert config.dry_run is True
        assert config.controller.cert == "/tmp/cert.pem"

    def test_none_leaves_environment_value(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "team")
        assert load_config(namespace=None).scope.namespace == "team"

    def test_empty_namespace_means_all_namespaces(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "team")
        assert load_config(namespace="").scope.namespace is None

    def test_unknown_override(self) -> None:
        with pytest.raises(ValueError, match="Unknown configuration overrides"):
            load_config(colour="blue")

    def test_invalid_override_namespace(self) -> None:
        with pytest.raises(ValueError):
            load_config(namespace="UPPER")
