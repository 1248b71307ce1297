"""Tests for the click CLI. The run itself is patched out."""

from __future__ import annotations

import json
import os
from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

from resealer.cli import cli
from resealer.errors import KeyFetchError
from resealer.models.outcomes import OutcomeKind, RunReport
from resealer.models.resources import KeyMaterial


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in list(os.environ):
        if key.startswith("RESEALER_"):
            monkeypatch.delenv(key)


def _report(fatal: str | None = None, **counts: int) -> RunReport:
    base = {kind: 0 for kind in OutcomeKind}
    for name, count in counts.items():
        base[OutcomeKind[name.upper()]] = count
    return RunReport(counts=base, fatal=fatal)


class TestReencrypt:
    @pytest.mark.parametrize(
        ("report", "exit_code"),
        [
            (_report(updated=3, skipped_up_to_date=1), 0),
            (_report(updated=1, skipped_missing_dependent=1), 1),
            (_report(failed=1), 1),
            (_report(fatal="DiscoveryError: boom", updated=1), 2),
        ],
    )
    def test_exit_code_follows_report(self, report: RunReport, exit_code: int) -> None:
        with patch("resealer.app.run", new=AsyncMock(return_value=report)):
            result = CliRunner().invoke(cli, ["reencrypt"])
        assert result.exit_code == exit_code, result.output
        assert "resealer summary" in result.output

    def test_flags_reach_config(self) -> None:
        run = AsyncMock(return_value=_report())
        with patch("resealer.app.run", new=run):
            result = CliRunner().invoke(
                cli,
                ["reencrypt", "-n", "team", "-l", "app=web", "--concurrency", "3", "--dry-run", "--qps", "7"],
            )
        assert result.exit_code == 0, result.output
        (config,) = run.await_args.args
        assert config.scope.namespace == "team"
        assert config.scope.label_selector == "app=web"
        assert config.concurrency == 3
        assert config.dry_run is True
        assert config.rate_limit.qps == 7.0

    def test_all_namespaces_overrides_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RESEALER_NAMESPACE", "team")
        run = AsyncMock(return_value=_report())
        with patch("resealer.app.run", new=run):
            CliRunner().invoke(cli, ["reencrypt", "-A"])
        assert run.await_args.args[0].scope.namespace is None

    def test_namespace_and_all_namespaces_conflict(self) -> None:
        result = CliRunner().invoke(cli, ["reencrypt", "-n", "team", "-A"])
        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_invalid_namespace_is_usage_error(self) -> None:
        result = CliRunner().invoke(cli, ["reencrypt", "-n", "Bad_NS"])
        assert result.exit_code == 2
        assert "Invalid namespace" in result.output

    def test_json_output(self) -> None:
        with patch("resealer.app.run", new=AsyncMock(return_value=_report(updated=2))):
            result = CliRunner().invoke(cli, ["reencrypt", "-o", "json"])
        payload = json.loads(result.output)
        assert payload["counts"]["updated"] == 2
        assert payload["exit_code"] == 0


class TestFetchKey:
    def test_prints_fingerprint(self) -> None:
        key = KeyMaterial(
            fingerprint="ab" * 32,
            public_key_der=b"der",
            rotated_at=datetime(2026, 2, 1, tzinfo=UTC),
            fetched_at=datetime(2026, 3, 1, tzinfo=UTC),
        )
        with patch("resealer.app.fetch_key", new=AsyncMock(return_value=key)):
            result = CliRunner().invoke(cli, ["fetch-key", "--cert", "/tmp/cert.pem"])
        assert result.exit_code == 0, result.output
        assert "ab" * 32 in result.output
        assert "2026-02-01T00:00:00+00:00" in result.output

    def test_fetch_failure_exits_two(self) -> None:
        with patch("resealer.app.fetch_key", new=AsyncMock(side_effect=KeyFetchError("no certificate"))):
            result = CliRunner().invoke(cli, ["fetch-key"])
        assert result.exit_code == 2
        assert "no certificate" in result.output


def test_version() -> None:
    result = CliRunner().invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "resealer" in result.output
