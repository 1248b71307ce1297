"""Click commands: ``resealer reencrypt`` and ``resealer fetch-key``.

Exit codes of ``reencrypt``:
    0 -- every SealedSecret updated or already up to date
    1 -- at least one item failed or has no plaintext Secret
    2 -- a fatal condition aborted the run
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable
from typing import Any

import click

from resealer import __version__, app
from resealer.config import load_config
from resealer.errors import FatalError
from resealer.models.config import ResealerConfig
from resealer.report.reporter import render_summary, report_payload

_LOG_LEVELS = click.Choice(["debug", "info", "warning", "error"], case_sensitive=False)


_CLUSTER_OPTIONS = (
    click.option("--kubeconfig", type=click.Path(dir_okay=False), help="Path to a kubeconfig file."),
    click.option("--context", help="Kubeconfig context to use."),
    click.option("--controller-namespace", help="Namespace of the sealing controller. [default: kube-system]"),
    click.option("--controller-name", help="Service name of the sealing controller. [default: sealed-secrets-controller]"),
    click.option("--controller-port", help="Service port name or number of the controller. [default: http]"),
    click.option("--cert", help="Certificate URL or file; bypasses the controller service."),
    click.option("--log-level", type=_LOG_LEVELS, help="Log level for stderr JSON logs. [default: info]"),
)


def _cluster_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Options shared by every command that talks to the cluster or controller."""
    for option in reversed(_CLUSTER_OPTIONS):
        func = option(func)
    return func


def _load(**overrides: Any) -> ResealerConfig:
    try:
        return load_config(**overrides)
    except ValueError as exc:
        raise click.UsageError(str(exc)) from exc


@click.group()
@click.version_option(__version__, prog_name="resealer")
def cli() -> None:
    """Re-encrypt SealedSecrets under the controller's current public key."""


@cli.command()
@click.option("-n", "--namespace", help="Only re-seal SealedSecrets in this namespace.")
@click.option("-A", "--all-namespaces", is_flag=True, help="Re-seal across every namespace (the default).")
@click.option("-l", "--selector", "label_selector", help="Label selector to filter SealedSecrets.")
@click.option("--concurrency", type=click.IntRange(1, 64), help="Worker pool size. [default: 8]")
@click.option("--qps", type=click.FloatRange(min=0, min_open=True), help="Cluster API request rate. [default: 20]")
@click.option("--burst", type=click.IntRange(min=1), help="Cluster API burst budget. [default: 40]")
@click.option("--dry-run", is_flag=True, help="Compute outcomes without writing anything.")
@click.option("-v", "--verbose", is_flag=True, help="List every item that was not updated, with the reason.")
@click.option("-o", "--output", type=click.Choice(["text", "json"]), default="text", show_default=True)
@_cluster_options
@click.pass_context
def reencrypt(
    ctx: click.Context,
    namespace: str | None,
    all_namespaces: bool,
    label_selector: str | None,
    concurrency: int | None,
    qps: float | None,
    burst: int | None,
    dry_run: bool,
    verbose: bool,
    output: str,
    **cluster: Any,
) -> None:
    """Re-seal every stale SealedSecret in scope."""
    if namespace and all_namespaces:
        raise click.UsageError("--namespace and --all-namespaces are mutually exclusive")

    config = _load(
        namespace="" if all_namespaces else namespace,
        label_selector=label_selector,
        concurrency=concurrency,
        qps=qps,
        burst=burst,
        dry_run=True if dry_run else None,
        verbose=True if verbose else None,
        **cluster,
    )

    report = asyncio.run(app.run(config))

    if output == "json":
        click.echo(json.dumps(report_payload(report), indent=2))
    else:
        click.echo(render_summary(report, verbose=config.verbose))
    ctx.exit(report.exit_code)


@cli.command("fetch-key")
@_cluster_options
@click.pass_context
def fetch_key(ctx: click.Context, **cluster: Any) -> None:
    """Print the fingerprint and rotation time of the active sealing key."""
    config = _load(**cluster)
    try:
        key = asyncio.run(app.fetch_key(config))
    except FatalError as exc:
        click.echo(f"error: {exc}", err=True)
        ctx.exit(2)
    click.echo(f"fingerprint: {key.fingerprint}")
    click.echo(f"rotated_at:  {key.rotated_at.isoformat()}")
    click.echo(f"fetched_at:  {key.fetched_at.isoformat()}")
