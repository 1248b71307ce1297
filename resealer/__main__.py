"""Entry point for `python -m resealer`.

Usage:
    python -m resealer reencrypt --all-namespaces
    uv run python -m resealer reencrypt --namespace team --dry-run
"""

from __future__ import annotations

from resealer.cli import cli

cli(prog_name="resealer")
