"""resealer command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``resealer`` script).
"""

from resealer.cli.main import cli

__all__ = ["cli"]
