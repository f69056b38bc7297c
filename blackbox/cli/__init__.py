"""Blackbox command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``blackbox`` script).
"""

from blackbox.cli.main import cli

__all__ = ["cli"]
