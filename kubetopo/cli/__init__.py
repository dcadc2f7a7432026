"""kubetopo command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubetopo`` script).
"""

from kubetopo.cli.main import cli

__all__ = ["cli"]
