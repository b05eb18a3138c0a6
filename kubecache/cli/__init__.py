"""kubecache command-line interface.

Exposes:
    cli -- Click group entry point (registered as ``kubecache`` script).
"""

from kubecache.cli.main import cli

__all__ = ["cli"]
