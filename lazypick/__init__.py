"""Public package surface for lazypick.

Exports ``main`` for programmatic CLI invocation. The picker engine lives in
``lazypick.picker``; matching and ranking in ``lazypick.search``.
"""

from __future__ import annotations


def main(*args, **kwargs):
    """Lazily import CLI entrypoint to keep package imports lightweight."""
    from .cli import main as _main

    return _main(*args, **kwargs)

__all__ = ["main"]
