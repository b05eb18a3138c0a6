"""Entry point for `python -m kubecache`.

Usage:
    python -m kubecache
    KUBECACHE_CACHE_KINDS=pods,namespaces python -m kubecache
"""

from __future__ import annotations

import asyncio

from kubecache.app import main

asyncio.run(main())
