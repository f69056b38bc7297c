"""Entry point for `python -m blackbox`.

Usage:
    python -m blackbox
    uv run python -m blackbox
"""

from __future__ import annotations

import asyncio

from blackbox.app import main

asyncio.run(main())
