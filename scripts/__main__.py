"""Allow `python -m scripts` to seed the demo marketplace data."""

import asyncio

from scripts.seed import _run_seed

asyncio.run(_run_seed())
