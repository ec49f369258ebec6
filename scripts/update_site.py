#!/usr/bin/env python3
"""Apply an update-site request read from a JSON file.

The file holds one request object (``siteUpdates``, ``plantUpdates``,
``routineUpdates``, ...). Everything is committed together or not at all.

Usage:
    python scripts/update_site.py request.json
"""

import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure the package is importable when run from a checkout
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sitefleet.config import get_settings  # noqa: E402
from sitefleet.database import close_db  # noqa: E402
from sitefleet.services.site_updates import update_site  # noqa: E402


async def main(path: Path) -> None:
    payload = json.loads(path.read_text())
    try:
        await update_site(payload)
        print(f"Applied update from {path}.")
    finally:
        await close_db()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print(__doc__)
        sys.exit(2)

    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(main(Path(sys.argv[1])))
