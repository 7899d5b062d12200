"""Script to mark abandoned sync runs as failed."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.sync_ledger import SyncLedger


async def reconcile(older_than_seconds: int = None) -> None:
    """Fail runs left in the running state past the threshold."""
    database = DatabaseService()
    await database.connect()
    try:
        ledger = SyncLedger(database)
        count = await ledger.mark_stale_runs(older_than_seconds)
    finally:
        await database.disconnect()

    print(f"Marked {count} stale runs as failed")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--older-than", type=int, default=None,
        help="Age in seconds after which a running run is stale")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(reconcile(args.older_than))
