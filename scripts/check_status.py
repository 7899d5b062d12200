"""Script to print the store consistency report."""

import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from repo_knowledge.services.database import DatabaseService
from repo_knowledge.services.status import StatusService
from repo_knowledge.services.sync_ledger import SyncLedger
from repo_knowledge.services.vector_db import VectorDBService


async def check_status() -> bool:
    database = DatabaseService()
    vector_db = VectorDBService()
    await database.connect()
    try:
        await vector_db.connect()
    except Exception as e:
        print(f"Vector index unavailable: {e}")
    try:
        report = await StatusService(database, vector_db, SyncLedger(database)).report()
    finally:
        await database.disconnect()
        await vector_db.disconnect()

    print(json.dumps(report.model_dump(mode="json"), indent=2))
    return report.consistent


if __name__ == "__main__":
    print("Checking knowledge base status...")
    sys.exit(0 if asyncio.run(check_status()) else 1)
