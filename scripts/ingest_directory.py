"""Script to index a local checkout of the knowledge repository."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Tuple

sys.path.insert(0, str(Path(__file__).parent.parent))

from repo_knowledge.core.dependencies import services
from repo_knowledge.models.ingest_api import SourceFile
from repo_knowledge.services.file_filter import FileFilterConfig, is_text_file


def collect_files(root: Path, file_filter: FileFilterConfig) -> Tuple[List[SourceFile], int]:
    """
    Read every indexable file under a directory.

    Args:
        root: Repository checkout.
        file_filter: File selection policy.

    Returns:
        Tuple of (files with repository-relative paths, files skipped).
    """
    files = []
    skipped = 0
    for path in sorted(root.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(root).as_posix()
        if not is_text_file(relative, file_filter):
            skipped += 1
            continue
        try:
            content = path.read_text(encoding="utf-8")
        except UnicodeDecodeError:
            print(f"Skipping non UTF-8 file: {relative}")
            skipped += 1
            continue
        files.append(SourceFile(path=relative, content=content))
    return files, skipped


async def ingest_directory(root: Path, source_revision: str) -> int:
    """Index a directory as one sync run and print its summary."""
    files, skipped = collect_files(root, FileFilterConfig.from_settings())
    print(f"Found {len(files)} text files ({skipped} skipped)")

    await services.initialize()
    try:
        summary = await services.pipeline.run(files, source_revision)
    finally:
        await services.shutdown()

    print(f"\nRun {summary.run_id}: {summary.status.value}")
    print(f"  files processed: {summary.files_processed}")
    print(f"  files failed:    {summary.files_failed}")
    print(f"  files skipped:   {summary.files_skipped + skipped}")
    print(f"  chunks created:  {summary.chunks_created}")
    print(f"  vectors:         {summary.vectors_uploaded}")
    for error in summary.errors:
        print(f"  error: {error}")

    return 1 if summary.files_failed else 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("root", type=Path, help="Repository checkout to index")
    parser.add_argument("--revision", default="", help="Commit id of the checkout")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    sys.exit(asyncio.run(ingest_directory(args.root, args.revision)))
