"""Selection of repository files worth indexing."""

import posixpath
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from repo_knowledge.core.config import settings


@dataclass(frozen=True)
class FileFilterConfig:
    """Which paths are indexable."""

    supported_extensions: Tuple[str, ...] = (".md", ".txt", ".mdx", ".rst")
    excluded_paths: Tuple[str, ...] = (".git", ".github", "node_modules", ".DS_Store")

    @classmethod
    def from_settings(cls) -> "FileFilterConfig":
        return cls(
            supported_extensions=tuple(e.lower() for e in settings.supported_extensions),
            excluded_paths=tuple(settings.excluded_paths),
        )


def is_text_file(file_path: str, config: FileFilterConfig) -> bool:
    """
    Decide whether a path should be indexed.

    Supported extensions are accepted unless the path hits an excluded
    segment. Extension-less files are accepted unless hidden or excluded.
    Any other extension is rejected.
    """
    segments = file_path.split("/")
    if any(excluded in segments for excluded in config.excluded_paths):
        return False

    ext = posixpath.splitext(file_path)[1].lower()
    if ext:
        return ext in config.supported_extensions

    return not posixpath.basename(file_path).startswith(".")


def select_paths(paths: Iterable[str], config: FileFilterConfig) -> Tuple[List[str], List[str]]:
    """
    Split paths into (selected, skipped), de-duplicated, order preserved.

    Args:
        paths: Candidate repository paths.
        config: Filter configuration.

    Returns:
        Tuple of indexable paths and rejected paths.
    """
    seen = set()
    selected: List[str] = []
    skipped: List[str] = []
    for path in paths:
        if path in seen:
            continue
        seen.add(path)
        if is_text_file(path, config):
            selected.append(path)
        else:
            skipped.append(path)
    return selected, skipped
