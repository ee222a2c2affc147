"""
Manifest assembly.

Drives the synchronizer and the builder for every configured book, in
order, and collects what they report into a Manifest. The first failing
book aborts the whole shelf.
"""

import os
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from shelflib.errors import NothingToBuild


def utc_now():
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ManifestEntry:
    """One built book."""

    commit_sha: str
    epub_size: int
    last_modified: str
    path: str
    repo_url: str
    title: str
    url: str


@dataclass(frozen=True)
class Manifest:
    """Everything built during one run, plus shelf-level metadata."""

    entries: Tuple[ManifestEntry, ...] = ()
    timestamp: str = field(default_factory=utc_now)
    title: str = ""

    def to_dict(self):
        data = asdict(self)
        data["entries"] = list(data["entries"])
        return data


def resolve_title(configured: Optional[str], reported: Optional[str]) -> str:
    """Configured title wins, then the one the book declares, then ""."""
    if configured is not None:
        return configured
    if reported is not None:
        return reported
    return ""


def check_collisions(books, synchronizer, working_dir) -> List[str]:
    """Warn about books that would share one local clone. Returns the paths."""
    seen = {}
    collisions = []
    for book in books:
        path = os.path.normpath(synchronizer.local_path(book.repo_url, working_dir))
        if path in seen and seen[path] != book.repo_url:
            print(
                f"  Warning: {book.repo_url} and {seen[path]} both sync into {path}; "
                "the last one synced wins"
            )
            collisions.append(path)
        seen.setdefault(path, book.repo_url)
    return collisions


def build_manifest(config, synchronizer, builder, working_dir, dest_dir) -> Manifest:
    """
    Sync and build every book in `config.books`, in order.

    Raises NothingToBuild for an empty shelf; any SyncError or
    GenerationError propagates and no manifest is produced.
    """
    if not config.books:
        raise NothingToBuild("Nothing to build: no books configured")

    timestamp = utc_now()
    check_collisions(config.books, synchronizer, working_dir)

    entries = []
    for book in config.books:
        synced = synchronizer.sync(book.repo_url, working_dir, branch=book.branch)

        book_path = synced.path
        if book.folder:
            book_path = os.path.join(book_path, book.folder)

        generated = builder.generate(book_path, book.override_pairs(), dest_dir)

        entries.append(
            ManifestEntry(
                commit_sha=synced.commit_sha,
                epub_size=generated.size,
                last_modified=synced.last_modified,
                path=generated.path,
                repo_url=book.repo_url,
                title=resolve_title(book.title, generated.title),
                url=book.url,
            )
        )

    return Manifest(entries=tuple(entries), timestamp=timestamp, title=config.title)
