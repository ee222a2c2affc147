"""
shelflib — build a shelf of EPUBs from mdBook repositories.

Public API:
    from shelflib.config import ShelfConfig, BookRepoConfig
    from shelflib.git import GitSynchronizer, local_path
    from shelflib.builders import EpubBuilder
    from shelflib.manifest import Manifest, ManifestEntry, build_manifest
    from shelflib.output import render_templates, write_manifest
    from shelflib.shelf import run
"""

__version__ = "0.5.0"
