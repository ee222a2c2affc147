"""
One shelf run: build the manifest, then write it out.
"""

import os

from shelflib.builders import EpubBuilder
from shelflib.git import GitSynchronizer
from shelflib.manifest import build_manifest
from shelflib.output import render_templates, write_manifest


def run(config, synchronizer=None, builder=None, verbose=False):
    """
    Generate every EPUB in `config` and write the manifest output.

    Template mode when `config.templates_dir` is set, manifest.json
    otherwise. Returns the Manifest.
    """
    config.validate()

    synchronizer = synchronizer or GitSynchronizer(verbose=verbose)
    builder = builder or EpubBuilder(verbose=verbose)

    dest_dir = config.destination_dir
    os.makedirs(dest_dir, exist_ok=True)

    manifest = build_manifest(
        config,
        synchronizer,
        builder,
        working_dir=config.working_dir,
        dest_dir=dest_dir,
    )

    print(f"\n{'─' * 60}")
    if config.templates_dir:
        render_templates(manifest, config.templates_dir, dest_dir, verbose=verbose)
    else:
        write_manifest(manifest, dest_dir, verbose=verbose)

    return manifest
