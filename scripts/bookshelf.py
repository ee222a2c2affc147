#!/usr/bin/env python3
"""
Build a shelf of EPUBs from a list of mdBook repositories.

Reads bookshelf.yaml, clones or fetches every listed repository,
generates one EPUB per book, then writes manifest.json or renders the
templates directory against the manifest.

Usage:
    python bookshelf.py                          Use ./bookshelf.yaml
    python bookshelf.py -d out                   Override destination dir
    python bookshelf.py -d out -t templates      Render templates instead of manifest.json
    python bookshelf.py -c shelves/rust.yaml -w /tmp/repos

Requires: git, pandoc, PyYAML, Jinja2
"""

import os
import sys
import argparse
import traceback

# Ensure shelflib is importable from the scripts/ directory
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from shelflib import __version__
from shelflib.config import CONFIG_FILENAME, ShelfConfig
from shelflib.errors import ShelfError
from shelflib.shelf import run


# ── Load config ────────────────────────────────────────────────────────


def load_config(args):
    """Load bookshelf.yaml (if present) and apply command-line overrides."""
    config_path = args.config or os.path.join(".", CONFIG_FILENAME)

    # An explicit --config must exist; the default location is optional
    if args.config or os.path.exists(config_path):
        print(f"  Loading config from {config_path}")
        config = ShelfConfig.load(config_path)
    else:
        config = ShelfConfig.empty()

    config.override_dirs(
        destination_dir=args.destination_dir,
        working_dir=args.working_dir,
        templates_dir=args.templates_dir,
    )
    return config


def print_error_chain(error):
    """Print an error and every exception it was raised from."""
    print(f"\n  ✗ Error: {error}")
    cause = error.__cause__
    while cause is not None:
        print(f"    caused by: {cause}")
        cause = cause.__cause__


# ── Argument Parser ────────────────────────────────────────────────────


def build_parser():
    parser = argparse.ArgumentParser(
        description="Executes pandoc on a collection of mdBook repositories",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
examples:
  %(prog)s -d out                     Build into out/, write out/manifest.json
  %(prog)s -d out -t templates        Render templates/ into out/
  %(prog)s -c shelf.yaml -w /tmp/r    Custom config and clone directory
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s v{__version__}")
    parser.add_argument(
        "-c", "--config",
        help=f"Path to the shelf config (default: ./{CONFIG_FILENAME})",
    )
    parser.add_argument(
        "-w", "--working-dir",
        help="Directory the book repositories are cloned into (default: repos)",
    )
    parser.add_argument(
        "-d", "--destination-dir",
        help="Directory the EPUBs and manifest are written to",
    )
    parser.add_argument(
        "-t", "--templates-dir",
        help="Templates directory (if not set, manifest.json is generated)",
    )
    parser.add_argument("--verbose", "-v", action="store_true")
    return parser


# ── Main ───────────────────────────────────────────────────────────────


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        config.validate()
        config.summary()
        manifest = run(config, verbose=args.verbose)
    except ShelfError as e:
        print_error_chain(e)
        return 1
    except KeyboardInterrupt:
        print("\nCancelled.")
        return 1
    except Exception as e:
        log_path = "bookshelf_error.log"
        with open(log_path, "w") as f:
            traceback.print_exc(file=f)
        print(f"\nUnexpected error: {e}")
        print(f"Full traceback written to {log_path}")
        return 1

    print(f"\n  Done. {len(manifest.entries)} book(s) built successfully.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
