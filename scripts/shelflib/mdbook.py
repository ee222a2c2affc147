"""
mdBook project loading.

Reads book.toml and SUMMARY.md from an mdBook source tree, applying
MDBOOK_* overrides the same way mdBook applies its environment
variables, so a shelf entry can retitle or reconfigure a book without
touching its repository.
"""

import json
import os
import re
import tomllib

from shelflib.errors import GenerationError


OVERRIDE_PREFIX = "MDBOOK_"

DEFAULT_SRC = "src"
DEFAULT_LANGUAGE = "en"

# - [Chapter title](path/to/chapter.md)   or   [Prefix chapter](intro.md)
SUMMARY_LINK = re.compile(r"^\s*(?:[-*+]\s+)?\[(?P<title>[^\]]*)\]\((?P<path>[^)]*)\)")


def override_key(name):
    """
    MDBOOK_BOOK__TITLE → ["book", "title"]
    MDBOOK_OUTPUT__EPUB__CURLY_QUOTES → ["output", "epub", "curly-quotes"]

    Returns None for names without the MDBOOK_ prefix.
    """
    if not name.startswith(OVERRIDE_PREFIX):
        return None
    key = name[len(OVERRIDE_PREFIX):].lower()
    return [part.replace("_", "-") for part in key.split("__") if part]


def parse_override_value(value):
    """JSON when it parses ("true", "42", "[1, 2]"), the raw string otherwise."""
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def apply_overrides(config, overrides):
    """Set (or, for None values, remove) MDBOOK_* keys in a config dict."""
    for name, value in overrides:
        path = override_key(name)
        if not path:
            continue

        table = config
        for part in path[:-1]:
            child = table.get(part)
            if not isinstance(child, dict):
                child = {}
                table[part] = child
            table = child

        if value is None:
            table.pop(path[-1], None)
        else:
            table[path[-1]] = parse_override_value(value)
    return config


class BookProject:
    """
    A loaded mdBook source tree.

    Usage:
        project = load("repos/rams3s/mdbook-dummy.git", overrides)
        project.title              # "Hello Rust"
        project.chapters           # [".../src/chapter_1.md"]
        project.get("output.epub.cover-image")
    """

    def __init__(self, root, config, chapters):
        self.root = root
        self.config = config
        self.chapters = chapters

    @property
    def title(self):
        title = self.get("book.title")
        return str(title) if title not in (None, "") else None

    @property
    def authors(self):
        return [str(a) for a in self.get("book.authors", [])]

    @property
    def language(self):
        return str(self.get("book.language", DEFAULT_LANGUAGE))

    @property
    def src_dir(self):
        return os.path.join(self.root, str(self.get("book.src", DEFAULT_SRC)))

    def get(self, dotted, default=None):
        value = self.config
        for part in dotted.split("."):
            if not isinstance(value, dict) or part not in value:
                return default
            value = value[part]
        return value


def read_book_toml(root):
    path = os.path.join(root, "book.toml")
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise GenerationError(f"Invalid book.toml in {root}") from e


def parse_summary(src_dir):
    """
    Chapter files listed in SUMMARY.md, in reading order.

    Draft chapters (empty link target) and external links are skipped.
    """
    summary_path = os.path.join(src_dir, "SUMMARY.md")
    if not os.path.exists(summary_path):
        raise GenerationError(f"Not an mdBook project: {summary_path} not found")

    with open(summary_path, encoding="utf-8") as f:
        lines = f.read().splitlines()

    chapters = []
    for line in lines:
        match = SUMMARY_LINK.match(line)
        if not match:
            continue
        target = match.group("path").strip().split("#", 1)[0]
        if not target or "://" in target:
            continue
        path = os.path.join(src_dir, target)
        if not os.path.exists(path):
            raise GenerationError(f"SUMMARY.md references missing chapter: {target}")
        chapters.append(path)

    if not chapters:
        raise GenerationError(f"No chapters listed in {summary_path}")
    return chapters


def load(root, overrides=()):
    """
    Load the mdBook project at `root` with overrides applied.

    Raises GenerationError if `root` is not an mdBook project.
    """
    if not os.path.isdir(root):
        raise GenerationError(f"Book directory not found: {root}")

    root = os.path.abspath(root)
    config = apply_overrides(read_book_toml(root), overrides)
    project = BookProject(root, config, [])
    project.chapters = parse_summary(project.src_dir)
    return project


def output_filename(dest, project):
    """Path the EPUB for `project` is written to inside `dest`."""
    return os.path.join(dest, f"{project.title or 'book'}.epub")
