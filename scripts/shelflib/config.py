"""
Shelf configuration: load, validate, and provide defaults for bookshelf.yaml.
"""

import os

import yaml

from shelflib.errors import ConfigError
from shelflib.git import is_remote


CONFIG_FILENAME = "bookshelf.yaml"

# Fields required in every books[] entry
REQUIRED_BOOK_FIELDS = ["repo_url", "url"]

# Defaults applied if missing
DEFAULTS = {
    "title": "",
    "destination_dir": None,
    "working_dir": "repos",
    "templates_dir": None,
    "books": [],
}

BOOK_DEFAULTS = {
    "title": None,
    "folder": None,
    "branch": "master",
    "overrides": {},
}

# mdBook reads book.title from this variable; applied last so it wins
TITLE_OVERRIDE_KEY = "MDBOOK_BOOK__TITLE"

DIR_FIELDS = ["destination_dir", "working_dir", "templates_dir"]


class BookRepoConfig:
    """
    One shelf entry. Read-only once loaded.

    Usage:
        book.repo_url           # "https://github.com/rams3s/mdbook-dummy.git"
        book.title              # None unless overridden
        book.override_pairs()   # [("MDBOOK_OUTPUT__EPUB__CURLY_QUOTES", "true"), ...]
    """

    def __init__(self, data):
        self._data = dict(data)

    @classmethod
    def from_dict(cls, data, index=0, base_dir=None):
        if not isinstance(data, dict):
            raise ConfigError(
                f"books[{index}] must be a mapping, got {type(data).__name__}"
            )

        missing = [key for key in REQUIRED_BOOK_FIELDS if not data.get(key)]
        if missing:
            raise ConfigError(
                f"books[{index}] missing required fields: {', '.join(missing)}"
            )

        entry = dict(data)
        for key, default in BOOK_DEFAULTS.items():
            if entry.get(key) is None:
                entry[key] = default if not isinstance(default, dict) else dict(default)

        if not isinstance(entry["overrides"], dict):
            raise ConfigError(f"books[{index}].overrides must be a mapping")

        entry["repo_url"] = str(entry["repo_url"])
        if base_dir and not is_remote(entry["repo_url"]):
            # Local repositories are relative to the config file, like dirs
            entry["repo_url"] = _resolve_dir(entry["repo_url"], base_dir)
        entry["url"] = str(entry["url"])
        if entry["title"] is not None:
            entry["title"] = str(entry["title"])
        if entry["folder"] is not None:
            entry["folder"] = str(entry["folder"])
        return cls(entry)

    @property
    def repo_url(self):
        return self._data["repo_url"]

    @property
    def url(self):
        return self._data["url"]

    @property
    def title(self):
        return self._data["title"]

    @property
    def folder(self):
        return self._data["folder"]

    @property
    def branch(self):
        return str(self._data["branch"])

    @property
    def overrides(self):
        return dict(self._data["overrides"])

    def override_pairs(self):
        """
        Ordered (name, value) pairs handed to the renderer.

        Generic overrides come first with stringified values (None stays
        None, meaning "unset"); the title override, if any, comes last.
        """
        pairs = [
            (str(name), None if value is None else _stringify(value))
            for name, value in self._data["overrides"].items()
        ]
        if self.title is not None:
            pairs.append((TITLE_OVERRIDE_KEY, self.title))
        return pairs

    def __eq__(self, other):
        if not isinstance(other, BookRepoConfig):
            return NotImplemented
        return self._data == other._data

    def __repr__(self):
        return f"BookRepoConfig({self.repo_url!r})"


def _stringify(value):
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ShelfConfig:
    """
    Loaded, validated shelf configuration.

    Usage:
        config = ShelfConfig.load("bookshelf.yaml")
        config.title            # "My eBookshelf"
        config.books[0].url     # "https://rams3s.github.io/mdbook-dummy/"
        config.destination_dir  # None until set here or on the command line
    """

    def __init__(self, data, books, base_dir=None):
        self._data = data
        self.books = books
        self.base_dir = base_dir

    @classmethod
    def load(cls, config_path):
        """Load and validate bookshelf.yaml from disk."""
        if not os.path.exists(config_path):
            raise ConfigError(f"No {CONFIG_FILENAME} found at {config_path}")

        try:
            with open(config_path, encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            raise ConfigError(f"Could not read {config_path}") from e

        base_dir = os.path.dirname(os.path.abspath(config_path))
        return cls.from_str(text, base_dir=base_dir)

    @classmethod
    def from_str(cls, text, base_dir=None):
        """Parse a config document. Relative dirs resolve against base_dir."""
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise ConfigError("bookshelf config is not valid YAML") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError(
                f"bookshelf config must be a YAML mapping, got {type(data).__name__}"
            )

        for key, default in DEFAULTS.items():
            if data.get(key) is None:
                data[key] = default if not isinstance(default, list) else list(default)

        if not isinstance(data["books"], list):
            raise ConfigError("'books' must be a list of book entries")

        books = [
            BookRepoConfig.from_dict(entry, index, base_dir)
            for index, entry in enumerate(data.pop("books"))
        ]

        data["title"] = str(data["title"])
        for key in DIR_FIELDS:
            if data[key] is not None:
                data[key] = _resolve_dir(str(data[key]), base_dir)

        return cls(data, books, base_dir=base_dir)

    @classmethod
    def empty(cls):
        return cls.from_str("")

    # ── Attribute access ───────────────────────────────────

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self._data[name]
        except KeyError:
            raise AttributeError(f"ShelfConfig has no field '{name}'")

    def get(self, key, default=None):
        return self._data.get(key, default)

    # ── Command-line overrides ─────────────────────────────

    def override_dirs(self, destination_dir=None, working_dir=None, templates_dir=None):
        """Apply directories given on the command line (relative to CWD)."""
        for key, value in [
            ("destination_dir", destination_dir),
            ("working_dir", working_dir),
            ("templates_dir", templates_dir),
        ]:
            if value:
                self._data[key] = os.path.abspath(value)

    def validate(self):
        """Check settings that may only be complete after CLI overrides."""
        if not self.destination_dir:
            raise ConfigError(
                "Destination dir must be set in bookshelf.yaml or through the command line"
            )
        if self.templates_dir and not os.path.isdir(self.templates_dir):
            raise ConfigError(f"Templates dir not found: {self.templates_dir}")

    # ── Convenience ────────────────────────────────────────

    def summary(self):
        """Print a short config summary."""
        print(f"\n  Shelf:     {self.title or '(untitled)'}")
        print(f"  Books:     {len(self.books)}")
        print(f"  Output:    {self.destination_dir}")
        print(f"  Repos:     {self.working_dir}")
        if self.templates_dir:
            print(f"  Templates: {self.templates_dir}")
        else:
            print("  Templates: none (writing manifest.json)")


def _resolve_dir(value, base_dir):
    path = os.path.expanduser(value)
    if base_dir and not os.path.isabs(path):
        path = os.path.join(base_dir, path)
    return path
