"""
Repository synchronization.

Maps a repository URL (or local path) to a fixed directory under the
working dir, clones it there on first use and fetches on later runs,
then reports the HEAD commit id and its author time.
"""

import os
import posixpath
import re
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlsplit

from shelflib.errors import RemoteMismatchError, SyncError


# user@host:owner/repo.git
SCP_LIKE = re.compile(r"^(?:[\w.-]+@)?[\w.-]+:(?!//)(?P<path>.+)$")


@dataclass(frozen=True)
class SyncResult:
    """Where a repository landed and which commit it is at."""

    path: str
    commit_sha: str
    last_modified: str


def is_url(url):
    """True for scheme URLs; a single-letter scheme is a Windows drive."""
    return len(urlsplit(url).scheme) > 1 and "://" in url


def is_remote(url):
    """True for anything git resolves over a transport, not as a local path."""
    return is_url(url) or ("\\" not in url and SCP_LIKE.match(url) is not None)


def same_remote(origin, url):
    """Compare an origin URL with a requested one; local paths by real path."""
    if is_remote(url):
        return origin == url
    return os.path.realpath(origin) == os.path.realpath(url)


def _contained(rel):
    """Normalize dot segments and drop any that would climb above the root."""
    rel = posixpath.normpath(rel.replace("\\", "/"))
    return "/".join(part for part in rel.split("/") if part not in ("", ".", ".."))


def local_path(url, working_dir):
    """
    Resolve the directory a repository is synchronized into.

    Pure function of (working_dir, url), always inside working_dir:
        https://github.com/rams3s/mdbook-dummy.git → <working_dir>/rams3s/mdbook-dummy.git
        git@github.com:rams3s/mdbook-dummy.git    → <working_dir>/rams3s/mdbook-dummy.git
        books/dummy                               → <working_dir>/books/dummy
        /srv/books/dummy                          → <working_dir>/srv/books/dummy
        https://host/../../x.git                  → <working_dir>/x.git

    Raises SyncError for a URL without a path.
    """
    if is_url(url):
        path = urlsplit(url).path
        if len(path) <= 1:
            raise SyncError(f"Malformed repository URL (no path): {url}")
        rel = _contained(path)
    else:
        match = SCP_LIKE.match(url) if "\\" not in url else None
        if match:
            rel = _contained(match.group("path"))
        else:
            _, rel = os.path.splitdrive(url)
            rel = _contained(rel)

    if not rel:
        raise SyncError(f"Malformed repository location: {url!r}")

    dest = os.path.join(working_dir, rel)

    # libgit2-style clients mishandle native separators; keep forward slashes
    if os.sep != "/":
        dest = dest.replace("\\", "/")

    return dest


def format_timestamp(epoch_seconds):
    """Commit time (seconds since epoch) as an RFC 3339 UTC string."""
    return datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc).isoformat()


class GitClient:
    """
    Thin wrapper over the git command line.

    Every failing command raises SyncError carrying git's stderr.
    """

    def __init__(self, git="git", verbose=False):
        self.git = git
        self.verbose = verbose

    def run(self, args, cwd=None, label="git"):
        cmd = [self.git] + list(args)
        if self.verbose:
            print(f"    $ {' '.join(cmd)}")
        try:
            result = subprocess.run(
                cmd,
                cwd=cwd,
                capture_output=True,
                text=True,
                env=dict(os.environ, GIT_TERMINAL_PROMPT="0"),
            )
        except FileNotFoundError as e:
            raise SyncError(f"{self.git} not found on PATH") from e
        if result.returncode != 0:
            detail = (result.stderr or result.stdout).strip()
            raise SyncError(f"{label} failed (exit {result.returncode}): {detail}")
        return result.stdout.strip()

    def open(self, path):
        """Return True if `path` is the top level of a git work tree."""
        if not os.path.isdir(path):
            return False
        try:
            toplevel = self.run(["rev-parse", "--show-toplevel"], cwd=path)
        except SyncError:
            return False
        return os.path.realpath(toplevel) == os.path.realpath(path)

    def clone(self, url, path):
        parent = os.path.dirname(os.path.abspath(path))
        os.makedirs(parent, exist_ok=True)
        self.run(["clone", url, path], label=f"git clone {url}")

    def remote_url(self, path, remote="origin"):
        return self.run(
            ["remote", "get-url", remote], cwd=path, label=f"git remote {remote}"
        )

    def fetch(self, path, remote, branch):
        """Fetch `branch` from `remote` and move the work tree onto it."""
        self.run(["fetch", remote, branch], cwd=path, label=f"git fetch {remote} {branch}")
        self.run(["reset", "--hard", "FETCH_HEAD"], cwd=path, label="git reset")

    def head(self, path):
        """Return (sha, author epoch seconds) of HEAD."""
        out = self.run(["log", "-1", "--format=%H %at", "HEAD"], cwd=path, label="git log")
        sha, _, seconds = out.partition(" ")
        return sha.lower(), int(seconds)


class Synchronizer(ABC):
    """
    Brings a local working copy up to date with its remote.

    Subclasses must define:
        sync():  method — clone or fetch, return a SyncResult
    """

    def __init__(self, verbose=False):
        self.verbose = verbose

    def log(self, msg):
        if self.verbose:
            print(msg)

    def local_path(self, url, working_dir):
        return local_path(url, working_dir)

    @abstractmethod
    def sync(self, url, working_dir, branch="master"):
        """Clone or fetch `url` under `working_dir`. Returns a SyncResult."""
        ...


class GitSynchronizer(Synchronizer):
    """Synchronizer backed by the git command line."""

    def __init__(self, client=None, verbose=False):
        super().__init__(verbose=verbose)
        self.client = client or GitClient(verbose=verbose)

    def sync(self, url, working_dir, branch="master"):
        dest = self.local_path(url, working_dir)

        if self.client.open(dest):
            origin = self.client.remote_url(dest, "origin")
            if not same_remote(origin, url):
                raise RemoteMismatchError(
                    f"Remote url for origin ({origin}) and requested url ({url}) "
                    f"do not match in {dest}"
                )
            self.log(f"  Found {dest}. Fetching {url}")
            self.client.fetch(dest, "origin", branch)
        else:
            # TODO: shallow clone (--depth 1) to cut first-run time on large book repos
            self.log(f"  Cloning {url} to {dest}")
            # origin is stored as given; keep local sources absolute
            source = url if is_remote(url) else os.path.abspath(url)
            self.client.clone(source, dest)

        sha, seconds = self.client.head(dest)
        print(f"  ✓ {url} @ {sha[:12]}")
        return SyncResult(dest, sha, format_timestamp(seconds))
