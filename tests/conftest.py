"""Pytest fixtures for shelf tests."""

import os
import shutil
import subprocess

import pytest

from shelflib.builders import BaseBuilder, GenerationResult
from shelflib.errors import SyncError
from shelflib.git import SyncResult, Synchronizer


FIXTURES = os.path.join(os.path.dirname(os.path.abspath(__file__)), "fixtures")

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
requires_pandoc = pytest.mark.skipif(
    shutil.which("pandoc") is None, reason="pandoc not installed"
)


def git(*args, cwd=None):
    env = dict(
        os.environ,
        GIT_AUTHOR_NAME="name",
        GIT_AUTHOR_EMAIL="email@example.com",
        GIT_COMMITTER_NAME="name",
        GIT_COMMITTER_EMAIL="email@example.com",
    )
    result = subprocess.run(
        ["git"] + list(args), cwd=cwd, env=env, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


def commit_all(repo, message="update", date="2019-04-19T11:02:18+00:00"):
    git("add", "-A", cwd=repo)
    git("commit", "-q", "-m", message, f"--date={date}", cwd=repo)
    return git("rev-parse", "HEAD", cwd=repo)


@pytest.fixture
def dummy_book(tmp_path):
    """A copy of the one-chapter "Hello Rust" mdBook project."""
    dest = tmp_path / "dummy"
    shutil.copytree(os.path.join(FIXTURES, "dummy"), dest)
    return dest


@pytest.fixture
def templates_dir():
    return os.path.join(FIXTURES, "templates")


@pytest.fixture
def origin_repo(tmp_path, dummy_book):
    """A git repository on the `master` branch holding the dummy book."""
    repo = tmp_path / "origin" / "rams3s" / "mdbook-dummy.git"
    shutil.copytree(dummy_book, repo)
    git("init", "-q", "-b", "master", cwd=repo)
    commit_all(repo, "initial\n\nbody")
    return repo


class FakeSynchronizer(Synchronizer):
    """Records calls and hands back canned SyncResults."""

    def __init__(self, commit_sha="52476abfd5f0f1e8df272623eb6c9216db18f0b3", fail_on=None):
        super().__init__()
        self.commit_sha = commit_sha
        self.fail_on = fail_on
        self.calls = []

    def sync(self, url, working_dir, branch="master"):
        self.calls.append((url, working_dir, branch))
        if self.fail_on is not None and url == self.fail_on:
            raise SyncError(f"could not fetch {url}")
        return SyncResult(
            self.local_path(url, working_dir),
            self.commit_sha,
            "2019-04-19T11:02:18+00:00",
        )


class FakeBuilder(BaseBuilder):
    """Skips loading and rendering; reports a fixed title and size."""

    format_name = "EPUB"

    def __init__(self, title="Hello Rust", size=9527):
        super().__init__()
        self.title = title
        self.size = size
        self.calls = []

    def generate(self, source_path, overrides, dest_dir):
        self.calls.append((source_path, list(overrides), dest_dir))
        name = f"{self.title or 'book'}.epub"
        return GenerationResult(self.title, name, self.size)

    def render(self, project, overrides, dest_dir):
        raise AssertionError("FakeBuilder.render should not be called")


@pytest.fixture
def fake_sync():
    return FakeSynchronizer()


@pytest.fixture
def fake_builder():
    return FakeBuilder()
