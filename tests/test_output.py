"""Tests for manifest output (templates and manifest.json)."""

import json
import os

import pytest

from shelflib.errors import RenderError, SerializationError
from shelflib.manifest import Manifest, ManifestEntry
from shelflib.output import list_templates, render_templates, write_manifest

pytestmark = pytest.mark.unit


@pytest.fixture
def manifest():
    return Manifest(
        entries=(
            ManifestEntry(
                commit_sha="52476abfd5f0f1e8df272623eb6c9216db18f0b3",
                epub_size=9527,
                last_modified="2019-04-19T11:02:18+00:00",
                path="Hello Rust.epub",
                repo_url="https://github.com/rams3s/mdbook-dummy.git",
                title="Hello Rust",
                url="https://rams3s.github.io/mdbook-dummy/index.html",
            ),
        ),
        timestamp="2024-01-01T00:00:00+00:00",
        title="My eBookshelf",
    )


class TestWriteManifest:
    def test_writes_pretty_json(self, manifest, tmp_path):
        path = write_manifest(manifest, str(tmp_path))

        assert path == os.path.join(str(tmp_path), "manifest.json")
        with open(path) as f:
            text = f.read()
        assert text.startswith("{\n  ")

        data = json.loads(text)
        assert data["title"] == "My eBookshelf"
        assert data["timestamp"] == "2024-01-01T00:00:00+00:00"
        assert data["entries"] == [
            {
                "commit_sha": "52476abfd5f0f1e8df272623eb6c9216db18f0b3",
                "epub_size": 9527,
                "last_modified": "2019-04-19T11:02:18+00:00",
                "path": "Hello Rust.epub",
                "repo_url": "https://github.com/rams3s/mdbook-dummy.git",
                "title": "Hello Rust",
                "url": "https://rams3s.github.io/mdbook-dummy/index.html",
            }
        ]

    def test_unwritable_destination(self, manifest, tmp_path):
        with pytest.raises(SerializationError, match="Could not write"):
            write_manifest(manifest, str(tmp_path / "missing" / "dir"))


class TestRenderTemplates:
    def test_fixture_templates(self, manifest, templates_dir, tmp_path):
        written = render_templates(manifest, templates_dir, str(tmp_path))

        assert sorted(os.path.basename(p) for p in written) == ["SUMMARY.md", "books.md"]
        assert not (tmp_path / "manifest.json").exists()

        summary = (tmp_path / "SUMMARY.md").read_text()
        assert summary.startswith("# My eBookshelf\n")
        assert "- [Hello Rust](Hello Rust.epub)" in summary

        books = (tmp_path / "books.md").read_text()
        assert "Last updated 2024-01-01T00:00:00+00:00." in books
        assert "| 9527 | [52476ab](" in books

    def test_nested_paths_are_preserved(self, manifest, tmp_path):
        templates = tmp_path / "templates"
        (templates / "site" / "pages").mkdir(parents=True)
        (templates / "site" / "pages" / "index.html").write_text("<h1>{{ title }}</h1>\n")
        dest = tmp_path / "out"
        dest.mkdir()

        render_templates(manifest, str(templates), str(dest))

        assert (dest / "site" / "pages" / "index.html").read_text() == "<h1>My eBookshelf</h1>\n"

    def test_symlinked_directories_are_followed(self, manifest, tmp_path):
        shared = tmp_path / "shared"
        shared.mkdir()
        (shared / "count.txt").write_text("{{ entries | length }}")
        templates = tmp_path / "templates"
        templates.mkdir()
        os.symlink(shared, templates / "linked", target_is_directory=True)
        dest = tmp_path / "out"

        render_templates(manifest, str(templates), str(dest))

        assert (dest / "linked" / "count.txt").read_text() == "1"
        assert list_templates(str(templates)) == ["linked/count.txt"]

    def test_undefined_variable_fails(self, manifest, tmp_path):
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "bad.md").write_text("{{ no_such_thing }}")

        with pytest.raises(RenderError, match="Template error in bad.md"):
            render_templates(manifest, str(templates), str(tmp_path / "out"))

    def test_syntax_error_fails(self, manifest, tmp_path):
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "broken.md").write_text("{% for entry in entries %}")

        with pytest.raises(RenderError):
            render_templates(manifest, str(templates), str(tmp_path / "out"))

    def test_binary_file_fails(self, manifest, tmp_path):
        """A non-UTF-8 file in the templates dir is a render error, not a crash."""
        templates = tmp_path / "templates"
        templates.mkdir()
        (templates / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR")

        with pytest.raises(RenderError, match="Template error in logo.png") as info:
            render_templates(manifest, str(templates), str(tmp_path / "out"))

        assert isinstance(info.value.__cause__, UnicodeDecodeError)
