"""
EPUB builder.

Pipeline: mdBook project → pandoc → <title>.epub in the destination dir.
"""

import os

from shelflib.builders.base import BaseBuilder, override_env
from shelflib.errors import GenerationError


class EpubBuilder(BaseBuilder):
    format_name = "EPUB"

    def pandoc_args(self, project, output_file):
        """Build the pandoc command for `project`."""
        cmd = ["pandoc", "--from", "markdown+smart", "--top-level-division=chapter"]

        for key, value in [("title", project.title), ("lang", project.language)]:
            if value:
                cmd.extend(["--metadata", f"{key}={value}"])
        for author in project.authors:
            cmd.extend(["--metadata", f"author={author}"])

        cmd.extend([
            "--resource-path", project.src_dir,
            "--toc",
            "--toc-depth", "1",
            "-o", output_file,
        ])

        epub = project.get("output.epub", {})
        if not isinstance(epub, dict):
            epub = {}

        # CSS (per-book, relative to the book root)
        for css in epub.get("additional-css", []):
            css_path = os.path.join(project.root, css)
            if os.path.exists(css_path):
                cmd.extend(["--css", css_path])
                self.log(f"  CSS:   {css_path}")
            else:
                print(f"  Warning: CSS '{css}' not found")

        # Cover
        cover = epub.get("cover-image")
        if cover:
            cover_path = os.path.join(project.src_dir, cover)
            if os.path.exists(cover_path):
                cmd.extend(["--epub-cover-image", cover_path])
                self.log(f"  Cover: {cover_path}")
            else:
                print(f"  Warning: cover image '{cover}' not found")

        cmd.extend(project.chapters)
        return cmd

    def render(self, project, overrides, dest_dir):
        if not self.check_tool("pandoc"):
            raise GenerationError("pandoc is required to build EPUBs")

        output_file = os.path.abspath(self.output_filename(dest_dir, project))
        cmd = self.pandoc_args(project, output_file)

        self.log(f"  Input: {len(project.chapters)} chapters")
        self.exec_cmd(
            cmd,
            "EPUB generation",
            env=override_env(overrides),
            cwd=project.src_dir,
        )
