"""
Base builder class for book generation.

Subclasses implement `render()` and set `format_name`.
Shared logic (override environment, pandoc invocation, logging,
artifact checks) lives here.
"""

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

from shelflib import mdbook
from shelflib.errors import GenerationError


@dataclass(frozen=True)
class GenerationResult:
    """What one generated book reports back to the manifest."""

    title: str
    path: str
    size: int


def override_env(overrides, base=None):
    """
    A copy of `base` (default os.environ) with overrides applied.

    None values remove the variable. The process environment itself is
    never touched.
    """
    env = dict(os.environ if base is None else base)
    for name, value in overrides:
        if value is None:
            env.pop(name, None)
        else:
            env[name] = value
    return env


class BaseBuilder(ABC):
    """
    Abstract base for book generators.

    Subclasses must define:
        format_name:  str   — human-readable name ("EPUB")
        render():     method — produce the artifact for a loaded project
    """

    format_name = None  # Override in subclass

    def __init__(self, verbose=False):
        self.verbose = verbose

    # ── Logging ────────────────────────────────────────────

    def log(self, msg):
        if self.verbose:
            print(msg)

    def header(self, name):
        print(f"\n{'─' * 60}")
        print(f"  Building {self.format_name}: {name}")
        print(f"{'─' * 60}")

    # ── Generation ─────────────────────────────────────────

    def generate(self, source_path, overrides, dest_dir):
        """
        Load the book at `source_path`, render it into `dest_dir`.

        A failed render is only a warning; the entry fails when no
        artifact ends up on disk.

        Returns: GenerationResult(title, path relative to dest_dir, size)
        """
        overrides = list(overrides)
        project = mdbook.load(source_path, overrides)
        self.header(project.title or source_path)

        os.makedirs(dest_dir, exist_ok=True)
        try:
            self.render(project, overrides, dest_dir)
        except GenerationError as e:
            print(f"  Warning: {self.format_name} generation reported an error: {e}")

        output_file = self.output_filename(dest_dir, project)
        if not os.path.isfile(output_file):
            raise GenerationError(
                f"No {self.format_name} produced for {source_path}: {output_file} is missing"
            )

        size = os.path.getsize(output_file)
        print(f"  ✓ {output_file} ({size} bytes)")
        return GenerationResult(
            project.title,
            self.output_filename("", project),
            size,
        )

    def output_filename(self, dest_dir, project):
        return mdbook.output_filename(dest_dir, project)

    # ── External tools ─────────────────────────────────────

    def exec_cmd(self, cmd, label="Command", env=None, cwd=None):
        """Execute a command; raise GenerationError with its stderr on failure."""
        try:
            result = subprocess.run(
                cmd,
                capture_output=not self.verbose,
                text=True,
                env=env,
                cwd=cwd,
            )
        except FileNotFoundError as e:
            raise GenerationError(f"{cmd[0]} not found") from e

        if result.returncode != 0:
            detail = ""
            if result.stderr:
                detail = "\n".join(
                    f"    {line}" for line in result.stderr.strip().splitlines()[:20]
                )
            print(f"  ✗ {label} failed (exit {result.returncode})")
            raise GenerationError(f"{label} failed (exit {result.returncode})\n{detail}".rstrip())

    def check_tool(self, name):
        """Check that a required external tool is on PATH."""
        if not shutil.which(name):
            print(f"  ✗ {name} not found on PATH")
            return False
        return True

    # ── Abstract interface ─────────────────────────────────

    @abstractmethod
    def render(self, project, overrides, dest_dir):
        """
        Write the artifact for `project` into `dest_dir`.

        Raises GenerationError on failure.
        """
        ...
