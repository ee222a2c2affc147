"""
Manifest output: rendered templates or manifest.json.

Template mode renders every file under the templates dir (symlinks
followed) with the manifest as context, keeping relative paths.
JSON mode writes the manifest to a single manifest.json.
"""

import json
import os

from jinja2 import (
    Environment,
    FileSystemLoader,
    StrictUndefined,
    TemplateError,
)

from shelflib.errors import RenderError, SerializationError


MANIFEST_FILENAME = "manifest.json"


def list_templates(templates_dir):
    """Template paths relative to `templates_dir`, '/'-separated and sorted."""
    names = []
    for root, dirs, files in os.walk(templates_dir, followlinks=True):
        dirs.sort()
        for name in sorted(files):
            rel = os.path.relpath(os.path.join(root, name), templates_dir)
            names.append(rel.replace(os.sep, "/"))
    return names


def create_env(templates_dir):
    loader = FileSystemLoader(templates_dir, followlinks=True)
    return Environment(
        loader=loader,
        autoescape=False,
        undefined=StrictUndefined,
        keep_trailing_newline=True,
    )


def render_templates(manifest, templates_dir, dest_dir, verbose=False):
    """
    Render each template into the same relative path under `dest_dir`.

    Returns: list of written paths.
    Raises RenderError on the first template that fails.
    """
    env = create_env(templates_dir)
    context = manifest.to_dict()
    written = []

    for name in list_templates(templates_dir):
        output_path = os.path.join(dest_dir, *name.split("/"))
        if verbose:
            print(f"  Rendering template {name} to {output_path}")

        try:
            page = env.get_template(name).render(context)
        except (TemplateError, UnicodeDecodeError) as e:
            raise RenderError(f"Template error in {name}") from e

        try:
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(page)
        except OSError as e:
            raise RenderError(f"Could not write {output_path}") from e

        written.append(output_path)

    print(f"  ✓ {len(written)} page(s) rendered into {dest_dir}")
    return written


def write_manifest(manifest, dest_dir, verbose=False):
    """Write `manifest` as pretty-printed JSON. Returns the file path."""
    manifest_path = os.path.join(dest_dir, MANIFEST_FILENAME)
    if verbose:
        print(f"  Writing manifest to {manifest_path}")

    try:
        text = json.dumps(manifest.to_dict(), indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise SerializationError("Manifest could not be serialized") from e

    try:
        with open(manifest_path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    except OSError as e:
        raise SerializationError(f"Could not write {manifest_path}") from e

    print(f"  ✓ {manifest_path}")
    return manifest_path
