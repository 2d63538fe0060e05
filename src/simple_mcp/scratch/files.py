"""File operations confined to the scratch directory.

Every function takes the scratch root and a caller-supplied relative path;
paths go through :func:`resolve_path` before anything touches the disk.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import whatthepatch
from whatthepatch.exceptions import WhatThePatchException

from simple_mcp.errors import ScratchOperationError
from simple_mcp.resources import ResourceCatalog
from simple_mcp.scratch.sandbox import is_root, resolve_path

logger = logging.getLogger(__name__)

_HUNK_HEADER = re.compile(r"^@@ -\d+(?:,(\d+))? \+\d+(?:,(\d+))? @@")


def create_file(root: str | Path, path: str, content: str) -> str:
    target = resolve_path(root, path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to create file {path}: {error}") from error
    logger.debug("Created scratch file %s (%d bytes)", target, len(content))
    return "File created successfully."


def read_file(root: str | Path, path: str) -> str:
    target = resolve_path(root, path)
    try:
        return target.read_text(encoding="utf-8", errors="replace")
    except OSError as error:
        raise ScratchOperationError(f"failed to read file {path}: {error}") from error


def delete_file(root: str | Path, path: str) -> str:
    target = resolve_path(root, path)
    if target.is_dir():
        raise ScratchOperationError(f"{path} is a directory; use RemoveDirectory instead")
    try:
        target.unlink()
    except OSError as error:
        raise ScratchOperationError(f"failed to delete file {path}: {error}") from error
    return "File deleted successfully."


def modify_file(root: str | Path, path: str, patch: str) -> str:
    """Apply a unified diff that touches exactly one file."""

    target = resolve_path(root, path)
    if not target.is_file():
        raise ScratchOperationError(f"file does not exist: {path}")

    diffs = [diff for diff in whatthepatch.parse_patch(patch) if diff.changes]
    found = max(len(diffs), _count_file_headers(patch))
    if found != 1:
        raise ScratchOperationError(f"patch must modify exactly one file, found {found}")

    try:
        original = target.read_text(encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to read file {path}: {error}") from error

    try:
        lines = whatthepatch.apply_diff(diffs[0], original)
    except WhatThePatchException as error:
        raise ScratchOperationError(f"failed to apply patch to {path}: {error}") from error

    updated = "\n".join(lines)
    if lines and original.endswith("\n"):
        updated += "\n"
    try:
        target.write_text(updated, encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to write file {path}: {error}") from error
    return "File modified successfully."


def replace_in_file(root: str | Path, path: str, search: str, replace: str, count: int = 0) -> str:
    """Literal search and replace; ``count`` of 0 replaces every occurrence."""

    if not search:
        raise ScratchOperationError("search text must not be empty")
    target = resolve_path(root, path)
    try:
        original = target.read_text(encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to read file {path}: {error}") from error

    found = original.count(search)
    if not found:
        raise ScratchOperationError(f"search text not found in {path}")
    replaced = found if count <= 0 else min(count, found)
    try:
        target.write_text(original.replace(search, replace, replaced), encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to write file {path}: {error}") from error
    return f"Replaced {replaced} occurrence(s) in {path}."


def list_directory(root: str | Path, path: str = ".") -> str:
    """Sorted entry names, one per line, directories with a trailing slash."""

    target = resolve_path(root, path or ".")
    try:
        entries = sorted(target.iterdir(), key=lambda entry: entry.name)
    except OSError as error:
        raise ScratchOperationError(f"failed to list directory {path}: {error}") from error
    return "".join(f"{entry.name}/\n" if entry.is_dir() else f"{entry.name}\n" for entry in entries)


def create_directory(root: str | Path, path: str) -> str:
    target = resolve_path(root, path)
    try:
        target.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise ScratchOperationError(f"failed to create directory {path}: {error}") from error
    return "Directory created successfully."


def remove_directory(root: str | Path, path: str) -> str:
    target = resolve_path(root, path)
    if is_root(root, target):
        raise ScratchOperationError("refusing to remove the scratch directory itself")
    if not target.is_dir():
        raise ScratchOperationError(f"not a directory: {path}")
    try:
        target.rmdir()
    except OSError as error:
        raise ScratchOperationError(f"failed to remove directory {path}: {error}") from error
    return "Directory removed successfully."


def copy_resource_to_file(catalog: ResourceCatalog, root: str | Path, uri: str, path: str) -> str:
    target = resolve_path(root, path)
    content = catalog.read(uri)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as error:
        raise ScratchOperationError(f"failed to write {path}: {error}") from error
    return "File created successfully."


def copy_resource_tree(catalog: ResourceCatalog, root: str | Path, prefix: str, path: str) -> str:
    """Copy every resource under ``prefix`` into ``path``, keeping relative names.

    All targets are validated before the first write, so a single bad name
    aborts the copy without leaving a partial tree behind.
    """

    matches = catalog.under_prefix(prefix)
    if not matches:
        raise ScratchOperationError(f"no resources found under prefix {prefix}")

    destination = path.rstrip("/") or "."
    planned = [
        (resolve_path(root, f"{destination}/{relative}"), spec) for relative, spec in matches
    ]
    for target, spec in planned:
        content = catalog.render(spec)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as error:
            raise ScratchOperationError(f"failed to write {target}: {error}") from error
    logger.info("Copied %d resources from %s to %s", len(planned), prefix, destination)
    return f"Successfully copied {len(planned)} resources"


def _count_file_headers(patch: str) -> int:
    """Count ``---``/``+++`` header pairs that sit outside hunk bodies."""

    lines = patch.splitlines()
    headers = 0
    old_left = new_left = 0
    for index, line in enumerate(lines):
        if old_left > 0 or new_left > 0:
            if line.startswith("-"):
                old_left -= 1
            elif line.startswith("+"):
                new_left -= 1
            elif not line.startswith("\\"):
                old_left -= 1
                new_left -= 1
            continue
        hunk = _HUNK_HEADER.match(line)
        if hunk:
            old_left = int(hunk.group(1) or 1)
            new_left = int(hunk.group(2) or 1)
        elif (
            line.startswith("--- ")
            and index + 1 < len(lines)
            and lines[index + 1].startswith("+++ ")
        ):
            headers += 1
    return headers
