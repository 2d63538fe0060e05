"""Confinement of caller-supplied paths to the scratch directory.

Symbolic links are resolved before the containment check: a link inside the
root that points outside it (to a file, a directory, or a target that does
not exist yet) is rejected, while links that stay inside the root are fine.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from simple_mcp.errors import ConfigurationError, PathSandboxError


def resolve_path(root: str | Path, path: str) -> Path:
    """Resolve ``path`` relative to ``root`` or raise ``PathSandboxError``."""

    if os.path.isabs(path):
        raise PathSandboxError("absolute paths are not allowed")
    cleaned = os.path.normpath(path)
    if os.pardir in Path(cleaned).parts:
        raise PathSandboxError("path must not contain '..'")

    try:
        base = Path(root).resolve()
        candidate = (base / cleaned).resolve()
    except (OSError, RuntimeError, ValueError) as error:
        raise PathSandboxError(f"could not resolve path {path!r}: {error}") from error
    if not candidate.is_relative_to(base):
        raise PathSandboxError("path escapes the scratch directory")
    return candidate


def is_root(root: str | Path, resolved: Path) -> bool:
    return Path(root).resolve() == resolved


def check_scratch_dir(path: str | Path) -> Path:
    """Validate that ``path`` is an existing, writable directory."""

    directory = Path(path)
    if not directory.exists():
        raise ConfigurationError(f"path does not exist: {directory}")
    if not directory.is_dir():
        raise ConfigurationError(f"path is not a directory: {directory}")
    try:
        with tempfile.NamedTemporaryFile(dir=directory, prefix="simple-mcp-write-test-"):
            pass
    except OSError as error:
        raise ConfigurationError(f"directory is not writable: {error}") from error
    return directory.resolve()
