"""Sandboxed scratch-directory file operations."""

from simple_mcp.scratch.files import (
    copy_resource_to_file,
    copy_resource_tree,
    create_directory,
    create_file,
    delete_file,
    list_directory,
    modify_file,
    read_file,
    remove_directory,
    replace_in_file,
)
from simple_mcp.scratch.sandbox import check_scratch_dir, resolve_path

__all__ = [
    "check_scratch_dir",
    "copy_resource_to_file",
    "copy_resource_tree",
    "create_directory",
    "create_file",
    "delete_file",
    "list_directory",
    "modify_file",
    "read_file",
    "remove_directory",
    "replace_in_file",
    "resolve_path",
]
