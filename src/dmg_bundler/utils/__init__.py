"""Shared utility helpers."""

from dmg_bundler.utils.fs import copy_dir, ensure_directories, remove_tree, replacing, write_json_atomically
from dmg_bundler.utils.process import CommandResult, run_captured
from dmg_bundler.utils.time_utils import now_utc

__all__ = [
    "copy_dir",
    "ensure_directories",
    "remove_tree",
    "replacing",
    "write_json_atomically",
    "CommandResult",
    "run_captured",
    "now_utc",
]
