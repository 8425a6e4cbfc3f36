"""Path and filesystem helper functions."""

from __future__ import annotations

import json
import os
import shutil
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator
from uuid import uuid4


def ensure_directories(paths: Iterable[Path]) -> list[Path]:
    """Create all directories in the iterable if they do not exist."""

    created_or_existing: list[Path] = []
    for directory in paths:
        directory.mkdir(parents=True, exist_ok=True)
        created_or_existing.append(directory)
    return created_or_existing


def remove_tree(path: Path) -> bool:
    """Recursively delete `path` if it exists. Returns whether anything was removed."""

    if path.is_symlink() or path.is_file():
        path.unlink()
        return True
    if path.exists():
        shutil.rmtree(path)
        return True
    return False


def copy_dir(source: Path, destination: Path) -> Path:
    """Deep-copy a directory tree, keeping symlinks as links.

    The destination must not exist yet; its parent is created on demand.
    """

    if not source.is_dir():
        raise NotADirectoryError(f"{source} is not a directory")
    if destination.exists():
        raise FileExistsError(f"{destination} already exists")
    destination.parent.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination, symlinks=True)
    return destination


@contextmanager
def replacing(target_path: Path) -> Iterator[Path]:
    """Yield a hidden sibling of `target_path` to write into.

    On a clean exit the sibling is renamed over `target_path`; on any exit the
    sibling is gone afterwards, so `target_path` is either untouched or complete.
    """

    temp_path = target_path.with_name(f".{target_path.name}.{uuid4().hex}.tmp")
    try:
        yield temp_path
        os.replace(temp_path, target_path)
    finally:
        temp_path.unlink(missing_ok=True)


def write_json_atomically(payload: dict[str, Any], output_path: Path) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    rendered = json.dumps(payload, indent=2, sort_keys=True, default=str)
    with replacing(output_path) as temp_path:
        temp_path.write_text(rendered + "\n", encoding="utf-8")
    return output_path
