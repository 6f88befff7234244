"""Shared file-system helpers for ditestkit.

Thin wrappers over pathlib/shutil so the container module and the
configurator agree on how directories are created and removed.
"""

import os
import shutil
from pathlib import Path
from typing import Union

PathLike = Union[str, os.PathLike]


def create_dir(path: PathLike) -> Path:
    """Create a directory and any missing parents.

    Args:
        path: Directory to create. Existing directories are left alone.

    Returns:
        The directory as a Path.
    """
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


def delete(path: PathLike) -> None:
    """Delete a file or a directory tree. Missing paths are ignored."""
    target = Path(path)
    if target.is_symlink() or target.is_file():
        target.unlink()
    elif target.is_dir():
        shutil.rmtree(target.resolve())


def is_absolute(path: PathLike) -> bool:
    return Path(path).is_absolute()


def join_path(base: str, *parts: str) -> str:
    """Join path fragments with forward slashes, skipping empty parts."""
    return "/".join([base.rstrip("/")] + [p.strip("/") for p in parts if p])
