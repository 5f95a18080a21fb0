"""Project path helpers: absolute/relative conversion and media-dir containment.

Project documents store media paths relative to the project directory with
forward slashes; the live editor state holds absolute paths. Paths may come
from Windows hosts, so backslashes are treated as separators throughout.
"""

from __future__ import annotations

import posixpath
import re
from pathlib import Path, PurePosixPath

MEDIA_DIR_NAME = "media"

_DRIVE_PATH = re.compile(r"^[A-Za-z]:[\\/]")


def normalize(path: str | Path) -> str:
    """Forward slashes, ``..``/``.`` collapsed, no trailing slash."""
    text = str(path).replace("\\", "/")
    if not text:
        return ""
    # posixpath keeps a leading "//" (UNC); anything else collapses normally.
    return posixpath.normpath(text)


def is_absolute_path(path: str) -> bool:
    if not path:
        return False
    return path.startswith("/") or path.startswith("\\\\") or bool(_DRIVE_PATH.match(path))


def to_project_absolute_path(path: str, project_dir: str | Path | None) -> str:
    if not path or not project_dir or is_absolute_path(path):
        return path
    return f"{normalize(project_dir)}/{path}"


def relative_to(path: str, directory: str | Path | None) -> str | None:
    """Return *path* relative to *directory* if it lies strictly inside it, else None.

    Containment is decided after ``..`` segments are resolved, so
    ``<dir>/media/../../elsewhere`` is outside ``<dir>`` even though the
    raw string starts with it.
    """
    if not path or not directory or not is_absolute_path(path):
        return None
    child = PurePosixPath(normalize(path))
    parent = PurePosixPath(normalize(directory))
    if child == parent or not child.is_relative_to(parent):
        return None
    return child.relative_to(parent).as_posix()


def to_project_relative_path(path: str, project_dir: str | Path | None) -> str | None:
    return relative_to(path, project_dir)


def managed_media_path(
    path: str | None,
    project_dir: str | Path | None,
    media_dir_name: str = MEDIA_DIR_NAME,
) -> str | None:
    """Project-relative POSIX path of a file the project owns, or None.

    Only files strictly inside ``<project_dir>/<media_dir_name>`` are owned;
    anything else was referenced in place and must never be deleted.
    """
    if not path or not project_dir:
        return None
    media_dir = f"{normalize(project_dir)}/{media_dir_name}"
    inner = relative_to(path, media_dir)
    if inner is None:
        return None
    return f"{media_dir_name}/{inner}"
