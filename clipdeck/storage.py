"""On-disk project storage: project directories, documents, media files.

Layout::

    <projects_dir>/<name>/project.json
    <projects_dir>/<name>/media/...

Operations return result objects instead of raising so callers on the
editor side can log and carry on.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from clipdeck.paths import MEDIA_DIR_NAME, is_absolute_path, normalize
from clipdeck.validation import validate_project

logger = logging.getLogger(__name__)

PROJECT_FILE_NAME = "project.json"
METADATA_SUFFIX = ".md"


@dataclass
class StorageResult:
    success: bool
    error: str | None = None
    relative_path: str | None = None


@dataclass
class LoadResult:
    success: bool
    data: dict | None = None
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


class AssetStore(ABC):
    """Anything the editor can ask to delete a project-owned file."""

    @abstractmethod
    def delete_asset(self, project_id: str, relative_path: str) -> StorageResult:
        """Delete *relative_path* (forward slashes, relative to the project root)."""
        ...


class ProjectStorage(AssetStore):
    """File-system backed store for projects under a single root directory."""

    def __init__(self, projects_dir: str | Path, media_dir_name: str = MEDIA_DIR_NAME):
        self.projects_dir = Path(projects_dir).expanduser().resolve()
        self.media_dir_name = media_dir_name

    def project_dir(self, name: str) -> Path:
        if not name or name in (".", "..") or "/" in name or "\\" in name:
            raise ValueError(f"Invalid project name: {name!r}")
        return self.projects_dir / name

    def media_dir(self, name: str) -> Path:
        return self.project_dir(name) / self.media_dir_name

    def project_file(self, name: str) -> Path:
        return self.project_dir(name) / PROJECT_FILE_NAME

    def list_projects(self) -> list[str]:
        if not self.projects_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.projects_dir.iterdir()
            if entry.is_dir() and (entry / PROJECT_FILE_NAME).is_file()
        )

    def create_project(self, name: str) -> StorageResult:
        try:
            self.media_dir(name).mkdir(parents=True, exist_ok=True)
        except (OSError, ValueError) as e:
            return StorageResult(False, error=str(e))
        return StorageResult(True)

    def delete_project(self, name: str) -> StorageResult:
        try:
            shutil.rmtree(self.project_dir(name))
        except (OSError, ValueError) as e:
            return StorageResult(False, error=str(e))
        return StorageResult(True)

    def load_project(self, name: str) -> LoadResult:
        """Read and validate ``project.json``; only warnings may accompany success."""
        try:
            path = self.project_file(name)
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return LoadResult(False, error=f"Project not found: {name}")
        except (OSError, ValueError) as e:
            return LoadResult(False, error=f"Error reading project: {e}")

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            return LoadResult(False, error=f"Invalid JSON in {path}: {e}")

        report = validate_project(data, path.parent)
        if not report.is_valid:
            problems = report.structure_errors + report.integrity_errors
            return LoadResult(
                False,
                warnings=report.warnings,
                error=f"Project {name} is invalid ({len(problems)} errors): " + "; ".join(problems[:5]),
            )
        return LoadResult(True, data=data, warnings=report.warnings)

    def save_project(self, name: str, data: dict) -> StorageResult:
        try:
            path = self.project_file(name)
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp = path.with_suffix(".json.tmp")
            tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, ValueError, TypeError) as e:
            return StorageResult(False, error=str(e))
        return StorageResult(True)

    def copy_media_to_project(self, name: str, source_path: str | Path) -> StorageResult:
        """Copy an external file into the media dir, never overwriting an existing one."""
        source = Path(source_path)
        if not source.is_file():
            return StorageResult(False, error=f"Source file not found: {source}")
        try:
            media_dir = self.media_dir(name)
            media_dir.mkdir(parents=True, exist_ok=True)
            dest = media_dir / source.name
            counter = 1
            while dest.exists():
                dest = media_dir / f"{source.stem}-{counter}{source.suffix}"
                counter += 1
            shutil.copy2(source, dest)
        except (OSError, ValueError) as e:
            return StorageResult(False, error=str(e))
        return StorageResult(True, relative_path=f"{self.media_dir_name}/{dest.name}")

    def resolve_relative(self, name: str, relative_path: str) -> Path:
        """Absolute path for *relative_path* inside the project, refusing escapes.

        Raises:
            ValueError: If the path is absolute or resolves outside the project.
        """
        if not relative_path or is_absolute_path(relative_path):
            raise ValueError(f"Expected a project-relative path, got {relative_path!r}")
        normalized = normalize(relative_path)
        if normalized == "." or normalized == ".." or normalized.startswith("../"):
            raise ValueError(f"Path escapes the project directory: {relative_path!r}")
        return self.project_dir(name) / normalized

    def delete_asset(self, project_id: str, relative_path: str) -> StorageResult:
        try:
            target = self.resolve_relative(project_id, relative_path)
            target.unlink()
        except FileNotFoundError:
            return StorageResult(False, error=f"File not found: {relative_path}")
        except (OSError, ValueError) as e:
            return StorageResult(False, error=str(e))
        logger.debug("Deleted %s from project %s", relative_path, project_id)
        return StorageResult(True)

    @staticmethod
    def metadata_path(media_path: str | Path) -> Path:
        return Path(f"{media_path}{METADATA_SUFFIX}")

    def read_media_metadata(self, media_path: str | Path) -> str:
        """Sidecar notes for a media file; empty when there are none."""
        path = self.metadata_path(media_path)
        if not path.is_file():
            return ""
        return path.read_text(encoding="utf-8")

    def write_media_metadata(self, media_path: str | Path, content: str) -> StorageResult:
        try:
            self.metadata_path(media_path).write_text(content, encoding="utf-8")
        except OSError as e:
            return StorageResult(False, error=str(e))
        return StorageResult(True)
