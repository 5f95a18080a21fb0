"""Built-in components: list them and install one into a project's media dir."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from clipdeck.bundler import BundleResult, bundle_component
from clipdeck.paths import MEDIA_DIR_NAME

logger = logging.getLogger(__name__)

COMPONENT_EXTENSIONS = {".tsx", ".jsx"}
BUNDLE_SUFFIX = ".component.js"
SIDECAR_SUFFIX = ".md"

Bundler = Callable[[Path, Path], BundleResult]


@dataclass
class BuiltinComponent:
    name: str
    file_name: str


@dataclass
class InstallResult:
    success: bool
    source_path: str | None = None
    bundle_path: str | None = None
    error: str | None = None


def list_builtin_components(builtin_dir: str | Path) -> list[BuiltinComponent]:
    """Components shipped in *builtin_dir*; empty when the directory is missing."""
    directory = Path(builtin_dir)
    if not directory.is_dir():
        return []
    return [
        BuiltinComponent(name=entry.stem, file_name=entry.name)
        for entry in sorted(directory.iterdir())
        if entry.is_file() and entry.suffix.lower() in COMPONENT_EXTENSIONS
    ]


def install_builtin_component(
    builtin_dir: str | Path,
    projects_dir: str | Path,
    project_name: str,
    file_name: str,
    bundle: Bundler = bundle_component,
    media_dir_name: str = MEDIA_DIR_NAME,
) -> InstallResult:
    """Copy a built-in component (plus its ``.md`` sidecar) into the project and bundle it.

    The copied source is removed again when bundling fails, so a failed
    install leaves nothing behind but the sidecar documentation.

    Returns:
        InstallResult with ``media/...`` project-relative paths on success.
    """
    source = Path(builtin_dir) / file_name
    if Path(file_name).name != file_name or not source.is_file():
        return InstallResult(False, error=f"Built-in component not found: {file_name}")

    media_dir = Path(projects_dir) / project_name / media_dir_name
    dest = media_dir / file_name
    try:
        media_dir.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, dest)
        sidecar = source.with_name(source.name + SIDECAR_SUFFIX)
        if sidecar.is_file():
            shutil.copyfile(sidecar, dest.with_name(dest.name + SIDECAR_SUFFIX))
    except OSError as e:
        return InstallResult(False, error=str(e))

    out_file = media_dir / f"{source.stem}{BUNDLE_SUFFIX}"
    result = bundle(source, out_file)
    if not result.success:
        logger.warning("Bundling %s failed: %s", file_name, result.error)
        dest.unlink(missing_ok=True)
        return InstallResult(False, error=result.error)

    return InstallResult(
        True,
        source_path=f"{media_dir_name}/{dest.name}",
        bundle_path=f"{media_dir_name}/{out_file.name}",
    )
