"""YAML editor configuration for CLI and batch usage."""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from pathlib import Path

import yaml

from clipdeck.config import Settings

KNOWN_TOP_KEYS = {"projects_dir", "media_dir", "builtin_components_dir", "delete_workers", "export", "log_level"}
KNOWN_EXPORT_KEYS = {"width", "height", "fps", "bitrate"}
LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass
class EditorConfig:
    """All fields are None by default; unset means 'use the default'."""

    projects_dir: str | None = None
    media_dir_name: str | None = None
    builtin_components_dir: str | None = None
    delete_workers: int | None = None

    export_width: int | None = None
    export_height: int | None = None
    export_fps: float | None = None
    export_bitrate: float | None = None

    log_level: str | None = None


def _warn_unknown_keys(keys: set[str], known: set[str], section: str) -> None:
    unknown = keys - known
    for key in sorted(unknown):
        warnings.warn(f"Unknown key '{key}' in {section} section of editor config", stacklevel=3)


def _resolve_dir(value: object, base_dir: Path, key: str) -> str:
    if not isinstance(value, str) or not value:
        raise ValueError(f"'{key}' must be a non-empty string")
    path = Path(value).expanduser()
    # Relative directories are relative to the YAML file, not the CWD
    if not path.is_absolute():
        path = base_dir / path
    return str(path)


def load_editor_config(path: str | Path) -> EditorConfig:
    """Load a YAML editor config file and return an EditorConfig."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text())
    if raw is None:
        # Empty YAML file
        return EditorConfig()
    if not isinstance(raw, dict):
        raise ValueError(f"Editor config must be a YAML mapping, got {type(raw).__name__}")

    _warn_unknown_keys(set(raw.keys()), KNOWN_TOP_KEYS, "top-level")

    base_dir = path.resolve().parent
    cfg = EditorConfig()

    if "projects_dir" in raw:
        cfg.projects_dir = _resolve_dir(raw["projects_dir"], base_dir, "projects_dir")
    if "builtin_components_dir" in raw:
        cfg.builtin_components_dir = _resolve_dir(raw["builtin_components_dir"], base_dir, "builtin_components_dir")

    if "media_dir" in raw:
        media_dir = raw["media_dir"]
        if not isinstance(media_dir, str) or not media_dir or "/" in media_dir or "\\" in media_dir:
            raise ValueError("'media_dir' must be a single directory name")
        cfg.media_dir_name = media_dir

    if "delete_workers" in raw:
        cfg.delete_workers = int(raw["delete_workers"])
        if cfg.delete_workers < 1:
            raise ValueError("'delete_workers' must be at least 1")

    # --- export ---
    if "export" in raw:
        export = raw["export"]
        if not isinstance(export, dict):
            raise ValueError("'export' must be a mapping")
        _warn_unknown_keys(set(export.keys()), KNOWN_EXPORT_KEYS, "export")
        if "width" in export:
            cfg.export_width = int(export["width"])
        if "height" in export:
            cfg.export_height = int(export["height"])
        if "fps" in export:
            cfg.export_fps = float(export["fps"])
        if "bitrate" in export:
            cfg.export_bitrate = float(export["bitrate"])

    if "log_level" in raw:
        level = str(raw["log_level"]).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"'log_level' must be one of {', '.join(sorted(LOG_LEVELS))}")
        cfg.log_level = level

    return cfg


def apply_config_to_settings(config: EditorConfig, settings: Settings | None = None) -> Settings:
    """Overlay non-None EditorConfig fields onto a Settings instance."""
    if settings is None:
        settings = Settings()

    for config_field in config.__dataclass_fields__:
        value = getattr(config, config_field)
        if value is not None:
            setattr(settings, config_field, value)

    return settings
