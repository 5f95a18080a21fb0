"""Settings dataclass with JSON persistence."""

import json
from dataclasses import asdict, dataclass
from pathlib import Path

from clipdeck.model.project import ExportSettings

DEFAULT_CONFIG_DIR = Path.home() / ".config" / "video-editor"
DEFAULT_CONFIG_PATH = DEFAULT_CONFIG_DIR / "settings.json"


@dataclass
class Settings:
    # Storage
    projects_dir: str = str(DEFAULT_CONFIG_DIR / "projects")
    media_dir_name: str = "media"
    builtin_components_dir: str = ""

    # Background file deletion
    delete_workers: int = 2

    # Defaults for new projects
    export_width: int = 1920
    export_height: int = 1080
    export_fps: float = 30.0
    export_bitrate: float = 8_000_000

    log_level: str = "WARNING"

    def save(self, path: Path | None = None) -> None:
        path = path or DEFAULT_CONFIG_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(asdict(self), indent=2))

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        path = path or DEFAULT_CONFIG_PATH
        if not path.exists():
            return cls()
        try:
            data = json.loads(path.read_text())
            return cls(**{k: v for k, v in data.items() if k in cls.__dataclass_fields__})
        except (json.JSONDecodeError, TypeError):
            return cls()

    @property
    def resolved_projects_dir(self) -> Path:
        return Path(self.projects_dir).expanduser().resolve()

    @property
    def default_export_settings(self) -> ExportSettings:
        return ExportSettings(
            width=self.export_width,
            height=self.export_height,
            fps=self.export_fps,
            bitrate=self.export_bitrate,
        )
