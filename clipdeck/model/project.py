"""MediaAsset, TimelineClip, ExportSettings and ProjectDocument data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

MEDIA_KINDS = ("video", "audio", "component")

# Component clips stretch to whatever duration they are given.
FLEX_DURATION_KINDS = {"component"}

PROJECT_VERSION = 1


@dataclass
class MediaAsset:
    path: str
    name: str
    ext: str
    kind: str = "video"
    duration: float = 0.0
    bundle_path: str | None = None
    prop_definitions: dict[str, Any] | None = None

    @classmethod
    def from_dict(cls, data: dict) -> "MediaAsset":
        return cls(
            path=data["path"],
            name=data["name"],
            ext=data["ext"],
            kind=data.get("type", "video"),
            duration=float(data.get("duration", 0.0)),
            bundle_path=data.get("bundlePath") or None,
            prop_definitions=data.get("propDefinitions"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "path": self.path,
            "name": self.name,
            "ext": self.ext,
            "type": self.kind,
            "duration": self.duration,
        }
        if self.bundle_path:
            out["bundlePath"] = self.bundle_path
        if self.prop_definitions:
            out["propDefinitions"] = self.prop_definitions
        return out


@dataclass
class TimelineClip:
    id: int
    media_path: str
    media_name: str
    track: int
    start_time: float
    duration: float
    trim_start: float = 0.0
    trim_end: float = 0.0
    original_duration: float = 0.0
    x: float = 0.0
    y: float = 0.0
    scale: float = 1.0
    scale_x: float = 1.0
    scale_y: float = 1.0
    keyframes: dict[str, list[dict]] | None = None
    keyframe_id_counter: int | None = None
    mask: dict[str, Any] | None = None
    component_props: dict[str, Any] | None = None

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def overlaps(self, start_time: float, duration: float) -> bool:
        """Half-open interval test: touching endpoints do not overlap."""
        return start_time < self.end_time and start_time + duration > self.start_time

    @classmethod
    def for_media(cls, clip_id: int, media: MediaAsset, track: int, start_time: float) -> "TimelineClip":
        return cls(
            id=clip_id,
            media_path=media.path,
            media_name=media.name,
            track=track,
            start_time=start_time,
            duration=media.duration,
            original_duration=media.duration,
            component_props=default_component_props(media.prop_definitions),
        )

    @classmethod
    def from_dict(cls, data: dict) -> "TimelineClip":
        # A legacy "type" key may be present; kind is always resolved from the asset list.
        return cls(
            id=int(data["id"]),
            media_path=data["mediaPath"],
            media_name=data.get("mediaName", ""),
            track=int(data["track"]),
            start_time=float(data["startTime"]),
            duration=float(data["duration"]),
            trim_start=float(data.get("trimStart", 0.0)),
            trim_end=float(data.get("trimEnd", 0.0)),
            original_duration=float(data.get("originalDuration", data["duration"])),
            x=float(data.get("x", 0.0)),
            y=float(data.get("y", 0.0)),
            scale=float(data.get("scale", 1.0)),
            scale_x=float(data.get("scaleX", 1.0)),
            scale_y=float(data.get("scaleY", 1.0)),
            keyframes=data.get("keyframes"),
            keyframe_id_counter=data.get("keyframeIdCounter"),
            mask=data.get("mask"),
            component_props=data.get("componentProps"),
        )

    def to_dict(self) -> dict:
        out: dict[str, Any] = {
            "id": self.id,
            "mediaPath": self.media_path,
            "mediaName": self.media_name,
            "track": self.track,
            "startTime": self.start_time,
            "duration": self.duration,
            "trimStart": self.trim_start,
            "trimEnd": self.trim_end,
            "originalDuration": self.original_duration,
            "x": self.x,
            "y": self.y,
            "scale": self.scale,
            "scaleX": self.scale_x,
            "scaleY": self.scale_y,
        }
        if self.keyframes:
            out["keyframes"] = self.keyframes
        if self.keyframe_id_counter is not None:
            out["keyframeIdCounter"] = self.keyframe_id_counter
        if self.mask:
            out["mask"] = self.mask
        if self.component_props:
            out["componentProps"] = self.component_props
        return out


@dataclass
class ExportSettings:
    width: int = 1920
    height: int = 1080
    fps: float = 30.0
    bitrate: float = 8_000_000

    @classmethod
    def from_dict(cls, data: dict) -> "ExportSettings":
        return cls(
            width=int(data["width"]),
            height=int(data["height"]),
            fps=data["fps"],
            bitrate=data["bitrate"],
        )

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height, "fps": self.fps, "bitrate": self.bitrate}


@dataclass
class ProjectDocument:
    """Persisted project aggregate. Paths inside are project-relative where possible."""

    name: str
    created_at: str
    updated_at: str
    version: int = PROJECT_VERSION
    tracks: list[int] = field(default_factory=lambda: [1, 2])
    track_id_counter: int = 2
    clip_id_counter: int = 0
    export_settings: ExportSettings = field(default_factory=ExportSettings)
    media_files: list[MediaAsset] = field(default_factory=list)
    timeline_clips: list[TimelineClip] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectDocument":
        """Build from a document that already passed structural validation."""
        return cls(
            version=data["version"],
            name=data["name"],
            created_at=data["createdAt"],
            updated_at=data["updatedAt"],
            tracks=list(data["tracks"]),
            track_id_counter=data["trackIdCounter"],
            clip_id_counter=data["clipIdCounter"],
            export_settings=ExportSettings.from_dict(data["exportSettings"]),
            media_files=[MediaAsset.from_dict(m) for m in data["mediaFiles"]],
            timeline_clips=[TimelineClip.from_dict(c) for c in data["timelineClips"]],
        )

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "name": self.name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "tracks": list(self.tracks),
            "trackIdCounter": self.track_id_counter,
            "clipIdCounter": self.clip_id_counter,
            "exportSettings": self.export_settings.to_dict(),
            "mediaFiles": [m.to_dict() for m in self.media_files],
            "timelineClips": [c.to_dict() for c in self.timeline_clips],
        }


def resolve_kind(clip: TimelineClip, assets: list[MediaAsset]) -> str | None:
    """Return the kind of the asset *clip* points at, or None for a dangling reference.

    Clips carry no kind of their own; every render, measure or cascade
    decision goes through this join.
    """
    for asset in assets:
        if asset.path == clip.media_path:
            return asset.kind
    return None


def default_component_props(prop_definitions: dict[str, Any] | None) -> dict[str, Any] | None:
    if not prop_definitions:
        return None
    props = {
        key: definition.get("default")
        for key, definition in prop_definitions.items()
        if isinstance(definition, dict)
    }
    return props or None
