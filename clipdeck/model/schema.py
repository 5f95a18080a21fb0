"""pydantic schema of the persisted project document (structural rules only)."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, Strict, StrictBool, StrictStr, field_validator

# Strict: bools and numeric strings are not numbers. allow_inf_nan is off on every model.
Number = Annotated[float, Strict()]
NonNegative = Annotated[float, Strict(), Field(ge=0)]
Positive = Annotated[float, Strict(), Field(gt=0)]
Fraction = Annotated[float, Strict(), Field(ge=0, le=1)]
NonNegativeInt = Annotated[int, Strict(), Field(ge=0)]
PositiveInt = Annotated[int, Strict(), Field(gt=0)]
NonEmptyStr = Annotated[str, Strict(), Field(min_length=1)]

MediaType = Literal["video", "audio", "component"]
MaskShape = Literal["none", "rectangle", "ellipse"]
EasingType = Literal["linear", "ease-in", "ease-out", "ease-in-out"]
AnimatableProp = Literal[
    "x", "y", "scale", "scaleX", "scaleY",
    "maskCenterX", "maskCenterY", "maskWidth", "maskHeight", "maskFeather",
]

_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2}(\.\d+)?)?(Z|[+-]\d{2}:?\d{2})?$"
)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date-time; a date without a time part is rejected."""
    if not _ISO_DATETIME.match(value):
        raise ValueError(f"invalid ISO-8601 date-time: {value!r}")
    return datetime.fromisoformat(value)


class _Schema(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)


class KeyframeSchema(_Schema):
    id: NonNegativeInt
    time: NonNegative
    value: Number
    easing: EasingType


class ClipMaskSchema(_Schema):
    shape: MaskShape
    center_x: Fraction = Field(alias="centerX")
    center_y: Fraction = Field(alias="centerY")
    width: Fraction
    height: Fraction
    rotation: Number
    feather: NonNegative
    border_radius: Annotated[float, Strict(), Field(ge=0, le=0.5)] = Field(alias="borderRadius")
    invert: StrictBool


class MediaFileSchema(_Schema):
    path: NonEmptyStr
    name: NonEmptyStr
    ext: NonEmptyStr
    type: MediaType
    duration: NonNegative
    bundle_path: StrictStr | None = Field(default=None, alias="bundlePath")


class TimelineClipSchema(_Schema):
    id: NonNegativeInt
    media_path: NonEmptyStr = Field(alias="mediaPath")
    media_name: NonEmptyStr = Field(alias="mediaName")
    # Older projects still carry a kind tag on the clip; it is ignored.
    type: MediaType | None = None
    track: NonNegativeInt
    start_time: NonNegative = Field(alias="startTime")
    duration: Positive
    trim_start: NonNegative = Field(alias="trimStart")
    trim_end: NonNegative = Field(alias="trimEnd")
    original_duration: Positive = Field(alias="originalDuration")
    x: Number
    y: Number
    scale: Number
    scale_x: Number = Field(alias="scaleX")
    scale_y: Number = Field(alias="scaleY")
    keyframes: dict[AnimatableProp, list[KeyframeSchema]] | None = None
    keyframe_id_counter: NonNegativeInt | None = Field(default=None, alias="keyframeIdCounter")
    mask: ClipMaskSchema | None = None
    component_props: dict[str, Any] | None = Field(default=None, alias="componentProps")


class ExportSettingsSchema(_Schema):
    width: PositiveInt
    height: PositiveInt
    fps: Positive
    bitrate: Positive


class ProjectSchema(_Schema):
    version: PositiveInt
    name: NonEmptyStr
    created_at: StrictStr = Field(alias="createdAt")
    updated_at: StrictStr = Field(alias="updatedAt")
    tracks: list[NonNegativeInt]
    track_id_counter: NonNegativeInt = Field(alias="trackIdCounter")
    clip_id_counter: NonNegativeInt = Field(alias="clipIdCounter")
    export_settings: ExportSettingsSchema = Field(alias="exportSettings")
    media_files: list[MediaFileSchema] = Field(alias="mediaFiles")
    timeline_clips: list[TimelineClipSchema] = Field(alias="timelineClips")

    @field_validator("created_at", "updated_at")
    @classmethod
    def _check_datetime(cls, value: str) -> str:
        parse_iso_datetime(value)
        return value
