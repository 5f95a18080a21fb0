"""Project document validation: structure, referential integrity, disk warnings.

``validate_project`` accepts any parsed JSON value. Shape problems are
reported by the pydantic schema in ``clipdeck.model.schema``; everything
after that only looks at entries that passed the schema on their own, so a
``null`` or half-written clip is reported once and then skipped rather than
dereferenced.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import BaseModel, ValidationError

from clipdeck.model.schema import ProjectSchema, TimelineClipSchema

# Float slack for "duration fits inside the trimmed source" comparisons.
DURATION_EPSILON = 1e-9


@dataclass
class ValidationReport:
    structure_errors: list[str] = field(default_factory=list)
    integrity_errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.structure_errors) + len(self.integrity_errors)

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0


def format_location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "(root)"


def structure_errors(document: object) -> list[str]:
    try:
        ProjectSchema.model_validate(document)
    except ValidationError as exc:
        return [f"{format_location(err['loc'])}: {err['msg']}" for err in exc.errors()]
    return []


def _as_list(value: object) -> list:
    return value if isinstance(value, list) else []


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _sound_entries(items: list, schema: type[BaseModel]) -> list[tuple[int, BaseModel]]:
    """(index, parsed entry) for every list element that passes *schema* by itself."""
    sound = []
    for index, item in enumerate(items):
        try:
            sound.append((index, schema.model_validate(item)))
        except ValidationError:
            continue
    return sound


def _exists_under(project_dir: Path, path: str) -> bool:
    try:
        return (project_dir / path).is_file()
    except (OSError, ValueError):
        return False


def _check_media(media_files: list, project_dir: Path | None, report: ValidationReport) -> None:
    seen: set[str] = set()
    for item in media_files:
        if not isinstance(item, dict):
            continue
        path = item.get("path")
        if not isinstance(path, str) or not path:
            continue
        if path in seen:
            report.warnings.append(f"mediaFiles contains duplicate path: {path}")
        seen.add(path)

        if project_dir is not None and not _exists_under(project_dir, path):
            report.warnings.append(f"Media file missing on disk: {path}")

        if item.get("type") != "component":
            continue
        bundle_path = item.get("bundlePath")
        if not isinstance(bundle_path, str) or not bundle_path:
            report.warnings.append(f"component media missing bundlePath: {path}")
        elif project_dir is not None and not _exists_under(project_dir, bundle_path):
            report.warnings.append(f"Component bundle missing on disk: {bundle_path} (for {path})")


def _check_clip(
    index: int,
    clip: TimelineClipSchema,
    media_paths: set[str],
    track_ids: set[int] | None,
    report: ValidationReport,
) -> None:
    label = f"timelineClips[{index}] (id {clip.id})"

    if clip.media_path not in media_paths:
        report.integrity_errors.append(f'{label}: mediaPath "{clip.media_path}" not found in mediaFiles')

    if track_ids is not None and clip.track not in track_ids:
        report.integrity_errors.append(f"{label}: track {clip.track} not found in tracks")

    trimmed = clip.trim_start + clip.trim_end
    if trimmed > clip.original_duration:
        report.integrity_errors.append(
            f"{label}: trimStart ({clip.trim_start}) + trimEnd ({clip.trim_end}) "
            f"> originalDuration ({clip.original_duration})"
        )
    else:
        max_visible = clip.original_duration - trimmed
        if clip.duration > max_visible + DURATION_EPSILON:
            report.integrity_errors.append(
                f"{label}: duration ({clip.duration}) > originalDuration - trimStart - trimEnd ({max_visible})"
            )

    if not clip.keyframes:
        return
    for prop, keyframes in clip.keyframes.items():
        ids: set[int] = set()
        for kf in keyframes:
            if kf.id in ids:
                report.warnings.append(f"{label}.keyframes.{prop}: duplicated keyframe id {kf.id}")
            ids.add(kf.id)
            if kf.time > clip.duration:
                report.warnings.append(
                    f"{label}.keyframes.{prop}: keyframe time {kf.time} > clip duration {clip.duration}"
                )
        if clip.keyframe_id_counter is not None and ids and clip.keyframe_id_counter < max(ids):
            report.integrity_errors.append(
                f"{label}.keyframeIdCounter ({clip.keyframe_id_counter}) < max keyframe id ({max(ids)}) in {prop}"
            )


def find_overlaps(clips: list[TimelineClipSchema]) -> list[tuple[int, TimelineClipSchema, TimelineClipSchema]]:
    """(track, earlier, later) for each clip that starts before an earlier one on its track ends.

    Spans are half-open, so a clip starting exactly where another ends is fine.
    """
    by_track: dict[int, list[TimelineClipSchema]] = {}
    for clip in clips:
        by_track.setdefault(clip.track, []).append(clip)

    overlaps = []
    for track, track_clips in by_track.items():
        ordered = sorted(track_clips, key=lambda c: c.start_time)
        latest = ordered[0]
        for clip in ordered[1:]:
            if clip.start_time < latest.start_time + latest.duration:
                overlaps.append((track, latest, clip))
            if clip.start_time + clip.duration > latest.start_time + latest.duration:
                latest = clip
    return overlaps


def validate_project(document: object, project_dir: str | Path | None = None) -> ValidationReport:
    """Validate a parsed project document. Never raises.

    Args:
        document: Any parsed JSON value.
        project_dir: Directory the document's relative media paths are
            resolved against for the on-disk warnings. Disk is not touched
            when omitted.

    Returns:
        ValidationReport whose three lists follow document order.
    """
    report = ValidationReport(structure_errors=structure_errors(document))
    if not isinstance(document, dict):
        return report

    base_dir = Path(project_dir) if project_dir else None
    media_files = _as_list(document.get("mediaFiles"))
    raw_tracks = document.get("tracks")

    _check_media(media_files, base_dir, report)

    media_paths = {
        item["path"]
        for item in media_files
        if isinstance(item, dict) and isinstance(item.get("path"), str) and item["path"]
    }

    track_ids: set[int] | None = None
    if isinstance(raw_tracks, list):
        track_ids = set()
        for track in raw_tracks:
            if not _is_int(track):
                continue
            if track in track_ids:
                report.integrity_errors.append(f"tracks contains duplicate track id: {track}")
            track_ids.add(track)

    sound_clips = _sound_entries(_as_list(document.get("timelineClips")), TimelineClipSchema)
    clips = [clip for _, clip in sound_clips]

    # Counters are watermarks (max id ever assigned), so equality is correct.
    track_counter = document.get("trackIdCounter")
    referenced_tracks = (track_ids or set()) | {clip.track for clip in clips}
    if _is_int(track_counter) and referenced_tracks:
        max_track = max(referenced_tracks)
        if track_counter < max_track:
            report.integrity_errors.append(f"trackIdCounter ({track_counter}) < max track id ({max_track})")

    clip_counter = document.get("clipIdCounter")
    if _is_int(clip_counter) and clips:
        max_clip_id = max(clip.id for clip in clips)
        if clip_counter < max_clip_id:
            report.integrity_errors.append(f"clipIdCounter ({clip_counter}) < max timelineClips[].id ({max_clip_id})")

    seen_ids: set[int] = set()
    for index, clip in sound_clips:
        if clip.id in seen_ids:
            report.integrity_errors.append(f"timelineClips[{index}].id {clip.id} is duplicated")
        seen_ids.add(clip.id)
        _check_clip(index, clip, media_paths, track_ids, report)

    for track, earlier, later in find_overlaps(clips):
        report.integrity_errors.append(
            f"Track {track}: clips {earlier.id} [{earlier.start_time}, {earlier.start_time + earlier.duration}) "
            f"and {later.id} [{later.start_time}, {later.start_time + later.duration}) overlap"
        )

    return report
