"""Live editor state: the in-memory project graph and the cascades that keep it consistent.

All mutations run synchronously to completion before returning, so nothing
can observe a half-applied cascade. The only work that escapes the call is
file deletion, handed to an AssetDeleter and never awaited.
"""

from __future__ import annotations

import dataclasses
import logging
from datetime import datetime, timezone
from pathlib import Path

from clipdeck.builtin_components import Bundler, install_builtin_component
from clipdeck.bundler import bundle_component
from clipdeck.config import Settings
from clipdeck.model.project import (
    FLEX_DURATION_KINDS,
    ExportSettings,
    MediaAsset,
    ProjectDocument,
    TimelineClip,
    resolve_kind,
)
from clipdeck.model.signals import ProjectSignals
from clipdeck.paths import (
    MEDIA_DIR_NAME,
    managed_media_path,
    to_project_absolute_path,
    to_project_relative_path,
)
from clipdeck.storage import ProjectStorage
from clipdeck.workers.delete_worker import AssetDeleter

logger = logging.getLogger(__name__)

DEFAULT_TRACKS = (1, 2)

# Built-in components have no intrinsic length; this is where a new one starts.
DEFAULT_COMPONENT_DURATION = 5.0

# Fields whose change moves a clip on the timeline and needs an overlap check.
_PLACEMENT_FIELDS = {"track", "start_time", "duration"}


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class EditorState:
    """Project graph plus derived selection/preview/metadata state.

    Counters are watermarks: they hold the highest id ever handed out on
    their axis. A new id is ``counter + 1`` and every insertion leaves
    ``counter = max(counter, new_id)``.
    """

    def __init__(
        self,
        storage: ProjectStorage | None = None,
        deleter: AssetDeleter | None = None,
        media_dir_name: str = MEDIA_DIR_NAME,
    ):
        self.storage = storage
        self.deleter = deleter if deleter is not None else (AssetDeleter(storage) if storage else None)
        self.media_dir_name = media_dir_name
        self.signals = ProjectSignals()
        self.ripple_enabled = False
        self.media_metadata: dict[str, str] = {}
        self.default_export_settings = ExportSettings()
        self.builtin_components_dir = ""
        self._reset_project()

    @classmethod
    def from_settings(cls, settings: Settings) -> "EditorState":
        storage = ProjectStorage(settings.resolved_projects_dir, settings.media_dir_name)
        state = cls(
            storage=storage,
            deleter=AssetDeleter(storage, max_workers=settings.delete_workers),
            media_dir_name=settings.media_dir_name,
        )
        state.default_export_settings = settings.default_export_settings
        state.builtin_components_dir = settings.builtin_components_dir
        return state

    def _reset_project(self) -> None:
        self.project_name: str | None = None
        self.project_dir: str | None = None
        self.project_error: str | None = None
        self.project_warnings: list[str] = []
        self.created_at: str | None = None

        self.media_files: list[MediaAsset] = []
        self.selected_media_index: int | None = None
        self.preview_media_path: str | None = None
        self.preview_media_kind: str | None = None

        self.tracks: list[int] = list(DEFAULT_TRACKS)
        self.track_id_counter = max(DEFAULT_TRACKS)
        self.timeline_clips: list[TimelineClip] = []
        self.selected_clip_ids: list[int] = []
        self.clip_id_counter = 0

        self.export_settings = ExportSettings()
        self.current_time = 0.0

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def selected_clip_id(self) -> int | None:
        return self.selected_clip_ids[-1] if self.selected_clip_ids else None

    def find_clip(self, clip_id: int) -> TimelineClip | None:
        for clip in self.timeline_clips:
            if clip.id == clip_id:
                return clip
        return None

    def find_media(self, path: str) -> MediaAsset | None:
        for media in self.media_files:
            if media.path == path:
                return media
        return None

    def clip_kind(self, clip: TimelineClip) -> str | None:
        return resolve_kind(clip, self.media_files)

    def track_clips(self, track: int) -> list[TimelineClip]:
        return [c for c in self.timeline_clips if c.track == track]

    def has_overlap(
        self, track: int, start_time: float, duration: float, exclude_clip_id: int | None = None
    ) -> bool:
        return any(
            clip.overlaps(start_time, duration)
            for clip in self.track_clips(track)
            if clip.id != exclude_clip_id
        )

    # ------------------------------------------------------------------
    # Media
    # ------------------------------------------------------------------

    def add_media_files(self, files: list[MediaAsset]) -> None:
        existing = {m.path for m in self.media_files}
        for media in files:
            if media.path in existing:
                continue
            self.media_files.append(media)
            existing.add(media.path)
        self.signals.media_changed.emit()

    def select_media(self, index: int | None) -> None:
        if index is not None and not 0 <= index < len(self.media_files):
            return
        self.selected_media_index = index
        self.signals.selection_changed.emit()

    def set_preview_media(self, path: str | None, kind: str | None = None) -> None:
        self.preview_media_path = path
        self.preview_media_kind = kind if path else None
        self.signals.preview_changed.emit()

    def add_builtin_component(self, file_name: str, bundle: Bundler = bundle_component) -> MediaAsset | None:
        """Install a shipped component into the open project and list it as media.

        An asset already registered at the same path is replaced. Returns
        None, with ``project_error`` set, when there is no open project or
        the install fails.
        """
        if self.storage is None or not self.project_name or not self.project_dir:
            self.project_error = "No project open"
            return None
        if not self.builtin_components_dir:
            self.project_error = "No built-in components directory configured"
            return None

        result = install_builtin_component(
            self.builtin_components_dir,
            self.storage.projects_dir,
            self.project_name,
            file_name,
            bundle=bundle,
            media_dir_name=self.media_dir_name,
        )
        if not result.success:
            self.project_error = f"Failed to add {file_name}: {result.error}"
            logger.warning("Cannot add built-in component %s: %s", file_name, result.error)
            return None

        source = Path(file_name)
        media = MediaAsset(
            path=to_project_absolute_path(result.source_path, self.project_dir),
            name=source.stem,
            ext=source.suffix,
            kind="component",
            duration=DEFAULT_COMPONENT_DURATION,
            bundle_path=to_project_absolute_path(result.bundle_path, self.project_dir),
        )
        self.media_files = [m for m in self.media_files if m.path != media.path]
        self.media_files.append(media)
        self.media_metadata.pop(media.path, None)
        self.media_metadata.pop(media.bundle_path, None)
        logger.info("Added built-in component %s to project %s", file_name, self.project_name)
        self.signals.media_changed.emit()
        return media

    def remove_media_file(self, index: int) -> None:
        """Remove the asset at *index* and everything that depends on it.

        Out-of-range indices are a silent no-op, so repeating a removal is
        harmless. Referencing clips go with the asset; selection, preview
        and the metadata cache are repaired before this returns. Project-
        owned files are then queued for deletion in the background.
        """
        if not 0 <= index < len(self.media_files):
            return
        media = self.media_files.pop(index)
        removed_path = media.path

        removed_ids = {c.id for c in self.timeline_clips if c.media_path == removed_path}
        self.timeline_clips = [
            self._clear_media_refs(clip, removed_path)
            for clip in self.timeline_clips
            if clip.media_path != removed_path
        ]
        self.selected_clip_ids = [i for i in self.selected_clip_ids if i not in removed_ids]
        self.selected_media_index = self._shift_media_selection(index)

        if self.preview_media_path == removed_path:
            self.preview_media_path = None
            self.preview_media_kind = None

        for path in (removed_path, media.bundle_path):
            if path:
                self.media_metadata.pop(path, None)

        logger.info("Removed media %s (%d dependent clips)", removed_path, len(removed_ids))
        self._request_deletion(media)

        self.signals.media_changed.emit()
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()
        self.signals.preview_changed.emit()

    def _shift_media_selection(self, removed_index: int) -> int | None:
        selected = self.selected_media_index
        if selected is None or not self.media_files:
            return None
        if selected >= removed_index:
            selected = max(selected - 1, 0)
        return min(selected, len(self.media_files) - 1)

    def _clear_media_refs(self, clip: TimelineClip, removed_path: str) -> TimelineClip:
        """Blank component props of type "media" that point at a removed asset."""
        if not clip.component_props:
            return clip
        owner = self.find_media(clip.media_path)
        definitions = owner.prop_definitions if owner else None
        if not definitions:
            return clip
        props = dict(clip.component_props)
        changed = False
        for key, value in props.items():
            definition = definitions.get(key)
            if isinstance(definition, dict) and definition.get("type") == "media" and value == removed_path:
                props[key] = ""
                changed = True
        return dataclasses.replace(clip, component_props=props) if changed else clip

    def _request_deletion(self, media: MediaAsset) -> None:
        if not self.project_name or not self.project_dir or self.deleter is None:
            return
        # dict.fromkeys: a bundle path equal to the primary path is deleted once.
        for path in dict.fromkeys(p for p in (media.path, media.bundle_path) if p):
            relative = managed_media_path(path, self.project_dir, self.media_dir_name)
            if relative is None:
                logger.debug("Leaving %s in place: not inside the project media directory", path)
                continue
            self.deleter.submit(self.project_name, relative)

    # ------------------------------------------------------------------
    # Tracks
    # ------------------------------------------------------------------

    def add_track(self) -> int:
        new_id = self.track_id_counter + 1
        self.tracks.append(new_id)
        self.track_id_counter = max(self.track_id_counter, new_id)
        self.signals.tracks_changed.emit()
        return new_id

    def remove_track(self, track_id: int) -> None:
        if track_id not in self.tracks:
            return
        self.tracks = [t for t in self.tracks if t != track_id]
        removed_ids = {c.id for c in self.timeline_clips if c.track == track_id}
        self.timeline_clips = [c for c in self.timeline_clips if c.track != track_id]
        self.selected_clip_ids = [i for i in self.selected_clip_ids if i not in removed_ids]
        self.signals.tracks_changed.emit()
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()

    # ------------------------------------------------------------------
    # Clips
    # ------------------------------------------------------------------

    def _insert_clip(self, clip: TimelineClip) -> TimelineClip:
        self.timeline_clips.append(clip)
        self.clip_id_counter = max(self.clip_id_counter, clip.id)
        self.selected_clip_ids = [clip.id]
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()
        return clip

    def _track_end(self, track: int) -> float:
        return max((c.end_time for c in self.track_clips(track)), default=0.0)

    def add_clip(self, media: MediaAsset) -> TimelineClip | None:
        """Append *media* at the end of the first track that can take it.

        Media without a positive duration cannot be placed; returns None.
        """
        if media.duration <= 0:
            logger.warning("Cannot place %s on the timeline: duration is %s", media.path, media.duration)
            return None
        if not self.tracks:
            self.add_track()
        target = self.tracks[0]
        for track in self.tracks:
            if not self.has_overlap(track, self._track_end(track), media.duration):
                target = track
                break
        start = self._track_end(target)
        return self._insert_clip(TimelineClip.for_media(self.clip_id_counter + 1, media, target, start))

    def add_clip_at_time(self, media: MediaAsset, track: int, start_time: float) -> TimelineClip | None:
        """Place *media* at an exact position; None if the track is unknown or the slot is taken."""
        if track not in self.tracks or start_time < 0 or media.duration <= 0:
            return None
        if self.has_overlap(track, start_time, media.duration):
            return None
        return self._insert_clip(TimelineClip.for_media(self.clip_id_counter + 1, media, track, start_time))

    def _ripple_after(self, clips: list[TimelineClip], removed: TimelineClip) -> list[TimelineClip]:
        return [
            dataclasses.replace(c, start_time=c.start_time - removed.duration)
            if c.track == removed.track and c.start_time > removed.start_time
            else c
            for c in clips
        ]

    def remove_clip(self, clip_id: int) -> None:
        removed = self.find_clip(clip_id)
        if removed is None:
            return
        remaining = [c for c in self.timeline_clips if c.id != clip_id]
        if self.ripple_enabled:
            remaining = self._ripple_after(remaining, removed)
        self.timeline_clips = remaining
        self.selected_clip_ids = [i for i in self.selected_clip_ids if i != clip_id]
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()

    def remove_selected_clips(self) -> None:
        if not self.selected_clip_ids:
            return
        doomed = set(self.selected_clip_ids)
        removed = [c for c in self.timeline_clips if c.id in doomed]
        remaining = [c for c in self.timeline_clips if c.id not in doomed]
        if self.ripple_enabled:
            for clip in removed:
                remaining = self._ripple_after(remaining, clip)
        self.timeline_clips = remaining
        self.selected_clip_ids = []
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()

    def update_clip(self, clip_id: int, **changes) -> bool:
        """Apply attribute *changes* to a clip.

        Placement changes are refused (False) when they would overlap another
        clip, move to an unknown track, start before zero or leave the clip
        without a positive duration.

        Raises:
            ValueError: If *changes* tries to alter the clip id.
            TypeError: If *changes* names a field TimelineClip does not have.
        """
        if "id" in changes:
            raise ValueError("Clip ids cannot be changed")
        clip = self.find_clip(clip_id)
        if clip is None:
            return False
        updated = dataclasses.replace(clip, **changes)
        if _PLACEMENT_FIELDS & changes.keys():
            if updated.track not in self.tracks:
                return False
            if updated.start_time < 0 or updated.duration <= 0:
                return False
            if self.has_overlap(updated.track, updated.start_time, updated.duration, exclude_clip_id=clip_id):
                return False
        self.timeline_clips = [updated if c.id == clip_id else c for c in self.timeline_clips]
        self.signals.clips_changed.emit()
        return True

    def select_clip(self, clip_id: int | None, toggle: bool = False) -> None:
        if clip_id is None:
            self.selected_clip_ids = []
        elif self.find_clip(clip_id) is None:
            return
        elif toggle and clip_id in self.selected_clip_ids:
            self.selected_clip_ids = [i for i in self.selected_clip_ids if i != clip_id]
        elif toggle:
            self.selected_clip_ids = [*self.selected_clip_ids, clip_id]
        else:
            self.selected_clip_ids = [clip_id]
        self.signals.selection_changed.emit()

    def set_current_time(self, time: float) -> None:
        self.current_time = max(0.0, time)

    def split_clip_at_playhead(self) -> TimelineClip | None:
        """Split the selected clip at the playhead; returns the new right-hand clip.

        The playhead must be strictly inside the clip. Component clips are
        flex-duration: both halves become untrimmed clips of their own
        length. Media clips keep pointing into the same source, so the
        halves split the trim instead.
        """
        clip = self.find_clip(self.selected_clip_id) if self.selected_clip_id is not None else None
        if clip is None:
            return None
        at = self.current_time
        if at <= clip.start_time or at >= clip.end_time:
            return None

        left_duration = at - clip.start_time
        right_duration = clip.end_time - at
        new_id = self.clip_id_counter + 1

        if self.clip_kind(clip) in FLEX_DURATION_KINDS:
            left = dataclasses.replace(
                clip, duration=left_duration, original_duration=left_duration, trim_start=0.0, trim_end=0.0
            )
            right = dataclasses.replace(
                clip, id=new_id, start_time=at, duration=right_duration,
                original_duration=right_duration, trim_start=0.0, trim_end=0.0,
            )
        else:
            left = dataclasses.replace(
                clip,
                duration=left_duration,
                trim_end=clip.original_duration - clip.trim_start - left_duration,
            )
            right = dataclasses.replace(
                clip, id=new_id, start_time=at, duration=right_duration,
                trim_start=clip.trim_start + left_duration,
            )

        self.timeline_clips = [left if c.id == clip.id else c for c in self.timeline_clips]
        return self._insert_clip(right)

    # ------------------------------------------------------------------
    # Media metadata cache
    # ------------------------------------------------------------------

    def load_media_metadata(self, media_path: str) -> str | None:
        if self.storage is None:
            return None
        try:
            content = self.storage.read_media_metadata(media_path)
        except OSError as e:
            logger.warning("Cannot read metadata for %s: %s", media_path, e)
            return None
        self.media_metadata[media_path] = content
        self.signals.metadata_changed.emit(media_path)
        return content

    def save_media_metadata(self, media_path: str, content: str) -> bool:
        if self.storage is None:
            return False
        result = self.storage.write_media_metadata(media_path, content)
        if not result.success:
            logger.warning("Cannot write metadata for %s: %s", media_path, result.error)
            return False
        self.media_metadata[media_path] = content
        self.signals.metadata_changed.emit(media_path)
        return True

    # ------------------------------------------------------------------
    # Document conversion and project lifecycle
    # ------------------------------------------------------------------

    def _remap_media_props(self, clip: TimelineClip, media: MediaAsset | None, convert) -> dict | None:
        if not clip.component_props or not media or not media.prop_definitions:
            return clip.component_props
        props = dict(clip.component_props)
        for key, definition in media.prop_definitions.items():
            value = props.get(key)
            if isinstance(definition, dict) and definition.get("type") == "media" and isinstance(value, str) and value:
                props[key] = convert(value)
        return props

    def load_document(self, document: ProjectDocument, project_name: str, project_dir: str | Path) -> None:
        """Replace the live graph with *document*, resolving its paths against *project_dir*.

        Counters are raised to the highest id actually present, so documents
        edited by hand with stale counters cannot cause id reuse.
        """
        directory = str(project_dir)

        def absolute(path: str) -> str:
            return to_project_absolute_path(path, directory)

        self._reset_project()
        self.project_name = project_name
        self.project_dir = directory
        self.created_at = document.created_at
        self.media_files = [
            dataclasses.replace(
                m,
                path=absolute(m.path),
                bundle_path=absolute(m.bundle_path) if m.bundle_path else None,
            )
            for m in document.media_files
        ]
        clips = []
        for clip in document.timeline_clips:
            media_path = absolute(clip.media_path)
            props = self._remap_media_props(clip, self.find_media(media_path), absolute)
            clips.append(dataclasses.replace(clip, media_path=media_path, component_props=props))
        self.timeline_clips = clips

        self.tracks = list(document.tracks)
        self.track_id_counter = max(
            [document.track_id_counter, *self.tracks, *(c.track for c in clips)]
        )
        self.clip_id_counter = max([document.clip_id_counter, *(c.id for c in clips)])
        self.export_settings = document.export_settings
        self.media_metadata = {}

        self.signals.project_loaded.emit(project_name)
        self.signals.media_changed.emit()
        self.signals.tracks_changed.emit()
        self.signals.clips_changed.emit()
        self.signals.selection_changed.emit()

    def to_document(self) -> ProjectDocument:
        """Snapshot of the live graph with paths made project-relative where possible."""
        directory = self.project_dir

        def relative(path: str) -> str:
            return to_project_relative_path(path, directory) or path

        media_files = [
            dataclasses.replace(
                m,
                path=relative(m.path),
                bundle_path=relative(m.bundle_path) if m.bundle_path else None,
            )
            for m in self.media_files
        ]
        clips = [
            dataclasses.replace(
                c,
                media_path=relative(c.media_path),
                component_props=self._remap_media_props(c, self.find_media(c.media_path), relative),
            )
            for c in self.timeline_clips
        ]
        now = utc_timestamp()
        return ProjectDocument(
            name=self.project_name or "untitled",
            created_at=self.created_at or now,
            updated_at=now,
            tracks=list(self.tracks),
            track_id_counter=self.track_id_counter,
            clip_id_counter=self.clip_id_counter,
            export_settings=dataclasses.replace(self.export_settings),
            media_files=media_files,
            timeline_clips=clips,
        )

    def open_project(self, name: str) -> bool:
        if self.storage is None:
            raise RuntimeError("No project storage configured")
        result = self.storage.load_project(name)
        if not result.success or result.data is None:
            self.project_error = result.error or "Failed to load project"
            logger.warning("Cannot open project %s: %s", name, self.project_error)
            return False
        self.load_document(ProjectDocument.from_dict(result.data), name, self.storage.project_dir(name))
        self.project_warnings = list(result.warnings)
        for warning in self.project_warnings:
            logger.info("Project %s: %s", name, warning)
        return True

    def create_project(self, name: str) -> bool:
        if self.storage is None:
            raise RuntimeError("No project storage configured")
        result = self.storage.create_project(name)
        if not result.success:
            self.project_error = result.error or "Failed to create project"
            return False
        now = utc_timestamp()
        document = ProjectDocument(
            name=name,
            created_at=now,
            updated_at=now,
            export_settings=dataclasses.replace(self.default_export_settings),
        )
        self.load_document(document, name, self.storage.project_dir(name))
        return self.save_project()

    def save_project(self) -> bool:
        if self.storage is None or not self.project_name:
            return False
        result = self.storage.save_project(self.project_name, self.to_document().to_dict())
        if not result.success:
            self.project_error = f"Save failed: {result.error}"
            logger.error("Saving project %s failed: %s", self.project_name, result.error)
            return False
        return True

    def close_project(self) -> None:
        self._reset_project()
        self.media_metadata = {}
        self.signals.project_closed.emit()
