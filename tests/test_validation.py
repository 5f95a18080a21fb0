"""Tests for project document validation."""

import pytest

from clipdeck.validation import validate_project


def _overlap_errors(report):
    return [e for e in report.integrity_errors if "overlap" in e]


# ---------------------------------------------------------------------------
# Valid documents
# ---------------------------------------------------------------------------

class TestValidProjects:
    def test_minimal_project(self, make_project):
        report = validate_project(make_project(tracks=[], mediaFiles=[], timelineClips=[]))
        assert report.structure_errors == []
        assert report.integrity_errors == []
        assert report.warnings == []
        assert report.is_valid

    def test_full_project(self, make_project):
        report = validate_project(make_project())
        assert report.structure_errors == []
        assert report.integrity_errors == []

    def test_keyframes_and_mask_accepted(self, make_project):
        data = make_project()
        data["timelineClips"][0]["keyframes"] = {
            "x": [
                {"id": 0, "time": 0, "value": 0, "easing": "linear"},
                {"id": 1, "time": 1, "value": 100, "easing": "ease-in"},
            ],
        }
        data["timelineClips"][0]["keyframeIdCounter"] = 2
        data["timelineClips"][0]["mask"] = {
            "shape": "ellipse", "centerX": 0.5, "centerY": 0.5, "width": 0.8, "height": 0.8,
            "rotation": 0, "feather": 5, "borderRadius": 0, "invert": False,
        }
        report = validate_project(data)
        assert report.structure_errors == []
        assert report.integrity_errors == []

    def test_legacy_clip_type_ignored(self, make_project):
        data = make_project()
        data["timelineClips"][0]["type"] = "video"
        assert validate_project(data).is_valid

    def test_extra_fields_ignored(self, make_project):
        data = make_project(somethingNew={"a": 1})
        assert validate_project(data).is_valid

    def test_datetime_with_offset(self, make_project):
        data = make_project(createdAt="2024-01-01T10:00:00.123+02:00")
        assert validate_project(data).structure_errors == []

    def test_counter_equal_to_max_is_not_stale(self, make_project):
        report = validate_project(make_project(clipIdCounter=2, trackIdCounter=2))
        assert report.integrity_errors == []


# ---------------------------------------------------------------------------
# Totality and determinism
# ---------------------------------------------------------------------------

class TestTotality:
    @pytest.mark.parametrize(
        "document",
        [
            {},
            [],
            None,
            "not an object",
            42,
            {"mediaFiles": [None], "timelineClips": [None, 5, "x"]},
            {"mediaFiles": None, "timelineClips": None, "tracks": None},
            {"mediaFiles": [{"path": None}], "timelineClips": [{"id": None, "track": None}]},
            {"exportSettings": None, "tracks": [None, "a", 1.5, True]},
        ],
    )
    def test_never_raises(self, document):
        report = validate_project(document)
        assert report.structure_errors

    def test_root_error_label(self):
        report = validate_project("garbage")
        assert report.structure_errors[0].startswith("(root):")

    def test_idempotent(self, make_project, make_clip):
        data = make_project(
            clipIdCounter=0,
            timelineClips=[make_clip(1, media_path="nope"), None, make_clip(2, start=1)],
        )
        first = validate_project(data)
        second = validate_project(data)
        assert first == second

    def test_null_entries_reported_by_index(self, make_project):
        data = make_project()
        data["mediaFiles"].insert(0, None)
        data["timelineClips"].append(None)
        report = validate_project(data)
        assert any(e.startswith("mediaFiles.0:") for e in report.structure_errors)
        assert any(e.startswith("timelineClips.2:") for e in report.structure_errors)
        # The sound entries are still cross-checked normally
        assert report.integrity_errors == []


# ---------------------------------------------------------------------------
# Structure errors
# ---------------------------------------------------------------------------

class TestStructureErrors:
    def test_missing_version_and_bad_date(self, make_project):
        data = make_project(createdAt="nope")
        del data["version"]
        report = validate_project(data)
        assert report.structure_errors[0].startswith("version:")
        assert any(e.startswith("createdAt:") for e in report.structure_errors)

    def test_missing_updated_at(self, make_project):
        data = make_project()
        del data["updatedAt"]
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("updatedAt:")]

    def test_date_without_time_rejected(self, make_project):
        errors = validate_project(make_project(updatedAt="2024-01-01")).structure_errors
        assert [e for e in errors if e.startswith("updatedAt:")]

    def test_empty_name(self, make_project):
        errors = validate_project(make_project(name="")).structure_errors
        assert [e for e in errors if e.startswith("name:")]

    def test_non_string_name(self, make_project):
        assert validate_project(make_project(name=123)).structure_errors

    def test_bool_is_not_a_number(self, make_project):
        errors = validate_project(make_project(version=True)).structure_errors
        assert [e for e in errors if e.startswith("version:")]

    def test_numeric_string_is_not_a_number(self, make_project):
        assert validate_project(make_project(version="1")).structure_errors

    def test_nan_duration_rejected(self, make_project):
        data = make_project()
        data["timelineClips"][0]["duration"] = float("nan")
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("timelineClips.0.duration:")]

    def test_non_list_containers(self, make_project):
        report = validate_project(make_project(tracks="nope", mediaFiles={}, timelineClips=3))
        for name in ("tracks", "mediaFiles", "timelineClips"):
            assert [e for e in report.structure_errors if e.startswith(f"{name}:")]
        assert report.integrity_errors == []

    def test_malformed_media_list_does_not_block_clip_checks(self, make_project):
        report = validate_project(make_project(mediaFiles="broken"))
        assert [e for e in report.structure_errors if e.startswith("mediaFiles:")]
        # Clips can no longer resolve their media and are reported, not skipped
        assert len([e for e in report.integrity_errors if "not found in mediaFiles" in e]) == 2

    @pytest.mark.parametrize("field", ["width", "height", "fps", "bitrate"])
    def test_export_settings_must_be_positive(self, make_project, field):
        data = make_project()
        data["exportSettings"][field] = -1
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith(f"exportSettings.{field}:")]

    def test_export_settings_missing_field(self, make_project):
        data = make_project()
        del data["exportSettings"]["fps"]
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("exportSettings.fps:")]

    def test_negative_clip_duration(self, make_project):
        data = make_project()
        data["timelineClips"][0]["duration"] = -1
        assert validate_project(data).structure_errors

    def test_negative_track_rejected(self, make_project):
        data = make_project(tracks=[1, -2])
        data["timelineClips"][1]["track"] = -2
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("tracks.1:")]
        assert [e for e in errors if e.startswith("timelineClips.1.track:")]

    def test_empty_media_path(self, make_project):
        data = make_project()
        data["timelineClips"][0]["mediaPath"] = ""
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("timelineClips.0.mediaPath:")]

    def test_invalid_media_type(self, make_project):
        data = make_project()
        data["mediaFiles"][0]["type"] = "image"
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("mediaFiles.0.type:")]

    def test_invalid_keyframe_easing(self, make_project):
        data = make_project()
        data["timelineClips"][0]["keyframes"] = {"x": [{"id": 0, "time": 0, "value": 0, "easing": "bounce"}]}
        assert validate_project(data).structure_errors

    def test_mask_out_of_range(self, make_project):
        data = make_project()
        data["timelineClips"][0]["mask"] = {
            "shape": "rectangle", "centerX": 1.5, "centerY": 0.5, "width": 1, "height": 1,
            "rotation": 0, "feather": 0, "borderRadius": 0, "invert": False,
        }
        errors = validate_project(data).structure_errors
        assert [e for e in errors if e.startswith("timelineClips.0.mask.centerX:")]

    def test_malformed_clip_skipped_by_integrity_checks(self, make_project):
        data = make_project()
        clip = data["timelineClips"][0]
        clip["mediaPath"] = "media/missing.mp4"
        del clip["x"]
        report = validate_project(data)
        assert [e for e in report.structure_errors if e.startswith("timelineClips.0.x:")]
        assert report.integrity_errors == []


# ---------------------------------------------------------------------------
# Integrity errors
# ---------------------------------------------------------------------------

class TestIntegrityErrors:
    def test_dangling_media_path(self, make_project):
        data = make_project()
        data["timelineClips"][0]["mediaPath"] = "media/nonexistent.mp4"
        errors = validate_project(data).integrity_errors
        assert len(errors) == 1
        assert "id 1" in errors[0]
        assert "media/nonexistent.mp4" in errors[0]

    def test_track_not_in_tracks(self, make_project):
        data = make_project(trackIdCounter=99)
        data["timelineClips"][0]["track"] = 99
        errors = validate_project(data).integrity_errors
        assert any("track 99 not found in tracks" in e for e in errors)

    def test_duplicate_track(self, make_project):
        errors = validate_project(make_project(tracks=[1, 2, 2])).integrity_errors
        assert errors == ["tracks contains duplicate track id: 2"]

    def test_duplicate_clip_ids(self, make_project):
        data = make_project()
        data["timelineClips"][1]["id"] = 1
        errors = validate_project(data).integrity_errors
        assert any("id 1 is duplicated" in e for e in errors)

    def test_stale_clip_counter(self, make_project):
        errors = validate_project(make_project(clipIdCounter=1)).integrity_errors
        assert errors == ["clipIdCounter (1) < max timelineClips[].id (2)"]

    def test_stale_track_counter(self, make_project):
        errors = validate_project(make_project(trackIdCounter=1)).integrity_errors
        assert errors == ["trackIdCounter (1) < max track id (2)"]

    def test_both_counters_stale_one_error_each(self, make_project):
        errors = validate_project(make_project(trackIdCounter=0, clipIdCounter=0)).integrity_errors
        assert len([e for e in errors if e.startswith("trackIdCounter")]) == 1
        assert len([e for e in errors if e.startswith("clipIdCounter")]) == 1

    def test_trims_exceed_original_duration(self, make_project):
        data = make_project()
        data["timelineClips"][0].update(trimStart=6, trimEnd=6)
        errors = validate_project(data).integrity_errors
        assert any("trimStart (6" in e and "originalDuration (10" in e for e in errors)

    def test_duration_exceeds_trimmed_source(self, make_project):
        data = make_project()
        data["timelineClips"][0].update(trimStart=6, duration=5)
        errors = validate_project(data).integrity_errors
        assert len(errors) == 1
        assert "duration (5" in errors[0]

    def test_keyframe_counter_stale(self, make_project):
        data = make_project()
        data["timelineClips"][0]["keyframes"] = {"x": [{"id": 4, "time": 0, "value": 0, "easing": "linear"}]}
        data["timelineClips"][0]["keyframeIdCounter"] = 3
        errors = validate_project(data).integrity_errors
        assert any("keyframeIdCounter (3) < max keyframe id (4)" in e for e in errors)

    def test_errors_follow_document_order(self, make_project):
        data = make_project()
        data["timelineClips"][0]["mediaPath"] = "media/a.mp4"
        data["timelineClips"][1]["mediaPath"] = "media/b.mp4"
        errors = validate_project(data).integrity_errors
        assert len(errors) == 2
        assert errors[0].startswith("timelineClips[0]")
        assert errors[1].startswith("timelineClips[1]")


class TestOverlapDetection:
    def test_touching_clips_do_not_overlap(self, make_project, make_clip):
        data = make_project(timelineClips=[make_clip(1, start=0, duration=1), make_clip(2, start=1, duration=1)])
        report = validate_project(data)
        assert _overlap_errors(report) == []
        assert report.is_valid

    def test_overlapping_clips(self, make_project, make_clip):
        data = make_project(timelineClips=[make_clip(1, start=0, duration=2), make_clip(2, start=1, duration=2)])
        errors = _overlap_errors(validate_project(data))
        assert len(errors) == 1
        assert errors[0].startswith("Track 1:")
        assert "clips 1 " in errors[0]
        assert "and 2 " in errors[0]

    def test_different_tracks_do_not_overlap(self, make_project, make_clip):
        data = make_project(timelineClips=[make_clip(1, track=1, duration=2), make_clip(2, track=2, duration=2)])
        assert _overlap_errors(validate_project(data)) == []

    def test_long_clip_overlaps_non_adjacent_clip(self, make_project, make_clip):
        data = make_project(
            clipIdCounter=3,
            timelineClips=[
                make_clip(1, start=0, duration=10, originalDuration=10),
                make_clip(2, start=1, duration=1),
                make_clip(3, start=5, duration=1),
            ],
        )
        errors = _overlap_errors(validate_project(data))
        assert len(errors) == 2
        assert all("clips 1 " in e for e in errors)

    def test_unsorted_input(self, make_project, make_clip):
        data = make_project(timelineClips=[make_clip(2, start=3, duration=2), make_clip(1, start=0, duration=4)])
        errors = _overlap_errors(validate_project(data))
        assert len(errors) == 1
        assert "clips 1 " in errors[0]


# ---------------------------------------------------------------------------
# Warnings
# ---------------------------------------------------------------------------

class TestWarnings:
    def test_no_disk_checks_without_project_dir(self, make_project):
        assert validate_project(make_project()).warnings == []

    def test_missing_media_on_disk(self, make_project, tmp_path):
        report = validate_project(make_project(), tmp_path)
        assert report.warnings == ["Media file missing on disk: media/video.mp4"]
        assert report.is_valid

    def test_media_present_on_disk(self, make_project, tmp_path):
        (tmp_path / "media").mkdir()
        (tmp_path / "media" / "video.mp4").write_bytes(b"\x00")
        assert validate_project(make_project(), tmp_path).warnings == []

    def test_directory_in_place_of_media_file(self, make_project, tmp_path):
        (tmp_path / "media" / "video.mp4").mkdir(parents=True)
        report = validate_project(make_project(), tmp_path)
        assert report.warnings == ["Media file missing on disk: media/video.mp4"]

    def test_component_missing_bundle_path(self, make_project):
        data = make_project(timelineClips=[], clipIdCounter=0)
        data["mediaFiles"].append(
            {"path": "media/Title.tsx", "name": "Title", "ext": ".tsx", "type": "component", "duration": 5}
        )
        assert validate_project(data).warnings == ["component media missing bundlePath: media/Title.tsx"]

    def test_component_bundle_absent_on_disk(self, make_project, tmp_path):
        media = tmp_path / "media"
        media.mkdir()
        (media / "video.mp4").write_bytes(b"\x00")
        (media / "Title.tsx").write_text("export default () => null")
        data = make_project()
        data["mediaFiles"].append({
            "path": "media/Title.tsx", "name": "Title", "ext": ".tsx", "type": "component",
            "duration": 5, "bundlePath": "media/Title.component.js",
        })
        warnings = validate_project(data, tmp_path).warnings
        assert len(warnings) == 1
        assert "media/Title.component.js" in warnings[0]

    def test_duplicate_media_path(self, make_project):
        data = make_project()
        data["mediaFiles"].append(dict(data["mediaFiles"][0]))
        assert validate_project(data).warnings == ["mediaFiles contains duplicate path: media/video.mp4"]

    def test_keyframe_beyond_clip(self, make_project):
        data = make_project()
        data["timelineClips"][0]["keyframes"] = {"y": [{"id": 0, "time": 9, "value": 0, "easing": "linear"}]}
        warnings = validate_project(data).warnings
        assert len(warnings) == 1
        assert "keyframe time 9" in warnings[0]

    def test_warnings_in_document_order(self, make_project, tmp_path):
        data = make_project(timelineClips=[], clipIdCounter=0)
        data["mediaFiles"] = [
            {"path": "media/b.mp4", "name": "b", "ext": ".mp4", "type": "video", "duration": 1},
            {"path": "media/a.mp4", "name": "a", "ext": ".mp4", "type": "video", "duration": 1},
        ]
        warnings = validate_project(data, tmp_path).warnings
        assert warnings == [
            "Media file missing on disk: media/b.mp4",
            "Media file missing on disk: media/a.mp4",
        ]
