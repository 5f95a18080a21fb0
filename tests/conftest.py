"""Shared test fixtures: project documents, editor state, offscreen Qt setup."""

import copy
import os
from unittest.mock import MagicMock

import pytest

# Force offscreen rendering for headless CI
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

PROJECT_DIR = "/tmp/projects/p1"


def _clip(clip_id, media_path="media/video.mp4", track=1, start=0.0, duration=5.0, **extra):
    clip = {
        "id": clip_id,
        "mediaPath": media_path,
        "mediaName": media_path.rsplit("/", 1)[-1],
        "track": track,
        "startTime": start,
        "duration": duration,
        "trimStart": 0,
        "trimEnd": 0,
        "originalDuration": 10,
        "x": 0,
        "y": 0,
        "scale": 1,
        "scaleX": 1,
        "scaleY": 1,
    }
    clip.update(extra)
    return clip


VALID_PROJECT = {
    "version": 1,
    "name": "test-project",
    "createdAt": "2024-01-01T00:00:00Z",
    "updatedAt": "2024-01-01T00:00:00Z",
    "tracks": [1, 2],
    "trackIdCounter": 2,
    "clipIdCounter": 2,
    "exportSettings": {"width": 1920, "height": 1080, "fps": 30, "bitrate": 5000000},
    "mediaFiles": [
        {"path": "media/video.mp4", "name": "video.mp4", "ext": ".mp4", "type": "video", "duration": 10},
    ],
    "timelineClips": [
        _clip(1, track=1),
        _clip(2, track=2),
    ],
}


@pytest.fixture()
def make_project():
    """Factory for a deep copy of a valid project document with top-level overrides."""

    def factory(**overrides):
        data = copy.deepcopy(VALID_PROJECT)
        data.update(overrides)
        return data

    return factory


@pytest.fixture()
def make_clip():
    return _clip


@pytest.fixture()
def deleter():
    """Stand-in AssetDeleter that records submissions without touching disk."""
    return MagicMock()


@pytest.fixture()
def state(qapp, deleter):
    """EditorState for an open project "p1" rooted at PROJECT_DIR."""
    from clipdeck.editor.state import EditorState

    s = EditorState(deleter=deleter)
    s.project_name = "p1"
    s.project_dir = PROJECT_DIR
    return s
