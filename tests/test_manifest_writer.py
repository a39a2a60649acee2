import json
from datetime import datetime, timezone

import pytest

from anim2spritesheet.core import SheetLayout
from anim2spritesheet.core import manifest_writer
from anim2spritesheet.core.errors import ValidationError
from anim2spritesheet.core.playback import frame_rect

FIXED_NOW = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def test_descriptor_fields_and_key_names():
    layout = SheetLayout(columns=4, cell_width=256, cell_height=128)
    descriptor = manifest_writer.build_descriptor(10, layout, "Walk", now=FIXED_NOW)
    assert descriptor.to_dict() == {
        "frameWidth": 256,
        "frameHeight": 128,
        "frames": 10,
        "columns": 4,
        "rows": 3,
        "animationName": "Walk",
        "optimized": False,
        "transparent": True,
        "timestamp": "2026-01-02T03:04:05+00:00",
    }


def test_optimized_descriptor_carries_note():
    layout = SheetLayout(columns=2, cell_width=64, cell_height=64, optimize=True)
    payload = manifest_writer.build_descriptor(3, layout, "Idle").to_dict()
    assert payload["optimized"] is True
    assert payload["optimizationInfo"] == {
        "note": "Frames are centered within fixed-size cells",
        "maintainsExactDimensions": True,
    }


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Walk Cycle-01!", "Walk_Cycle_01_"),
        ("mixamo.com|Run", "mixamo_com_Run"),
        ("Idle", "Idle"),
        ("", "animation"),
    ],
)
def test_animation_name_is_filesystem_safe(raw, expected):
    descriptor = manifest_writer.build_descriptor(1, SheetLayout(), raw)
    assert descriptor.animation_name == expected


def test_written_descriptor_matches_cell_formula(tmp_path):
    layout = SheetLayout(columns=3, cell_width=50, cell_height=40, optimize=True)
    descriptor = manifest_writer.build_descriptor(7, layout, "Jump", now=FIXED_NOW)
    path = manifest_writer.write_descriptor(descriptor, tmp_path / "Jump_metadata")

    assert path.suffix == ".json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["optimizationInfo"]["maintainsExactDimensions"] is True
    loaded = manifest_writer.load_descriptor(path)
    assert loaded == descriptor
    assert frame_rect(loaded, 4) == (50, 40, 50, 40)


def test_load_descriptor_rejects_missing_keys(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"frameWidth": 10}), encoding="utf-8")
    with pytest.raises(ValidationError, match="missing keys"):
        manifest_writer.load_descriptor(path)
