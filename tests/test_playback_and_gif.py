import pytest
from PIL import Image

from anim2spritesheet.core import SheetLayout
from anim2spritesheet.core import gif_exporter, manifest_writer, spritesheet_builder
from anim2spritesheet.core.errors import ValidationError
from anim2spritesheet.core.playback import frame_rect, iter_sheet_frames

from conftest import make_frame


def _sheet(count=5, columns=2, size=16):
    frames = [make_frame((size, size), box=(i, i, i + 4, i + 4), color=(40 * i, 200, 90, 255)) for i in range(count)]
    layout = SheetLayout(columns=columns, cell_width=size, cell_height=size)
    sheet, _ = spritesheet_builder.build_spritesheet(frames, layout)
    return frames, sheet, manifest_writer.build_descriptor(count, layout, "Test")


def test_frame_rect_uses_descriptor_grid():
    _, _, descriptor = _sheet(count=5, columns=2)
    assert frame_rect(descriptor, 0) == (0, 0, 16, 16)
    assert frame_rect(descriptor, 3) == (16, 16, 16, 16)
    assert frame_rect(descriptor, 4) == (0, 32, 16, 16)
    with pytest.raises(IndexError):
        frame_rect(descriptor, 5)


def test_iter_sheet_frames_recovers_cells():
    frames, sheet, descriptor = _sheet()
    cells = list(iter_sheet_frames(sheet, descriptor))
    assert len(cells) == len(frames)
    assert [c.tobytes() for c in cells] == [f.tobytes() for f in frames]


def test_export_gif_writes_animation(tmp_path):
    _, sheet, descriptor = _sheet(count=4)
    progress = []
    path = gif_exporter.export_gif(sheet, descriptor, tmp_path / "test", fps=10, scale=2, on_progress=progress.append)

    assert path.suffix == ".gif"
    with Image.open(path) as gif:
        assert gif.size == (32, 32)
        assert gif.n_frames == 4
        assert gif.info["duration"] == 100
    assert progress[-1] == 1.0
    assert all(0 <= value <= 1 for value in progress)


def test_export_gif_rejects_bad_fps(tmp_path):
    _, sheet, descriptor = _sheet(count=2)
    with pytest.raises(ValidationError):
        gif_exporter.export_gif(sheet, descriptor, tmp_path / "x.gif", fps=0)
