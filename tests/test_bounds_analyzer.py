import pytest

from anim2spritesheet.core import ContentBounds
from anim2spritesheet.core import bounds_analyzer

from conftest import make_frame


def test_transparent_frame_returns_full_frame():
    bounds = bounds_analyzer.analyze(make_frame((40, 30)))
    assert bounds == ContentBounds(left=0, top=0, right=39, bottom=29)
    assert (bounds.width, bounds.height) == (40, 30)


def test_single_pixel_gives_one_by_one_tight_box():
    frame = make_frame((100, 100), box=(37, 61, 37, 61))
    box = bounds_analyzer.find_content_box(frame)
    assert box == ContentBounds(left=37, top=61, right=37, bottom=61)
    assert (box.width, box.height) == (1, 1)


def test_alpha_threshold_is_exclusive():
    frame = make_frame((10, 10))
    frame.putpixel((2, 2), (255, 255, 255, 10))
    assert bounds_analyzer.find_content_box(frame) is None
    frame.putpixel((3, 4), (255, 255, 255, 11))
    assert bounds_analyzer.find_content_box(frame) == ContentBounds(3, 4, 3, 4)


def test_margins_are_asymmetric():
    frame = make_frame((100, 100), box=(50, 50, 50, 50))
    bounds = bounds_analyzer.analyze(frame)
    # 3px sides and top (ceil of 2.5%), 1px bottom (1%)
    assert bounds == ContentBounds(left=47, top=47, right=53, bottom=51)


@pytest.mark.parametrize(
    "box",
    [
        (0, 0, 0, 0),
        (63, 47, 63, 47),
        (0, 47, 63, 47),
        (10, 0, 20, 47),
        (0, 0, 63, 47),
    ],
)
def test_expansion_never_leaves_frame(box):
    frame = make_frame((64, 48), box=box)
    bounds = bounds_analyzer.analyze(frame)
    assert bounds.left >= 0 and bounds.top >= 0
    assert bounds.right <= 63 and bounds.bottom <= 47
    assert bounds.left <= box[0] and bounds.right >= box[2]
    assert bounds.top <= box[1] and bounds.bottom >= box[3]


def test_analyze_is_idempotent():
    frame = make_frame((80, 60), box=(20, 10, 40, 50))
    assert bounds_analyzer.analyze(frame) == bounds_analyzer.analyze(frame)


def test_non_rgba_input_is_accepted():
    frame = make_frame((20, 20), box=(5, 5, 6, 6)).convert("LA")
    assert bounds_analyzer.find_content_box(frame) == ContentBounds(5, 5, 6, 6)
