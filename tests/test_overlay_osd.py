import pytest
from PIL import Image

from walksnail_osd.font import CharacterSizeClass, FontFile
from walksnail_osd.osd import OSD_GRID_HEIGHT, OSD_GRID_WIDTH, Frame, Glyph, OsdOptions
from walksnail_osd.overlay_osd import fast_overlay, get_ideal_character_size, overlay_osd
from walksnail_osd.util import Coordinates, Dimension

CHAR_W, CHAR_H = 24, 36
RED = (255, 0, 0, 255)
BLACK = (0, 0, 0, 255)
GREEN = (0, 255, 0, 255)


@pytest.fixture
def font_file(tmp_path):
    image = Image.new("RGBA", (CHAR_W, CHAR_H * 256), (0, 0, 0, 0))
    image.paste(Image.new("RGBA", (CHAR_W, CHAR_H), RED), (0, 65 * CHAR_H))
    path = tmp_path / "font.png"
    image.save(path)
    return FontFile.open(path)


def _frame(index=65, x=2, y=3):
    return Frame(time_millis=0, glyphs=[Glyph(index, Coordinates(x, y))])


def _canvas(extra_width=0):
    return Image.new("RGBA", (OSD_GRID_WIDTH * CHAR_W + extra_width, OSD_GRID_HEIGHT * CHAR_H), BLACK)


def _count(image, color):
    return dict((c, n) for n, c in image.getcolors(1 << 20)).get(color, 0)


def test_ideal_character_size_is_grid_cell():
    assert get_ideal_character_size(OSD_GRID_WIDTH * CHAR_W, OSD_GRID_HEIGHT * CHAR_H) == Dimension(CHAR_W, CHAR_H)


def test_glyph_drawn_in_its_cell(font_file):
    image = _canvas()
    overlay_osd(image, _frame(), font_file, OsdOptions())
    assert image.getpixel((2 * CHAR_W, 3 * CHAR_H)) == RED
    assert image.getpixel((3 * CHAR_W - 1, 4 * CHAR_H - 1)) == RED
    assert image.getpixel((2 * CHAR_W - 1, 3 * CHAR_H)) == BLACK
    assert _count(image, RED) == CHAR_W * CHAR_H


def test_remainder_centres_grid(font_file):
    image = _canvas(extra_width=2)
    overlay_osd(image, _frame(), font_file, OsdOptions())
    assert image.getpixel((2 * CHAR_W, 3 * CHAR_H)) == BLACK
    assert image.getpixel((2 * CHAR_W + 1, 3 * CHAR_H)) == RED


def test_position_offset_applied(font_file):
    image = _canvas()
    overlay_osd(image, _frame(), font_file, OsdOptions(position=Coordinates(5, -4)))
    assert image.getpixel((2 * CHAR_W + 5, 3 * CHAR_H - 4)) == RED
    assert image.getpixel((2 * CHAR_W + 4, 3 * CHAR_H - 4)) == BLACK


def test_masked_cell_is_skipped(font_file):
    image = _canvas()
    options = OsdOptions(masked_grid_positions={Coordinates(2, 3)})
    overlay_osd(image, _frame(), font_file, options)
    assert _count(image, RED) == 0


def test_zero_index_is_skipped(font_file):
    image = _canvas()
    overlay_osd(image, _frame(index=0), font_file, OsdOptions())
    assert _count(image, BLACK) == image.width * image.height


def test_index_wraps_around_font(font_file):
    image = _canvas()
    overlay_osd(image, _frame(index=65 + font_file.character_count), font_file, OsdOptions())
    assert image.getpixel((2 * CHAR_W, 3 * CHAR_H)) == RED


def test_smaller_size_class_draws_fewer_pixels(font_file):
    image = _canvas()
    options = OsdOptions(character_size_class=CharacterSizeClass.SMALL)
    overlay_osd(image, _frame(), font_file, options)
    assert 0 < _count(image, RED) < CHAR_W * CHAR_H


def test_fast_overlay_clips_negative_offset():
    bottom = Image.new("RGBA", (10, 10), BLACK)
    top = Image.new("RGBA", (4, 4), GREEN)
    fast_overlay(bottom, top, -2, -2)
    assert bottom.getpixel((0, 0)) == GREEN
    assert bottom.getpixel((1, 1)) == GREEN
    assert bottom.getpixel((2, 2)) == BLACK


def test_fast_overlay_outside_leaves_image_unchanged():
    bottom = Image.new("RGBA", (10, 10), BLACK)
    before = bottom.tobytes()
    fast_overlay(bottom, Image.new("RGBA", (4, 4), GREEN), 10, 0)
    fast_overlay(bottom, Image.new("RGBA", (4, 4), GREEN), -4, 0)
    assert bottom.tobytes() == before


def test_fast_overlay_keeps_bottom_under_transparent_pixels():
    bottom = Image.new("RGBA", (4, 1), BLACK)
    top = Image.new("RGBA", (4, 1), (0, 0, 0, 0))
    top.putpixel((1, 0), GREEN)
    fast_overlay(bottom, top, 0, 0)
    assert [bottom.getpixel((i, 0)) for i in range(4)] == [BLACK, GREEN, BLACK, BLACK]


def test_fast_overlay_blends_partial_alpha():
    bottom = Image.new("RGBA", (2, 2), BLACK)
    top = Image.new("RGBA", (2, 2), (255, 255, 255, 128))
    fast_overlay(bottom, top, 0, 0)
    r, g, b, a = bottom.getpixel((0, 0))
    assert 0 < r < 255
    assert r == g == b
    assert a == 255