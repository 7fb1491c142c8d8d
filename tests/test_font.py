import pytest
from PIL import Image

from walksnail_osd.font import (
    CharacterSizeClass,
    FontFile,
    FontFileError,
    FontType,
    ImageCache,
    detect_font_character_size,
)
from walksnail_osd.util import Dimension

CHAR_W, CHAR_H = 24, 36
ROWS = 256


def color_for(char_index):
    return (char_index % 256, 255 - char_index % 256, (char_index * 7) % 256, 255)


def write_font(path, columns=1):
    image = Image.new("RGBA", (CHAR_W * columns, CHAR_H * ROWS))
    for page in range(columns):
        for row in range(ROWS):
            x, y = page * CHAR_W, row * CHAR_H
            image.paste(color_for(page * ROWS + row), (x, y, x + CHAR_W, y + CHAR_H))
    image.save(path)
    return path


@pytest.mark.parametrize(
    "size_class, multiplier, label",
    [
        (CharacterSizeClass.XSMALL, 0.6, "XS"),
        (CharacterSizeClass.SMALL, 0.8, "S"),
        (CharacterSizeClass.NORMAL, 1.0, "Normal"),
        (CharacterSizeClass.LARGE, 1.1, "L"),
        (CharacterSizeClass.XLARGE, 1.2, "XL"),
    ],
)
def test_character_size_class(size_class, multiplier, label):
    assert size_class.multiplier() == multiplier
    assert str(size_class) == label


def test_font_type_from_raw_value():
    assert FontType.from_raw_value(1) is FontType.STANDARD
    assert FontType.from_raw_value(4) is FontType.FOUR_COLOR
    assert FontType.from_raw_value(5) is None
    assert FontType.TWO_PAGES.raw_value == 2


def test_detect_standard_font():
    size, font_type = detect_font_character_size(Dimension(CHAR_W, CHAR_H * ROWS))
    assert size == Dimension(CHAR_W, CHAR_H)
    assert font_type is FontType.STANDARD


def test_detect_four_color_font():
    size, font_type = detect_font_character_size(Dimension(CHAR_W * 4, CHAR_H * ROWS))
    assert size == Dimension(CHAR_W, CHAR_H)
    assert font_type is FontType.FOUR_COLOR


def test_detect_unknown_column_count_falls_back_to_standard():
    _, font_type = detect_font_character_size(Dimension(CHAR_W * 7, CHAR_H * ROWS))
    assert font_type is FontType.STANDARD


def test_detect_invalid_height():
    with pytest.raises(FontFileError, match="height"):
        detect_font_character_size(Dimension(CHAR_W, CHAR_H * ROWS + 1))


def test_detect_invalid_width():
    with pytest.raises(FontFileError, match="width"):
        detect_font_character_size(Dimension(CHAR_W + 1, CHAR_H * ROWS))


def test_image_cache_is_bounded():
    cache = ImageCache(1)
    first, second = Image.new("RGBA", (1, 1)), Image.new("RGBA", (2, 2))
    cache.insert(0, first)
    cache.insert(1, second)
    assert cache.get(0) is first
    assert cache.get(1) is None


def test_font_file_open(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png"))
    assert font.character_count == ROWS
    assert font.font_type is FontType.STANDARD
    assert font.font_character_size == Dimension(CHAR_W, CHAR_H)


def test_get_character_native_size(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png"))
    glyph = font.get_character(5, CharacterSizeClass.NORMAL, Dimension(CHAR_W, CHAR_H))
    assert glyph.size == (CHAR_W, CHAR_H)
    assert glyph.getpixel((0, 0)) == color_for(5)


def test_get_character_two_pages(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png", columns=2))
    assert font.character_count == 2 * ROWS
    glyph = font.get_character(ROWS + 3, CharacterSizeClass.NORMAL, Dimension(CHAR_W, CHAR_H))
    assert glyph.getpixel((1, 1)) == color_for(ROWS + 3)


def test_get_character_wraps_index(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png"))
    glyph = font.get_character(ROWS + 5, CharacterSizeClass.NORMAL, Dimension(CHAR_W, CHAR_H))
    assert glyph.getpixel((2, 2)) == color_for(5)


def test_get_character_resizes(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png"))
    glyph = font.get_character(9, CharacterSizeClass.NORMAL, Dimension(10, 20))
    assert glyph.size == (10, 20)
    assert glyph.getpixel((5, 10)) == color_for(9)


def test_get_character_is_cached_by_index(tmp_path):
    font = FontFile.open(write_font(tmp_path / "font.png"))
    first = font.get_character(2, CharacterSizeClass.NORMAL, Dimension(CHAR_W, CHAR_H))
    again = font.get_character(2, CharacterSizeClass.NORMAL, Dimension(10, 20))
    assert again.size == first.size


def test_open_missing_font(tmp_path):
    with pytest.raises(FontFileError, match="open"):
        FontFile.open(tmp_path / "missing.png")


def test_open_undecodable_font(tmp_path):
    path = tmp_path / "font.png"
    path.write_bytes(b"not an image")
    with pytest.raises(FontFileError, match="decode"):
        FontFile.open(path)


def test_open_font_with_bad_dimensions(tmp_path):
    path = tmp_path / "font.png"
    Image.new("RGBA", (CHAR_W, 100)).save(path)
    with pytest.raises(FontFileError):
        FontFile.open(path)