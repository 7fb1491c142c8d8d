"""OSD font files: character size detection, glyph extraction and scaling."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from .util import Dimension

VERTICAL_CHARACTERS_COUNT = 256
GLYPH_CACHE_SIZE = 256


class FontFileError(Exception):
    """Raised when a font file cannot be opened, decoded or has bad dimensions."""


class CharacterSizeClass(Enum):
    """Relative size at which OSD characters are drawn."""

    XSMALL = "XS"
    SMALL = "S"
    NORMAL = "Normal"
    LARGE = "L"
    XLARGE = "XL"

    def multiplier(self) -> float:
        """Scale factor applied to the ideal character size."""
        return _MULTIPLIERS[self]

    def __str__(self) -> str:
        return self.value


_MULTIPLIERS = {
    CharacterSizeClass.XSMALL: 0.6,
    CharacterSizeClass.SMALL: 0.8,
    CharacterSizeClass.NORMAL: 1.0,
    CharacterSizeClass.LARGE: 1.1,
    CharacterSizeClass.XLARGE: 1.2,
}


class FontType(Enum):
    """Layout of a font file: how many columns (pages or colours) it has."""

    STANDARD = 1
    TWO_PAGES = 2
    THREE_PAGES = 3
    FOUR_COLOR = 4

    @classmethod
    def from_raw_value(cls, raw: int) -> "FontType | None":
        """The font type for a column count, or None if there is none."""
        try:
            return cls(raw)
        except ValueError:
            return None

    @property
    def raw_value(self) -> int:
        return self.value


def detect_font_character_size(font_file_size: Dimension) -> tuple[Dimension, FontType]:
    """Work out a single character's size and the font type from the image size."""
    height = font_file_size.height
    if height % VERTICAL_CHARACTERS_COUNT != 0:
        raise FontFileError(f"Invalid font file height {height}")

    single_char_height = height // VERTICAL_CHARACTERS_COUNT
    # Characters have a 2:3 aspect ratio (24x36, 36x54, 72x108).
    single_char_width = single_char_height * 2 // 3
    if single_char_width == 0:
        raise FontFileError(f"Invalid font file height {height}")

    width = font_file_size.width
    if width % single_char_width != 0:
        raise FontFileError(f"Invalid font file width {width}")

    number_of_colors = width // single_char_width
    font_type = FontType.from_raw_value(number_of_colors) or FontType.STANDARD
    return Dimension(single_char_width, single_char_height), font_type


class ImageCache:
    """A bounded cache of glyph images keyed by character index.

    Once full, new entries are simply not stored.
    """

    def __init__(self, max_size: int) -> None:
        self.max_size = max_size
        self._images: dict[int, Image.Image] = {}

    def __len__(self) -> int:
        return len(self._images)

    def get(self, index: int) -> Image.Image | None:
        return self._images.get(index)

    def insert(self, index: int, image: Image.Image) -> None:
        if len(self._images) >= self.max_size:
            return
        self._images[index] = image


def _round_half_away(value: float) -> int:
    return int(math.floor(value + 0.5))


def _split_characters(font_image: Image.Image, character_size: Dimension, font_type: FontType) -> list[Image.Image]:
    vertical_char_count = font_image.height // character_size.height
    w, h = character_size.width, character_size.height
    return [
        font_image.crop((page * w, row * h, page * w + w, row * h + h))
        for page in range(font_type.raw_value)
        for row in range(vertical_char_count)
    ]


@dataclass
class FontFile:
    """An OSD font split into per-character RGBA images."""

    file_path: Path
    character_count: int
    font_type: FontType
    font_character_size: Dimension
    _characters: list[Image.Image] = field(repr=False)
    _cache: ImageCache = field(repr=False, default_factory=lambda: ImageCache(GLYPH_CACHE_SIZE))

    @classmethod
    def open(cls, path: str | Path) -> "FontFile":
        """Load a font image and split it into characters."""
        path = Path(path)
        try:
            with Image.open(path) as raw:
                font_image = raw.convert("RGBA")
        except UnidentifiedImageError as exc:
            raise FontFileError("Failed to decode font file") from exc
        except OSError as exc:
            raise FontFileError("Failed to open font file") from exc

        character_size, font_type = detect_font_character_size(Dimension(font_image.width, font_image.height))
        characters = _split_characters(font_image, character_size, font_type)
        return cls(
            file_path=path,
            character_count=len(characters),
            font_type=font_type,
            font_character_size=character_size,
            _characters=characters,
        )

    def get_character(
        self, index: int, size_class: CharacterSizeClass, desired_size: Dimension
    ) -> Image.Image | None:
        """The character image scaled for drawing.

        Results are cached by index alone, since the size stays fixed while rendering.
        Indices past the end wrap around, so single-colour fonts serve multi-colour files.
        """
        cached = self._cache.get(index)
        if cached is not None:
            return cached

        multiplier = size_class.multiplier()
        final_size = Dimension(
            _round_half_away(desired_size.width * multiplier),
            _round_half_away(desired_size.height * multiplier),
        )
        if not self._characters:
            return None
        original = self._characters[index % self.character_count]
        if final_size != self.font_character_size:
            resized = original.resize((final_size.width, final_size.height), Image.Resampling.BILINEAR)
        else:
            resized = original.copy()
        self._cache.insert(index, resized)
        return resized