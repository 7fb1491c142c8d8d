"""Drawing OSD glyphs onto video frames."""

from __future__ import annotations

from PIL import Image

from .font import CharacterSizeClass, FontFile
from .osd import OSD_GRID_HEIGHT, OSD_GRID_WIDTH, Frame, OsdOptions
from .util import Dimension


def _has_complex_alpha(image: Image.Image) -> bool:
    histogram = image.getchannel("A").histogram()
    return any(histogram[1:255])


def fast_overlay(bottom: Image.Image, top: Image.Image, x: int, y: int) -> None:
    """Draw ``top`` onto ``bottom`` with its upper-left corner at (x, y).

    Images holding only fully opaque or fully transparent pixels are copied
    directly; anything else is alpha-blended. Parts outside ``bottom`` are clipped.
    """
    bottom_width, bottom_height = bottom.size
    top_width, top_height = top.size

    if x >= bottom_width or y >= bottom_height or x + top_width <= 0 or y + top_height <= 0:
        return

    if top.mode != "RGBA":
        top = top.convert("RGBA")

    left, upper = max(x, 0), max(y, 0)
    right, lower = min(x + top_width, bottom_width), min(y + top_height, bottom_height)
    visible = top.crop((left - x, upper - y, right - x, lower - y))

    if _has_complex_alpha(top):
        bottom.alpha_composite(visible, dest=(left, upper))
    else:
        # Alpha is only 0 or 255, so using it as a mask copies opaque pixels.
        bottom.paste(visible, (left, upper), visible)


def get_ideal_character_size(frame_width: int, frame_height: int) -> Dimension:
    """The size of one OSD grid cell for a frame of the given size."""
    return Dimension(frame_width // OSD_GRID_WIDTH, frame_height // OSD_GRID_HEIGHT)


def overlay_osd(image: Image.Image, osd_frame: Frame, font: FontFile, osd_options: OsdOptions) -> None:
    """Draw every visible glyph of an OSD frame onto the image in place."""
    size_class = osd_options.character_size_class or CharacterSizeClass.NORMAL
    desired_size = get_ideal_character_size(image.width, image.height)

    # The grid is centred: leftover pixels are split evenly on both sides.
    cell_width = image.width // OSD_GRID_WIDTH
    cell_height = image.height // OSD_GRID_HEIGHT
    margin_x = image.width % OSD_GRID_WIDTH // 2
    margin_y = image.height % OSD_GRID_HEIGHT // 2

    for glyph in osd_frame.glyphs:
        if glyph.index == 0 or osd_options.get_mask(glyph.grid_position):
            continue
        character_image = font.get_character(glyph.index, size_class, desired_size)
        if character_image is None:
            continue
        position = glyph.grid_position
        x = margin_x + position.x * cell_width + osd_options.position.x
        y = margin_y + position.y * cell_height + osd_options.position.y
        fast_overlay(image, character_image, x, y)