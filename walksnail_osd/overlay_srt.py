"""Drawing subtitle telemetry text onto video frames."""

from __future__ import annotations

import io
import math
import os
from functools import lru_cache
from typing import Any

from PIL import Image, ImageDraw, ImageFont

from .overlay_osd import fast_overlay
from .srt import SrtDebugFrameData, SrtFrameData, SrtOptions

TEXT_COLOR = (240, 240, 240, 255)
_REFERENCE_HEIGHT = 1080.0
_I32_MIN, _I32_MAX = -(2**31), 2**31 - 1


def _round_half_away(value: float) -> int:
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def _saturating_i32(value: float) -> int:
    if math.isnan(value):
        return 0
    return int(max(min(value, _I32_MAX), _I32_MIN))


@lru_cache(maxsize=32)
def _load_font(source: Any, size: int) -> Any:
    if source is None:
        try:
            return ImageFont.load_default(size=size)
        except TypeError:
            return ImageFont.load_default()
    if isinstance(source, ImageFont.FreeTypeFont):
        return source.font_variant(size=size)
    if isinstance(source, ImageFont.ImageFont):
        return source
    if isinstance(source, (bytes, bytearray)):
        return ImageFont.truetype(io.BytesIO(bytes(source)), size)
    return ImageFont.truetype(os.fspath(source), size)


def _scale_for(image: Image.Image, srt_options: SrtOptions) -> float:
    return srt_options.scale / _REFERENCE_HEIGHT * image.height


def _font_for(font_path: Any, scale: float) -> Any:
    return _load_font(font_path, max(1, round(scale)))


def _text_position(image: Image.Image, srt_options: SrtOptions) -> tuple[int, int]:
    return (
        _round_half_away(srt_options.position.x / 100.0 * image.width),
        _round_half_away(srt_options.position.y / 100.0 * image.height),
    )


def format_srt_data(srt_data: SrtFrameData, srt_options: SrtOptions) -> str:
    """The telemetry line drawn for regular subtitle data."""
    parts = []
    if srt_options.show_signal:
        parts.append(f"Signal:{srt_data.signal}  ")
    if srt_options.show_channel:
        parts.append(f"Ch:{srt_data.channel}  ")
    if srt_options.show_time:
        minutes, seconds = divmod(srt_data.flight_time, 60)
        parts.append(f"Time:{minutes}:{seconds:0>2}  ")
    if srt_options.show_gbat:
        parts.append(f"GBat:{srt_data.ground_bat:>4.1f}V  ")
    if srt_options.show_sbat:
        parts.append(f"SBat:{srt_data.sky_bat:>4.1f}V  ")
    if srt_options.show_latency:
        parts.append(f"Latency:{srt_data.latency:>3}ms  ")
    if srt_options.show_bitrate:
        parts.append(f"Bitrate:{srt_data.bitrate_mbps:>4.1f}Mbps  ")
    if srt_options.show_distance:
        if srt_data.distance > 999:
            parts.append(f"Distance:{srt_data.distance / 1000.0:.2f}km")
        else:
            parts.append(f"Distance:{srt_data.distance:>3}m")
    return "".join(parts)


def format_srt_debug_data(srt_debug_data: SrtDebugFrameData, srt_options: SrtOptions) -> str:
    """The telemetry line drawn for debug subtitle data."""
    d = srt_debug_data
    o = srt_options
    parts = []
    if o.show_channel:
        parts.append(f"CH:{d.channel} ")
    if o.show_signal:
        parts.append(f"MCS:{d.signal} ")
    if o.show_gp:
        parts.append(f"GP[{d.gp1:>3} {d.gp2:>3} {d.gp3:>3} {d.gp4:>3}] ")
    if o.show_sp:
        parts.append(f"SP[{d.sp1:>3} {d.sp2:>3} {d.sp3:>3} {d.sp4:>3}] ")
    if o.show_gtp:
        parts.append(f"GTP:{d.gtp:>2} ")
    if o.show_stp:
        parts.append(f"STP:{d.stp:>2} ")
    if o.show_gsnr:
        parts.append(f"GSNR:{d.gsnr:>4.1f} ")
    if o.show_ssnr:
        parts.append(f"SSNR:{d.ssnr:>4.1f} ")
    if o.show_gtemp:
        parts.append(f"GTemp:{_saturating_i32(d.gtemp):>3} ")
    if o.show_stemp:
        parts.append(f"STemp:{_saturating_i32(d.stemp):>3} ")
    if o.show_latency:
        parts.append(f"Delay:{d.latency:>3} ")
    if o.show_fps:
        parts.append(f"FPS:{d.fps:>2} ")
    if o.show_err:
        parts.append(f"GErr:{d.gerr:>2} SErr:{d.serr:>2} {d.serr_ext:>2} ")
    if o.show_settings_cam:
        parts.append(f"[ISO:{d.iso} Mode:{d.iso_mode} Exp:{d.iso_exp}] ")
    if o.show_actual_cam:
        parts.append(f"[ISO_Gain:{d.gain:.2f} Exp:{d.gain_exp:.3f}ms Lx:{d.gain_lx}] ")
    if o.show_cct:
        parts.append(f"[CCT:{d.cct}] ")
    if o.show_rb:
        parts.append(f"[RB:{d.rb:.2f} {d.rb_ext:.2f}] ")
    return "".join(parts)


def overlay_srt_buffered(image: Image.Image, srt_string: str, font_path: Any, srt_options: SrtOptions) -> None:
    """Draw text wrapped onto as many lines as it needs, in place.

    ``font_path`` is a font file path, font bytes, a loaded Pillow font, or
    None for Pillow's built-in font.
    """
    scale = _scale_for(image, srt_options)
    font = _font_for(font_path, scale)
    max_width = float(image.width)

    lines: list[str] = []
    current = ""
    for word in srt_string.split(" "):
        candidate = f"{current} {word}" if current else word
        if font.getlength(candidate) <= max_width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)

    text_width = math.ceil(max((font.getlength(line) for line in lines), default=0.0))
    line_height = math.ceil(scale * 1.2)
    text_height = max(line_height * len(lines), line_height)
    if text_width <= 0 or text_height <= 0:
        return

    layer = Image.new("RGBA", (text_width, text_height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    for row, line in enumerate(lines):
        draw.text((0, row * line_height), line, font=font, fill=TEXT_COLOR)

    x_pos, y_pos = _text_position(image, srt_options)
    fast_overlay(image, layer, x_pos, y_pos)


def overlay_srt_data(image: Image.Image, srt_data: SrtFrameData, font_path: Any, srt_options: SrtOptions) -> None:
    """Draw regular subtitle telemetry onto the image in place."""
    overlay_srt_buffered(image, format_srt_data(srt_data, srt_options), font_path, srt_options)


def overlay_srt_debug_data(
    image: Image.Image, srt_debug_data: SrtDebugFrameData, font_path: Any, srt_options: SrtOptions
) -> None:
    """Draw debug subtitle telemetry onto the image in place."""
    overlay_string(image, format_srt_debug_data(srt_debug_data, srt_options), font_path, srt_options)


def overlay_string(image: Image.Image, srt_string: str, font_path: Any, srt_options: SrtOptions) -> None:
    """Draw text on at most two lines, in place; words that do not fit are dropped."""
    scale = _scale_for(image, srt_options)
    font = _font_for(font_path, scale)
    max_width = float(image.width)

    line1 = ""
    line2 = ""
    on_first_line = True
    for word in srt_string.split(" "):
        current = line1 if on_first_line else line2
        candidate = f"{current} {word}" if current else word
        if font.getlength(candidate) <= max_width:
            if on_first_line:
                line1 = candidate
            else:
                line2 = candidate
        elif on_first_line:
            on_first_line = False
            line2 = word
        else:
            break

    x_pos, y_pos = _text_position(image, srt_options)
    layer = Image.new("RGBA", image.size, (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    draw.text((x_pos, y_pos), line1, font=font, fill=TEXT_COLOR)
    if line2:
        draw.text((x_pos, y_pos + int(scale)), line2, font=font, fill=TEXT_COLOR)
    fast_overlay(image, layer, 0, 0)