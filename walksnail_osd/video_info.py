"""Reading video stream properties with ffprobe."""

from __future__ import annotations

import json
import logging
import math
import os
import re
import subprocess
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

log = logging.getLogger(__name__)

_U32_MAX = 2**32 - 1
_UINT_RE = re.compile(r"\+?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)


class VideoInfoError(Exception):
    """Raised when video properties cannot be read."""


def _parse_u32(text: Any) -> int | None:
    if not isinstance(text, str) or not _UINT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if value <= _U32_MAX else None


def _parse_float(text: Any) -> float | None:
    if not isinstance(text, str) or not _FLOAT_RE.fullmatch(text):
        return None
    return float(text)


def _dimension(stream: dict[str, Any], key: str, message: str) -> int:
    value = stream.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise VideoInfoError(message)
    return value


@dataclass
class VideoInfo:
    """Properties of the first stream of a video file."""

    width: int
    height: int
    frame_rate: float
    time_base: int
    bitrate: int
    duration: timedelta
    total_frames: int

    @classmethod
    def get(cls, file_path: Any, ffprobe_path: Any) -> "VideoInfo":
        """Probe a video file with ffprobe."""
        args = [
            os.fspath(ffprobe_path),
            "-v",
            "error",
            "-show_format",
            "-show_streams",
            "-print_format",
            "json",
            os.fspath(file_path),
        ]
        try:
            completed = subprocess.run(
                args,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
                check=False,
            )
        except (OSError, ValueError) as exc:
            raise VideoInfoError("Failed to probe video file") from exc
        if completed.returncode != 0:
            raise VideoInfoError("Failed to probe video file")
        try:
            data = json.loads(completed.stdout)
        except ValueError as exc:
            raise VideoInfoError("Failed to probe video file") from exc
        info = cls.from_ffprobe(data)
        log.info("Video info: %r", info)
        return info

    @classmethod
    def from_ffprobe(cls, data: dict[str, Any]) -> "VideoInfo":
        """Build video info from ffprobe's JSON output."""
        streams = data.get("streams") if isinstance(data, dict) else None
        if not streams:
            raise VideoInfoError("No stream in video file")
        stream = streams[0]

        width = _dimension(stream, "width", "Failed to read frame width from video")
        height = _dimension(stream, "height", "Failed to read frame height from video")

        # r_frame_rate is the intended rate ("60/1"); avg_frame_rate drifts with dropped frames.
        frame_rate_text = stream.get("r_frame_rate")
        log.info("Input video framerate = %r", frame_rate_text)
        parts = frame_rate_text.split("/") if isinstance(frame_rate_text, str) else []
        num = _parse_float(parts[0]) if parts else None
        den = _parse_float(parts[1]) if len(parts) > 1 else None
        if num is None or den is None or den == 0:
            raise VideoInfoError("Failed to read frame rate from video")
        frame_rate = num / den

        bitrate = _parse_u32(stream.get("bit_rate"))
        if bitrate is None:
            raise VideoInfoError("Failed to read bitrate from video")

        duration_secs = _parse_float(stream.get("duration"))
        if duration_secs is None or not math.isfinite(duration_secs) or duration_secs < 0:
            raise VideoInfoError("Failed to read video duration from video")

        time_base_text = stream.get("time_base")
        tb_parts = time_base_text.split("/") if isinstance(time_base_text, str) else []
        time_base = _parse_u32(tb_parts[1]) if len(tb_parts) > 1 else None
        if time_base is None:
            raise VideoInfoError("Failed to read time scale value from video")

        product = frame_rate * duration_secs
        total_frames = 0 if math.isnan(product) else int(min(max(product, 0.0), float(_U32_MAX)))

        return cls(
            width=width,
            height=height,
            frame_rate=frame_rate,
            time_base=time_base,
            bitrate=bitrate,
            duration=timedelta(seconds=duration_secs),
            total_frames=total_frames,
        )