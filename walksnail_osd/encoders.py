"""Video encoders known to the renderer, and probing which ones ffmpeg supports."""

from __future__ import annotations

import dataclasses
import logging
import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)

# Lets QuickTime on macOS play HEVC files (it accepts hvc1 but not the default hev1).
_HVC1_TAG = ("-tag:v", "hvc1")
_PRORES_ARGS = ("-profile:v", "4", "-pix_fmt", "yuva422p10le", "-alpha_bits", "8", "-vendor", "apl0")


def _run_quietly(args: list[str]) -> bool:
    """Run a command with its output discarded; True if it exited successfully."""
    try:
        completed = subprocess.run(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
            check=False,
        )
    except (OSError, ValueError):
        return False
    return completed.returncode == 0


class Codec(Enum):
    """Video compression format produced by an encoder."""

    H264 = "H.264"
    H265 = "H.265 (HEVC)"
    VP9 = "VP9"
    PRORES = "Apple ProRes"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Encoder:
    """An ffmpeg video encoder and the arguments it needs."""

    name: str
    codec: Codec
    hardware: bool
    detected: bool = False
    constant_quality_args: tuple[str, ...] | None = None
    extra_args: tuple[str, ...] = ()

    def __str__(self) -> str:
        kind = "hardware" if self.hardware else "software"
        return f"{self.name} — {self.codec} — {kind}"

    @classmethod
    def get_available_encoders(cls, ffmpeg_path: Any) -> list["Encoder"]:
        """Every encoder known for this platform, marked with whether ffmpeg can use it."""
        candidates = all_encoders()
        with ThreadPoolExecutor() as pool:
            results = list(pool.map(lambda e: ffmpeg_encoder_available(e, ffmpeg_path), candidates))
        encoders = [dataclasses.replace(e, detected=ok) for e, ok in zip(candidates, results)]
        log.debug("Available encoders: %r", encoders)
        return encoders


def _normalise_platform(platform: str) -> str:
    platform = platform.lower()
    if platform.startswith("win"):
        return "windows"
    if platform.startswith("linux"):
        return "linux"
    if platform in ("darwin", "macos", "mac", "osx"):
        return "macos"
    return platform


def all_encoders(platform: str | None = None) -> list[Encoder]:
    """The encoders that may exist on a platform, in preference order.

    ``platform`` is a ``sys.platform`` value or one of "windows", "linux", "macos";
    it defaults to the running platform.
    """
    target = _normalise_platform(platform if platform is not None else sys.platform)
    windows = target == "windows"
    linux = target == "linux"
    macos = target == "macos"
    win_or_linux = windows or linux

    table: list[tuple[bool, Encoder]] = [
        (True, Encoder("libx264", Codec.H264, False, ("-crf", "19", "-b:v", "0k"))),
        (True, Encoder("libx265", Codec.H265, False, ("-crf", "20", "-b:v", "0k"), _HVC1_TAG)),
        (windows, Encoder("h264_amf", Codec.H264, True)),
        (win_or_linux, Encoder("h264_nvenc", Codec.H264, True, ("-qp", "18", "-b:v", "0k"))),
        (win_or_linux, Encoder("h264_qsv", Codec.H264, True)),
        (linux, Encoder("h264_vaapi", Codec.H264, True)),
        (linux, Encoder("h264_v4l2m2m", Codec.H264, True)),
        (macos, Encoder("h264_videotoolbox", Codec.H264, True, ("-q:v", "70", "-b:v", "0k"))),
        (windows, Encoder("hevc_amf", Codec.H265, True)),
        (win_or_linux, Encoder("hevc_nvenc", Codec.H265, True, ("-qp", "19", "-b:v", "0k"), _HVC1_TAG)),
        (win_or_linux, Encoder("hevc_qsv", Codec.H265, True)),
        (linux, Encoder("hevc_vaapi", Codec.H265, True)),
        (linux, Encoder("hevc_v4l2m2m", Codec.H265, True)),
        (macos, Encoder("hevc_videotoolbox", Codec.H265, True, ("-q:v", "70", "-b:v", "0k"), _HVC1_TAG)),
        (macos, Encoder("libvpx-vp9", Codec.VP9, False)),
        (macos, Encoder("prores_ks", Codec.PRORES, False, None, _PRORES_ARGS)),
        (macos, Encoder("prores_videotoolbox", Codec.PRORES, True, None, _PRORES_ARGS)),
    ]
    return [encoder for included, encoder in table if included]


def ffmpeg_encoder_available(encoder: Encoder, ffmpeg_path: Any) -> bool:
    """Whether ffmpeg can encode a single test frame with the encoder."""
    return _run_quietly(
        [
            os.fspath(ffmpeg_path),
            "-hide_banner",
            "-f",
            "lavfi",
            "-i",
            "nullsrc",
            "-c:v",
            encoder.name,
            "-frames:v",
            "1",
            "-f",
            "null",
            "-",
        ]
    )


def ffmpeg_available(ffmpeg_path: Any) -> bool:
    """Whether the ffmpeg executable runs."""
    available = _run_quietly([os.fspath(ffmpeg_path), "-version"])
    log.debug("ffmpeg available: %s", available)
    return available


def ffprobe_available(ffprobe_path: Any) -> bool:
    """Whether the ffprobe executable runs."""
    available = _run_quietly([os.fspath(ffprobe_path), "-version"])
    log.debug("ffprobe available: %s", available)
    return available