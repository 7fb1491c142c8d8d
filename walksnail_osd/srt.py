"""Subtitle telemetry: SRT parsing, per-frame link data and display options."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from datetime import timedelta
from itertools import groupby
from pathlib import Path
from typing import Any

from .util import Coordinates

log = logging.getLogger(__name__)


class SrtFileError(Exception):
    """Raised when an SRT file cannot be read or parsed."""


@dataclass(frozen=True)
class SubtitleEntry:
    """One numbered subtitle block of an SRT file."""

    index: int
    start_time: timedelta
    end_time: timedelta
    text: str


_TIMESTAMP = r"([0-9]+):([0-9]{1,2}):([0-9]{1,2})[,.]([0-9]{3})"
_TIMING_RE = re.compile(rf"{_TIMESTAMP}\s*-->\s*{_TIMESTAMP}(?:\s.*)?")
_INDEX_RE = re.compile(r"[0-9]+")


def _timestamp(hours: str, minutes: str, seconds: str, millis: str) -> timedelta:
    return timedelta(hours=int(hours), minutes=int(minutes), seconds=int(seconds), milliseconds=int(millis))


def _parse_block(block: list[tuple[int, str]]) -> SubtitleEntry:
    (line_no, index_line), *rest = block
    if not _INDEX_RE.fullmatch(index_line.strip()):
        raise SrtFileError(f"Unable to open SRT file, source: invalid subtitle index on line {line_no}")
    if not rest:
        raise SrtFileError(f"Unable to open SRT file, source: missing timing after line {line_no}")
    (timing_no, timing_line), *text_lines = rest
    match = _TIMING_RE.fullmatch(timing_line.strip())
    if match is None:
        raise SrtFileError(f"Unable to open SRT file, source: invalid timing on line {timing_no}")
    groups = match.groups()
    return SubtitleEntry(
        index=int(index_line.strip()),
        start_time=_timestamp(*groups[:4]),
        end_time=_timestamp(*groups[4:]),
        text="\n".join(line for _, line in text_lines),
    )


def parse_srt(text: str) -> list[SubtitleEntry]:
    """Split SRT text into its subtitle entries."""
    lines = text.removeprefix("\ufeff").splitlines()
    blocks = groupby(enumerate(lines, 1), key=lambda item: bool(item[1].strip()))
    return [_parse_block(list(group)) for nonblank, group in blocks if nonblank]


_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?|[+-]?(?:inf|infinity|nan)",
    re.IGNORECASE,
)


def _parse_int(text: str, name: str, bits: int, signed: bool = False) -> int:
    if not _INT_RE.fullmatch(text) or (not signed and text.startswith("-")):
        raise ValueError(f"Invalid {name}")
    value = int(text)
    if signed:
        low, high = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
    else:
        low, high = 0, (1 << bits) - 1
    if not low <= value <= high:
        raise ValueError(f"Invalid {name}")
    return value


def _parse_float(text: str, name: str) -> float:
    if not _FLOAT_RE.fullmatch(text):
        raise ValueError(f"Invalid {name}")
    return float(text)


_FRAME_DATA_RE = re.compile(
    r"Signal:(?P<signal>.*?) CH:(?P<channel>.*?) FlightTime:(?P<flight_time>.*?)"
    r" SBat:(?P<sky_bat>.*?)V GBat:(?P<ground_bat>.*?)V Delay:(?P<latency>.*?)ms"
    r" Bitrate:(?P<bitrate_mbps>.*?)Mbps Distance:(?P<distance>.*?)m",
    re.DOTALL,
)


@dataclass
class SrtFrameData:
    """Link telemetry carried by a regular subtitle line."""

    signal: int
    channel: int
    flight_time: int
    sky_bat: float
    ground_bat: float
    latency: int
    bitrate_mbps: float
    distance: int

    @classmethod
    def parse(cls, text: str) -> "SrtFrameData":
        """Parse a subtitle line; raises ValueError if it does not match."""
        match = _FRAME_DATA_RE.fullmatch(text)
        if match is None:
            raise ValueError("SRT frame data does not match the expected format")
        g = match.groupdict()
        return cls(
            signal=_parse_int(g["signal"], "signal", 8),
            channel=_parse_int(g["channel"], "channel", 8),
            flight_time=_parse_int(g["flight_time"], "flight_time", 32),
            sky_bat=_parse_float(g["sky_bat"], "sky_bat"),
            ground_bat=_parse_float(g["ground_bat"], "ground_bat"),
            latency=_parse_int(g["latency"], "latency", 32),
            bitrate_mbps=_parse_float(g["bitrate_mbps"], "bitrate_mbps"),
            distance=_parse_int(g["distance"], "distance", 32),
        )


_DEBUG_PATTERNS = {
    "channel_signal": (re.compile(r"CH:\s*(\d+)\s*MCS:\s*(\d+)"), "channel and signal"),
    "sp": (re.compile(r"SP\[\s*(\d+)\s*(\d+)\s*(\d+)\s*(\d+)\s*\]"), "SP values"),
    "gp": (re.compile(r"GP\[\s*(\d+)\s*(\d+)\s*(\d+)\s*(\d+)\s*\]"), "GP values"),
    "gtp_stp": (
        re.compile(r"GTP:\s*(\d+)\s*GTP0:\s*(\d+)\s*STP:\s*(\d+)\s*STP0:\s*([-]?\d+)"),
        "GTP and STP values",
    ),
    "snr_temp": (
        re.compile(r"GSNR:\s*(-?[\d.]+)\s*SSNR:\s*(-?[\d.]+)\s*Gtemp:\s*(-?[\d.]+)\s*Stemp:\s*(-?[\d.]+)"),
        "SNR and temperature values",
    ),
    "misc": (
        re.compile(r"Delay:\s*(\d+)ms\s*Frame:\s*(\d+)\s*Gerr:\s*(\d+)\s*SErr:\s*(\d+)\s*(\d+)"),
        "miscellaneous values",
    ),
    "iso": (re.compile(r"\[iso:(\d+),mode=(\w+),\s*exp:(\d+)\]"), "ISO values"),
    "gain": (re.compile(r"\[gain:([\d.]+)\s*exp:([\d.]+)ms,\s*Lx:(\d+)\]"), "gain values"),
    "cct_rb": (re.compile(r"\[cct:(\d+),\s*rb:([\d.]+)\s*([\d.]+)\]"), "CCT and RB values"),
}


@dataclass
class SrtDebugFrameData:
    """Extended link and camera telemetry from a debug subtitle line."""

    signal: int
    channel: int
    latency: int
    sp1: int
    sp2: int
    sp3: int
    sp4: int
    gp1: int
    gp2: int
    gp3: int
    gp4: int
    gtp: int
    gtp0: int
    stp: int
    stp0: int
    gsnr: float
    ssnr: float
    gtemp: float
    stemp: float
    fps: int
    gerr: int
    serr: int
    serr_ext: int
    iso: int
    iso_mode: str
    iso_exp: int
    gain: float
    gain_exp: float
    gain_lx: int
    cct: int
    rb: float
    rb_ext: float

    @classmethod
    def parse(cls, text: str) -> "SrtDebugFrameData":
        """Parse a debug subtitle line; raises ValueError naming what failed."""
        captures: dict[str, tuple[str, ...]] = {}
        for name, (pattern, description) in _DEBUG_PATTERNS.items():
            match = pattern.search(text)
            if match is None:
                raise ValueError(f"Failed to match {description}")
            captures[name] = match.groups()

        channel, signal = captures["channel_signal"]
        sp1, sp2, sp3, sp4 = captures["sp"]
        gp1, gp2, gp3, gp4 = captures["gp"]
        gtp, gtp0, stp, stp0 = captures["gtp_stp"]
        gsnr, ssnr, gtemp, stemp = captures["snr_temp"]
        latency, fps, gerr, serr, serr_ext = captures["misc"]
        iso, iso_mode, iso_exp = captures["iso"]
        gain, gain_exp, gain_lx = captures["gain"]
        cct, rb, rb_ext = captures["cct_rb"]

        def i16(value: str, name: str) -> int:
            return _parse_int(value, name, 16, signed=True)

        return cls(
            channel=_parse_int(channel, "channel", 8, signed=True),
            signal=_parse_int(signal, "signal", 8, signed=True),
            sp1=i16(sp1, "sp1"),
            sp2=i16(sp2, "sp2"),
            sp3=i16(sp3, "sp3"),
            sp4=i16(sp4, "sp4"),
            gp1=i16(gp1, "gp1"),
            gp2=i16(gp2, "gp2"),
            gp3=i16(gp3, "gp3"),
            gp4=i16(gp4, "gp4"),
            gtp=i16(gtp, "gtp"),
            gtp0=i16(gtp0, "gtp0"),
            stp=i16(stp, "stp"),
            stp0=i16(stp0, "stp0"),
            gsnr=_parse_float(gsnr, "gsnr"),
            ssnr=_parse_float(ssnr, "ssnr"),
            gtemp=_parse_float(gtemp, "gtemp"),
            stemp=_parse_float(stemp, "stemp"),
            latency=_parse_int(latency, "latency", 32, signed=True),
            fps=i16(fps, "frame"),
            gerr=i16(gerr, "gerr"),
            serr=i16(serr, "serr"),
            serr_ext=i16(serr_ext, "serr_ext"),
            iso=_parse_int(iso, "iso", 32, signed=True),
            iso_mode=iso_mode,
            iso_exp=_parse_int(iso_exp, "iso_exp", 32, signed=True),
            gain=_parse_float(gain, "gain"),
            gain_exp=_parse_float(gain_exp, "gain_exp"),
            gain_lx=i16(gain_lx, "gain_lx"),
            cct=i16(cct, "cct"),
            rb=_parse_float(rb, "rb"),
            rb_ext=_parse_float(rb_ext, "rb_ext"),
        )


@dataclass
class SrtFrame:
    """A subtitle time span and whatever telemetry could be read from it."""

    start_time_secs: float
    end_time_secs: float
    data: SrtFrameData | None = None
    debug_data: SrtDebugFrameData | None = None


def _number(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number")
    return float(value)


@dataclass
class SrtOptions:
    """Which telemetry fields to draw, and where and how large."""

    position: Coordinates = field(default_factory=lambda: Coordinates(1.5, 95.0))
    scale: float = 35.0
    no_srt: bool = False

    show_time: bool = False
    show_sbat: bool = False
    show_gbat: bool = False
    show_signal: bool = True
    show_latency: bool = True
    show_bitrate: bool = True
    show_distance: bool = True

    show_channel: bool = True
    show_gsnr: bool = True
    show_ssnr: bool = True
    show_gtemp: bool = False
    show_stemp: bool = True
    show_fps: bool = False
    show_err: bool = True
    show_settings_cam: bool = False
    show_actual_cam: bool = True
    show_cct: bool = False
    show_rb: bool = False
    show_sp: bool = False
    show_gp: bool = False
    show_stp: bool = False
    show_gtp: bool = False

    def to_dict(self) -> dict[str, Any]:
        """The options as plain data."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["position"] = {"x": self.position.x, "y": self.position.y}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SrtOptions":
        """Rebuild options from plain data; missing fields take defaults."""
        if not isinstance(data, Mapping):
            raise TypeError("SRT options must be a mapping")
        options = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "position":
                if not isinstance(value, Mapping):
                    raise TypeError("position must be a mapping")
                value = Coordinates(_number(value["x"], "position.x"), _number(value["y"], "position.y"))
            elif f.name == "scale":
                value = _number(value, "scale")
            elif not isinstance(value, bool):
                raise TypeError(f"{f.name} must be a boolean")
            setattr(options, f.name, value)
        return options


def _frame_from_entry(entry: SubtitleEntry) -> SrtFrame:
    try:
        debug_data = SrtDebugFrameData.parse(entry.text)
    except ValueError as exc:
        log.debug("No debug data in subtitle %d: %s", entry.index, exc)
        debug_data = None
    try:
        data = SrtFrameData.parse(entry.text)
    except ValueError:
        data = None
    return SrtFrame(
        start_time_secs=entry.start_time.total_seconds(),
        end_time_secs=entry.end_time.total_seconds(),
        data=data,
        debug_data=debug_data,
    )


@dataclass
class SrtFile:
    """A telemetry subtitle file decoded into frames."""

    file_path: Path
    has_distance: bool
    has_debug: bool
    duration: timedelta
    frames: list[SrtFrame] = field(repr=False)

    @classmethod
    def open(cls, path: str | Path) -> "SrtFile":
        """Read and decode an SRT file."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8-sig")
        except (OSError, UnicodeDecodeError) as exc:
            raise SrtFileError(f"Unable to open SRT file, source: {exc}") from exc

        frames = [_frame_from_entry(entry) for entry in parse_srt(text)]
        if not frames:
            raise SrtFileError("Unable to open SRT file, source: no subtitles found")

        return cls(
            file_path=path,
            has_distance=any(f.data is not None and f.data.distance > 0 for f in frames),
            has_debug=any(f.debug_data is not None for f in frames),
            duration=timedelta(seconds=frames[-1].end_time_secs),
            frames=frames,
        )