"""Reading of OSD recordings: firmware tag, frames and glyph grids."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from .font import CharacterSizeClass
from .util import Coordinates, Dimension

OSD_GRID_WIDTH = 53
OSD_GRID_HEIGHT = 20

HEADER_BYTES = 40
FC_TYPE_BYTES = 4
FRAME_BYTES = 2124
TIMESTAMP_BYTES = 4
BYTES_PER_GLYPH = 2

_EMPTY_GLYPHS = (0x00, 0x20)


class OsdFileError(Exception):
    """Raised when an OSD file cannot be read or is malformed."""


class FcFirmware(Enum):
    """Flight controller firmware that produced an OSD recording."""

    BETAFLIGHT = "BTFL"
    INAV = "INAV"
    ARDUPILOT = "ARDU"
    KISS = "KISS"
    KISS_ULTRA = "ULTR"
    UNKNOWN = ""

    @classmethod
    def from_code(cls, value: str | bytes) -> "FcFirmware":
        """Identify the firmware from its four-character header code."""
        if isinstance(value, (bytes, bytearray, memoryview)):
            try:
                value = bytes(value).decode("utf-8")
            except UnicodeDecodeError as exc:
                raise OsdFileError("Malformed OSD file") from exc
        for member in cls:
            if member is not cls.UNKNOWN and member.value == value:
                return member
        return cls.UNKNOWN

    def __str__(self) -> str:
        return _FIRMWARE_NAMES[self]


_FIRMWARE_NAMES = {
    FcFirmware.BETAFLIGHT: "BetaFlight",
    FcFirmware.INAV: "INAV",
    FcFirmware.ARDUPILOT: "ArduPilot",
    FcFirmware.KISS: "KISS",
    FcFirmware.KISS_ULTRA: "KISS ULTRA",
    FcFirmware.UNKNOWN: "Unknown",
}


@dataclass
class Glyph:
    """A font character placed at a cell of the OSD grid."""

    index: int
    grid_position: Coordinates

    def __str__(self) -> str:
        if self.index < 128:
            if 0x20 <= self.index < 0x7F:
                return chr(self.index)
            return " "
        return "*"


@dataclass
class Frame:
    """One OSD frame: its timestamp and the visible glyphs."""

    time_millis: int = 0
    glyphs: list[Glyph] = field(default_factory=list)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Frame":
        """Decode a frame: a little-endian u32 timestamp then u16 glyph indices."""
        if len(data) < TIMESTAMP_BYTES or (len(data) - TIMESTAMP_BYTES) % BYTES_PER_GLYPH:
            raise OsdFileError("Malformed OSD file")
        (time_millis,) = struct.unpack_from("<I", data)
        glyphs = [
            Glyph(index, Coordinates(*reversed(divmod(cell, OSD_GRID_WIDTH))))
            for cell, (index,) in enumerate(struct.iter_unpack("<H", data[TIMESTAMP_BYTES:]))
            if index not in _EMPTY_GLYPHS
        ]
        return cls(time_millis=time_millis, glyphs=glyphs)


def _coordinates_from_dict(data: dict[str, Any]) -> Coordinates:
    return Coordinates(data["x"], data["y"])


@dataclass
class OsdOptions:
    """User options that control how the OSD is drawn."""

    position: Coordinates = field(default_factory=lambda: Coordinates(0, 0))
    adjust_playback_speed: bool = False
    no_osd: bool = False
    osd_playback_speed_factor: float = 1.0
    masked_grid_positions: set[Coordinates] = field(default_factory=set)
    osd_playback_offset: float = 0.0
    character_size_class: CharacterSizeClass | None = None
    character_size: Dimension = field(default_factory=lambda: Dimension(0, 0))

    def get_mask(self, position: Coordinates) -> bool:
        """Whether the grid cell is masked out."""
        return position in self.masked_grid_positions

    def toggle_mask(self, position: Coordinates) -> None:
        """Mask the grid cell if it is visible, unmask it otherwise."""
        self.masked_grid_positions ^= {position}

    def reset_mask(self) -> None:
        """Unmask every grid cell."""
        self.masked_grid_positions.clear()

    def to_dict(self) -> dict[str, Any]:
        """The persisted fields as plain data."""
        return {
            "position": {"x": self.position.x, "y": self.position.y},
            "adjust_playback_speed": self.adjust_playback_speed,
            "no_osd": self.no_osd,
            "masked_grid_positions": [
                {"x": p.x, "y": p.y}
                for p in sorted(self.masked_grid_positions, key=lambda p: (p.y, p.x))
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OsdOptions":
        """Rebuild options from persisted data; missing fields take defaults."""
        options = cls()
        if "position" in data:
            options.position = _coordinates_from_dict(data["position"])
        options.adjust_playback_speed = bool(data.get("adjust_playback_speed", options.adjust_playback_speed))
        options.no_osd = bool(data.get("no_osd", options.no_osd))
        options.masked_grid_positions = {
            _coordinates_from_dict(item) for item in data.get("masked_grid_positions", [])
        }
        return options


@dataclass
class OsdFile:
    """A decoded OSD recording."""

    file_path: Path
    fc_firmware: FcFirmware
    frame_count: int
    duration: timedelta
    frames: list[Frame] = field(repr=False)

    @classmethod
    def open(cls, path: str | Path) -> "OsdFile":
        """Read and decode an OSD file."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise OsdFileError("Unable to open OSD file") from exc

        header, body = data[:HEADER_BYTES], data[HEADER_BYTES:]
        fc_firmware = FcFirmware.from_code(header[:FC_TYPE_BYTES])

        frames = [
            Frame.from_bytes(body[start:start + FRAME_BYTES])
            for start in range(0, len(body), FRAME_BYTES)
        ]
        if not frames:
            raise OsdFileError("Malformed OSD file")

        first, last = frames[0], frames[-1]
        frame_interval = (
            (last.time_millis - first.time_millis) / (len(frames) - 1) if len(frames) > 1 else 0.0
        )
        duration = timedelta(milliseconds=last.time_millis) + timedelta(seconds=frame_interval / 1000.0)

        return cls(
            file_path=path,
            fc_firmware=fc_firmware,
            frame_count=len(frames),
            duration=duration,
            frames=frames,
        )