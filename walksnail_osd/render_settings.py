"""Settings that control how a video is rendered."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, fields
from typing import Any

_INT_FIELDS = {"selected_encoder_idx", "bitrate_mbps"}


def _default_chroma_key() -> tuple[float, float, float, float]:
    return (1.0 / 255.0, 177.0 / 255.0, 64.0 / 255.0, 1.0)


def _chroma_key(value: Any) -> tuple[float, float, float, float]:
    if isinstance(value, (str, bytes)) or not isinstance(value, Sequence):
        raise TypeError("chroma_key must be a sequence of four numbers")
    if len(value) != 4:
        raise ValueError("chroma_key must have four components")
    if any(isinstance(c, bool) or not isinstance(c, (int, float)) for c in value):
        raise TypeError("chroma_key must be a sequence of four numbers")
    return tuple(float(c) for c in value)  # type: ignore[return-value]


@dataclass
class RenderSettings:
    """Encoder choice, quality and output options for a render."""

    selected_encoder_idx: int = 0
    show_undetected_encoders: bool = False
    bitrate_mbps: int = 40
    keep_quality: bool = True
    upscale: bool = False
    rescale_to_4x3_aspect: bool = False
    rendering_live_view: bool = True
    use_chroma_key: bool = False
    chroma_key: tuple[float, float, float, float] = field(default_factory=_default_chroma_key)

    def to_dict(self) -> dict[str, Any]:
        """The settings as plain data."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["chroma_key"] = list(self.chroma_key)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RenderSettings":
        """Rebuild settings from plain data; missing fields take defaults."""
        if not isinstance(data, Mapping):
            raise TypeError("render settings must be a mapping")
        settings = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            value = data[f.name]
            if f.name == "chroma_key":
                value = _chroma_key(value)
            elif f.name in _INT_FIELDS:
                if isinstance(value, bool) or not isinstance(value, int):
                    raise TypeError(f"{f.name} must be an integer")
                if value < 0:
                    raise ValueError(f"{f.name} must not be negative")
            elif not isinstance(value, bool):
                raise TypeError(f"{f.name} must be a boolean")
            setattr(settings, f.name, value)
        return settings