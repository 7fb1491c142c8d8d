"""Events read from ffmpeg processes and messages exchanged with a render."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

log = logging.getLogger(__name__)


class LogLevel(Enum):
    """Severity of an ffmpeg log line."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"
    UNKNOWN = "unknown"


_LEVELS = {
    "info": LogLevel.INFO,
    "verbose": LogLevel.INFO,
    "debug": LogLevel.INFO,
    "trace": LogLevel.INFO,
    "warning": LogLevel.WARNING,
    "error": LogLevel.ERROR,
    "fatal": LogLevel.FATAL,
    "panic": LogLevel.FATAL,
}


@dataclass(frozen=True)
class FfmpegProgress:
    """A progress report from an ffmpeg process."""

    frame: int = 0
    fps: float = 0.0
    q: float = 0.0
    size_kb: int = 0
    time: str = ""
    bitrate_kbps: float = 0.0
    speed: float = 0.0
    raw_log_message: str = ""


@dataclass
class OutputVideoFrame:
    """A raw decoded video frame."""

    width: int
    height: int
    pix_fmt: str
    output_index: int
    data: bytes
    frame_num: int
    timestamp: float


@dataclass(frozen=True)
class ProgressEvent:
    progress: FfmpegProgress


@dataclass(frozen=True)
class LogEvent:
    level: LogLevel
    message: str


@dataclass(frozen=True)
class LogEOFEvent:
    """The process closed its log output."""


@dataclass(frozen=True)
class DoneEvent:
    """The process has finished producing output."""


@dataclass
class OutputFrameEvent:
    frame: OutputVideoFrame


FfmpegEvent = Union[ProgressEvent, LogEvent, LogEOFEvent, DoneEvent, OutputFrameEvent]


@dataclass(frozen=True)
class DecoderFatalError:
    message: str


@dataclass(frozen=True)
class EncoderFatalError:
    message: str


@dataclass(frozen=True)
class DecoderProgress:
    progress: FfmpegProgress


@dataclass(frozen=True)
class EncoderProgress:
    progress: FfmpegProgress


@dataclass(frozen=True)
class DecoderFinished:
    pass


@dataclass(frozen=True)
class EncoderFinished:
    pass


@dataclass(frozen=True)
class AbortRender:
    """Asks a running render to stop."""


_LEVEL_PREFIX_RE = re.compile(r"\[(\w+)\]\s?(.*)", re.DOTALL)
_PAIR_RE = re.compile(r"(\w+)=\s*(\S+)")
_NUMBER_RE = re.compile(r"[+-]?[0-9]*\.?[0-9]+")


def _number(text: str | None) -> float:
    if text is None:
        return 0.0
    match = _NUMBER_RE.match(text)
    return float(match.group()) if match else 0.0


def _parse_progress(message: str) -> FfmpegProgress | None:
    pairs = dict(_PAIR_RE.findall(message))
    if "frame" not in pairs or "time" not in pairs:
        return None
    return FfmpegProgress(
        frame=int(_number(pairs.get("frame"))),
        fps=_number(pairs.get("fps")),
        q=_number(pairs.get("q")),
        size_kb=int(_number(pairs.get("size", pairs.get("Lsize")))),
        time=pairs["time"],
        bitrate_kbps=_number(pairs.get("bitrate")),
        speed=_number(pairs.get("speed")),
        raw_log_message=message,
    )


def parse_log_line(line: str) -> FfmpegEvent:
    """Turn one line of ffmpeg's stderr into an event.

    Lines are expected to carry ffmpeg's ``[level]`` prefix; progress lines
    become progress events, all others log events.
    """
    line = line.rstrip("\r\n")
    level = LogLevel.UNKNOWN
    message = line
    match = _LEVEL_PREFIX_RE.fullmatch(line)
    if match and match.group(1).lower() in _LEVELS:
        level = _LEVELS[match.group(1).lower()]
        message = match.group(2)
    progress = _parse_progress(message)
    if progress is not None:
        return ProgressEvent(progress)
    return LogEvent(level, message)


def _is_encoder_fatal(event: LogEvent) -> bool:
    # Some failures ffmpeg reports as plain errors still end the encode.
    return (
        event.level is LogLevel.FATAL
        or "Error initializing output stream" in event.message
        or "[error] Cannot load" in event.message
    )


def handle_encoder_events(event: Any, sender: Any) -> None:
    """Forward the encoder events the render cares about to ``sender.put``."""
    if isinstance(event, ProgressEvent):
        sender.put(EncoderProgress(event.progress))
    elif isinstance(event, LogEvent):
        if _is_encoder_fatal(event):
            log.error("ffmpeg fatal error: %s", event.message)
            sender.put(EncoderFatalError(event.message))
        else:
            log.info("ffmpeg encoder >>> %s", event.message)
    elif isinstance(event, LogEOFEvent):
        log.warning("ffmpeg encoder EOF reached")
        sender.put(EncoderFinished())


def handle_decoder_events(event: Any, sender: Any) -> None:
    """Forward the decoder events the render cares about to ``sender.put``."""
    if isinstance(event, ProgressEvent):
        sender.put(DecoderProgress(event.progress))
    elif isinstance(event, (DoneEvent, LogEOFEvent)):
        sender.put(DecoderFinished())
    elif isinstance(event, LogEvent):
        if event.level is LogLevel.FATAL:
            log.error("ffmpeg fatal error: %s", event.message)
            sender.put(DecoderFatalError(event.message))
        elif event.level in (LogLevel.WARNING, LogLevel.ERROR):
            log.warning("ffmpeg log: %s", event.message)