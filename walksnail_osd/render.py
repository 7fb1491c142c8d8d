"""Running the decoder and encoder ffmpeg processes for a render."""

from __future__ import annotations

import contextlib
import logging
import os
import queue
import re
import subprocess
import threading
from collections.abc import Iterator, Sequence
from pathlib import Path
from typing import Any

from PIL import Image

from .encoders import Encoder
from .frame_overlay import FrameOverlayIter
from .messages import (
    DoneEvent,
    LogEOFEvent,
    OutputFrameEvent,
    OutputVideoFrame,
    handle_encoder_events,
    parse_log_line,
)
from .util import command_to_cli

log = logging.getLogger(__name__)

READY_FRAMES_QUEUE_SIZE = 256
_LOG_ARGS = ("-loglevel", "level+info")
_LINE_BREAK_RE = re.compile(rb"\r\n|\r|\n")
_FINISHED = object()


def _creationflags() -> int:
    return getattr(subprocess, "CREATE_NO_WINDOW", 0)


def _format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else repr(value)


def _log_lines(stream: Any) -> Iterator[str]:
    """Lines of a byte stream; ffmpeg ends progress lines with a bare carriage return."""
    read = getattr(stream, "read1", stream.read)
    buffer = b""
    while chunk := read(4096):
        buffer += chunk
        *lines, buffer = _LINE_BREAK_RE.split(buffer)
        yield from (line.decode("utf-8", "replace") for line in lines if line)
    if buffer:
        yield buffer.decode("utf-8", "replace")


def _read_chunks(stream: Any, size: int) -> Iterator[bytes]:
    if size <= 0:
        return
    while True:
        data = stream.read(size)
        if not data or len(data) < size:
            return
        yield data


def spawn_decoder(ffmpeg_path: Any, input_video: Any) -> subprocess.Popen:
    """Start ffmpeg decoding the input video to raw RGBA frames on stdout."""
    args = [
        os.fspath(ffmpeg_path),
        *_LOG_ARGS,
        "-hwaccel",
        "auto",
        "-i",
        os.fspath(input_video),
        "-f",
        "rawvideo",
        "-pix_fmt",
        "rgba",
        "-",
    ]
    log.debug("Decoder: %s", command_to_cli(args[0], args[1:]))
    return subprocess.Popen(
        args,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        creationflags=_creationflags(),
    )


def decoder_events(process: Any, width: int, height: int, frame_rate: float) -> Iterator[Any]:
    """Events from a decoder process: its frames, log lines and end markers."""
    events: queue.Queue = queue.Queue()
    frame_size = width * height * 4

    def read_frames() -> None:
        try:
            for frame_num, data in enumerate(_read_chunks(process.stdout, frame_size)):
                timestamp = frame_num / frame_rate if frame_rate else 0.0
                frame = OutputVideoFrame(width, height, "rgba", 0, data, frame_num, timestamp)
                events.put(OutputFrameEvent(frame))
        except (OSError, ValueError) as exc:
            log.error("Failed to read decoded frames: %s", exc)
        finally:
            events.put(DoneEvent())
            events.put(_FINISHED)

    def read_log() -> None:
        try:
            for line in _log_lines(process.stderr):
                events.put(parse_log_line(line))
        except (OSError, ValueError) as exc:
            log.error("Failed to read decoder log: %s", exc)
        finally:
            events.put(LogEOFEvent())
            events.put(_FINISHED)

    for target in (read_frames, read_log):
        threading.Thread(target=target, name=f"decoder {target.__name__}", daemon=True).start()

    remaining = 2
    while remaining:
        event = events.get()
        if event is _FINISHED:
            remaining -= 1
        else:
            yield event


def encoder_events(process: Any) -> Iterator[Any]:
    """Events from an encoder process's log, ending with a log EOF event."""
    for line in _log_lines(process.stderr):
        yield parse_log_line(line)
    yield LogEOFEvent()


def build_encoder_command(
    ffmpeg_path: Any,
    width: int,
    height: int,
    frame_rate: float,
    time_base: int,
    bitrate_mbps: int,
    keep_quality: bool,
    video_encoder: Encoder,
    output_video: Any,
    upscale: bool,
    rescale_to_4x3_aspect: bool,
    chroma_key: Sequence[float] | None,
    original_file: Any,
) -> list[str]:
    """The encoder command line: raw RGBA frames on stdin, audio from the original."""
    nvenc = "nvenc" in video_encoder.name
    output = Path(output_video)
    args = [
        os.fspath(ffmpeg_path),
        *_LOG_ARGS,
        "-f", "rawvideo",
        "-pix_fmt", "rgba",
        "-s", f"{width}x{height}",
        "-r", _format_number(frame_rate),
        "-i", "-",
        "-i", os.fspath(original_file),
        "-map", "0",
        "-map", "1:a?",
        "-c:a", "copy",
    ]

    if upscale:
        if nvenc:
            args += ["-vf", "format=rgb24,hwupload_cuda,scale_cuda=-2:1440:3", "-preset", "p7", "-tune", "hq"]
        else:
            args += ["-vf", "scale=-2:1440:flags=bicubic"]
    elif nvenc:
        args += ["-vf", "format=rgb24,hwupload_cuda", "-preset", "p7", "-tune", "hq"]

    if rescale_to_4x3_aspect:
        # Changes only the container's display aspect, not the stored resolution.
        args += ["-aspect", "4:3"]

    args += ["-c:v", video_encoder.name]

    if keep_quality:
        if video_encoder.constant_quality_args is None:
            raise ValueError(f"encoder {video_encoder.name} has no constant quality mode")
        args += list(video_encoder.constant_quality_args)
    else:
        args += ["-b:v", f"{bitrate_mbps}M"]

    args += list(video_encoder.extra_args)
    args += ["-video_track_timescale", str(time_base)]

    if video_encoder.name == "prores_ks":
        output = output.with_suffix(".mov")
    elif chroma_key is None and not nvenc:
        args += ["-pix_fmt", "yuv420p"]

    args += ["-y", os.fspath(output)]
    return args


def spawn_encoder(
    ffmpeg_path: Any,
    width: int,
    height: int,
    frame_rate: float,
    time_base: int,
    bitrate_mbps: int,
    keep_quality: bool,
    video_encoder: Encoder,
    output_video: Any,
    upscale: bool,
    rescale_to_4x3_aspect: bool,
    chroma_key: Sequence[float] | None,
    original_file: Any,
) -> subprocess.Popen:
    """Start the encoder process; frames are written to its stdin."""
    args = build_encoder_command(
        ffmpeg_path, width, height, frame_rate, time_base, bitrate_mbps, keep_quality, video_encoder,
        output_video, upscale, rescale_to_4x3_aspect, chroma_key, original_file,
    )
    log.info("Encoder: %s", command_to_cli(args[0], args[1:]))
    return subprocess.Popen(
        args,
        stdin=subprocess.PIPE,
        stdout=subprocess.DEVNULL,
        stderr=subprocess.PIPE,
        creationflags=_creationflags(),
    )


def _push_frames(frames: FrameOverlayIter, ready: queue.Queue) -> None:
    try:
        for frame in frames:
            ready.put(frame)
    except Exception:
        log.exception("Frame overlay failed")
    finally:
        ready.put(None)


def _feed_encoder(ready: queue.Queue, encoder_stdin: Any, frames_for_ui: queue.Queue) -> None:
    while (frame := ready.get()) is not None:
        # A slow write means the encoder is the bottleneck.
        try:
            encoder_stdin.write(frame.data)
        except (OSError, ValueError) as exc:
            log.error("Failed to write frame: %s", exc)
            continue
        if frames_for_ui.empty():
            image = Image.frombytes("RGBA", (frame.width, frame.height), bytes(frame.data))
            with contextlib.suppress(queue.Full):
                frames_for_ui.put_nowait(image)
    with contextlib.suppress(OSError, ValueError):
        encoder_stdin.close()


def _watch_encoder(process: Any, from_ffmpeg: queue.Queue) -> None:
    for event in encoder_events(process):
        handle_encoder_events(event, from_ffmpeg)
    process.wait()


def start_video_render(
    ffmpeg_path: Any,
    input_video: Any,
    output_video: Any,
    osd_frames: Sequence[Any],
    srt_frames: Sequence[Any] | None,
    font_file: Any,
    srt_font: Any,
    osd_options: Any,
    srt_options: Any,
    video_info: Any,
    render_settings: Any,
    encoder: Encoder,
) -> tuple[queue.Queue, queue.Queue, queue.Queue]:
    """Start a render in background threads.

    Returns the queue for messages to the render, the queue of messages from
    it, and a one-slot queue of recent frames for display.
    """
    if Path(input_video) == Path(output_video):
        raise ValueError("input and output video must differ")

    chroma_key = render_settings.chroma_key if render_settings.use_chroma_key else None

    decoder_process = spawn_decoder(ffmpeg_path, input_video)
    encoder_process = spawn_encoder(
        ffmpeg_path,
        video_info.width,
        video_info.height,
        video_info.frame_rate,
        video_info.time_base,
        render_settings.bitrate_mbps,
        render_settings.keep_quality,
        encoder,
        output_video,
        render_settings.upscale,
        render_settings.rescale_to_4x3_aspect,
        chroma_key,
        input_video,
    )

    from_ffmpeg: queue.Queue = queue.Queue()
    to_ffmpeg: queue.Queue = queue.Queue()
    frames_for_ui: queue.Queue = queue.Queue(maxsize=1)

    frames = FrameOverlayIter(
        decoder_events(decoder_process, video_info.width, video_info.height, video_info.frame_rate),
        decoder_process,
        osd_frames,
        srt_frames,
        font_file,
        srt_font,
        osd_options,
        srt_options,
        from_ffmpeg,
        to_ffmpeg,
        chroma_key,
    )

    ready: queue.Queue = queue.Queue(maxsize=READY_FRAMES_QUEUE_SIZE)
    threads = [
        threading.Thread(target=_push_frames, args=(frames, ready), name="Push ready frames to queue"),
        threading.Thread(
            target=_feed_encoder,
            args=(ready, encoder_process.stdin, frames_for_ui),
            name="Pop ready frames from queue to encoder",
        ),
        threading.Thread(target=_watch_encoder, args=(encoder_process, from_ffmpeg), name="Encoder handler"),
    ]
    for thread in threads:
        thread.daemon = True
        thread.start()

    return to_ffmpeg, from_ffmpeg, frames_for_ui