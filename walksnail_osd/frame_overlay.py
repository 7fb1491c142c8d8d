"""Pairing decoded video frames with OSD and subtitle frames and drawing them."""

from __future__ import annotations

import copy
import logging
import math
import queue
from collections import deque
from collections.abc import Iterable, Sequence
from typing import Any

from PIL import Image

from .font import FontFile
from .messages import AbortRender, OutputFrameEvent, OutputVideoFrame, handle_decoder_events
from .osd import Frame, OsdOptions
from .overlay_osd import overlay_osd
from .overlay_srt import overlay_srt_data, overlay_srt_debug_data
from .srt import SrtFrame, SrtOptions

log = logging.getLogger(__name__)


def _to_u8(component: float) -> int:
    if math.isnan(component):
        return 0
    return int(min(max(component * 255.0, 0.0), 255.0))


class FrameOverlayIter:
    """Iterates over decoded video frames with the OSD and telemetry drawn on them.

    Non-frame decoder events are forwarded to ``ffmpeg_sender`` as they pass by.
    An ``AbortRender`` message on ``ffmpeg_receiver`` asks the decoder to quit.
    """

    def __init__(
        self,
        decoder_events: Iterable[Any],
        decoder_process: Any,
        osd_frames: Iterable[Frame],
        srt_frames: Iterable[SrtFrame] | None,
        font_file: FontFile,
        srt_font: Any,
        osd_options: OsdOptions,
        srt_options: SrtOptions,
        ffmpeg_sender: Any,
        ffmpeg_receiver: Any,
        chroma_key: Sequence[float] | None = None,
    ) -> None:
        self._events = iter(decoder_events)
        self._decoder_process = decoder_process
        self._osd_frames: deque[Frame] = deque(osd_frames)
        self._srt_frames: deque[SrtFrame] = deque(srt_frames or ())
        self.font_file = font_file
        self.srt_font = srt_font
        self.osd_options = copy.deepcopy(osd_options)
        self.srt_options = copy.deepcopy(srt_options)
        self._sender = ffmpeg_sender
        self._receiver = ffmpeg_receiver

        if self.osd_options.osd_playback_offset >= 0.0:
            self._current_osd_frame = Frame()
        else:
            if not self._osd_frames:
                raise ValueError("a negative OSD offset needs at least one OSD frame")
            self._current_osd_frame = self._osd_frames.popleft()

        self._current_srt_frame = self._srt_frames.popleft() if self._srt_frames else None
        self._chroma_key = None if chroma_key is None else tuple(_to_u8(c) for c in chroma_key)

    def __iter__(self) -> "FrameOverlayIter":
        return self

    def __next__(self) -> OutputVideoFrame:
        self._handle_abort_requests()
        for event in self._events:
            if isinstance(event, OutputFrameEvent):
                return self._overlay(event.frame)
            log.debug("%r", event)
            handle_decoder_events(event, self._sender)
        raise StopIteration

    def _handle_abort_requests(self) -> None:
        if self._receiver is None:
            return
        while True:
            try:
                message = self._receiver.get_nowait()
            except queue.Empty:
                return
            if not isinstance(message, AbortRender):
                return
            self._quit_decoder()

    def _quit_decoder(self) -> None:
        process = self._decoder_process
        if process is None:
            return
        stdin = getattr(process, "stdin", None)
        if stdin is not None:
            try:
                stdin.write(b"q")
                stdin.flush()
                return
            except (OSError, ValueError):
                pass
        process.terminate()

    def _advance(self, timestamp: float) -> None:
        options = self.osd_options
        if self._osd_frames:
            next_osd_secs = options.osd_playback_offset + self._osd_frames[0].time_millis / 1000.0
            if timestamp > next_osd_secs * options.osd_playback_speed_factor:
                self._current_osd_frame = self._osd_frames.popleft()

        if self._srt_frames and timestamp > self._srt_frames[0].start_time_secs:
            self._current_srt_frame = self._srt_frames.popleft()

    def _overlay(self, video_frame: OutputVideoFrame) -> OutputVideoFrame:
        self._advance(video_frame.timestamp)

        size = (video_frame.width, video_frame.height)
        if self._chroma_key is not None:
            image = Image.new("RGBA", size, self._chroma_key)
        else:
            image = Image.frombytes("RGBA", size, bytes(video_frame.data))

        if not self.osd_options.no_osd:
            overlay_osd(image, self._current_osd_frame, self.font_file, self.osd_options)

        srt_frame = self._current_srt_frame
        if not self.srt_options.no_srt and srt_frame is not None:
            if srt_frame.data is not None:
                overlay_srt_data(image, srt_frame.data, self.srt_font, self.srt_options)
            if srt_frame.debug_data is not None:
                overlay_srt_debug_data(image, srt_frame.debug_data, self.srt_font, self.srt_options)

        video_frame.data = image.tobytes()
        return video_frame