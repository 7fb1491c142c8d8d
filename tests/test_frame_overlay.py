import io
import queue
from types import SimpleNamespace

import pytest
from PIL import Image

from walksnail_osd.font import FontFile
from walksnail_osd.frame_overlay import FrameOverlayIter
from walksnail_osd.messages import (
    AbortRender,
    DecoderFatalError,
    DecoderFinished,
    DoneEvent,
    LogEvent,
    LogLevel,
    OutputFrameEvent,
    OutputVideoFrame,
)
from walksnail_osd.osd import Frame, Glyph, OsdOptions
from walksnail_osd.srt import SrtOptions
from walksnail_osd.util import Coordinates

WIDTH, HEIGHT = 212, 120  # 4x6 pixel grid cells, no margins
RED = (255, 0, 0, 255)


@pytest.fixture
def font(tmp_path):
    path = tmp_path / "font.png"
    Image.new("RGBA", (24, 36 * 256), RED).save(path)
    return FontFile.open(path)


def video_frame(num, timestamp):
    return OutputFrameEvent(
        OutputVideoFrame(WIDTH, HEIGHT, "rgba", 0, bytes(WIDTH * HEIGHT * 4), num, timestamp)
    )


def make_iter(events, font, osd_frames=(), osd_options=None, receiver=None, chroma_key=None, process=None):
    return FrameOverlayIter(
        events,
        process,
        list(osd_frames),
        None,
        font,
        None,
        osd_options or OsdOptions(),
        SrtOptions(no_srt=True),
        queue.Queue() if receiver is None else receiver,
        receiver,
        chroma_key,
    )


def pixel(frame, x, y):
    return Image.frombytes("RGBA", (frame.width, frame.height), frame.data).getpixel((x, y))


def test_osd_frames_follow_video_timestamps(font):
    osd_frames = [
        Frame(0, [Glyph(65, Coordinates(0, 0))]),
        Frame(1000, [Glyph(65, Coordinates(1, 0))]),
    ]
    events = [video_frame(0, 0.5), video_frame(1, 1.5)]
    first, second = list(make_iter(events, font, osd_frames))
    assert pixel(first, 0, 0) == RED
    assert pixel(first, 4, 0) == (0, 0, 0, 0)
    assert pixel(second, 4, 0) == RED
    assert pixel(second, 0, 0) == (0, 0, 0, 0)


def test_first_frame_before_any_osd_frame_is_blank(font):
    osd_frames = [Frame(1000, [Glyph(65, Coordinates(0, 0))])]
    (frame,) = list(make_iter([video_frame(0, 0.0)], font, osd_frames))
    assert frame.data == bytes(WIDTH * HEIGHT * 4)


def test_masked_glyphs_are_not_drawn(font):
    options = OsdOptions()
    options.toggle_mask(Coordinates(0, 0))
    osd_frames = [Frame(0, [Glyph(65, Coordinates(0, 0))])]
    (frame,) = list(make_iter([video_frame(0, 0.5)], font, osd_frames, osd_options=options))
    assert pixel(frame, 0, 0) == (0, 0, 0, 0)


def test_no_osd_with_chroma_key_fills_frame(font):
    options = OsdOptions(no_osd=True)
    osd_frames = [Frame(0, [Glyph(65, Coordinates(0, 0))])]
    (frame,) = list(
        make_iter([video_frame(0, 0.5)], font, osd_frames, osd_options=options, chroma_key=(0.0, 1.0, 0.0, 1.0))
    )
    assert frame.data == bytes([0, 255, 0, 255]) * (WIDTH * HEIGHT)


def test_other_events_are_forwarded(font):
    sender = queue.Queue()
    events = [LogEvent(LogLevel.FATAL, "boom"), video_frame(0, 0.0), DoneEvent()]
    it = FrameOverlayIter(
        events, None, [], None, font, None, OsdOptions(), SrtOptions(no_srt=True), sender, None, None
    )
    frames = list(it)
    assert len(frames) == 1
    assert sender.get_nowait() == DecoderFatalError("boom")
    assert sender.get_nowait() == DecoderFinished()
    assert sender.empty()


def test_abort_asks_decoder_to_quit(font):
    receiver = queue.Queue()
    receiver.put(AbortRender())
    process = SimpleNamespace(stdin=io.BytesIO())
    it = FrameOverlayIter(
        [video_frame(0, 0.0)], process, [], None, font, None, OsdOptions(), SrtOptions(no_srt=True),
        queue.Queue(), receiver, None,
    )
    frame = next(it)
    assert frame.frame_num == 0
    assert process.stdin.getvalue() == b"q"


def test_negative_offset_needs_frames(font):
    with pytest.raises(ValueError):
        make_iter([], font, [], osd_options=OsdOptions(osd_playback_offset=-1.0))


def test_negative_offset_starts_with_first_osd_frame(font):
    options = OsdOptions(osd_playback_offset=-1.0)
    osd_frames = [Frame(5000, [Glyph(65, Coordinates(0, 0))])]
    (frame,) = list(make_iter([video_frame(0, 0.0)], font, osd_frames, osd_options=options))
    assert pixel(frame, 0, 0) == RED