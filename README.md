# walksnail_osd

A library for putting the on-screen display of a Walksnail Avatar goggle
recording back onto the video it was recorded with.

The goggles store the flight controller's OSD as a separate `.osd` file and the
link telemetry (signal, battery, latency, bitrate, distance and, in debug mode,
radio and camera details) as an `.srt` subtitle file. This package reads both,
draws them onto every decoded frame using a Betaflight/INAV style glyph font,
and hands the frames to an ffmpeg encoder.

## What it does

- `walksnail_osd.osd`: reads `.osd` recordings (`OsdFile.open`), detecting the
  flight controller firmware (`FcFirmware`) and decoding each frame's glyph
  grid (`Frame`, `Glyph`).
- `walksnail_osd.font`: reads OSD glyph fonts (`FontFile.open`), working out
  the glyph size and the number of colour pages from the image dimensions
  (`detect_font_character_size`, `FontType`), and scales glyphs by a size class
  (`CharacterSizeClass`).
- `walksnail_osd.srt`: reads `.srt` telemetry (`SrtFile.open`, `parse_srt`),
  parsing both the regular line (`SrtFrameData.parse`) and the debug line
  (`SrtDebugFrameData.parse`).
- `walksnail_osd.overlay_osd` and `walksnail_osd.overlay_srt`: draw OSD
  glyphs (`overlay_osd`) and telemetry text (`overlay_srt_data`,
  `overlay_srt_debug_data`) onto Pillow RGBA images, with per-cell masking of
  OSD elements (`OsdOptions.toggle_mask`). `format_srt_data` and
  `format_srt_debug_data` return the text that would be drawn.
- `walksnail_osd.video_info`: probes videos with ffprobe (`VideoInfo.get`).
- `walksnail_osd.encoders`: lists the encoders known for a platform
  (`all_encoders`) and finds which of them ffmpeg can use on this machine
  (`Encoder.get_available_encoders`).
- `walksnail_osd.render`: runs the decode → overlay → encode pipeline
  (`start_video_render`); `build_encoder_command` shows the encoder command
  line without starting anything.
- `walksnail_osd.config`: keeps settings between sessions as JSON in the user's
  configuration directory (`AppConfig.load_or_create`, `AppConfig.save`,
  `default_config_path`).

ffmpeg and ffprobe must be installed; `ffmpeg_available` and
`ffprobe_available` in `walksnail_osd.encoders` tell you whether they can be
started.

## Reading recordings

```python
from walksnail_osd.osd import OsdFile
from walksnail_osd.srt import SrtFile
from walksnail_osd.font import FontFile

osd = OsdFile.open("AvatarG0001.osd")
print(osd.fc_firmware, osd.frame_count, osd.duration)

first = osd.frames[0]
print(first.time_millis, "".join(str(glyph) for glyph in first.glyphs))

srt = SrtFile.open("AvatarG0001.srt")
print(srt.has_debug, srt.has_distance, srt.duration)

font = FontFile.open("WS_BFx4_Nexus_Moonlight_2160p.png")
print(font.font_type, font.font_character_size, font.character_count)
```

Telemetry lines can also be parsed on their own:

```python
from walksnail_osd.srt import SrtFrameData

data = SrtFrameData.parse(
    "Signal:4 CH:7 FlightTime:0 SBat:16.7V GBat:12.5V "
    "Delay:25ms Bitrate:25.0Mbps Distance:1m"
)
print(data.latency, data.bitrate_mbps)
```

## Rendering a video

```python
from walksnail_osd.config import AppConfig
from walksnail_osd.encoders import Encoder
from walksnail_osd.messages import AbortRender, EncoderFinished
from walksnail_osd.render import start_video_render
from walksnail_osd.video_info import VideoInfo

config = AppConfig.load_or_create()
info = VideoInfo.get("AvatarG0001.mp4", "ffprobe")
encoders = [e for e in Encoder.get_available_encoders("ffmpeg") if e.detected]

to_render, from_render, preview = start_video_render(
    "ffmpeg",
    "AvatarG0001.mp4",
    "AvatarG0001_with_osd.mp4",
    osd.frames,
    srt.frames,
    font,
    "AzeretMono-Regular.ttf",
    config.osd_options,
    config.srt_options,
    info,
    config.render_options,
    encoders[0],
)

while not isinstance(message := from_render.get(), EncoderFinished):
    print(message)
```

The render runs on background threads and returns three `queue.Queue`
objects. Progress, completion and fatal errors arrive on the second as
messages (`DecoderProgress`, `EncoderProgress`, `DecoderFinished`,
`EncoderFinished`, `DecoderFatalError`, `EncoderFatalError`). Putting
`AbortRender()` on the first asks the decoder to quit. The third holds at
most one Pillow image: the most recent finished frame, for preview.

The telemetry font may be a font file path, font bytes, a loaded Pillow font,
or `None` for Pillow's built-in font. With `RenderSettings.keep_quality` on
(the default), the encoder must have constant-quality arguments, otherwise
`build_encoder_command` raises `ValueError`.

## Settings

`RenderSettings` chooses the bitrate or constant-quality mode, upscaling to
1440p, a 4:3 display aspect and an optional chroma-key background so the
overlay can be rendered alone. `OsdOptions` moves the OSD, adjusts its
playback offset and speed, and masks grid cells. `SrtOptions` places and scales
the telemetry text and selects which fields are shown. Each has `to_dict` and
`from_dict`; `AppConfig` combines them with the last font path and theme
choice.

## What it does not do

This is a library only. It has no command-line program and no graphical
interface: there is no window for picking files, previewing frames or editing
the OSD mask, and no application update check. Those are left to the program
that uses the package.