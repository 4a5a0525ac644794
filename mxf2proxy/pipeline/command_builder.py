"""Encoder argument construction.

Everything here is pure data-to-argv: the same request always yields the same
argument lists, so commands can be logged, pasted into a terminal, or asserted
in tests without spawning anything. The only I/O is in
`resolve_enhancements`, which checks that the LUT and watermark image exist.

Layout of a progressive (.mov) encode:

    ffmpeg [-y]
      -i <source | 8-bit intermediate>
      [-i <watermark image>]
      [-i <source>]                    only when reading an intermediate
      [-vf <chain> | -filter_complex <graph>]
      -map <src>:d?  -map <video>  -map <src>:a?
      <video codec args> -c:a copy -c:d copy -sn
      <output>.mov

A broadcast (.mxf) encode is two invocations: a silent MPEG-2 intermediate
with the filters applied, then a stream-copy remux of that video with the
source's data/audio/subtitle tracks and metadata.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from mxf2proxy.config.models import ProxySettings
from mxf2proxy.domain.models import (
    ConversionRequest,
    EncoderChoice,
    EncoderInvocation,
    OutputFormat,
    Watermark,
    WatermarkMode,
)
from mxf2proxy.infrastructure.lut_library import LutLibrary
from mxf2proxy.infrastructure.prepass import DEFAULT_PRESET, PRESETS

CLOBBER_FLAG = "-y"

SOFTWARE_VIDEO_ARGS = ["-c:v", "libx264", "-preset", "fast", "-crf", "18", "-pix_fmt", "yuv420p"]
HARDWARE_VIDEO_ARGS = ["-c:v", "h264_videotoolbox", "-b:v", "20M", "-pix_fmt", "yuv420p"]
BROADCAST_VIDEO_ARGS = ["-c:v", "mpeg2video", "-b:v", "45M", "-maxrate", "45M", "-bufsize", "90M"]

IMAGE_WATERMARK_GRAPH = (
    "scale=-1:-1:flags=bicubic:out_color_matrix=bt709,format=yuv420p[v0];"
    "[{wm}:v]scale=-1:160,format=rgba,colorchannelmixer=aa=0.5[wm];"
    "[v0][wm]overlay=W-w-10:H-h-10[v]"
)

TEXT_HEIGHT_THRESHOLD = 1080
TEXT_FONT_SIZE_LARGE = 72
TEXT_FONT_SIZE_SMALL = 36
TEXT_MARGIN = 40

PREPASS_SUFFIX = "_8bit.mov"
PREPASS_FRAME_HEIGHT = PRESETS[DEFAULT_PRESET][1]
REMUX_TEMP_SUFFIX = "_temp.mov"


@dataclass
class ClipPlan:
    """Invocations for one clip plus the transient files they create."""

    invocations: List[EncoderInvocation]
    intermediates: List[Path] = field(default_factory=list)
    prepass_output: Optional[Path] = None


def choose_encoder(frame_width: int, use_hardware: bool = True, threshold: int = 4096) -> EncoderChoice:
    """Hardware path below the width threshold; unknown width goes to software."""
    if use_hardware and 0 < frame_width < threshold:
        return EncoderChoice.HARDWARE
    return EncoderChoice.SOFTWARE


def output_path_for(source: Path, destination_dir: Path, output_format: OutputFormat) -> Path:
    return Path(destination_dir) / f"{Path(source).stem}{output_format.extension}"


def prepass_path_for(request: ConversionRequest) -> Path:
    return request.destination.parent / f".{request.source.stem}{PREPASS_SUFFIX}"


def remux_temp_path_for(request: ConversionRequest) -> Path:
    return request.destination.parent / f".{request.source.stem}{REMUX_TEMP_SUFFIX}"


def resolve_enhancements(
    settings: ProxySettings,
    lut_library: LutLibrary,
    watermark_image: Optional[Path],
) -> Tuple[Optional[Path], Watermark]:
    """Turns the settings snapshot into a concrete LUT path and watermark."""
    lut_path = None
    if settings.lut_enabled:
        candidate = lut_library.resolve(settings.lut_file)
        if candidate is not None and candidate.is_file():
            lut_path = candidate

    watermark = Watermark()
    if settings.watermark_enabled:
        if settings.watermark_mode == "custom":
            text = settings.watermark_text.strip()
            if text:
                watermark = Watermark(mode=WatermarkMode.TEXT, text=text)
        elif watermark_image is not None and Path(watermark_image).is_file():
            watermark = Watermark(mode=WatermarkMode.IMAGE, image_path=Path(watermark_image))
    return lut_path, watermark


def _backslash_escape(value: str, specials: str) -> str:
    return "".join(f"\\{ch}" if ch in specials else ch for ch in value)


def escape_drawtext(text: str) -> str:
    """Escapes literal text for drawtext inside an unquoted -vf chain.

    Three levels apply, innermost first: drawtext expansion (\\ and %), the
    option parser (\\ ' :), and the filtergraph parser (\\ ' [ ] , ;).
    """
    value = _backslash_escape(text, "\\%")
    value = _backslash_escape(value, "\\':")
    return _backslash_escape(value, "\\'[],;")


def drawtext_font_size(frame_height: int) -> int:
    return TEXT_FONT_SIZE_LARGE if frame_height > TEXT_HEIGHT_THRESHOLD else TEXT_FONT_SIZE_SMALL


def lut_filter(lut_path: Path) -> str:
    return f"lut3d=file='{lut_path}'"


def drawtext_filter(text: str, frame_height: int) -> str:
    return (
        f"drawtext=text={escape_drawtext(text)}"
        f":fontsize={drawtext_font_size(frame_height)}"
        f":fontcolor=white@0.5"
        f":x=(w-text_w)/2:y=h-text_h-{TEXT_MARGIN}"
    )


def build_video_filter(
    request: ConversionRequest,
    watermark_input: int = 1,
    frame_height: Optional[int] = None,
) -> Tuple[List[str], str]:
    """Returns (filter args, video map target) for the primary input 0.

    The LUT is always the first stage and the watermark the last.
    `frame_height` overrides the probed height when input 0 is an intermediate.
    """
    if frame_height is None:
        frame_height = request.frame_height
    lut_stage = lut_filter(request.lut_path) if request.lut_path else None
    watermark = request.watermark

    if watermark.mode == WatermarkMode.IMAGE:
        graph = "[0:v]"
        if lut_stage:
            graph += f"{lut_stage},"
        graph += IMAGE_WATERMARK_GRAPH.format(wm=watermark_input)
        return ["-filter_complex", graph], "[v]"

    stages = []
    if lut_stage:
        stages.append(lut_stage)
    if watermark.mode == WatermarkMode.TEXT and watermark.text:
        stages.append(drawtext_filter(watermark.text, frame_height))
    if stages:
        return ["-vf", ",".join(stages)], "0:v"
    return [], "0:v"


def _inputs(primary: Path, request: ConversionRequest) -> Tuple[List[str], int]:
    """Builds -i arguments; returns them with the index of the original source."""
    args = ["-i", str(primary)]
    index = 1
    if request.watermark.mode == WatermarkMode.IMAGE:
        args += ["-i", str(request.watermark.image_path)]
        index += 1
    if primary != request.source:
        args += ["-i", str(request.source)]
        return args, index
    return args, 0


def _video_codec_args(encoder: EncoderChoice) -> List[str]:
    if encoder == EncoderChoice.HARDWARE:
        return list(HARDWARE_VIDEO_ARGS)
    return list(SOFTWARE_VIDEO_ARGS)


def build_progressive_command(
    request: ConversionRequest,
    force_overwrite: bool = False,
    prepass_output: Optional[Path] = None,
    prepass_height: int = PREPASS_FRAME_HEIGHT,
) -> EncoderInvocation:
    primary = prepass_output or request.source
    args = [CLOBBER_FLAG] if force_overwrite else []
    input_args, src = _inputs(primary, request)
    args += input_args
    filter_height = prepass_height if prepass_output is not None else None
    filter_args, video_map = build_video_filter(request, frame_height=filter_height)
    args += filter_args
    args += [
        "-map", f"{src}:d?",
        "-map", video_map,
        "-map", f"{src}:a?",
    ]
    args += _video_codec_args(request.encoder)
    args += [
        "-c:a", "copy",
        "-c:d", "copy",
        "-sn",
        str(request.destination),
    ]
    return EncoderInvocation(args=args, output_path=request.destination)


def build_broadcast_commands(
    request: ConversionRequest,
    force_overwrite: bool = False,
) -> Tuple[EncoderInvocation, EncoderInvocation]:
    """Intermediate encode and final remux for the .mxf container."""
    temp_path = remux_temp_path_for(request)
    clobber = [CLOBBER_FLAG] if force_overwrite else []

    step_a = list(clobber)
    input_args, _ = _inputs(request.source, request)
    step_a += input_args
    filter_args, video_map = build_video_filter(request)
    step_a += filter_args
    step_a += ["-map", video_map]
    step_a += BROADCAST_VIDEO_ARGS
    step_a += ["-an", "-dn", "-sn", str(temp_path)]

    step_b = list(clobber) + [
        "-i", str(request.source),
        "-i", str(temp_path),
        "-map", "0:d?",
        "-map", "1:v:0",
        "-map", "0:a?",
        "-map", "0:s?",
        "-c:v", "copy",
        "-c:a", "copy",
        "-c:d", "copy",
        "-c:s", "copy",
        "-map_metadata", "0",
        "-f", "mxf",
        str(request.destination),
    ]
    return (
        EncoderInvocation(args=step_a, output_path=temp_path),
        EncoderInvocation(args=step_b, output_path=request.destination),
    )


def plan_conversion(
    request: ConversionRequest,
    force_overwrite: bool = False,
    prepass_height: int = PREPASS_FRAME_HEIGHT,
) -> ClipPlan:
    """All encoder invocations for one clip, in execution order."""
    if request.output_format == OutputFormat.MXF:
        step_a, step_b = build_broadcast_commands(request, force_overwrite)
        return ClipPlan(invocations=[step_a, step_b], intermediates=[step_a.output_path])

    if request.needs_prepass:
        intermediate = prepass_path_for(request)
        invocation = build_progressive_command(
            request, force_overwrite, prepass_output=intermediate, prepass_height=prepass_height
        )
        return ClipPlan(invocations=[invocation], intermediates=[intermediate], prepass_output=intermediate)

    return ClipPlan(invocations=[build_progressive_command(request, force_overwrite)])


def command_as_string(executable: str, invocation: EncoderInvocation) -> str:
    """Human-readable version of the command for logging."""
    return " ".join([executable, *invocation.args])
