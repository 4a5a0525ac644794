"""High-bit-depth pre-pass.

QuickTime sources usually carry 10/12-bit ProRes, which the proxy encode
handles badly. They are first normalised to an 8-bit H.264 intermediate at a
fixed preset size; the proxy encode then reads the intermediate.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple

from mxf2proxy.infrastructure.conversion_log import ConversionLog
from mxf2proxy.infrastructure.subprocess_runner import SubprocessRunner

PRESETS: Dict[str, Tuple[int, int]] = {
    "1280x720": (1280, 720),
    "1920x1080": (1920, 1080),
    "3840x2160": (3840, 2160),
}
DEFAULT_PRESET = "1920x1080"


def build_prepass_args(input_path: Path, output_path: Path, preset: str = DEFAULT_PRESET) -> list:
    width, height = PRESETS[preset]
    return [
        "-y",
        "-i", str(input_path),
        "-map", "0:v:0",
        "-vf", f"scale={width}:{height}:force_original_aspect_ratio=decrease,format=yuv420p",
        "-c:v", "libx264",
        "-preset", "fast",
        "-crf", "18",
        "-an",
        "-sn",
        "-dn",
        str(output_path),
    ]


class FFmpegPrepass:
    """Platform transcode service backed by ffmpeg."""

    def __init__(self, runner: SubprocessRunner, ffmpeg_path: str = "ffmpeg", preset: str = DEFAULT_PRESET):
        if preset not in PRESETS:
            raise ValueError(f"Unknown pre-pass preset: {preset}. Use one of {sorted(PRESETS)}")
        self.runner = runner
        self.ffmpeg_path = ffmpeg_path
        self.preset = preset
        self.logger = logging.getLogger(__name__)

    @property
    def frame_height(self) -> int:
        return PRESETS[self.preset][1]

    def convert(self, input_path: Path, output_path: Path, log: ConversionLog) -> bool:
        args = build_prepass_args(input_path, output_path, self.preset)
        status = self.runner.run(self.ffmpeg_path, args, log.path)
        if status != 0:
            log.write(f"Pre-pass export failed: {input_path.name} (exit {status})")
            return False
        if not output_path.exists():
            log.write(f"Pre-pass export failed: {output_path.name} was not produced")
            return False
        return True
