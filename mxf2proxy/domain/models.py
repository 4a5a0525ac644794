from enum import Enum
from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

class OutputFormat(str, Enum):
    MOV = "mov"  # progressive-scan container
    MXF = "mxf"  # broadcast container

    @property
    def extension(self) -> str:
        return f".{self.value}"

class WatermarkMode(str, Enum):
    NONE = "none"
    IMAGE = "image"
    TEXT = "text"

class EncoderChoice(str, Enum):
    HARDWARE = "hardware"
    SOFTWARE = "software"

class ClipOutcome(str, Enum):
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"
    CANCELLED = "CANCELLED"  # batch cancelled from the duplicate prompt

class BatchResult(str, Enum):
    COMPLETED = "COMPLETED"
    ABORTED = "ABORTED"  # destination cancelled or not creatable
    CANCELLED = "CANCELLED"
    STOPPED = "STOPPED"  # shutdown requested before all clips started

class DuplicateVerdict(str, Enum):
    OVERWRITE = "overwrite"
    SKIP = "skip"
    OVERWRITE_ALL = "overwrite-all"
    SKIP_ALL = "skip-all"
    CANCEL = "cancel"

class Watermark(BaseModel):
    model_config = ConfigDict(frozen=True)

    mode: WatermarkMode = WatermarkMode.NONE
    text: Optional[str] = None
    image_path: Optional[Path] = None

class DestinationDecision(BaseModel):
    """Answer of the UI collaborator to the destination prompt."""
    use_default: bool = True
    directory: Optional[Path] = None
    picker_opened_at: Optional[float] = None  # epoch seconds
    # Whether the chosen directory was already there when the picker opened.
    existed_before: bool = True

class Job(BaseModel):
    source: Path
    clips: List[Path] = Field(default_factory=list)
    destination: Optional[Path] = None
    overwrite_all: bool = False
    skip_all: bool = False
    remaining_clips: int = 0
    cancelled: bool = False

    @property
    def is_directory(self) -> bool:
        return self.source.is_dir()

    def clip_done(self):
        self.remaining_clips = max(0, self.remaining_clips - 1)

class ConversionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    source: Path
    output_format: OutputFormat
    destination: Path
    lut_path: Optional[Path] = None
    watermark: Watermark = Field(default_factory=Watermark)
    encoder: EncoderChoice = EncoderChoice.SOFTWARE
    frame_width: int = 0
    frame_height: int = 0

    @property
    def needs_prepass(self) -> bool:
        """ProRes-in-QuickTime sources are normalised to 8-bit first (progressive output only)."""
        return self.source.suffix.lower() == ".mov" and self.output_format == OutputFormat.MOV

class EncoderInvocation(BaseModel):
    model_config = ConfigDict(frozen=True)

    args: List[str]
    output_path: Path
