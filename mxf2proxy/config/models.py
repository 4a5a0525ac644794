from pathlib import Path
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator

DEFAULT_LUT_DIR = "~/.mxf2proxy/LUTs"

class GeneralConfig(BaseModel):
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    extensions: List[str] = Field(default_factory=lambda: [".mxf", ".mov"])
    use_hardware: bool = True
    hardware_width_threshold: int = Field(default=4096, gt=0)
    watermark_image: Optional[str] = None
    lut_dir: str = DEFAULT_LUT_DIR
    log_path: Optional[str] = None
    debug: bool = False

    @field_validator("extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [(ext if ext.startswith(".") else f".{ext}").lower() for ext in v]

    @property
    def watermark_image_path(self) -> Optional[Path]:
        return Path(self.watermark_image).expanduser() if self.watermark_image else None

class ProxySettings(BaseModel):
    """User preferences read once at the start of every batch."""
    output_format: str = "mov"
    lut_enabled: bool = False
    lut_file: Optional[str] = None
    watermark_enabled: bool = False
    watermark_mode: str = "default"
    watermark_text: str = ""

    @field_validator("output_format")
    @classmethod
    def validate_output_format(cls, v: str) -> str:
        value = v.strip().lower().lstrip(".")
        if value not in {"mov", "mxf"}:
            raise ValueError(f"Unsupported output format: {v}. Use 'mov' or 'mxf'.")
        return value

    @field_validator("watermark_mode")
    @classmethod
    def validate_watermark_mode(cls, v: str) -> str:
        value = v.strip().lower()
        if value not in {"default", "custom"}:
            raise ValueError(f"Unsupported watermark mode: {v}. Use 'default' or 'custom'.")
        return value

class UiConfig(BaseModel):
    activity_feed_max_items: int = Field(default=5, ge=1, le=20)

class AppConfig(BaseModel):
    general: GeneralConfig = Field(default_factory=GeneralConfig)
    settings: ProxySettings = Field(default_factory=ProxySettings)
    ui: UiConfig = Field(default_factory=UiConfig)
