import math
from pydantic import BaseModel, ConfigDict, Field
from typing import Dict, Optional, Any
from datetime import datetime
from enum import Enum

from subconv import config

class TaskStatus(str, Enum):
    UPLOADED = "uploaded"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

class SubtitleFormat(str, Enum):
    SRT = "srt"
    VTT = "vtt"
    TTML = "ttml"
    XML = "xml"
    JSON = "json"
    ASS = "ass"

class ScaleXMode(str, Enum):
    KEEP = "keep"
    ASPECT = "aspect"

class BorderMode(str, Enum):
    MEAN = "mean"
    VERTICAL = "vertical"

class LineEnding(str, Enum):
    LF = "lf"
    CRLF = "crlf"

class ResamplePolicy(BaseModel):
    """
    Knobs for the ASS resampler.

    The scale-x mode, border mode and line ending/BOM flags cover the points
    where resampling conventions disagree; the defaults come from config.
    """
    model_config = ConfigDict(frozen=True)

    target_width: int = Field(default=config.TARGET_PLAYRES_X, gt=0)
    target_height: int = Field(default=config.TARGET_PLAYRES_Y, gt=0)
    default_source_width: int = Field(default=config.DEFAULT_PLAYRES_X, gt=0)
    default_source_height: int = Field(default=config.DEFAULT_PLAYRES_Y, gt=0)
    font_name: str = config.TARGET_FONT_NAME
    reference_style_name: str = config.REFERENCE_STYLE_NAME
    scale_x_mode: ScaleXMode = ScaleXMode(config.SCALE_X_MODE)
    border_mode: BorderMode = BorderMode(config.BORDER_MODE)
    replace_inline_fonts: bool = config.REPLACE_INLINE_FONTS
    precision: int = Field(default=config.NUMBER_PRECISION, ge=0, le=6)
    line_ending: LineEnding = LineEnding(config.OUTPUT_LINE_ENDING)
    write_bom: bool = config.OUTPUT_BOM

class ScaleContext(BaseModel):
    """
    Source/target resolution of one document and the ratios derived from them.
    """
    model_config = ConfigDict(frozen=True)

    source_width: float
    source_height: float
    target_width: float
    target_height: float
    declared: bool = True

    @property
    def ratio_x(self) -> float:
        return self.target_width / self.source_width

    @property
    def ratio_y(self) -> float:
        return self.target_height / self.source_height

    @property
    def mean_ratio(self) -> float:
        return math.sqrt(self.ratio_x * self.ratio_y)

    @property
    def aspect_ratio(self) -> float:
        # horizontal stretch needed to keep glyph proportions
        return self.ratio_x / self.ratio_y

    @property
    def is_identity(self) -> bool:
        return abs(self.ratio_x - 1.0) < 1e-9 and abs(self.ratio_y - 1.0) < 1e-9

class ConversionOptions(BaseModel):
    scale_x_mode: ScaleXMode = ScaleXMode(config.SCALE_X_MODE)
    border_mode: BorderMode = BorderMode(config.BORDER_MODE)
    replace_inline_fonts: bool = config.REPLACE_INLINE_FONTS
    line_ending: LineEnding = LineEnding(config.OUTPUT_LINE_ENDING)
    write_bom: bool = config.OUTPUT_BOM

    def to_policy(self) -> ResamplePolicy:
        return ResamplePolicy(
            scale_x_mode=self.scale_x_mode,
            border_mode=self.border_mode,
            replace_inline_fonts=self.replace_inline_fonts,
            line_ending=self.line_ending,
            write_bom=self.write_bom,
        )

class ConversionTask(BaseModel):
    task_id: str
    filename: str
    upload_time: datetime = Field(default_factory=datetime.now)
    status: TaskStatus = TaskStatus.UPLOADED
    source_format: Optional[SubtitleFormat] = None
    options: Optional[ConversionOptions] = None
    error_message: Optional[str] = None
    output_path: Optional[str] = None

class ResampleRequest(BaseModel):
    text: str
    options: ConversionOptions = Field(default_factory=ConversionOptions)

class ResampleResponse(BaseModel):
    text: str
    source_resolution: Dict[str, Any] = {}
    target_resolution: Dict[str, Any] = {}
