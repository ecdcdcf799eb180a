import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Base directories
BASE_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("SUBCONV_DATA_DIR", str(BASE_DIR / "data")))
UPLOAD_DIR = DATA_DIR / "uploads"
PROCESSED_DIR = DATA_DIR / "processed"
STATUS_DIR = DATA_DIR / "status"

# Create required directories
UPLOAD_DIR.mkdir(parents=True, exist_ok=True)
PROCESSED_DIR.mkdir(parents=True, exist_ok=True)
STATUS_DIR.mkdir(parents=True, exist_ok=True)

# API Settings
MAX_UPLOAD_SIZE = int(os.getenv("SUBCONV_MAX_UPLOAD_SIZE", str(20 * 1024 * 1024)))  # 20 MB

# Logging
LOG_FILE = os.getenv("SUBCONV_LOG_FILE", "error_log.txt")
LOG_LEVEL = os.getenv("SUBCONV_LOG_LEVEL", "INFO")

# Resampling target (every converted script ends up at this resolution)
TARGET_PLAYRES_X = int(os.getenv("SUBCONV_TARGET_PLAYRES_X", "1920"))
TARGET_PLAYRES_Y = int(os.getenv("SUBCONV_TARGET_PLAYRES_Y", "1080"))

# Assumed source resolution when a script does not declare PlayResX/PlayResY
DEFAULT_PLAYRES_X = int(os.getenv("SUBCONV_DEFAULT_PLAYRES_X", "1280"))
DEFAULT_PLAYRES_Y = int(os.getenv("SUBCONV_DEFAULT_PLAYRES_Y", "720"))

# Font forced onto every style and the injected reference style
TARGET_FONT_NAME = os.getenv("SUBCONV_TARGET_FONT_NAME", "Basic Comical NC")
REFERENCE_STYLE_NAME = os.getenv("SUBCONV_REFERENCE_STYLE_NAME", "res")

# Resampling policy defaults
SCALE_X_MODE = os.getenv("SUBCONV_SCALE_X_MODE", "keep")  # keep, aspect
BORDER_MODE = os.getenv("SUBCONV_BORDER_MODE", "mean")  # mean, vertical
REPLACE_INLINE_FONTS = os.getenv("SUBCONV_REPLACE_INLINE_FONTS", "true").lower() in ("1", "true", "yes")
NUMBER_PRECISION = int(os.getenv("SUBCONV_NUMBER_PRECISION", "3"))

# Output settings
OUTPUT_LINE_ENDING = os.getenv("SUBCONV_OUTPUT_LINE_ENDING", "lf")  # lf, crlf
OUTPUT_BOM = os.getenv("SUBCONV_OUTPUT_BOM", "false").lower() in ("1", "true", "yes")
OUTPUT_SUFFIX = os.getenv("SUBCONV_OUTPUT_SUFFIX", "_converted")

# Processing Settings
ALLOWED_SUBTITLE_EXTENSIONS = ['.srt', '.vtt', '.ttml', '.xml', '.json', '.ass']
DEFAULT_OUTPUT_FORMAT = "ass"
