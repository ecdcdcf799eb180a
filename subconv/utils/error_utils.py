"""
Error handling utilities for SubtitleConverter
"""

import logging
import traceback
from functools import wraps
from typing import Dict, Any

from subconv import config

# Configure logging
logging.basicConfig(
    level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(config.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger("subtitle_converter")


class SubtitleConversionError(ValueError):
    """Raised when an input file holds no usable captions or cannot be decoded."""


class UnsupportedFormatError(SubtitleConversionError):
    """Raised for file extensions no converter handles."""


# Error classifications
ERROR_TYPES = {
    "FILE_ERROR": "File Processing Error",
    "ENCODING_ERROR": "Text Encoding Error",
    "FORMAT_ERROR": "Unsupported Format",
    "SUBTITLE_ERROR": "Subtitle Processing Error",
    "CONFIG_ERROR": "Configuration Error",
    "UNKNOWN_ERROR": "Unknown Error"
}

def classify_error(error_instance: Exception) -> str:
    """
    Classify the type of error based on the exception
    """
    error_str = str(error_instance).lower()

    if isinstance(error_instance, UnsupportedFormatError):
        return "FORMAT_ERROR"
    elif isinstance(error_instance, SubtitleConversionError):
        return "SUBTITLE_ERROR"
    elif isinstance(error_instance, UnicodeError):
        return "ENCODING_ERROR"
    elif isinstance(error_instance, OSError):
        return "FILE_ERROR"
    elif "file" in error_str or "path" in error_str or "directory" in error_str:
        return "FILE_ERROR"
    elif "subtitle" in error_str or "srt" in error_str or "ass" in error_str or "vtt" in error_str:
        return "SUBTITLE_ERROR"
    elif "config" in error_str or "setting" in error_str or "environment" in error_str:
        return "CONFIG_ERROR"
    else:
        return "UNKNOWN_ERROR"

def log_error(error_instance: Exception, context: str = "", task_id: str = "") -> Dict[str, Any]:
    """
    Log an error and return a formatted error response

    Args:
        error_instance: The exception that occurred
        context: Additional context about where the error occurred
        task_id: ID of the task where the error occurred (if applicable)

    Returns:
        Dict with error info for API responses or CLI display
    """
    error_type = classify_error(error_instance)
    error_message = str(error_instance)
    error_traceback = traceback.format_exc()

    logger.error(f"ERROR [{error_type}]: {error_message}")
    logger.debug(f"Context: {context}")
    logger.debug(f"Task ID: {task_id}")
    logger.debug(f"Traceback: {error_traceback}")

    error_response = {
        "error": True,
        "error_type": ERROR_TYPES.get(error_type, "Error"),
        "message": error_message,
        "context": context
    }

    if task_id:
        error_response["task_id"] = task_id

    error_response["suggestions"] = get_error_suggestions(error_type, error_message)

    return error_response

def get_error_suggestions(error_type: str, error_message: str) -> list:
    """
    Get suggestions for fixing common errors
    """
    suggestions = []

    if error_type == "FILE_ERROR":
        suggestions.extend([
            "Check that the file exists and is accessible",
            "Verify the file path is correct",
            "Ensure you have read/write permissions for the file"
        ])

    elif error_type == "ENCODING_ERROR":
        suggestions.extend([
            "Re-save the subtitle file as UTF-8",
            "Check that the file is a text subtitle and not a binary container"
        ])

    elif error_type == "FORMAT_ERROR":
        suggestions.append(
            "Use a file with one of these extensions: " + ", ".join(config.ALLOWED_SUBTITLE_EXTENSIONS)
        )

    elif error_type == "SUBTITLE_ERROR":
        suggestions.extend([
            "Open the file in a subtitle editor to check that it contains timed captions",
            "Verify the file extension matches its contents"
        ])
        if "json" in error_message.lower():
            suggestions.append("Only Bilibili and YouTube timedtext JSON dumps are recognised")

    elif error_type == "CONFIG_ERROR":
        suggestions.extend([
            "Ensure your .env file is properly set up",
            "Verify the SUBCONV_* configuration values are valid"
        ])

    return suggestions

def error_handler(func):
    """
    Decorator for handling exceptions in background tasks
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            task_id = kwargs.get('task_id', '')
            if not task_id and args and isinstance(args[0], str):
                task_id = args[0]

            context = f"Error in {func.__name__}"
            return log_error(e, context, task_id)

    return wrapper
