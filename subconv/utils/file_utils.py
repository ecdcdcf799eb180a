import os
import re
import codecs
import chardet
from pathlib import Path
from typing import Union

from subconv import config

def ensure_directory_exists(directory_path: Union[str, Path]) -> None:
    """
    Ensure that a directory exists, creating it if necessary
    """
    Path(directory_path).mkdir(parents=True, exist_ok=True)

def get_file_extension(file_path: Union[str, Path]) -> str:
    """
    Get the file extension from a path
    """
    return os.path.splitext(str(file_path))[1].lower()

def is_valid_subtitle_file(file_path: Union[str, Path]) -> bool:
    """
    Check if a file is a supported subtitle file based on extension
    """
    return get_file_extension(file_path) in config.ALLOWED_SUBTITLE_EXTENSIONS

def decode_text(raw: bytes) -> str:
    """
    Decode subtitle bytes, preferring UTF-8 (with or without BOM) and
    falling back to chardet detection.
    """
    if raw.startswith(codecs.BOM_UTF8):
        return raw[len(codecs.BOM_UTF8):].decode("utf-8")
    if raw.startswith(codecs.BOM_UTF16_LE) or raw.startswith(codecs.BOM_UTF16_BE):
        return raw.decode("utf-16")

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        detected = chardet.detect(raw)
        encoding = detected.get("encoding") or "latin-1"
        return raw.decode(encoding)

def read_text_file(file_path: Union[str, Path]) -> str:
    """
    Read a subtitle file into a string. Missing or unreadable files raise.
    """
    with open(file_path, "rb") as f:
        raw = f.read()
    return decode_text(raw)

def write_text_file(file_path: Union[str, Path], text: str) -> None:
    """
    Write text exactly as given (no newline translation)
    """
    ensure_directory_exists(Path(file_path).resolve().parent)
    with open(file_path, "w", encoding="utf-8", newline="") as f:
        f.write(text)

def sanitize_filename(filename: str) -> str:
    """
    Sanitize a filename by removing invalid characters
    """
    # Remove characters that are invalid in filenames
    sanitized = re.sub(r'[\\/*?:"<>|]', '', filename)
    # Replace spaces with underscores
    sanitized = sanitized.replace(' ', '_')

    return sanitized

def get_mime_type(file_path: Union[str, Path]) -> str:
    """
    Get the MIME type of a file based on its extension
    """
    extension = get_file_extension(file_path)

    mime_types = {
        '.srt': 'application/x-subrip',
        '.vtt': 'text/vtt',
        '.ttml': 'application/ttml+xml',
        '.xml': 'application/xml',
        '.json': 'application/json',
        '.ass': 'text/x-ssa',
    }

    return mime_types.get(extension, 'application/octet-stream')
