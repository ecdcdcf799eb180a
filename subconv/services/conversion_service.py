"""
Format conversion: WebVTT, TTML, custom XML and JSON caption dumps to SRT,
and SRT to a styled 1920x1080 ASS script.
"""

import io
import math
import re
import html
import json
import pysrt
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from subconv import config
from subconv.models.schema import ResamplePolicy, SubtitleFormat
from subconv.services.resample_service import finalize_output, normalize_text, resample_ass_text
from subconv.utils.error_utils import logger, SubtitleConversionError, UnsupportedFormatError
from subconv.utils.file_utils import get_file_extension, read_text_file, write_text_file

# Caption tuples are (start_ms, end_ms, text)
Caption = Tuple[int, int, str]

FORMAT_BY_EXTENSION = {
    ".srt": SubtitleFormat.SRT,
    ".vtt": SubtitleFormat.VTT,
    ".ttml": SubtitleFormat.TTML,
    ".xml": SubtitleFormat.XML,
    ".json": SubtitleFormat.JSON,
    ".ass": SubtitleFormat.ASS,
}

# Entities html.unescape leaves alone or maps to characters players choke on
EXTRA_ENTITIES = {
    "&nbsp;": " ",
    "&NewLine;": "\n",
    "&thinsp;": " ",
    "&ensp;": " ",
    "&emsp;": " ",
    "&ZeroWidthSpace;": "",
}

SIGN_STYLE = "Sign"
DEFAULT_STYLE = "Default"

CLOCK_RE = re.compile(r'(\d+):(\d{1,2}):(\d{1,2})(?:[.,](\d+))?')
SHORT_CLOCK_RE = re.compile(r'^(\d+):(\d{1,2})[.,](\d+)$')
FRAMES_RE = re.compile(r'^(\d+):(\d{1,2}):(\d{1,2}):(\d+)$')
OFFSET_RE = re.compile(r'^(\d+(?:\.\d+)?)(h|m|s|ms)$')
ANY_TAG_RE = re.compile(r'</?[^>]+>', re.IGNORECASE)
# a sign line ends in ASCII capitals, digits, whitespace or punctuation
SIGN_TAIL_RE = re.compile(r"[A-Z0-9\s!-/:-@\[-`{-~]+$", re.ASCII)

TTML_FRAME_RATE = 25


def deep_unescape_html(text: str) -> str:
    """
    Unescape until stable (double-escaped dumps are common), then replace
    the whitespace entities html.unescape keeps or turns into odd spaces.
    """
    for entity, replacement in EXTRA_ENTITIES.items():
        text = text.replace(entity, replacement)

    previous = None
    while text != previous:
        previous = text
        text = html.unescape(text)

    return text.replace("\xa0", " ").replace("\u200b", "")

def _fraction_to_ms(fraction: Optional[str]) -> int:
    if not fraction:
        return 0
    return int(round(float("0." + fraction) * 1000))

def _clock_to_ms(hours: int, minutes: int, seconds: int, milliseconds: int = 0) -> int:
    return ((hours * 60 + minutes) * 60 + seconds) * 1000 + milliseconds

def seconds_to_ms(seconds: float) -> int:
    if seconds < 0:
        seconds = 0
    return int(seconds * 1000 + 0.5)

def vtt_time_to_ms(value: str) -> int:
    """HH:MM:SS.mmm, MM:SS.mmm or HH:MM:SS; cue settings after the time are ignored."""
    value = value.strip().split()[0] if value.strip() else ""

    match = CLOCK_RE.fullmatch(value)
    if match:
        hours, minutes, seconds, fraction = match.groups()
        return _clock_to_ms(int(hours), int(minutes), int(seconds), _fraction_to_ms(fraction))

    match = SHORT_CLOCK_RE.match(value)
    if match:
        minutes, seconds, fraction = match.groups()
        return _clock_to_ms(0, int(minutes), int(seconds), _fraction_to_ms(fraction))

    return 0

def ttml_time_to_ms(value: Optional[str]) -> int:
    """Clock times (with optional fraction or :frames at 25 fps) and offset times like 1.5s."""
    if not value:
        return 0
    value = value.strip()

    match = FRAMES_RE.match(value)
    if match:
        hours, minutes, seconds, frames = (int(group) for group in match.groups())
        return _clock_to_ms(hours, minutes, seconds, frames * 1000 // TTML_FRAME_RATE)

    match = CLOCK_RE.fullmatch(value)
    if match:
        hours, minutes, seconds, fraction = match.groups()
        return _clock_to_ms(int(hours), int(minutes), int(seconds), _fraction_to_ms(fraction))

    match = OFFSET_RE.match(value)
    if match:
        amount, unit = float(match.group(1)), match.group(2)
        factor = {"h": 3600000, "m": 60000, "s": 1000, "ms": 1}[unit]
        return int(round(amount * factor))

    return 0

def build_srt(captions: List[Caption]) -> str:
    """Serialise (start_ms, end_ms, text) captions with pysrt."""
    subs = pysrt.SubRipFile()
    for index, (start, end, text) in enumerate(captions, 1):
        subs.append(pysrt.SubRipItem(
            index=index,
            start=pysrt.SubRipTime.from_ordinal(start),
            end=pysrt.SubRipTime.from_ordinal(end),
            text=text
        ))

    buffer = io.StringIO()
    subs.write_into(buffer)
    return buffer.getvalue()


def vtt_tags_to_srt(text: str) -> str:
    text = re.sub(r'<\d{2}:\d{2}:\d{2}\.\d{3}>', '', text)
    text = re.sub(r'<v(?:\.[^\s>]*)?\s+([^>]+)>', r'\1: ', text)
    text = text.replace('</v>', '')
    text = re.sub(r'<ruby>([^<]*)<rt>([^<]*)</rt></ruby>', r'\1', text)
    text = re.sub(r'<c\.(#[0-9A-Fa-f]{6})>([^<]*)</c>', r'<font color="\1">\2</font>', text)
    text = re.sub(r'<c(?:\.[^>]*)?>', '', text)
    text = text.replace('</c>', '')
    return text

def vtt_to_srt(text: str) -> str:
    """
    Convert WebVTT text to SRT. Header metadata, cue identifiers, NOTE and
    STYLE blocks are dropped.
    """
    lines = deep_unescape_html(normalize_text(text)).split("\n")
    captions: List[Caption] = []
    index = 0

    # Skip the WEBVTT line and the metadata lines glued to it
    for position, line in enumerate(lines):
        if line.strip().startswith("WEBVTT"):
            index = position + 1
            while index < len(lines) and ":" in lines[index] and "-->" not in lines[index]:
                index += 1
            break

    while index < len(lines):
        line = lines[index].strip()
        if "-->" not in line:
            index += 1
            continue

        start_text, _, end_text = line.partition("-->")
        start = vtt_time_to_ms(start_text)
        end = vtt_time_to_ms(end_text)
        index += 1

        text_lines = []
        while index < len(lines) and lines[index].strip():
            cue_line = vtt_tags_to_srt(lines[index].strip())
            if cue_line:
                text_lines.append(cue_line)
            index += 1

        if text_lines:
            captions.append((start, end, "\n".join(text_lines)))

    if not captions:
        raise SubtitleConversionError("No valid WebVTT cues found")

    logger.info(f"Converted {len(captions)} WebVTT cues")
    return build_srt(captions)


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]

def _element_text(element: ET.Element) -> str:
    parts = [element.text or ""]
    for child in element:
        if _local_name(child.tag) == "br":
            parts.append("\n")
        else:
            parts.append(_element_text(child))
        parts.append(child.tail or "")
    return "".join(parts)

def _clean_caption_text(text: str) -> str:
    text = deep_unescape_html(text)
    text = re.sub(r'<br\s*/?>', '\n', text, flags=re.IGNORECASE)
    text = ANY_TAG_RE.sub('', text)
    lines = [line.strip() for line in text.split("\n")]
    return "\n".join(line for line in lines if line)

def _parse_xml(text: str, kind: str) -> ET.Element:
    try:
        return ET.fromstring(normalize_text(text).strip())
    except ET.ParseError as e:
        raise SubtitleConversionError(f"Failed to parse {kind}: {e}") from e

def ttml_to_srt(text: str) -> str:
    """
    Convert TTML/DFXP to SRT. Every <p> with timing is a caption, wherever
    it sits in the document and whatever namespace it uses.
    """
    root = _parse_xml(text, "TTML")
    captions: List[Caption] = []

    for element in root.iter():
        if _local_name(element.tag) != "p":
            continue

        caption = _clean_caption_text(_element_text(element))
        if not caption:
            continue

        start = ttml_time_to_ms(element.get("begin"))
        if element.get("end"):
            end = ttml_time_to_ms(element.get("end"))
        else:
            end = start + ttml_time_to_ms(element.get("dur"))
        captions.append((start, end, caption))

    if not captions:
        raise SubtitleConversionError("No valid TTML paragraphs found")

    logger.info(f"Converted {len(captions)} TTML paragraphs")
    return build_srt(captions)

def custom_xml_to_srt(text: str) -> str:
    """
    Convert the <xml><dia><st/><et/><sub/></dia></xml> dump (times in
    centiseconds) to SRT. Line breaks inside <sub> become ASS \\N breaks.
    """
    root = _parse_xml(text, "custom XML")
    if _local_name(root.tag) != "xml":
        raise SubtitleConversionError("Not a custom XML caption dump")

    captions: List[Caption] = []
    for dia in root.iter("dia"):
        caption = deep_unescape_html((dia.findtext("sub") or "").strip())
        if not caption:
            continue
        caption = caption.replace("\n", "\\N")

        try:
            start = int(dia.findtext("st") or "0") * 10
            end = int(dia.findtext("et") or "0") * 10
        except ValueError:
            start = end = 0
        captions.append((start, end, caption))

    if not captions:
        raise SubtitleConversionError("No valid subtitles found in custom XML")

    logger.info(f"Converted {len(captions)} custom XML entries")
    return build_srt(captions)


def _bilibili_captions(body: List[Dict[str, Any]]) -> List[Caption]:
    captions = []
    for entry in body:
        try:
            start = float(entry.get("from", 0) or 0)
            end = float(entry.get("to", 0) or 0)
        except (TypeError, ValueError) as e:
            raise SubtitleConversionError(f"Invalid Bilibili timing: {e}") from e
        if not (math.isfinite(start) and math.isfinite(end)):
            raise SubtitleConversionError(f"Invalid Bilibili timing: {start} --> {end}")
        if end <= 0 or end <= start:
            continue
        content = str(entry.get("content", "")).strip()
        if content:
            captions.append((seconds_to_ms(start), seconds_to_ms(end), content))
    return captions

def _youtube_captions(events: List[Dict[str, Any]]) -> List[Caption]:
    captions = []
    for event in events:
        segments = event.get("segs") or []
        if not segments:
            continue
        caption = "".join(str(segment.get("utf8", "")).strip() for segment in segments)
        if not caption.strip():
            continue
        try:
            start = float(event.get("tStartMs", 0) or 0)
            duration = float(event.get("dDurationMs", 0) or 0)
        except (TypeError, ValueError) as e:
            raise SubtitleConversionError(f"Invalid YouTube timing: {e}") from e
        if not (math.isfinite(start) and math.isfinite(duration)):
            raise SubtitleConversionError(f"Invalid YouTube timing: {start} + {duration}")
        captions.append((int(round(start)), int(round(start + duration)), caption))

    captions.sort(key=lambda caption: caption[0])
    return captions

def json_to_srt(text: str) -> str:
    """
    Convert Bilibili ({"body": [{"from", "to", "content"}]}) or YouTube
    timedtext ({"events": [{"tStartMs", "dDurationMs", "segs"}]}) JSON to SRT.
    """
    try:
        data = json.loads(normalize_text(text))
    except json.JSONDecodeError as e:
        raise SubtitleConversionError(f"Unrecognised JSON caption format: {e}") from e

    if not isinstance(data, dict):
        raise SubtitleConversionError("Unrecognised JSON caption format")

    if isinstance(data.get("body"), list):
        captions = _bilibili_captions(data["body"])
        source = "Bilibili"
    elif isinstance(data.get("events"), list):
        captions = _youtube_captions(data["events"])
        source = "YouTube"
    else:
        raise SubtitleConversionError("Unrecognised JSON caption format")

    if not captions:
        raise SubtitleConversionError(f"No valid captions found in {source} JSON")

    logger.info(f"Converted {len(captions)} {source} JSON captions")
    return build_srt(captions)


def format_time_ass(time_obj) -> str:
    """
    Convert pysrt time object to ASS time format (h:mm:ss.cc)
    """
    centiseconds = time_obj.milliseconds // 10
    return f"{time_obj.hours}:{time_obj.minutes:02d}:{time_obj.seconds:02d}.{centiseconds:02d}"

def _font_color_to_ass(match: re.Match) -> str:
    color = re.search(r'color\s*=\s*["\']?#?([0-9a-fA-F]{6})', match.group(0))
    if not color:
        return ""
    rgb = color.group(1).upper()
    return "{\\c&H" + rgb[4:6] + rgb[2:4] + rgb[0:2] + "&}"

def convert_tags_to_ass(text: str) -> str:
    text = re.sub(r'<font[^>]*>', _font_color_to_ass, text, flags=re.IGNORECASE)
    text = re.sub(r'</font>', '', text, flags=re.IGNORECASE)
    text = re.sub(r'\{\\f[ns][^}]*\}', '', text)
    for tag in ("b", "i", "u", "s"):
        text = re.sub(f'<{tag}>', '{\\\\' + tag + '1}', text, flags=re.IGNORECASE)
        text = re.sub(f'</{tag}>', '{\\\\' + tag + '0}', text, flags=re.IGNORECASE)
    text = ANY_TAG_RE.sub('', text)
    return re.sub(r'\s+', ' ', text).strip()

def classify_style(text: str) -> str:
    """
    Bracketed lines are on-screen signs, as are lines that read the same in
    upper case and end in capitals, digits or punctuation. Everything else is
    dialogue.
    """
    clean = re.sub(r'\{\\[^}]+\}', '', text).strip()
    if (clean.startswith("(") and clean.endswith(")")) or (clean.startswith("[") and clean.endswith("]")):
        return SIGN_STYLE
    if SIGN_TAIL_RE.search(clean) and clean.upper() == clean:
        return SIGN_STYLE
    return DEFAULT_STYLE

def merge_events(events: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Merge events sharing style and timing into one \\N-joined event, and
    join consecutive events repeating the same text.
    """
    events = sorted(events, key=lambda event: (event["start"], event["end"], event["style"]))
    merged_flags = [False] * len(events)
    merged = []

    for i, event in enumerate(events):
        if merged_flags[i]:
            continue
        current = dict(event)
        for j in range(i + 1, len(events)):
            if merged_flags[j]:
                continue
            candidate = events[j]
            if current["style"] != candidate["style"]:
                continue
            if current["start"] == candidate["start"] and current["end"] == candidate["end"]:
                if current["text"] != candidate["text"]:
                    current["text"] += "\\N" + candidate["text"]
                merged_flags[j] = True
            elif current["text"] == candidate["text"] and current["end"] == candidate["start"]:
                current["end"] = candidate["end"]
                merged_flags[j] = True
        merged.append(current)

    # signs first, then chronological
    return sorted(merged, key=lambda event: (event["style"] != SIGN_STYLE, event["start"]))

def build_ass_header(policy: ResamplePolicy) -> str:
    font = policy.font_name
    return "\n".join([
        "[Script Info]",
        "; Script generated by SubtitleConverter",
        "Title: Default Subtitle File",
        "ScriptType: v4.00+",
        "WrapStyle: 0",
        "ScaledBorderAndShadow: yes",
        "YCbCr Matrix: None",
        f"PlayResX: {policy.target_width}",
        f"PlayResY: {policy.target_height}",
        "Timer: 100.0000",
        "",
        "[V4+ Styles]",
        "Format: Name, Fontname, Fontsize, PrimaryColour, SecondaryColour, OutlineColour, BackColour, Bold, Italic, Underline, StrikeOut, ScaleX, ScaleY, Spacing, Angle, BorderStyle, Outline, Shadow, Alignment, MarginL, MarginR, MarginV, Encoding",
        f"Style: {DEFAULT_STYLE},{font},70,&H00FFFFFF,&H00FFFFFF,&H00000000,&H80000000,0,0,0,0,100,100,0,0,1,1.5,1,2,64,64,33,1",
        f"Style: Default Above,{font},70,&H00FFFFFF,&H000000FF,&H00000000,&H80000000,-1,0,0,0,100,100,0,0,1,1.5,1,8,0,0,65,1",
        f"Style: {policy.reference_style_name},{font},{policy.target_height},&H00FFFFFF,&H000000FF,&H00000000,&H00000000,0,0,0,0,0,0,0,0,1,2,2,2,10,10,10,1",
        f"Style: {SIGN_STYLE},{font},75,&H00FFFFFF,&H000000FF,&H00000000,&H00000000,-1,0,0,0,100,100,0,0,1,1,0,8,0,0,0,1",
        "",
        "[Events]",
        "Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text",
    ])

def srt_to_ass(srt_text: str, policy: Optional[ResamplePolicy] = None) -> str:
    """
    Build a styled ASS script from SRT text. Each SRT text line becomes its
    own event so sign lines and dialogue lines can get different styles.
    """
    if policy is None:
        policy = ResamplePolicy()

    subs = pysrt.from_string(normalize_text(srt_text))
    events = []
    for item in subs:
        for line in item.text.split("\n"):
            text = convert_tags_to_ass(line)
            if not text:
                continue
            events.append({
                "start": item.start,
                "end": item.end,
                "style": classify_style(text),
                "text": text,
            })

    if not events:
        raise SubtitleConversionError("No subtitle entries found in SRT input")

    lines = [build_ass_header(policy)]
    for event in merge_events(events):
        text = event["text"]
        if event["style"] == DEFAULT_STYLE:
            text = "{\\blur3}{\\fad(00,40)}" + text
        lines.append(
            f"Dialogue: 0,{format_time_ass(event['start'])},{format_time_ass(event['end'])},"
            f"{event['style']},,0000,0000,0000,,{text}"
        )

    logger.info(f"Built ASS script with {len(lines) - 1} events from {len(subs)} SRT entries")
    return finalize_output("\n".join(lines), policy)


def detect_format(file_path: Union[str, Path]) -> SubtitleFormat:
    extension = get_file_extension(file_path)
    if extension not in FORMAT_BY_EXTENSION:
        raise UnsupportedFormatError(f"Unsupported subtitle format: {extension or file_path}")
    return FORMAT_BY_EXTENSION[extension]

def xml_to_srt(text: str) -> str:
    try:
        return custom_xml_to_srt(text)
    except SubtitleConversionError:
        return ttml_to_srt(text)

def convert_to_srt(file_path: Union[str, Path]) -> str:
    """
    Read any non-ASS caption file and return it as SRT text.
    """
    subtitle_format = detect_format(file_path)
    text = read_text_file(file_path)

    if subtitle_format == SubtitleFormat.SRT:
        return text
    if subtitle_format == SubtitleFormat.VTT:
        return vtt_to_srt(text)
    if subtitle_format in (SubtitleFormat.XML, SubtitleFormat.TTML):
        return xml_to_srt(text)
    if subtitle_format == SubtitleFormat.JSON:
        return json_to_srt(text)
    raise UnsupportedFormatError(f"Cannot convert {subtitle_format.value} to SRT")

def convert_file(file_path: Union[str, Path], policy: Optional[ResamplePolicy] = None) -> str:
    """
    Convert any supported subtitle file to the target ASS script.
    ASS input is resampled, everything else goes through SRT.
    """
    if policy is None:
        policy = ResamplePolicy()

    subtitle_format = detect_format(file_path)
    logger.info(f"Converting {subtitle_format.value.upper()} file: {file_path}")

    if subtitle_format == SubtitleFormat.ASS:
        return resample_ass_text(read_text_file(file_path), policy)
    return srt_to_ass(convert_to_srt(file_path), policy)

def generate_output_name(input_path: Union[str, Path], suffix: str = config.OUTPUT_SUFFIX,
                         extension: str = ".ass") -> Path:
    """
    <base><suffix>.ass, or <base><suffix>(n).ass when that file exists.
    """
    input_path = Path(input_path)
    base = input_path.with_suffix("")
    output = Path(f"{base}{suffix}{extension}")
    count = 1
    while output.exists():
        output = Path(f"{base}{suffix}({count}){extension}")
        count += 1
    return output

def write_converted(input_path: Union[str, Path], text: str,
                    output_path: Optional[Union[str, Path]] = None) -> Path:
    if output_path is None:
        output_path = generate_output_name(input_path)
    write_text_file(output_path, text)
    logger.info(f"Saved converted subtitle to: {output_path}")
    return Path(output_path)
