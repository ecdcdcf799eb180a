"""
Rewriting of the [V4+ Styles] and [Events] tables of an ASS script

Both tables are comma separated with the column order taken from the
section's own "Format:" line. The last column is free text and may contain
commas itself, so a row is split into at most len(format) parts.
"""

import re
from typing import Dict, List, Optional, Tuple

from subconv.models.schema import BorderMode, ResamplePolicy, ScaleContext, ScaleXMode
from subconv.services.ass_tags import scale_text
from subconv.utils.number_utils import scale_number_text
from subconv.utils.error_utils import logger


SECTION_RE = re.compile(r'^\s*\[(.+?)\]\s*$')

STYLE_SECTIONS = ("v4+ styles", "v4 styles")
EVENT_SECTIONS = ("events",)

FormatSpec = Tuple[str, ...]

DEFAULT_STYLE_FORMAT: FormatSpec = (
    "name", "fontname", "fontsize", "primarycolour", "secondarycolour", "outlinecolour", "backcolour",
    "bold", "italic", "underline", "strikeout", "scalex", "scaley", "spacing", "angle",
    "borderstyle", "outline", "shadow", "alignment", "marginl", "marginr", "marginv", "encoding",
)

DEFAULT_EVENT_FORMAT: FormatSpec = (
    "layer", "start", "end", "style", "name", "marginl", "marginr", "marginv", "effect", "text",
)

# Column values of the injected reference style; columns not listed are 0
REFERENCE_STYLE_VALUES = {
    "primarycolour": "&H00FFFFFF",
    "secondarycolour": "&H000000FF",
    "outlinecolour": "&H00000000",
    "backcolour": "&H00000000",
    "borderstyle": "1",
    "outline": "2",
    "shadow": "2",
    "alignment": "2",
    "marginl": "10",
    "marginr": "10",
    "marginv": "10",
    "encoding": "1",
}


def parse_format(line: str) -> FormatSpec:
    _, payload = split_prefix(line)
    return tuple(field.strip().lower() for field in payload.split(","))

def split_prefix(line: str) -> Tuple[str, str]:
    """Split 'Dialogue: 0,...' into ('Dialogue:', ' 0,...')."""
    colon = line.index(":")
    return line[:colon + 1], line[colon + 1:]

def split_fields(payload: str, count: int) -> List[str]:
    """Split on the first count-1 commas; the last part keeps any further commas."""
    if count <= 1:
        return [payload]
    return payload.split(",", count - 1)

def line_kind(line: str) -> str:
    stripped = line.lstrip().lower()
    colon = stripped.find(":")
    if colon < 0:
        return ""
    return stripped[:colon].strip()

def _column_index(spec: FormatSpec) -> Dict[str, int]:
    index = {}
    for position, name in enumerate(spec):
        index.setdefault(name, position)
    return index

def _scale_column(fields: List[str], columns: Dict[str, int], name: str, ratio: float,
                  precision: int, integer: bool = False) -> None:
    position = columns.get(name)
    if position is None or position >= len(fields):
        return

    raw = fields[position]
    stripped = raw.strip()
    if not stripped:
        return

    scaled = scale_number_text(stripped, ratio, precision, integer=integer)
    if scaled != stripped:
        fields[position] = scaled


def rewrite_style_line(line: str, spec: FormatSpec, context: ScaleContext, policy: ResamplePolicy) -> str:
    """
    Force the target font and scale the pixel-based columns of one Style row.
    Short rows are padded with empty columns.
    """
    prefix, payload = split_prefix(line)
    fields = split_fields(payload, len(spec))
    if len(fields) < len(spec):
        fields += [""] * (len(spec) - len(fields))

    columns = _column_index(spec)
    precision = policy.precision
    border = context.mean_ratio if policy.border_mode == BorderMode.MEAN else context.ratio_y

    if "fontname" in columns:
        fields[columns["fontname"]] = policy.font_name

    # font size is a vertical pixel metric
    _scale_column(fields, columns, "fontsize", context.ratio_y, precision, integer=True)
    _scale_column(fields, columns, "outline", border, precision)
    _scale_column(fields, columns, "shadow", border, precision)
    if policy.scale_x_mode == ScaleXMode.ASPECT:
        _scale_column(fields, columns, "scalex", context.aspect_ratio, precision)
    _scale_column(fields, columns, "marginl", context.ratio_x, precision, integer=True)
    _scale_column(fields, columns, "marginr", context.ratio_x, precision, integer=True)
    _scale_column(fields, columns, "marginv", context.ratio_y, precision, integer=True)

    return prefix + ",".join(fields)

def rewrite_dialogue_line(line: str, spec: FormatSpec, context: ScaleContext, policy: ResamplePolicy) -> str:
    """
    Scale the margins and the override tags of one Dialogue row. Rows with
    fewer columns than the Format line declares are returned unchanged.
    """
    prefix, payload = split_prefix(line)
    fields = split_fields(payload, len(spec))
    if len(fields) < len(spec):
        logger.debug(f"Leaving malformed event untouched: {line!r}")
        return line

    columns = _column_index(spec)
    precision = policy.precision

    _scale_column(fields, columns, "marginl", context.ratio_x, precision, integer=True)
    _scale_column(fields, columns, "marginr", context.ratio_x, precision, integer=True)
    _scale_column(fields, columns, "marginv", context.ratio_y, precision, integer=True)

    text_position = columns.get("text", len(fields) - 1)
    fields[text_position] = scale_text(fields[text_position], context, policy)

    return prefix + ",".join(fields)

def build_reference_style(spec: FormatSpec, policy: ResamplePolicy) -> str:
    values = dict(REFERENCE_STYLE_VALUES)
    values["name"] = policy.reference_style_name
    values["fontname"] = policy.font_name
    values["fontsize"] = str(policy.target_height)
    return "Style: " + ",".join(values.get(name, "0") for name in spec)

def style_name(line: str, spec: FormatSpec) -> str:
    _, payload = split_prefix(line)
    fields = split_fields(payload, len(spec))
    position = _column_index(spec).get("name", 0)
    return fields[position].strip() if position < len(fields) else ""


class _StyleSection:
    """Bookkeeping for where the reference style goes inside one styles section."""

    def __init__(self, header_index: int):
        self.insert_at = header_index + 1
        self.after_style = False
        self.names = set()

    def saw_format(self, index: int) -> None:
        if not self.after_style:
            self.insert_at = index + 1

    def saw_style(self, index: int, name: str) -> None:
        self.insert_at = index + 1
        self.after_style = True
        self.names.add(name)


def rewrite_sections(lines: List[str], context: ScaleContext, policy: ResamplePolicy) -> List[str]:
    """
    Walk the script once, rewriting Style and Dialogue rows with the Format
    declared in their own section, and append the reference style to the
    first styles section unless a style of that name already exists.
    """
    out: List[str] = []
    section = ""
    style_format: Optional[FormatSpec] = None
    event_format: Optional[FormatSpec] = None
    styles: Optional[_StyleSection] = None
    reference_done = False

    def close_styles() -> None:
        nonlocal styles, reference_done
        if styles is None:
            return
        if policy.reference_style_name not in styles.names:
            out.insert(styles.insert_at, build_reference_style(style_format or DEFAULT_STYLE_FORMAT, policy))
            logger.debug(f"Injected reference style '{policy.reference_style_name}'")
        reference_done = True
        styles = None

    for line in lines:
        header = SECTION_RE.match(line)
        if header:
            close_styles()
            section = header.group(1).strip().lower()
            style_format = None
            event_format = None
            if section in STYLE_SECTIONS and not reference_done:
                styles = _StyleSection(len(out))
            out.append(line)
            continue

        kind = line_kind(line)

        if section in STYLE_SECTIONS:
            if kind == "format":
                style_format = parse_format(line)
                if styles is not None:
                    styles.saw_format(len(out))
                out.append(line)
                continue
            if kind == "style":
                spec = style_format or DEFAULT_STYLE_FORMAT
                if styles is not None:
                    styles.saw_style(len(out), style_name(line, spec))
                out.append(rewrite_style_line(line, spec, context, policy))
                continue

        elif section in EVENT_SECTIONS:
            if kind == "format":
                event_format = parse_format(line)
                out.append(line)
                continue
            if kind == "dialogue":
                out.append(rewrite_dialogue_line(line, event_format or DEFAULT_EVENT_FORMAT, context, policy))
                continue

        out.append(line)

    close_styles()
    return out
