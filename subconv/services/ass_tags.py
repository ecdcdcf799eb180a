"""
Override tag scaling for ASS dialogue text

Dialogue text mixes plain text with override blocks:

    {\\pos(100,200)\\fs40\\t(0,500,\\fs60)}Hello{\\p1}m 0 0 l 10 10{\\p0}

Each block is parsed into a flat list of literal runs and OverrideTag
tokens. Parenthesised arguments are matched by depth, so a nested \\t(...)
is a single token whose tag string is scaled by parsing it again. Tags with
arguments that do not parse are emitted exactly as read, and tags without a
handler are never touched.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

from subconv.models.schema import BorderMode, ResamplePolicy, ScaleContext, ScaleXMode
from subconv.services.ass_drawing import looks_like_drawing, scale_drawing
from subconv.utils.number_utils import parse_number, scale_leading_number, scale_number_text


OVERRIDE_BLOCK_RE = re.compile(r'\{[^}]*\}')
TAG_NAME_RE = re.compile(r'[0-9]?[A-Za-z]+')
PADDED_RE = re.compile(r'^(\s*)(.*?)(\s*)$', re.DOTALL)
CLIP_SCALE_RE = re.compile(r'^(\s*\d+\s*,\s*)(.*)$', re.DOTALL)

# Every tag name the parser knows about. Letters glued to a tag name are its
# argument (\fnArial, \rDefault), so names are matched longest-first.
KNOWN_TAGS = sorted([
    "1a", "1c", "2a", "2c", "3a", "3c", "4a", "4c",
    "a", "alpha", "an", "b", "be", "blur", "bord", "c", "clip", "fad", "fade",
    "fax", "fay", "fe", "fn", "fr", "frx", "fry", "frz", "fs", "fsc", "fscx",
    "fscy", "fsp", "i", "iclip", "k", "kf", "ko", "margins", "marginl",
    "marginr", "marginv", "margint", "marginb", "move", "org", "p", "pbo",
    "pos", "q", "r", "s", "shad", "t", "u", "xbord", "xshad", "ybord", "yshad",
], key=len, reverse=True)


@dataclass
class OverrideTag:
    name: str
    argument: str = ""
    parenthesized: bool = False
    closed: bool = True
    spacing: str = ""

    def render(self) -> str:
        if not self.parenthesized:
            return "\\" + self.name + self.argument
        closing = ")" if self.closed else ""
        return "\\" + self.name + self.spacing + "(" + self.argument + closing

    def with_argument(self, argument: Optional[str]) -> "OverrideTag":
        if argument is None or argument == self.argument:
            return self
        return OverrideTag(self.name, argument, self.parenthesized, self.closed, self.spacing)


Token = Union[str, OverrideTag]


def _resolve_tag_name(letters: str) -> str:
    lowered = letters.lower()
    for name in KNOWN_TAGS:
        if lowered.startswith(name):
            return letters[:len(name)]
    return letters

def _find_closing_paren(content: str, open_index: int) -> int:
    depth = 0
    for index in range(open_index, len(content)):
        char = content[index]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0:
                return index
    return -1

def _read_tag(content: str, start: int) -> Tuple[Token, int]:
    """Read the tag whose backslash sits at `start`; return it and the next offset."""
    match = TAG_NAME_RE.match(content, start + 1)
    if not match:
        return content[start], start + 1

    name = _resolve_tag_name(match.group(0))
    position = start + 1 + len(name)

    lookahead = position
    while lookahead < len(content) and content[lookahead] in " \t":
        lookahead += 1

    if lookahead < len(content) and content[lookahead] == "(":
        spacing = content[position:lookahead]
        closing = _find_closing_paren(content, lookahead)
        if closing < 0:
            return OverrideTag(name, content[lookahead + 1:], True, False, spacing), len(content)
        return OverrideTag(name, content[lookahead + 1:closing], True, True, spacing), closing + 1

    end = content.find("\\", position)
    if end < 0:
        end = len(content)
    return OverrideTag(name, content[position:end]), end

def parse_override(content: str) -> List[Token]:
    """
    Split the inside of one override block into literal runs and tags.
    Rendering the tokens back in order reproduces `content` exactly.
    """
    tokens: List[Token] = []
    literal_start = 0
    index = 0

    while index < len(content):
        if content[index] != "\\":
            index += 1
            continue
        if index > literal_start:
            tokens.append(content[literal_start:index])
        token, index = _read_tag(content, index)
        tokens.append(token)
        literal_start = index

    if literal_start < len(content):
        tokens.append(content[literal_start:])
    return tokens

def render_override(tokens: Sequence[Token]) -> str:
    return "".join(token if isinstance(token, str) else token.render() for token in tokens)


def _scale_part(part: str, ratio: float, precision: int) -> str:
    leading, number, trailing = PADDED_RE.match(part).groups()
    return leading + scale_number_text(number, ratio, precision) + trailing

def scale_argument_list(argument: str, ratios: Sequence[float], precision: int = 3,
                        exact: bool = True) -> Optional[str]:
    """
    Scale the first len(ratios) comma-separated numbers of `argument`.
    Extra parameters are kept verbatim unless `exact` demands none exist.
    Returns None when the list does not have the expected shape.
    """
    parts = argument.split(",")
    if len(parts) < len(ratios) or (exact and len(parts) != len(ratios)):
        return None
    if any(parse_number(part) is None for part in parts[:len(ratios)]):
        return None

    scaled = [_scale_part(part, ratio, precision) for part, ratio in zip(parts, ratios)]
    return ",".join(scaled + parts[len(ratios):])

def scale_clip_argument(argument: str, context: ScaleContext, precision: int = 3) -> Optional[str]:
    """
    Rectangle clips scale as (x1, y1, x2, y2); vector clips scale their
    drawing path, keeping an optional leading scale level as written.
    """
    rx, ry = context.ratio_x, context.ratio_y
    rectangle = scale_argument_list(argument, (rx, ry, rx, ry), precision)
    if rectangle is not None:
        return rectangle

    with_level = CLIP_SCALE_RE.match(argument)
    if with_level and looks_like_drawing(with_level.group(2)):
        return with_level.group(1) + scale_drawing(with_level.group(2), context, precision)

    if looks_like_drawing(argument):
        return scale_drawing(argument, context, precision)
    return None


class _TagScaler:
    """Per-call dispatch table from tag name to rewrite."""

    def __init__(self, context: ScaleContext, policy: ResamplePolicy):
        self.context = context
        self.policy = policy
        self.precision = policy.precision

        rx, ry = context.ratio_x, context.ratio_y
        border = context.mean_ratio if policy.border_mode == BorderMode.MEAN else ry

        bare_ratios = {
            "fs": ry, "fsp": ry, "pbo": ry,
            "bord": border, "shad": border, "be": border, "blur": border,
            "xbord": rx, "xshad": rx, "fax": rx,
            "ybord": ry, "yshad": ry, "fay": ry,
            "marginl": rx, "marginr": rx,
            "marginv": ry, "margint": ry, "marginb": ry,
        }
        if policy.scale_x_mode == ScaleXMode.ASPECT:
            bare_ratios["fscx"] = context.aspect_ratio
        self.bare_ratios = bare_ratios

        self.paren_handlers: Dict[str, Callable[[str], Optional[str]]] = {
            "pos": lambda arg: scale_argument_list(arg, (rx, ry), self.precision),
            "org": lambda arg: scale_argument_list(arg, (rx, ry), self.precision),
            "move": lambda arg: scale_argument_list(arg, (rx, ry, rx, ry), self.precision, exact=False),
            "margins": lambda arg: scale_argument_list(arg, (rx, rx, ry, ry), self.precision),
            "clip": lambda arg: scale_clip_argument(arg, context, self.precision),
            "iclip": lambda arg: scale_clip_argument(arg, context, self.precision),
            "t": self.scale_transform,
        }

    def scale_transform(self, argument: str) -> Optional[str]:
        # \t([t1,t2,][accel,]tags): only the tag string is scaled
        tags_start = argument.find("\\")
        if tags_start < 0:
            return None
        scaled_tags, _ = self.scale_block(argument[tags_start:])
        return argument[:tags_start] + scaled_tags

    def scale_tag(self, tag: OverrideTag) -> OverrideTag:
        name = tag.name.lower()

        if tag.parenthesized:
            handler = self.paren_handlers.get(name)
            if handler is None or not tag.closed:
                return tag
            return tag.with_argument(handler(tag.argument))

        if name == "fn":
            if self.policy.replace_inline_fonts and tag.argument.strip():
                return tag.with_argument(self.policy.font_name)
            return tag

        ratio = self.bare_ratios.get(name)
        if ratio is None:
            return tag
        return tag.with_argument(scale_leading_number(tag.argument, ratio, self.precision))

    def scale_block(self, content: str) -> Tuple[str, Optional[int]]:
        tokens = parse_override(content)
        drawing_level = None
        scaled: List[Token] = []

        for token in tokens:
            if isinstance(token, str):
                scaled.append(token)
                continue
            if token.name.lower() == "p" and not token.parenthesized:
                level = parse_number(token.argument)
                if level is not None:
                    drawing_level = int(level)
            scaled.append(self.scale_tag(token))

        return render_override(scaled), drawing_level


def scale_override(content: str, context: ScaleContext, policy: ResamplePolicy) -> Tuple[str, Optional[int]]:
    """
    Scale the inside of one override block (without braces). Also returns
    the \\p drawing level the block sets, or None if it sets none.
    """
    return _TagScaler(context, policy).scale_block(content)

def scale_text(text: str, context: ScaleContext, policy: ResamplePolicy) -> str:
    """
    Scale every override block of a dialogue text field, plus drawing
    commands written between blocks while a \\pN (N > 0) level is active.
    """
    if not text:
        return text

    scaler = _TagScaler(context, policy)
    out = []
    last = 0
    drawing_level = 0

    for match in OVERRIDE_BLOCK_RE.finditer(text):
        plain = text[last:match.start()]
        out.append(scale_drawing(plain, context, policy.precision) if drawing_level > 0 else plain)

        inner, level = scaler.scale_block(match.group(0)[1:-1])
        if level is not None:
            drawing_level = level
        out.append("{" + inner + "}")
        last = match.end()

    tail = text[last:]
    out.append(scale_drawing(tail, context, policy.precision) if drawing_level > 0 else tail)
    return "".join(out)
