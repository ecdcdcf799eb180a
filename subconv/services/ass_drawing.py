"""
Vector drawing paths (\\p drawings and vector \\clip arguments)

A path is a run of command letters followed by coordinates:

    m 0 0 l 100 0 100 100 b 10 10 20 20 30 30

Numbers alternate x/y starting with x, and every command letter restarts the
alternation. Whitespace and any token that is neither a command nor a number
are copied through unchanged.
"""

import re

from subconv.models.schema import ScaleContext
from subconv.utils.number_utils import NUMBER_PATTERN, scale_number_text

DRAWING_COMMANDS = frozenset("mlbsnpc")

TOKEN_RE = re.compile(r'(?P<space>\s+)|(?P<number>' + NUMBER_PATTERN + r')|(?P<command>[A-Za-z])|(?P<other>.)', re.DOTALL)

def scale_drawing(path: str, context: ScaleContext, precision: int = 3) -> str:
    out = []
    axis = 0  # 0 -> x, 1 -> y

    for match in TOKEN_RE.finditer(path):
        token = match.group(0)
        kind = match.lastgroup

        if kind == "number":
            ratio = context.ratio_x if axis == 0 else context.ratio_y
            out.append(scale_number_text(token, ratio, precision))
            axis ^= 1
        elif kind == "command" and token.lower() in DRAWING_COMMANDS:
            out.append(token)
            axis = 0
        else:
            out.append(token)

    return "".join(out)

def looks_like_drawing(text: str) -> bool:
    stripped = text.lstrip()
    return bool(stripped) and stripped[0].lower() in DRAWING_COMMANDS
