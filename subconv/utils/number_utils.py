"""
Numeric helpers shared by the ASS resampler
"""

import math
import re
from typing import Optional

EPSILON = 1e-9

NUMBER_PATTERN = r'[+-]?(?:\d+(?:\.\d*)?|\.\d+)'
NUMBER_RE = re.compile(r'^\s*' + NUMBER_PATTERN + r'\s*$')
LEADING_NUMBER_RE = re.compile(r'^(\s*)(' + NUMBER_PATTERN + r')(.*)$', re.DOTALL)

def parse_number(text: str) -> Optional[float]:
    """
    Parse a plain decimal literal; anything else (including exponents,
    'nan' or 'inf') returns None.
    """
    if text is None or not NUMBER_RE.match(text):
        return None
    return float(text)

def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))

def format_number(value: float, precision: int = 3) -> str:
    """
    Render a scaled value: whole numbers without a decimal point, everything
    else with at most `precision` decimals and no trailing zeros.
    """
    nearest = round(value)
    if abs(value - nearest) < EPSILON:
        return str(int(nearest))

    text = f"{value:.{precision}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        return "0"
    return text

def scale_number_text(text: str, ratio: float, precision: int = 3, integer: bool = False) -> str:
    """
    Multiply the number written in `text` by `ratio`.

    The original literal is returned untouched when it does not parse or when
    the value would not change, so a 1:1 resample leaves the file byte-identical.
    """
    value = parse_number(text)
    if value is None:
        return text

    scaled = value * ratio
    if abs(scaled - value) < EPSILON:
        return text

    if integer:
        return str(round_half_up(scaled))
    return format_number(scaled, precision)

def scale_leading_number(text: str, ratio: float, precision: int = 3) -> str:
    """
    Scale the number a bare tag argument starts with and keep whatever
    follows it (e.g. a trailing comment inside the override block).
    """
    match = LEADING_NUMBER_RE.match(text)
    if not match:
        return text

    leading, number, rest = match.groups()
    return leading + scale_number_text(number, ratio, precision) + rest
