"""
PlayRes detection and the scale context of an ASS script
"""

import re
from typing import List, Optional, Tuple

from subconv.models.schema import ResamplePolicy, ScaleContext
from subconv.utils.error_utils import logger


PLAYRES_RE = re.compile(r'^\s*PlayRes([XY])\s*:\s*(\d+)\s*$', re.IGNORECASE)
SCRIPT_INFO_RE = re.compile(r'^\s*\[Script Info\]\s*$', re.IGNORECASE)

def find_play_res(lines: List[str]) -> Tuple[Optional[int], Optional[int]]:
    """
    Return the first PlayResX and PlayResY values declared anywhere in the
    script, or None for each one that is missing.
    """
    play_res = {"x": None, "y": None}
    for line in lines:
        match = PLAYRES_RE.match(line)
        if not match:
            continue
        axis = match.group(1).lower()
        if play_res[axis] is None:
            play_res[axis] = int(match.group(2))
    return play_res["x"], play_res["y"]

def build_scale_context(lines: List[str], policy: ResamplePolicy) -> ScaleContext:
    """
    Build the ratios for one document. Missing or zero declarations fall
    back to the policy's default source resolution.
    """
    source_x, source_y = find_play_res(lines)
    declared = bool(source_x) and bool(source_y)

    if not source_x:
        source_x = policy.default_source_width
    if not source_y:
        source_y = policy.default_source_height

    context = ScaleContext(
        source_width=source_x,
        source_height=source_y,
        target_width=policy.target_width,
        target_height=policy.target_height,
        declared=declared,
    )
    logger.debug(
        f"Resampling {source_x}x{source_y} -> {policy.target_width}x{policy.target_height} "
        f"(ratio {context.ratio_x:.4f}, {context.ratio_y:.4f})"
    )
    return context

def apply_target_resolution(lines: List[str], policy: ResamplePolicy) -> List[str]:
    """
    Force PlayResX/PlayResY to the target resolution. Existing declarations
    are rewritten in place; missing ones are inserted right after the
    [Script Info] header, which is created at the top if absent.
    """
    values = {"x": policy.target_width, "y": policy.target_height}
    seen = set()
    result = []

    for line in lines:
        match = PLAYRES_RE.match(line)
        if match:
            axis = match.group(1).lower()
            seen.add(axis)
            result.append(f"PlayRes{axis.upper()}: {values[axis]}")
        else:
            result.append(line)

    missing = [f"PlayRes{axis.upper()}: {values[axis]}" for axis in ("x", "y") if axis not in seen]
    if not missing:
        return result

    for index, line in enumerate(result):
        if SCRIPT_INFO_RE.match(line):
            return result[:index + 1] + missing + result[index + 1:]

    logger.info("No [Script Info] section found, adding one")
    return ["[Script Info]"] + missing + result
