"""
Resample an ASS script to the target resolution and font

Pipeline: normalise line endings -> resolve PlayRes and ratios -> force
the target PlayRes -> rewrite styles/events -> finalise the text.
"""

from pathlib import Path
from typing import List, Optional, Tuple, Union

from subconv.models.schema import LineEnding, ResamplePolicy, ScaleContext
from subconv.services.ass_resolution import apply_target_resolution, build_scale_context
from subconv.services.ass_sections import rewrite_sections
from subconv.utils.file_utils import read_text_file
from subconv.utils.error_utils import logger

BOM = "\ufeff"

def normalize_text(text: str) -> str:
    if text.startswith(BOM):
        text = text[len(BOM):]
    return text.replace("\r\n", "\n").replace("\r", "\n")

def finalize_output(text: str, policy: ResamplePolicy) -> str:
    """
    Apply the output conventions: trailing newline, line ending and BOM.
    """
    if not text.endswith("\n"):
        text += "\n"
    if policy.line_ending == LineEnding.CRLF:
        text = text.replace("\n", "\r\n")
    if policy.write_bom:
        text = BOM + text
    return text

def resample_lines(text: str, policy: ResamplePolicy) -> Tuple[List[str], ScaleContext]:
    lines = normalize_text(text).split("\n")
    # a trailing newline yields one empty element; finalize_output restores it
    if lines and lines[-1] == "":
        lines.pop()

    context = build_scale_context(lines, policy)
    lines = apply_target_resolution(lines, policy)
    lines = rewrite_sections(lines, context, policy)
    return lines, context

def resample_ass_text(text: str, policy: Optional[ResamplePolicy] = None) -> str:
    """
    Resample an in-memory ASS script and return the complete rewritten text.
    """
    if policy is None:
        policy = ResamplePolicy()

    lines, context = resample_lines(text, policy)
    if not context.declared:
        logger.info(
            f"Script has no PlayResX/PlayResY, assuming "
            f"{policy.default_source_width}x{policy.default_source_height}"
        )
    elif context.is_identity:
        logger.info("Script already at target resolution, only fonts and the reference style change")
    return finalize_output("\n".join(lines), policy)

def resample_ass_file(file_path: Union[str, Path], policy: Optional[ResamplePolicy] = None) -> str:
    """
    Read an ASS file and return its resampled text. Read errors propagate.
    """
    logger.info(f"Resampling ASS file: {file_path}")
    text = read_text_file(file_path)
    return resample_ass_text(text, policy)

def describe_context(context: ScaleContext) -> dict:
    return {
        "source": {"width": context.source_width, "height": context.source_height, "declared": context.declared},
        "target": {"width": context.target_width, "height": context.target_height},
        "ratio_x": context.ratio_x,
        "ratio_y": context.ratio_y,
    }
