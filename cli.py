#!/usr/bin/env python
"""
CLI interface for SubtitleConverter
"""
import argparse
import logging
import os
import sys
from pathlib import Path

# Add the project root to the path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from subconv import config
from subconv.models.schema import BorderMode, ConversionOptions, LineEnding, ScaleXMode, SubtitleFormat
from subconv.services.conversion_service import convert_file, convert_to_srt, detect_format, write_converted
from subconv.services.resample_service import resample_ass_file
from subconv.utils.error_utils import log_error, logger
from subconv.utils.file_utils import is_valid_subtitle_file

def add_output_arguments(parser, resampling=True):
    parser.add_argument("--input", required=True, help="Path to the input subtitle file")
    parser.add_argument("--output", help="Path to the output file (default: <input>" + config.OUTPUT_SUFFIX + ".<ext>)")
    if resampling:
        parser.add_argument("--scale-x-mode", default=config.SCALE_X_MODE, choices=[mode.value for mode in ScaleXMode],
                            help="How \\fscx and style ScaleX react to an aspect change")
        parser.add_argument("--border-mode", default=config.BORDER_MODE, choices=[mode.value for mode in BorderMode],
                            help="Ratio used for borders, shadows and blur")
        parser.add_argument("--crlf", action="store_true", help="Write CRLF line endings")
        parser.add_argument("--bom", action="store_true", help="Write a UTF-8 byte order mark")
    parser.add_argument("--verbose", action="store_true", help="Verbose output")

def setup_argparse():
    """Set up the argument parser for the CLI"""
    parser = argparse.ArgumentParser(
        description="SubtitleConverter - Convert subtitles to 1920x1080 ASS scripts",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    convert_parser = subparsers.add_parser("convert", help="Convert any supported subtitle file to ASS")
    add_output_arguments(convert_parser)

    resample_parser = subparsers.add_parser("resample", help="Resample an ASS file to the target resolution")
    add_output_arguments(resample_parser)

    srt_parser = subparsers.add_parser("to-srt", help="Convert a VTT, TTML, XML or JSON file to SRT")
    add_output_arguments(srt_parser, resampling=False)

    return parser

def build_options(args) -> ConversionOptions:
    return ConversionOptions(
        scale_x_mode=ScaleXMode(args.scale_x_mode),
        border_mode=BorderMode(args.border_mode),
        line_ending=LineEnding.CRLF if args.crlf else LineEnding(config.OUTPUT_LINE_ENDING),
        write_bom=args.bom or config.OUTPUT_BOM,
    )

def validate_input(path):
    if not os.path.exists(path):
        print(f"Error: Input file does not exist: {path}")
        return False
    if not is_valid_subtitle_file(path):
        print(f"Error: Not a supported subtitle file: {path}")
        return False
    return True

def convert_subtitle_file(args):
    """Convert a subtitle file of any supported format to ASS"""
    print(f"Converting subtitle file: {args.input}")
    if not validate_input(args.input):
        return 1

    options = build_options(args)
    if args.verbose:
        print(f"Options: {options.model_dump_json()}")

    try:
        text = convert_file(args.input, options.to_policy())
        output_path = write_converted(args.input, text, args.output)
    except Exception as e:
        error_info = log_error(e, f"Error converting {args.input}")
        print(f"Conversion failed: {error_info['message']}")
        for suggestion in error_info["suggestions"]:
            print(f"  - {suggestion}")
        return 1

    print(f"Conversion completed successfully. Output saved to: {output_path}")
    return 0

def resample_subtitle_file(args):
    """Resample an existing ASS script"""
    print(f"Resampling ASS file: {args.input}")
    if not validate_input(args.input):
        return 1
    if detect_format(args.input) != SubtitleFormat.ASS:
        print(f"Error: resample only accepts .ass files: {args.input}")
        return 1

    try:
        text = resample_ass_file(args.input, build_options(args).to_policy())
        output_path = write_converted(args.input, text, args.output)
    except Exception as e:
        error_info = log_error(e, f"Error resampling {args.input}")
        print(f"Resampling failed: {error_info['message']}")
        return 1

    print(f"Resampling completed successfully. Output saved to: {output_path}")
    return 0

def to_srt_file(args):
    """Convert a caption dump to SRT without styling"""
    print(f"Converting to SRT: {args.input}")
    if not validate_input(args.input):
        return 1
    if detect_format(args.input) == SubtitleFormat.ASS:
        print(f"Error: ASS files cannot be converted to SRT: {args.input}")
        return 1

    try:
        text = convert_to_srt(args.input)
        output_path = args.output or f"{os.path.splitext(args.input)[0]}{config.OUTPUT_SUFFIX}.srt"
        output_path = write_converted(args.input, text, output_path)
    except Exception as e:
        error_info = log_error(e, f"Error converting {args.input} to SRT")
        print(f"Conversion failed: {error_info['message']}")
        return 1

    print(f"Conversion completed successfully. Output saved to: {output_path}")
    return 0

def main(argv=None):
    """Main entry point for the CLI"""
    parser = setup_argparse()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.verbose:
        logger.setLevel(logging.DEBUG)

    # Execute the appropriate command
    if args.command == "convert":
        return convert_subtitle_file(args)
    elif args.command == "resample":
        return resample_subtitle_file(args)
    elif args.command == "to-srt":
        return to_srt_file(args)
    else:
        print(f"Unknown command: {args.command}")
        return 1

if __name__ == "__main__":
    sys.exit(main())
