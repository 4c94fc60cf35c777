#!/usr/bin/env python3
"""
Leakscope - structured reports from macOS `leaks` output
Command-line tool for filtering root leaks and retain cycles from a saved
`leaks` report (for example `xcrun simctl spawn booted leaks Client > out.txt`).

Usage: leakscope [PROCESS] [-p PID] [-i FILE] [--filter cycles] [--format json]
"""

import argparse
import os
import sys
from typing import Optional

from rich.console import Console

from leaks_colors import RED
from leaks_config import ConfigError, LeakscopeConfig, LOG_LEVELS, load_config
from leaks_display import display_leaks, display_raw, display_summary
from leaks_logging import get_logger, setup_logger
from leaks_parser import parse_leaks_report
from leaks_types import (
    InvalidInvocationParamsError,
    LeakFilter,
    LeaksInvocationParams,
    LeaksRawResult,
    OutputFormat,
)

# Return codes
SUCCESS = 0
LEAKS_FOUND = 1
ERROR = 2

STDIN_PATH = "-"

logger = get_logger("cli")


class LeaksInputError(Exception):
    """Raised when the `leaks` output cannot be read."""

    pass


def print_error(message: str, console: Optional[Console] = None) -> None:
    """Display a formatted error message on stderr."""
    console = console or Console(stderr=True)
    console.print(f"\nError: {message}\n", style=RED, markup=False, highlight=False, soft_wrap=True)


def build_argument_parser(config: LeakscopeConfig) -> argparse.ArgumentParser:
    """
    Build the command-line parser, with defaults taken from config.

    Args:
        config: Result of load_config().

    Returns:
        Configured parser.
    """

    parser = argparse.ArgumentParser(
        prog="leakscope",
        description="Parse macOS `leaks` output into root leaks and retain cycles.",
    )

    parser.add_argument("process", nargs="?", default=None,
                        help="Process name the report was taken from (e.g. 'Client').")
    parser.add_argument("-p", "--pid", type=int, default=None,
                        help="Process ID, as an alternative to the process name.")
    parser.add_argument("-i", "--input", default=STDIN_PATH,
                        help="File holding the `leaks` output ('-' for stdin).")
    parser.add_argument("-d", "--device", default=config["device_id"],
                        help="Simulator device ID the report came from.")
    parser.add_argument("-e", "--exclude", action="append", default=None,
                        help="Symbol excluded from the `leaks` run (can be repeated). "
                             "Recorded in the report parameters only, not applied as a filter.")
    parser.add_argument("-f", "--format", type=str.lower, default=config["output_format"].value,
                        choices=[output_format.value for output_format in OutputFormat])
    parser.add_argument("--filter", type=str.lower, default=config["leak_filter"].value,
                        choices=[leak_filter.value for leak_filter in LeakFilter])
    parser.add_argument("-t", "--test-name", default=config["test_name"],
                        help="Test name attached to every record.")
    parser.add_argument("--log-level", type=str.upper, default=config["log_level"],
                        choices=LOG_LEVELS)

    view_group = parser.add_mutually_exclusive_group()
    view_group.add_argument("--summary", action="store_true", default=False,
                            help="Show summary statistics only.")
    view_group.add_argument("--details", action="store_true", default=False,
                            help="Show each record with its children as a table.")

    return parser


def _build_params(args: argparse.Namespace) -> LeaksInvocationParams:
    """
    Build invocation parameters from parsed arguments.

    Raises:
        InvalidInvocationParamsError: If both or neither of process and pid are set.
    """

    if args.process is None and args.pid is None:
        raise InvalidInvocationParamsError(
            "Either a process name or --pid must be provided.\n"
            "Use --help for usage information."
        )

    if args.process is not None and args.pid is not None:
        raise InvalidInvocationParamsError("Cannot specify both a process name and --pid.")

    return LeaksInvocationParams(
        pid=args.pid,
        process_name=args.process,
        device_id=args.device,
        exclude_symbols=tuple(args.exclude or ()),
    )


def _read_leaks_output(path: str) -> str:
    """
    Read the saved `leaks` report.

    Args:
        path: File path, or "-" for stdin.

    Returns:
        Complete report text.

    Raises:
        LeaksInputError: If the file does not exist or cannot be read.
    """

    if path == STDIN_PATH:
        return sys.stdin.buffer.read().decode("utf-8", errors="replace")

    if not os.path.exists(path):
        raise LeaksInputError(f"Input file '{path}' does not exist.")

    if not os.path.isfile(path):
        raise LeaksInputError(f"'{path}' is not a file.")

    try:
        with open(path, "r", encoding="utf-8", errors="replace", newline="") as f:
            return f.read()
    except OSError as e:
        raise LeaksInputError(f"Cannot read '{path}': {e.strerror}") from e


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point of Leakscope.

    Returns:
        0 if no leaks remain after filtering, 1 if leaks were found,
        2 on invalid input or configuration.
    """

    try:
        config = load_config()
    except ConfigError as e:
        print_error(f"Invalid configuration:\n{e}")
        return ERROR

    args = build_argument_parser(config).parse_args(argv)
    setup_logger(args.log_level)

    console = Console()

    try:
        params = _build_params(args)
        raw_result = LeaksRawResult(params=params, raw_output=_read_leaks_output(args.input))

        output_format = OutputFormat(args.format)
        leak_filter = LeakFilter(args.filter)

        report = parse_leaks_report(raw_result, test_name=args.test_name)
        logger.info("Parsed %d record(s) for %s", len(report.leaks), params)

        # Unfiltered raw output is echoed as-is
        if output_format is OutputFormat.RAW and leak_filter is LeakFilter.ALL \
                and not (args.summary or args.details):
            sys.stdout.write(raw_result.raw_output)
            return LEAKS_FOUND if report.leaks else SUCCESS

        filtered_report = report.apply_filter(leak_filter)

        if args.summary:
            display_summary(filtered_report, console)
        elif args.details:
            display_leaks(filtered_report, console)
        elif output_format is OutputFormat.JSON:
            print(filtered_report.serialize_compact())
        elif output_format is OutputFormat.JSON_PRETTY:
            print(filtered_report.serialize_pretty())
        else:
            display_raw(filtered_report)

        return LEAKS_FOUND if filtered_report.leaks else SUCCESS

    except InvalidInvocationParamsError as e:
        print_error(str(e))
        return ERROR

    except LeaksInputError as e:
        print_error(str(e))
        return ERROR

    except KeyboardInterrupt:
        print_error("Interrupted by user.")
        return ERROR


if __name__ == "__main__":
    sys.exit(main())
