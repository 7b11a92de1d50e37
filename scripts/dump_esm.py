"""Trace every chunk of a plugin file to stdout.

Usage:
    python -m scripts.dump_esm PATH

Prints one indented line per record, group and field, then a summary.
Exits 0 on success (or when no path is given), 1 on any parse error.
"""

import argparse
import logging
import sys
from pathlib import Path

from esm_parser.parser.errors import EsmError
from esm_parser.parser.plugin_parser import ParseSummary, PluginParser
from esm_parser.parser.trace import PrintTraceSink


def format_summary(summary: ParseSummary) -> str:
    top = ", ".join(
        f"{record_type}={count}"
        for record_type, count in summary.record_counts.most_common(5)
    )
    return (
        f"Total: {summary.total_records} records in {summary.groups} groups "
        f"({summary.skipped_records} records and {summary.skipped_groups} groups "
        f"skipped by size)" + (f" | {top}" if top else "")
    )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Trace the chunk structure of an ESM/ESP file")
    parser.add_argument("path", nargs="?", type=Path, help="Plugin file to parse")
    args = parser.parse_args(argv)

    if args.path is None:
        parser.print_usage()
        return 0

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    try:
        plugin = PluginParser.from_path(args.path, sink=PrintTraceSink())
        summary = plugin.parse_top_level()
    except (EsmError, OSError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(format_summary(summary))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
