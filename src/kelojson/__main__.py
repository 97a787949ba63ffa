"""Command-line entry point.

Usage:
    python -m kelojson info map.kelojson
    python -m kelojson convert map.kelojson map.kelojson.gz [--compact]
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from kelojson.errors import KeloJSONError
from kelojson.fileio import read_file, write_file
from kelojson.reader import KeloJSONReader


def cmd_info(args: argparse.Namespace) -> int:
    reader = KeloJSONReader()
    dataset = read_file(args.path, reader=reader)
    print(f"{args.path}")
    print(f"  Nodes:     {len(dataset.nodes)}")
    print(f"  Ways:      {len(dataset.ways)}")
    print(f"  Relations: {len(dataset.relations)}")
    print(f"  Warnings:  {len(reader.warnings)}")
    for w in reader.warnings:
        print(f"    [{w.kind.value}] {w.message} (id {w.primitive_id})")
    return 0


def cmd_convert(args: argparse.Namespace) -> int:
    dataset = read_file(args.src)
    write_file(args.dst, dataset, pretty=not args.compact)
    print(f"Wrote {len(dataset)} primitives to {args.dst}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="kelojson", description="KeloJSON file tools")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
    sub = parser.add_subparsers(dest="command", required=True)

    p_info = sub.add_parser("info", help="Summarize a .kelojson file")
    p_info.add_argument("path")
    p_info.set_defaults(func=cmd_info)

    p_convert = sub.add_parser("convert", help="Re-encode a .kelojson file")
    p_convert.add_argument("src")
    p_convert.add_argument("dst", help="Output path; .gz/.bz2/.xz/.zip compress")
    p_convert.add_argument("--compact", action="store_true", help="No indentation")
    p_convert.set_defaults(func=cmd_convert)

    args = parser.parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if args.verbose else "WARNING")

    try:
        return args.func(args)
    except KeloJSONError as e:
        print(f"Error ({e.kind.value}): {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
