"""dflog command-line tool."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections import Counter

from .decoder import LogRecord
from .log import iter_messages, parse


def _format_record(record: LogRecord) -> str:
    if record.timestamp is not None:
        ts = f"[{record.timestamp / 1_000_000:12.6f}]"
    else:
        ts = f"[{'-':>12s}]"
    fields_str = ", ".join(f"{k}={v}" for k, v in record.fields.items())
    return f"{ts} {record.type_name}: {fields_str}"


def _format_duration(us: int) -> str:
    """Format a microsecond duration as a human-readable string."""
    if us < 1_000:
        return f"{us}us"
    if us < 1_000_000:
        return f"{us / 1_000:.1f}ms"
    s = us / 1_000_000
    if s < 60:
        return f"{s:.2f}s"
    if s < 3600:
        return f"{s / 60:.1f}m"
    return f"{s / 3600:.1f}h"


def cmd_dump(args: argparse.Namespace) -> None:
    """Dump every record of a log to stdout."""
    wanted = {t.strip() for t in args.type} if args.type else None
    for record in iter_messages(args.file):
        if wanted is None or record.type_name in wanted:
            print(_format_record(record))


def cmd_formats(args: argparse.Namespace) -> None:
    """Print the FORMAT table of a log."""
    log = parse(args.file)
    for f in sorted(log.formats, key=lambda f: f.type_id):
        print(f"[{f.type_id:3d}] {f.name:<4s}  length={f.record_length}")
        for code, name in zip(f.format, f.field_names):
            print(f"        {name:20s} {code}")
        if len(f.format) != len(f.field_names):
            print(f"        ({len(f.format)} type codes, "
                  f"{len(f.field_names)} labels)")
        print()


def cmd_info(args: argparse.Namespace) -> None:
    """Print summary info about a log file."""
    file_size = os.path.getsize(args.file)
    log = parse(args.file, diagnostics=True)
    store = log.store

    print(f"File:       {args.file}")
    print(f"Size:       {file_size:,} bytes")
    print(f"Formats:    {len(log.formats)}")
    print(f"Records:    {len(store):,}")

    span = store.time_range()
    if span is not None:
        t0, t1 = span
        print(f"Time range: {t0 / 1_000_000:.6f}s - {t1 / 1_000_000:.6f}s")
        print(f"Duration:   {_format_duration(t1 - t0)}")
    else:
        print("Time range: (none)")

    names = store.type_names()
    print(f"\nTypes ({len(names)}):")
    print(f"  {'Name':<6s}  {'Records':>8s}  Fields")
    for name in names:
        fmt = log.formats.by_name(name)
        field_names = ", ".join(fmt.field_names[:fmt.field_count]) if fmt else ""
        print(f"  {name:<6s}  {store.count(name):8,}  {field_names}")

    if log.diagnostics:
        kinds = Counter(d.kind.value for d in log.diagnostics)
        print(f"\nDiagnostics ({len(log.diagnostics)}):")
        for kind, n in sorted(kinds.items()):
            print(f"  {kind:<22s} {n:8,}")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="dflog",
                                     description="DataFlash log decoder")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable debug logging")
    sub = parser.add_subparsers(dest="command")

    # dump
    p_dump = sub.add_parser("dump", help="Dump decoded records")
    p_dump.add_argument("file", help="Path to .bin log file")
    p_dump.add_argument("--type", action="append",
                        help="Only print records of this type (repeatable)")

    # formats
    p_formats = sub.add_parser("formats", help="Show FORMAT definitions")
    p_formats.add_argument("file", help="Path to .bin log file")

    # info
    p_info = sub.add_parser("info", help="Show summary info about a log file")
    p_info.add_argument("file", help="Path to .bin log file")

    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(name)s: %(message)s")

    commands = {"dump": cmd_dump, "formats": cmd_formats, "info": cmd_info}
    if args.command not in commands:
        parser.print_help()
        return 0

    try:
        commands[args.command](args)
    except OSError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
