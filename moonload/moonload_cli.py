"""Command line access to a content directory: ``moonload ROOT [PATH]``."""
import argparse
import logging
import sys
from typing import Any, List, Optional

from moonload.moonload_config import LoaderConfig
from moonload.moonload_datatypes import LoaderError
from moonload.moonload_printer import Printer
from moonload.moonload_serialize import serialize
from moonload.moonload_session import ScriptSession

_TYPES = {"any": Any, "str": str, "int": int, "float": float, "bool": bool}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="moonload",
        description="Load a Lua content directory and print the value at a path.",
    )
    parser.add_argument("root", help="directory holding manifest.lua")
    parser.add_argument("path", nargs="?", default="", help="dotted or slashed path (default: the whole table)")
    parser.add_argument("--type", choices=sorted(_TYPES), default="any", help="convert the value to this type")
    parser.add_argument("--format", choices=["lua", "json", "yaml"], default="lua", help="output format")
    parser.add_argument("--config", help="loader settings file (.json, .yaml, .toml)")
    parser.add_argument("--source", metavar="REL", help="print the source of a script instead")
    parser.add_argument("-v", "--verbose", action="store_true", help="log script output and loader activity")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        config = LoaderConfig.from_file(args.config) if args.config else LoaderConfig()
    except (OSError, ValueError) as e:
        print(f"Error: could not read config: {e}", file=sys.stderr)
        return 1

    session = ScriptSession(config)
    try:
        session.initialize(args.root)
    except LoaderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.source:
        text = session.get_script_source(args.source)
        if text is None:
            print(f"Error: script not found: {args.source}", file=sys.stderr)
            return 1
        sys.stdout.write(text)
        return 0

    try:
        value = session.load(args.path, _TYPES[args.type])
    except LoaderError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    identify = session.host.identity
    if args.format == "lua":
        print(Printer(identify=identify).pformat(value))
    else:
        try:
            print(serialize(value, fmt=args.format, identify=identify).rstrip("\n"))
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
