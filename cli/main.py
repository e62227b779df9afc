"""boxport CLI entry point: argparse dispatcher for the box subcommands."""
from __future__ import annotations

import argparse
import json
import sys
import traceback


# ---------------------------------------------------------------------------
# Command registry: command name → (module_path, function_name)
# Lazy-imported at dispatch time to keep startup fast.
# ---------------------------------------------------------------------------
COMMANDS = {
    "import":   ("cli.commands.box", "cmd_import"),
    "ls":       ("cli.commands.box", "cmd_list"),
    "stack":    ("cli.commands.box", "cmd_stack"),
    "versions": ("cli.commands.box", "cmd_versions"),
    "rm":       ("cli.commands.box", "cmd_delete"),
}


# ---------------------------------------------------------------------------
# Shared argparse helpers
# ---------------------------------------------------------------------------
def _add_connection_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--url", help="Catalog base URL (default: $BOXPORT_URL)")
    p.add_argument("--token", help="API token (default: $BOXPORT_TOKEN or ~/.boxport/auth.json)")
    p.add_argument("--deadline", type=float, help="Give up on requests after this many seconds")


def _str2bool(value: str) -> bool:
    s = value.strip().lower()
    if s in {"1", "true", "yes", "on"}:
        return True
    if s in {"0", "false", "no", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"expected a boolean, got {value!r}")


# ---------------------------------------------------------------------------
# Parser builder
# ---------------------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    from cli._version import __version__

    parser = argparse.ArgumentParser(
        prog="boxport",
        description="Import and manage catalog boxes",
    )
    parser.add_argument("--debug", action="store_true", help="Log requests and import steps, show stack traces on error")
    parser.add_argument("--log-json", action="store_true",
                        help="Write log records as JSON lines (default: $BOXPORT_LOG_JSON)")
    parser.add_argument("-v", "--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    # import
    p = sub.add_parser("import", aliases=["imp", "up", "upload"], help="Import box from directory")
    p.add_argument("path", help="Box directory (containing box.yaml)")
    p.add_argument("--as-draft", type=_str2bool, nargs="?", const=True, default=True,
                   help="Upload box as draft (non-raw mode only, default: true)")
    p.add_argument("--raw", action="store_true", help="Use raw (appliance) import mode")
    p.add_argument("-o", "--owner", default="", help="If set, overrides the box owner")
    _add_connection_args(p)

    # ls
    p = sub.add_parser("ls", aliases=["list", "show", "get"], help="List box(es)")
    p.add_argument("box_ids", nargs="*", help="Box IDs (default: all boxes)")
    _add_connection_args(p)

    # stack
    p = sub.add_parser("stack", help="List the box stack of a box")
    p.add_argument("box_id", help="Box ID")
    _add_connection_args(p)

    # versions
    p = sub.add_parser("versions", aliases=["ver"], help="List versions of a box")
    p.add_argument("box_id", help="Box ID")
    _add_connection_args(p)

    # rm
    p = sub.add_parser("rm", aliases=["delete", "del", "remove"], help="Remove box(es)")
    p.add_argument("box_ids", nargs="+", help="Box IDs")
    _add_connection_args(p)

    return parser


ALIASES = {
    "imp": "import", "up": "import", "upload": "import",
    "list": "ls", "show": "ls", "get": "ls",
    "ver": "versions",
    "delete": "rm", "del": "rm", "remove": "rm",
}


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------
def _configure_logging(args: argparse.Namespace) -> None:
    import logging

    from boxport.config import log_json_from_env
    from boxport.logger import ROOT_LOGGER, enable_json_logging

    if getattr(args, "log_json", False) or log_json_from_env():
        enable_json_logging()
    if args.debug:
        logging.getLogger(ROOT_LOGGER).setLevel(logging.DEBUG)


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    args.debug = bool(getattr(args, "debug", False))
    _configure_logging(args)
    command = ALIASES.get(args.command, args.command)

    # Draft submission applies to non-raw imports only.
    if command == "import" and args.raw:
        args.as_draft = False

    entry = COMMANDS.get(command)
    if not entry:
        parser.print_help()
        sys.exit(1)

    mod_path, fn_name = entry
    try:
        import importlib
        mod = importlib.import_module(mod_path)
        fn = getattr(mod, fn_name)
        fn(args)
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as exc:
        json.dump({"ok": False, "error": str(exc)}, sys.stdout, default=str)
        sys.stdout.write("\n")
        if args.debug:
            traceback.print_exc(file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
