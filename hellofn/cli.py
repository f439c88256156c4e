import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .runtime import discover_functions, invoke_function, load_spec
from .server import serve as run_server
from .utils import ensure_dirs, fn_config_path, fn_dir, load_local_settings, log_path, route_prefix
from .verify import format_report, run_checks


def _parse_pairs(pairs: List[str]) -> Dict[str, str]:
    out = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got '{pair}'")
        out[key] = value
    return out


def cmd_serve(args: argparse.Namespace) -> int:
    root = Path(args.root)
    quiet = getattr(args, "quiet", False)
    if not quiet:
        logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")
    load_local_settings(root)
    ensure_dirs()
    run_server(root, host=args.host, port=args.port, quiet=quiet, request_logs=not args.no_logs)
    return 0


def cmd_invoke(args: argparse.Namespace) -> int:
    root = Path(args.root)
    name: str = args.name
    if not fn_config_path(root, name).exists():
        print(f"Function '{name}' does not exist in {root}", file=sys.stderr)
        return 2
    try:
        query = _parse_pairs(args.query)
        if args.body is not None:
            json.loads(args.body)
    except ValueError as e:
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2
    load_local_settings(root)
    spec = load_spec(root, name)
    event = {
        "method": args.method.upper(),
        "url": f"http://localhost/{route_prefix(root)}/{spec.route}",
        "query": query,
        "headers": {"Content-Type": "application/json"} if args.body is not None else {},
        "body": args.body or "",
    }
    status, headers, body = invoke_function(spec, fn_dir(root, name), event)
    print(f"Status: {status}")
    for k, v in headers.items():
        print(f"{k}: {v}")
    print()
    print(body.decode(errors="replace"))
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    root = Path(args.root)
    specs = discover_functions(root)
    if not specs:
        print(f"No functions found in {root}. A function is a folder holding a function.json")
        return 0
    prefix = route_prefix(root)
    rows = [
        (spec.name, f"/{prefix}/{spec.route}" if prefix else f"/{spec.route}", spec.auth_level, ",".join(m.upper() for m in spec.methods))
        for spec in specs
    ]
    headers = ("NAME", "ROUTE", "AUTH", "METHODS")
    widths = [max(len(headers[i]), max(len(row[i]) for row in rows)) for i in range(len(headers))]
    def fmt_row(row) -> str:
        return "  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row))

    print(fmt_row(headers))
    for row in rows:
        print(fmt_row(row))
    return 0


def cmd_logs(args: argparse.Namespace) -> int:
    name: str = args.name
    lp = log_path(name)
    if not lp.exists():
        print(f"No logs for '{name}' yet at {lp}")
        return 0
    if not args.follow:
        print(lp.read_text(encoding="utf-8"), end="")
        return 0
    # tail -f
    with lp.open("r", encoding="utf-8") as f:
        f.seek(0, os.SEEK_END)
        try:
            while True:
                line = f.readline()
                if not line:
                    time.sleep(0.5)
                    continue
                print(line, end="")
        except KeyboardInterrupt:
            return 0


def cmd_verify(args: argparse.Namespace) -> int:
    sections = run_checks(Path(args.root))
    print(format_report(sections))
    return 0 if all(s.ok for s in sections) else 1


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="hellofn", description="HelloWorld HTTP function: local host and project tools")
    p.add_argument("--version", action="version", version=f"hellofn {__version__}")
    sub = p.add_subparsers(dest="cmd", required=True)

    s = sub.add_parser("serve", help="Run the local function host")
    s.add_argument("--root", default=".", help="Project root holding host.json and function folders")
    s.add_argument("--host", default="127.0.0.1")
    s.add_argument("--port", type=int, default=7071)
    s.add_argument("--quiet", action="store_true", help="Suppress HTTP access and function logs")
    s.add_argument("--no-logs", action="store_true", help="Do not write request logs")
    s.set_defaults(func=cmd_serve)

    i = sub.add_parser("invoke", help="Invoke a function once without the HTTP server")
    i.add_argument("name")
    i.add_argument("--root", default=".")
    i.add_argument("--method", default="GET")
    i.add_argument("--query", action="append", default=[], metavar="KEY=VALUE")
    i.add_argument("--body", default=None, help="JSON request body")
    i.set_defaults(func=cmd_invoke)

    l = sub.add_parser("list", help="List functions")
    l.add_argument("--root", default=".")
    l.set_defaults(func=cmd_list)

    g = sub.add_parser("logs", help="Show or follow function request logs")
    g.add_argument("name")
    g.add_argument("-f", "--follow", action="store_true")
    g.set_defaults(func=cmd_logs)

    v = sub.add_parser("verify", help="Check presence and shape of project files")
    v.add_argument("--root", default=".")
    v.set_defaults(func=cmd_verify)

    return p


def main(argv: Optional[list] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
