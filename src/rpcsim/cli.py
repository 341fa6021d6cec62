"""rpcsim CLI: a JSON front end for calling gRPC methods without compiled bindings."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any, List, Optional

from . import config
from . import json
from .errors import SchemaLoadError
from .invoke import METHOD_NOT_FOUND, invoke
from .log import configure, get_logger
from .probe import wait_until_ready
from .schema import load

logger = get_logger(__name__)

_EXAMPLES = """\
examples:
  rpcsim --method dnd5e.Dnd5eService.HealthCheck [--target localhost:50051]
  rpcsim --method dnd5e.Dnd5eService.GetEndpoints
  rpcsim --method dnd5e.Dnd5eService.GetList --data '{"endpoint":"classes","page":0,"page_size":50}'
  rpcsim --method dnd5e.Dnd5eService.GetItem --data '{"endpoint":"classes","index":"wizard"}'
  rpcsim --method dnd5e.Dnd5eService.SearchItems --data-file payload.json
  rpcsim --list
"""


class UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    # Malformed input exits 1 like every other failure, not argparse's 2.
    def error(self, message: str) -> None:  # type: ignore[override]
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    p = _Parser(
        prog="rpcsim",
        description="gRPC JSON simulator",
        epilog=_EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("-t", "--target", default=None, help="gRPC address (default: $RPCSIM_TARGET or localhost:50051)")
    p.add_argument("-m", "--method", default="", help="fully-qualified method, e.g. dnd5e.Dnd5eService.GetEndpoints")
    p.add_argument("-d", "--data", default=None, help="JSON string payload")
    p.add_argument("-f", "--data-file", default=None, help="path to JSON payload file (overrides --data)")
    p.add_argument("--list", action="store_true", help="list available services/methods")
    p.add_argument("-s", "--schema", default=None, help="schema file (default: $RPCSIM_SCHEMA or the bundled schema)")
    p.add_argument("--wait", type=int, default=None, metavar="MS", help="wait up to MS milliseconds for the target to become ready")
    p.add_argument("--timeout", type=float, default=None, help="per-call deadline in seconds (default: $RPCSIM_TIMEOUT or 10)")
    p.add_argument("-v", "--verbose", action="store_true", help="debug logging on stderr")
    return p


def _error(message: str) -> int:
    print(f"Error: {message}", file=sys.stderr)
    return 1


def _load_payload(args: argparse.Namespace) -> Any:
    if args.data_file:
        path = Path(args.data_file).resolve()
        try:
            content = path.read_bytes()
        except OSError as e:
            raise UsageError(f"cannot read --data-file {path}: {e.strerror or e}") from e
        source = f"--data-file {path}"
    elif args.data is not None:
        content = args.data.encode()
        source = "--data"
    else:
        return {}

    try:
        return json.loads(content)
    except json.JSONDecodeError as e:
        raise UsageError(f"invalid JSON in {source}: {e}") from e


def run(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        payload = _load_payload(args)
    except UsageError as e:
        return _error(str(e))

    if args.verbose:
        configure("DEBUG")

    schema = args.schema or config.schema_path()
    try:
        catalog = load(schema)
    except SchemaLoadError as e:
        return _error(str(e))

    if args.list:
        sys.stdout.write(json.dumps(catalog.listing(), indent=True).decode() + "\n")
        return 0

    if not args.method or "." not in args.method:
        return _error("--method package.Service.Method is required")

    target = args.target or config.target()

    if args.wait is not None:
        if not wait_until_ready(target, args.wait):
            return _error(f"target {target} not ready within {args.wait} ms")

    logger.debug("invoking %s on %s", args.method, target)
    result = invoke(target, args.method, payload, catalog=catalog, timeout=args.timeout)

    if not result.ok:
        if result.transport_code:
            _error(f"{result.kind} ({result.transport_code}): {result.message}")
        else:
            _error(f"{result.kind}: {result.message}")
        if result.kind == METHOD_NOT_FOUND:
            print(f"Available: {', '.join(result.available)}", file=sys.stderr)
        return 1

    sys.stdout.write(json.dumps(result.payload, indent=True).decode() + "\n")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the rpcsim console command."""
    try:
        return run(argv)
    except KeyboardInterrupt:
        return _error("interrupted")


if __name__ == "__main__":
    sys.exit(main())
