"""
CLI interface for ssh-resolve.

Prints the effective configuration for each host as one JSON object per
line.

Usage:
    python -m ssh_resolve db.example.com
    python -m ssh_resolve -F ./ssh_config -o Port=2022 -o "User alice" db.corp
    python -m ssh_resolve -i ~/.ssh/deploy_key -v web1 web2
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Sequence

from ssh_resolve.errors import SSHConfigError
from ssh_resolve.events import ClientTrace, EventEmitter
from ssh_resolve.loader import Loader
from ssh_resolve.platform import SSHDefaults


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the ssh-resolve CLI."""
    parser = argparse.ArgumentParser(
        prog="ssh-resolve",
        description="Resolve effective SSH client configuration per host",
        epilog="Example: python -m ssh_resolve -o Port=2022 db.example.com",
    )

    parser.add_argument(
        "hosts",
        nargs="+",
        metavar="host",
        help="Target host(s) to resolve",
    )

    parser.add_argument(
        "-F", "--config",
        metavar="FILE",
        help="Config file tried before the user and system files",
    )

    parser.add_argument(
        "-i", "--identity",
        metavar="FILE",
        action="append",
        default=[],
        help="Identity file offered for every host (repeatable)",
    )

    parser.add_argument(
        "-o", "--option",
        metavar="OPTION",
        action="append",
        default=[],
        help="Option in ssh_config format, e.g. Port=2022 (repeatable)",
    )

    parser.add_argument(
        "--lazy",
        action="store_true",
        help="Read config files only when an earlier one has no match",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging and trace events on stderr",
    )

    return parser


def run(args: argparse.Namespace) -> int:
    """Resolve every requested host, printing results to stdout."""
    emitter: EventEmitter | None = None
    trace: ClientTrace | None = None
    if args.verbose:
        emitter = EventEmitter(jsonl_stream=sys.stderr)
        trace = ClientTrace.from_emitter(emitter)

    loader = Loader(
        defaults=SSHDefaults.from_environment(),
        config_file=args.config,
        options=args.option,
        identity=args.identity,
        trace=trace,
        lazy=args.lazy,
    )

    try:
        client = loader.new_client()
        for host in args.hosts:
            config = client.resolve(host)
            print(json.dumps({"host": host, **config.to_dict()}, default=str))
    except (SSHConfigError, OSError) as e:
        print(f"ssh-resolve: {e}", file=sys.stderr)
        return 1
    finally:
        if emitter is not None:
            emitter.close()

    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    return run(args)


if __name__ == "__main__":
    sys.exit(main())
