"""
Console scripts: `run` forwards to the native binary, `runwrap` manages the install.
"""

import argparse
import logging
import sys
from typing import Optional, Sequence

from runwrap.runwrap_exceptions import RunwrapException


def run_main() -> int:
    """
    Entry point of the `run` console script. Arguments are passed through untouched.
    """
    try:
        from runwrap.binaries import run
    except RunwrapException as e:
        print(f"run: {e.message}", file=sys.stderr)
        return 1
    return run.wrapper.main("run", sys.argv[1:])


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="runwrap",
        description="Manage the native binary behind the `run` console script.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="log progress to stderr"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="download the binary for this platform")
    install.add_argument(
        "--force", action="store_true", help="download even if already installed"
    )
    subparsers.add_parser("verify", help="check that every release archive exists")
    subparsers.add_parser("urls", help="print the release archive URL of each platform")
    subparsers.add_parser("version", help="print the wrapped version")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """
    Entry point of the `runwrap` console script.
    """
    args = _build_parser().parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.INFO, stream=sys.stderr, format="%(message)s")

    try:
        from runwrap.binaries import run

        if args.command == "install":
            path = run.wrapper.install(force=args.force)
            print(path)
        elif args.command == "verify":
            results = run.wrapper.verify_urls()
            for platform_key, ok in results.items():
                print(f"{platform_key} {'ok' if ok else 'missing'}")
            if not all(results.values()):
                return 1
        elif args.command == "urls":
            for platform_key, url in run.wrapper.urls.items():
                print(f"{platform_key} {url}")
        elif args.command == "version":
            print(run.version)
    except RunwrapException as e:
        print(f"runwrap: {e.message}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
