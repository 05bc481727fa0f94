"""CLI entrypoint for callergen."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import ConfigError
from .logging import configure_logging
from .pipeline import Pipeline


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="callergen",
        description="Generate WIT interfaces and caller stubs for annotated processes.",
    )
    parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the workspace root (defaults to current directory).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write log records to this file.",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Run the generator and exit non-zero when any project failed."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        log_file=args.log_file,
        workspace=Path(args.path).expanduser().resolve(),
    )

    try:
        report = Pipeline().run(args.path)
    except ConfigError as exc:
        parser.exit(1, f"Invalid configuration: {exc}\n")
    except (FileNotFoundError, NotADirectoryError) as exc:
        parser.exit(1, f"{exc}\n")

    for line in report.summary():
        print(line)
    if report.exit_code:
        parser.exit(report.exit_code, "callergen failed. Run with --verbose for more details.\n")


if __name__ == "__main__":
    main(sys.argv[1:])
