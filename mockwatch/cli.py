"""Command-line front door for mockwatch.

Parses CLI options, merges them with persisted config, configures logging,
then runs the watch loop (or a single cycle with ``--once``).
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from pathlib import Path

from .generator import CommandGenerator
from .logging_config import LoggingConfig, configure_logging
from .runtime import config
from .runtime.updater import MockFileUpdater

logger = logging.getLogger(__name__)

EXIT_INTERRUPTED = 130


def _positive_float(value: str) -> float:
    """argparse type for positive float values."""
    try:
        parsed = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid number: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be > 0")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mockwatch",
        description="Watch Go packages and regenerate mocks listed in their interfaces_to_mock files.",
    )
    parser.add_argument(
        "directories",
        nargs="*",
        help="Package directories to watch. Defaults to the current directory.",
    )
    parser.add_argument("-r", "--recursive", action="store_true", help="Also watch all subdirectories.")
    parser.add_argument(
        "--interval",
        type=_positive_float,
        default=None,
        help=f"Poll interval in seconds (default: {config.DEFAULT_POLL_INTERVAL_SECONDS:g}).",
    )
    parser.add_argument(
        "--package-root",
        action="append",
        default=None,
        metavar="DIR",
        help="Directory that package references resolve against (repeatable; default: $GOPATH/src).",
    )
    parser.add_argument(
        "--generator",
        default=None,
        metavar="CMD",
        help="Mock generator command (default: 'pegomock generate').",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create an interfaces_to_mock template in watched directories that lack one.",
    )
    parser.add_argument("--once", action="store_true", help="Run a single update cycle and exit.")
    parser.add_argument("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR).")
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file.")
    parser.add_argument(
        "--save-config",
        action="store_true",
        help="Persist --interval, --generator, --package-root and --log-level as defaults and exit.",
    )
    return parser


def _save_options(args: argparse.Namespace, command: tuple[str, ...] | None) -> None:
    data = config.load_config()
    if args.interval is not None:
        data["poll_interval_seconds"] = config.clamp_poll_interval(args.interval)
    if command is not None:
        data["generator_command"] = list(command)
    if args.package_root:
        data["package_roots"] = [str(Path(root).expanduser()) for root in args.package_root]
    if args.log_level:
        data["log_level"] = args.log_level.upper()
    config.save_config(data)


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments and run the watcher.

    Returns a process exit code: ``0`` on clean stop, ``1`` when ``--once``
    hit errors, ``130`` on Ctrl-C.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    command: tuple[str, ...] | None = None
    if args.generator is not None:
        command = config.parse_generator_command(args.generator)
        if command is None:
            parser.error(f"invalid generator command: {args.generator!r}")

    if args.save_config:
        _save_options(args, command)
        print(f"Saved configuration to {config.CONFIG_PATH}")
        return 0

    configure_logging(
        LoggingConfig(level=args.log_level or config.load_log_level(), log_file=args.log_file),
    )

    directories = [Path(directory) for directory in (args.directories or ["."])]
    for directory in directories:
        if not directory.is_dir():
            raise SystemExit(f"Directory not found: {directory}")

    generator = CommandGenerator(command if command is not None else config.load_generator_command())
    if not generator.is_available():
        logger.warning("generator command %r not found on PATH", generator.command[0])

    package_roots = [Path(root).expanduser() for root in args.package_root] if args.package_root else None
    updater = MockFileUpdater(
        directories,
        args.recursive,
        generator=generator,
        package_roots=package_roots if package_roots is not None else config.load_package_roots(),
        poll_interval=args.interval if args.interval is not None else config.load_poll_interval(),
        create_control_files=args.init,
    )

    if args.once:
        results = updater.update_once()
        failed = any(
            result.parse_error or result.resolve_errors or result.failed or result.unexpected_error
            for result in results
        )
        return 1 if failed else 0

    try:
        updater.update()
    except KeyboardInterrupt:
        return EXIT_INTERRUPTED
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
