import argparse
import logging
import sys
from typing import Optional

from . import __version__
from .core.errors import UpdaterError
from .updater.service import AutoUpdater, UpdateStatus
from .utils.logger import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ez", description="ez - natural language to shell commands")
    parser.add_argument("--update", action="store_true", help="Update ez to the latest version")
    parser.add_argument("--version", action="store_true", help="Print the installed version and exit")
    parser.add_argument("--debug", action="store_true", help="Log debug output to the console")
    return parser


def _print_progress(_percent: int, message: str) -> None:
    if message == "Downloading...":
        return
    print(message, flush=True)


def run_update(updater: Optional[AutoUpdater] = None) -> int:
    updater = updater or AutoUpdater()
    try:
        result = updater.perform_update(progress_callback=_print_progress)
    except UpdaterError as e:
        stage = e.stage or "update"
        print(f"Update failed ({stage}): {e}", file=sys.stderr)
        return 1

    if result.status is UpdateStatus.UP_TO_DATE:
        return 0

    if result.backup_path is not None:
        print(f"Previous binary kept at {result.backup_path}")
    print("Please restart your shell or run a new ez command to use the updated version.")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug)

    if args.version:
        print(f"ez {__version__}")
        return 0
    if args.update:
        return run_update()

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
