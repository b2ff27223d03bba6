#!/usr/bin/env python3
"""Run one boundary acquisition from the command line."""

from __future__ import annotations

import argparse
import logging
import signal
from pathlib import Path
from types import FrameType

from boundary_importer.acquisition import STATUS_ABORTED_SETUP, STATUS_FAILED, run_acquisition
from boundary_importer.config import load_settings
from boundary_importer.exceptions import RunInterrupted, SetupError
from boundary_importer.logging_config import add_logging_args, configure_logging
from boundary_importer.summary import write_summary_json

logger = logging.getLogger(__name__)


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="boundary-importer",
        description="Import CGMES boundary files from an FTP/SFTP server into the boundary registry.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML configuration file (settings may also come from BOUNDARY_IMPORTER_* variables).",
    )
    parser.add_argument(
        "--summary-json",
        type=Path,
        default=None,
        help="Write the run report to this JSON file.",
    )
    add_logging_args(parser)
    return parser.parse_args(argv)


def _raise_interrupted(signum: int, frame: FrameType | None) -> None:
    raise RunInterrupted(f"Received signal {signal.Signals(signum).name}")


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    try:
        settings = load_settings(args.config)
    except SetupError as exc:
        logger.error("Job setup error: %s", exc, extra=exc.as_log_fields())
        return 1

    previous_handler = signal.signal(signal.SIGTERM, _raise_interrupted)
    try:
        report = run_acquisition(settings)
    finally:
        signal.signal(signal.SIGTERM, previous_handler)

    if args.summary_json:
        write_summary_json(args.summary_json, report.to_dict())
    return 1 if report.status in (STATUS_ABORTED_SETUP, STATUS_FAILED) else 0


if __name__ == "__main__":
    raise SystemExit(main())
