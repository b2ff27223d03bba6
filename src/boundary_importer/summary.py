from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from boundary_importer.models import RunOutcome

SUMMARY_HEADER = "===== JOB EXECUTION SUMMARY ====="
SUMMARY_FOOTER = "================================="


def summary_lines(outcome: RunOutcome) -> list[str]:
    lines = [
        SUMMARY_HEADER,
        f"{len(outcome.already_imported)} files already imported",
        f"{len(outcome.imported)} files successfully imported",
    ]
    lines.extend(f"File '{name}' successfully imported" for name in outcome.imported)
    lines.append(f"{len(outcome.import_failed)} files import failed")
    lines.extend(f"File '{name}' import failed !!" for name in outcome.import_failed)
    if outcome.failed_archives:
        lines.append(f"{len(outcome.failed_archives)} boundary containers rejected")
        lines.extend(f"Container '{name}' rejected !!" for name in outcome.failed_archives)
    lines.append(SUMMARY_FOOTER)
    return lines


def log_summary(outcome: RunOutcome, logger: logging.Logger) -> None:
    for line in summary_lines(outcome):
        logger.info("%s", line)


def write_summary_json(path: Path, payload: dict[str, Any]) -> None:
    """Write the run report to JSON atomically."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        f.write(json.dumps(payload, indent=2, ensure_ascii=False) + "\n")
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)
