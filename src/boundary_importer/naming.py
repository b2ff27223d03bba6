"""Naming conventions for boundary containers and boundary members.

A boundary container is the zip file published on the acquisition server::

    <effectiveDateTime>__ENTSOE_BD_<fileVersion>.zip

where ``effectiveDateTime`` is a UTC date-time (``YYYYMMDDTHHmmZ``) and
``fileVersion`` is a three character positive integer between 001 and 999.

Inside a container, only the equipment boundary (``__ENTSOE_EQBD_``) and
topology boundary (``__ENTSOE_TPBD_``) XML files are imported.
"""

from __future__ import annotations

import enum
import logging
import re

logger = logging.getLogger(__name__)

EQBD_FILE_REGEX = re.compile(r"^(.*?(__ENTSOE_EQBD_).*(.xml))$")
TPBD_FILE_REGEX = re.compile(r"^(.*?(__ENTSOE_TPBD_).*(.xml))$")

CONTAINER_EXTENSION = "zip"
CONTAINER_SEGMENT_COUNT = 5
VERSION_LENGTH = 3
MAX_VERSION = 999


class BoundaryRole(enum.Enum):
    EQUIPMENT = "EQBD"
    TOPOLOGY = "TPBD"
    IGNORED = "ignored"


def _is_valid_file_version(version: str) -> bool:
    if not (version.isascii() and version.isdigit()):
        logger.warning("Invalid file version %s", version)
        return False
    if len(version) != VERSION_LENGTH:
        logger.warning(
            "File version length is %d and it should be %d", len(version), VERSION_LENGTH
        )
        return False
    return 0 < int(version) <= MAX_VERSION


def is_valid_archive_name(filename: str) -> bool:
    """Return True if ``filename`` follows the boundary container naming convention."""
    dot_parts = filename.split(".")
    if len(dot_parts) != 2:
        return False
    base, ext = dot_parts
    if ext != CONTAINER_EXTENSION:
        return False
    parts = base.split("_")
    if len(parts) != CONTAINER_SEGMENT_COUNT:
        return False
    return (
        parts[1] == ""
        and parts[2] == "ENTSOE"
        and parts[3] == "BD"
        and _is_valid_file_version(parts[4])
    )


def member_base_name(entry_name: str) -> str:
    """Strip any directory prefix (``/`` or ``\\`` separated) from an archive entry name."""
    return re.split(r"[\\/]", entry_name)[-1]


def classify_member(base_name: str) -> BoundaryRole:
    """Classify an archive member from its base name alone."""
    if not base_name:
        return BoundaryRole.IGNORED
    if EQBD_FILE_REGEX.fullmatch(base_name):
        return BoundaryRole.EQUIPMENT
    if TPBD_FILE_REGEX.fullmatch(base_name):
        return BoundaryRole.TOPOLOGY
    return BoundaryRole.IGNORED


def is_boundary_file(base_name: str) -> bool:
    return classify_member(base_name) is not BoundaryRole.IGNORED
