from __future__ import annotations

import enum
from collections.abc import Iterable

from boundary_importer.models import BoundaryInfo


class Decision(enum.Enum):
    IMPORT = "import"
    ALREADY_PRESENT = "already_present"


def build_known_identifiers(infos: Iterable[BoundaryInfo]) -> frozenset[str]:
    """Lookup of the identifiers held by the registry, built once per run."""
    return frozenset(info.id for info in infos)


def decide(identifier: str, known: frozenset[str] | set[str]) -> Decision:
    if identifier in known:
        return Decision.ALREADY_PRESENT
    return Decision.IMPORT
