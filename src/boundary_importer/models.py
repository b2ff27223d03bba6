"""Value types passed between the acquisition stages."""

from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any


@dataclasses.dataclass(frozen=True)
class TransferableFile:
    """One file in flight: an acquired container or a boundary sent to the registry."""

    name: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclasses.dataclass(frozen=True)
class ArchiveMember:
    name: str
    base_name: str
    data: bytes

    def to_transferable(self) -> TransferableFile:
        return TransferableFile(self.base_name, self.data)


@dataclasses.dataclass(frozen=True)
class BoundaryInfo:
    """A boundary already held by the registry. Identity is ``id``."""

    id: str
    filename: str
    scenario_time: datetime | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> BoundaryInfo:
        """Build from the registry JSON object ``{id, filename, scenarioTime?}``.

        Raises:
            ValueError: If ``id`` or ``filename`` is missing or ``scenarioTime``
                is not an ISO-8601 date-time.
        """
        if not isinstance(payload, dict):
            raise ValueError(f"boundary info must be an object, got {type(payload).__name__}")
        boundary_id = payload.get("id")
        filename = payload.get("filename")
        if not isinstance(boundary_id, str) or not boundary_id:
            raise ValueError("boundary info is missing 'id'")
        if not isinstance(filename, str):
            raise ValueError(f"boundary info {boundary_id} is missing 'filename'")
        raw_time = payload.get("scenarioTime")
        if raw_time is not None and not isinstance(raw_time, str):
            raise ValueError(f"boundary info {boundary_id} has an invalid 'scenarioTime'")
        scenario_time = datetime.fromisoformat(raw_time) if raw_time is not None else None
        return cls(id=boundary_id, filename=filename, scenario_time=scenario_time)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"id": self.id, "filename": self.filename}
        if self.scenario_time is not None:
            payload["scenarioTime"] = self.scenario_time.isoformat()
        return payload


@dataclasses.dataclass
class RunOutcome:
    """Per-file results accumulated during one acquisition run."""

    imported: list[str] = dataclasses.field(default_factory=list)
    already_imported: list[str] = dataclasses.field(default_factory=list)
    import_failed: list[str] = dataclasses.field(default_factory=list)
    failed_archives: list[str] = dataclasses.field(default_factory=list)

    def record_imported(self, filename: str) -> None:
        self.imported.append(filename)

    def record_already_imported(self, filename: str) -> None:
        self.already_imported.append(filename)

    def record_failed(self, filename: str) -> None:
        self.import_failed.append(filename)

    def record_failed_archive(self, archive_name: str) -> None:
        self.failed_archives.append(archive_name)

    def counts(self) -> dict[str, int]:
        return {
            "imported": len(self.imported),
            "already_imported": len(self.already_imported),
            "import_failed": len(self.import_failed),
            "failed_archives": len(self.failed_archives),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "counts": self.counts(),
            "imported": list(self.imported),
            "already_imported": list(self.already_imported),
            "import_failed": list(self.import_failed),
            "failed_archives": list(self.failed_archives),
        }
