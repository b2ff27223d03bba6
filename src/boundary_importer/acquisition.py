"""Boundary acquisition job.

One run:

1. list the boundary containers on the acquisition server,
2. fetch the identifiers already known by the boundary server (once),
3. for each container, extract the EQBD/TPBD boundary files, skip those
   whose model identifier is already known and upload the others,
4. report imported / already imported / failed files.

Usage:
    from boundary_importer.acquisition import run_acquisition
    from boundary_importer.config import load_settings

    report = run_acquisition(load_settings(Path("config.yaml")))
"""

from __future__ import annotations

import contextlib
import dataclasses
import io
import logging
from collections.abc import Callable, Iterator
from typing import Any, Protocol

from boundary_importer.archive_safety import (
    DEFAULT_MAX_ENTRIES,
    DEFAULT_MAX_TOTAL_BYTES,
    BoundedZipReader,
)
from boundary_importer.config import ImporterSettings
from boundary_importer.dedup import Decision, decide
from boundary_importer.exceptions import (
    ArchiveSafetyError,
    MalformedHeaderError,
    RunInterrupted,
    SetupError,
)
from boundary_importer.header import extract_identifier
from boundary_importer.logging_config import LogContext
from boundary_importer.models import ArchiveMember, RunOutcome, TransferableFile
from boundary_importer.naming import BoundaryRole, classify_member, member_base_name
from boundary_importer.registry import BoundaryRegistryClient
from boundary_importer.remote import REMOTE_ERRORS, RemoteFileSource, open_remote_source
from boundary_importer.summary import log_summary

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_ABORTED_SETUP = "aborted_setup"
STATUS_INTERRUPTED = "interrupted"
STATUS_FAILED = "failed"

SourceFactory = Callable[..., RemoteFileSource]


class BoundaryRegistry(Protocol):
    def get_known_identifiers(self) -> frozenset[str]: ...

    def import_boundary(self, boundary_file: TransferableFile) -> bool: ...


@dataclasses.dataclass
class RunReport:
    status: str
    outcome: RunOutcome
    archives_found: int = 0
    error: str | None = None

    @property
    def setup_aborted(self) -> bool:
        return self.status == STATUS_ABORTED_SETUP

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "status": self.status,
            "archives_found": self.archives_found,
            **self.outcome.to_dict(),
        }
        if self.error:
            payload["error"] = self.error
        return payload


def read_boundary_members(
    archive: TransferableFile,
    *,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES,
) -> Iterator[ArchiveMember]:
    """Yield the boundary files of a container, in archive order.

    Raises:
        ArchiveSafetyError: The container is corrupt, holds too many entries,
            decompresses past the size limit, or has an entry leaving the
            archive root.
    """
    with BoundedZipReader(
        io.BytesIO(archive.data), max_entries=max_entries, max_total_bytes=max_total_bytes
    ) as reader:
        for entry in reader:
            base_name = member_base_name(entry.filename)
            if entry.is_dir() or classify_member(base_name) is BoundaryRole.IGNORED:
                continue
            yield ArchiveMember(entry.filename, base_name, reader.read_entry(entry))


def import_boundary_member(
    member: ArchiveMember,
    known: frozenset[str],
    registry: BoundaryRegistry,
    outcome: RunOutcome,
    uploaded_ids: set[str],
) -> None:
    filename = member.base_name
    with LogContext(member=filename):
        try:
            identifier = extract_identifier(member.data)
        except MalformedHeaderError as exc:
            logger.error("Cannot read model header of boundary file '%s': %s", filename, exc)
            outcome.record_failed(filename)
            return

        if decide(identifier, known) is Decision.ALREADY_PRESENT:
            logger.debug("Boundary file '%s' (%s) already imported", filename, identifier)
            outcome.record_already_imported(filename)
            return

        # The known set is a snapshot taken at run start; a boundary found in two
        # containers of the same run is uploaded twice.
        if identifier in uploaded_ids:
            logger.warning(
                "Boundary %s ('%s') was already uploaded during this run", identifier, filename
            )

        logger.info("Importing boundary file '%s'...", filename)
        if registry.import_boundary(member.to_transferable()):
            outcome.record_imported(filename)
            uploaded_ids.add(identifier)
        else:
            outcome.record_failed(filename)


def process_archive(
    archive: TransferableFile,
    known: frozenset[str],
    registry: BoundaryRegistry,
    outcome: RunOutcome,
    uploaded_ids: set[str],
    *,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES,
) -> None:
    """Import every new boundary file of one container.

    Raises:
        ArchiveSafetyError: See :func:`read_boundary_members`. Members handled
            before the failure stay recorded in ``outcome``.
    """
    with LogContext(archive=archive.name):
        logger.info("Processing boundary container '%s' (%d bytes)", archive.name, archive.size)
        members = read_boundary_members(
            archive, max_entries=max_entries, max_total_bytes=max_total_bytes
        )
        with contextlib.closing(members):
            for member in members:
                import_boundary_member(member, known, registry, outcome, uploaded_ids)


def _acquire(
    source: RemoteFileSource,
    settings: ImporterSettings,
    registry: BoundaryRegistry,
    report: RunReport,
    *,
    max_entries: int,
    max_total_bytes: int,
) -> None:
    directory = settings.acquisition_server.boundary_directory
    try:
        files_to_acquire = source.list_files(directory)
    except REMOTE_ERRORS as exc:
        raise SetupError(
            f"Cannot list boundary directory '{directory}': {exc}",
            context={"directory": directory},
        ) from exc
    report.archives_found = len(files_to_acquire)
    logger.info("%d files found on server", len(files_to_acquire))
    if not files_to_acquire:
        return

    known = registry.get_known_identifiers()
    uploaded_ids: set[str] = set()
    outcome = report.outcome
    for name, locator in files_to_acquire.items():
        try:
            archive = source.get_file(name, locator)
        except REMOTE_ERRORS as exc:
            logger.error("Cannot download boundary container '%s': %s", name, exc)
            outcome.record_failed_archive(name)
            continue
        try:
            process_archive(
                archive,
                known,
                registry,
                outcome,
                uploaded_ids,
                max_entries=max_entries,
                max_total_bytes=max_total_bytes,
            )
        except ArchiveSafetyError as exc:
            logger.error(
                "Boundary container '%s' rejected: %s", name, exc, extra=exc.as_log_fields()
            )
            outcome.record_failed_archive(name)


def run_acquisition(
    settings: ImporterSettings,
    *,
    source_factory: SourceFactory = open_remote_source,
    registry: BoundaryRegistry | None = None,
    max_entries: int = DEFAULT_MAX_ENTRIES,
    max_total_bytes: int = DEFAULT_MAX_TOTAL_BYTES,
) -> RunReport:
    """Run one acquisition and return its report.

    Never raises for run-level conditions: setup errors, interruption and
    unexpected failures are logged and reflected in ``RunReport.status``.
    """
    report = RunReport(status=STATUS_COMPLETED, outcome=RunOutcome())
    server = settings.acquisition_server
    own_registry: BoundaryRegistryClient | None = None
    if registry is None:
        own_registry = BoundaryRegistryClient(
            settings.boundary_server.url,
            upload_timeout_s=settings.boundary_server.upload_timeout_s,
            query_timeout_s=settings.boundary_server.query_timeout_s,
        )
        registry = own_registry

    try:
        source = source_factory(
            server.url,
            server.username,
            server.password,
            connect_timeout_s=server.connect_timeout_s,
        )
        with source:
            _acquire(
                source,
                settings,
                registry,
                report,
                max_entries=max_entries,
                max_total_bytes=max_total_bytes,
            )
    except SetupError as exc:
        logger.error("Job setup error: %s", exc, extra=exc.as_log_fields())
        report.status = STATUS_ABORTED_SETUP
        report.error = str(exc)
        return report
    except (KeyboardInterrupt, RunInterrupted) as exc:
        report.status = STATUS_INTERRUPTED
        report.error = str(exc) or type(exc).__name__
        logger.error("Job interruption error: %s", report.error)
    except Exception as exc:
        logger.exception("Job execution error: %s", exc)
        report.status = STATUS_FAILED
        report.error = repr(exc)
    finally:
        if own_registry is not None:
            own_registry.close()

    log_summary(report.outcome, logger)
    return report
