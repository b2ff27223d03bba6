"""Acquisition of CGMES boundary files into the boundary registry."""

from boundary_importer.__version__ import __version__
from boundary_importer.acquisition import RunReport, run_acquisition
from boundary_importer.config import ImporterSettings, load_settings
from boundary_importer.exceptions import BoundaryImporterError, SetupError
from boundary_importer.models import BoundaryInfo, RunOutcome, TransferableFile

__all__ = [
    "__version__",
    "run_acquisition",
    "RunReport",
    "load_settings",
    "ImporterSettings",
    "BoundaryImporterError",
    "SetupError",
    "BoundaryInfo",
    "RunOutcome",
    "TransferableFile",
]
