"""
Shared pytest fixtures for boundary importer tests.

Provides common builders and fakes for:
- Boundary XML files and boundary containers (zip)
- The acquisition server (remote file source)
- The boundary registry
- Importer settings
"""

from __future__ import annotations

import io
import sys
import zipfile
from pathlib import Path

import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from boundary_importer.config import (  # noqa: E402
    AcquisitionServerSettings,
    BoundaryServerSettings,
    ImporterSettings,
)
from boundary_importer.models import TransferableFile  # noqa: E402
from boundary_importer.naming import is_valid_archive_name  # noqa: E402
from boundary_importer.redaction import SecretStr  # noqa: E402

EQ_ID = "urn:uuid:11111111-aaaa-aaaa-aaaa-aaaaaaaaaaaa"
TP_ID = "urn:uuid:22222222-bbbb-bbbb-bbbb-bbbbbbbbbbbb"
EQ_NAME = "20191106T0930Z__ENTSOE_EQBD_001.xml"
TP_NAME = "20191106T0930Z__ENTSOE_TPBD_001.xml"
ARCHIVE_NAME = "20210325T1030Z__ENTSOE_BD_001.zip"


# =============================================================================
# Content builders
# =============================================================================


def make_boundary_xml(
    model_id: str,
    *,
    profile: str = "http://entsoe.eu/CIM/EquipmentBoundary/3/1",
    scenario_time: str = "2020-02-02T00:00:00Z",
) -> bytes:
    """Build a minimal CGMES boundary file with a ``md:FullModel`` header."""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rdf:RDF xmlns:cim="http://iec.ch/TC57/2013/CIM-schema-cim16#"
         xmlns:md="http://iec.ch/TC57/61970-552/ModelDescription/1#"
         xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#">
  <md:FullModel rdf:about="{model_id}">
    <md:Model.scenarioTime>{scenario_time}</md:Model.scenarioTime>
    <md:Model.created>2020-02-03T10:00:00Z</md:Model.created>
    <md:Model.description>Boundary</md:Model.description>
    <md:Model.version>1</md:Model.version>
    <md:Model.profile>{profile}</md:Model.profile>
    <md:Model.modelingAuthoritySet>http://www.entsoe.eu/OperationalPlanning</md:Model.modelingAuthoritySet>
  </md:FullModel>
  <cim:ConnectivityNode rdf:ID="_cn1">
    <cim:IdentifiedObject.name>CN1</cim:IdentifiedObject.name>
  </cim:ConnectivityNode>
</rdf:RDF>
""".encode("utf-8")


def make_zip(members: dict[str, bytes], *, compression: int = zipfile.ZIP_DEFLATED) -> bytes:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=compression) as zf:
        for name, data in members.items():
            zf.writestr(name, data)
    return buffer.getvalue()


def make_boundary_container() -> bytes:
    """A container holding one EQBD and one TPBD file plus an ignored readme."""
    return make_zip(
        {
            EQ_NAME: make_boundary_xml(EQ_ID),
            TP_NAME: make_boundary_xml(TP_ID, profile="http://entsoe.eu/CIM/TopologyBoundary/3/1"),
            "README.txt": b"not a boundary",
        }
    )


# =============================================================================
# Fakes
# =============================================================================


class FakeRemoteSource:
    """In-memory acquisition server."""

    def __init__(
        self,
        files: dict[str, bytes] | None = None,
        *,
        open_error: BaseException | None = None,
        list_error: BaseException | None = None,
        get_errors: dict[str, BaseException] | None = None,
    ) -> None:
        self.files = dict(files or {})
        self.open_error = open_error
        self.list_error = list_error
        self.get_errors = dict(get_errors or {})
        self.listed_directories: list[str] = []
        self.fetched: list[str] = []
        self.opened = False
        self.closed = False

    def open(self) -> None:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True

    def list_files(self, directory: str) -> dict[str, str]:
        self.listed_directories.append(directory)
        if self.list_error is not None:
            raise self.list_error
        return {
            name: f"{directory}/{name}" for name in self.files if is_valid_archive_name(name)
        }

    def get_file(self, name: str, locator: str) -> TransferableFile:
        self.fetched.append(name)
        if name in self.get_errors:
            raise self.get_errors[name]
        return TransferableFile(name, self.files[name])

    def close(self) -> None:
        self.closed = True

    def __enter__(self) -> FakeRemoteSource:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class FakeRegistry:
    """In-memory boundary registry recording upload calls."""

    def __init__(self, known: set[str] | None = None, *, reject: set[str] | None = None) -> None:
        self.known = set(known or set())
        self.reject = set(reject or set())
        self.uploads: list[TransferableFile] = []
        self.queries = 0

    def get_known_identifiers(self) -> frozenset[str]:
        self.queries += 1
        return frozenset(self.known)

    def import_boundary(self, boundary_file: TransferableFile) -> bool:
        self.uploads.append(boundary_file)
        return boundary_file.name not in self.reject

    @property
    def uploaded_names(self) -> list[str]:
        return [upload.name for upload in self.uploads]


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def settings() -> ImporterSettings:
    return ImporterSettings(
        acquisition_server=AcquisitionServerSettings(
            url="sftp://acquisition.example.com:2222",
            boundary_directory="./boundaries",
            username="importer",
            password=SecretStr("s3cr3t-pass"),
        ),
        boundary_server=BoundaryServerSettings(url="http://registry.example.com/"),
    )


@pytest.fixture
def boundary_container() -> bytes:
    return make_boundary_container()

