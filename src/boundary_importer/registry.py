"""Client for the CGMES boundary registry HTTP API (``/v1``).

- ``GET  v1/boundaries/infos``: JSON array of ``{id, filename, scenarioTime?}``
- ``POST v1/boundaries``: multipart upload, field ``file``; 200 means accepted
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from boundary_importer.dedup import build_known_identifiers
from boundary_importer.http import build_session
from boundary_importer.models import BoundaryInfo, TransferableFile
from boundary_importer.multipart import build_upload_body

logger = logging.getLogger(__name__)

API_VERSION = "v1"
UPLOAD_FIELD_NAME = "file"
DEFAULT_UPLOAD_TIMEOUT_S = 120.0
DEFAULT_QUERY_TIMEOUT_S = 30.0


def _normalize_base_url(url: str) -> str:
    return url if url.endswith("/") else f"{url}/"


def parse_boundary_infos(payload: Any) -> list[BoundaryInfo]:
    """Parse the ``boundaries/infos`` response body.

    Raises:
        ValueError: The payload is not a list of boundary info objects.
    """
    if not isinstance(payload, list):
        raise ValueError(f"expected a JSON array, got {type(payload).__name__}")
    return [BoundaryInfo.from_dict(item) for item in payload]


class BoundaryRegistryClient:
    def __init__(
        self,
        base_url: str,
        *,
        session: requests.Session | None = None,
        upload_timeout_s: float = DEFAULT_UPLOAD_TIMEOUT_S,
        query_timeout_s: float = DEFAULT_QUERY_TIMEOUT_S,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self.session = session or build_session()
        self.upload_timeout_s = upload_timeout_s
        self.query_timeout_s = query_timeout_s

    @property
    def infos_url(self) -> str:
        return f"{self.base_url}{API_VERSION}/boundaries/infos"

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}{API_VERSION}/boundaries"

    def get_boundary_infos(self) -> list[BoundaryInfo]:
        """Fetch every boundary held by the registry.

        Any failure (network, non-200 status, undecodable body) is logged and
        yields an empty list, so the run goes on and imports every candidate.
        """
        try:
            response = self.session.get(self.infos_url, timeout=self.query_timeout_s)
        except requests.RequestException as exc:
            logger.error("I/O Error while getting all boundary infos: %s", exc)
            return []
        if response.status_code != 200:
            logger.error(
                "Getting all boundary infos failed: status=%s body=%s",
                response.status_code,
                response.text[:500],
            )
            return []
        try:
            infos = parse_boundary_infos(response.json())
        except ValueError as exc:
            logger.error("Invalid boundary infos payload: %s", exc)
            return []
        logger.info("%d boundaries known by the boundary server", len(infos))
        return infos

    def get_known_identifiers(self) -> frozenset[str]:
        return build_known_identifiers(self.get_boundary_infos())

    def import_boundary(self, boundary_file: TransferableFile) -> bool:
        """Upload one boundary file. Returns True iff the registry answered 200."""
        body, content_type = build_upload_body(
            UPLOAD_FIELD_NAME, boundary_file.name, boundary_file.data
        )
        try:
            response = self.session.post(
                self.upload_url,
                data=body,
                headers={"Content-Type": content_type},
                timeout=self.upload_timeout_s,
            )
        except requests.Timeout:
            logger.error(
                "Timeout after %ss while importing boundary file '%s'",
                self.upload_timeout_s,
                boundary_file.name,
            )
            return False
        except requests.RequestException as exc:
            logger.error("I/O Error while importing boundary file '%s': %s", boundary_file.name, exc)
            return False
        if response.status_code != 200:
            logger.warning(
                "Boundary file '%s' rejected: status=%s",
                boundary_file.name,
                response.status_code,
            )
            return False
        return True

    def close(self) -> None:
        self.session.close()
