from __future__ import annotations

from boundary_importer.__version__ import __version__
from boundary_importer.http import DEFAULT_RETRY_STATUS_CODES, build_session, build_user_agent


def test_user_agent() -> None:
    assert build_user_agent() == f"boundary-importer/{__version__}"


def test_session_retries_idempotent_requests_only() -> None:
    session = build_session(total_retries=4)
    retries = session.get_adapter("http://registry.example.com/").max_retries
    assert retries.total == 4
    assert set(retries.allowed_methods) == {"GET", "HEAD"}
    assert set(retries.status_forcelist) == DEFAULT_RETRY_STATUS_CODES
    assert retries.raise_on_status is False
    assert session.headers["User-Agent"].startswith("boundary-importer/")


def test_custom_user_agent() -> None:
    session = build_session(user_agent="probe/1.0")
    assert session.headers["User-Agent"] == "probe/1.0"
