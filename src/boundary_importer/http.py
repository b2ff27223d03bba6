from __future__ import annotations

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from boundary_importer.__version__ import __version__ as VERSION

DEFAULT_RETRY_STATUS_CODES = {429, 502, 503, 504}


def build_user_agent(name: str = "boundary-importer", version: str = VERSION) -> str:
    """Build a default User-Agent string."""
    return f"{name}/{version}"


def build_session(
    *,
    total_retries: int = 3,
    backoff_factor: float = 0.5,
    status_forcelist: set[int] | None = None,
    user_agent: str | None = None,
) -> requests.Session:
    """Create a requests session with retry/backoff for idempotent requests.

    Only GET and HEAD are retried: an upload is sent once and its status is
    the verdict.
    """
    status_list = status_forcelist or DEFAULT_RETRY_STATUS_CODES
    retries = Retry(
        total=total_retries,
        backoff_factor=backoff_factor,
        status_forcelist=sorted(status_list),
        allowed_methods=("GET", "HEAD"),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retries)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers["User-Agent"] = user_agent or build_user_agent()
    return session
