"""``multipart/form-data`` body for a single file upload.

The body carries exactly one binary part::

    --<boundary>\\r\\n
    Content-Disposition: form-data; name="<field>"; filename="<file>"\\r\\n
    Content-Type: application/octet-stream\\r\\n\\r\\n
    <raw bytes>\\r\\n
    --<boundary>--

Field and file names are written as-is. Callers must not pass names
containing quotes, CR or LF.
"""

from __future__ import annotations

import secrets

BOUNDARY_BITS = 256
FILE_CONTENT_TYPE = "application/octet-stream"


def generate_boundary() -> str:
    """Fresh boundary token: a 256-bit random integer in decimal."""
    return str(secrets.randbits(BOUNDARY_BITS))


def content_type(boundary: str) -> str:
    return f"multipart/form-data;boundary={boundary}"


def encode_file_part(field_name: str, file_name: str, data: bytes, boundary: str) -> bytes:
    parts = [
        f"--{boundary}\r\nContent-Disposition: form-data; name=".encode("utf-8"),
        (
            f'"{field_name}"; filename="{file_name}"\r\n'
            f"Content-Type: {FILE_CONTENT_TYPE}\r\n\r\n"
        ).encode("utf-8"),
        bytes(data),
        b"\r\n",
        f"--{boundary}--".encode("utf-8"),
    ]
    return b"".join(parts)


def build_upload_body(field_name: str, file_name: str, data: bytes) -> tuple[bytes, str]:
    """Encode one file with a new boundary.

    Returns:
        Tuple of (body, content_type_header_value)
    """
    boundary = generate_boundary()
    return encode_file_part(field_name, file_name, data, boundary), content_type(boundary)
