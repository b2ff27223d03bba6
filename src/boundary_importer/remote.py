"""Acquisition server access (FTP and SFTP).

Both transports list a directory, keep the regular files whose name is a
valid boundary container name, and download a file into memory. The
transport is selected from the URL scheme by :func:`open_remote_source`.
"""

from __future__ import annotations

import ftplib
import io
import logging
import posixpath
import socket
import stat
from typing import Protocol
from urllib.parse import unquote, urlparse

import paramiko

from boundary_importer.exceptions import SetupError
from boundary_importer.models import TransferableFile
from boundary_importer.naming import is_valid_archive_name
from boundary_importer.redaction import SecretStr

FTP = ftplib.FTP

logger = logging.getLogger(__name__)

# Errors raised by either transport when the server or a path is unreachable.
REMOTE_ERRORS: tuple[type[BaseException], ...] = (*ftplib.all_errors, paramiko.SSHException)

DEFAULT_CONNECT_TIMEOUT_S = 30.0
DEFAULT_FTP_PORT = 21
DEFAULT_SFTP_PORT = 22


class RemoteFileSource(Protocol):
    def open(self) -> None: ...

    def list_files(self, directory: str) -> dict[str, str]: ...

    def get_file(self, name: str, locator: str) -> TransferableFile: ...

    def close(self) -> None: ...

    def __enter__(self) -> RemoteFileSource: ...

    def __exit__(self, *args: object) -> None: ...


def _resolve_directory(root: str, directory: str) -> str:
    """Resolve ``directory`` against the URL root; both are relative to the login directory."""
    return posixpath.normpath(posixpath.join(root.lstrip("/"), directory.lstrip("/")))


class FtpFileSource:
    """FTP acquisition server, passive mode, binary transfers."""

    def __init__(
        self,
        host: str,
        *,
        port: int = DEFAULT_FTP_PORT,
        username: str | None = None,
        password: SecretStr | None = None,
        root: str = "",
        connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password or SecretStr(None)
        self.root = root
        self.connect_timeout_s = connect_timeout_s
        self._ftp: ftplib.FTP | None = None

    def open(self) -> None:
        if self._ftp is not None:
            return
        ftp = FTP()
        try:
            ftp.connect(self.host, self.port, timeout=self.connect_timeout_s)
            ftp.login(self.username or "anonymous", self.password.reveal())
            ftp.set_pasv(True)
            ftp.voidcmd("TYPE I")
        except ftplib.all_errors as exc:
            ftp.close()
            raise SetupError(
                f"Cannot connect to FTP server {self.host}:{self.port}: {exc}",
                context={"host": self.host, "port": self.port},
            ) from exc
        self._ftp = ftp

    def _client(self) -> ftplib.FTP:
        if self._ftp is None:
            raise RuntimeError("FTP source is not open")
        return self._ftp

    def _is_regular_file(self, path: str) -> bool:
        # SIZE fails on directories, unreadable entries and busy files.
        try:
            self._client().size(path)
        except ftplib.all_errors as exc:
            logger.warning("Skipping '%s': %s", path, exc)
            return False
        return True

    def list_files(self, directory: str) -> dict[str, str]:
        """Map each valid boundary container name to its remote path."""
        ftp = self._client()
        remote_dir = _resolve_directory(self.root, directory)
        files: dict[str, str] = {}
        for entry in ftp.nlst(remote_dir):
            name = posixpath.basename(entry.rstrip("/"))
            if not is_valid_archive_name(name):
                continue
            path = posixpath.join(remote_dir, name)
            if self._is_regular_file(path):
                files[name] = path
        return files

    def get_file(self, name: str, locator: str) -> TransferableFile:
        buffer = io.BytesIO()
        self._client().retrbinary(f"RETR {locator}", buffer.write)
        return TransferableFile(name, buffer.getvalue())

    def close(self) -> None:
        if self._ftp is None:
            return
        ftp, self._ftp = self._ftp, None
        try:
            ftp.quit()
        except ftplib.all_errors:
            ftp.close()

    def __enter__(self) -> FtpFileSource:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class SftpFileSource:
    """SFTP acquisition server, password authentication."""

    def __init__(
        self,
        host: str,
        *,
        port: int = DEFAULT_SFTP_PORT,
        username: str | None = None,
        password: SecretStr | None = None,
        root: str = "",
        connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password or SecretStr(None)
        self.root = root
        self.connect_timeout_s = connect_timeout_s
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    def open(self) -> None:
        if self._client is not None:
            return
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout_s)
            transport = paramiko.Transport(sock)
        except OSError as exc:
            raise SetupError(
                f"Cannot connect to SFTP server {self.host}:{self.port}: {exc}",
                context={"host": self.host, "port": self.port},
            ) from exc
        transport.banner_timeout = self.connect_timeout_s
        transport.auth_timeout = self.connect_timeout_s
        try:
            transport.connect(username=self.username, password=self.password.reveal())
            client = paramiko.SFTPClient.from_transport(transport)
        except (paramiko.SSHException, OSError) as exc:
            transport.close()
            raise SetupError(
                f"Cannot open SFTP session on {self.host}:{self.port}: {exc}",
                context={"host": self.host, "port": self.port},
            ) from exc
        if client is None:
            transport.close()
            raise SetupError(f"Cannot open SFTP session on {self.host}:{self.port}")
        self._transport = transport
        self._client = client

    def _sftp(self) -> paramiko.SFTPClient:
        if self._client is None:
            raise RuntimeError("SFTP source is not open")
        return self._client

    def list_files(self, directory: str) -> dict[str, str]:
        """Map each valid boundary container name to its remote path."""
        remote_dir = _resolve_directory(self.root, directory)
        files: dict[str, str] = {}
        for attr in self._sftp().listdir_attr(remote_dir):
            name = attr.filename
            if not is_valid_archive_name(name):
                continue
            if attr.st_mode is None:
                logger.warning("Skipping '%s': file attributes unavailable", name)
                continue
            if not stat.S_ISREG(attr.st_mode):
                continue
            files[name] = posixpath.join(remote_dir, name)
        return files

    def get_file(self, name: str, locator: str) -> TransferableFile:
        buffer = io.BytesIO()
        self._sftp().getfo(locator, buffer)
        return TransferableFile(name, buffer.getvalue())

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
        try:
            if self._transport is not None:
                self._transport.close()
        finally:
            self._transport = None

    def __enter__(self) -> SftpFileSource:
        self.open()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def open_remote_source(
    url: str,
    username: str | None,
    password: SecretStr | None,
    *,
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S,
) -> FtpFileSource | SftpFileSource:
    """Build the acquisition server client for ``url`` (``ftp://`` or ``sftp://``).

    The source is returned unopened; use it as a context manager.

    Raises:
        SetupError: The URL has no host or an unsupported scheme.
    """
    parsed = urlparse(url)
    scheme = parsed.scheme.lower()
    if not parsed.hostname:
        raise SetupError(f"Acquisition server URL has no host: {url}", context={"url": url})
    root = unquote(parsed.path or "")
    if scheme == "ftp":
        return FtpFileSource(
            parsed.hostname,
            port=parsed.port or DEFAULT_FTP_PORT,
            username=username,
            password=password,
            root=root,
            connect_timeout_s=connect_timeout_s,
        )
    if scheme == "sftp":
        return SftpFileSource(
            parsed.hostname,
            port=parsed.port or DEFAULT_SFTP_PORT,
            username=username,
            password=password,
            root=root,
            connect_timeout_s=connect_timeout_s,
        )
    raise SetupError(
        f"Unsupported acquisition server scheme '{parsed.scheme}' (expected ftp or sftp)",
        context={"url": url},
    )
