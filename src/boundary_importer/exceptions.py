from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


class ErrorFieldsMixin:
    """``code``/``context`` handling shared by every importer error."""

    message: str
    code: str
    context: dict[str, Any]

    def _set_fields(self, message: str, code: str | None, context: Mapping[str, Any] | None) -> None:
        self.message = message
        self.code = code or self.code
        self.context = dict(context or {})

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "error_code": self.code,
            "error_message": self.message,
            "error_context": self.context,
        }


@dataclass
class BoundaryImporterError(ErrorFieldsMixin, Exception):
    message: str
    code: str = "boundary_importer_error"
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, message: str, *, code: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self._set_fields(message, code, context)


class SetupError(BoundaryImporterError):
    """The run cannot start: missing configuration or unreachable remote source."""

    code = "setup_error"


class ConfigValidationError(SetupError):
    code = "config_validation_error"


class YamlParseError(SetupError):
    code = "yaml_parse_error"


class ArchiveSafetyError(BoundaryImporterError):
    """Raised when an archive container must not be processed further."""

    code = "archive_safety_error"


class ResourceLimitExceededError(ArchiveSafetyError):
    code = "resource_limit_exceeded"


class PathTraversalError(ArchiveSafetyError):
    code = "path_traversal"


class ArchiveFormatError(ArchiveSafetyError):
    code = "archive_format_error"


class MalformedHeaderError(BoundaryImporterError):
    code = "malformed_header"


class RunInterrupted(ErrorFieldsMixin, BaseException):
    """Raised from the SIGTERM handler.

    Like ``KeyboardInterrupt`` it is not an ``Exception``, so handlers such as
    ``logging.Handler.emit`` that catch ``Exception`` let it through.
    """

    code = "run_interrupted"

    def __init__(self, message: str, *, code: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self._set_fields(message, code, context)
