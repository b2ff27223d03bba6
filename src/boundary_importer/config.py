"""Importer configuration.

Settings come from a YAML file validated against the packaged
``importer_config`` JSON schema. Environment variables named
``BOUNDARY_IMPORTER_<SECTION>_<KEY>`` (for example
``BOUNDARY_IMPORTER_ACQUISITION_SERVER_PASSWORD``) override file values,
which keeps credentials out of the file.
"""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator, FormatChecker

from boundary_importer.exceptions import ConfigValidationError, SetupError, YamlParseError
from boundary_importer.redaction import SecretStr
from boundary_importer.registry import DEFAULT_QUERY_TIMEOUT_S, DEFAULT_UPLOAD_TIMEOUT_S
from boundary_importer.remote import DEFAULT_CONNECT_TIMEOUT_S

ENV_PREFIX = "BOUNDARY_IMPORTER_"
SCHEMA_NAME = "importer_config"

_SECTIONS: dict[str, tuple[str, ...]] = {
    "acquisition_server": ("url", "username", "password", "boundary_directory", "connect_timeout_s"),
    "boundary_server": ("url", "upload_timeout_s", "query_timeout_s"),
}
_NUMERIC_KEYS = {"connect_timeout_s", "upload_timeout_s", "query_timeout_s"}


@dataclasses.dataclass(frozen=True)
class AcquisitionServerSettings:
    url: str
    boundary_directory: str
    username: str | None = None
    password: SecretStr = dataclasses.field(default_factory=lambda: SecretStr(None))
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S


@dataclasses.dataclass(frozen=True)
class BoundaryServerSettings:
    url: str
    upload_timeout_s: float = DEFAULT_UPLOAD_TIMEOUT_S
    query_timeout_s: float = DEFAULT_QUERY_TIMEOUT_S


@dataclasses.dataclass(frozen=True)
class ImporterSettings:
    acquisition_server: AcquisitionServerSettings
    boundary_server: BoundaryServerSettings


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    schema_path = resources.files("boundary_importer").joinpath("schemas", f"{schema_name}.schema.json")
    return json.loads(schema_path.read_text(encoding="utf-8"))


def validate_config(config: Any, schema_name: str, *, config_path: Path | None = None) -> None:
    schema = load_schema(schema_name)
    validator = Draft7Validator(schema, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(config), key=lambda exc: list(exc.path))
    if not errors:
        return
    location = str(config_path) if config_path else "<config>"
    lines = [f"Schema validation failed for {location} ({schema_name})."]
    error_details: list[dict[str, str]] = []
    for error in errors[:10]:
        path = ".".join(str(p) for p in error.path) if error.path else "<root>"
        lines.append(f"- {path}: {error.message}")
        error_details.append({"path": path, "message": error.message})
    if len(errors) > 10:
        lines.append(f"... and {len(errors) - 10} more errors.")
    raise ConfigValidationError(
        "\n".join(lines),
        context={
            "path": location,
            "schema": schema_name,
            "errors": error_details,
            "truncated": len(errors) > 10,
        },
    )


def read_yaml(path: Path) -> dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SetupError(
            f"Cannot read configuration file {path}: {exc}", context={"path": str(path)}
        ) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise YamlParseError(
            f"YAML parse error in {path}: {exc}",
            context={"path": str(path), "error": str(exc)},
        ) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"Configuration root in {path} must be a mapping",
            context={"path": str(path)},
        )
    return data


def _env_value(section: str, key: str, raw: str) -> Any:
    if key not in _NUMERIC_KEYS:
        return raw
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigValidationError(
            f"Environment override for {section}.{key} must be a number, got {raw!r}",
            context={"section": section, "key": key},
        ) from exc


def apply_env_overrides(data: dict[str, Any], env: Mapping[str, str]) -> dict[str, Any]:
    merged = {
        section: dict(values) if isinstance(values, Mapping) else values
        for section, values in data.items()
    }
    for section, keys in _SECTIONS.items():
        for key in keys:
            raw = env.get(f"{ENV_PREFIX}{section}_{key}".upper())
            if raw is None:
                continue
            target = merged.setdefault(section, {})
            # Non-mapping sections are left for schema validation to report.
            if isinstance(target, dict):
                target[key] = _env_value(section, key, raw)
    return merged


def build_settings(data: Mapping[str, Any]) -> ImporterSettings:
    acquisition = data["acquisition_server"]
    boundary = data["boundary_server"]
    return ImporterSettings(
        acquisition_server=AcquisitionServerSettings(
            url=acquisition["url"],
            boundary_directory=acquisition["boundary_directory"],
            username=acquisition.get("username"),
            password=SecretStr(acquisition.get("password")),
            connect_timeout_s=float(acquisition.get("connect_timeout_s", DEFAULT_CONNECT_TIMEOUT_S)),
        ),
        boundary_server=BoundaryServerSettings(
            url=boundary["url"],
            upload_timeout_s=float(boundary.get("upload_timeout_s", DEFAULT_UPLOAD_TIMEOUT_S)),
            query_timeout_s=float(boundary.get("query_timeout_s", DEFAULT_QUERY_TIMEOUT_S)),
        ),
    )


def load_settings(path: Path | None, env: Mapping[str, str] | None = None) -> ImporterSettings:
    """Load, override from the environment, and validate the importer settings.

    Args:
        path: YAML configuration file, or None to configure from the environment only
        env: Environment mapping (default: ``os.environ``)

    Raises:
        SetupError: The file cannot be read.
        YamlParseError: The file is not valid YAML.
        ConfigValidationError: A required setting is missing or invalid.
    """
    data = read_yaml(path) if path is not None else {}
    data = apply_env_overrides(data, os.environ if env is None else env)
    validate_config(data, SCHEMA_NAME, config_path=path)
    return build_settings(data)
