"""Read declared versions out of structured project manifests."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any, Mapping

import yaml

try:
    import tomllib  # type: ignore[attr-defined]
except ModuleNotFoundError:  # pragma: no cover - fallback for Py<3.11
    import tomli as tomllib  # type: ignore[no-redef]

from .errors import FieldMissing, InvalidVersion, MalformedManifest, ManifestNotFound

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

DEFAULT_VERSION_FIELD = "package.version"


def is_semver(value: str) -> bool:
    return bool(SEMVER_RE.match(value))


def load_manifest(path: str | Path) -> Mapping[str, Any]:
    """Parse a TOML, JSON or YAML manifest into a mapping."""

    manifest_path = Path(path)
    try:
        content = manifest_path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ManifestNotFound(str(manifest_path)) from exc
    except (IsADirectoryError, PermissionError) as exc:
        raise ManifestNotFound(str(manifest_path)) from exc
    except UnicodeDecodeError as exc:
        raise MalformedManifest(str(manifest_path), f"not valid UTF-8: {exc}") from exc

    suffix = manifest_path.suffix.lower()
    try:
        if suffix == ".json":
            data = json.loads(content)
        elif suffix in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = tomllib.loads(content)
    except (tomllib.TOMLDecodeError, json.JSONDecodeError, yaml.YAMLError) as exc:
        raise MalformedManifest(str(manifest_path), str(exc)) from exc

    if not isinstance(data, Mapping):
        raise MalformedManifest(str(manifest_path), "top-level value is not a table")
    return data


def read_field(path: str | Path, field_path: str) -> str:
    """Return the value stored at ``field_path`` (dotted) as a string."""

    data = load_manifest(path)
    current: Any = data
    for part in field_path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            raise FieldMissing(str(path), field_path)
        current = current[part]
    if isinstance(current, (Mapping, list)) or current is None:
        raise FieldMissing(str(path), field_path)
    return str(current)


def read_version(path: str | Path, field_path: str = DEFAULT_VERSION_FIELD) -> str:
    """Return the manifest's declared version after validating it as semver."""

    version = read_field(path, field_path).strip()
    if not is_semver(version):
        raise InvalidVersion(version)
    return version


__all__ = [
    "DEFAULT_VERSION_FIELD",
    "SEMVER_RE",
    "is_semver",
    "load_manifest",
    "read_field",
    "read_version",
]
