"""Error taxonomy shared by the release collaborators and the pipeline."""

from __future__ import annotations

from typing import Optional


class ReleaseError(RuntimeError):
    """Base class for every failure raised by shipwright."""


# Configuration errors: fatal, raised before any side effect.


class ConfigurationError(ReleaseError):
    """Raised when inputs to the pipeline are missing or invalid."""


class ManifestNotFound(ConfigurationError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Manifest not found: {path}")


class FieldMissing(ConfigurationError):
    def __init__(self, path: str, field_path: str) -> None:
        self.path = path
        self.field_path = field_path
        super().__init__(f"Field '{field_path}' is missing from {path}")


class MalformedManifest(ConfigurationError):
    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to parse manifest {path}: {reason}")


class InvalidVersion(ConfigurationError):
    def __init__(self, version: str) -> None:
        self.version = version
        super().__init__(f"'{version}' is not a valid semantic version")


class InvalidConfig(ConfigurationError):
    """Raised when the pipeline configuration file cannot be used."""


class MissingCredentials(ConfigurationError):
    def __init__(self, name: str, attempted: str = "") -> None:
        self.name = name
        message = f"Credential '{name}' could not be resolved"
        if attempted:
            message += f" (checked: {attempted})"
        super().__init__(message)


# Conflict errors: fatal, external state disagrees with the request.


class ConflictError(ReleaseError):
    """Raised when external state is incompatible with the requested change."""


class TagConflict(ConflictError):
    def __init__(self, tag: str, existing_commit: str, requested_commit: str) -> None:
        self.tag = tag
        self.existing_commit = existing_commit
        self.requested_commit = requested_commit
        super().__init__(
            f"Tag '{tag}' already points at {existing_commit}, refusing to move it to {requested_commit}"
        )


class ReleaseConflict(ConflictError):
    def __init__(self, tag: str, release_id: str) -> None:
        self.tag = tag
        self.release_id = release_id
        super().__init__(f"Release {release_id} for tag '{tag}' is already published")


class AssetConflict(ConflictError):
    def __init__(self, release_id: str, asset_name: str) -> None:
        self.release_id = release_id
        self.asset_name = asset_name
        super().__init__(f"Asset '{asset_name}' already exists on release {release_id}")


# Transient infrastructure errors: retried with bounded attempts.


class TransientError(ReleaseError):
    """Raised for network or timeout failures that may succeed on retry."""


class SourceControlUnavailable(TransientError):
    pass


class ReleaseHostUnavailable(TransientError):
    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class UploadFailed(TransientError):
    def __init__(self, asset_name: str, reason: str, status_code: Optional[int] = None) -> None:
        self.asset_name = asset_name
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Upload of '{asset_name}' failed: {reason}")


# Permission errors: fatal, never retried.


class PermissionDenied(ReleaseError):
    """Raised when a collaborator rejects our credentials."""


class ReleasePermissionDenied(PermissionDenied):
    pass


class SourceControlPermissionDenied(PermissionDenied):
    pass


# Target-local errors: recorded against one target only.


class TargetError(ReleaseError):
    """Raised for failures that only concern a single build target."""


class BuildFailed(TargetError):
    def __init__(self, platform: str, diagnostics: str, returncode: Optional[int] = None) -> None:
        self.platform = platform
        self.diagnostics = diagnostics
        self.returncode = returncode
        summary = f"Build for {platform} failed"
        if returncode is not None:
            summary += f" (exit {returncode})"
        super().__init__(f"{summary}: {diagnostics}" if diagnostics else summary)


class BuildCancelled(BuildFailed):
    def __init__(self, platform: str, diagnostics: str = "") -> None:
        super().__init__(platform, diagnostics or "build cancelled")


class ArtifactNotFound(TargetError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Artifact not found: {path}")


__all__ = [
    "ArtifactNotFound",
    "AssetConflict",
    "BuildCancelled",
    "BuildFailed",
    "ConfigurationError",
    "ConflictError",
    "FieldMissing",
    "InvalidConfig",
    "InvalidVersion",
    "MalformedManifest",
    "ManifestNotFound",
    "MissingCredentials",
    "PermissionDenied",
    "ReleaseConflict",
    "ReleaseError",
    "ReleaseHostUnavailable",
    "ReleasePermissionDenied",
    "SourceControlPermissionDenied",
    "SourceControlUnavailable",
    "TagConflict",
    "TargetError",
    "TransientError",
    "UploadFailed",
]
