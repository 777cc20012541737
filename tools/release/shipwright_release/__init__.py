"""Release collaborators for shipwright: manifests, tags, releases and retries."""

__version__ = "0.1.0"
from .credentials import CredentialInfo, require_credential, resolve_credential_info
from .errors import (
    ArtifactNotFound,
    AssetConflict,
    BuildCancelled,
    BuildFailed,
    ConfigurationError,
    ConflictError,
    FieldMissing,
    InvalidConfig,
    InvalidVersion,
    MalformedManifest,
    ManifestNotFound,
    MissingCredentials,
    PermissionDenied,
    ReleaseConflict,
    ReleaseError,
    ReleaseHostUnavailable,
    ReleasePermissionDenied,
    SourceControlPermissionDenied,
    SourceControlUnavailable,
    TagConflict,
    TargetError,
    TransientError,
    UploadFailed,
)
from .hosting import GitHubReleaseHost, ReleaseHost
from .manifest import is_semver, read_field, read_version
from .retry import RetryPolicy, call_with_retry
from .schemas import ReleaseAsset, ReleaseRecord, Target
from .scm import GitCli, SourceControl

__all__ = [
    "__version__",
    "ArtifactNotFound",
    "AssetConflict",
    "BuildCancelled",
    "BuildFailed",
    "ConfigurationError",
    "ConflictError",
    "CredentialInfo",
    "FieldMissing",
    "GitCli",
    "GitHubReleaseHost",
    "InvalidConfig",
    "InvalidVersion",
    "MalformedManifest",
    "ManifestNotFound",
    "MissingCredentials",
    "PermissionDenied",
    "ReleaseAsset",
    "ReleaseConflict",
    "ReleaseError",
    "ReleaseHost",
    "ReleaseHostUnavailable",
    "ReleasePermissionDenied",
    "ReleaseRecord",
    "RetryPolicy",
    "SourceControl",
    "SourceControlPermissionDenied",
    "SourceControlUnavailable",
    "TagConflict",
    "Target",
    "TargetError",
    "TransientError",
    "UploadFailed",
    "call_with_retry",
    "is_semver",
    "read_field",
    "read_version",
    "require_credential",
    "resolve_credential_info",
]
