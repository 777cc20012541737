from __future__ import annotations

from typing import Optional

from shipwright_release.errors import InvalidVersion
from shipwright_release.manifest import SEMVER_RE

DEFAULT_TAG_PREFIX = "v"


def format_tag(version: str, prefix: str = DEFAULT_TAG_PREFIX) -> str:
    if not SEMVER_RE.match(version):
        raise InvalidVersion(version)
    return f"{prefix}{version}"


def parse_tag(tag: str, prefix: str = DEFAULT_TAG_PREFIX) -> Optional[str]:
    """Return the version encoded in ``tag`` or ``None`` if it is not a release tag."""

    if not tag.startswith(prefix):
        return None
    candidate = tag[len(prefix):]
    return candidate if SEMVER_RE.match(candidate) else None


def bump_version(version: str, bump: str = "patch") -> str:
    match = SEMVER_RE.match(version)
    if not match:
        raise InvalidVersion(version)
    major, minor, patch = (int(match.group(name)) for name in ("major", "minor", "patch"))
    bump_lower = bump.lower()
    if bump_lower == "major":
        major += 1
        minor = 0
        patch = 0
    elif bump_lower == "minor":
        minor += 1
        patch = 0
    elif bump_lower == "patch":
        # A pre-release of X.Y.Z promotes to X.Y.Z itself.
        if not match.group("prerelease"):
            patch += 1
    else:
        raise ValueError(f"Unknown bump type '{bump}'. Expected patch|minor|major.")
    return f"{major}.{minor}.{patch}"
