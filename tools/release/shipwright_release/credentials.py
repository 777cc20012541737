"""Token lookup for the release host (process environment, then .env files)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from dotenv import dotenv_values

from .errors import MissingCredentials


@dataclass(frozen=True)
class CredentialAttempt:
    source: str
    success: bool
    path: Optional[str] = None


@dataclass(frozen=True)
class CredentialInfo:
    name: str
    value: Optional[str]
    source: Optional[str]
    attempts: List[CredentialAttempt] = field(default_factory=list)

    def attempted_summary(self) -> str:
        labels = []
        for attempt in self.attempts:
            label = f"{attempt.source}@{attempt.path}" if attempt.path else attempt.source
            labels.append(f"{label} ({'resolved' if attempt.success else 'missing'})")
        return ", ".join(labels) if labels else "none"


def resolve_credential_info(name: str, *, dotenv_paths: Sequence[str | Path] = ()) -> CredentialInfo:
    attempts: List[CredentialAttempt] = []

    value = os.getenv(name)
    attempts.append(CredentialAttempt(source="env", success=bool(value)))
    if value:
        return CredentialInfo(name=name, value=value, source="env", attempts=attempts)

    for entry in dotenv_paths:
        path = Path(entry)
        values: Dict[str, Optional[str]] = dotenv_values(path) if path.is_file() else {}
        value = values.get(name)
        attempts.append(CredentialAttempt(source="dotenv", success=bool(value), path=str(path)))
        if value:
            return CredentialInfo(name=name, value=value, source="dotenv", attempts=attempts)

    return CredentialInfo(name=name, value=None, source=None, attempts=attempts)


def require_credential(name: str, *, dotenv_paths: Sequence[str | Path] = ()) -> str:
    """Return the credential value or raise ``MissingCredentials``."""

    info = resolve_credential_info(name, dotenv_paths=dotenv_paths)
    if not info.value:
        raise MissingCredentials(name, info.attempted_summary())
    return info.value


__all__ = [
    "CredentialAttempt",
    "CredentialInfo",
    "require_credential",
    "resolve_credential_info",
]
