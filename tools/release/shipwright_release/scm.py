"""Source-control tag interface and its git command-line implementation."""

from __future__ import annotations

import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional

from .errors import (
    SourceControlPermissionDenied,
    SourceControlUnavailable,
    TagConflict,
)

logger = logging.getLogger(__name__)

_PERMISSION_MARKERS = (
    "permission denied",
    "authentication failed",
    "could not read username",
    "403",
)
_REJECTED_MARKERS = ("already exists", "[rejected]", "non-fast-forward")


class SourceControl(ABC):
    """Tag operations the pipeline needs from source control."""

    @abstractmethod
    def head_commit(self) -> str:
        ...

    @abstractmethod
    def tag_commit(self, name: str) -> Optional[str]:
        """Return the commit the tag points at, or ``None`` if it does not exist."""

    @abstractmethod
    def push_tag(self, name: str, commit_ref: str) -> None:
        ...

    def tag_exists(self, name: str) -> bool:
        return self.tag_commit(name) is not None


class GitCli(SourceControl):
    """Talks to a git remote through the ``git`` executable."""

    def __init__(self, repo_dir: str | Path = ".", *, remote: str = "origin", timeout: float = 60.0) -> None:
        self.repo_dir = Path(repo_dir)
        self.remote = remote
        self.timeout = timeout

    def head_commit(self) -> str:
        proc = self._run(["git", "rev-parse", "HEAD"])
        if proc.returncode != 0:
            raise SourceControlUnavailable(f"git rev-parse HEAD failed: {_output(proc)}")
        return proc.stdout.strip()

    def tag_commit(self, name: str) -> Optional[str]:
        ref = f"refs/tags/{name}"
        proc = self._run(["git", "ls-remote", "--tags", self.remote, ref, f"{ref}^{{}}"])
        if proc.returncode != 0:
            self._raise_for(proc, f"git ls-remote {self.remote} {ref}")

        direct: Optional[str] = None
        peeled: Optional[str] = None
        for line in proc.stdout.splitlines():
            parts = line.split()
            if len(parts) != 2:
                continue
            sha, found_ref = parts
            if found_ref == f"{ref}^{{}}":
                peeled = sha
            elif found_ref == ref:
                direct = sha
        # Annotated tags list the tag object first and the commit as the peeled ref.
        return peeled or direct

    def push_tag(self, name: str, commit_ref: str) -> None:
        refspec = f"{commit_ref}:refs/tags/{name}"
        logger.info("Pushing tag %s -> %s to %s", name, commit_ref, self.remote)
        proc = self._run(["git", "push", self.remote, refspec])
        if proc.returncode == 0:
            return
        message = _output(proc).lower()
        if any(marker in message for marker in _REJECTED_MARKERS):
            existing = self.tag_commit(name) or "unknown"
            raise TagConflict(name, existing, commit_ref)
        self._raise_for(proc, f"git push {self.remote} {refspec}")

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                args,
                cwd=str(self.repo_dir),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise SourceControlUnavailable(f"{' '.join(args)} timed out after {self.timeout}s") from exc
        except FileNotFoundError as exc:
            raise SourceControlUnavailable(f"git executable not available: {exc}") from exc

    @staticmethod
    def _raise_for(proc: subprocess.CompletedProcess, action: str) -> None:
        output = _output(proc)
        if any(marker in output.lower() for marker in _PERMISSION_MARKERS):
            raise SourceControlPermissionDenied(f"{action} was rejected: {output}")
        raise SourceControlUnavailable(f"{action} failed ({proc.returncode}): {output}")


def _output(proc: subprocess.CompletedProcess) -> str:
    return (proc.stderr or "").strip() or (proc.stdout or "").strip()


__all__ = ["GitCli", "SourceControl"]
