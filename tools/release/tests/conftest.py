from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
for candidate in (ROOT / "tools" / "release", ROOT / "tools" / "release-pipeline"):
    if str(candidate) not in sys.path:
        sys.path.insert(0, str(candidate))

from github_fakes import FakeGitHub  # noqa: E402


@pytest.fixture()
def fake_github() -> FakeGitHub:
    return FakeGitHub()
