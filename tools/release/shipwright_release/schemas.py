"""Pydantic models describing build targets and releases."""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class Target(BaseModel):
    """One (platform, artifact name) pair the pipeline builds for."""

    platform: str = Field(..., min_length=1, description="Target triple, e.g. x86_64-unknown-linux-gnu.")
    artifact_name: str = Field(..., min_length=1, description="Asset name used on the release.")
    toolchain: Optional[str] = Field(default=None, description="Toolchain override for this target.")

    model_config = ConfigDict(extra="forbid", frozen=True)

    @property
    def label(self) -> str:
        return f"{self.platform}:{self.artifact_name}"


class ReleaseAsset(BaseModel):
    id: str
    name: str
    size: int = 0
    url: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class ReleaseRecord(BaseModel):
    """Reference to a release held by the hosting service."""

    id: str
    tag: str
    name: Optional[str] = None
    draft: bool = True
    url: Optional[str] = None
    upload_url: Optional[str] = None
    assets: Dict[str, ReleaseAsset] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")
