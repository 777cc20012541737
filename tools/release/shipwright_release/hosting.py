"""Release-hosting interface and the GitHub Releases implementation."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, Optional, TypeVar

import requests
from requests import Response, Session
from requests.exceptions import RequestException

from .errors import (
    AssetConflict,
    ReleaseError,
    ReleaseHostUnavailable,
    ReleasePermissionDenied,
    UploadFailed,
)
from .schemas import ReleaseAsset, ReleaseRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ReleaseHost(ABC):
    """Operations the pipeline needs from the release-hosting service."""

    @abstractmethod
    def find_release(self, tag: str) -> Optional[ReleaseRecord]:
        """Return the release (draft or published) bound to ``tag``, if any."""

    @abstractmethod
    def create_draft_release(self, tag: str, name: str) -> ReleaseRecord:
        ...

    @abstractmethod
    def list_assets(self, release_id: str) -> Dict[str, ReleaseAsset]:
        ...

    @abstractmethod
    def upload_asset(
        self,
        release_id: str,
        asset_name: str,
        file_path: Path,
        *,
        overwrite: bool = True,
    ) -> ReleaseAsset:
        """Upload ``file_path`` as ``asset_name``; replace an existing asset when ``overwrite``."""


class GitHubReleaseHost(ReleaseHost):
    """GitHub Releases over the REST API."""

    def __init__(
        self,
        repo: str,
        token: str,
        *,
        api_url: str = "https://api.github.com",
        upload_url: str = "https://uploads.github.com",
        timeout: float = 30.0,
        upload_timeout: float = 600.0,
        session: Optional[Session] = None,
    ) -> None:
        self.repo = repo
        self.api_url = api_url.rstrip("/")
        self.upload_url = upload_url.rstrip("/")
        self.timeout = timeout
        self.upload_timeout = upload_timeout
        self._token = token
        self._session = session or requests.Session()

    def find_release(self, tag: str) -> Optional[ReleaseRecord]:
        # Drafts are not reachable through /releases/tags/{tag}; walk the listing instead.
        url: Optional[str] = f"{self.api_url}/repos/{self.repo}/releases"
        params: Optional[Dict[str, Any]] = {"per_page": 100}
        while url:
            response = self._request("GET", url, params=params)
            action = f"list releases of {self.repo}"
            self._check(response, action)
            for release in _decode(response, action, lambda body: [_to_release(item) for item in body]):
                if release.tag == tag:
                    return release
            url = _next_link(response)
            params = None
        return None

    def create_draft_release(self, tag: str, name: str) -> ReleaseRecord:
        url = f"{self.api_url}/repos/{self.repo}/releases"
        response = self._request("POST", url, json={"tag_name": tag, "name": name, "draft": True})
        action = f"create draft release {tag}"
        self._check(response, action)
        release = _decode(response, action, _to_release)
        logger.info("Created draft release %s for %s", release.id, tag)
        return release

    def list_assets(self, release_id: str) -> Dict[str, ReleaseAsset]:
        url: Optional[str] = f"{self.api_url}/repos/{self.repo}/releases/{release_id}/assets"
        params: Optional[Dict[str, Any]] = {"per_page": 100}
        assets: Dict[str, ReleaseAsset] = {}
        while url:
            response = self._request("GET", url, params=params)
            action = f"list assets of release {release_id}"
            self._check(response, action)
            for asset in _decode(response, action, lambda body: [_to_asset(item) for item in body]):
                assets[asset.name] = asset
            url = _next_link(response)
            params = None
        return assets

    def upload_asset(
        self,
        release_id: str,
        asset_name: str,
        file_path: Path,
        *,
        overwrite: bool = True,
    ) -> ReleaseAsset:
        try:
            existing = self.list_assets(release_id).get(asset_name)
            if existing is not None:
                if not overwrite:
                    raise AssetConflict(release_id, asset_name)
                self._delete_asset(existing)
        except ReleaseHostUnavailable as exc:
            raise UploadFailed(asset_name, str(exc), exc.status_code) from exc

        url = f"{self.upload_url}/repos/{self.repo}/releases/{release_id}/assets"
        with Path(file_path).open("rb") as handle:
            try:
                response = self._session.post(
                    url,
                    params={"name": asset_name},
                    headers={**self._headers(), "Content-Type": "application/octet-stream"},
                    data=handle,
                    timeout=self.upload_timeout,
                )
            except RequestException as exc:
                raise UploadFailed(asset_name, str(exc)) from exc

        if response.status_code in (401, 403):
            raise ReleasePermissionDenied(f"Upload of '{asset_name}' rejected ({response.status_code}): {_body(response)}")
        if response.status_code >= 400:
            # 422 means a concurrent upload created the name first; the retry deletes it.
            raise UploadFailed(asset_name, _body(response), response.status_code)
        try:
            asset = _decode(response, f"upload {asset_name}", _to_asset)
        except ReleaseHostUnavailable as exc:
            raise UploadFailed(asset_name, str(exc), response.status_code) from exc
        logger.info("Uploaded %s to release %s", asset_name, release_id)
        return asset

    def _delete_asset(self, asset: ReleaseAsset) -> None:
        url = f"{self.api_url}/repos/{self.repo}/releases/assets/{asset.id}"
        response = self._request("DELETE", url)
        if response.status_code == 404:
            return
        self._check(response, f"delete asset {asset.name}")
        logger.info("Removed previous asset %s (%s)", asset.name, asset.id)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _request(self, method: str, url: str, **kwargs: Any) -> Response:
        try:
            return self._session.request(method, url, headers=self._headers(), timeout=self.timeout, **kwargs)
        except RequestException as exc:
            raise ReleaseHostUnavailable(f"{method} {url} failed: {exc}") from exc

    @staticmethod
    def _check(response: Response, action: str) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403, 404):
            raise ReleasePermissionDenied(f"Unable to {action} ({status}): {_body(response)}")
        if status in (409, 422, 429) or status >= 500:
            raise ReleaseHostUnavailable(f"Unable to {action} ({status}): {_body(response)}", status)
        raise ReleaseError(f"Unable to {action} ({status}): {_body(response)}")


def _to_release(payload: Dict[str, Any]) -> ReleaseRecord:
    assets = {asset.name: asset for asset in (_to_asset(item) for item in payload.get("assets") or [])}
    return ReleaseRecord(
        id=str(payload["id"]),
        tag=str(payload.get("tag_name", "")),
        name=payload.get("name"),
        draft=bool(payload.get("draft", False)),
        url=payload.get("html_url"),
        upload_url=payload.get("upload_url"),
        assets=assets,
    )


def _to_asset(payload: Dict[str, Any]) -> ReleaseAsset:
    return ReleaseAsset(
        id=str(payload["id"]),
        name=str(payload["name"]),
        size=int(payload.get("size") or 0),
        url=payload.get("browser_download_url"),
    )


def _decode(response: Response, action: str, convert: Callable[[Any], T]) -> T:
    """Decode a JSON body; an unreadable or incomplete body counts as the host being unavailable."""

    try:
        return convert(response.json())
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise ReleaseHostUnavailable(
            f"Unable to {action}: unexpected response body ({exc!r}): {_body(response)[:200]}",
            response.status_code,
        ) from exc


def _next_link(response: Response) -> Optional[str]:
    links = getattr(response, "links", None) or {}
    return links.get("next", {}).get("url")


def _body(response: Response) -> str:
    return (response.text or getattr(response, "reason", "") or "").strip()


__all__ = ["GitHubReleaseHost", "ReleaseHost"]
