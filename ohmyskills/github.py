"""GitHub directory references and recursive contents-API download."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from ohmyskills.config import Config
from ohmyskills.exceptions import InvalidSourceError, MalformedResponseError, NetworkError
from ohmyskills.logging import get_logger

log = get_logger(__name__)

GITHUB_HOST_MARKER = "github.com"
GITHUB_TREE_MARKER = "/tree/"
_GITHUB_URL_PREFIXES = ("https://github.com/", "http://github.com/", "https://www.github.com/")


@dataclass
class GitHubTreeRef:
    owner: str
    repo: str
    branch: str
    path: str = ""
    url: str = ""


def is_github_tree_url(url: str) -> bool:
    """True for ``github.com/<owner>/<repo>/tree/...`` directory views."""
    return GITHUB_HOST_MARKER in url and GITHUB_TREE_MARKER in url


def parse_github_tree_url(url: str) -> GitHubTreeRef:
    """Split ``owner/repo/tree/branch[/path...]``.

    The third segment is only positional; anything sitting where ``tree``
    usually is will be accepted.
    """
    raw_url = str(url or "").strip()
    trimmed = raw_url
    for prefix in _GITHUB_URL_PREFIXES:
        if trimmed.startswith(prefix):
            trimmed = trimmed[len(prefix):]
            break
    parts = trimmed.split("/")
    if len(parts) < 4 or not all(parts[:4]):
        raise InvalidSourceError(f"Invalid GitHub URL format: {raw_url}")
    owner, repo, _marker, branch = parts[:4]
    path = "/".join(part for part in parts[4:] if part)
    return GitHubTreeRef(owner=owner, repo=repo, branch=branch, path=path, url=raw_url)


def contents_api_url(ref: GitHubTreeRef, api_base_url: str) -> str:
    base = api_base_url.rstrip("/")
    path = quote(ref.path, safe="/")
    return f"{base}/repos/{ref.owner}/{ref.repo}/contents/{path}?ref={quote(ref.branch, safe='')}"


def build_github_headers(cfg: Config) -> dict[str, str]:
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": cfg.http.user_agent,
    }
    token = (cfg.github.token or os.getenv("GITHUB_TOKEN") or os.getenv("GH_TOKEN") or "").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


async def _get(
    client: httpx.AsyncClient,
    url: str,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> httpx.Response:
    request_options: dict[str, Any] = {"headers": headers}
    if timeout is not None:
        request_options["timeout"] = timeout
    try:
        response = await client.get(url, **request_options)
    except httpx.HTTPError as exc:
        raise NetworkError(f"Request to {url} failed: {exc}") from exc
    if response.status_code >= 400:
        details = (response.text or "").strip()[:500]
        message = f"GitHub request failed with HTTP {response.status_code}: {url}"
        if details:
            message = f"{message} ({details})"
        raise NetworkError(message, status_code=response.status_code)
    return response


def _is_safe_entry_name(name: str) -> bool:
    return bool(name) and name not in {".", ".."} and "/" not in name and "\\" not in name


async def fetch_remote_tree(
    client: httpx.AsyncClient,
    api_url: str,
    headers: dict[str, str] | None = None,
    timeout: float | None = None,
) -> list[tuple[str, bytes]]:
    """Download every file below a contents-API directory listing.

    Args:
        client: HTTP client
        api_url: Contents API URL of the directory
        headers: GitHub API headers sent with every request
        timeout: Per-request timeout in seconds; ``None`` keeps the client default

    Returns:
        ``(relative_path, content)`` pairs in listing order, subdirectories
        expanded in place with ``/``-joined paths

    Raises:
        NetworkError: A listing or download failed
        MalformedResponseError: A listing was not a JSON array
    """
    response = await _get(client, api_url, headers, timeout)
    try:
        payload: Any = response.json()
    except ValueError as exc:
        raise MalformedResponseError(f"GitHub listing is not JSON: {api_url}") from exc
    if not isinstance(payload, list):
        raise MalformedResponseError(f"Expected a directory listing from GitHub API: {api_url}")

    files: list[tuple[str, bytes]] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        entry_type = str(item.get("type") or "")
        entry_name = str(item.get("name") or "")
        if not _is_safe_entry_name(entry_name):
            if entry_name:
                log.warning("Skipping unsafe GitHub entry name", name=entry_name, listing=api_url)
            continue
        if entry_type == "file":
            download_url = item.get("download_url")
            if not isinstance(download_url, str) or not download_url:
                continue
            file_response = await _get(client, download_url, headers, timeout)
            files.append((entry_name, file_response.content))
        elif entry_type == "dir":
            sub_url = item.get("url")
            if not isinstance(sub_url, str) or not sub_url:
                continue
            for sub_path, content in await fetch_remote_tree(client, sub_url, headers, timeout):
                files.append((f"{entry_name}/{sub_path}", content))

    log.debug("Fetched GitHub listing", url=api_url, files=len(files))
    return files
