"""Where imported configuration text comes from.

Both sources share one contract: ``load_files()`` returns the text of every
``.tf`` file found, or an empty list when nothing could be read.  Fetch
failures are logged and never raised to the caller.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import requests

from .constants import CONFIG_FILE_EXTENSION, DEFAULT_BRANCH, GITHUB_API_URL, GITHUB_RAW_URL

logger = logging.getLogger(__name__)

_GITHUB_URL = re.compile(r"github\.com/([^/]+)/([^/]+)(?:/(?:tree|blob)/([^/]+))?(?:/(.*))?")


class FetchError(Exception):
    """An HTTP request to the repository host failed."""


@dataclass(frozen=True)
class GithubRepoInfo:
    owner: str
    repo: str
    path: str = ""
    branch: str = DEFAULT_BRANCH


def parse_github_url(text: str) -> Optional[GithubRepoInfo]:
    """Parse ``github.com/<owner>/<repo>[/tree|blob/<branch>][/<path>]``.

    Returns None when the text does not look like a repository URL.
    """
    if not text:
        return None
    match = _GITHUB_URL.search(text.strip())
    if match is None:
        return None
    owner, repo, branch, path = match.groups()
    repo = repo[:-4] if repo.endswith(".git") else repo
    if not owner or not repo:
        return None
    return GithubRepoInfo(
        owner=owner,
        repo=repo,
        path=(path or "").strip("/"),
        branch=branch or DEFAULT_BRANCH,
    )


class GithubSource:
    """Reads ``.tf`` files from one directory of a GitHub repository."""

    def __init__(
        self,
        repo_info: GithubRepoInfo,
        token: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ):
        self.repo_info = repo_info
        self._token = token
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def description(self) -> str:
        info = self.repo_info
        return f"{info.owner}/{info.repo}@{info.branch}:{info.path or '/'}"

    @property
    def empty_message(self) -> str:
        return "No Terraform files found in repository"

    def contents_url(self) -> str:
        info = self.repo_info
        return f"{GITHUB_API_URL}/repos/{info.owner}/{info.repo}/contents/{info.path}"

    def raw_url(self, file_path: str) -> str:
        info = self.repo_info
        return f"{GITHUB_RAW_URL}/{info.owner}/{info.repo}/{info.branch}/{file_path}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github.v3+json"}
        if self._token:
            headers["Authorization"] = f"token {self._token}"
        return headers

    def _get(self, url: str, **kwargs: Any) -> requests.Response:
        try:
            response = self._session.get(url, timeout=self._timeout, **kwargs)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise FetchError(f"GET {url} failed: {exc}") from exc
        return response

    def list_files(self) -> List[Dict[str, Any]]:
        """Directory listing entries; a single-object response is one file."""
        response = self._get(
            self.contents_url(),
            params={"ref": self.repo_info.branch},
            headers=self._headers(),
        )
        try:
            payload = response.json()
        except ValueError as exc:
            raise FetchError(f"Malformed listing from {self.contents_url()}: {exc}") from exc

        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise FetchError(f"Unexpected listing from {self.contents_url()}")
        return [
            entry
            for entry in payload
            if isinstance(entry, dict) and entry.get("name") and entry.get("path") and entry.get("type")
        ]

    def load_files(self) -> List[str]:
        logger.info("Loading files from %s", self.description)
        try:
            entries = self.list_files()
        except FetchError as exc:
            logger.warning("Error fetching directory contents: %s", exc)
            return []

        terraform_files = [entry for entry in entries if entry["name"].endswith(CONFIG_FILE_EXTENSION)]
        logger.info("Found %d Terraform files: %s", len(terraform_files), [e["name"] for e in terraform_files])

        contents: List[str] = []
        for entry in terraform_files:
            url = self.raw_url(entry["path"])
            try:
                text = self._get(url, headers=self._headers()).text
            except FetchError as exc:
                logger.warning("Failed to load %s: %s", entry["name"], exc)
                continue
            logger.debug("Loaded %s (%d characters)", entry["name"], len(text))
            contents.append(text)

        if not contents:
            logger.warning("No Terraform files were loaded from %s", self.description)
        return contents


class LocalDirectorySource:
    """Reads ``.tf`` files from one local directory (not recursive)."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    @property
    def description(self) -> str:
        return str(self.directory)

    @property
    def empty_message(self) -> str:
        return "No Terraform files found in directory"

    def load_files(self) -> List[str]:
        if not self.directory.is_dir():
            logger.warning("Not a directory: %s", self.directory)
            return []

        paths = sorted(
            (path for path in self.directory.iterdir() if path.is_file() and path.name.endswith(CONFIG_FILE_EXTENSION)),
            key=lambda path: path.name,
        )
        logger.info("Found %d Terraform files in %s", len(paths), self.directory)

        contents: List[str] = []
        for path in paths:
            try:
                contents.append(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to load %s: %s", path.name, exc)
        return contents
