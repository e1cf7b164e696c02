"""
GitHub question bank sync.

Lists a repository directory through the contents API, keeps the markdown
files, and downloads each one.
"""
import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from ...bank.models import RepoFile
from ...config import GITHUB_API_BASE, MAX_REPO_FILES, MARKDOWN_SUFFIX, REPO_TIMEOUT

logger = logging.getLogger("repository")


class RepositorySyncError(RuntimeError):
    """Listing or downloading the question bank failed."""


class RepositoryNotFoundError(RepositorySyncError):
    """Owner, repository, path or branch does not exist (HTTP 404)."""


class QuestionBankRepository:
    """Reads markdown question banks from one directory of a GitHub repository."""

    def __init__(self,
                 owner: str,
                 repo: str,
                 path: str = "",
                 branch: str = "main",
                 session: Optional[requests.Session] = None,
                 timeout: int = REPO_TIMEOUT,
                 max_files: int = MAX_REPO_FILES):
        self.owner = owner
        self.repo = repo
        self.path = path.strip("/")
        self.branch = branch
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_files = max_files

    @property
    def contents_url(self) -> str:
        url = f"{GITHUB_API_BASE}/repos/{quote(self.owner)}/{quote(self.repo)}/contents"
        if self.path:
            url += "/" + quote(self.path)
        return url

    def _get(self, url: str, **kwargs) -> requests.Response:
        try:
            resp = self.session.get(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise RepositorySyncError(f"Failed to reach {url}: {e}") from e
        if resp.status_code == 404:
            raise RepositoryNotFoundError(
                f"Not found: {self.owner}/{self.repo}/{self.path}@{self.branch} "
                "(check the repository, path and branch)"
            )
        if resp.status_code >= 400:
            raise RepositorySyncError(f"GitHub returned {resp.status_code} for {url}")
        return resp

    def list_markdown_files(self) -> List[RepoFile]:
        """
        List markdown files in the configured directory.

        Returns:
            Up to ``max_files`` entries, in listing order, without content

        Raises:
            RepositoryNotFoundError: On HTTP 404
            RepositorySyncError: On any other fetch failure
        """
        resp = self._get(self.contents_url, params={"ref": self.branch},
                         headers={"Accept": "application/vnd.github+json"})
        try:
            entries = resp.json()
        except ValueError as e:
            raise RepositorySyncError(f"Unreadable listing from GitHub: {e}") from e

        if not isinstance(entries, list):
            # A file path returns a single object rather than a directory listing
            logger.warning(f"{self.contents_url} is not a directory listing")
            return []

        files = [
            RepoFile(name=entry["name"], download_url=entry.get("download_url") or "")
            for entry in entries
            if isinstance(entry, dict) and str(entry.get("name", "")).endswith(MARKDOWN_SUFFIX)
        ]
        if len(files) > self.max_files:
            logger.info(f"Keeping first {self.max_files} of {len(files)} markdown files")
        return files[:self.max_files]

    def fetch_content(self, repo_file: RepoFile) -> str:
        """Download one file's raw text."""
        if not repo_file.download_url:
            raise RepositorySyncError(f"No download URL for {repo_file.name}")
        return self._get(repo_file.download_url).text

    def sync(self) -> List[RepoFile]:
        """
        List and download every markdown file.

        Returns:
            Files with ``content`` filled in
        """
        files = self.list_markdown_files()
        for repo_file in files:
            repo_file.content = self.fetch_content(repo_file)
            logger.debug(f"Fetched {repo_file.name} ({len(repo_file.content)} chars)")
        logger.info(f"Synced {len(files)} markdown files from {self.owner}/{self.repo}/{self.path}")
        return files
