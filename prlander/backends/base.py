"""Capability interfaces for the version-control and pull-request backends.

Production and local/in-memory variants implement the same interface so the
workspace, controller and waiter never depend on a concrete transport.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List

import pygit2

from prlander.classes import CommitStatus, PullRequestSnapshot


class RepositoryCloner(ABC):
    """Clones a remote repository into a local directory."""

    @abstractmethod
    def clone(self, owner: str, repo: str, path: Path, callbacks: pygit2.RemoteCallbacks) -> pygit2.Repository:
        """Clone owner/repo into path.

        Args:
            owner: Repository owner
            repo: Repository name
            path: Empty destination directory
            callbacks: Authenticating remote callbacks

        Returns:
            The cloned repository, with an 'origin' remote.
        """
        ...


class PullRequestAPI(ABC):
    """Pull request and commit status operations.

    Implementations raise GitHubAPIError for every failed call.
    """

    @abstractmethod
    def create_pull_request(self, owner: str, repo: str, title: str, head: str, base: str, body: str) -> int:
        """Open a pull request and return its number."""
        ...

    @abstractmethod
    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestSnapshot:
        ...

    @abstractmethod
    def list_statuses(self, owner: str, repo: str, sha: str, per_page: int) -> List[CommitStatus]:
        """Return the most recent statuses for sha, in API page order."""
        ...

    @abstractmethod
    def merge_pull_request(self, owner: str, repo: str, number: int, merge_method: str) -> str:
        """Merge the pull request and return the merge commit sha."""
        ...
