"""GitHub-backed implementations of the backend interfaces."""

from pathlib import Path
from typing import Dict, List, Optional

import pygit2

from prlander.backends.base import PullRequestAPI, RepositoryCloner
from prlander.classes import CommitStatus, Credentials, PullRequestSnapshot
from prlander.constants import BASE_GITHUB_API_URL, GITHUB_DOMAIN, SHALLOW_CLONE_DEPTH
from prlander.errors import GitHubAPIError
from prlander.utils import github_api_tools


class GitHubRemoteCallbacks(pygit2.RemoteCallbacks):
    """Basic-auth callbacks that also record refs the server refused to update."""

    def __init__(self, credentials: Credentials):
        super().__init__(credentials=pygit2.UserPass(credentials.username, credentials.token))
        self.rejected_refs: Dict[str, str] = {}

    def push_update_reference(self, refname, message):
        if message:
            self.rejected_refs[refname] = message


class GitHubCloner(RepositoryCloner):
    """Shallow clones over HTTPS from github.com."""

    def __init__(self, domain: str = GITHUB_DOMAIN, depth: int = SHALLOW_CLONE_DEPTH):
        self.domain = domain
        self.depth = depth

    def url_for(self, owner: str, repo: str) -> str:
        return f"{self.domain.rstrip('/')}/{owner}/{repo}"

    def clone(self, owner: str, repo: str, path: Path, callbacks: pygit2.RemoteCallbacks) -> pygit2.Repository:
        return pygit2.clone_repository(self.url_for(owner, repo), str(path), depth=self.depth, callbacks=callbacks)


class GitHubRestAPI(PullRequestAPI):
    """PullRequestAPI over the GitHub REST API."""

    def __init__(self, credentials: Credentials, base_url: str = BASE_GITHUB_API_URL):
        self.credentials = credentials
        self.base_url = base_url

    def create_pull_request(self, owner: str, repo: str, title: str, head: str, base: str, body: str) -> int:
        pr = github_api_tools.create_pull_request(
            owner, repo, self.credentials.token, title=title, head=head, base=base, body=body, base_url=self.base_url
        )
        return int(_require(pr, 'number'))

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestSnapshot:
        pr = github_api_tools.get_pull_request(owner, repo, number, self.credentials.token, base_url=self.base_url)
        head = _require(pr, 'head')
        return PullRequestSnapshot(
            number=int(_require(pr, 'number')),
            head_sha=_require(head, 'sha'),
            mergeable=pr.get('mergeable'),
        )

    def list_statuses(self, owner: str, repo: str, sha: str, per_page: int) -> List[CommitStatus]:
        statuses = github_api_tools.list_commit_statuses(
            owner, repo, sha, self.credentials.token, per_page=per_page, base_url=self.base_url
        )
        if not isinstance(statuses, list) or not all(isinstance(status, dict) for status in statuses):
            raise GitHubAPIError(f"GitHub returned a malformed status list for {sha}")
        return [
            CommitStatus(
                context=status.get('context', ''),
                state=status.get('state', ''),
                description=status.get('description'),
                target_url=status.get('target_url'),
            )
            for status in statuses
        ]

    def merge_pull_request(self, owner: str, repo: str, number: int, merge_method: str) -> str:
        result = github_api_tools.merge_pull_request(
            owner, repo, number, self.credentials.token, merge_method=merge_method, base_url=self.base_url
        )
        if not isinstance(result, dict):
            raise GitHubAPIError(f"GitHub returned an empty merge response for PR #{number}")
        if not result.get('merged', True):
            raise GitHubAPIError(f"PR #{number} was not merged: {result.get('message', '')}")
        return _require(result, 'sha')


def _require(payload: Optional[dict], key: str):
    if not isinstance(payload, dict) or payload.get(key) is None:
        raise GitHubAPIError(f"GitHub response is missing '{key}'")
    return payload[key]
