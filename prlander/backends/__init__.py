from .base import PullRequestAPI, RepositoryCloner
from .github import GitHubCloner, GitHubRemoteCallbacks, GitHubRestAPI
from .local import LocalPathCloner
from .memory import InMemoryPullRequestAPI

__all__ = [
    "PullRequestAPI",
    "RepositoryCloner",
    "GitHubCloner",
    "GitHubRemoteCallbacks",
    "GitHubRestAPI",
    "LocalPathCloner",
    "InMemoryPullRequestAPI",
]
