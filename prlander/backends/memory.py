"""In-memory PullRequestAPI for tests and dry runs."""

import hashlib
import threading
from typing import Callable, Dict, List, Optional

from prlander.backends.base import PullRequestAPI
from prlander.classes import CommitStatus, PullRequestSnapshot
from prlander.errors import GitHubAPIError


def fake_sha(seed: str) -> str:
    return hashlib.sha1(seed.encode("utf-8")).hexdigest()


class InMemoryPullRequestAPI(PullRequestAPI):
    """Scripted PullRequestAPI with no network access.

    All state is provided through the constructor:

    Args:
        status_feeds: sha -> successive pages returned by list_statuses. Each
            call consumes one page; the last page is repeated forever.
        default_statuses: Page returned for shas without a feed.
        mergeable: Mergeable flag reported by get_pull_request.
        head_resolver: Maps a head branch name to its tip sha.
        failures: Method name -> error raised when that method is called.
    """

    def __init__(
        self,
        *,
        status_feeds: Optional[Dict[str, List[List[CommitStatus]]]] = None,
        default_statuses: Optional[List[CommitStatus]] = None,
        mergeable: Optional[bool] = True,
        head_resolver: Optional[Callable[[str], str]] = None,
        failures: Optional[Dict[str, Exception]] = None,
    ):
        self.status_feeds = {sha: list(pages) for sha, pages in (status_feeds or {}).items()}
        self.default_statuses = list(default_statuses or [])
        self.mergeable = mergeable
        self.head_resolver = head_resolver
        self.failures = dict(failures or {})

        self._lock = threading.Lock()
        self._next_number = 1
        self.pull_requests: Dict[int, Dict[str, str]] = {}
        self.merge_calls: List[int] = []
        self.status_requests: List[str] = []

    def _maybe_fail(self, method: str) -> None:
        error = self.failures.get(method)
        if error is not None:
            raise error

    def create_pull_request(self, owner: str, repo: str, title: str, head: str, base: str, body: str) -> int:
        self._maybe_fail('create_pull_request')
        with self._lock:
            number = self._next_number
            self._next_number += 1
            self.pull_requests[number] = {
                'owner': owner,
                'repo': repo,
                'title': title,
                'head': head,
                'base': base,
                'body': body,
            }
        return number

    def get_pull_request(self, owner: str, repo: str, number: int) -> PullRequestSnapshot:
        self._maybe_fail('get_pull_request')
        pr = self.pull_requests.get(number)
        if pr is None:
            raise GitHubAPIError(f"PR #{number} not found", status_code=404)
        if self.head_resolver is not None:
            head_sha = self.head_resolver(pr['head'])
        else:
            head_sha = fake_sha(f"{owner}/{repo}:{pr['head']}")
        return PullRequestSnapshot(number=number, head_sha=head_sha, mergeable=self.mergeable)

    def list_statuses(self, owner: str, repo: str, sha: str, per_page: int) -> List[CommitStatus]:
        self._maybe_fail('list_statuses')
        with self._lock:
            self.status_requests.append(sha)
            pages = self.status_feeds.get(sha)
            if not pages:
                return self.default_statuses[:per_page]
            page = pages.pop(0) if len(pages) > 1 else pages[0]
        return list(page)[:per_page]

    def merge_pull_request(self, owner: str, repo: str, number: int, merge_method: str) -> str:
        self._maybe_fail('merge_pull_request')
        if number not in self.pull_requests:
            raise GitHubAPIError(f"PR #{number} not found", status_code=404)
        with self._lock:
            self.merge_calls.append(number)
        return fake_sha(f"merge:{owner}/{repo}#{number}:{merge_method}")
