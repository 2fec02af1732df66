import bittensor as bt

from prlander.backends.base import PullRequestAPI
from prlander.classes import PullRequest, PullRequestSnapshot
from prlander.constants import MERGE_METHOD
from prlander.errors import GitHubAPIError, MergeError, NotMergeableError, PRCreateError, PRFetchError


class PullRequestController:
    """Creates, inspects and merges one pull request.

    The PullRequest record is updated in place: number once on create,
    head_sha on every fetch, merge_sha only after a successful merge.
    """

    def __init__(self, api: PullRequestAPI, owner: str, repo: str):
        self.api = api
        self.owner = owner
        self.repo = repo
        self.pull_request = PullRequest()

    def _require_number(self, error_cls) -> int:
        if not self.pull_request.is_created:
            raise error_cls(f"no pull request has been created for {self.owner}/{self.repo}")
        return self.pull_request.number

    def create(self, head: str, base: str, title: str, body: str = "") -> int:
        """Open a pull request from head into base and record its number."""
        if self.pull_request.is_created:
            raise PRCreateError(f"PR #{self.pull_request.number} already created")

        try:
            number = self.api.create_pull_request(self.owner, self.repo, title, head, base, body)
        except GitHubAPIError as e:
            raise PRCreateError(f"failed to create PR {head} -> {base} on {self.owner}/{self.repo}: {e}") from e

        self.pull_request.number = number
        bt.logging.info(f"Opened PR #{number} on {self.owner}/{self.repo} ({head} -> {base})")
        return number

    def fetch(self) -> PullRequestSnapshot:
        """Retrieve the current head sha and mergeable flag."""
        number = self._require_number(PRFetchError)
        try:
            snapshot = self.api.get_pull_request(self.owner, self.repo, number)
        except GitHubAPIError as e:
            raise PRFetchError(f"failed to fetch PR #{number}: {e}") from e

        self.pull_request.head_sha = snapshot.head_sha
        return snapshot

    def merge(self) -> str:
        """Merge the pull request if GitHub reports it as mergeable.

        Returns:
            str: The merge commit sha

        Raises:
            NotMergeableError: mergeable is False or not yet computed. The
                merge API is not called.
            MergeError: The merge API call failed.
        """
        snapshot = self.fetch()
        if snapshot.mergeable is not True:
            raise NotMergeableError(snapshot.number, snapshot.mergeable)

        try:
            merge_sha = self.api.merge_pull_request(self.owner, self.repo, snapshot.number, MERGE_METHOD)
        except GitHubAPIError as e:
            raise MergeError(f"failed to merge PR #{snapshot.number}: {e}") from e

        self.pull_request.merge_sha = merge_sha
        bt.logging.info(f"Merged PR #{snapshot.number} as {merge_sha[:12]}")
        return merge_sha
