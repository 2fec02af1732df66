from typing import List, Optional

import bittensor as bt

from prlander.backends.base import PullRequestAPI, RepositoryCloner
from prlander.backends.github import GitHubCloner, GitHubRestAPI
from prlander.classes import Credentials, LandingResult, LandingStage
from prlander.constants import (
    BASE_GITHUB_API_URL,
    DEFAULT_PR_TITLE,
    STATUS_POLL_INTERVAL_SECONDS,
    STATUS_TIMEOUT_SECONDS,
)
from prlander.errors import PRLanderError
from prlander.pull_request import PullRequestController
from prlander.status_waiter import StatusWaiter
from prlander.utils.logging import LandingObserver, LoggingObserver
from prlander.utils.utils import parse_repo_name
from prlander.workspace import MutateFn, Workspace


class LandingOrchestrator:
    """Lands one change: clone, push a branch, open a PR, wait, merge, wait.

    Stages run strictly in order and the first failure aborts the run. The
    workspace is removed on every exit path; a failure to remove it is
    reported through the observer and attached to the result or error,
    never raised in place of the run's own outcome.
    """

    def __init__(
        self,
        repo_name: str,
        credentials: Credentials,
        api: Optional[PullRequestAPI] = None,
        cloner: Optional[RepositoryCloner] = None,
        observer: Optional[LandingObserver] = None,
        workspace_root: Optional[str] = None,
        poll_interval: float = STATUS_POLL_INTERVAL_SECONDS,
        status_timeout: float = STATUS_TIMEOUT_SECONDS,
        api_url: str = BASE_GITHUB_API_URL,
    ):
        self.owner, self.repo = parse_repo_name(repo_name)
        self.credentials = credentials
        self.api = api or GitHubRestAPI(credentials, base_url=api_url)
        self.cloner = cloner or GitHubCloner()
        self.observer = observer or LoggingObserver()
        self.workspace_root = workspace_root
        self.poll_interval = poll_interval
        self.status_timeout = status_timeout

    def _status_waiter(self) -> StatusWaiter:
        return StatusWaiter(
            self.api, self.owner, self.repo, poll_interval=self.poll_interval, timeout=self.status_timeout
        )

    def run(
        self,
        branch_name: str,
        base_branch: str,
        pr_status_context: str,
        merge_status_context: str,
        mutate: MutateFn,
        title: str = DEFAULT_PR_TITLE,
        body: str = "",
    ) -> LandingResult:
        """Run the whole landing workflow on a fresh workspace.

        Raises:
            PRLanderError: The first failing stage's error, with
                teardown_error set if the workspace could not be removed.
        """
        workspace = Workspace(self.owner, self.repo, self.credentials, cloner=self.cloner, root=self.workspace_root)
        try:
            result = self._advance(workspace, branch_name, base_branch, pr_status_context, merge_status_context, mutate, title, body)
        except BaseException as error:
            teardown_error = self._release(workspace)
            if isinstance(error, PRLanderError):
                error.teardown_error = teardown_error
            self._notify(self.observer.on_failure, error)
            raise

        result.teardown_error = self._release(workspace)
        return result

    def _advance(
        self,
        workspace: Workspace,
        branch_name: str,
        base_branch: str,
        pr_status_context: str,
        merge_status_context: str,
        mutate: MutateFn,
        title: str,
        body: str,
    ) -> LandingResult:
        stages: List[LandingStage] = []

        def reached(stage: LandingStage, detail: str) -> None:
            stages.append(stage)
            self.observer.on_stage(stage, detail)

        workspace.clone()
        reached(LandingStage.CLONED, f"{self.owner}/{self.repo}")

        commit_sha = workspace.commit_and_push(branch_name, mutate)
        reached(LandingStage.BRANCH_PUSHED, f"{branch_name} at {commit_sha}")

        controller = PullRequestController(self.api, self.owner, self.repo)
        number = controller.create(branch_name, base_branch, title, body)
        reached(LandingStage.PR_CREATED, f"#{number}")

        head_sha = controller.fetch().head_sha
        self.observer.on_head_sha(head_sha)
        self.observer.on_waiting_for_status(head_sha, pr_status_context)
        self._status_waiter().wait(head_sha, pr_status_context)
        reached(LandingStage.PR_STATUS_RESOLVED, f"'{pr_status_context}' passed on {head_sha}")

        merge_sha = controller.merge()
        reached(LandingStage.MERGED, f"#{number} as {merge_sha}")

        self.observer.on_waiting_for_status(merge_sha, merge_status_context)
        self._status_waiter().wait(merge_sha, merge_status_context)
        reached(LandingStage.MERGE_STATUS_RESOLVED, f"'{merge_status_context}' passed on {merge_sha}")

        return LandingResult(
            pull_request=controller.pull_request,
            branch_name=branch_name,
            commit_sha=commit_sha,
            stages=stages,
        )

    def _release(self, workspace: Workspace) -> Optional[OSError]:
        try:
            workspace.teardown()
        except OSError as e:
            self._notify(self.observer.on_teardown_failed, e)
            return e
        return None

    def _notify(self, hook, error: BaseException) -> None:
        # an observer failure must not replace the run outcome
        try:
            hook(error)
        except Exception as e:
            bt.logging.warning(f"Observer {getattr(hook, '__name__', hook)} raised {type(e).__name__}: {e}")
