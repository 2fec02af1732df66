import queue
import threading
from typing import List, Optional, Union

import bittensor as bt

from prlander.backends.base import PullRequestAPI
from prlander.classes import CommitStatus, StatusState
from prlander.constants import STATUS_PAGE_SIZE, STATUS_POLL_INTERVAL_SECONDS, STATUS_TIMEOUT_SECONDS
from prlander.errors import GitHubAPIError, StatusFailedError, StatusTimeoutError, StatusTransportError

PollOutcome = Union[StatusState, BaseException]


def find_status(statuses: List[CommitStatus], context: str) -> Optional[CommitStatus]:
    """Return the first entry for context in page order.

    GitHub lists statuses newest first, so a re-run check resolves to its
    most recent entry.
    """
    for status in statuses:
        if status.context == context:
            return status
    return None


def classify_statuses(statuses: List[CommitStatus], context: str) -> StatusState:
    status = find_status(statuses, context)
    if status is None:
        return StatusState.PENDING
    return StatusState.from_api(status.state)


class StatusWaiter:
    """Waits for one named status check on a commit to resolve.

    Each wait() runs a single daemon polling thread that hands its one result
    back through a one-slot queue. When the deadline wins, the cancellation
    event is set and the poller exits before its next network call.
    """

    def __init__(
        self,
        api: PullRequestAPI,
        owner: str,
        repo: str,
        poll_interval: float = STATUS_POLL_INTERVAL_SECONDS,
        timeout: float = STATUS_TIMEOUT_SECONDS,
        page_size: int = STATUS_PAGE_SIZE,
    ):
        self.api = api
        self.owner = owner
        self.repo = repo
        self.poll_interval = poll_interval
        self.timeout = timeout
        self.page_size = page_size
        self.poller: Optional[threading.Thread] = None

    def wait(self, sha: str, context: str) -> StatusState:
        """Block until the status check for context on sha resolves.

        Returns:
            StatusState: Always StatusState.SUCCESS

        Raises:
            StatusFailedError: The check reported failure or error.
            StatusTimeoutError: No terminal state before the deadline.
            StatusTransportError: Statuses could not be fetched.
        """
        cancel = threading.Event()
        results: "queue.Queue[PollOutcome]" = queue.Queue(maxsize=1)

        self.poller = threading.Thread(
            target=self._poll,
            args=(sha, context, cancel, results),
            name=f"status-poller-{sha[:8]}",
            daemon=True,
        )
        bt.logging.info(f"Waiting for status '{context}' on {sha}")
        self.poller.start()

        try:
            outcome = results.get(timeout=self.timeout)
        except queue.Empty:
            raise StatusTimeoutError(context, sha, self.timeout) from None
        finally:
            cancel.set()

        if isinstance(outcome, BaseException):
            raise outcome
        bt.logging.info(f"Status '{context}' on {sha[:12]} succeeded")
        return outcome

    def _poll(self, sha: str, context: str, cancel: threading.Event, results: "queue.Queue[PollOutcome]") -> None:
        try:
            outcome: Optional[PollOutcome] = self._poll_until_resolved(sha, context, cancel)
        except Exception as e:
            outcome = e

        if outcome is not None:
            results.put_nowait(outcome)

    def _poll_until_resolved(self, sha: str, context: str, cancel: threading.Event) -> Optional[StatusState]:
        attempt = 0
        # Event.wait returns True once cancelled
        while not cancel.wait(self.poll_interval):
            attempt += 1
            try:
                statuses = self.api.list_statuses(self.owner, self.repo, sha, self.page_size)
            except GitHubAPIError as e:
                raise StatusTransportError(f"failed to list statuses for {sha}: {e}") from e

            if cancel.is_set():
                return None

            state = classify_statuses(statuses, context)
            bt.logging.debug(f"Poll {attempt}: '{context}' on {sha[:12]} is {state.value}")
            if state is StatusState.SUCCESS:
                return state
            if state.is_negative:
                raise StatusFailedError(context, sha, state.value)
        return None
