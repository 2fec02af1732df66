"""
Exceptions raised while landing a change.

Every component raises its own error type and keeps the underlying library
exception as ``__cause__``. ``teardown_error`` is filled in by the
orchestrator when removing the workspace also failed.
"""

from typing import Optional


class PRLanderError(Exception):
    """Base class for all landing failures."""

    teardown_error: Optional[BaseException] = None


class InputValidationError(PRLanderError):
    """Raised when caller input (repository name, credentials) is malformed."""


class CloneError(PRLanderError):
    """Raised when the repository cannot be cloned."""


class WorkspaceStateError(CloneError):
    """Raised when a workspace operation is attempted before a clone."""


class MutationError(PRLanderError):
    """Raised when the caller-supplied mutation callback fails."""


class CommitError(PRLanderError):
    """Raised when the worktree changes cannot be committed."""


class PushError(PRLanderError):
    """Raised when the branch cannot be pushed to the remote."""


class PRCreateError(PRLanderError):
    """Raised when the pull request cannot be opened."""


class PRFetchError(PRLanderError):
    """Raised when the pull request state cannot be retrieved."""


class StatusTransportError(PRLanderError):
    """Raised when commit statuses cannot be fetched. Never retried."""


class StatusFailedError(PRLanderError):
    """Raised when the watched status check reports failure or error."""

    def __init__(self, context: str, sha: str, state: str):
        self.context = context
        self.sha = sha
        self.state = state
        super().__init__(
            f"status check '{context}' on {sha[:12]} is in a {state} state, aborting"
        )


class StatusTimeoutError(PRLanderError):
    """Raised when the watched status check does not resolve before the deadline."""

    def __init__(self, context: str, sha: str, timeout: float):
        self.context = context
        self.sha = sha
        self.timeout = timeout
        super().__init__(
            f"timed out after {timeout:g}s waiting for status check '{context}' on {sha[:12]}"
        )


class NotMergeableError(PRLanderError):
    """Raised when GitHub does not report the pull request as mergeable."""

    def __init__(self, number: int, mergeable: Optional[bool]):
        self.number = number
        self.mergeable = mergeable
        super().__init__(f"PR #{number} is not mergeable (mergeable={mergeable})")


class MergeError(PRLanderError):
    """Raised when the merge API call fails."""


class GitHubAPIError(Exception):
    """Raised by the REST layer for transport failures and error responses."""

    def __init__(self, message: str, status_code: Optional[int] = None, retry_after: Optional[int] = None):
        self.status_code = status_code
        self.retry_after = retry_after
        super().__init__(message)
