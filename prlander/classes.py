from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from prlander.utils.utils import mask_secret


class StatusState(Enum):
    """Verdict for a single status check"""

    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"
    TIMED_OUT = "timed_out"

    @classmethod
    def from_api(cls, state: Optional[str]) -> "StatusState":
        """Map a raw GitHub status state; unknown values keep polling."""
        try:
            status = cls(state)
        except ValueError:
            return cls.PENDING
        # timed_out is only ever produced locally
        return cls.PENDING if status is cls.TIMED_OUT else status

    @property
    def is_negative(self) -> bool:
        return self in (StatusState.FAILURE, StatusState.ERROR, StatusState.TIMED_OUT)


class LandingStage(Enum):
    """Stages of a landing run, in the order they are reached"""

    CLONED = "cloned"
    BRANCH_PUSHED = "branch_pushed"
    PR_CREATED = "pr_created"
    PR_STATUS_RESOLVED = "pr_status_resolved"
    MERGED = "merged"
    MERGE_STATUS_RESOLVED = "merge_status_resolved"


@dataclass(frozen=True)
class Credentials:
    """GitHub username and personal access token"""

    username: str
    token: str

    def __repr__(self) -> str:
        return f"Credentials(username={self.username}, token={mask_secret(self.token)})"


@dataclass
class Author:
    """Creator of a commit. A timestamp of None means 'now'."""

    name: str
    email: str
    timestamp: Optional[datetime] = None

    def resolved_timestamp(self) -> datetime:
        """Return the commit time, defaulting to the current UTC time."""
        if self.timestamp is None:
            return datetime.now(timezone.utc)
        if self.timestamp.tzinfo is None:
            return self.timestamp.replace(tzinfo=timezone.utc)
        return self.timestamp


@dataclass
class PullRequest:
    """Pull request being landed. merge_sha is only set by a successful merge."""

    number: Optional[int] = None
    head_sha: Optional[str] = None
    merge_sha: Optional[str] = None

    @property
    def is_created(self) -> bool:
        return self.number is not None


@dataclass(frozen=True)
class PullRequestSnapshot:
    """Pull request state as returned by the API"""

    number: int
    head_sha: str
    mergeable: Optional[bool]  # None while GitHub is still computing it


@dataclass(frozen=True)
class CommitStatus:
    """A single commit status entry"""

    context: str
    state: str
    description: Optional[str] = None
    target_url: Optional[str] = None


@dataclass
class LandingResult:
    """Outcome of a successful landing run"""

    pull_request: PullRequest
    branch_name: str
    commit_sha: str
    stages: List[LandingStage] = field(default_factory=list)
    teardown_error: Optional[BaseException] = None

