import os
import shutil
import tempfile
from pathlib import Path
from typing import Callable, Optional, Tuple

import bittensor as bt
import pygit2
from pygit2.enums import FileStatus

from prlander.backends.base import RepositoryCloner
from prlander.backends.github import GitHubCloner, GitHubRemoteCallbacks
from prlander.classes import Author, Credentials
from prlander.constants import ORIGIN_REMOTE, WORKSPACE_DIR_PREFIX
from prlander.errors import CloneError, CommitError, MutationError, PushError, WorkspaceStateError

# Receives the worktree root, edits files in place and returns (commit message, author)
MutateFn = Callable[[Path], Tuple[str, Author]]


class Workspace:
    """A temporary clone of one repository, owned by a single landing run.

    The directory is created on construction and removed by teardown(). All
    history is built locally; the push in commit_and_push() is the only
    network write.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        credentials: Credentials,
        cloner: Optional[RepositoryCloner] = None,
        root: Optional[str] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.credentials = credentials
        self.cloner = cloner or GitHubCloner()
        self.path = Path(tempfile.mkdtemp(prefix=WORKSPACE_DIR_PREFIX, dir=root or os.getcwd()))
        self.repository: Optional[pygit2.Repository] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"

    def __enter__(self) -> "Workspace":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.teardown()

    def _require_repository(self) -> pygit2.Repository:
        if self.repository is None:
            raise WorkspaceStateError(f"{self.full_name} has not been cloned")
        return self.repository

    def clone(self) -> None:
        """Shallow clone the repository into the workspace directory."""
        bt.logging.info(f"Cloning {self.full_name} into {self.path}")
        try:
            self.repository = self.cloner.clone(
                self.owner, self.repo, self.path, GitHubRemoteCallbacks(self.credentials)
            )
        except (pygit2.GitError, KeyError, ValueError) as e:
            raise CloneError(f"failed to clone {self.full_name}: {e}") from e

    def commit_and_push(self, branch_name: str, mutate: MutateFn) -> str:
        """Branch off HEAD, apply mutate, commit and push the branch to origin.

        Args:
            branch_name: Name of the branch to create and push
            mutate: Callback editing the worktree

        Returns:
            str: Id of the new commit

        Raises:
            MutationError: mutate failed; nothing was committed or pushed.
            CommitError: The changes could not be committed.
            PushError: The push failed or the remote rejected the branch.
        """
        repository = self._require_repository()
        branch_ref = f"refs/heads/{branch_name}"

        try:
            head_id = repository.head.target
            repository.references.create(branch_ref, head_id)
            repository.checkout(branch_ref)
        except (pygit2.GitError, ValueError) as e:
            raise CommitError(f"failed to create branch {branch_name}: {e}") from e

        message, author = self._run_mutation(mutate)

        commit_id = self._commit(repository, branch_ref, head_id, message, author)
        bt.logging.debug(f"Created commit {commit_id} on {branch_name}")

        self._push(repository, branch_ref)

        try:
            self._record_tracking(repository, branch_name, commit_id)
        except (pygit2.GitError, KeyError, ValueError) as e:
            raise PushError(f"pushed {branch_name} but failed to record its tracking ref: {e}") from e
        bt.logging.info(f"Pushed {branch_name} ({str(commit_id)[:12]}) to {self.full_name}")
        return str(commit_id)

    def _record_tracking(self, repository: pygit2.Repository, branch_name: str, commit_id: pygit2.Oid) -> None:
        remote_branch = f"{ORIGIN_REMOTE}/{branch_name}"
        repository.references.create(f"refs/remotes/{remote_branch}", commit_id, force=True)
        repository.branches.local[branch_name].upstream = repository.branches.remote[remote_branch]

    def _run_mutation(self, mutate: MutateFn) -> Tuple[str, Author]:
        try:
            result = mutate(self.path)
        except MutationError:
            raise
        except Exception as e:
            raise MutationError(f"mutation callback failed: {e}") from e

        try:
            message, author = result
        except (TypeError, ValueError) as e:
            raise MutationError("mutation callback must return (message, Author)") from e
        if not isinstance(author, Author):
            raise MutationError(f"mutation callback returned {type(author).__name__}, expected Author")
        return message, author

    def _commit(
        self, repository: pygit2.Repository, branch_ref: str, parent: pygit2.Oid, message: str, author: Author
    ) -> pygit2.Oid:
        when = author.resolved_timestamp()
        offset = int(when.utcoffset().total_seconds() // 60)
        signature = pygit2.Signature(author.name, author.email, int(when.timestamp()), offset)

        try:
            index = repository.index
            index.add_all()
            for path, flags in repository.status().items():
                if flags & FileStatus.WT_DELETED and path in index:
                    index.remove(path)
            index.write()
            tree = index.write_tree()
            return repository.create_commit(branch_ref, signature, signature, message, tree, [parent])
        except (pygit2.GitError, ValueError, OSError) as e:
            raise CommitError(f"failed to commit changes: {e}") from e

    def _push(self, repository: pygit2.Repository, branch_ref: str) -> None:
        callbacks = GitHubRemoteCallbacks(self.credentials)
        try:
            remote = repository.remotes[ORIGIN_REMOTE]
            remote.push([f"{branch_ref}:{branch_ref}"], callbacks=callbacks)
        except (pygit2.GitError, KeyError) as e:
            raise PushError(f"failed to push {branch_ref} to {self.full_name}: {e}") from e

        if callbacks.rejected_refs:
            reasons = ', '.join(f"{ref}: {msg}" for ref, msg in callbacks.rejected_refs.items())
            raise PushError(f"remote rejected {reasons}")

    def teardown(self) -> None:
        """Remove the workspace directory. Safe to call more than once."""
        self.repository = None
        if not self.path.exists():
            return
        shutil.rmtree(self.path)
        bt.logging.debug(f"Removed workspace {self.path}")
