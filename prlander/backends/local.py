"""Clones from bare repositories on the local filesystem."""

from pathlib import Path

import pygit2

from prlander.backends.base import RepositoryCloner


class LocalPathCloner(RepositoryCloner):
    """Clones '<root>/<owner>/<repo>.git' instead of a GitHub URL.

    Used for mirrors and tests. Always a full clone: libgit2's local
    transport does not support shallow fetches.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def url_for(self, owner: str, repo: str) -> str:
        return str(self.root / owner / f"{repo}.git")

    def clone(self, owner: str, repo: str, path: Path, callbacks: pygit2.RemoteCallbacks) -> pygit2.Repository:
        source = self.url_for(owner, repo)
        if not Path(source).is_dir():
            raise pygit2.GitError(f"repository '{source}' does not exist")
        return pygit2.clone_repository(source, str(path), callbacks=callbacks)
