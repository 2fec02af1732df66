#!/usr/bin/env python3
# The MIT License (MIT)
# Copyright © 2025 Entrius

"""
Shared fixtures: seeded bare repositories served through LocalPathCloner.
"""

from pathlib import Path

import pygit2
import pytest
from pygit2.enums import FileMode

from prlander.backends.local import LocalPathCloner
from prlander.classes import Author, Credentials

OWNER = 'octocat'
REPO = 'Hello-World'
REPO_NAME = f'{OWNER}/{REPO}'


def seed_bare_repository(path: Path, files=None, branch='main') -> pygit2.Repository:
    """Create a bare repository whose `branch` holds one commit with `files`."""
    files = files or {'README.md': b'# Hello World\n'}
    bare = pygit2.init_repository(str(path), bare=True, initial_head=branch)

    builder = bare.TreeBuilder()
    for name, content in files.items():
        builder.insert(name, bare.create_blob(content), FileMode.BLOB)
    tree = builder.write()

    signature = pygit2.Signature('Seed', 'seed@example.com')
    bare.create_commit(f'refs/heads/{branch}', signature, signature, 'Initial commit', tree, [])
    return bare


@pytest.fixture
def credentials():
    return Credentials(username='octocat', token='ghp_fake_token')


@pytest.fixture
def remotes_root(tmp_path):
    root = tmp_path / 'remotes'
    root.mkdir()
    return root


@pytest.fixture
def bare_repo(remotes_root):
    """Seeded bare repository at <remotes_root>/octocat/Hello-World.git"""
    path = remotes_root / OWNER / f'{REPO}.git'
    path.parent.mkdir(parents=True)
    return seed_bare_repository(path, files={'README.md': b'# Hello World\n', 'old.txt': b'stale\n'})


@pytest.fixture
def local_cloner(remotes_root):
    return LocalPathCloner(remotes_root)


@pytest.fixture
def workspace_root(tmp_path):
    root = tmp_path / 'workspaces'
    root.mkdir()
    return root


@pytest.fixture
def author():
    return Author(name='Landing Bot', email='bot@example.com')


@pytest.fixture
def branch_tip(bare_repo):
    """Return the commit at refs/heads/<branch> in the bare repository, or None."""

    def tip(branch):
        bare = pygit2.Repository(bare_repo.path)
        ref = bare.references.get(f'refs/heads/{branch}')
        if ref is None:
            return None
        return bare[ref.target]

    return tip
