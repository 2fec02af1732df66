"""
prlander Utilities
"""

import hashlib
import re
from typing import Tuple

from prlander.errors import InputValidationError

# One or more non-slash characters, a slash, one or more non-slash characters
REPO_NAME_PATTERN = re.compile(r'^[^/]+/[^/]+$')


def mask_secret(secret: str, length: int = 5) -> str:
    """Return a short SHA-256 hash of a secret for logging."""
    h = hashlib.sha256(str(secret).encode("utf-8")).hexdigest()
    return f"<masked:{h[:length]}>"


def parse_repo_name(repo_name: str) -> Tuple[str, str]:
    """Split a repository identifier of the form 'owner/repo'.

    Args:
        repo_name (str): Repository identifier

    Returns:
        Tuple[str, str]: (owner, repo)

    Raises:
        InputValidationError: If the identifier does not contain exactly one
            slash separating two non-empty components.
    """
    if not isinstance(repo_name, str) or not REPO_NAME_PATTERN.fullmatch(repo_name):
        raise InputValidationError(f"invalid repository name supplied: {repo_name!r}")

    owner, repo = repo_name.split('/')
    return owner, repo
