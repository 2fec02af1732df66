import os

from dotenv import load_dotenv

from prlander.classes import Credentials
from prlander.constants import BASE_GITHUB_API_URL, STATUS_POLL_INTERVAL_SECONDS, STATUS_TIMEOUT_SECONDS
from prlander.errors import InputValidationError

# pick up a .env in the working directory without overriding the real environment
load_dotenv(override=False)

GITHUB_USERNAME = os.getenv('GITHUB_USERNAME')
GITHUB_TOKEN = os.getenv('GITHUB_TOKEN')

GITHUB_API_URL = os.getenv('PRLANDER_GITHUB_API_URL', BASE_GITHUB_API_URL)
POLL_INTERVAL = float(os.getenv('PRLANDER_POLL_INTERVAL', STATUS_POLL_INTERVAL_SECONDS))
STATUS_TIMEOUT = float(os.getenv('PRLANDER_STATUS_TIMEOUT', STATUS_TIMEOUT_SECONDS))
WORKSPACE_ROOT = os.getenv('PRLANDER_WORKSPACE_ROOT')  # defaults to the current directory


def load_credentials(username=None, token=None) -> Credentials:
    """Build Credentials from explicit values, falling back to the environment.

    Raises:
        InputValidationError: If either value is missing.
    """
    username = username or GITHUB_USERNAME
    token = token or GITHUB_TOKEN
    if not username or not token:
        raise InputValidationError('GitHub credentials missing: set GITHUB_USERNAME and GITHUB_TOKEN')
    return Credentials(username=username, token=token)
