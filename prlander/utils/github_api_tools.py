# Entrius 2025
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import bittensor as bt
import requests

from prlander.constants import BASE_GITHUB_API_URL, GITHUB_API_TIMEOUT, MERGE_METHOD, STATUS_PAGE_SIZE
from prlander.errors import GitHubAPIError

# =============================================================================
# Rate Limit Configuration
# =============================================================================
RATE_LIMIT_BUFFER_SECONDS = 5  # Extra buffer time reported on top of the reset time
RATE_LIMIT_MIN_REMAINING = 10  # Remaining requests at which a warning is logged
RATE_LIMIT_MAX_WAIT_SECONDS = 900  # Cap on the reported wait (15 min)


@dataclass
class RateLimitInfo:
    """Represents GitHub API rate limit information extracted from response headers."""

    limit: int  # Maximum requests allowed per hour
    remaining: int  # Requests remaining in current window
    reset_timestamp: int  # Unix timestamp when the rate limit resets
    used: int  # Requests used in current window

    @property
    def is_exceeded(self) -> bool:
        """Check if rate limit has been exceeded."""
        return self.remaining == 0

    @property
    def seconds_until_reset(self) -> int:
        """Calculate seconds until rate limit resets."""
        current_time = int(time.time())
        return max(0, self.reset_timestamp - current_time)

    def __str__(self) -> str:
        return f"RateLimit(remaining={self.remaining}/{self.limit}, resets_in={self.seconds_until_reset}s)"


def parse_rate_limit_headers(response: requests.Response) -> Optional[RateLimitInfo]:
    """
    Parse GitHub API rate limit information from response headers.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        RateLimitInfo object if headers are present, None otherwise
    """
    headers = response.headers

    try:
        limit = int(headers.get('X-RateLimit-Limit', 0))
        remaining = int(headers.get('X-RateLimit-Remaining', 0))
        reset_timestamp = int(headers.get('X-RateLimit-Reset', 0))
        used = int(headers.get('X-RateLimit-Used', 0))

        if limit == 0 and reset_timestamp == 0:
            return None

        return RateLimitInfo(limit=limit, remaining=remaining, reset_timestamp=reset_timestamp, used=used)
    except (ValueError, TypeError) as e:
        bt.logging.debug(f"Could not parse rate limit headers: {e}")
        return None


def is_rate_limited(response: requests.Response) -> Tuple[bool, Optional[int]]:
    """
    Check if a response indicates rate limiting and calculate wait time.

    Args:
        response: The HTTP response from GitHub API

    Returns:
        Tuple of (is_rate_limited, seconds_to_wait)
    """
    if response.status_code not in (403, 429):
        return (False, None)

    rate_limit_info = parse_rate_limit_headers(response)

    if rate_limit_info and rate_limit_info.is_exceeded:
        wait_seconds = min(
            rate_limit_info.seconds_until_reset + RATE_LIMIT_BUFFER_SECONDS,
            RATE_LIMIT_MAX_WAIT_SECONDS,
        )
        return (True, wait_seconds)

    if 'rate limit' in response.text.lower():
        return (True, 60)

    return (False, None)


def check_preemptive_rate_limit(response: requests.Response) -> None:
    """
    Log a warning when the remaining request budget is nearly exhausted.

    Args:
        response: The HTTP response from GitHub API
    """
    rate_limit_info = parse_rate_limit_headers(response)

    if rate_limit_info and rate_limit_info.remaining <= RATE_LIMIT_MIN_REMAINING:
        bt.logging.warning(
            f"Approaching GitHub API rate limit: {rate_limit_info.remaining} requests remaining, "
            f"resets in {rate_limit_info.seconds_until_reset}s"
        )


def make_headers(token: str) -> Dict[str, str]:
    """Build standard GitHub HTTP headers for a PAT.

    Args:
        token (str): GitHub personal access token.

    Returns:
        Dict[str, str]: Headers for REST requests.
    """
    return {
        'Authorization': f'token {token}',
        'Accept': 'application/vnd.github+json',
        'X-GitHub-Api-Version': '2022-11-28',
    }


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(payload, dict):
        message = payload.get('message', '')
        errors = payload.get('errors')
        if errors:
            details = '; '.join(e.get('message', str(e)) if isinstance(e, dict) else str(e) for e in errors)
            return f"{message}: {details}"
        return message
    return str(payload)


def github_request(
    method: str,
    path: str,
    token: str,
    base_url: str = BASE_GITHUB_API_URL,
    params: Optional[Dict[str, Any]] = None,
    json: Optional[Dict[str, Any]] = None,
) -> Any:
    """Perform a single GitHub REST request and return the decoded JSON body.

    No retries are attempted here: a rate-limited, failed or unreachable
    request is reported to the caller straight away.

    Args:
        method (str): HTTP method
        path (str): Path below the API root, e.g. '/repos/o/r/pulls'
        token (str): GitHub pat
        base_url (str): API root
        params: Query string parameters
        json: JSON request body

    Returns:
        Any: Decoded JSON payload, or None for empty responses.

    Raises:
        GitHubAPIError: On transport failure, rate limiting or any non-2xx status.
    """
    url = f"{base_url.rstrip('/')}{path}"
    try:
        response = requests.request(
            method, url, headers=make_headers(token), params=params, json=json, timeout=GITHUB_API_TIMEOUT
        )
    except requests.exceptions.RequestException as e:
        raise GitHubAPIError(f"{method} {path} failed: {e}") from e

    rate_limited, wait_seconds = is_rate_limited(response)
    if rate_limited:
        raise GitHubAPIError(
            f"{method} {path} was rate limited, retry in {wait_seconds}s",
            status_code=response.status_code,
            retry_after=wait_seconds,
        )

    if response.status_code >= 400:
        raise GitHubAPIError(
            f"{method} {path} returned {response.status_code}: {_error_message(response)}",
            status_code=response.status_code,
        )

    check_preemptive_rate_limit(response)

    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError as e:
        raise GitHubAPIError(f"{method} {path} returned invalid JSON: {e}", status_code=response.status_code) from e


def create_pull_request(
    owner: str, repo: str, token: str, title: str, head: str, base: str, body: str = "", base_url: str = BASE_GITHUB_API_URL
) -> Dict[str, Any]:
    """Open a pull request from head into base.

    Returns:
        Dict[str, Any]: The created pull request object.
    """
    payload = {'title': title, 'head': head, 'base': base, 'body': body}
    return github_request('POST', f"/repos/{owner}/{repo}/pulls", token, base_url=base_url, json=payload)


def get_pull_request(owner: str, repo: str, pr_number: int, token: str, base_url: str = BASE_GITHUB_API_URL) -> Dict[str, Any]:
    """Fetch a single pull request by number."""
    return github_request('GET', f"/repos/{owner}/{repo}/pulls/{pr_number}", token, base_url=base_url)


def list_commit_statuses(
    owner: str, repo: str, sha: str, token: str, per_page: int = STATUS_PAGE_SIZE, base_url: str = BASE_GITHUB_API_URL
) -> List[Dict[str, Any]]:
    """List the most recent commit statuses for a ref, newest first.

    Only the first page is requested.
    """
    statuses = github_request(
        'GET', f"/repos/{owner}/{repo}/commits/{sha}/statuses", token, base_url=base_url, params={'per_page': per_page}
    )
    return statuses or []


def merge_pull_request(
    owner: str,
    repo: str,
    pr_number: int,
    token: str,
    merge_method: str = MERGE_METHOD,
    base_url: str = BASE_GITHUB_API_URL,
) -> Dict[str, Any]:
    """Merge a pull request.

    Returns:
        Dict[str, Any]: Merge result containing 'sha', 'merged' and 'message'.
    """
    return github_request(
        'PUT',
        f"/repos/{owner}/{repo}/pulls/{pr_number}/merge",
        token,
        base_url=base_url,
        json={'merge_method': merge_method},
    )
