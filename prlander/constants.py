# Entrius 2025
# =============================================================================
# GitHub
# =============================================================================
BASE_GITHUB_API_URL = "https://api.github.com"
GITHUB_DOMAIN = "https://github.com/"
GITHUB_API_TIMEOUT = 30  # seconds per REST request

# =============================================================================
# Workspace
# =============================================================================
WORKSPACE_DIR_PREFIX = "repo_"
SHALLOW_CLONE_DEPTH = 1
ORIGIN_REMOTE = "origin"

# =============================================================================
# Status Polling
# =============================================================================
STATUS_POLL_INTERVAL_SECONDS = 2
STATUS_TIMEOUT_SECONDS = 60 * 60  # 60 minutes
STATUS_PAGE_SIZE = 20

# =============================================================================
# Pull Requests
# =============================================================================
MERGE_METHOD = "merge"
DEFAULT_PR_TITLE = "Automated update"
