from gitcircles.github_client.client import (
    PROFILE_REPO_NAME,
    WALLET_FILE_PATH,
    GitHubClient,
    compute_branch_priority,
)

__all__ = ["GitHubClient", "PROFILE_REPO_NAME", "WALLET_FILE_PATH", "compute_branch_priority"]
