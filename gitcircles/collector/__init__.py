from gitcircles.collector.collector import CollectResult, PullRequestFetcher, collect_repository

__all__ = ["CollectResult", "PullRequestFetcher", "collect_repository"]
