"""
Structured logging for GitCircles.

Use get_logger() in every module for consistent, aggregation-friendly output.
"""

from gitcircles.gitcircles_logging.logger import bind_login, get_logger

__all__ = ["bind_login", "get_logger"]
