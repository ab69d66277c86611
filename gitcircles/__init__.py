"""
GitCircles: track merged pull requests per repository and the Ergo wallet
addresses contributors publish in their GitHub profile repos.
"""

__version__ = "0.1.0"
