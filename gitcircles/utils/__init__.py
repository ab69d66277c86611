from gitcircles.utils.repo_utils import parse_repo
from gitcircles.utils.wallet_utils import (
    WalletAddress,
    is_valid_p2pk_mainnet,
    validate_wallet_address,
)

__all__ = ["WalletAddress", "is_valid_p2pk_mainnet", "parse_repo", "validate_wallet_address"]
