from gitcircles.wallet_sync.models import WalletFetcher, WalletFetchOutcome, WalletSyncResult
from gitcircles.wallet_sync.service import WalletSyncService

__all__ = ["WalletFetcher", "WalletFetchOutcome", "WalletSyncResult", "WalletSyncService"]
