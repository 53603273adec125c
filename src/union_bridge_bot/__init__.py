"""
Union bridge bot package.

Sequential token-bridging pipeline for the Union UCS03 bridge with bounded
retry and indexer confirmation polling.
"""

from .bot import BridgeBot, FundingSource
from .config import BotConfig
from .models import SubmissionResult, SubmissionStatus, TransferRequest
from .poller import ConfirmationPoller
from .retry import RetryExecutor
from .submitter import TransactionSubmitter

__all__ = [
    "BotConfig",
    "BridgeBot",
    "ConfirmationPoller",
    "FundingSource",
    "RetryExecutor",
    "SubmissionResult",
    "SubmissionStatus",
    "TransactionSubmitter",
    "TransferRequest",
]
__version__ = "0.1.0"
