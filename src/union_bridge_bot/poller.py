"""
Confirmation polling against the Union indexer.

After a transfer is final on the source chain the indexer eventually
correlates it with a packet hash. The poller queries for that record until it
appears or the attempts run out. A missing record is never an error: the
transfer itself is already confirmed on-chain.
"""

import asyncio
import logging
from typing import Protocol

import httpx

from .models import ConfirmationRecord, RetryPolicy
from .retry import RetryExecutor

logger = logging.getLogger(__name__)


class ConfirmationPending(Exception):
    """The indexer has no record for the transaction yet."""


class PacketIndex(Protocol):
    """Indexing service correlating transactions with packet hashes."""

    async def query_packet_hash(self, transaction_id: str) -> str | None: ...


class ConfirmationPoller:
    """Polls the indexer for the packet hash of a transaction."""

    def __init__(
        self,
        indexer: PacketIndex,
        retry_executor: RetryExecutor,
        call_timeout: float | None = None
    ) -> None:
        """
        Initialize the ConfirmationPoller.

        Args:
            indexer: Indexing service client
            retry_executor: Executor running the poll attempts
            call_timeout: Optional timeout in seconds for each query
        """
        self.indexer = indexer
        self.retry_executor = retry_executor
        self.call_timeout = call_timeout

    @staticmethod
    def normalize_transaction_id(transaction_id: str) -> str:
        """
        Bring a transaction hash into its canonical form.

        The indexer matches hashes textually, so they are always sent as
        lowercase hex with a ``0x`` prefix.

        Args:
            transaction_id: Hash with or without prefix, any case

        Returns:
            Lowercase ``0x``-prefixed hash

        Raises:
            ValueError: If the identifier is not hexadecimal
        """
        value = transaction_id.strip().lower()
        value = value.removeprefix("0x")
        if not value:
            raise ValueError("Transaction id is empty")
        try:
            int(value, 16)
        except ValueError:
            raise ValueError(f"Transaction id is not hexadecimal: {transaction_id}") from None
        return f"0x{value}"

    async def poll_for_confirmation(
        self,
        transaction_id: str,
        retries: int = 50,
        interval: float = 5.0
    ) -> ConfirmationRecord | None:
        """
        Poll the indexer until the confirmation record appears.

        Args:
            transaction_id: Hash of the confirmed source chain transaction
            retries: Number of queries before giving up
            interval: Seconds between queries

        Returns:
            The confirmation record, or None if it never showed up
        """
        tx_id = self.normalize_transaction_id(transaction_id)
        policy = RetryPolicy(max_attempts=retries, delay=interval, call_timeout=self.call_timeout)

        async def attempt() -> ConfirmationRecord:
            try:
                packet_hash = await self.indexer.query_packet_hash(tx_id)
            except (httpx.HTTPError, ValueError) as e:
                # Transport failures count as "not found yet"
                logger.warning(f"Indexer query for {tx_id[:10]}... failed: {e}")
                raise ConfirmationPending(f"Indexer unavailable: {e}") from e

            if not packet_hash:
                raise ConfirmationPending("Packet hash not found in response")
            return ConfirmationRecord(transaction_id=tx_id, packet_hash=packet_hash)

        try:
            return await self.retry_executor.execute(attempt, policy)
        except (ConfirmationPending, asyncio.TimeoutError):
            logger.info(f"No packet hash for {tx_id} after {retries} attempts")
            return None
