"""
Union bridge bot orchestration.

This module contains the main service that walks through the funding
identities one after another, submitting a fixed number of transfers for
each and polling the indexer for every confirmed one. Nothing runs in
parallel: one identity never has two submissions in flight, so its nonce
sequence cannot conflict.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Sequence

from .config import BotConfig
from .encoders import PayloadEncoder, build_encoders
from .exceptions import ConfigurationError, PreconditionError, ShutdownRequested
from .ledger import LedgerClient, Web3Ledger
from .models import RunningStatistics, TransferRequest
from .observer import LoggingObserver, PipelineObserver
from .poller import ConfirmationPoller, PacketIndex
from .retry import RetryExecutor
from .submitter import TransactionSubmitter
from .utils.indexer_client import IndexerClient
from .utils.timing import interruptible_sleep
from .wallets import WalletEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FundingSource:
    """A signing identity together with the transfer it repeats."""
    name: str
    ledger: LedgerClient
    request: TransferRequest


class BridgeBot:
    """
    Main service running the submission pipeline over all funding sources.

    Collaborators are injectable so the pipeline can run against any ledger
    or indexer; by default web3.py and the Union GraphQL indexer are used.
    """

    def __init__(
        self,
        config: BotConfig,
        indexer: PacketIndex | None = None,
        ledger_factory: Callable[[WalletEntry], LedgerClient] | None = None,
        observer: PipelineObserver | None = None,
        encoders: dict[int, PayloadEncoder] | None = None
    ) -> None:
        """
        Initialize the BridgeBot.

        Args:
            config: Bot configuration
            indexer: Packet hash lookup service
            ledger_factory: Builds a ledger client for a wallet
            observer: Receives log and status events
            encoders: Payload encoders keyed by channel id
        """
        self.config = config
        self.observer: PipelineObserver = observer or LoggingObserver()
        self.stats = RunningStatistics()
        self.shutdown_event = asyncio.Event()

        self.retry_executor = RetryExecutor(observer=self.observer, shutdown_event=self.shutdown_event)
        self.encoders = encoders if encoders is not None else build_encoders(config)
        self.indexer: PacketIndex = indexer or IndexerClient(
            endpoint=config.indexer.graphql_endpoint,
            timeout=config.indexer.request_timeout
        )
        self.poller = ConfirmationPoller(self.indexer, self.retry_executor)
        self.ledger_factory = ledger_factory or self._web3_ledger

    def _web3_ledger(self, wallet: WalletEntry) -> LedgerClient:
        return Web3Ledger.from_key(
            rpc_url=self.config.network.rpc_url,
            private_key=wallet.private_key,
            bridge_address=self.config.network.bridge_address,
            asset_address=self.config.network.asset_address,
            receipt_timeout=self.config.pipeline.receipt_timeout,
            request_timeout=self.config.indexer.request_timeout
        )

    def submitter_for(self, ledger: LedgerClient) -> TransactionSubmitter:
        return TransactionSubmitter(
            ledger=ledger,
            encoders=self.encoders,
            stats=self.stats,
            retry_executor=self.retry_executor,
            policy=self.config.pipeline.transfer_policy,
            bridge_address=self.config.network.bridge_address,
            asset_address=self.config.network.asset_address,
            observer=self.observer,
            approval_delay=self.config.pipeline.approval_delay
        )

    def source_for(self, wallet: WalletEntry) -> FundingSource | None:
        """
        Build the funding source for a wallet.

        Returns:
            The source, or None if the wallet has no receiver for the destination
        """
        ledger = self.ledger_factory(wallet)
        destination = self.config.destination

        match destination.receiver_kind:
            case 'bech32':
                receiver = wallet.babylon_address
            case _:
                receiver = ledger.address

        if not receiver:
            logger.warning(f"Skipping wallet {wallet.name}: no receiver address for {destination.name}")
            return None

        request = TransferRequest(
            sender=ledger.address,
            channel_id=destination.channel_id,
            amount=self.config.transfer_amount,
            destination=receiver,
            timeout_offset=self.config.pipeline.timeout_offset_delta,
        )
        return FundingSource(name=wallet.name, ledger=ledger, request=request)

    async def check_health(self, ledger: LedgerClient) -> bool:
        """Check that the RPC endpoint serves the configured chain."""
        try:
            network = await ledger.get_network_info()
            if network.chain_id != self.config.network.chain_id:
                raise ValueError(
                    f"Chain ID mismatch. Expected {self.config.network.chain_id}, got {network.chain_id}"
                )
            block_number = await ledger.get_latest_sequence_number()
            self.observer.on_log_event(
                'success',
                f"Provider connected (Chain ID: {network.chain_id}), Latest block: {block_number}"
            )
            return True
        except Exception as e:
            self.observer.on_log_event('error', f"Provider health check failed: {e}")
            return False

    async def process_source(self, source: FundingSource, count: int) -> None:
        """
        Submit ``count`` transfers for one funding source.

        A failed precondition skips the source; a failed transfer never stops
        the following ones.
        """
        self.observer.on_log_event('info', f"Processing wallet: {source.name}")
        submitter = self.submitter_for(source.ledger)

        try:
            await submitter.prepare(source.ledger.address)
        except ShutdownRequested:
            raise
        except PreconditionError as e:
            self.observer.on_log_event('error', f"Skipping wallet {source.name}: {e}")
            return
        except Exception as e:
            self.observer.on_log_event('error', f"Error processing wallet {source.name}: {e}")
            return

        for iteration in range(1, count + 1):
            if self.shutdown_event.is_set():
                raise ShutdownRequested("Shutdown requested")

            result = await submitter.submit(source.request)
            if result.confirmed and result.transaction_id:
                self.observer.on_log_event(
                    'success',
                    f"Transaction {iteration}/{count} confirmed in {result.elapsed_ms}ms: "
                    f"{self.config.network.tx_url(result.transaction_id)}"
                )
                await self.report_confirmation(result.transaction_id)

            if iteration < count:
                await interruptible_sleep(self.config.pipeline.tx_interval, self.shutdown_event)

    async def report_confirmation(self, transaction_id: str) -> None:
        record = await self.poller.poll_for_confirmation(
            transaction_id,
            retries=self.config.pipeline.poll_retries,
            interval=self.config.pipeline.poll_interval
        )
        if record:
            self.observer.on_log_event(
                'success',
                f"Packet submitted: {self.config.indexer.packet_url(record.packet_hash)}"
            )
        else:
            self.observer.on_log_event('info', f"Packet hash for {transaction_id} still pending")

    async def run(self, jobs: Sequence[tuple[FundingSource, int]]) -> dict[str, Any]:
        """
        Process every ``(source, count)`` job in order.

        Args:
            jobs: Funding sources with the number of transfers for each

        Returns:
            Final statistics snapshot
        """
        try:
            for source, count in jobs:
                await self.process_source(source, count)
            self.observer.on_log_event('info', "All transactions completed.")
        except ShutdownRequested:
            self.observer.on_log_event('warn', "Shutdown requested, stopping")

        summary = self.stats.snapshot()
        logger.info(
            f"Run finished: {summary['succeeded']} succeeded, "
            f"{summary['failed']} failed, {summary['pending']} pending"
        )
        return summary

    async def run_from_config(self, wallets: Sequence[WalletEntry], count: int) -> dict[str, Any]:
        """
        Build sources for ``wallets``, verify the network and run them.

        Raises:
            ConfigurationError: If no wallet can be used or the RPC endpoint is unhealthy
        """
        if count <= 0:
            raise ConfigurationError("Transaction count must be a positive number")

        sources = [source for wallet in wallets if (source := self.source_for(wallet))]
        if not sources:
            raise ConfigurationError(f"No wallet can bridge to {self.config.destination.name}")

        if not await self.check_health(sources[0].ledger):
            raise ConfigurationError("Failed to connect to RPC provider")

        return await self.run([(source, count) for source in sources])

    def stop(self) -> None:
        """Request shutdown; pending waits return at once."""
        self.shutdown_event.set()
