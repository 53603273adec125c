#!/usr/bin/env python3
"""Configuration management for the Union bridge bot.

This module provides type-safe configuration dataclasses with validation.
Configuration is loaded from environment variables with the defaults of the
Sepolia testnet deployment; all values are immutable for the whole run.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import ClassVar
from urllib.parse import urlparse

from web3 import Web3

from .models import RetryPolicy

# Get logger for this module
logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://ethereum-sepolia.publicnode.com"
DEFAULT_BRIDGE_ADDRESS = "0x5FbE74A283f7954f10AA04C2eDf55578811aeb03"
DEFAULT_USDC_ADDRESS = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
SEPOLIA_CHAIN_ID = 11155111


def _checksum(value: str, label: str) -> str:
    if not value:
        raise ValueError(f"{label} is required")
    if not Web3.is_address(value):
        raise ValueError(f"Invalid {label}: {value}")
    return Web3.to_checksum_address(value)


@dataclass(frozen=True, slots=True)
class NetworkConfig:
    """Configuration for the source chain.

    Attributes:
        rpc_url: HTTP(S) RPC endpoint for Sepolia
        chain_id: Chain ID the RPC endpoint must report
        bridge_address: Checksummed address of the UCS03 bridge contract
        asset_address: Checksummed address of the funding asset (USDC)
        explorer_url: Block explorer base URL used in log links
    """

    rpc_url: str
    chain_id: int = SEPOLIA_CHAIN_ID
    bridge_address: str = DEFAULT_BRIDGE_ADDRESS
    asset_address: str = DEFAULT_USDC_ADDRESS
    explorer_url: str = "https://sepolia.etherscan.io"

    def __post_init__(self) -> None:
        """Validate network configuration."""
        if not self.rpc_url:
            raise ValueError("RPC URL is required (RPC_URL)")

        parsed = urlparse(self.rpc_url)
        if parsed.scheme not in ('http', 'https'):
            raise ValueError(
                f"Invalid RPC URL scheme: {parsed.scheme}. "
                "Expected http or https"
            )

        if self.chain_id <= 0:
            raise ValueError(f"Chain ID must be positive, got {self.chain_id}")

        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, 'bridge_address', _checksum(self.bridge_address, "bridge address"))
        object.__setattr__(self, 'asset_address', _checksum(self.asset_address, "asset address"))

    def tx_url(self, tx_hash: str) -> str:
        return f"{self.explorer_url}/tx/{tx_hash}"


@dataclass(frozen=True, slots=True)
class IndexerConfig:
    """Configuration for the Union GraphQL indexer."""

    graphql_endpoint: str = "https://graphql.union.build/v1/graphql"
    explorer_url: str = "https://app.union.build/explorer"
    request_timeout: float = 30.0  # seconds per query

    def __post_init__(self) -> None:
        if urlparse(self.graphql_endpoint).scheme not in ('http', 'https'):
            raise ValueError(f"Invalid GraphQL endpoint: {self.graphql_endpoint}")
        if self.request_timeout <= 0:
            raise ValueError(f"Request timeout must be positive, got {self.request_timeout}")

    def packet_url(self, packet_hash: str) -> str:
        return f"{self.explorer_url}/transfers/{packet_hash}"


@dataclass(frozen=True, slots=True)
class DestinationConfig:
    """A bridge route to one destination chain.

    Attributes:
        name: Destination chain name
        channel_id: UCS03 channel id of the route
        quote_token: Token minted on the destination, as the bridge expects it
        receiver_kind: ``evm`` (hex address) or ``bech32`` (Cosmos address)
    """

    name: str
    channel_id: int
    quote_token: str
    receiver_kind: str = "evm"

    RECEIVER_KINDS: ClassVar[set[str]] = {'evm', 'bech32'}

    def __post_init__(self) -> None:
        if self.channel_id <= 0:
            raise ValueError(f"Channel id must be positive, got {self.channel_id}")
        if self.receiver_kind not in self.RECEIVER_KINDS:
            raise ValueError(
                f"Unsupported receiver kind: {self.receiver_kind}. "
                f"Supported kinds: {', '.join(sorted(self.RECEIVER_KINDS))}"
            )
        if not self.quote_token:
            raise ValueError(f"Quote token is required for destination {self.name}")


DESTINATIONS: dict[str, DestinationConfig] = {
    'holesky': DestinationConfig(
        name='holesky',
        channel_id=8,
        quote_token="0x57978bfe465ad9b1c0bf80f6c1539d300705ea50",
    ),
    'babylon': DestinationConfig(
        name='babylon',
        channel_id=7,
        quote_token="bbn1zsrv23akkgxdnwul72sftgv2xjt5khsnt3wwjhp0ffh683hzp5aq5a0h6n",
        receiver_kind='bech32',
    ),
}


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    """Retry, polling and pacing settings of the submission pipeline."""
    max_retries: int = 5
    retry_delay: float = 3.0  # seconds, flat
    poll_retries: int = 50
    poll_interval: float = 5.0  # seconds between indexer queries
    tx_interval: float = 1.0  # seconds between submissions of one wallet
    call_timeout: float = 60.0  # seconds per submission attempt
    receipt_timeout: float = 180.0  # seconds to wait for finality
    approval_delay: float = 3.0  # seconds after an approval is confirmed
    timeout_offset: int = 86_400  # seconds the packet stays valid
    startup_grace: float = 5.0  # seconds before exiting on a fatal error

    def __post_init__(self) -> None:
        """Validate pipeline configuration."""
        if not 1 <= self.max_retries <= 20:
            raise ValueError(f"Max retries must be between 1 and 20, got {self.max_retries}")
        if self.poll_retries < 1:
            raise ValueError(f"Poll retries must be positive, got {self.poll_retries}")
        for name in ('retry_delay', 'poll_interval', 'tx_interval', 'approval_delay', 'startup_grace'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        for name in ('call_timeout', 'receipt_timeout'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.timeout_offset <= 0:
            raise ValueError(f"Timeout offset must be positive, got {self.timeout_offset}")

    @property
    def transfer_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_retries,
            delay=self.retry_delay,
            call_timeout=self.call_timeout
        )

    @property
    def timeout_offset_delta(self) -> timedelta:
        return timedelta(seconds=self.timeout_offset)


@dataclass(frozen=True, slots=True)
class BotConfig:
    """Main configuration for the bridge bot.

    Attributes:
        network: Source chain settings
        indexer: GraphQL indexer settings
        pipeline: Retry and pacing settings
        destination: Active bridge route
        transfer_amount: Amount per transfer in the asset's smallest unit
        wallet_file: Path of the wallet.json credential file
    """

    network: NetworkConfig
    indexer: IndexerConfig = field(default_factory=IndexerConfig)
    pipeline: PipelineConfig = field(default_factory=PipelineConfig)
    destination: DestinationConfig = DESTINATIONS['holesky']
    transfer_amount: int = 10_000  # 0.01 USDC
    wallet_file: str = "wallet.json"

    def __post_init__(self) -> None:
        if self.transfer_amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.transfer_amount}")

    @property
    def destinations(self) -> dict[int, DestinationConfig]:
        """Known routes keyed by channel id."""
        return {dest.channel_id: dest for dest in DESTINATIONS.values()}

    @classmethod
    def from_env(cls, destination: str | None = None, wallet_file: str | None = None) -> "BotConfig":
        """Load configuration from environment variables.

        Args:
            destination: Destination name overriding DESTINATION
            wallet_file: Wallet file path overriding WALLET_FILE

        Returns:
            BotConfig instance with loaded values

        Raises:
            ValueError: If environment variables are missing or invalid
        """
        network = NetworkConfig(
            rpc_url=os.environ.get("RPC_URL", DEFAULT_RPC_URL),
            chain_id=int(os.environ.get("CHAIN_ID", str(SEPOLIA_CHAIN_ID))),
            bridge_address=os.environ.get("BRIDGE_ADDRESS", DEFAULT_BRIDGE_ADDRESS),
            asset_address=os.environ.get("USDC_ADDRESS", DEFAULT_USDC_ADDRESS),
            explorer_url=os.environ.get("EXPLORER_URL", "https://sepolia.etherscan.io"),
        )

        indexer = IndexerConfig(
            graphql_endpoint=os.environ.get("GRAPHQL_ENDPOINT", "https://graphql.union.build/v1/graphql"),
            explorer_url=os.environ.get("UNION_URL", "https://app.union.build/explorer"),
            request_timeout=float(os.environ.get("REQUEST_TIMEOUT", "30")),
        )

        pipeline = PipelineConfig(
            max_retries=int(os.environ.get("MAX_RETRIES", "5")),
            retry_delay=float(os.environ.get("RETRY_DELAY", "3")),
            poll_retries=int(os.environ.get("POLL_RETRIES", "50")),
            poll_interval=float(os.environ.get("POLL_INTERVAL", "5")),
            tx_interval=float(os.environ.get("TX_INTERVAL", "1")),
            call_timeout=float(os.environ.get("CALL_TIMEOUT", "60")),
            receipt_timeout=float(os.environ.get("RECEIPT_TIMEOUT", "180")),
            approval_delay=float(os.environ.get("APPROVAL_DELAY", "3")),
            timeout_offset=int(os.environ.get("TIMEOUT_OFFSET", "86400")),
        )

        destination_name = (destination or os.environ.get("DESTINATION", "holesky")).lower()
        if destination_name not in DESTINATIONS:
            raise ValueError(
                f"Unknown destination: {destination_name}. "
                f"Supported destinations: {', '.join(sorted(DESTINATIONS))}"
            )

        return cls(
            network=network,
            indexer=indexer,
            pipeline=pipeline,
            destination=DESTINATIONS[destination_name],
            transfer_amount=int(os.environ.get("TRANSFER_AMOUNT", "10000")),
            wallet_file=wallet_file or os.environ.get("WALLET_FILE", "wallet.json"),
        )

    def log_config(self) -> None:
        """Log the configuration in a readable format for debugging."""
        logger.info("=" * 60)
        logger.info("Union Bridge Bot Configuration")
        logger.info("=" * 60)

        logger.info("Source Chain:")
        logger.info(f"  RPC URL: {self.network.rpc_url}")
        logger.info(f"  Chain ID: {self.network.chain_id}")
        logger.info(f"  Bridge: {self.network.bridge_address}")
        logger.info(f"  Asset: {self.network.asset_address}")

        logger.info("Destination:")
        logger.info(f"  Name: {self.destination.name}")
        logger.info(f"  Channel: {self.destination.channel_id}")
        logger.info(f"  Amount: {self.transfer_amount}")

        logger.info("Pipeline Settings:")
        logger.info(f"  Retries: {self.pipeline.max_retries} x {self.pipeline.retry_delay}s")
        logger.info(f"  Polling: {self.pipeline.poll_retries} x {self.pipeline.poll_interval}s")
        logger.info(f"  Indexer: {self.indexer.graphql_endpoint}")

        logger.info(f"Wallet file: {self.wallet_file}")
        logger.info("=" * 60)
