#!/usr/bin/env python3
"""Tests for the BridgeBot orchestration."""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from union_bridge_bot.bot import BridgeBot, FundingSource
from union_bridge_bot.config import DESTINATIONS, BotConfig, NetworkConfig
from union_bridge_bot.exceptions import ConfigurationError
from union_bridge_bot.models import TransferRequest
from union_bridge_bot.wallets import WalletEntry

from conftest import SENDER, FakeIndexer, FakeLedger

KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class TaggedLedger(FakeLedger):
    """FakeLedger writing its submissions to a log shared with other ledgers."""

    def __init__(self, tag: str, journal: list[str], **kwargs) -> None:
        super().__init__(**kwargs)
        self.tag = tag
        self.journal = journal

    async def submit(self, payload):
        self.journal.append(self.tag)
        return await super().submit(payload)


def make_source(name: str, ledger: FakeLedger) -> FundingSource:
    request = TransferRequest(sender=ledger.address, channel_id=8, amount=10_000, destination=ledger.address)
    return FundingSource(name=name, ledger=ledger, request=request)


@pytest.fixture
def make_bot(bot_config):
    def _make(ledger=None, indexer=None, observer=None, config=None):
        return BridgeBot(
            config or bot_config,
            indexer=indexer or FakeIndexer(),
            ledger_factory=lambda wallet: ledger or FakeLedger(),
            observer=observer,
        )
    return _make


class TestRunFromConfig:
    """End-to-end runs against fake collaborators."""

    @pytest.mark.asyncio
    async def test_two_transfers_with_fresh_authorization(self, make_bot):
        """Zero allowance: one approval, then two confirmed and polled transfers."""
        ledger = FakeLedger(balance=100, allowance=0)
        indexer = FakeIndexer()
        bot = make_bot(ledger=ledger, indexer=indexer)

        summary = await bot.run_from_config([WalletEntry(name="main", private_key=KEY)], count=2)

        assert ledger.calls == ['grant', 'submit', 'submit']
        assert indexer.queries == [f"0x{1:064x}", f"0x{2:064x}"]
        assert summary['succeeded'] == 2
        assert summary['failed'] == 0
        assert summary['pending'] == 0

    @pytest.mark.asyncio
    async def test_failed_transfer_does_not_stop_the_loop(self, make_bot):
        """A transfer failing every attempt is counted and the next one still runs."""
        ledger = FakeLedger(allowance=1, submit_failures=5)
        indexer = FakeIndexer()
        bot = make_bot(ledger=ledger, indexer=indexer)

        with patch("union_bridge_bot.bot.interruptible_sleep", new_callable=AsyncMock) as mock_sleep:
            summary = await bot.run_from_config([WalletEntry(name="main", private_key=KEY)], count=2)

        assert ledger.calls.count('submit') == 6
        assert summary['failed'] == 1
        assert summary['succeeded'] == 1
        assert summary['pending'] == 0
        # Only the confirmed transfer is polled
        assert len(indexer.queries) == 1
        mock_sleep.assert_awaited_once_with(bot.config.pipeline.tx_interval, bot.shutdown_event)

    @pytest.mark.asyncio
    async def test_unhealthy_rpc_is_configuration_error(self, make_bot):
        ledger = FakeLedger(chain_id=1)
        bot = make_bot(ledger=ledger)

        with pytest.raises(ConfigurationError, match="Failed to connect"):
            await bot.run_from_config([WalletEntry(name="main", private_key=KEY)], count=1)

        assert ledger.calls == []

    @pytest.mark.asyncio
    async def test_non_positive_count_rejected(self, make_bot):
        with pytest.raises(ConfigurationError, match="positive"):
            await make_bot().run_from_config([WalletEntry(name="main", private_key=KEY)], count=0)

    @pytest.mark.asyncio
    async def test_babylon_requires_receiver_address(self, make_bot, fast_pipeline):
        config = BotConfig(
            network=NetworkConfig(rpc_url="https://rpc.sepolia.test"),
            pipeline=fast_pipeline,
            destination=DESTINATIONS['babylon'],
        )
        bot = make_bot(config=config)

        with pytest.raises(ConfigurationError, match="No wallet can bridge to babylon"):
            await bot.run_from_config([WalletEntry(name="main", private_key=KEY)], count=1)


class TestSources:

    def test_babylon_source_uses_bech32_receiver(self, make_bot, fast_pipeline):
        config = BotConfig(
            network=NetworkConfig(rpc_url="https://rpc.sepolia.test"),
            pipeline=fast_pipeline,
            destination=DESTINATIONS['babylon'],
        )
        bot = make_bot(config=config)

        source = bot.source_for(WalletEntry(name="main", private_key=KEY, babylon_address="bbn1receiver"))

        assert source.request.destination == "bbn1receiver"
        assert source.request.channel_id == 7
        assert source.request.sender == SENDER

    def test_holesky_source_sends_to_itself(self, make_bot):
        source = make_bot().source_for(WalletEntry(name="main", private_key=KEY))

        assert source.request.destination == SENDER
        assert source.request.amount == 10_000


class TestRun:
    """Tests for BridgeBot.run over explicit jobs."""

    @pytest.mark.asyncio
    async def test_sources_processed_strictly_in_order(self, make_bot):
        journal: list[str] = []
        first = TaggedLedger("first", journal, allowance=1)
        second = TaggedLedger("second", journal, allowance=1)
        bot = make_bot()

        summary = await bot.run([(make_source("first", first), 2), (make_source("second", second), 2)])

        assert journal == ["first", "first", "second", "second"]
        assert summary['succeeded'] == 4

    @pytest.mark.asyncio
    async def test_precondition_failure_skips_only_that_source(self, make_bot):
        broke = FakeLedger(balance=0)
        funded = FakeLedger(allowance=1)
        observer = MagicMock()
        bot = make_bot(observer=observer)

        summary = await bot.run([(make_source("broke", broke), 2), (make_source("funded", funded), 1)])

        assert broke.calls == []
        assert funded.calls == ['submit']
        assert summary['succeeded'] == 1
        assert summary['failed'] == 0
        observer.on_log_event.assert_any_call(
            'error', "Skipping wallet broke: Insufficient USDC balance"
        )

    @pytest.mark.asyncio
    async def test_stop_ends_run_gracefully(self, make_bot):
        """Stopping mid-run returns the snapshot without further submissions."""
        ledger = FakeLedger(allowance=1)
        bot = make_bot()

        class StoppingIndexer(FakeIndexer):
            async def query_packet_hash(self, transaction_id):
                bot.stop()
                return await super().query_packet_hash(transaction_id)

        bot.poller.indexer = StoppingIndexer()

        summary = await bot.run([(make_source("main", ledger), 5)])

        assert ledger.calls == ['submit']
        assert summary['succeeded'] == 1
        assert summary['pending'] == 0

    @pytest.mark.asyncio
    async def test_stop_during_hung_receipt_wait(self, make_bot):
        """Stopping while a receipt never arrives returns promptly."""
        ledger = FakeLedger(allowance=1)
        ledger.receipt_delay = 3600
        bot = make_bot()
        asyncio.get_running_loop().call_later(0.05, bot.stop)

        summary = await asyncio.wait_for(bot.run([(make_source("main", ledger), 3)]), timeout=5)

        assert ledger.calls == ['submit']
        assert summary['failed'] == 1
        assert summary['pending'] == 0

    @pytest.mark.asyncio
    async def test_stop_during_hung_approval(self, make_bot):
        ledger = FakeLedger(allowance=0)
        ledger.receipt_delay = 3600
        bot = make_bot()
        asyncio.get_running_loop().call_later(0.05, bot.stop)

        summary = await asyncio.wait_for(bot.run([(make_source("main", ledger), 3)]), timeout=5)

        assert ledger.calls == ['grant']
        assert summary['failed'] == 0
        assert summary['pending'] == 0

    @pytest.mark.asyncio
    async def test_stop_during_hung_indexer_query(self, make_bot):
        ledger = FakeLedger(allowance=1)

        class HungIndexer(FakeIndexer):
            async def query_packet_hash(self, transaction_id):
                self.queries.append(transaction_id)
                await asyncio.sleep(3600)

        indexer = HungIndexer()
        bot = make_bot(indexer=indexer)
        asyncio.get_running_loop().call_later(0.05, bot.stop)

        summary = await asyncio.wait_for(bot.run([(make_source("main", ledger), 3)]), timeout=5)

        assert ledger.calls == ['submit']
        assert len(indexer.queries) == 1
        assert summary['succeeded'] == 1
