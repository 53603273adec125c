"""Shared fixtures and fake collaborators for the pipeline tests."""

import asyncio
from typing import Any

import pytest

from union_bridge_bot.config import BotConfig, NetworkConfig, PipelineConfig
from union_bridge_bot.models import BridgePayload, NetworkInfo, RetryPolicy, RunningStatistics

SENDER = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb7"
TX_HASH = "0x" + "ab" * 32


class FakePending:
    """Pending transaction whose receipt is fixed up front."""

    def __init__(
        self,
        transaction_id: str,
        status: int = 1,
        error: Exception | None = None,
        delay: float = 0
    ) -> None:
        self.transaction_id = transaction_id
        self.status = status
        self.error = error
        self.delay = delay
        self.waits = 0

    async def wait_for_finality(self) -> dict[str, Any]:
        self.waits += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return {'status': self.status, 'blockNumber': 1}


class FakeLedger:
    """In-memory ledger recording every call."""

    def __init__(
        self,
        balance: int = 100,
        native_balance: int = 10**18,
        allowance: int = 0,
        submit_failures: int = 0,
        chain_id: int = 11155111
    ) -> None:
        self.address = SENDER
        self.balance = balance
        self.native_balance = native_balance
        self.allowance = allowance
        self.submit_failures = submit_failures
        self.chain_id = chain_id
        self.calls: list[str] = []
        self.payloads: list[BridgePayload] = []
        self.grants = 0
        self.receipt_status = 1
        self.receipt_delay: float = 0

    async def get_network_info(self) -> NetworkInfo:
        return NetworkInfo(chain_id=self.chain_id)

    async def get_latest_sequence_number(self) -> int:
        return 4242

    async def submit(self, payload: BridgePayload) -> FakePending:
        self.calls.append('submit')
        if self.submit_failures > 0:
            self.submit_failures -= 1
            raise ConnectionError("nonce too low")
        self.payloads.append(payload)
        return FakePending(
            f"0x{len(self.payloads):064x}", status=self.receipt_status, delay=self.receipt_delay
        )

    async def query_balance(self, account: str, asset: str | None = None) -> int:
        return self.native_balance if asset is None else self.balance

    async def query_authorization(self, account: str, asset: str, spender: str) -> int:
        return self.allowance

    async def grant_authorization(self, spender: str, amount: int) -> FakePending:
        self.calls.append('grant')
        self.grants += 1
        self.allowance = amount
        return FakePending("0x" + "cd" * 32, delay=self.receipt_delay)


class FakeIndexer:
    """Indexer returning queued answers; exceptions in the queue are raised."""

    def __init__(self, answers: list[Any] | None = None, default: str | None = "0xpacket") -> None:
        self.answers = list(answers or [])
        self.default = default
        self.queries: list[str] = []

    async def query_packet_hash(self, transaction_id: str) -> str | None:
        self.queries.append(transaction_id)
        answer = self.answers.pop(0) if self.answers else self.default
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture
def fast_pipeline() -> PipelineConfig:
    """Pipeline settings without any waiting."""
    return PipelineConfig(
        max_retries=5,
        retry_delay=0,
        poll_retries=3,
        poll_interval=0,
        tx_interval=0,
        approval_delay=0,
        startup_grace=0,
    )


@pytest.fixture
def bot_config(fast_pipeline) -> BotConfig:
    return BotConfig(
        network=NetworkConfig(rpc_url="https://rpc.sepolia.test"),
        pipeline=fast_pipeline,
    )


@pytest.fixture
def no_wait_policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=5, delay=0)


@pytest.fixture
def stats() -> RunningStatistics:
    return RunningStatistics()
