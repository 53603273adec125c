#!/usr/bin/env python3
"""Transfer submission for the Union bridge bot.

This module drives one logical transfer through the bridge contract: it
builds the payload with the encoder registered for the route, submits it
under the transfer retry policy, waits for finality and records the outcome.
Failures of a single transfer are returned as data so a batch never aborts.
"""

import logging
import time
from typing import TYPE_CHECKING

from web3 import Web3

from .exceptions import PreconditionError, ShutdownRequested
from .models import (
    BridgePayload,
    RetryPolicy,
    RunningStatistics,
    SubmissionResult,
    SubmissionStatus,
    TransferRequest,
)
from .observer import LoggingObserver, PipelineObserver
from .retry import RetryExecutor
from .utils.timing import interruptible, interruptible_sleep

if TYPE_CHECKING:
    from .encoders import PayloadEncoder
    from .ledger import LedgerClient

logger = logging.getLogger(__name__)

MAX_UINT256 = 2**256 - 1


class TransactionSubmitter:
    """Submits transfers for one funding identity."""

    def __init__(
        self,
        ledger: "LedgerClient",
        encoders: dict[int, "PayloadEncoder"],
        stats: RunningStatistics,
        retry_executor: RetryExecutor,
        policy: RetryPolicy,
        bridge_address: str,
        asset_address: str,
        observer: PipelineObserver | None = None,
        approval_delay: float = 3.0
    ) -> None:
        """
        Initialize the TransactionSubmitter.

        Args:
            ledger: Ledger client bound to the signing account
            encoders: Payload encoders keyed by channel id
            stats: Process-wide statistics updated per submission
            retry_executor: Executor wrapping submission and approval calls
            policy: Retry policy for the submission call
            bridge_address: Bridge contract, the spender to authorize
            asset_address: Funding asset checked for balance and allowance
            observer: Receives log and status events
            approval_delay: Seconds to wait after an approval is final
        """
        self.ledger = ledger
        self.encoders = encoders
        self.stats = stats
        self.retry_executor = retry_executor
        self.policy = policy
        self.bridge_address = Web3.to_checksum_address(bridge_address)
        self.asset_address = Web3.to_checksum_address(asset_address)
        self.observer: PipelineObserver = observer or LoggingObserver()
        self.approval_delay = approval_delay

    async def prepare(self, account: str) -> None:
        """
        Check the preconditions of a funding identity before any submission.

        Args:
            account: Address of the funding identity

        Raises:
            PreconditionError: If the account holds no asset or no gas funds
        """
        balance = await self.ledger.query_balance(account, self.asset_address)
        if balance == 0:
            raise PreconditionError("Insufficient USDC balance")

        native_balance = await self.ledger.query_balance(account)
        if native_balance == 0:
            raise PreconditionError("Insufficient ETH balance for gas fees")

        await self.ensure_authorization(account)

    async def ensure_authorization(self, account: str) -> bool:
        """
        Grant the bridge an unlimited allowance if it has none.

        Calling this again once the allowance is non-zero does nothing.

        Args:
            account: Address of the funding identity

        Returns:
            True if an approval transaction was sent
        """
        allowance = await self.ledger.query_authorization(account, self.asset_address, self.bridge_address)
        if allowance > 0:
            logger.debug(f"Allowance already granted for {account}: {allowance}")
            return False

        self.observer.on_log_event('loading', "Approving USDC spending...")

        # Only sending is retried; a slow receipt must not trigger a second approval
        pending = await self.retry_executor.execute(
            lambda: self.ledger.grant_authorization(self.bridge_address, MAX_UINT256),
            self.policy
        )
        receipt = await interruptible(pending.wait_for_finality(), self.retry_executor.shutdown_event)
        if receipt.get('status', 0) != 1:
            raise RuntimeError(f"Approval {pending.transaction_id} reverted")

        self.observer.on_log_event('success', f"Approval confirmed: {pending.transaction_id}")
        await interruptible_sleep(self.approval_delay, self.retry_executor.shutdown_event)
        return True

    def build_payload(self, request: TransferRequest) -> BridgePayload:
        """
        Build the bridge call arguments for a request.

        Raises:
            KeyError: If no encoder is registered for the request's channel
        """
        encoder = self.encoders[request.channel_id]
        instruction = encoder.encode(request)

        now_ns = time.time_ns()
        timeout_ns = int(request.timeout_offset.total_seconds() * 1_000_000_000)
        salt = Web3.solidity_keccak(
            ['address', 'uint256'],
            [Web3.to_checksum_address(request.sender), now_ns // 1_000_000_000]
        )
        return BridgePayload(
            channel_id=request.channel_id,
            timeout_height=0,
            timeout_timestamp=now_ns + timeout_ns,
            salt=bytes(salt),
            instruction=instruction,
        )

    async def submit(self, request: TransferRequest) -> SubmissionResult:
        """
        Submit one transfer and wait for it to be final.

        Args:
            request: Transfer to submit

        Returns:
            CONFIRMED result with the transaction id and latency, or a
            FAILED result with the reason

        Raises:
            ShutdownRequested: If shutdown interrupts the submission or its finality wait
        """
        # Pending must be visible before the first suspension point
        self.stats.begin()
        self.observer.on_status_change(self.stats)
        start = time.monotonic()
        tx_id: str | None = None

        try:
            if request.channel_id not in self.encoders:
                raise ValueError(f"No encoder registered for channel {request.channel_id}")
            payload = self.build_payload(request)

            pending = await self.retry_executor.execute(
                lambda: self.ledger.submit(payload),
                self.policy
            )
            tx_id = pending.transaction_id

            receipt = await interruptible(pending.wait_for_finality(), self.retry_executor.shutdown_event)
            if receipt.get('status', 0) != 1:
                raise RuntimeError(f"Transaction {tx_id} reverted")

        except ShutdownRequested:
            self.stats.fail()
            self.observer.on_status_change(self.stats)
            raise
        except Exception as e:
            self.stats.fail()
            self.observer.on_status_change(self.stats)
            reason = str(e) or type(e).__name__
            self.observer.on_log_event('error', f"Transaction failed: {reason}")
            return SubmissionResult(
                status=SubmissionStatus.FAILED,
                transaction_id=tx_id,
                elapsed_ms=int((time.monotonic() - start) * 1000),
                failure_reason=reason,
            )

        elapsed_ms = int((time.monotonic() - start) * 1000)
        self.stats.succeed(elapsed_ms)
        self.observer.on_status_change(self.stats)
        return SubmissionResult(
            status=SubmissionStatus.CONFIRMED,
            transaction_id=tx_id,
            elapsed_ms=elapsed_ms,
        )
