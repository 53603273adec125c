"""
Shared data models for the Union bridge bot.

This module contains the data classes passed between the submission pipeline
components: transfer requests, submission outcomes, confirmation records and
the process-wide running statistics.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any

LATENCY_WINDOW: int = 30


class SubmissionStatus(str, Enum):
    """Terminal status of one submission attempt."""
    CONFIRMED = "Confirmed"
    FAILED = "Failed"


@dataclass(frozen=True, slots=True)
class TransferRequest:
    """Describes one intended value transfer.

    Attributes:
        sender: Address of the signing account
        channel_id: Bridge route selecting the destination chain
        amount: Quantity in the funding asset's smallest unit
        destination: Receiver address on the destination chain
        timeout_offset: How long the packet stays valid on the remote side
    """
    sender: str
    channel_id: int
    amount: int
    destination: str
    timeout_offset: timedelta = timedelta(days=1)

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"Transfer amount must be positive, got {self.amount}")
        if self.channel_id <= 0:
            raise ValueError(f"Channel id must be positive, got {self.channel_id}")


@dataclass(frozen=True, slots=True)
class SubmissionResult:
    """Outcome of one submission attempt.

    Immutable once created. ``failure_reason`` is set iff the status is
    ``FAILED``; ``transaction_id`` is None when the network never accepted
    the transaction.
    """
    status: SubmissionStatus
    transaction_id: str | None = None
    elapsed_ms: int = 0
    failure_reason: str | None = None

    def __post_init__(self) -> None:
        failed = self.status is SubmissionStatus.FAILED
        if failed != (self.failure_reason is not None):
            raise ValueError("failure_reason must be set exactly when status is FAILED")

    @property
    def confirmed(self) -> bool:
        return self.status is SubmissionStatus.CONFIRMED


@dataclass(frozen=True, slots=True)
class ConfirmationRecord:
    """Packet hash the indexer correlated with a submitted transaction."""
    transaction_id: str
    packet_hash: str


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Bounded retry with a flat delay between attempts.

    Attributes:
        max_attempts: Total attempts including the first one
        delay: Seconds to wait after each failed non-final attempt
        call_timeout: Optional per-attempt timeout in seconds
    """
    max_attempts: int = 5
    delay: float = 3.0
    call_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be non-negative, got {self.delay}")
        if self.call_timeout is not None and self.call_timeout <= 0:
            raise ValueError(f"call_timeout must be positive, got {self.call_timeout}")


@dataclass(frozen=True, slots=True)
class NetworkInfo:
    """Identity of the connected ledger."""
    chain_id: int
    name: str = ""


@dataclass(frozen=True, slots=True)
class Instruction:
    """UCS03 instruction tuple ``(version, opcode, operand)``."""
    version: int
    opcode: int
    operand: bytes

    def as_tuple(self) -> tuple[int, int, bytes]:
        return (self.version, self.opcode, self.operand)


@dataclass(frozen=True, slots=True)
class BridgePayload:
    """Arguments of the bridge contract's ``send`` call."""
    channel_id: int
    timeout_height: int
    timeout_timestamp: int
    salt: bytes
    instruction: Instruction

    def to_args(self) -> list[Any]:
        return [
            self.channel_id,
            self.timeout_height,
            self.timeout_timestamp,
            self.salt,
            self.instruction.as_tuple(),
        ]


@dataclass
class RunningStatistics:
    """Process-wide counters mutated by the submitter.

    Counters are never reset. The pipeline is strictly sequential so no
    locking is done here.
    """
    succeeded: int = 0
    failed: int = 0
    pending: int = 0
    latencies: deque[int] = field(default_factory=lambda: deque([0] * LATENCY_WINDOW, maxlen=LATENCY_WINDOW))

    def begin(self) -> None:
        self.pending += 1

    def succeed(self, elapsed_ms: int) -> None:
        self._release()
        self.succeeded += 1
        self.latencies.append(elapsed_ms)

    def fail(self) -> None:
        self._release()
        self.failed += 1

    def _release(self) -> None:
        if self.pending <= 0:
            raise RuntimeError("No pending submission to release")
        self.pending -= 1

    def snapshot(self) -> dict[str, Any]:
        """
        Get current statistics.

        Returns:
            Dictionary with counters and the latency window
        """
        return {
            'succeeded': self.succeeded,
            'failed': self.failed,
            'pending': self.pending,
            'latencies': list(self.latencies),
        }
