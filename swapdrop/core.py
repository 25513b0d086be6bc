"""
Core types and pure functions for the swap airdrop allocator.

This module provides the foundational data structures and protocols:
1. Protocols: AssetGateway and Authorizer
2. Immutable data structures: ParticipantRecord, AirdropConfig, AllocationSnapshot
3. Exceptions: AirdropError and domain-specific error types
4. Pure functions: compute_allocation and the canonical allocation digest

Nothing in this module mutates airdrop state. The only writers are
PledgeLedger and AllocationEngine, driven through SwapAirdrop.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import hashlib
from typing import (
    Any, Iterable, List, Optional, Protocol, Tuple, runtime_checkable,
)


# ============================================================================
# CONSTANTS
# ============================================================================

# Reserved wallet for token issuance in the in-process token ledger.
# The system wallet is exempt from balance validation and can go negative.
SYSTEM_WALLET = "system"

# Wallet holding pledged input tokens and the output-token funding.
POOL_WALLET = "airdrop_pool"

# Batch size used by helpers that drive processing to completion.
DEFAULT_BATCH_SIZE = 100


# ============================================================================
# ENUMS
# ============================================================================

class Phase(Enum):
    """
    Lifecycle of an airdrop.

    OPEN: pledges are accepted.
    ALLOCATING: pledges are frozen, allocations are computed in batches.
    CLOSED: every participant is allocated; the ledger is read-only.
    """
    OPEN = 0
    ALLOCATING = 1
    CLOSED = 2


class AssetKind(Enum):
    """Which side of the swap an amount is denominated in."""
    INPUT = "input"
    OUTPUT = "output"


class DustPolicy(Enum):
    """
    What happens to output units left unallocated by floor rounding.

    LEAVE_IN_POOL: the dust stays in the pool wallet.
    RETURN_TO_OPERATOR: the dust is swept to the operator wallet once all
                        participants have been paid.
    """
    LEAVE_IN_POOL = "leave_in_pool"
    RETURN_TO_OPERATOR = "return_to_operator"


# ============================================================================
# EXCEPTIONS
# ============================================================================

class AirdropError(Exception):
    """Base exception for all airdrop errors."""
    pass


class InvalidPhase(AirdropError):
    """Raised when an operation is invoked outside its legal phase."""

    def __init__(self, operation: str, expected: Phase, actual: Phase):
        self.operation = operation
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"{operation} requires phase {expected.name}, current phase is {actual.name}"
        )


class InvalidAmount(AirdropError):
    """Raised when a pledge amount is not a positive integer."""
    pass


class AssetTransferFailed(AirdropError):
    """Raised when the custody transfer behind a pledge or payout did not succeed."""
    pass


class AllocationIncomplete(AirdropError):
    """Raised when complete() is called before every participant is processed."""
    pass


class NoOp(AirdropError):
    """Raised by a strict process_batch() call when nothing is left to process."""
    pass


class Unauthorized(AirdropError):
    """Raised when a non-operator invokes an operator-only operation."""
    pass


class InsufficientPoolFunding(AirdropError):
    """Raised when the pool holds less output asset than the cap requires."""
    pass


class UnknownParticipant(AirdropError):
    """Raised when querying a record for an identity that never pledged."""
    pass


class InvariantViolation(AirdropError):
    """Raised when a write would break a ledger invariant. Indicates a bug."""
    pass


# ============================================================================
# PROTOCOLS
# ============================================================================

@runtime_checkable
class AssetGateway(Protocol):
    """
    Custody capability consumed by the airdrop.

    The airdrop never holds balances itself. It asks the gateway to move
    input asset into the pool when a pledge arrives, and the distribution
    step asks it to pay output asset and refunds back out.
    """

    def transfer_in(self, identity: str, amount: int) -> bool:
        """Move `amount` of input asset from `identity` into the pool."""
        ...

    def transfer_out(self, identity: str, output_amount: int, refund_amount: int) -> bool:
        """Move output asset and refunded input asset from the pool to `identity`."""
        ...

    def pool_balance(self, asset_kind: AssetKind) -> int:
        """Return the pool's balance of the given asset."""
        ...


@runtime_checkable
class Authorizer(Protocol):
    """Decides who may call the operator-only operations."""

    def is_operator(self, caller: Optional[str]) -> bool:
        ...


# ============================================================================
# CORE DATA STRUCTURES
# ============================================================================

def _is_positive_int(value: Any) -> bool:
    # bool is an int subclass; True is not a quantity
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


@dataclass(frozen=True, slots=True)
class AirdropConfig:
    """
    Construction-time parameters of one airdrop.

    Attributes:
        conversion_ratio: Output units granted per input unit pledged.
        output_cap: Maximum total output units the airdrop distributes.
        dust_policy: Handling of output units lost to floor rounding.
        require_funding: If True, start_allocating() checks that the pool
                         holds at least output_cap of the output asset.
        operator_wallet: Destination for swept dust (RETURN_TO_OPERATOR).
    """
    conversion_ratio: int
    output_cap: int
    dust_policy: DustPolicy = DustPolicy.LEAVE_IN_POOL
    require_funding: bool = False
    operator_wallet: Optional[str] = None

    def __post_init__(self):
        if not _is_positive_int(self.conversion_ratio):
            raise ValueError(
                f"conversion_ratio must be a positive integer, got {self.conversion_ratio!r}"
            )
        if not _is_positive_int(self.output_cap):
            raise ValueError(f"output_cap must be a positive integer, got {self.output_cap!r}")
        if not isinstance(self.dust_policy, DustPolicy):
            raise ValueError(f"dust_policy must be a DustPolicy, got {self.dust_policy!r}")
        if self.dust_policy is DustPolicy.RETURN_TO_OPERATOR and not self.operator_wallet:
            raise ValueError("RETURN_TO_OPERATOR requires an operator_wallet")


@dataclass(frozen=True, slots=True)
class ParticipantRecord:
    """
    Per-participant bookkeeping.

    Records are immutable; the owning PledgeLedger replaces a record whenever
    it changes. `order_index` is the position in first-pledge order.
    """
    identity: str
    order_index: int
    pledged_amount: int = 0
    output_allocation: int = 0
    refund_amount: int = 0
    processed: bool = False
    distributed: bool = False

    def __repr__(self) -> str:
        status = "processed" if self.processed else "pledged"
        return (
            f"Participant({self.identity}#{self.order_index}: pledged={self.pledged_amount}, "
            f"out={self.output_allocation}, refund={self.refund_amount}, {status})"
        )


@dataclass(frozen=True, slots=True)
class AllocationSnapshot:
    """
    Aggregates fixed at the OPEN -> ALLOCATING transition.

    Every per-participant result is a function of this snapshot and the
    participant's pledge alone, which is what makes batch processing
    independent of the batch sizes chosen.
    """
    participant_order: Tuple[str, ...]
    total_pledged: int
    conversion_ratio: int
    output_cap: int
    total_requested_output: int
    scaling_applies: bool

    @classmethod
    def build(
        cls,
        participant_order: Iterable[str],
        total_pledged: int,
        conversion_ratio: int,
        output_cap: int,
    ) -> AllocationSnapshot:
        requested = total_pledged * conversion_ratio
        return cls(
            participant_order=tuple(participant_order),
            total_pledged=total_pledged,
            conversion_ratio=conversion_ratio,
            output_cap=output_cap,
            total_requested_output=requested,
            scaling_applies=requested > output_cap,
        )

    @property
    def participant_count(self) -> int:
        return len(self.participant_order)


# ============================================================================
# PURE FUNCTIONS
# ============================================================================

def compute_allocation(pledged_amount: int, snapshot: AllocationSnapshot) -> Tuple[int, int]:
    """
    Compute (output_allocation, refund_amount) for one participant.

    Without scaling every input unit converts at the full ratio. With scaling
    the output is the participant's floor share of the cap, and the refund is
    the input that share did not consume:

        output = floor(pledged * ratio * cap / requested)
        refund = pledged - floor(output / ratio)

    Floor rounding means the sum of outputs never exceeds the cap.

    Example:
        snap = AllocationSnapshot.build(["alice"], 300, 2, 100)
        compute_allocation(300, snap)   # (100, 250)
    """
    if pledged_amount < 0:
        raise ValueError(f"pledged_amount must be non-negative, got {pledged_amount}")
    ratio = snapshot.conversion_ratio
    if not snapshot.scaling_applies:
        return pledged_amount * ratio, 0
    output = (pledged_amount * ratio * snapshot.output_cap) // snapshot.total_requested_output
    refund = pledged_amount - output // ratio
    return output, refund


def _canonicalize(value: Any) -> str:
    """
    Produce a canonical string representation of a value for hashing.

    Dict keys are sorted; sequences keep their order.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return f"N:{value}"
    if isinstance(value, str):
        return f"S:{value}"
    if isinstance(value, Enum):
        return f"E:{value.name}"
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{_canonicalize(k)}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(item) for item in value) + "]"
    return f"R:{value!r}"


def allocation_digest(records: Iterable[ParticipantRecord]) -> str:
    """
    Content hash of per-participant allocation results, in participant order.

    Two runs over the same pledges produce the same digest regardless of how
    processing was split into batches.
    """
    rows: List[Any] = [
        (r.identity, r.pledged_amount, r.output_allocation, r.refund_amount, r.processed)
        for r in sorted(records, key=lambda r: r.order_index)
    ]
    return hashlib.sha256(_canonicalize(rows).encode()).hexdigest()[:16]
