"""
airdrop.py - Operator surface of the swap airdrop

SwapAirdrop is the single owned state object of one airdrop. It composes the
PhaseController, PledgeLedger and AllocationEngine and is the only entry
point that mutates them.

Operations (each atomic and serialized through one lock):
    pledge(identity, amount)
    start_allocating()
    process_batch(max_count)
    complete()

Every successful mutating operation is appended to operation_log.
"""

from __future__ import annotations
from dataclasses import dataclass
import threading
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .core import (
    DEFAULT_BATCH_SIZE, AirdropConfig, AllocationSnapshot, AssetGateway, AssetKind, Authorizer,
    ParticipantRecord, Phase,
    InsufficientPoolFunding, Unauthorized,
    allocation_digest,
)
from .engine import AllocationEngine, preview
from .phase import PhaseController
from .pledge_ledger import PledgeLedger


@dataclass(frozen=True, slots=True)
class OperationRecord:
    """Audit entry for one applied operation."""
    sequence: int
    operation: str
    caller: Optional[str]
    phase: Phase
    detail: Tuple[Tuple[str, Any], ...] = ()

    def __repr__(self) -> str:
        detail = ", ".join(f"{k}={v}" for k, v in self.detail)
        return f"Op#{self.sequence}({self.operation} by {self.caller or '-'} [{self.phase.name}] {detail})"


class OperatorAllowlist:
    """Authorizer granting operator rights to a fixed set of callers."""

    def __init__(self, operators: Iterable[str]):
        self.operators = frozenset(operators)
        if not self.operators:
            raise ValueError("at least one operator is required")

    def is_operator(self, caller: Optional[str]) -> bool:
        return caller in self.operators


class SwapAirdrop:
    """
    Token-swap airdrop: pledges in, capped proportional allocations out.

    Thread Safety:
        Every public method runs under one re-entrant lock, so operations on
        the same airdrop never interleave.

    Example:
        airdrop = SwapAirdrop(gateway, AirdropConfig(conversion_ratio=2, output_cap=1000))
        airdrop.pledge("alice", 100)
        airdrop.pledge("bob", 200)
        airdrop.start_allocating()
        while airdrop.process_batch(50):
            pass
        airdrop.complete()
        airdrop.output_allocation("alice")   # 200
    """

    def __init__(
        self,
        gateway: AssetGateway,
        config: AirdropConfig,
        authorizer: Optional[Authorizer] = None,
        name: str = "airdrop",
        verbose: bool = False,
    ):
        self.name = name
        self.config = config
        self.gateway = gateway
        self.authorizer = authorizer
        self.verbose = verbose
        self.lock = threading.RLock()
        self.phase = PhaseController()
        self.ledger = PledgeLedger(self.phase, gateway)
        self.engine = AllocationEngine(self.ledger, self.phase, config)
        self.operation_log: List[OperationRecord] = []
        # Set once by Distributor.sweep_dust(); shared by every Distributor
        self.dust_swept: bool = False

    # ========================================================================
    # OPERATIONS (Mutating)
    # ========================================================================

    def pledge(self, identity: str, amount: int) -> int:
        """
        Pledge `amount` input units from `identity`.

        Returns:
            The participant's cumulative pledge

        Raises:
            InvalidPhase, InvalidAmount, AssetTransferFailed
        """
        with self.lock:
            record = self.ledger.pledge(identity, amount)
            self._log("pledge", identity, identity=identity, amount=amount)
            return record.pledged_amount

    def start_allocating(self, caller: Optional[str] = None) -> AllocationSnapshot:
        """
        Freeze pledging and fix the scaling factors.

        Returns:
            The allocation snapshot

        Raises:
            Unauthorized: If an authorizer is set and rejects `caller`
            InvalidPhase: If not OPEN
            InsufficientPoolFunding: If require_funding and the pool is short
        """
        with self.lock:
            self._authorize("start_allocating", caller)
            self.phase.require(Phase.OPEN, "start_allocating")
            if self.config.require_funding:
                funded = self.gateway.pool_balance(AssetKind.OUTPUT)
                if funded < self.config.output_cap:
                    raise InsufficientPoolFunding(
                        f"pool holds {funded} output units, cap is {self.config.output_cap}"
                    )
            snapshot = self.engine.freeze()
            self.phase.start_allocating()
            self._log(
                "start_allocating", caller,
                participants=snapshot.participant_count,
                total_pledged=snapshot.total_pledged,
                requested=snapshot.total_requested_output,
                scaling=snapshot.scaling_applies,
            )
            return snapshot

    def process_batch(self, max_count: int, caller: Optional[str] = None, strict: bool = False) -> int:
        """
        Allocate up to `max_count` more participants.

        Returns:
            Number of participants processed (0 once the cursor is at the end)

        Raises:
            Unauthorized, InvalidPhase, ValueError, NoOp (strict only)
        """
        with self.lock:
            self._authorize("process_batch", caller)
            processed = self.engine.process_batch(max_count, strict=strict)
            if processed:
                self._log(
                    "process_batch", caller,
                    processed=processed,
                    cursor=self.engine.processed_cursor,
                    allocated=self.engine.total_output_allocated,
                )
            elif self.verbose:
                print(f"[{self.name}] process_batch: nothing left to process")
            return processed

    def process_all(self, batch_size: int = DEFAULT_BATCH_SIZE, caller: Optional[str] = None) -> int:
        """Run process_batch(batch_size) until the cursor reaches the end."""
        total = 0
        while True:
            processed = self.process_batch(batch_size, caller=caller)
            if not processed:
                return total
            total += processed

    def complete(self, caller: Optional[str] = None) -> None:
        """
        Close the airdrop once every participant is allocated.

        Raises:
            Unauthorized, InvalidPhase, AllocationIncomplete
        """
        with self.lock:
            self._authorize("complete", caller)
            self.phase.complete(self.engine.processed_cursor, self.ledger.participant_count)
            self._log(
                "complete", caller,
                allocated=self.engine.total_output_allocated,
                dust=self.engine.rounding_dust,
            )

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def current_phase(self) -> Phase:
        with self.lock:
            return self.phase.current_phase

    @property
    def total_pledged(self) -> int:
        with self.lock:
            return self.ledger.total_pledged

    @property
    def processed_cursor(self) -> int:
        with self.lock:
            return self.engine.processed_cursor

    @property
    def total_output_allocated(self) -> int:
        with self.lock:
            return self.engine.total_output_allocated

    @property
    def participant_count(self) -> int:
        with self.lock:
            return self.ledger.participant_count

    @property
    def total_requested_output(self) -> int:
        """Fixed at start_allocating(); live estimate while OPEN."""
        with self.lock:
            snapshot = self.engine.snapshot
            if snapshot is None:
                return self.ledger.total_pledged * self.config.conversion_ratio
            return snapshot.total_requested_output

    @property
    def scaling_applies(self) -> bool:
        """Fixed at start_allocating(); live estimate while OPEN."""
        with self.lock:
            snapshot = self.engine.snapshot
            if snapshot is None:
                return self.ledger.total_pledged * self.config.conversion_ratio > self.config.output_cap
            return snapshot.scaling_applies

    @property
    def rounding_dust(self) -> int:
        with self.lock:
            return self.engine.rounding_dust

    def pledged_amount(self, identity: str) -> int:
        with self.lock:
            return self.ledger.pledged_amount(identity)

    def output_allocation(self, identity: str) -> int:
        """Output units allocated to `identity` (0 until processed or if unknown)."""
        with self.lock:
            if not self.ledger.has_participant(identity):
                return 0
            return self.ledger.get_record(identity).output_allocation

    def refund_amount(self, identity: str) -> int:
        """Input units refunded to `identity` (0 until processed or if unknown)."""
        with self.lock:
            if not self.ledger.has_participant(identity):
                return 0
            return self.ledger.get_record(identity).refund_amount

    def get_record(self, identity: str) -> ParticipantRecord:
        with self.lock:
            return self.ledger.get_record(identity)

    def check_funding(self) -> Dict[str, int]:
        """
        Compare the pool's output-asset balance with the cap.

        Returns:
            Dict with 'pool_output', 'output_cap' and 'shortfall' (0 if funded)
        """
        with self.lock:
            pool_output = self.gateway.pool_balance(AssetKind.OUTPUT)
            return {
                'pool_output': pool_output,
                'output_cap': self.config.output_cap,
                'shortfall': max(0, self.config.output_cap - pool_output),
            }

    def allocation_report(self) -> List[ParticipantRecord]:
        """Every participant record, in participant order."""
        with self.lock:
            return self.ledger.records()

    def allocation_digest(self) -> str:
        """Content hash of the per-participant results."""
        with self.lock:
            return allocation_digest(self.ledger.records())

    def preview_allocations(self) -> Dict[str, Tuple[int, int]]:
        """identity -> (output, refund) if pledging closed now. Mutates nothing."""
        with self.lock:
            return preview(self.ledger, self.config)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _authorize(self, operation: str, caller: Optional[str]) -> None:
        if self.authorizer is not None and not self.authorizer.is_operator(caller):
            raise Unauthorized(f"{caller!r} may not call {operation}")

    def _log(self, operation: str, caller: Optional[str], **detail: Any) -> None:
        record = OperationRecord(
            sequence=len(self.operation_log),
            operation=operation,
            caller=caller,
            phase=self.phase.current_phase,
            detail=tuple(detail.items()),
        )
        self.operation_log.append(record)
        if self.verbose:
            print(f"✓ [{self.name}] {record!r}")
