"""
engine.py - Batched allocation engine

Two-pass computation over a frozen participant set:

1. freeze(): O(1)-per-participant snapshot of the ordered participant list
   and the pledge total, fixing total_requested_output and scaling_applies.
2. process_batch(n): advances a cursor over the frozen list, computing and
   recording each participant's output allocation and refund.

Because every scaling factor is fixed in step 1, the final results are the
same for any partition of the work into batches.
"""

from __future__ import annotations
from typing import Dict, Optional, Tuple

from .core import (
    AirdropConfig, AllocationSnapshot, Phase,
    NoOp, InvariantViolation,
    compute_allocation, _is_positive_int,
)
from .phase import PhaseController
from .pledge_ledger import PledgeLedger


class AllocationEngine:
    """
    Cursor-driven allocation over the frozen pledge ledger.

    Invariants:
        - processed_cursor only moves forward and never exceeds participant_count
        - total_output_allocated <= output_cap at every observable point
        - each participant is written exactly once, in participant order
    """

    def __init__(self, ledger: PledgeLedger, phase: PhaseController, config: AirdropConfig):
        self._ledger = ledger
        self._phase = phase
        self._config = config
        self._snapshot: Optional[AllocationSnapshot] = None
        self._cursor: int = 0
        self._total_output_allocated: int = 0

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def snapshot(self) -> Optional[AllocationSnapshot]:
        """The frozen aggregates, or None before freeze()."""
        return self._snapshot

    @property
    def processed_cursor(self) -> int:
        return self._cursor

    @property
    def total_output_allocated(self) -> int:
        return self._total_output_allocated

    @property
    def remaining(self) -> int:
        if self._snapshot is None:
            return 0
        return self._snapshot.participant_count - self._cursor

    @property
    def is_complete(self) -> bool:
        return self._snapshot is not None and self.remaining == 0

    @property
    def unallocated_output(self) -> int:
        return self._config.output_cap - self._total_output_allocated

    @property
    def rounding_dust(self) -> int:
        """
        Output units the cap allowed but floor rounding left unallocated.

        Only meaningful once every participant is processed under scaling;
        0 otherwise.
        """
        if not self.is_complete or not self._snapshot.scaling_applies:
            return 0
        return self.unallocated_output

    # ========================================================================
    # FREEZE
    # ========================================================================

    def freeze(self) -> AllocationSnapshot:
        """
        Snapshot the ledger for allocation and reset the cursor.

        Called by SwapAirdrop while the phase is still OPEN, immediately
        before the transition to ALLOCATING.
        """
        self._phase.require(Phase.OPEN, "start_allocating")
        self._snapshot = AllocationSnapshot.build(
            participant_order=self._ledger.participant_order,
            total_pledged=self._ledger.total_pledged,
            conversion_ratio=self._config.conversion_ratio,
            output_cap=self._config.output_cap,
        )
        self._cursor = 0
        self._total_output_allocated = 0
        return self._snapshot

    # ========================================================================
    # BATCH PROCESSING (Mutating)
    # ========================================================================

    def process_batch(self, max_count: int, strict: bool = False) -> int:
        """
        Allocate up to `max_count` participants starting at the cursor.

        Args:
            max_count: Upper bound on participants processed in this call
            strict: Raise NoOp instead of returning 0 when nothing remains

        Returns:
            Number of participants processed

        Raises:
            InvalidPhase: If the phase is not ALLOCATING
            ValueError: If max_count is not a positive integer
            NoOp: If strict and every participant is already processed
        """
        self._phase.require(Phase.ALLOCATING, "process_batch")
        if not _is_positive_int(max_count):
            raise ValueError(f"max_count must be a positive integer, got {max_count!r}")

        snapshot = self._snapshot
        if self.remaining == 0:
            if strict:
                raise NoOp(f"all {snapshot.participant_count} participants already processed")
            return 0

        end = min(self._cursor + max_count, snapshot.participant_count)
        processed = 0
        while self._cursor < end:
            self._process_one(snapshot.participant_order[self._cursor], snapshot)
            processed += 1
        return processed

    def _process_one(self, identity: str, snapshot: AllocationSnapshot) -> None:
        # All checks precede the writes so one participant is applied whole or not at all.
        record = self._ledger.get_record(identity)
        if record.processed:
            raise InvariantViolation(f"{identity} at cursor {self._cursor} already processed")
        output, refund = compute_allocation(record.pledged_amount, snapshot)
        if self._total_output_allocated + output > snapshot.output_cap:
            raise InvariantViolation(
                f"allocating {output} to {identity} would exceed cap {snapshot.output_cap}"
            )

        self._ledger.record_allocation(identity, output, refund)
        self._total_output_allocated += output
        self._cursor += 1


def preview(ledger: PledgeLedger, config: AirdropConfig) -> Dict[str, Tuple[int, int]]:
    """
    Results processing would produce if pledging closed now.

    Pure: reads the ledger and mutates nothing.

    Returns:
        Dict mapping identity -> (output_allocation, refund_amount), in
        participant order
    """
    snapshot = AllocationSnapshot.build(
        participant_order=ledger.participant_order,
        total_pledged=ledger.total_pledged,
        conversion_ratio=config.conversion_ratio,
        output_cap=config.output_cap,
    )
    return {
        identity: compute_allocation(ledger.pledged_amount(identity), snapshot)
        for identity in snapshot.participant_order
    }
