"""
pledge_ledger.py - Participant pledge bookkeeping

The PledgeLedger owns every ParticipantRecord, the first-pledge ordering of
participants, and the running pledge total.

Key responsibilities:
    - Accepts pledges only while the phase is OPEN
    - Pulls custody of the pledged input asset through the AssetGateway before
      recording anything, so a failed transfer leaves no trace
    - Accepts exactly one allocation write per participant (from the engine)
    - Serves read-only queries in every phase
"""

from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Tuple

from .core import (
    AssetGateway, ParticipantRecord, Phase,
    InvalidAmount, AssetTransferFailed, UnknownParticipant, InvariantViolation,
    _is_positive_int,
)
from .phase import PhaseController


class PledgeLedger:
    """
    Mapping from participant identity to pledge, with a running total.

    Invariant: total_pledged == sum(r.pledged_amount for r in records()).

    Not thread-safe on its own. SwapAirdrop serializes access.
    """

    def __init__(self, phase: PhaseController, gateway: AssetGateway):
        self._phase = phase
        self._gateway = gateway
        self._records: Dict[str, ParticipantRecord] = {}
        self._order: List[str] = []
        self._total_pledged: int = 0
        self._distributed_count: int = 0

    # ========================================================================
    # QUERIES
    # ========================================================================

    @property
    def total_pledged(self) -> int:
        return self._total_pledged

    @property
    def participant_order(self) -> Tuple[str, ...]:
        return tuple(self._order)

    @property
    def participant_count(self) -> int:
        return len(self._order)

    @property
    def distributed_count(self) -> int:
        """Participants paid out so far. Payouts run in participant order."""
        return self._distributed_count

    def pledged_amount(self, identity: str) -> int:
        """Pledged input units for `identity` (0 if it never pledged)."""
        record = self._records.get(identity)
        return record.pledged_amount if record else 0

    def has_participant(self, identity: str) -> bool:
        return identity in self._records

    def get_record(self, identity: str) -> ParticipantRecord:
        """
        Return the record for `identity`.

        Raises:
            UnknownParticipant: If `identity` never pledged
        """
        try:
            return self._records[identity]
        except KeyError:
            raise UnknownParticipant(f"{identity} has not pledged") from None

    def records(self) -> List[ParticipantRecord]:
        """All records in first-pledge order."""
        return [self._records[identity] for identity in self._order]

    def verify_totals(self) -> bool:
        """Recompute the pledge sum and compare it with the running total."""
        return sum(r.pledged_amount for r in self._records.values()) == self._total_pledged

    # ========================================================================
    # PLEDGING (Mutating)
    # ========================================================================

    def pledge(self, identity: str, amount: int) -> ParticipantRecord:
        """
        Record a pledge of `amount` input units from `identity`.

        The custody transfer runs first. Only once it succeeds is the record
        created or incremented, so the pledge is all-or-nothing.

        Args:
            identity: Participant handle (e.g. an address)
            amount: Positive integer number of input units

        Returns:
            The participant's updated record

        Raises:
            InvalidPhase: If the phase is not OPEN
            InvalidAmount: If amount is not a positive integer
            AssetTransferFailed: If the gateway refuses or errors
            ValueError: If identity is empty
        """
        self._phase.require(Phase.OPEN, "pledge")
        if not _is_positive_int(amount):
            raise InvalidAmount(f"pledge amount must be a positive integer, got {amount!r}")
        if not isinstance(identity, str) or not identity.strip():
            raise ValueError("identity cannot be empty")

        try:
            accepted = self._gateway.transfer_in(identity, amount)
        except AssetTransferFailed:
            raise
        except Exception as exc:
            raise AssetTransferFailed(f"transfer_in({identity}, {amount}) raised: {exc}") from exc
        if not accepted:
            raise AssetTransferFailed(f"transfer_in({identity}, {amount}) was rejected")

        record = self._records.get(identity)
        if record is None:
            record = ParticipantRecord(identity=identity, order_index=len(self._order))
            self._order.append(identity)
        record = replace(record, pledged_amount=record.pledged_amount + amount)
        self._records[identity] = record
        self._total_pledged += amount
        return record

    # ========================================================================
    # ALLOCATION WRITES (engine / distributor only)
    # ========================================================================

    def record_allocation(self, identity: str, output_allocation: int, refund_amount: int) -> ParticipantRecord:
        """
        Write a participant's allocation. Legal exactly once per participant.

        Raises:
            UnknownParticipant: If `identity` never pledged
            InvariantViolation: If the participant was already processed or
                                the amounts are negative
        """
        record = self.get_record(identity)
        if record.processed:
            raise InvariantViolation(f"{identity} already processed")
        if output_allocation < 0 or refund_amount < 0:
            raise InvariantViolation(
                f"negative allocation for {identity}: out={output_allocation}, refund={refund_amount}"
            )
        record = replace(
            record,
            output_allocation=output_allocation,
            refund_amount=refund_amount,
            processed=True,
        )
        self._records[identity] = record
        return record

    def mark_distributed(self, identity: str) -> ParticipantRecord:
        """Flag a processed participant as paid out."""
        record = self.get_record(identity)
        if not record.processed:
            raise InvariantViolation(f"{identity} paid before being processed")
        if record.distributed:
            raise InvariantViolation(f"{identity} already distributed")
        record = replace(record, distributed=True)
        self._records[identity] = record
        self._distributed_count += 1
        return record
