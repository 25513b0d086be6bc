"""
phase.py - Airdrop phase state machine

    OPEN --start_allocating()--> ALLOCATING --complete()--> CLOSED

There are no other transitions and no state is entered twice.
The controller only gates; the side effects of a transition (freezing the
pledge ledger, fixing the scaling factors) are driven by SwapAirdrop.
"""

from __future__ import annotations
from typing import List, Tuple

from .core import Phase, InvalidPhase, AllocationIncomplete


class PhaseController:
    """Three-state lifecycle gating which airdrop operations are legal."""

    def __init__(self):
        self._phase = Phase.OPEN
        self._history: List[Phase] = [Phase.OPEN]

    @property
    def current_phase(self) -> Phase:
        return self._phase

    @property
    def history(self) -> Tuple[Phase, ...]:
        """Phases entered so far, oldest first."""
        return tuple(self._history)

    def require(self, phase: Phase, operation: str) -> None:
        """
        Assert the controller is in `phase`.

        Raises:
            InvalidPhase: If the current phase differs
        """
        if self._phase is not phase:
            raise InvalidPhase(operation, phase, self._phase)

    def start_allocating(self) -> None:
        """
        Move from OPEN to ALLOCATING.

        Raises:
            InvalidPhase: If not currently OPEN
        """
        self.require(Phase.OPEN, "start_allocating")
        self._enter(Phase.ALLOCATING)

    def complete(self, processed_cursor: int, participant_count: int) -> None:
        """
        Move from ALLOCATING to CLOSED.

        Args:
            processed_cursor: Number of participants already allocated
            participant_count: Number of participants frozen at start_allocating

        Raises:
            InvalidPhase: If not currently ALLOCATING
            AllocationIncomplete: If processed_cursor has not reached participant_count
        """
        self.require(Phase.ALLOCATING, "complete")
        if processed_cursor != participant_count:
            raise AllocationIncomplete(
                f"{processed_cursor} of {participant_count} participants processed"
            )
        self._enter(Phase.CLOSED)

    def _enter(self, phase: Phase) -> None:
        self._phase = phase
        self._history.append(phase)
