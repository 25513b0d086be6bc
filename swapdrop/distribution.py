"""
distribution.py - Paying out a closed airdrop

After complete(), each participant is owed its output allocation and its
input refund. The Distributor pays them through the airdrop's AssetGateway in
participant order, then applies the configured DustPolicy to the output units
floor rounding left over.

Payout progress lives on the airdrop (the ledger's distributed flags and the
airdrop's dust_swept flag), not on the Distributor, so any number of
Distributors over one airdrop resume the same payout run.
"""

from __future__ import annotations

from .airdrop import SwapAirdrop
from .core import (
    DustPolicy, Phase,
    AssetTransferFailed, InvariantViolation,
    _is_positive_int,
)


class Distributor:
    """
    Batch payout over a CLOSED airdrop.

    A failed transfer raises AssetTransferFailed and leaves the cursor on the
    failing participant, so the next call retries it.
    """

    def __init__(self, airdrop: SwapAirdrop):
        self.airdrop = airdrop

    @property
    def distributed_cursor(self) -> int:
        with self.airdrop.lock:
            return self.airdrop.ledger.distributed_count

    @property
    def is_complete(self) -> bool:
        with self.airdrop.lock:
            return self.airdrop.ledger.distributed_count == self.airdrop.ledger.participant_count

    @property
    def total_distributed_output(self) -> int:
        with self.airdrop.lock:
            return sum(r.output_allocation for r in self.airdrop.ledger.records() if r.distributed)

    @property
    def total_refunded_input(self) -> int:
        with self.airdrop.lock:
            return sum(r.refund_amount for r in self.airdrop.ledger.records() if r.distributed)

    def distribute_batch(self, max_count: int) -> int:
        """
        Pay up to `max_count` participants.

        Returns:
            Number of participants paid in this call

        Raises:
            InvalidPhase: If the airdrop is not CLOSED
            ValueError: If max_count is not a positive integer
            AssetTransferFailed: If the gateway refuses a payout
            InvariantViolation: If the participant at the cursor is already paid
        """
        airdrop = self.airdrop
        with airdrop.lock:
            airdrop.phase.require(Phase.CLOSED, "distribute_batch")
            if not _is_positive_int(max_count):
                raise ValueError(f"max_count must be a positive integer, got {max_count!r}")

            ledger = airdrop.ledger
            order = ledger.participant_order
            paid = 0
            while paid < max_count and ledger.distributed_count < len(order):
                record = ledger.get_record(order[ledger.distributed_count])
                if record.distributed:
                    raise InvariantViolation(f"{record.identity} already distributed")
                self._pay(record.identity, record.output_allocation, record.refund_amount)
                ledger.mark_distributed(record.identity)
                paid += 1
            if airdrop.verbose and paid:
                print(f"✓ [{airdrop.name}] distributed {paid}, "
                      f"cursor={ledger.distributed_count}/{len(order)}")
            return paid

    def sweep_dust(self) -> int:
        """
        Apply the dust policy once every participant is paid.

        Returns:
            Output units swept to the operator (0 for LEAVE_IN_POOL or no dust)

        Raises:
            InvalidPhase: If the airdrop is not CLOSED
            InvariantViolation: If payouts are incomplete or dust was already swept
            AssetTransferFailed: If the gateway refuses the sweep
        """
        airdrop = self.airdrop
        with airdrop.lock:
            airdrop.phase.require(Phase.CLOSED, "sweep_dust")
            if not self.is_complete:
                raise InvariantViolation("dust can only be swept after every participant is paid")
            if airdrop.dust_swept:
                raise InvariantViolation("dust already swept")
            dust = airdrop.rounding_dust
            if airdrop.config.dust_policy is DustPolicy.LEAVE_IN_POOL or dust == 0:
                airdrop.dust_swept = True
                return 0
            self._pay(airdrop.config.operator_wallet, dust, 0)
            airdrop.dust_swept = True
            if airdrop.verbose:
                print(f"✓ [{airdrop.name}] swept {dust} output dust to {airdrop.config.operator_wallet}")
            return dust

    def _pay(self, identity: str, output_amount: int, refund_amount: int) -> None:
        try:
            ok = self.airdrop.gateway.transfer_out(identity, output_amount, refund_amount)
        except Exception as exc:
            raise AssetTransferFailed(f"transfer_out({identity}) raised: {exc}") from exc
        if not ok:
            raise AssetTransferFailed(
                f"transfer_out({identity}, {output_amount}, {refund_amount}) was rejected"
            )
