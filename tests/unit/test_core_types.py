"""
Tests for core.py - configuration, records, snapshot and the allocation rule

Tests:
- AirdropConfig validation
- AllocationSnapshot aggregates (requested output, scaling flag)
- compute_allocation with and without scaling
- allocation_digest determinism
- Error hierarchy
"""

import pytest

from swapdrop import (
    AirdropConfig, AllocationSnapshot, ParticipantRecord, DustPolicy, Phase,
    AirdropError, InvalidPhase, InvalidAmount, AssetTransferFailed,
    AllocationIncomplete, NoOp, Unauthorized, InsufficientPoolFunding,
    UnknownParticipant, InvariantViolation,
    compute_allocation, allocation_digest,
)


# ============================================================================
# AirdropConfig Tests
# ============================================================================

class TestAirdropConfig:

    def test_valid_config(self):
        config = AirdropConfig(conversion_ratio=2, output_cap=1000)
        assert config.conversion_ratio == 2
        assert config.output_cap == 1000
        assert config.dust_policy is DustPolicy.LEAVE_IN_POOL
        assert config.require_funding is False

    @pytest.mark.parametrize("ratio", [0, -1, 1.5, True, "2", None])
    def test_rejects_bad_ratio(self, ratio):
        with pytest.raises(ValueError, match="conversion_ratio"):
            AirdropConfig(conversion_ratio=ratio, output_cap=100)

    @pytest.mark.parametrize("cap", [0, -100, 10.0, False])
    def test_rejects_bad_cap(self, cap):
        with pytest.raises(ValueError, match="output_cap"):
            AirdropConfig(conversion_ratio=2, output_cap=cap)

    def test_return_to_operator_requires_wallet(self):
        with pytest.raises(ValueError, match="operator_wallet"):
            AirdropConfig(conversion_ratio=2, output_cap=100, dust_policy=DustPolicy.RETURN_TO_OPERATOR)

    def test_config_is_frozen(self):
        config = AirdropConfig(conversion_ratio=2, output_cap=100)
        with pytest.raises(AttributeError):
            config.output_cap = 200


# ============================================================================
# AllocationSnapshot Tests
# ============================================================================

class TestAllocationSnapshot:

    def test_scaling_applies_when_requested_exceeds_cap(self):
        snap = AllocationSnapshot.build(["a", "b", "c"], 600, 2, 1000)
        assert snap.total_requested_output == 1200
        assert snap.scaling_applies is True
        assert snap.participant_count == 3

    def test_no_scaling_at_exactly_cap(self):
        snap = AllocationSnapshot.build(["a"], 500, 2, 1000)
        assert snap.total_requested_output == 1000
        assert snap.scaling_applies is False

    def test_empty_snapshot(self):
        snap = AllocationSnapshot.build([], 0, 2, 1000)
        assert snap.participant_order == ()
        assert snap.scaling_applies is False

    def test_order_is_tuple(self):
        order = ["a", "b"]
        snap = AllocationSnapshot.build(order, 10, 1, 100)
        order.append("c")
        assert snap.participant_order == ("a", "b")


# ============================================================================
# compute_allocation Tests
# ============================================================================

class TestComputeAllocation:

    def test_no_scaling_full_conversion(self):
        snap = AllocationSnapshot.build(["a", "b"], 300, 2, 1000)
        assert compute_allocation(100, snap) == (200, 0)
        assert compute_allocation(200, snap) == (400, 0)

    def test_single_participant_scaled(self):
        """Pledge 300 at ratio 2 against cap 100."""
        snap = AllocationSnapshot.build(["a"], 300, 2, 100)
        assert compute_allocation(300, snap) == (100, 250)

    def test_three_participants_scaled(self):
        snap = AllocationSnapshot.build(["a", "b", "c"], 600, 2, 1000)
        # 100*2*1000/1200 = 166.67 -> 166; refund 100 - 83 = 17
        assert compute_allocation(100, snap) == (166, 17)
        # 200*2*1000/1200 = 333.33 -> 333; refund 200 - 166 = 34
        assert compute_allocation(200, snap) == (333, 34)
        assert compute_allocation(300, snap) == (500, 50)

    def test_zero_pledge(self):
        snap = AllocationSnapshot.build(["a"], 300, 2, 100)
        assert compute_allocation(0, snap) == (0, 0)

    def test_negative_pledge_rejected(self):
        snap = AllocationSnapshot.build(["a"], 300, 2, 100)
        with pytest.raises(ValueError):
            compute_allocation(-1, snap)

    def test_rounding_slack_bound(self):
        """output + refund*ratio is within ratio-1 above pledged*ratio."""
        snap = AllocationSnapshot.build(["a"], 997, 7, 1000)
        for pledged in range(1, 200):
            output, refund = compute_allocation(pledged, snap)
            excess = output + refund * 7 - pledged * 7
            assert 0 <= excess <= 6


# ============================================================================
# allocation_digest Tests
# ============================================================================

class TestAllocationDigest:

    def test_digest_ignores_input_order(self):
        a = ParticipantRecord("alice", 0, 10, 20, 0, True)
        b = ParticipantRecord("bob", 1, 5, 10, 0, True)
        assert allocation_digest([a, b]) == allocation_digest([b, a])

    def test_digest_changes_with_results(self):
        a = ParticipantRecord("alice", 0, 10, 20, 0, True)
        a2 = ParticipantRecord("alice", 0, 10, 19, 1, True)
        assert allocation_digest([a]) != allocation_digest([a2])

    def test_digest_length(self):
        assert len(allocation_digest([])) == 16


# ============================================================================
# Exceptions
# ============================================================================

class TestErrors:

    @pytest.mark.parametrize("exc_type", [
        InvalidPhase, InvalidAmount, AssetTransferFailed, AllocationIncomplete,
        NoOp, Unauthorized, InsufficientPoolFunding, UnknownParticipant, InvariantViolation,
    ])
    def test_all_errors_share_base(self, exc_type):
        assert issubclass(exc_type, AirdropError)

    def test_invalid_phase_carries_phases(self):
        err = InvalidPhase("pledge", Phase.OPEN, Phase.ALLOCATING)
        assert err.operation == "pledge"
        assert err.expected is Phase.OPEN
        assert err.actual is Phase.ALLOCATING
        assert "ALLOCATING" in str(err)

    def test_phase_values_match_contract(self):
        assert [p.value for p in Phase] == [0, 1, 2]
