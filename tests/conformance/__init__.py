"""
Conformance Test Suite

This suite defines the NORMATIVE behavior of the airdrop allocator.
Any compliant implementation MUST pass these tests.

The tests are organized by invariant:
1. conservation.py - Cap respected, exact pledge and refund accounting
2. atomicity.py - Failed operations leave no partial state
3. determinism.py - Results independent of batch boundaries
4. serialization.py - Concurrent callers never observe interleaved effects

These tests use hypothesis for property-based testing.
"""
