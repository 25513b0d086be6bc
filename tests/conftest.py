"""
conftest.py - Shared pytest fixtures for airdrop tests

Provides:
- Airdrops over a FakeGateway (core logic in isolation)
- Airdrops over a funded TokenLedger (end-to-end custody)
- Helpers to run an airdrop through a list of batch sizes
"""

import pytest
from typing import Dict, Iterable, List, Sequence, Tuple

from swapdrop import (
    SwapAirdrop, AirdropConfig, TokenLedger, Token, LedgerGateway,
)

from tests.fake_gateway import FakeGateway


INPUT = "TKA"
OUTPUT = "TKB"

# Eight participants, sum 120: requests 240 against a cap of 100
SCENARIO_C_PLEDGES = [10, 15, 20, 5, 30, 10, 10, 20]


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def make_airdrop(ratio: int = 2, cap: int = 1000, gateway=None, **config_kwargs) -> SwapAirdrop:
    """SwapAirdrop over a FakeGateway unless a gateway is given."""
    config = AirdropConfig(conversion_ratio=ratio, output_cap=cap, **config_kwargs)
    return SwapAirdrop(gateway or FakeGateway(), config)


def pledge_all(airdrop: SwapAirdrop, pledges: Sequence[int], prefix: str = "user") -> List[str]:
    """Pledge each amount from a distinct identity; returns identities in order."""
    identities = []
    for i, amount in enumerate(pledges, start=1):
        identity = f"{prefix}{i}"
        airdrop.pledge(identity, amount)
        identities.append(identity)
    return identities


def run_batches(airdrop: SwapAirdrop, batch_sizes: Iterable[int]) -> List[int]:
    """Start allocating and call process_batch once per size; returns counts processed."""
    airdrop.start_allocating()
    return [airdrop.process_batch(size) for size in batch_sizes]


def results(airdrop: SwapAirdrop) -> Dict[str, Tuple[int, int]]:
    """identity -> (output_allocation, refund_amount)."""
    return {
        r.identity: (r.output_allocation, r.refund_amount)
        for r in airdrop.allocation_report()
    }


def make_token_ledger(holders: Dict[str, int], output_funding: int) -> Tuple[TokenLedger, LedgerGateway]:
    """TokenLedger with TKA issued to holders and TKB funding the pool."""
    tokens = TokenLedger("chain", verbose=False)
    tokens.register_token(Token(INPUT, "Token A"))
    tokens.register_token(Token(OUTPUT, "Token B"))
    for holder, amount in holders.items():
        tokens.register_wallet(holder)
        tokens.issue(holder, INPUT, amount)
    gateway = LedgerGateway(tokens, input_token=INPUT, output_token=OUTPUT)
    if output_funding:
        tokens.issue(gateway.pool_wallet, OUTPUT, output_funding)
    return tokens, gateway


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def airdrop(fake_gateway):
    """Ratio 2, cap 1000 over a FakeGateway."""
    return make_airdrop(ratio=2, cap=1000, gateway=fake_gateway)


@pytest.fixture
def funded_chain():
    """Three holders with 500 TKA each; pool funded with 1000 TKB."""
    return make_token_ledger({"user1": 500, "user2": 500, "user3": 500}, output_funding=1000)
