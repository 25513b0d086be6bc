"""
swapdrop - Token-swap airdrop allocator

Participants pledge an input token while the airdrop is OPEN; the operator
then freezes pledging and computes, in bounded batches, each participant's
output-token allocation under a fixed conversion ratio and a global cap,
refunding the input the cap could not convert.

Usage:
    from swapdrop import (
        SwapAirdrop, AirdropConfig, TokenLedger, Token, LedgerGateway, Distributor,
    )

    tokens = TokenLedger("chain")
    tokens.register_token(Token("TKA", "Token A"))
    tokens.register_token(Token("TKB", "Token B"))
    tokens.register_wallet("alice")
    tokens.issue("alice", "TKA", 500)

    gateway = LedgerGateway(tokens, input_token="TKA", output_token="TKB")
    tokens.issue(gateway.pool_wallet, "TKB", 100)

    airdrop = SwapAirdrop(gateway, AirdropConfig(conversion_ratio=2, output_cap=100))
    airdrop.pledge("alice", 300)
    airdrop.start_allocating()
    airdrop.process_batch(10)
    airdrop.complete()

    Distributor(airdrop).distribute_batch(10)
    # alice: 100 TKB paid out, 250 TKA refunded
"""

# Core types
from .core import (
    Phase,
    AssetKind,
    DustPolicy,
    AirdropConfig,
    ParticipantRecord,
    AllocationSnapshot,
    AssetGateway,
    Authorizer,
    AirdropError,
    InvalidPhase,
    InvalidAmount,
    AssetTransferFailed,
    AllocationIncomplete,
    NoOp,
    Unauthorized,
    InsufficientPoolFunding,
    UnknownParticipant,
    InvariantViolation,
    compute_allocation,
    allocation_digest,
    SYSTEM_WALLET,
    POOL_WALLET,
    DEFAULT_BATCH_SIZE,
)

# Components
from .phase import PhaseController
from .pledge_ledger import PledgeLedger
from .engine import AllocationEngine, preview

# Operator surface
from .airdrop import SwapAirdrop, OperationRecord, OperatorAllowlist
from .distribution import Distributor

# Custody
from .token_ledger import (
    TokenLedger,
    TokenLedgerError,
    Token,
    Move,
    TransferRecord,
    ExecuteResult,
)
from .gateway import LedgerGateway


__all__ = [
    # Core
    'Phase', 'AssetKind', 'DustPolicy',
    'AirdropConfig', 'ParticipantRecord', 'AllocationSnapshot',
    'AssetGateway', 'Authorizer',
    'AirdropError', 'InvalidPhase', 'InvalidAmount', 'AssetTransferFailed',
    'AllocationIncomplete', 'NoOp', 'Unauthorized', 'InsufficientPoolFunding',
    'UnknownParticipant', 'InvariantViolation',
    'compute_allocation', 'allocation_digest',
    'SYSTEM_WALLET', 'POOL_WALLET', 'DEFAULT_BATCH_SIZE',
    # Components
    'PhaseController', 'PledgeLedger', 'AllocationEngine', 'preview',
    # Operator surface
    'SwapAirdrop', 'OperationRecord', 'OperatorAllowlist', 'Distributor',
    # Custody
    'TokenLedger', 'TokenLedgerError', 'Token', 'Move', 'TransferRecord',
    'ExecuteResult', 'LedgerGateway',
]
