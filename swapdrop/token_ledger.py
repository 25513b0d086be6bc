"""
token_ledger.py - In-process integer token custody

A small double-entry ledger holding integer token balances per wallet. It
backs LedgerGateway, the stock AssetGateway, so an airdrop can run end to end
without an external chain.

Key responsibilities:
    - Executes a list of moves atomically (all moves succeed or none do)
    - Rejects any move that would take a non-system wallet below zero
    - Issues new tokens from SYSTEM_WALLET, which may go negative
    - Always logs: every applied transfer is kept in transaction_log
"""

from __future__ import annotations
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Set, Tuple

from .core import SYSTEM_WALLET, AirdropError, _is_positive_int


class TokenLedgerError(AirdropError):
    """Raised for registration and lookup errors in the token ledger."""
    pass


class ExecuteResult(Enum):
    """
    Outcome of a transfer attempt.

    APPLIED: every move was validated and applied.
    REJECTED: validation failed; no move was applied.
    """
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class Token:
    """A fungible token. Quantities are integers in base units."""
    symbol: str
    name: str
    decimals: int = 18


@dataclass(frozen=True, slots=True)
class Move:
    """
    A single transfer of a token between two wallets.

    Attributes:
        quantity: Positive integer amount in base units.
        token: Symbol of the token moved.
        source: Wallet debited.
        dest: Wallet credited.
        reference: Free-form tag describing why the move happened.
    """
    quantity: int
    token: str
    source: str
    dest: str
    reference: str

    def __post_init__(self):
        if not _is_positive_int(self.quantity):
            raise ValueError(f"Move quantity must be a positive integer, got {self.quantity!r}")
        for field_name in ("token", "source", "dest", "reference"):
            value = getattr(self, field_name)
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"Move {field_name} must be a non-empty string, got {value!r}")
        if self.source == self.dest:
            raise ValueError("Source and dest must be different")

    def __repr__(self) -> str:
        return f"Move({self.quantity} {self.token}: {self.source}→{self.dest})"


@dataclass(frozen=True, slots=True)
class TransferRecord:
    """An executed, immutable transfer. Sequence numbers are monotonic per ledger."""
    moves: Tuple[Move, ...]
    sequence: int
    reference: str


class TokenLedger:
    """
    Integer-balance token ledger with all-or-nothing execution.

    Thread Safety:
        Not thread-safe. Callers serialize access (SwapAirdrop holds a lock).

    Example:
        tokens = TokenLedger("chain")
        tokens.register_token(Token("TKA", "Token A"))
        tokens.register_wallet("alice")
        tokens.issue("alice", "TKA", 500)
        tokens.execute([Move(100, "TKA", "alice", "bob", "pay")], "pay")  # REJECTED: bob unknown
    """

    def __init__(self, name: str, verbose: bool = False):
        self.name = name
        self.verbose = verbose
        self.tokens: Dict[str, Token] = {}
        self.registered_wallets: Set[str] = {SYSTEM_WALLET}
        self.balances: Dict[str, Dict[str, int]] = {SYSTEM_WALLET: defaultdict(int)}
        self.transaction_log: List[TransferRecord] = []
        self._next_sequence: int = 0

    # ========================================================================
    # QUERIES
    # ========================================================================

    def get_balance(self, wallet_id: str, symbol: str) -> int:
        """
        Raises:
            TokenLedgerError: If the wallet or token is not registered
        """
        if wallet_id not in self.registered_wallets:
            raise TokenLedgerError(f"Wallet {wallet_id} not registered")
        if symbol not in self.tokens:
            raise TokenLedgerError(f"Token {symbol} not registered")
        return self.balances[wallet_id].get(symbol, 0)

    def total_supply(self, symbol: str) -> int:
        """Tokens in circulation, i.e. held by every wallet except the issuer."""
        if symbol not in self.tokens:
            raise TokenLedgerError(f"Token {symbol} not registered")
        return sum(
            self.balances[w].get(symbol, 0)
            for w in sorted(self.registered_wallets) if w != SYSTEM_WALLET
        )

    def verify_conservation(self) -> Dict[str, int]:
        """
        Check that every token nets to zero across all wallets, issuer included.

        Returns:
            Dict of token symbol -> net imbalance, containing only violations
            (empty when the ledger is consistent)
        """
        violations = {}
        for symbol in sorted(self.tokens):
            net = sum(self.balances[w].get(symbol, 0) for w in self.registered_wallets)
            if net != 0:
                violations[symbol] = net
        return violations

    def is_registered(self, wallet_id: str) -> bool:
        return wallet_id in self.registered_wallets

    # ========================================================================
    # REGISTRATION (Mutating)
    # ========================================================================

    def register_token(self, token: Token) -> None:
        if token.symbol in self.tokens:
            raise TokenLedgerError(f"Token {token.symbol} already registered")
        self.tokens[token.symbol] = token
        if self.verbose:
            print(f"📝 Registered token: {token.symbol} ({token.name})")

    def register_wallet(self, wallet_id: str) -> str:
        if wallet_id in self.registered_wallets:
            raise TokenLedgerError(f"Wallet {wallet_id} already registered")
        self.registered_wallets.add(wallet_id)
        self.balances[wallet_id] = defaultdict(int)
        return wallet_id

    # ========================================================================
    # EXECUTION (Mutating)
    # ========================================================================

    def execute(self, moves: Sequence[Move], reference: str) -> ExecuteResult:
        """
        Apply `moves` atomically.

        Returns:
            ExecuteResult.APPLIED if every move was applied,
            ExecuteResult.REJECTED (with no change) otherwise
        """
        if not moves:
            return ExecuteResult.APPLIED

        valid, reason = self._validate(moves)
        if not valid:
            if self.verbose:
                print(f"✗ REJECTED [{reference}]: {reason}")
            return ExecuteResult.REJECTED

        for move in moves:
            self.balances[move.source][move.token] -= move.quantity
            self.balances[move.dest][move.token] += move.quantity

        record = TransferRecord(moves=tuple(moves), sequence=self._next_sequence, reference=reference)
        self._next_sequence += 1
        self.transaction_log.append(record)
        if self.verbose:
            print(f"✓ APPLIED [{reference}] #{record.sequence}: {', '.join(map(repr, moves))}")
        return ExecuteResult.APPLIED

    def issue(self, wallet_id: str, symbol: str, quantity: int) -> ExecuteResult:
        """Mint `quantity` of `symbol` into `wallet_id` from the system wallet."""
        return self.execute([Move(quantity, symbol, SYSTEM_WALLET, wallet_id, "issuance")], "issuance")

    def _validate(self, moves: Sequence[Move]) -> Tuple[bool, str]:
        for move in moves:
            if move.token not in self.tokens:
                return False, f"token not registered: {move.token}"
            if move.source not in self.registered_wallets:
                return False, f"wallet not registered: {move.source}"
            if move.dest not in self.registered_wallets:
                return False, f"wallet not registered: {move.dest}"

        # Net the moves first so a chain through one wallet is judged as a whole
        net: Dict[Tuple[str, str], int] = defaultdict(int)
        for move in moves:
            net[(move.source, move.token)] -= move.quantity
            net[(move.dest, move.token)] += move.quantity

        for (wallet, symbol), delta in sorted(net.items()):
            if wallet == SYSTEM_WALLET:
                continue
            proposed = self.balances[wallet].get(symbol, 0) + delta
            if proposed < 0:
                return False, f"{wallet} {symbol}: {proposed} < 0"
        return True, ""

    # ========================================================================
    # LEDGER OPERATIONS
    # ========================================================================

    def clone(self) -> TokenLedger:
        """Deep copy; the clone and the original evolve independently."""
        cloned = TokenLedger(self.name, verbose=self.verbose)
        cloned.tokens = dict(self.tokens)
        cloned.registered_wallets = set(self.registered_wallets)
        cloned.balances = {
            wallet: defaultdict(int, bals) for wallet, bals in self.balances.items()
        }
        cloned.transaction_log = list(self.transaction_log)
        cloned._next_sequence = self._next_sequence
        return cloned

    def transfers_for(self, wallet_id: str, symbol: Optional[str] = None) -> List[TransferRecord]:
        """Logged transfers touching `wallet_id` (optionally only for `symbol`)."""
        return [
            tx for tx in self.transaction_log
            if any(
                (m.source == wallet_id or m.dest == wallet_id) and (symbol is None or m.token == symbol)
                for m in tx.moves
            )
        ]
