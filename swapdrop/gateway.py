"""
gateway.py - AssetGateway backed by a TokenLedger

LedgerGateway moves the input and output tokens of one airdrop between
participant wallets and a single pool wallet held in a TokenLedger.
"""

from __future__ import annotations
from typing import List

from .core import AssetKind, POOL_WALLET
from .token_ledger import TokenLedger, Move, ExecuteResult


class LedgerGateway:
    """
    Custody of one input token and one output token in a TokenLedger.

    Every method reports success as a bool, matching the AssetGateway
    protocol; rejected transfers leave balances untouched.

    Example:
        tokens = TokenLedger("chain")
        tokens.register_token(Token("TKA", "Token A"))
        tokens.register_token(Token("TKB", "Token B"))
        gateway = LedgerGateway(tokens, input_token="TKA", output_token="TKB")
        gateway.fund_output("treasury", 1000)
    """

    def __init__(
        self,
        tokens: TokenLedger,
        input_token: str,
        output_token: str,
        pool_wallet: str = POOL_WALLET,
    ):
        if input_token == output_token:
            raise ValueError("input_token and output_token must differ")
        for symbol in (input_token, output_token):
            if symbol not in tokens.tokens:
                raise ValueError(f"token {symbol} not registered in {tokens.name}")
        self.tokens = tokens
        self.input_token = input_token
        self.output_token = output_token
        self.pool_wallet = pool_wallet
        if not tokens.is_registered(pool_wallet):
            tokens.register_wallet(pool_wallet)

    def symbol_for(self, asset_kind: AssetKind) -> str:
        return self.input_token if asset_kind is AssetKind.INPUT else self.output_token

    def transfer_in(self, identity: str, amount: int) -> bool:
        move = Move(amount, self.input_token, identity, self.pool_wallet, f"pledge:{identity}")
        return self.tokens.execute([move], f"pledge:{identity}") is ExecuteResult.APPLIED

    def transfer_out(self, identity: str, output_amount: int, refund_amount: int) -> bool:
        moves: List[Move] = []
        if output_amount:
            moves.append(Move(output_amount, self.output_token, self.pool_wallet, identity, f"payout:{identity}"))
        if refund_amount:
            moves.append(Move(refund_amount, self.input_token, self.pool_wallet, identity, f"refund:{identity}"))
        return self.tokens.execute(moves, f"distribution:{identity}") is ExecuteResult.APPLIED

    def pool_balance(self, asset_kind: AssetKind) -> int:
        return self.tokens.get_balance(self.pool_wallet, self.symbol_for(asset_kind))

    def fund_output(self, source: str, amount: int) -> bool:
        """Move `amount` of output token from `source` into the pool."""
        move = Move(amount, self.output_token, source, self.pool_wallet, f"funding:{source}")
        return self.tokens.execute([move], f"funding:{source}") is ExecuteResult.APPLIED
