"""
Example: A capped token-swap airdrop, end to end.

Eight participants pledge Token A. The airdrop converts at 2 Token B per
Token A but only 100 Token B are on offer, so every allocation is scaled
down and the unconverted Token A is refunded. Allocations are computed in two
batches of four, then paid out, and the rounding dust is returned to the
operator.
"""

from swapdrop import (
    SwapAirdrop, AirdropConfig, DustPolicy, OperatorAllowlist,
    TokenLedger, Token, LedgerGateway, Distributor,
)

PLEDGES = [10, 15, 20, 5, 30, 10, 10, 20]


def main():
    print("=" * 80)
    print("SWAP AIRDROP - Pledge, allocate in batches, distribute")
    print("=" * 80)
    print()

    tokens = TokenLedger("chain", verbose=True)
    tokens.register_token(Token("TKA", "Token A"))
    tokens.register_token(Token("TKB", "Token B"))
    tokens.register_wallet("owner")
    participants = [f"addr{i}" for i in range(1, len(PLEDGES) + 1)]
    for address in participants:
        tokens.register_wallet(address)
        tokens.issue(address, "TKA", 50)

    gateway = LedgerGateway(tokens, input_token="TKA", output_token="TKB")
    tokens.issue("owner", "TKB", 100)
    gateway.fund_output("owner", 100)

    config = AirdropConfig(
        conversion_ratio=2,
        output_cap=100,
        dust_policy=DustPolicy.RETURN_TO_OPERATOR,
        require_funding=True,
        operator_wallet="owner",
    )
    airdrop = SwapAirdrop(
        gateway, config,
        authorizer=OperatorAllowlist(["owner"]),
        name="tka-tkb",
        verbose=True,
    )

    print()
    print("Pledging")
    print("-" * 80)
    for address, amount in zip(participants, PLEDGES):
        airdrop.pledge(address, amount)
    print(f"Total pledged: {airdrop.total_pledged} TKA "
          f"(requests {airdrop.total_requested_output} TKB against a cap of {config.output_cap})")

    print()
    print("Allocating in two batches of four")
    print("-" * 80)
    airdrop.start_allocating(caller="owner")
    airdrop.process_batch(4, caller="owner")
    airdrop.process_batch(4, caller="owner")
    airdrop.complete(caller="owner")

    print()
    print(f"{'participant':<12}{'pledged':>10}{'TKB out':>10}{'TKA refund':>12}")
    for record in airdrop.allocation_report():
        print(f"{record.identity:<12}{record.pledged_amount:>10}"
              f"{record.output_allocation:>10}{record.refund_amount:>12}")
    print(f"Allocated {airdrop.total_output_allocated} TKB, dust {airdrop.rounding_dust}")
    print(f"Result digest: {airdrop.allocation_digest()}")

    print()
    print("Distributing")
    print("-" * 80)
    distributor = Distributor(airdrop)
    while distributor.distribute_batch(3):
        pass
    swept = distributor.sweep_dust()
    print(f"Swept {swept} TKB to owner")

    problems = tokens.verify_conservation()
    print()
    print(f"Conservation check: {'OK' if not problems else problems}")


if __name__ == "__main__":
    main()
