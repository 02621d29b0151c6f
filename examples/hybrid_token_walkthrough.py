"""
Example: Life of a hybrid token.

Walks a freshly deployed token through fractional transfers, piece banking
and reuse, a specific-piece sale through approval, a whitelisted custody
account, and a bridge-style burn, printing balances and pieces at each step.
"""

from hybridledger import (
    create_hybrid_token, from_sub_units, to_sub_units,
    PieceTransfer, SINK_ADDRESS, BURNER_ROLE,
)


def show(token, *accounts):
    for account in accounts:
        balance = from_sub_units(token.fungible_balance_of(account), token.decimals)
        owned = token.owned(account)
        tag = " (whitelisted)" if token.is_whitelisted(account) else ""
        print(f"  {account:<10} {balance.normalize():>8f} {token.symbol}  pieces={list(owned)}{tag}")
    print(f"  bank={list(token.banked_pieces())}  minted={token.minted_count()}")
    print()


def announce_new_piece(event):
    if isinstance(event, PieceTransfer) and event.sender == SINK_ADDRESS:
        print(f"    piece {event.piece_id} -> {event.recipient}")


def main():
    print("=" * 80)
    print("HYBRID TOKEN - Fungible balances with derived pieces")
    print("=" * 80)
    print()

    token = create_hybrid_token("Example", "EXM", 100, "deployer", verbose=True)
    token.subscribe(announce_new_piece)
    print()

    print("Step 1: Deployer (whitelisted) funds alice and bob")
    print("-" * 80)
    token.transfer("deployer", "alice", to_sub_units("99.1"))
    token.transfer("deployer", "bob", to_sub_units("0.9"))
    show(token, "deployer", "alice", "bob")

    print("Step 2: alice sends 3.2 to bob; both cross whole-unit boundaries")
    print("-" * 80)
    token.transfer("alice", "bob", to_sub_units("3.2"))
    show(token, "alice", "bob")

    print("Step 3: A fractional transfer banks a piece without assigning one")
    print("-" * 80)
    token.transfer("alice", "carol", to_sub_units("0.5"))
    show(token, "alice", "carol")

    print("Step 4: alice sells piece 7 through a marketplace approval")
    print("-" * 80)
    token.approve("alice", "market", 7)
    token.transfer_from("market", "alice", "carol", 7)
    show(token, "alice", "carol")

    print("Step 5: bob stakes into a whitelisted custody account")
    print("-" * 80)
    token.set_whitelist("deployer", "staking", True)
    token.transfer("bob", "staking", to_sub_units(2))
    show(token, "bob", "staking")

    print("Step 6: A bridge burns 1.5 of carol's balance through an allowance")
    print("-" * 80)
    token.gate.grant_role("deployer", BURNER_ROLE, "bridge")
    token.approve("carol", "bridge", to_sub_units("1.5"))
    token.burn_from("bridge", "carol", to_sub_units("1.5"))
    show(token, "carol")

    result = token.verify_invariants()
    print(f"Invariants valid: {result['valid']}")
    print(f"Total supply: {from_sub_units(result['total_supply']).normalize():f} {token.symbol}")
    print(f"Events logged: {len(token.events)}")


if __name__ == "__main__":
    main()
