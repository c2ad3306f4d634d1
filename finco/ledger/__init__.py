"""Ledger state transitions and the session seed."""

from finco.ledger.reducers import (
    add_goal,
    add_transaction,
    apply,
    connect_wallet,
    delete_transaction,
    disconnect_wallet,
    mark_bill_paid,
    p2p_transfer,
    provenance_hash,
    stake_to_goal,
    update_budget,
    update_income,
    vault_transfer,
)
from finco.ledger.seed import SEED_BALANCE, initial_ledger

__all__ = [
    "SEED_BALANCE",
    "add_goal",
    "add_transaction",
    "apply",
    "connect_wallet",
    "delete_transaction",
    "disconnect_wallet",
    "initial_ledger",
    "mark_bill_paid",
    "p2p_transfer",
    "provenance_hash",
    "stake_to_goal",
    "update_budget",
    "update_income",
    "vault_transfer",
]
