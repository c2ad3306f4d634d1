"""
Ledger Reducers

Every change to the ledger goes through one of the functions below.
Each takes the current LedgerState plus the event payload and returns a
NEW LedgerState. Nothing is mutated in place.

GUARANTEES:
- Balance and transaction list always change together, in one new value
- Every balance change prepends or removes exactly one Transaction,
  so LedgerState.is_reconciled holds after every call
- fin_tokens never decreases
- Unknown ids are a no-op: the same state object is returned

Input is assumed to be validated already (see LedgerValidator).
Reducers never raise for well-typed input.
"""

import secrets
from datetime import date
from decimal import Decimal
from typing import Callable, Optional

from finco.models.events import LedgerEvent
from finco.models.ledger import (
    BlockStatus,
    Category,
    Goal,
    LedgerState,
    PaymentMethod,
    Transaction,
    TransactionDraft,
    TransactionType,
    VaultDirection,
    new_id,
)


# Reward schedule
TRANSACTION_LOGGED_REWARD = 10
BILL_PAID_REWARD = 50
P2P_TRANSFER_REWARD = 25
STAKE_REWARD_UNIT = Decimal("100")  # 1 token per 100 staked

WALLET_HASH_LENGTH = 64
TRANSFER_HASH_LENGTH = 40

SIMULATED_WALLET_ADDRESS = "0x71C7656EC7ab88b098defB751B7401B5f6d89A21"


def provenance_hash(length: int = WALLET_HASH_LENGTH) -> str:
    """Cosmetic pseudo-random transaction hash: '0x' followed by `length` hex digits."""
    return "0x" + secrets.token_hex(length // 2)


def _wallet_provenance(state: LedgerState) -> dict:
    """Provenance fields for operations that are only 'on-chain' with a wallet connected."""
    if not state.wallet_connected:
        return {"tx_hash": None, "block_status": None}
    return {
        "tx_hash": provenance_hash(WALLET_HASH_LENGTH),
        "block_status": BlockStatus.VERIFIED,
    }


def _contract_provenance(length: int) -> dict:
    """Provenance fields for contract-style operations, attached regardless of wallet state."""
    return {
        "tx_hash": provenance_hash(length),
        "block_status": BlockStatus.VERIFIED,
    }


def _prepend(
    state: LedgerState,
    transaction: Transaction,
    tokens_awarded: int = 0,
    **changes,
) -> LedgerState:
    """Apply a new transaction's balance effect and put it at the head of the ledger."""
    return state.model_copy(update={
        "current_balance": state.current_balance + transaction.signed_amount,
        "transactions": (transaction,) + state.transactions,
        "fin_tokens": state.fin_tokens + tokens_awarded,
        **changes,
    })


def add_transaction(
    state: LedgerState,
    draft: TransactionDraft,
    on: Optional[date] = None,
) -> LedgerState:
    """Log a transaction typed (or dictated) by the user. Awards a flat reward."""
    fields = draft.resolved()
    transaction = Transaction(
        id=new_id(),
        date=on or date.today(),
        **fields,
        **_wallet_provenance(state),
    )
    return _prepend(state, transaction, TRANSACTION_LOGGED_REWARD)


def delete_transaction(state: LedgerState, transaction_id: str) -> LedgerState:
    """Remove a transaction and undo exactly the balance change it made."""
    transaction = state.find_transaction(transaction_id)
    if transaction is None:
        return state

    return state.model_copy(update={
        "current_balance": state.current_balance - transaction.signed_amount,
        "transactions": tuple(t for t in state.transactions if t.id != transaction_id),
    })


def mark_bill_paid(
    state: LedgerState,
    bill_id: str,
    on: Optional[date] = None,
) -> LedgerState:
    """Pay an unpaid bill from the wallet. Paying twice changes nothing."""
    bill = state.find_bill(bill_id)
    if bill is None or bill.is_paid:
        return state

    payment = Transaction(
        id=new_id(),
        date=on or date.today(),
        merchant=bill.name,
        amount=bill.amount,
        category=Category.BILLS,
        type=TransactionType.DEBIT,
        method=PaymentMethod.UPI,
        **_wallet_provenance(state),
    )
    bills = tuple(
        b.model_copy(update={"is_paid": True}) if b.id == bill_id else b
        for b in state.bills
    )
    return _prepend(state, payment, BILL_PAID_REWARD, bills=bills)


def add_goal(state: LedgerState, goal: Goal) -> LedgerState:
    return state.model_copy(update={"goals": state.goals + (goal,)})


def stake_to_goal(
    state: LedgerState,
    goal_id: str,
    amount: Decimal,
    on: Optional[date] = None,
) -> LedgerState:
    """
    Lock wallet funds into a goal's simulated smart contract.

    Rewards 1 token per 100 staked (rounded down).
    """
    if state.find_goal(goal_id) is None:
        return state

    deposit = Transaction(
        id=new_id(),
        date=on or date.today(),
        merchant="Smart Contract Deposit",
        amount=amount,
        category=Category.TRANSFER,
        type=TransactionType.DEBIT,
        method=PaymentMethod.CRYPTO,
        **_contract_provenance(WALLET_HASH_LENGTH),
    )
    goals = tuple(
        g.model_copy(update={"current_amount": g.current_amount + amount})
        if g.id == goal_id else g
        for g in state.goals
    )
    tokens = int(amount // STAKE_REWARD_UNIT)
    return _prepend(state, deposit, tokens, goals=goals)


def update_income(state: LedgerState, monthly_income: Decimal) -> LedgerState:
    return state.model_copy(update={"monthly_income": monthly_income})


def update_budget(state: LedgerState, category: str, limit: Decimal) -> LedgerState:
    return state.model_copy(update={"budgets": {**state.budgets, category: limit}})


def p2p_transfer(
    state: LedgerState,
    recipient: str,
    amount: Decimal,
    on: Optional[date] = None,
) -> LedgerState:
    transfer = Transaction(
        id=new_id(),
        date=on or date.today(),
        merchant=f"Transfer to {recipient}",
        amount=amount,
        category=Category.TRANSFER,
        type=TransactionType.DEBIT,
        method=PaymentMethod.CRYPTO,
        **_contract_provenance(TRANSFER_HASH_LENGTH),
    )
    return _prepend(state, transfer, P2P_TRANSFER_REWARD)


def vault_transfer(
    state: LedgerState,
    amount: Decimal,
    direction: VaultDirection,
    on: Optional[date] = None,
) -> LedgerState:
    """
    Move funds between the wallet and the vault.

    A deposit is a debit on the wallet, a withdrawal a credit. No reward.
    """
    if direction == VaultDirection.DEPOSIT:
        merchant = "FinVault Deposit"
        tx_type = TransactionType.DEBIT
        vault_balance = state.vault_balance + amount
    else:
        merchant = "FinVault Withdrawal"
        tx_type = TransactionType.CREDIT
        vault_balance = state.vault_balance - amount

    movement = Transaction(
        id=new_id(),
        date=on or date.today(),
        merchant=merchant,
        amount=amount,
        category=Category.TRANSFER,
        type=tx_type,
        method=PaymentMethod.CRYPTO,
        **_contract_provenance(TRANSFER_HASH_LENGTH),
    )
    return _prepend(state, movement, vault_balance=vault_balance)


def connect_wallet(state: LedgerState, address: Optional[str] = None) -> LedgerState:
    return state.model_copy(update={"wallet_address": address or SIMULATED_WALLET_ADDRESS})


def disconnect_wallet(state: LedgerState) -> LedgerState:
    if not state.wallet_connected:
        return state
    return state.model_copy(update={"wallet_address": None})


# =============================================================================
# EVENT DISPATCH
# =============================================================================

_DISPATCH: dict[str, Callable] = {
    "add_transaction": lambda s, e: add_transaction(s, e.draft, e.occurred_on),
    "delete_transaction": lambda s, e: delete_transaction(s, e.transaction_id),
    "mark_bill_paid": lambda s, e: mark_bill_paid(s, e.bill_id, e.occurred_on),
    "add_goal": lambda s, e: add_goal(s, e.goal),
    "stake_to_goal": lambda s, e: stake_to_goal(s, e.goal_id, e.amount, e.occurred_on),
    "update_income": lambda s, e: update_income(s, e.monthly_income),
    "update_budget": lambda s, e: update_budget(s, e.category, e.limit),
    "p2p_transfer": lambda s, e: p2p_transfer(s, e.recipient, e.amount, e.occurred_on),
    "vault_transfer": lambda s, e: vault_transfer(s, e.amount, e.direction, e.occurred_on),
    "connect_wallet": lambda s, e: connect_wallet(s, e.address),
    "disconnect_wallet": lambda s, e: disconnect_wallet(s),
}


def apply(
    state: LedgerState,
    event: LedgerEvent,
) -> LedgerState:
    """Run the reducer for one event and return the resulting state."""
    try:
        reducer = _DISPATCH[event.kind]
    except KeyError:
        raise ValueError(f"Unknown ledger event: {event.kind!r}") from None
    return reducer(state, event)
