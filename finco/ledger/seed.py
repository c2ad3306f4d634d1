"""
Session seed.

There is no persistence: every session starts from this fixed ledger.
The seed balance (24,500) already includes the historical transactions
below, so opening_balance is back-computed from them.
"""

from datetime import date
from decimal import Decimal

from finco.models.ledger import (
    Bill,
    BlockStatus,
    Category,
    Goal,
    LedgerState,
    PaymentMethod,
    Transaction,
    TransactionType,
)


SEED_BALANCE = Decimal("24500")

_DEBIT = TransactionType.DEBIT
_CREDIT = TransactionType.CREDIT

# (id, date, merchant, amount, category, type, method, tx_hash), newest first
_SEED_TRANSACTIONS = [
    ("1", "2023-10-25", "Swiggy", 450, Category.FOOD, _DEBIT, PaymentMethod.UPI, "0x71c...9a21"),
    ("2", "2023-10-24", "Uber", 320, Category.TRANSPORT, _DEBIT, PaymentMethod.UPI, "0x32a...b119"),
    ("10", "2023-10-24", "Chai Point", 150, Category.FOOD, _DEBIT, PaymentMethod.UPI, "0x99c...d442"),
    ("3", "2023-10-24", "Netflix", 649, Category.ENTERTAINMENT, _DEBIT, PaymentMethod.CARD, "0x11f...a223"),
    ("11", "2023-10-23", "Blinkit", 280, Category.SHOPPING, _DEBIT, PaymentMethod.UPI, "0x88e...c331"),
    ("4", "2023-10-22", "Salary Credit", 85000, Category.SALARY, _CREDIT, PaymentMethod.BANK_TRANSFER, "0x44d...e112"),
    ("5", "2023-10-21", "Amazon", 4500, Category.SHOPPING, _DEBIT, PaymentMethod.UPI, "0x22b...f991"),
    ("6", "2023-10-20", "Zomato", 850, Category.FOOD, _DEBIT, PaymentMethod.UPI, "0x66a...c882"),
    ("12", "2023-10-20", "Rapido", 85, Category.TRANSPORT, _DEBIT, PaymentMethod.UPI, "0x55e...d773"),
    ("7", "2023-10-19", "Electricity Bill", 2400, Category.BILLS, _DEBIT, PaymentMethod.UPI, "0x33c...b664"),
    ("8", "2023-10-18", "Starbucks", 350, Category.FOOD, _DEBIT, PaymentMethod.UPI, "0x11d...a555"),
    ("9", "2023-10-15", "HDFC EMI", 15000, Category.BILLS, _DEBIT, PaymentMethod.BANK_TRANSFER, "0x99a...e446"),
    ("13", "2023-10-14", "Social Offline", 2400, Category.FOOD, _DEBIT, PaymentMethod.UPI, "0x77b...c337"),
    ("14", "2023-10-12", "Myntra", 1800, Category.SHOPPING, _DEBIT, PaymentMethod.UPI, "0x55c...d228"),
]


def seed_transactions() -> tuple[Transaction, ...]:
    return tuple(
        Transaction(
            id=tx_id,
            date=date.fromisoformat(day),
            merchant=merchant,
            amount=Decimal(amount),
            category=category,
            type=tx_type,
            method=method,
            tx_hash=tx_hash,
            block_status=BlockStatus.VERIFIED,
        )
        for tx_id, day, merchant, amount, category, tx_type, method, tx_hash in _SEED_TRANSACTIONS
    )


def initial_ledger() -> LedgerState:
    """Build the fixed ledger every session starts from."""
    transactions = seed_transactions()
    net = sum((t.signed_amount for t in transactions), Decimal("0"))

    return LedgerState(
        monthly_income=Decimal("85000"),
        current_balance=SEED_BALANCE,
        vault_balance=Decimal("150000"),
        opening_balance=SEED_BALANCE - net,
        wallet_address=None,
        fin_tokens=250,
        budgets={
            "Food": Decimal("8000"),
            "Transport": Decimal("3000"),
            "Shopping": Decimal("5000"),
            "Entertainment": Decimal("2000"),
            "Bills": Decimal("20000"),
        },
        transactions=transactions,
        bills=(
            Bill(id="b1", name="Credit Card Bill", amount=Decimal("12000"), due_date=date(2023, 11, 5)),
            Bill(id="b2", name="Rent", amount=Decimal("25000"), due_date=date(2023, 11, 1)),
            Bill(id="b3", name="Internet", amount=Decimal("999"), due_date=date(2023, 11, 10)),
        ),
        goals=(
            Goal(
                id="g1",
                name="Bali Trip",
                target_amount=Decimal("150000"),
                current_amount=Decimal("45000"),
                deadline=date(2024, 3, 1),
                smart_contract_address="0x88...A1b2",
                apy=4.5,
            ),
            Goal(
                id="g2",
                name="Emergency Fund",
                target_amount=Decimal("300000"),
                current_amount=Decimal("120000"),
                deadline=date(2024, 12, 31),
                smart_contract_address="0x99...C3d4",
                apy=3.2,
            ),
        ),
    )
