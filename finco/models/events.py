"""
Ledger Events

Every user action on the dashboard is expressed as exactly one event.
The session validates the event, hands it to a reducer together with the
current LedgerState, and stores the state that comes back.

Events carry the calendar date they occurred on, so replaying the same
events against the same state produces the same ledger (ids and provenance
hashes aside).
"""

from datetime import date
from decimal import Decimal
from typing import Annotated, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from finco.models.ledger import Goal, TransactionDraft, VaultDirection


class LedgerEventBase(BaseModel):
    """Fields shared by every ledger event."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    # Contract-style operations wait for a simulated network confirmation
    # before they settle (see LedgerSession.submit).
    requires_settlement: ClassVar[bool] = False

    occurred_on: date = Field(default_factory=date.today)


class AddTransaction(LedgerEventBase):
    kind: Literal["add_transaction"] = "add_transaction"
    draft: TransactionDraft = Field(default_factory=TransactionDraft)


class DeleteTransaction(LedgerEventBase):
    kind: Literal["delete_transaction"] = "delete_transaction"
    transaction_id: str


class MarkBillPaid(LedgerEventBase):
    kind: Literal["mark_bill_paid"] = "mark_bill_paid"
    bill_id: str


class AddGoal(LedgerEventBase):
    kind: Literal["add_goal"] = "add_goal"
    goal: Goal


class StakeToGoal(LedgerEventBase):
    requires_settlement: ClassVar[bool] = True

    kind: Literal["stake_to_goal"] = "stake_to_goal"
    goal_id: str
    amount: Decimal


class UpdateIncome(LedgerEventBase):
    kind: Literal["update_income"] = "update_income"
    monthly_income: Decimal


class UpdateBudget(LedgerEventBase):
    kind: Literal["update_budget"] = "update_budget"
    category: str
    limit: Decimal


class P2PTransfer(LedgerEventBase):
    requires_settlement: ClassVar[bool] = True

    kind: Literal["p2p_transfer"] = "p2p_transfer"
    recipient: str
    amount: Decimal


class VaultTransfer(LedgerEventBase):
    requires_settlement: ClassVar[bool] = True

    kind: Literal["vault_transfer"] = "vault_transfer"
    amount: Decimal
    direction: VaultDirection


class ConnectWallet(LedgerEventBase):
    kind: Literal["connect_wallet"] = "connect_wallet"
    address: Optional[str] = Field(
        default=None,
        description="Wallet address; the simulated address is used when omitted"
    )


class DisconnectWallet(LedgerEventBase):
    kind: Literal["disconnect_wallet"] = "disconnect_wallet"


LedgerEvent = Annotated[
    Union[
        AddTransaction,
        DeleteTransaction,
        MarkBillPaid,
        AddGoal,
        StakeToGoal,
        UpdateIncome,
        UpdateBudget,
        P2PTransfer,
        VaultTransfer,
        ConnectWallet,
        DisconnectWallet,
    ],
    Field(discriminator="kind"),
]
