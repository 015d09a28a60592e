import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from beanie import Document, Indexed
from pydantic import BaseModel, Field, field_validator

from app.models.ledger import Accounts, Money
from app.models.profile import Budget, Notification, Preferences, SavingsGoal

DEFAULT_SPENDING_CATEGORIES = (
    "Shopping",
    "Bills",
    "Food & Dining",
    "Entertainment",
    "Transportation",
    "Healthcare",
    "Education",
    "Other",
)


def _new_id() -> str:
    return uuid.uuid4().hex


class ExternalAccount(BaseModel):
    """Third-party account the user linked; only labels ledger entries."""
    id: str = Field(default_factory=_new_id)
    bank_name: str
    account_type: Literal["checking", "savings", "credit", "investment"]
    account_number: str  # last four digits
    full_account_number_encrypted: str = ""
    routing_number: str
    nickname: str = ""
    linked_at: datetime = Field(default_factory=datetime.utcnow)
    status: Literal["active", "pending", "suspended"] = "active"


class ExternalAccountSnapshot(BaseModel):
    bank_name: str
    account_number: str
    routing_number: str


class PendingTransfer(BaseModel):
    """Funds already debited from checking, awaiting settlement."""
    id: str = Field(default_factory=_new_id)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    kind: str = "External Transfer - Pending"
    amount: Money
    description: str = ""
    memo: str = ""
    balance_after: Money
    category: str = "Transfer"
    status: Literal["pending", "completed", "reversed"] = "pending"
    external_account_id: str
    external_account: ExternalAccountSnapshot
    settled_at: datetime | None = None


class User(Document):
    name: str
    email: Indexed(str, unique=True)
    username: Indexed(str, unique=True)
    password_hash: str = ""
    password_salt: str = ""
    status: Literal["active", "suspended", "inactive"] = "active"
    session_version: int = 0
    version: int = 0  # bumped on every save; guards against lost updates

    accounts: Accounts = Field(default_factory=Accounts)
    external_accounts: list[ExternalAccount] = Field(default_factory=list)
    pending_transfers: list[PendingTransfer] = Field(default_factory=list)
    savings_goals: list[SavingsGoal] = Field(default_factory=list)
    budget: Budget = Field(default_factory=Budget)
    spending_categories: dict[str, Money] = Field(
        default_factory=lambda: {c: Decimal("0") for c in DEFAULT_SPENDING_CATEGORIES}
    )
    notifications: list[Notification] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)

    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("external_accounts", "pending_transfers", "savings_goals", "notifications", mode="before")
    @classmethod
    def _none_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v

    @field_validator("accounts", mode="before")
    @classmethod
    def _none_as_no_accounts(cls, v: Any) -> Any:
        return {} if v is None else v

    class Settings:
        name = "users"
        indexes = [
            [("accounts.checking.account_number", 1)],
            [("accounts.savings.account_number", 1)],
            [("accounts.bitcoin.wallet_address", 1)],
            [("external_accounts.account_number", 1)],
        ]
