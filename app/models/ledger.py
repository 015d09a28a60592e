"""Ledger shapes embedded in the user aggregate: accounts and their transaction records."""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Literal

from bson import Decimal128
from pydantic import BaseModel, BeforeValidator, Field, PlainSerializer, field_validator

ACCOUNT_TYPES = ("checking", "savings", "bitcoin")
USD_ACCOUNT_TYPES = ("checking", "savings")


def _to_decimal(v: Any) -> Any:
    if isinstance(v, Decimal128):
        return v.to_decimal()
    if isinstance(v, float):
        return Decimal(str(v))
    if v is None:
        return Decimal("0")
    return v


# Stored as Decimal128; older documents hold plain numbers. JSON output is a number.
Money = Annotated[
    Decimal,
    BeforeValidator(_to_decimal),
    PlainSerializer(float, return_type=float, when_used="json"),
]


class TransactionKind(str, Enum):
    CREDIT = "Credit"
    DEBIT = "Debit"
    ZELLE = "Zelle"
    WIRE = "Wire"
    BILL_PAY = "Bill Pay"
    TRANSFER_IN = "Transfer In"
    TRANSFER_OUT = "Transfer Out"
    EXTERNAL_TRANSFER = "External Transfer"
    EXTERNAL_TRANSFER_PENDING = "External Transfer - Pending"
    ADMIN_ADJUSTMENT = "Admin Adjustment"
    MOBILE_DEPOSIT = "Mobile Deposit"
    BITCOIN_PURCHASE = "Bitcoin Purchase"
    PURCHASE = "Purchase"
    BITCOIN_DEPOSIT = "Bitcoin Deposit"
    BITCOIN_TRANSFER = "Bitcoin Transfer"


# Labels written by earlier releases of the service.
LEGACY_KIND_ALIASES = {
    "Zelle Transfer": TransactionKind.ZELLE,
    "Wire Transfer": TransactionKind.WIRE,
    "Bill Payment": TransactionKind.BILL_PAY,
    "Internal Transfer": TransactionKind.TRANSFER_OUT,
    "Admin Transfer": TransactionKind.ADMIN_ADJUSTMENT,
}


class TransactionRecord(BaseModel):
    """One immutable ledger entry. amount < 0 is a debit, in the account's own unit."""

    timestamp: datetime
    kind: TransactionKind
    amount: Money
    description: str = ""
    memo: str = ""
    balance_after: Money
    category: str = "Other"
    account: str = "checking"
    status: Literal["posted", "pending"] = "posted"
    reference_id: str | None = None

    model_config = {"frozen": True}

    @field_validator("kind", mode="before")
    @classmethod
    def _map_legacy_kind(cls, v: Any) -> Any:
        return LEGACY_KIND_ALIASES.get(v, v) if isinstance(v, str) else v


class Account(BaseModel):
    account_number: str | None = None
    routing_number: str | None = None
    balance: Money = Decimal("0")
    transactions: list[TransactionRecord] | None = Field(default_factory=list)
    wallet_address: str | None = None

    @field_validator("transactions", mode="before")
    @classmethod
    def _drop_malformed_history(cls, v: Any) -> Any:
        # Non-list histories load as None so provisioning can repair them.
        return v if v is None or isinstance(v, list) else None


class Accounts(BaseModel):
    checking: Account | None = None
    savings: Account | None = None
    bitcoin: Account | None = None

    def slot(self, account_type: str) -> Account | None:
        return getattr(self, account_type) if account_type in ACCOUNT_TYPES else None
