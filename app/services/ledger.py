"""Account mutation engine.

`apply_entry` is the only code path that changes an account balance or appends
to its transaction history. It works on the in-memory account and never
persists; callers save the whole user aggregate once all entries of an
operation are applied.
"""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from app.core.exceptions import InsufficientFundsError
from app.models.ledger import Account, TransactionKind, TransactionRecord

ZERO = Decimal("0")


def apply_entry(
    account: Account,
    kind: TransactionKind,
    amount: Decimal,
    description: str,
    memo: str | None = None,
    category: str | None = None,
    *,
    account_label: str,
    at: datetime | None = None,
    status: Literal["posted", "pending"] = "posted",
    reference_id: str | None = None,
    allow_overdraft: bool = False,
) -> tuple[Decimal, TransactionRecord]:
    """
    Post `amount` to `account` and append the matching record.
    Returns (new_balance, record). Debits larger than the balance raise
    InsufficientFundsError before anything is touched, unless allow_overdraft.
    """
    if amount < 0 and not allow_overdraft and -amount > account.balance:
        raise InsufficientFundsError(
            "Insufficient funds",
            details={"account": account_label, "balance": str(account.balance), "amount": str(-amount)},
        )
    new_balance = account.balance + amount
    record = TransactionRecord(
        timestamp=at or datetime.utcnow(),
        kind=kind,
        amount=amount,
        description=description,
        memo=memo if memo is not None else description,
        balance_after=new_balance,
        category=category or "Other",
        account=account_label,
        status=status,
        reference_id=reference_id,
    )
    account.transactions.append(record)
    account.balance = new_balance
    return new_balance, record


def replay_balance(account: Account) -> Decimal | None:
    """
    Sum the history from zero, checking each balance_after on the way.
    Returns the replayed balance, or None at the first record that disagrees.
    """
    running = ZERO
    for record in account.transactions or []:
        running += record.amount
        if record.balance_after != running:
            return None
    return running


def history_matches_balance(account: Account) -> bool:
    replayed = replay_balance(account)
    return replayed is not None and replayed == account.balance
