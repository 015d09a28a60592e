"""Mutation engine: balance/record pairing, overdraft floor and replay."""

from datetime import datetime
from decimal import Decimal

import pytest

from app.core.exceptions import InsufficientFundsError
from app.models.ledger import Account, TransactionKind, TransactionRecord
from app.services.ledger import apply_entry, history_matches_balance, replay_balance


def _account(balance="0") -> Account:
    return Account(account_number="1234567890", routing_number="836284645", balance=Decimal(balance))


def test_credit_appends_record_with_balance_after():
    account = _account()
    balance, record = apply_entry(account, TransactionKind.MOBILE_DEPOSIT, Decimal("250.50"), "Deposit", account_label="checking")
    assert balance == Decimal("250.50")
    assert account.balance == balance
    assert account.transactions == [record]
    assert record.balance_after == balance
    assert record.memo == "Deposit"
    assert record.category == "Other"
    assert record.status == "posted"


def test_debit_beyond_balance_leaves_account_untouched():
    account = _account()
    apply_entry(account, TransactionKind.CREDIT, Decimal("100"), "seed", account_label="checking")
    with pytest.raises(InsufficientFundsError) as exc:
        apply_entry(account, TransactionKind.ZELLE, Decimal("-100.01"), "too much", account_label="checking")
    assert exc.value.code == "INSUFFICIENT_FUNDS"
    assert account.balance == Decimal("100")
    assert len(account.transactions) == 1


def test_debit_of_exact_balance_reaches_zero():
    account = _account()
    apply_entry(account, TransactionKind.CREDIT, Decimal("40"), "seed", account_label="savings")
    balance, _ = apply_entry(account, TransactionKind.TRANSFER_OUT, Decimal("-40"), "all", account_label="savings")
    assert balance == Decimal("0")


def test_overdraft_allowed_only_when_requested():
    account = _account()
    balance, record = apply_entry(
        account, TransactionKind.DEBIT, Decimal("-75"), "correction", account_label="checking", allow_overdraft=True
    )
    assert balance == Decimal("-75")
    assert record.balance_after == Decimal("-75")


def test_replay_matches_balance_after_many_entries():
    account = _account()
    for amount in ("100", "-30.25", "12.10", "-81.85"):
        apply_entry(account, TransactionKind.CREDIT if amount[0] != "-" else TransactionKind.DEBIT,
                    Decimal(amount), "entry", account_label="checking")
    assert account.balance == Decimal("0.00")
    assert replay_balance(account) == account.balance
    assert history_matches_balance(account)


def test_replay_detects_tampered_history():
    account = _account()
    apply_entry(account, TransactionKind.CREDIT, Decimal("10"), "entry", account_label="checking")
    account.balance = Decimal("11")
    assert not history_matches_balance(account)
    account.transactions.append(
        TransactionRecord(
            timestamp=datetime.utcnow(),
            kind=TransactionKind.CREDIT,
            amount=Decimal("1"),
            balance_after=Decimal("99"),
        )
    )
    assert replay_balance(account) is None


def test_shared_timestamp():
    account = _account("0")
    at = datetime(2024, 1, 2, 3, 4, 5)
    _, record = apply_entry(account, TransactionKind.CREDIT, Decimal("5"), "x", account_label="checking", at=at)
    assert record.timestamp == at


def test_legacy_kind_labels_load():
    record = TransactionRecord.model_validate(
        {"timestamp": datetime.utcnow(), "kind": "Zelle Transfer", "amount": 5.5, "balance_after": 5.5}
    )
    assert record.amount == Decimal("5.5")
    assert record.kind is TransactionKind.ZELLE


def test_malformed_history_loads_as_none():
    account = Account.model_validate({"account_number": "1", "balance": None, "transactions": "oops"})
    assert account.transactions is None
    assert account.balance == Decimal("0")


def test_money_serializes_as_json_number():
    account = _account("12.5")
    assert account.model_dump(mode="json")["balance"] == 12.5


def test_generated_account_numbers_are_ten_digits():
    from app.services.accounts import generate_account_number
    for _ in range(200):
        number = generate_account_number()
        assert len(number) == 10 and number.isdigit()
        assert number[0] != "0"


def test_empty_memo_is_kept():
    account = _account()
    _, record = apply_entry(account, TransactionKind.CREDIT, Decimal("1"), "Deposit", "", account_label="checking")
    assert record.memo == ""
    _, record = apply_entry(account, TransactionKind.CREDIT, Decimal("1"), "Deposit", None, account_label="checking")
    assert record.memo == "Deposit"
