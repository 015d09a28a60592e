"""Transfer orchestration: one operation per transfer variant.

Each operation loads the owner's aggregate, repairs its shape, validates,
posts one or two entries through the mutation engine and saves the aggregate
once. A save that loses a race is retried from a fresh load.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Literal

from beanie import PydanticObjectId

from app.core.audit import log_event
from app.core.config import get_settings
from app.core.exceptions import BadRequestError, ConflictError, InvalidAccountTypeError, InvalidAmountError, NotFoundError
from app.core.logging import get_logger
from app.models.ledger import ACCOUNT_TYPES, USD_ACCOUNT_TYPES, TransactionKind
from app.models.user import ExternalAccountSnapshot, PendingTransfer, User
from app.services import user_store
from app.services.accounts import ensure_shape
from app.services.amounts import parse_amount
from app.services.budgets import record_spending
from app.services.external_accounts import find_external_account
from app.services.ledger import apply_entry
from app.services.notifications import add_notification

log = get_logger(__name__)

Operation = Callable[[User], dict[str, Any]]


async def _run(
    load: Callable[[], Awaitable[User]],
    operation: Operation,
    event: str,
    **log_fields: Any,
) -> tuple[User, dict[str, Any]]:
    """Load, repair, mutate and save; on a lost save race start over from a fresh load."""
    retries = get_settings().ledger_conflict_retries
    attempt = 0
    while True:
        user = await load()
        await ensure_shape(user)
        result = operation(user)
        try:
            await user_store.save_user(user)
        except ConflictError:
            if attempt >= retries:
                raise
            attempt += 1
            log.warning("ledger_conflict_retry", user_id=str(user.id), operation=event, attempt=attempt)
            continue
        log.info(event, user_id=str(user.id), **{k: str(v) for k, v in log_fields.items()})
        return user, result


def _loader(user_id: PydanticObjectId) -> Callable[[], Awaitable[User]]:
    return lambda: user_store.load_user(user_id)


def _usd_account_type(account_type: str | None, field: str) -> str:
    if account_type not in ACCOUNT_TYPES:
        raise InvalidAccountTypeError(f"Invalid {field} account", details={field: account_type})
    if account_type not in USD_ACCOUNT_TYPES:
        raise InvalidAccountTypeError(
            "Bitcoin balances change only through bitcoin purchases", details={field: account_type}
        )
    return account_type


def _require(value: str | None, message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise BadRequestError(message)
    return value


def _debit(
    user: User,
    account_type: str,
    kind: TransactionKind,
    amount: Decimal,
    description: str,
    memo: str | None,
    category: str | None,
    **kwargs: Any,
) -> dict[str, Any]:
    balance, record = apply_entry(
        user.accounts.slot(account_type), kind, -amount, description, memo, category,
        account_label=account_type, **kwargs,
    )
    record_spending(user, record)
    return {"new_balance": balance, "transaction": record.model_dump()}


# ---------------------------------------------------------------- user operations


async def internal_transfer(
    user_id: PydanticObjectId,
    from_account: str,
    to_account: str,
    amount: Any,
    memo: str | None = None,
) -> dict[str, Any]:
    """Move money between two of the user's own USD accounts."""
    amt = parse_amount(amount)
    if from_account == to_account:
        raise InvalidAmountError("Cannot transfer to same account", details={"from": from_account, "to": to_account})
    _usd_account_type(from_account, "from")
    _usd_account_type(to_account, "to")

    def op(user: User) -> dict[str, Any]:
        now = datetime.utcnow()
        out_desc = memo or f"Transfer to {to_account} account"
        in_desc = memo or f"Transfer from {from_account} account"
        from_balance, out_record = apply_entry(
            user.accounts.slot(from_account), TransactionKind.TRANSFER_OUT, -amt, out_desc, memo, "Transfer",
            account_label=from_account, at=now,
        )
        to_balance, in_record = apply_entry(
            user.accounts.slot(to_account), TransactionKind.TRANSFER_IN, amt, in_desc, memo, "Transfer",
            account_label=to_account, at=now,
        )
        add_notification(user, "Transfer completed", f"${amt} moved from {from_account} to {to_account}", "success")
        return {
            "from_balance": from_balance,
            "to_balance": to_balance,
            "transactions": [out_record.model_dump(), in_record.model_dump()],
        }

    _, result = await _run(_loader(user_id), op, "internal_transfer_completed", amount=amt, source=from_account, destination=to_account)
    return result


async def zelle_transfer(
    user_id: PydanticObjectId,
    from_account: str,
    recipient: str,
    amount: Any,
    memo: str | None = None,
    category: str | None = None,
) -> dict[str, Any]:
    amt = parse_amount(amount)
    recipient = _require(recipient, "Recipient is required")
    _usd_account_type(from_account, "from")

    def op(user: User) -> dict[str, Any]:
        result = _debit(user, from_account, TransactionKind.ZELLE, amt, memo or f"Zelle to {recipient}", memo, category)
        add_notification(user, "Zelle sent", f"${amt} sent to {recipient}", "success")
        return result

    _, result = await _run(_loader(user_id), op, "zelle_transfer_completed", amount=amt, source=from_account)
    return result


async def wire_transfer(
    user_id: PydanticObjectId,
    recipient_name: str,
    bank_name: str,
    amount: Any,
    memo: str | None = None,
    category: str | None = None,
) -> dict[str, Any]:
    amt = parse_amount(amount)
    recipient_name = _require(recipient_name, "Recipient name is required")
    bank_name = _require(bank_name, "Bank name is required")

    def op(user: User) -> dict[str, Any]:
        description = memo or f"Wire to {recipient_name} at {bank_name}"
        result = _debit(user, "checking", TransactionKind.WIRE, amt, description, memo, category)
        add_notification(user, "Wire sent", f"${amt} wired to {recipient_name}", "success")
        return result

    _, result = await _run(_loader(user_id), op, "wire_transfer_completed", amount=amt)
    return result


async def bill_pay(
    user_id: PydanticObjectId,
    payee: str,
    account_number: str,
    amount: Any,
    memo: str | None = None,
    category: str | None = "Bills",
) -> dict[str, Any]:
    amt = parse_amount(amount)
    payee = _require(payee, "Payee is required")
    account_number = _require(account_number, "Payee account number is required")

    def op(user: User) -> dict[str, Any]:
        description = memo or f"Payment to {payee} (Acct: {account_number})"
        result = _debit(user, "checking", TransactionKind.BILL_PAY, amt, description, memo, category)
        add_notification(user, "Bill paid", f"${amt} paid to {payee}", "success")
        return result

    _, result = await _run(_loader(user_id), op, "bill_pay_completed", amount=amt)
    return result


async def external_transfer(
    user_id: PydanticObjectId,
    recipient_name: str,
    bank_name: str,
    amount: Any,
    memo: str | None = None,
    category: str | None = None,
) -> dict[str, Any]:
    """Immediately settled transfer to an arbitrary outside account."""
    amt = parse_amount(amount)
    recipient_name = _require(recipient_name, "Recipient name is required")
    bank_name = _require(bank_name, "Bank name is required")

    def op(user: User) -> dict[str, Any]:
        description = memo or f"Transfer to {recipient_name} at {bank_name}"
        result = _debit(user, "checking", TransactionKind.EXTERNAL_TRANSFER, amt, description, memo, category)
        add_notification(user, "External transfer sent", f"${amt} sent to {recipient_name}", "success")
        return result

    _, result = await _run(_loader(user_id), op, "external_transfer_completed", amount=amt)
    return result


async def transfer_to_linked_account(
    user_id: PydanticObjectId,
    external_account_id: str,
    amount: Any,
    memo: str | None = None,
) -> dict[str, Any]:
    """
    Debit checking now and stage the transfer as pending until settled.
    The ledger entry carries status "pending" and the pending transfer's id.
    """
    amt = parse_amount(amount)

    def op(user: User) -> dict[str, Any]:
        external = find_external_account(user, external_account_id)
        if external.status != "active":
            raise BadRequestError("External account is not active")
        pending = PendingTransfer(
            amount=-amt,
            balance_after=Decimal("0"),
            description=memo or f"Transfer to {external.bank_name} ({external.account_number})",
            external_account_id=external.id,
            external_account=ExternalAccountSnapshot(
                bank_name=external.bank_name,
                account_number=external.account_number,
                routing_number=external.routing_number,
            ),
        )
        pending.memo = memo or pending.description
        result = _debit(
            user, "checking", TransactionKind.EXTERNAL_TRANSFER_PENDING, amt, pending.description, memo, "Transfer",
            at=pending.created_at, status="pending", reference_id=pending.id,
        )
        pending.balance_after = result["new_balance"]
        user.pending_transfers.append(pending)
        add_notification(user, "Transfer pending", f"${amt} to {external.bank_name} is pending", "info")
        result["pending_transfer"] = pending.model_dump()
        return result

    _, result = await _run(_loader(user_id), op, "linked_transfer_pending", amount=amt, external_account_id=external_account_id)
    return result


async def mobile_deposit(user_id: PydanticObjectId, amount: Any, memo: str | None = None) -> dict[str, Any]:
    amt = parse_amount(amount)

    def op(user: User) -> dict[str, Any]:
        balance, record = apply_entry(
            user.accounts.checking, TransactionKind.MOBILE_DEPOSIT, amt, memo or "Mobile check deposit", memo, "Deposit",
            account_label="checking",
        )
        add_notification(user, "Deposit received", f"${amt} deposited to checking", "success")
        return {"new_balance": balance, "transaction": record.model_dump()}

    _, result = await _run(_loader(user_id), op, "mobile_deposit_completed", amount=amt)
    return result


async def buy_bitcoin(user_id: PydanticObjectId, usd_amount: Any, btc_amount: Any) -> dict[str, Any]:
    """Pay USD from checking and credit the bitcoin account in BTC."""
    usd = parse_amount(usd_amount, field="usd_amount")
    btc = parse_amount(btc_amount, field="btc_amount")

    def op(user: User) -> dict[str, Any]:
        now = datetime.utcnow()
        checking_balance, usd_record = apply_entry(
            user.accounts.checking, TransactionKind.BITCOIN_PURCHASE, -usd, f"Bitcoin purchase: {btc} BTC",
            None, "Investment", account_label="checking", at=now,
        )
        bitcoin_balance, btc_record = apply_entry(
            user.accounts.bitcoin, TransactionKind.PURCHASE, btc, f"Bought {btc} BTC for ${usd}",
            None, "Investment", account_label="bitcoin", at=now,
        )
        add_notification(user, "Bitcoin purchased", f"Bought {btc} BTC for ${usd}", "success")
        return {
            "checking_balance": checking_balance,
            "bitcoin_balance": bitcoin_balance,
            "transactions": [usd_record.model_dump(), btc_record.model_dump()],
        }

    _, result = await _run(_loader(user_id), op, "bitcoin_purchase_completed", usd=usd, btc=btc)
    return result


# ---------------------------------------------------------------- admin operations


def _admin_account_type(account_type: str | None) -> str:
    if account_type not in USD_ACCOUNT_TYPES:
        raise InvalidAccountTypeError("Invalid account type", details={"account_type": account_type})
    return account_type


async def admin_update_balance(
    user_id: PydanticObjectId,
    account_type: str,
    amount: Any,
    memo: str | None = None,
) -> dict[str, Any]:
    """
    Arbitrary correction of one account. Negative amounts may take the balance
    below zero: this path has no floor.
    """
    account_type = _admin_account_type(account_type)
    amt = parse_amount(amount, positive=False)

    def op(user: User) -> dict[str, Any]:
        kind = TransactionKind.CREDIT if amt >= 0 else TransactionKind.DEBIT
        balance, record = apply_entry(
            user.accounts.slot(account_type), kind, amt, memo or "Admin adjustment", memo, "Admin Adjustment",
            account_label=account_type, allow_overdraft=True,
        )
        add_notification(user, "Balance adjusted", f"Your {account_type} balance was adjusted by ${amt}", "info")
        return {"balance": balance, "transaction": record.model_dump()}

    user, result = await _run(_loader(user_id), op, "admin_balance_updated", account=account_type, amount=amt)
    await log_event("admin", "balance_updated", str(user.id), account_type, {"amount": str(amt), "memo": memo})
    return result


async def admin_transfer(
    account_number: str,
    account_type: str,
    amount: Any,
    memo: str | None = None,
) -> dict[str, Any]:
    """Credit or debit any user's account found by number; debits cannot overdraw."""
    account_type = _admin_account_type(account_type)
    account_number = _require(account_number, "Account number is required")
    amt = parse_amount(amount, positive=False)

    def op(user: User) -> dict[str, Any]:
        account = user.accounts.slot(account_type)
        old_balance = account.balance
        kind = TransactionKind.CREDIT if amt >= 0 else TransactionKind.DEBIT
        balance, record = apply_entry(
            account, kind, amt, memo or "Admin transfer", memo, "Admin Adjustment", account_label=account_type,
        )
        direction = "to" if amt >= 0 else "from"
        add_notification(user, "Account adjusted", f"${abs(amt)} transferred {direction} your {account_type} account", "info")
        return {
            "recipient": user.name,
            "account": account_number,
            "account_type": account_type,
            "amount": amt,
            "old_balance": old_balance,
            "new_balance": balance,
            "transaction": record.model_dump(),
        }

    user, result = await _run(
        lambda: user_store.load_user_by_account_number(account_type, account_number),
        op, "admin_transfer_completed", account=account_type, amount=amt,
    )
    await log_event("admin", "admin_transfer", str(user.id), account_number, {"amount": str(amt), "account_type": account_type})
    return result


async def settle_pending_transfer(
    user_id: PydanticObjectId,
    transfer_id: str,
    action: Literal["complete", "reverse"],
) -> dict[str, Any]:
    """
    Finish a pending linked-account transfer. "complete" posts a zero-amount
    External Transfer record referencing the pending id; "reverse" returns the
    held amount to checking with a Credit entry.
    """
    if action not in ("complete", "reverse"):
        raise BadRequestError("Action must be complete or reverse")

    def op(user: User) -> dict[str, Any]:
        pending = next((p for p in user.pending_transfers if p.id == transfer_id), None)
        if pending is None:
            raise NotFoundError("Pending transfer not found")
        if pending.status != "pending":
            raise ConflictError("Transfer already settled", details={"status": pending.status})
        pending.settled_at = datetime.utcnow()
        if action == "complete":
            pending.status = "completed"
            balance, record = apply_entry(
                user.accounts.checking, TransactionKind.EXTERNAL_TRANSFER, Decimal("0"), f"Settled: {pending.description}",
                None, "Transfer", account_label="checking", reference_id=pending.id,
            )
            result = {"new_balance": balance, "transaction": record.model_dump()}
            add_notification(user, "Transfer completed", f"{pending.description} has been sent", "success")
        else:
            pending.status = "reversed"
            balance, record = apply_entry(
                user.accounts.checking, TransactionKind.CREDIT, -pending.amount, f"Reversal: {pending.description}",
                None, "Transfer", account_label="checking", reference_id=pending.id,
            )
            result = {"new_balance": balance, "transaction": record.model_dump()}
            add_notification(user, "Transfer reversed", f"{pending.description} was returned to checking", "warning")
        result["pending_transfer"] = pending.model_dump()
        return result

    user, result = await _run(_loader(user_id), op, "pending_transfer_settled", transfer_id=transfer_id, action=action)
    await log_event("admin", f"pending_transfer_{action}", str(user.id), transfer_id)
    return result
