"""Account provisioning and repair of partially-initialized user aggregates."""

import secrets
from decimal import Decimal

from app.core.audit import log_event
from app.core.config import get_settings
from app.core.exceptions import ConflictError
from app.core.logging import get_logger
from app.models.ledger import ACCOUNT_TYPES, Account, Accounts
from app.models.user import User
from app.services import user_store
from app.services.ledger import history_matches_balance

log = get_logger(__name__)

ACCOUNT_NUMBER_MIN = 1_000_000_000
ACCOUNT_NUMBER_MAX = 9_999_999_999


def generate_account_number() -> str:
    """Uniform 10-digit number; uniqueness is checked by allocate_account_number."""
    return str(ACCOUNT_NUMBER_MIN + secrets.randbelow(ACCOUNT_NUMBER_MAX - ACCOUNT_NUMBER_MIN + 1))


async def allocate_account_number(reserved: set[str] | None = None) -> str:
    """Draw numbers until one is unused by any stored account and not in `reserved`."""
    reserved = reserved if reserved is not None else set()
    for _ in range(get_settings().account_number_attempts):
        number = generate_account_number()
        if number in reserved or await user_store.account_number_in_use(number):
            continue
        reserved.add(number)
        return number
    raise ConflictError("Could not allocate a unique account number")


def new_account(account_number: str) -> Account:
    return Account(
        account_number=account_number,
        routing_number=get_settings().routing_number,
        balance=Decimal("0"),
        transactions=[],
    )


async def provision_accounts() -> Accounts:
    """Checking and savings for a new user; bitcoin is added on first use."""
    reserved: set[str] = set()
    return Accounts(
        checking=new_account(await allocate_account_number(reserved)),
        savings=new_account(await allocate_account_number(reserved)),
    )


async def ensure_shape(user: User) -> list[str]:
    """
    Fill in missing account slots, numbers, routing numbers and histories
    with their zero values. Returns the repaired paths (empty when the
    aggregate was already complete). Never touches balances or records.
    """
    repaired: list[str] = []
    reserved = {a.account_number for a in (user.accounts.slot(t) for t in ACCOUNT_TYPES) if a and a.account_number}
    for account_type in ACCOUNT_TYPES:
        account = user.accounts.slot(account_type)
        if account is None:
            setattr(user.accounts, account_type, new_account(await allocate_account_number(reserved)))
            repaired.append(account_type)
            continue
        if not account.account_number:
            account.account_number = await allocate_account_number(reserved)
            repaired.append(f"{account_type}.account_number")
        if not account.routing_number:
            account.routing_number = get_settings().routing_number
            repaired.append(f"{account_type}.routing_number")
        if account.transactions is None:
            account.transactions = []
            repaired.append(f"{account_type}.transactions")
    return repaired


async def repair_all_users(actor: str = "system") -> dict:
    """
    Apply ensure_shape to every stored user and save the ones that changed.
    Idempotent: a second run over the same population repairs nothing.
    Ledgers whose history does not replay to the balance are reported, not altered.
    """
    scanned = 0
    repaired_ids: list[str] = []
    mismatched: list[str] = []
    errors: list[str] = []
    async for user in user_store.iter_users():
        scanned += 1
        try:
            repaired = await ensure_shape(user)
            if repaired:
                await user_store.save_user(user)
                repaired_ids.append(str(user.id))
                log.info("account_repaired", user_id=str(user.id), paths=repaired)
        except ConflictError as e:
            errors.append(f"User {user.id}: {e.message}")
            continue
        for account_type in ACCOUNT_TYPES:
            account = user.accounts.slot(account_type)
            if account is not None and not history_matches_balance(account):
                mismatched.append(f"{user.id}:{account_type}")
                log.warning("ledger_mismatch", user_id=str(user.id), account=account_type)
    log.info("accounts_repaired", scanned=scanned, repaired=len(repaired_ids), errors=len(errors))
    await log_event(actor, "accounts_repaired", metadata={"scanned": scanned, "repaired": len(repaired_ids)})
    return {
        "scanned": scanned,
        "repaired": len(repaired_ids),
        "repaired_user_ids": repaired_ids,
        "ledger_mismatches": mismatched,
        "errors": errors,
    }
