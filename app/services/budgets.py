"""Monthly budget, spend-by-category tracking and account analytics."""

from datetime import datetime
from decimal import Decimal
from typing import Any

from beanie import PydanticObjectId

from app.core.config import get_settings
from app.core.exceptions import InvalidAmountError
from app.models.ledger import TransactionKind, TransactionRecord
from app.models.profile import BudgetCategory, BudgetMonth
from app.models.user import User
from app.services import user_store
from app.services.amounts import parse_amount

ZERO = Decimal("0")

# Money leaving the bank; internal moves and admin corrections are not spending.
SPENDING_KINDS = frozenset({
    TransactionKind.ZELLE,
    TransactionKind.WIRE,
    TransactionKind.BILL_PAY,
    TransactionKind.EXTERNAL_TRANSFER,
    TransactionKind.EXTERNAL_TRANSFER_PENDING,
})


def _roll_month(user: User, now: datetime) -> None:
    current = user.budget.current_month
    if (current.year, current.month) == (now.year, now.month):
        return
    user.budget.current_month = BudgetMonth(month=now.month, year=now.year)
    for category in user.budget.categories:
        category.spent = ZERO


def record_spending(user: User, record: TransactionRecord) -> None:
    """Fold an outgoing payment into spend analytics and the current month's budget."""
    if record.kind not in SPENDING_KINDS or record.amount >= 0:
        return
    spent = -record.amount
    user.spending_categories[record.category] = user.spending_categories.get(record.category, ZERO) + spent
    _roll_month(user, record.timestamp)
    user.budget.current_month.total_spent += spent
    for category in user.budget.categories:
        if category.name == record.category:
            category.spent += spent


async def get_budget(user_id: PydanticObjectId) -> dict[str, Any]:
    user = await user_store.load_user(user_id)
    return {
        "budget": user.budget.model_dump(),
        "spending_categories": dict(user.spending_categories),
    }


async def update_budget(
    user_id: PydanticObjectId,
    monthly_limit: Any = None,
    categories: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    user = await user_store.load_user(user_id)
    if monthly_limit is not None:
        user.budget.monthly_limit = parse_amount(monthly_limit, field="monthly_limit")
    if categories is not None:
        parsed = []
        for c in categories:
            try:
                parsed.append(BudgetCategory(**c))
            except (TypeError, ValueError) as e:
                raise InvalidAmountError("Invalid budget category", details={"category": str(c)}) from e
        user.budget.categories = parsed
    await user_store.save_user(user)
    return {"budget": user.budget.model_dump()}


async def analytics(user_id: PydanticObjectId) -> dict[str, Any]:
    user = await user_store.load_user(user_id)
    accounts = user.accounts
    usd_total = sum((a.balance for a in (accounts.checking, accounts.savings) if a), ZERO)
    btc = accounts.bitcoin.balance if accounts.bitcoin else ZERO
    bitcoin_value = btc * get_settings().bitcoin_price_usd
    goals = user.savings_goals
    progress = (
        sum((g.current_amount / g.target_amount for g in goals), ZERO) / len(goals) if goals else ZERO
    )
    return {
        "total_balance": usd_total + bitcoin_value,
        "usd_balance": usd_total,
        "bitcoin_balance": btc,
        "bitcoin_value": bitcoin_value,
        "account_age_days": (datetime.utcnow() - user.created_at).days,
        "spending_by_category": dict(user.spending_categories),
        "monthly_spending": user.budget.current_month.total_spent,
        "monthly_limit": user.budget.monthly_limit,
        "savings_progress": progress,
    }
