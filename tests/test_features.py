"""Goals, budget, notifications, analytics, linked accounts and user management."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.core.config import get_settings
from app.core.encryption import decrypt_account_number
from app.core.exceptions import (
    BadRequestError,
    ConflictError,
    ForbiddenError,
    InvalidAmountError,
    NotFoundError,
    UnauthorizedError,
)
from app.models.audit_log import AuditLog
from app.services import budgets, goals, notifications, transfers, users
from app.services.external_accounts import link_external_account, list_external_accounts
from app.services.user_store import load_user

pytestmark = pytest.mark.asyncio


async def test_goal_completes_when_target_reached(make_user):
    user = await make_user()
    created = await goals.create_goal(user.id, "Vacation", "1000", datetime.utcnow() + timedelta(days=90))
    goal = created[0]
    assert goal.status == "active"
    updated = await goals.update_goal_progress(user.id, goal.id, "400")
    assert updated.status == "active"
    updated = await goals.update_goal_progress(user.id, goal.id, 1000)
    assert updated.status == "completed"
    with pytest.raises(NotFoundError):
        await goals.update_goal_progress(user.id, "nope", "1")


async def test_goal_rejects_bad_target(make_user):
    user = await make_user()
    with pytest.raises(InvalidAmountError):
        await goals.create_goal(user.id, "Car", "-5", datetime.utcnow())
    with pytest.raises(BadRequestError):
        await goals.create_goal(user.id, " ", "5", datetime.utcnow())


async def test_budget_tracks_category_spend(funded_user):
    user = await funded_user(checking="1000")
    await budgets.update_budget(
        user.id,
        monthly_limit="1500",
        categories=[{"name": "Bills", "allocated": "400"}, {"name": "Food & Dining", "allocated": 300}],
    )
    await transfers.bill_pay(user.id, "Water Co", "123", "60")
    await transfers.mobile_deposit(user.id, "10")
    out = await budgets.get_budget(user.id)
    categories = {c["name"]: c for c in out["budget"]["categories"]}
    assert categories["Bills"]["spent"] == Decimal("60")
    assert categories["Food & Dining"]["spent"] == Decimal("0")
    assert out["budget"]["monthly_limit"] == Decimal("1500")
    assert out["budget"]["current_month"]["total_spent"] == Decimal("60")


async def test_budget_rejects_malformed_category(make_user):
    user = await make_user()
    with pytest.raises(InvalidAmountError):
        await budgets.update_budget(user.id, categories=[{"allocated": "10"}])


async def test_analytics(funded_user):
    user = await funded_user(checking="1000", savings="500")
    await transfers.buy_bitcoin(user.id, "90", "0.002")
    await transfers.zelle_transfer(user.id, "checking", "pal@example.com", "10", category="Shopping")
    out = await budgets.analytics(user.id)
    assert out["usd_balance"] == Decimal("1400")
    assert out["bitcoin_balance"] == Decimal("0.002")
    assert out["bitcoin_value"] == Decimal("0.002") * get_settings().bitcoin_price_usd
    assert out["total_balance"] == out["usd_balance"] + out["bitcoin_value"]
    assert out["spending_by_category"]["Shopping"] == Decimal("10")
    assert out["monthly_spending"] == Decimal("10")
    assert out["savings_progress"] == Decimal("0")
    assert out["account_age_days"] == 0


async def test_notifications_newest_first_and_mark_read(funded_user):
    user = await funded_user(checking="100")
    await transfers.zelle_transfer(user.id, "checking", "pal@example.com", "5")
    items = await notifications.list_notifications(user.id)
    assert items[0].title == "Zelle sent"
    assert await notifications.mark_read(user.id, items[0].id)
    unread = await notifications.list_notifications(user.id, unread_only=True)
    assert items[0].id not in [n.id for n in unread]
    assert not await notifications.mark_read(user.id, "unknown")


async def test_notifications_are_capped(make_user, monkeypatch):
    monkeypatch.setattr(get_settings(), "notification_cap", 3)
    user = await make_user()
    for i in range(5):
        await transfers.mobile_deposit(user.id, str(i + 1))
    stored = await load_user(user.id)
    assert len(stored.notifications) == 3
    assert stored.notifications[-1].message.startswith("$5")


async def test_link_external_account_masks_and_encrypts(make_user):
    user = await make_user()
    external = await link_external_account(user.id, "Other Bank", "savings", "9876543210", "021000021", pin="0909")
    assert external.account_number == "3210"
    assert decrypt_account_number(external.full_account_number_encrypted) == "9876543210"
    listed = await list_external_accounts(user.id)
    assert listed[0]["account_number"] == "3210"
    assert "full_account_number_encrypted" not in listed[0]


async def test_link_external_account_requires_pin(make_user):
    user = await make_user()
    with pytest.raises(BadRequestError):
        await link_external_account(user.id, "Other Bank", "savings", "9876543210", "021000021", pin="1111")


async def test_register_and_authenticate(make_user):
    user = await make_user(password="hunter22")
    same = await users.authenticate("hunter22", username=user.username)
    assert same.id == user.id
    assert same.last_login_at is not None
    with pytest.raises(UnauthorizedError):
        await users.authenticate("wrong-pass", email=user.email)
    with pytest.raises(ConflictError):
        await users.register_user("Dup", user.email, "another", "secret123")


async def test_suspended_user_cannot_login(make_user):
    user = await make_user(password="hunter22")
    assert await users.toggle_suspend(user.id) == "suspended"
    with pytest.raises(ForbiddenError):
        await users.authenticate("hunter22", username=user.username)
    assert await users.toggle_suspend(user.id) == "active"
    assert await AuditLog.find(AuditLog.user_id == str(user.id)).count() == 2


async def test_reset_password_bumps_session_version(make_user):
    user = await make_user(password="hunter22")
    await users.reset_password(user.id, "newpass99")
    stored = await load_user(user.id)
    assert stored.session_version == user.session_version + 1
    assert (await users.authenticate("newpass99", username=user.username)).id == user.id


def _serialized_has_no_secrets(data):
    return "password_hash" not in data and "password_salt" not in data


async def test_serialize_user_hides_credentials(make_user):
    user = await make_user()
    data = users.serialize_user(user)
    assert _serialized_has_no_secrets(data)
    assert data["id"] == str(user.id)
    assert data["accounts"]["checking"]["balance"] == Decimal("0")
