from datetime import datetime
from typing import Any

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.core.exceptions import NotFoundError
from app.core.pagination import page_of
from app.deps import require_account_owner
from app.services import budgets as budgets_service
from app.services import external_accounts as external_service
from app.services import goals as goals_service
from app.services import notifications as notifications_service
from app.services import transactions as transactions_service
from app.services import user_store
from app.services.accounts import ensure_shape
from app.services.users import serialize_user

router = APIRouter()


class ExternalAccountRequest(BaseModel):
    bank_name: str
    account_type: str
    account_number: str
    routing_number: str
    nickname: str | None = None
    pin: str | None = None


class SavingsGoalRequest(BaseModel):
    name: str
    target_amount: Any
    target_date: datetime
    color: str | None = None
    icon: str | None = None


class GoalProgressRequest(BaseModel):
    current_amount: Any


class BudgetRequest(BaseModel):
    monthly_limit: Any = None
    categories: list[dict[str, Any]] | None = None


@router.get("/{user_id}")
async def get_profile(owner_id: PydanticObjectId = Depends(require_account_owner)):
    """The user's profile and accounts. Missing account slots are filled in and saved."""
    user = await user_store.load_user(owner_id)
    if await ensure_shape(user):
        await user_store.save_user(user)
    return serialize_user(user)


@router.get("/{user_id}/transactions")
async def get_transactions(
    owner_id: PydanticObjectId = Depends(require_account_owner),
    include_bitcoin: bool = False,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    items = await transactions_service.list_transactions(owner_id, include_bitcoin=include_bitcoin)
    return page_of(items, limit, offset)


@router.get("/{user_id}/external-accounts")
async def get_external_accounts(owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await external_service.list_external_accounts(owner_id)


@router.post("/{user_id}/external-accounts")
async def link_external_account(body: ExternalAccountRequest, owner_id: PydanticObjectId = Depends(require_account_owner)):
    """Link an outside account; requires the link PIN. Only the last four digits are returned."""
    external = await external_service.link_external_account(
        owner_id,
        bank_name=body.bank_name,
        account_type=body.account_type,
        account_number=body.account_number,
        routing_number=body.routing_number,
        nickname=body.nickname,
        pin=body.pin,
    )
    return external_service.serialize_external_account(external)


@router.get("/{user_id}/savings-goals")
async def get_savings_goals(owner_id: PydanticObjectId = Depends(require_account_owner)):
    user = await user_store.load_user(owner_id)
    return user.savings_goals


@router.post("/{user_id}/savings-goals")
async def create_savings_goal(body: SavingsGoalRequest, owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await goals_service.create_goal(
        owner_id, body.name, body.target_amount, body.target_date, color=body.color, icon=body.icon
    )


@router.patch("/{user_id}/savings-goals/{goal_id}")
async def update_savings_goal(
    goal_id: str,
    body: GoalProgressRequest,
    owner_id: PydanticObjectId = Depends(require_account_owner),
):
    return await goals_service.update_goal_progress(owner_id, goal_id, body.current_amount)


@router.get("/{user_id}/budget")
async def get_budget(owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await budgets_service.get_budget(owner_id)


@router.post("/{user_id}/budget")
async def update_budget(body: BudgetRequest, owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await budgets_service.update_budget(owner_id, body.monthly_limit, body.categories)


@router.get("/{user_id}/analytics")
async def get_analytics(owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await budgets_service.analytics(owner_id)


@router.get("/{user_id}/notifications")
async def get_notifications(
    owner_id: PydanticObjectId = Depends(require_account_owner),
    unread_only: bool = False,
):
    return await notifications_service.list_notifications(owner_id, unread_only=unread_only)


@router.post("/{user_id}/notifications/{notification_id}/read")
async def mark_notification_read(notification_id: str, owner_id: PydanticObjectId = Depends(require_account_owner)):
    if not await notifications_service.mark_read(owner_id, notification_id):
        raise NotFoundError("Notification not found")
    return {"ok": True}
