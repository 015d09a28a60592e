from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from app.core.pagination import page_of
from app.deps import parse_object_id, require_admin
from app.services import transactions as transactions_service
from app.services import transfers as transfers_service
from app.services import users as users_service
from app.services.accounts import repair_all_users

router = APIRouter(dependencies=[Depends(require_admin)])


class UpdateBalanceRequest(BaseModel):
    account_type: str
    amount: Any
    memo: str | None = None


class ResetPasswordRequest(BaseModel):
    new_password: str


class AdminTransferRequest(BaseModel):
    account_number: str
    account_type: str = "checking"
    amount: Any
    memo: str | None = None


class SettleRequest(BaseModel):
    action: Literal["complete", "reverse"]


@router.get("/users")
async def admin_users():
    return await users_service.list_users()


@router.post("/users/{user_id}/update-balance")
async def admin_update_balance(user_id: str, body: UpdateBalanceRequest):
    """Admin: signed correction of one account; may go negative."""
    return await transfers_service.admin_update_balance(
        parse_object_id(user_id), body.account_type, body.amount, memo=body.memo
    )


@router.post("/users/{user_id}/toggle-suspend")
async def admin_toggle_suspend(user_id: str):
    status = await users_service.toggle_suspend(parse_object_id(user_id))
    return {"user_id": user_id, "status": status}


@router.post("/users/{user_id}/reset-password")
async def admin_reset_password(user_id: str, body: ResetPasswordRequest):
    await users_service.reset_password(parse_object_id(user_id), body.new_password)
    return {"ok": True}


@router.post("/transfer")
async def admin_transfer(body: AdminTransferRequest):
    """Admin: credit or debit any account by account number."""
    return await transfers_service.admin_transfer(body.account_number, body.account_type, body.amount, memo=body.memo)


@router.get("/transactions")
async def admin_transactions(
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
):
    items = await transactions_service.list_all_transactions()
    return page_of(items, limit, offset)


@router.post("/migrate-accounts")
async def admin_migrate_accounts():
    """Admin: repair every user's account shape."""
    return await repair_all_users(actor="admin")


@router.post("/users/{user_id}/pending-transfers/{transfer_id}/settle")
async def admin_settle_pending(user_id: str, transfer_id: str, body: SettleRequest):
    return await transfers_service.settle_pending_transfer(parse_object_id(user_id), transfer_id, body.action)
