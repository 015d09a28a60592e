from typing import Any

from beanie import PydanticObjectId
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.deps import require_account_owner, transfer_rate_limit
from app.services import transfers as transfers_service

router = APIRouter()


class InternalTransferRequest(BaseModel):
    from_account: str = Field(alias="from")
    to_account: str = Field(alias="to")
    amount: Any
    memo: str | None = None


class ZelleRequest(BaseModel):
    from_account: str = Field(default="checking", alias="from")
    recipient: str
    amount: Any
    memo: str | None = None
    category: str | None = None


class WireRequest(BaseModel):
    recipient_name: str
    bank_name: str
    amount: Any
    memo: str | None = None
    category: str | None = None


class BillPayRequest(BaseModel):
    payee: str
    account_number: str
    amount: Any
    memo: str | None = None
    category: str | None = "Bills"


class LinkedTransferRequest(BaseModel):
    external_account_id: str
    amount: Any
    memo: str | None = None


class DepositRequest(BaseModel):
    amount: Any
    memo: str | None = None


class BitcoinBuyRequest(BaseModel):
    usd_amount: Any
    btc_amount: Any


@router.post("/{user_id}/transfer")
async def internal_transfer(body: InternalTransferRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    """Move money between the caller's checking and savings."""
    return await transfers_service.internal_transfer(
        owner_id, body.from_account, body.to_account, body.amount, memo=body.memo
    )


@router.post("/{user_id}/zelle")
async def zelle(body: ZelleRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    return await transfers_service.zelle_transfer(
        owner_id, body.from_account, body.recipient, body.amount, memo=body.memo, category=body.category
    )


@router.post("/{user_id}/wire")
async def wire(body: WireRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    return await transfers_service.wire_transfer(
        owner_id, body.recipient_name, body.bank_name, body.amount, memo=body.memo, category=body.category
    )


@router.post("/{user_id}/billpay")
async def billpay(body: BillPayRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    return await transfers_service.bill_pay(
        owner_id, body.payee, body.account_number, body.amount, memo=body.memo, category=body.category
    )


@router.post("/{user_id}/external")
async def external(body: WireRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    """Instantly settled transfer to any outside account."""
    return await transfers_service.external_transfer(
        owner_id, body.recipient_name, body.bank_name, body.amount, memo=body.memo, category=body.category
    )


@router.post("/{user_id}/external-transfer")
async def linked_transfer(body: LinkedTransferRequest, owner_id: PydanticObjectId = Depends(transfer_rate_limit)):
    """Transfer to a linked account; held as pending until settled."""
    return await transfers_service.transfer_to_linked_account(
        owner_id, body.external_account_id, body.amount, memo=body.memo
    )


@router.post("/{user_id}/deposit")
async def deposit(body: DepositRequest, owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await transfers_service.mobile_deposit(owner_id, body.amount, memo=body.memo)


@router.post("/{user_id}/bitcoin/buy")
async def bitcoin_buy(body: BitcoinBuyRequest, owner_id: PydanticObjectId = Depends(require_account_owner)):
    return await transfers_service.buy_bitcoin(owner_id, body.usd_amount, body.btc_amount)
