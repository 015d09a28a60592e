"""Linking third-party accounts as transfer destinations."""

from beanie import PydanticObjectId

from app.core.config import get_settings
from app.core.encryption import encrypt_account_number, mask_account_number
from app.core.exceptions import BadRequestError, NotFoundError
from app.core.logging import get_logger
from app.core.security import verify_pin
from app.models.user import ExternalAccount, User
from app.services import user_store

log = get_logger(__name__)

EXTERNAL_ACCOUNT_TYPES = ("checking", "savings", "credit", "investment")


async def link_external_account(
    user_id: PydanticObjectId,
    bank_name: str,
    account_type: str,
    account_number: str,
    routing_number: str,
    nickname: str | None = None,
    pin: str | None = None,
) -> ExternalAccount:
    """Verify the link PIN and store the account with only its last four digits in clear."""
    if not verify_pin(pin, get_settings().external_link_pin):
        raise BadRequestError("Invalid PIN")
    if account_type not in EXTERNAL_ACCOUNT_TYPES:
        raise BadRequestError("Invalid external account type", details={"allowed": list(EXTERNAL_ACCOUNT_TYPES)})
    account_number = (account_number or "").strip()
    routing_number = (routing_number or "").strip()
    if not bank_name or not account_number.isdigit() or not routing_number.isdigit():
        raise BadRequestError("Bank name, account number and routing number are required")
    user = await user_store.load_user(user_id)
    external = ExternalAccount(
        bank_name=bank_name,
        account_type=account_type,
        account_number=mask_account_number(account_number),
        full_account_number_encrypted=encrypt_account_number(account_number),
        routing_number=routing_number,
        nickname=nickname or f"{bank_name} {account_type}",
    )
    user.external_accounts.append(external)
    await user_store.save_user(user)
    log.info("external_account_linked", user_id=str(user_id), external_account_id=external.id)
    return external


def find_external_account(user: User, external_account_id: str) -> ExternalAccount:
    for external in user.external_accounts:
        if external.id == external_account_id:
            return external
    raise NotFoundError("External account not found")


def serialize_external_account(external: ExternalAccount) -> dict:
    return external.model_dump(exclude={"full_account_number_encrypted"})


async def list_external_accounts(user_id: PydanticObjectId) -> list[dict]:
    user = await user_store.load_user(user_id)
    return [serialize_external_account(e) for e in user.external_accounts]
