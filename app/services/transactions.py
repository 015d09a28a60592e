"""Read-side feeds merging per-account histories, newest first."""

from beanie import PydanticObjectId

from app.models.ledger import USD_ACCOUNT_TYPES, TransactionRecord
from app.models.user import User
from app.services import user_store


class FeedEntry(TransactionRecord):
    """A ledger record tagged with its account and, in the admin feed, its owner."""

    user: str | None = None
    user_id: str | None = None
    account_number: str | None = None


def _tagged(user: User, account_types: tuple[str, ...], with_owner: bool = False) -> list[FeedEntry]:
    out = []
    for account_type in account_types:
        account = user.accounts.slot(account_type)
        if account is None:
            continue
        owner = (
            {"user": user.name, "user_id": str(user.id), "account_number": account.account_number}
            if with_owner else {}
        )
        for record in account.transactions or []:
            out.append(FeedEntry(**{**record.model_dump(), "account": account_type, **owner}))
    return out


def _newest_first(items: list[FeedEntry]) -> list[FeedEntry]:
    # Stable: equal timestamps keep concatenation order (checking before savings).
    return sorted(items, key=lambda tx: tx.timestamp, reverse=True)


async def list_transactions(user_id: PydanticObjectId, include_bitcoin: bool = False) -> list[FeedEntry]:
    """Checking and savings history (bitcoin only on request, its amounts are BTC)."""
    user = await user_store.load_user(user_id)
    account_types = USD_ACCOUNT_TYPES + (("bitcoin",) if include_bitcoin else ())
    return _newest_first(_tagged(user, account_types))


async def list_all_transactions() -> list[FeedEntry]:
    """Admin feed across every user's checking and savings accounts."""
    items: list[FeedEntry] = []
    async for user in user_store.iter_users():
        items.extend(_tagged(user, USD_ACCOUNT_TYPES, with_owner=True))
    return _newest_first(items)
