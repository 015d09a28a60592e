"""In-aggregate user notifications, capped to the newest N."""

from beanie import PydanticObjectId

from app.core.config import get_settings
from app.models.profile import Notification
from app.models.user import User
from app.services import user_store


def add_notification(
    user: User,
    title: str,
    message: str,
    type: str = "info",
    action_url: str | None = None,
) -> Notification:
    """Append to the user's notifications (not saved); drop the oldest beyond the cap."""
    notification = Notification(title=title, message=message, type=type, action_url=action_url)
    user.notifications.append(notification)
    cap = get_settings().notification_cap
    if len(user.notifications) > cap:
        user.notifications = user.notifications[-cap:]
    return notification


async def list_notifications(user_id: PydanticObjectId, unread_only: bool = False) -> list[Notification]:
    """Newest first."""
    user = await user_store.load_user(user_id)
    items = [n for n in user.notifications if not (unread_only and n.read)]
    return list(reversed(items))


async def mark_read(user_id: PydanticObjectId, notification_id: str) -> bool:
    """Mark one notification read. Unknown ids are a no-op; returns whether one was found."""
    user = await user_store.load_user(user_id)
    for n in user.notifications:
        if n.id == notification_id:
            if not n.read:
                n.read = True
                await user_store.save_user(user)
            return True
    return False
