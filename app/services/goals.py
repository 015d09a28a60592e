"""Savings goals kept on the user aggregate."""

from datetime import datetime
from typing import Any

from beanie import PydanticObjectId

from app.core.exceptions import BadRequestError, NotFoundError
from app.models.profile import SavingsGoal
from app.services import user_store
from app.services.amounts import parse_amount


async def create_goal(
    user_id: PydanticObjectId,
    name: str,
    target_amount: Any,
    target_date: datetime,
    color: str | None = None,
    icon: str | None = None,
) -> list[SavingsGoal]:
    if not (name or "").strip():
        raise BadRequestError("Goal name is required")
    goal = SavingsGoal(
        name=name.strip(),
        target_amount=parse_amount(target_amount, field="target_amount"),
        target_date=target_date,
    )
    if color:
        goal.color = color
    if icon:
        goal.icon = icon
    user = await user_store.load_user(user_id)
    user.savings_goals.append(goal)
    await user_store.save_user(user)
    return user.savings_goals


async def update_goal_progress(user_id: PydanticObjectId, goal_id: str, current_amount: Any) -> SavingsGoal:
    """Set the saved amount; reaching the target completes the goal."""
    amount = parse_amount(current_amount, field="current_amount", positive=False)
    if amount < 0:
        raise BadRequestError("Current amount cannot be negative")
    user = await user_store.load_user(user_id)
    goal = next((g for g in user.savings_goals if g.id == goal_id), None)
    if goal is None:
        raise NotFoundError("Goal not found")
    goal.current_amount = amount
    if goal.current_amount >= goal.target_amount:
        goal.status = "completed"
    await user_store.save_user(user)
    return goal
