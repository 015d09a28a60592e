"""Ancillary sub-documents on the user: savings goals, budget, notifications, preferences."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field

from app.models.ledger import Money


def _new_id() -> str:
    return uuid.uuid4().hex


class SavingsGoal(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    target_amount: Money
    current_amount: Money = Decimal("0")
    target_date: datetime
    created_at: datetime = Field(default_factory=datetime.utcnow)
    status: Literal["active", "completed", "cancelled"] = "active"
    color: str = "#0047AB"
    icon: str = "fas fa-bullseye"


class BudgetCategory(BaseModel):
    name: str
    allocated: Money
    spent: Money = Decimal("0")
    color: str = "#0047AB"


class BudgetMonth(BaseModel):
    month: int = Field(default_factory=lambda: datetime.utcnow().month)
    year: int = Field(default_factory=lambda: datetime.utcnow().year)
    total_spent: Money = Decimal("0")


class Budget(BaseModel):
    monthly_limit: Money = Decimal("3000")
    categories: list[BudgetCategory] = Field(default_factory=list)
    current_month: BudgetMonth = Field(default_factory=BudgetMonth)


class Notification(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    message: str
    type: Literal["info", "success", "warning", "error"] = "info"
    read: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    action_url: str | None = None


class NotificationChannels(BaseModel):
    email: bool = True
    push: bool = True
    sms: bool = False


class Preferences(BaseModel):
    theme: str = "light"
    currency: str = "USD"
    language: str = "en"
    notifications: NotificationChannels = Field(default_factory=NotificationChannels)
    dashboard_widgets: list[str] = Field(
        default_factory=lambda: ["accounts", "transactions", "budget", "savings", "bitcoin"]
    )
