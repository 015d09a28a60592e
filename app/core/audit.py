"""Audit log for admin actions on user aggregates."""

from typing import Any

from app.models.audit_log import AuditLog


async def log_event(
    actor: str,
    event_type: str,
    user_id: str | None = None,
    entity_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> None:
    """Append to audit_logs collection."""
    await AuditLog(
        actor=actor,
        event_type=event_type,
        user_id=user_id,
        entity_id=entity_id,
        metadata=metadata or {},
    ).insert()
