"""
Audit logging utilities.

Every closeout mutation is logged in the same transaction as the change.
"""

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit import AuditAction, AuditLog


def _jsonable(value: Any) -> Any:
    """Decimals are stored as strings so amounts survive JSON columns exactly."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value


async def log_action(
    db: AsyncSession,
    event_id: int,
    action: AuditAction,
    actor_id: Optional[str] = None,
    target_type: Optional[str] = None,
    target_id: Optional[int] = None,
    action_metadata: Optional[dict[str, Any]] = None,
    ip_address: Optional[str] = None,
) -> AuditLog:
    """
    Log an auditable closeout action.

    Args:
        db: Database session
        event_id: Event the action belongs to
        action: Type of action being performed
        actor_id: Operator performing the action
        target_type: Type of entity affected (e.g., "promoter", "closure")
        target_id: ID of the affected entity
        action_metadata: Before/after values and reasons
        ip_address: Client IP address

    Returns:
        Created AuditLog entry
    """
    log_entry = AuditLog(
        actor_id=actor_id,
        event_id=event_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        action_metadata=_jsonable(action_metadata) if action_metadata else None,
        ip_address=ip_address,
    )
    db.add(log_entry)
    # Note: commit should happen in the calling context
    return log_entry


def get_client_ip(request) -> Optional[str]:
    """
    Extract client IP from request.

    Handles X-Forwarded-For header for reverse proxy setups.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # First IP in the list is the client
        return forwarded_for.split(",")[0].strip()

    if hasattr(request, "client") and request.client:
        return request.client.host

    return None
