"""
Audit logging service for tracking marketplace state changes.

Entries are written after the owning transaction has committed, so a
rolled-back operation never leaves an audit record behind. A failed audit
write is logged and does not fail the already-committed operation.
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from sqlalchemy.exc import SQLAlchemyError
from backend.app.models.audit_log import AuditLog

logger = logging.getLogger("livestock.audit")


# Audit event constants
class AuditAction:
    """Standardized audit action constants."""
    # Loads
    LOAD_CREATED = "LOAD_CREATED"
    LOAD_DELETED = "LOAD_DELETED"
    LOAD_ASSIGNED = "LOAD_ASSIGNED"

    # Trips
    TRIP_STATUS_CHANGED = "TRIP_STATUS_CHANGED"
    PRE_TRIP_CHECK_SAVED = "PRE_TRIP_CHECK_SAVED"
    EPOD_CAPTURED = "EPOD_CAPTURED"
    EXPENSE_RECORDED = "EXPENSE_RECORDED"

    # Payments
    PAYMENT_FUNDED = "PAYMENT_FUNDED"
    PAYMENT_RELEASED = "PAYMENT_RELEASED"
    DISPUTE_OPENED = "DISPUTE_OPENED"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_id: Optional[int] = None,
    actor_username: Optional[str] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """
    Log a marketplace event to the audit log.

    Args:
        db: Database session
        action: Action being performed (use AuditAction constants)
        actor_id: ID of user performing the action
        actor_username: Username of actor
        entity_type: Kind of record acted upon ("load", "trip", "payment", ...)
        entity_id: ID of that record
        metadata: Additional context as JSON

    Returns:
        Created AuditLog instance
    """
    audit_log = AuditLog(
        actor_id=actor_id,
        actor_username=actor_username,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        meta_data=metadata,
    )

    db.add(audit_log)
    await db.commit()
    await db.refresh(audit_log)

    return audit_log


async def log_actor_event(
    db: AsyncSession,
    action: str,
    actor: Optional[dict],
    entity_type: str,
    entity_id: int,
    metadata: Optional[Dict[str, Any]] = None,
) -> Optional[AuditLog]:
    """
    Log an event performed by an authenticated actor payload.

    The entry is written through its own session on the caller's engine, so
    a failed write leaves the caller's loaded instances intact. Returns None
    when the entry could not be stored.
    """
    actor = actor or {}
    try:
        async with AsyncSession(bind=db.bind, expire_on_commit=False) as audit_db:
            return await log_event(
                db=audit_db,
                action=action,
                actor_id=actor.get("user_id"),
                actor_username=actor.get("sub"),
                entity_type=entity_type,
                entity_id=entity_id,
                metadata=metadata,
            )
    except SQLAlchemyError:
        logger.exception("Audit entry %s for %s %s was not written", action, entity_type, entity_id)
        return None


async def get_audit_trail(
    db: AsyncSession,
    entity_type: Optional[str] = None,
    entity_id: Optional[int] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """
    Retrieve audit trail with optional filtering, newest first.
    """
    query = select(AuditLog)

    if entity_type:
        query = query.where(AuditLog.entity_type == entity_type)
    if entity_id is not None:
        query = query.where(AuditLog.entity_id == entity_id)
    if action:
        query = query.where(AuditLog.action == action)

    query = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
