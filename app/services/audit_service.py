"""Audit service for recording state changes to orders and coupons."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from app.repositories.audit_log_repository import AuditLogRepository


class AuditService:
    """Service for recording audit trail entries.

    Entries are flushed, not committed, so they land in the same transaction
    as the change they describe.
    """

    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_create(
        self,
        resource_type: str,
        resource_id: UUID,
        merchant_id: UUID | None = None,
        actor_type: str = "system",
        actor_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Log a resource creation event."""
        self.repo.create(
            merchant_id=merchant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action="created",
            changes=data or {},
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_update(
        self,
        resource_type: str,
        resource_id: UUID,
        merchant_id: UUID | None = None,
        actor_type: str = "system",
        actor_id: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> None:
        """Log a resource update event, auto-diffing changed fields."""
        old = old_data or {}
        new = new_data or {}
        changes: dict[str, Any] = {}
        all_keys = set(old.keys()) | set(new.keys())
        for key in all_keys:
            old_val = old.get(key)
            new_val = new.get(key)
            if old_val != new_val:
                changes[key] = {"old": old_val, "new": new_val}
        if not changes:
            return
        self.repo.create(
            merchant_id=merchant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action="updated",
            changes=changes,
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_status_change(
        self,
        resource_type: str,
        resource_id: UUID,
        old_status: str,
        new_status: str,
        merchant_id: UUID | None = None,
        actor_type: str = "system",
        actor_id: str | None = None,
        field: str = "status",
    ) -> None:
        """Log a status change event."""
        self.repo.create(
            merchant_id=merchant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action="status_changed",
            changes={field: {"old": old_status, "new": new_status}},
            actor_type=actor_type,
            actor_id=actor_id,
        )
