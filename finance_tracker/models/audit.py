"""
Audit Models for Finance Tracker

Every write against the ledger is logged for audit purposes.
This provides:
1. Traceability of who changed which month
2. Debugging information when the backend fails
3. A way to reconcile local state with the backend after an error

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Users
    USER_CREATED = "user_created"
    USER_SWITCHED = "user_switched"
    USER_CLEARED = "user_cleared"

    # Loading
    DATA_LOADED = "data_loaded"
    OFFLINE_FALLBACK = "offline_fallback"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Incomes
    INCOME_SAVED = "income_saved"
    INCOME_UPDATED = "income_updated"
    INCOME_DELETED = "income_deleted"

    # Expenses
    EXPENSE_SAVED = "expense_saved"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_DELETED = "expense_deleted"

    # Failures
    SAVE_FAILED = "save_failed"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'income', 'expense')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )
    user_id: Optional[UUID] = Field(
        default=None,
        description="Ledger owner the event belongs to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one form submission)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": str(self.entity_id) if self.entity_id else None,
            "user_id": str(self.user_id) if self.user_id else None,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         user_id, correlation_id, description, details_json, error_message,
         is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id else "",
            str(self.user_id) if self.user_id else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.income_saved(income_id, user_id, month, salary, correlation_id)
    """

    @staticmethod
    def user_created(
        user_id: UUID,
        name: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_CREATED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"User created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def user_switched(
        user_id: Optional[UUID],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        if user_id is None:
            return AuditEvent(
                event_type=AuditEventType.USER_CLEARED,
                correlation_id=correlation_id,
                description="Current user cleared",
                is_user_action=True,
            )
        return AuditEvent(
            event_type=AuditEventType.USER_SWITCHED,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description="Switched current user",
            is_user_action=True,
        )

    @staticmethod
    def data_loaded(
        user_id: UUID,
        income_count: int,
        expense_count: int,
        offline: bool = False,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=(
                AuditEventType.OFFLINE_FALLBACK if offline else AuditEventType.DATA_LOADED
            ),
            severity=AuditSeverity.WARNING if offline else AuditSeverity.INFO,
            entity_type="user",
            entity_id=user_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=(
                f"Loaded {income_count} incomes and {expense_count} expenses"
                + (" from offline snapshot" if offline else "")
            ),
            details={
                "income_count": income_count,
                "expense_count": expense_count,
                "offline": offline,
            },
        )

    @staticmethod
    def validation_failed(
        form: str,
        issues: list[dict],
        user_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=form,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{form.capitalize()} form rejected with {len(issues)} issues",
            details={"form": form, "issues": issues},
            is_user_action=True,
        )

    @staticmethod
    def record_written(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        user_id: Optional[UUID],
        month: str,
        amount: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        action = event_type.value.split("_")[-1]
        details = {"month": month}
        if amount is not None:
            details["amount"] = amount
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} {action} for {month}",
            details=details,
            is_user_action=True,
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        operation: str,
        error_message: str,
        user_id: Optional[UUID] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            user_id=user_id,
            correlation_id=correlation_id,
            description=f"Failed to {operation} {entity_type}",
            error_message=error_message,
            details={"operation": operation},
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
