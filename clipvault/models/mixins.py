"""Mixins for SQLAlchemy models."""

from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, func, true


def ensure_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from backends without timezone support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class CreatedAtMixin:
    """Mixin to add a created_at column that is set once on insert."""

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        server_default=func.now(),
        nullable=False,
    )


class ActiveMixin:
    """Mixin to add soft delete functionality through an active flag.

    Inactive records are hidden from default queries; callers that need them
    must opt in explicitly.
    """

    active = Column(Boolean, default=True, server_default=true(), nullable=False, index=True)

    @property
    def is_deleted(self) -> bool:
        """Check if the record is soft-deleted."""
        return not self.active

    def soft_delete(self) -> None:
        """Soft delete the record."""
        self.active = False

    def restore(self) -> None:
        """Restore a soft-deleted record."""
        self.active = True
