import enum
from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Enum
from sqlalchemy.orm import Mapped, mapped_column


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def touch(previous: datetime | None) -> datetime:
    """Next ``updated_at`` value, never earlier than ``previous``."""
    now = utcnow()
    previous = as_utc(previous)
    if previous is not None and previous > now:
        return previous
    return now


# ---------------------------------------------------------------------------
# Deletion policy
# ---------------------------------------------------------------------------


class DeletePolicy(enum.Enum):
    hard = "hard"
    soft = "soft"
    deactivate = "deactivate"


class HardDeletable:
    """Rows are removed; dependent rows go with them via ON DELETE CASCADE."""

    __delete_policy__ = DeletePolicy.hard


class SoftDeletable:
    """Rows are kept and stamped with ``deleted_at``."""

    __delete_policy__ = DeletePolicy.soft

    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))


class Deactivatable:
    """Rows are kept and flagged ``active = false``."""

    __delete_policy__ = DeletePolicy.deactivate

    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


def delete_policy(model) -> DeletePolicy:
    return getattr(model, "__delete_policy__", DeletePolicy.hard)


def enum_type(enum_cls, name: str) -> Enum:
    """Enum column type stored by value ("under-review", not "under_review")."""
    return Enum(
        enum_cls,
        name=name,
        values_callable=lambda members: [member.value for member in members],
        create_constraint=True,
        validate_strings=True,
    )
