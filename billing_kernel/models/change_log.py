"""
Module: billing_kernel.models.change_log
Responsibility: Append-only record of every billing registry mutation.
Architecture position: Kernel > Models.  May import from db/base.py only.

Audit relevance:
    One row per create / update / status change / delete of a facility
    profile, monthly override or seasonal rule, with the old and new field
    values and the acting user.  Rows are never updated.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import Base, UUIDString


class ChangeEntityType(str, Enum):
    CLIENT = "client"
    FACILITY_PROFILE = "facility_profile"
    MONTHLY_OVERRIDE = "monthly_override"
    SEASONAL_RULE = "seasonal_rule"


class ChangeAction(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    STATUS_CHANGE = "status_change"
    DELETE = "delete"


class ChangeLogModel(Base):
    """
    Audit trail entry.

    ``created_at`` comes from the service's injected clock, not the
    database, so tests can assert on it.
    """

    __tablename__ = "billing_change_log"

    __table_args__ = (
        Index("idx_change_log_client_created", "client_id", "created_at"),
        Index("idx_change_log_entity", "entity_type", "entity_id"),
    )

    entity_type: Mapped[str] = mapped_column(String(30), nullable=False)

    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    client_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    action: Mapped[str] = mapped_column(String(20), nullable=False)

    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<ChangeLogModel {self.entity_type}:{self.entity_id} {self.action}>"
