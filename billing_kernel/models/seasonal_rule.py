"""
Module: billing_kernel.models.seasonal_rule
Responsibility: ORM persistence for recurring seasonal activity rules of a
    facility.
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Integer
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase, UUIDString


class SeasonalRuleModel(TrackedBase):
    """Months in which a facility runs (or pauses), optionally year-bounded."""

    __tablename__ = "seasonal_rules"

    facility_profile_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("facility_profiles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    active_months: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    paused_months: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    effective_year_start: Mapped[int | None] = mapped_column(Integer, nullable=True)

    effective_year_end: Mapped[int | None] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    facility_profile: Mapped["FacilityProfileModel"] = relationship(
        "FacilityProfileModel",
        back_populates="seasonal_rules",
    )
