"""
Module: billing_kernel.models.monthly_override
Responsibility: ORM persistence for single-month exceptions to a facility
    profile.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one override per (facility_profile_id, year, month)
      (uq_override_facility_period).

Failure modes:
    - IntegrityError on a duplicate (facility, year, month); the registry
      service translates it to DuplicateOverrideError.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from billing_kernel.db.base import TrackedBase, UUIDString


class MonthlyOverrideModel(TrackedBase):
    """
    One month's override.  NULL columns (and an empty day list) inherit
    from the profile.
    """

    __tablename__ = "monthly_overrides"

    __table_args__ = (
        UniqueConstraint(
            "facility_profile_id", "year", "month",
            name="uq_override_facility_period",
        ),
        Index("idx_override_period", "year", "month"),
    )

    facility_profile_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("facility_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )

    year: Mapped[int] = mapped_column(Integer, nullable=False)

    month: Mapped[int] = mapped_column(Integer, nullable=False)

    override_status: Mapped[str | None] = mapped_column(String(20), nullable=True)

    override_rate: Mapped[Decimal | None] = mapped_column(nullable=True)

    override_frequency: Mapped[int | None] = mapped_column(Integer, nullable=True)

    override_days_of_week: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    pause_start_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    pause_end_day: Mapped[int | None] = mapped_column(Integer, nullable=True)

    override_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<MonthlyOverrideModel {self.facility_profile_id} "
            f"{self.year}-{self.month:02d}>"
        )
