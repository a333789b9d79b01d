"""
Module: billing_kernel.models.facility_profile
Responsibility: ORM persistence for the durable recurring billing and
    schedule configuration of one serviced facility.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One profile per (client, location) (uq_facility_client_location).
    - Weekday indices are stored as a JSON list of ints 0-6 (0 = Sunday);
      the registry service validates them before write.

Failure modes:
    - IntegrityError on a second profile for the same location.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase, UUIDString


class FacilityProfileModel(TrackedBase):
    """
    Facility billing profile.

    Contract:
        Mutated only by FacilityRegistryService.  ``status`` is the
        permanent status toggle; month-scoped changes live in
        MonthlyOverrideModel rows instead.
    """

    __tablename__ = "facility_profiles"

    __table_args__ = (
        UniqueConstraint("client_id", "location_id", name="uq_facility_client_location"),
    )

    client_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("billing_clients.id"),
        nullable=False,
        index=True,
    )

    location_id: Mapped[str] = mapped_column(String(64), nullable=False)

    location_name: Mapped[str] = mapped_column(String(200), nullable=False)

    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    default_monthly_rate: Mapped[Decimal] = mapped_column(nullable=False)

    rate_type: Mapped[str] = mapped_column(String(20), nullable=False, default="flat-monthly")

    tax_behavior: Mapped[str] = mapped_column(
        String(20), nullable=False, default="inherit-client",
    )

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")

    go_live_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    normal_days_of_week: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    normal_frequency_per_week: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    scope_of_work_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    seasonal_rules_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )

    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    client: Mapped["ClientModel"] = relationship(
        "ClientModel",
        back_populates="facilities",
    )

    seasonal_rules: Mapped[list["SeasonalRuleModel"]] = relationship(
        "SeasonalRuleModel",
        back_populates="facility_profile",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<FacilityProfileModel {self.location_name}: {self.status}>"
