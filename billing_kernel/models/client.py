"""
Module: billing_kernel.models.client
Responsibility: ORM persistence for client-level billing settings (tax rate,
    default tax mode, exemption).
Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from decimal import Decimal

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from billing_kernel.db.base import TrackedBase


class ClientModel(TrackedBase):
    """
    A billed client.

    Guarantees:
        - tax_rate is a fraction (0.0825 for 8.25%) with six places.
        - default_tax_mode is NULL (use configured default), "pre-tax" or
          "tax-included"; never "inherit-client".
    """

    __tablename__ = "billing_clients"

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    tax_rate: Mapped[Decimal] = mapped_column(
        Numeric(9, 6),
        nullable=False,
        default=Decimal("0"),
    )

    default_tax_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)

    tax_exempt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    facilities: Mapped[list["FacilityProfileModel"]] = relationship(
        "FacilityProfileModel",
        back_populates="client",
        order_by="FacilityProfileModel.sort_order",
    )

    def __repr__(self) -> str:
        return f"<ClientModel {self.name}>"
