"""Business (tenant) and payroll settings models."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staffma_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from staffma_payroll.models.employee import Employee


class Business(Base, TimestampMixin):
    """A tenant business. ``created_at`` is its registration date."""

    __tablename__ = "business"

    business_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    region: Mapped[str] = mapped_column(String, nullable=False, default="Kenya")
    business_type: Mapped[str] = mapped_column(String, nullable=False, default="Small Business")
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")

    # Relationships
    employees: Mapped[list[Employee]] = relationship(back_populates="business")
    payroll_settings: Mapped[PayrollSettings | None] = relationship(
        back_populates="business", uselist=False
    )


class PayrollSettings(Base, TimestampMixin):
    """Per-business payroll configuration.

    Rules and brackets are stored as JSON lists of plain dicts, e.g.
    ``{"name": "Housing", "type": "percentage", "value": "15", "enabled": true}``
    and ``{"lower_bound": "0", "upper_bound": "24000", "rate": "10", "enabled": true}``.
    """

    __tablename__ = "payroll_settings"

    payroll_settings_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    business_id: Mapped[UUID] = mapped_column(
        ForeignKey("business.business_id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="KES")
    allowances: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    custom_deductions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    tax_brackets: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    # Where the brackets came from
    tax_region: Mapped[str] = mapped_column(String, nullable=False, default="")
    tax_business_type: Mapped[str] = mapped_column(String, nullable=False, default="")
    tax_source: Mapped[str] = mapped_column(String, nullable=False, default="")
    brackets_updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    business: Mapped[Business] = relationship(back_populates="payroll_settings")
