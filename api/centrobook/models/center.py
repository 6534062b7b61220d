"""Center and court models.

Center = a sports center (tenant) with its own timezone, operating hours and taxes.
Court = an individual bookable court at a center, with its own hourly rate.
PricingRule = a conditional price adjustment on one court (peak hours, weekends, season).

Operating hours, slot size, date exceptions and tax settings live in the
center's settings JSONB (see services.operating_hours.config_from_center).
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from centrobook.models.base import Base, TimestampMixin


class Center(TimestampMixin, Base):
    __tablename__ = "centers"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Contact
    address: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(String(254))
    phone: Mapped[str | None] = mapped_column(String(50))

    # Wall clock: every HH:MM in settings is local to this zone
    timezone: Mapped[str] = mapped_column(String(64), default="Europe/Madrid", nullable=False)
    day_start: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    night_start: Mapped[str | None] = mapped_column(String(5))  # HH:MM

    # operating_hours, slot_minutes, exceptions, taxes
    settings: Mapped[dict | None] = mapped_column(JSONB, default=dict)

    # Relationships
    courts: Mapped[list["Court"]] = relationship(back_populates="center", lazy="selectin")

    def __repr__(self) -> str:
        return f"<Center {self.slug}>"


class Court(TimestampMixin, Base):
    """A bookable court (padel, tennis, football...) at a center."""

    __tablename__ = "courts"

    id: Mapped[int] = mapped_column(primary_key=True)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sport: Mapped[str] = mapped_column(String(50), default="padel", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Pricing (Numeric so rates come back as Decimal, never float)
    hourly_rate: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)
    has_lighting: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    lighting_extra_per_hour: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))

    # Display ordering
    sort_order: Mapped[int] = mapped_column(default=0, nullable=False)

    # Relationships
    center: Mapped["Center"] = relationship(back_populates="courts")
    pricing_rules: Mapped[list["PricingRule"]] = relationship(
        back_populates="court", lazy="selectin", order_by="PricingRule.name"
    )

    __table_args__ = (Index("ix_courts_center", "center_id", "sort_order"),)

    def __repr__(self) -> str:
        return f"<Court {self.name} @ center {self.center_id}>"


class PricingRule(TimestampMixin, Base):
    """Multiplier and member discount applied when a booking matches the conditions.

    Empty days_of_week means every day. The season applies only when both
    bounds are set. Times are local to the center.
    """

    __tablename__ = "pricing_rules"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Conditions
    time_start: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    time_end: Mapped[str | None] = mapped_column(String(5))  # HH:MM
    days_of_week: Mapped[list[int]] = mapped_column(JSONB, default=list)  # ISO: 1 = Monday, 7 = Sunday
    season_start: Mapped[date | None] = mapped_column(Date)
    season_end: Mapped[date | None] = mapped_column(Date)

    # Adjustment
    price_multiplier: Mapped[Decimal] = mapped_column(Numeric(5, 2), default=1, nullable=False)
    member_discount: Mapped[Decimal] = mapped_column(Numeric(4, 3), default=0, nullable=False)  # 0..1

    court: Mapped["Court"] = relationship(back_populates="pricing_rules")

    __table_args__ = (Index("ix_pricing_rules_court", "court_id", "is_active"),)

    def __repr__(self) -> str:
        return f"<PricingRule {self.name} x{self.price_multiplier} @ court {self.court_id}>"
