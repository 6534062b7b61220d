"""Reservation and maintenance models.

A reservation holds a court for a user between two instants. Maintenance
windows take a court out of service the same way. Both are read by the
availability engine as busy intervals.
"""

import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from centrobook.models.base import Base, TimestampMixin


class ReservationStatus(enum.StrEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# A cancelled or no-show reservation frees the court
FREEING_STATUSES = (ReservationStatus.CANCELLED, ReservationStatus.NO_SHOW)


class PaymentStatus(enum.StrEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    REFUNDED = "REFUNDED"


class PaymentMethod(enum.StrEnum):
    """Methods an operator can record on a manual reservation."""

    CASH = "CASH"
    TPV = "TPV"  # card terminal at the desk
    TRANSFER = "TRANSFER"
    CREDITS = "CREDITS"
    COURTESY = "COURTESY"
    LINK = "LINK"  # payment link sent to the customer
    PENDING = "PENDING"


class MaintenanceStatus(enum.StrEnum):
    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Reservation(TimestampMixin, Base):
    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(primary_key=True)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    created_by_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))

    # When (UTC instants)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(nullable=False)

    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status", values_callable=lambda e: [x.value for x in e]),
        default=ReservationStatus.PENDING,
        nullable=False,
    )

    # Payment
    payment_method: Mapped[PaymentMethod] = mapped_column(
        Enum(PaymentMethod, name="payment_method", values_callable=lambda e: [x.value for x in e]),
        default=PaymentMethod.PENDING,
        nullable=False,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=lambda e: [x.value for x in e]),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=0, nullable=False)

    # Manual price override (delta on top of the computed total)
    override_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    override_reason: Mapped[str | None] = mapped_column(String(500))

    # Metadata
    notes: Mapped[str | None] = mapped_column(Text)
    extra: Mapped[dict | None] = mapped_column(JSONB, default=dict)

    # Relationships
    court: Mapped["Court"] = relationship()
    user: Mapped["User"] = relationship(foreign_keys=[user_id])

    __table_args__ = (
        # Overlap lookups for one court around one day
        Index("ix_reservations_court_start", "court_id", "start_time"),
        # My reservations
        Index("ix_reservations_user", "user_id", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<Reservation {self.start_time.isoformat()} +{self.duration_minutes}m court={self.court_id}>"


class MaintenanceSchedule(TimestampMixin, Base):
    """A court out of service. Open-ended windows run until the end of the day."""

    __tablename__ = "maintenance_schedules"

    id: Mapped[int] = mapped_column(primary_key=True)
    court_id: Mapped[int] = mapped_column(ForeignKey("courts.id"), nullable=False)
    status: Mapped[MaintenanceStatus] = mapped_column(
        Enum(MaintenanceStatus, name="maintenance_status", values_callable=lambda e: [x.value for x in e]),
        default=MaintenanceStatus.SCHEDULED,
        nullable=False,
    )
    scheduled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    description: Mapped[str | None] = mapped_column(Text)

    __table_args__ = (Index("ix_maintenance_court", "court_id", "scheduled_at"),)

    def __repr__(self) -> str:
        return f"<MaintenanceSchedule court={self.court_id} {self.status.value}>"


# Import for type hints
from centrobook.models.center import Court  # noqa: E402
from centrobook.models.user import User  # noqa: E402
