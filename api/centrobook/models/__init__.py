"""All models imported here for Alembic autogenerate discovery."""

from centrobook.models.base import Base
from centrobook.models.center import Center, Court, PricingRule
from centrobook.models.reservation import (
    MaintenanceSchedule,
    MaintenanceStatus,
    PaymentMethod,
    PaymentStatus,
    Reservation,
    ReservationStatus,
)
from centrobook.models.user import CenterRole, CenterStaff, User, UserRole

__all__ = [
    "Base",
    "Center",
    "Court",
    "PricingRule",
    "User",
    "UserRole",
    "CenterStaff",
    "CenterRole",
    "Reservation",
    "ReservationStatus",
    "PaymentMethod",
    "PaymentStatus",
    "MaintenanceSchedule",
    "MaintenanceStatus",
]
