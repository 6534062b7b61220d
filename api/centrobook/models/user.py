"""User and center staff models.

User = a person who can be booked for (global, can play at many centers).
CenterStaff = the link between a user and a center they help run.
"""

import enum
from datetime import date

from sqlalchemy import Boolean, Date, Enum, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from centrobook.models.base import Base, TimestampMixin


class UserRole(enum.StrEnum):
    """Global platform roles."""

    USER = "user"
    STAFF = "staff"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class CenterRole(enum.StrEnum):
    """Roles within a center."""

    RECEPTION = "reception"
    MANAGER = "manager"


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(254), unique=True, nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    role: Mapped[UserRole] = mapped_column(
        Enum(UserRole, name="user_role", values_callable=lambda e: [x.value for x in e]),
        default=UserRole.USER,
        nullable=False,
    )

    # Club membership, valid through this date (inclusive)
    member_until: Mapped[date | None] = mapped_column(Date)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), default="", nullable=False)
    phone: Mapped[str | None] = mapped_column(String(50))

    # Relationships
    center_roles: Mapped[list["CenterStaff"]] = relationship(back_populates="user", lazy="selectin")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User {self.email}>"


class CenterStaff(TimestampMixin, Base):
    """Links a staff user to a center with a role."""

    __tablename__ = "center_staff"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    center_id: Mapped[int] = mapped_column(ForeignKey("centers.id"), nullable=False)
    role: Mapped[CenterRole] = mapped_column(
        Enum(CenterRole, name="center_role", values_callable=lambda e: [x.value for x in e]),
        default=CenterRole.RECEPTION,
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Relationships
    user: Mapped["User"] = relationship(back_populates="center_roles")

    __table_args__ = (Index("ix_center_staff_user_center", "user_id", "center_id", unique=True),)

    def __repr__(self) -> str:
        return f"<CenterStaff user={self.user_id} center={self.center_id} {self.role.value}>"
