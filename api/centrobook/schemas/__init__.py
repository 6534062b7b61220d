"""Pydantic schemas for API serialisation."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from centrobook.models.reservation import PaymentMethod


class CamelModel(BaseModel):
    """Request bodies arrive camelCase from the back office; snake_case also accepted."""

    model_config = ConfigDict(populate_by_name=True)


# --- Operating hours ---


class DayHoursIn(BaseModel):
    open: str | None = None
    close: str | None = None
    closed: bool | None = None


class ExceptionIn(BaseModel):
    """A dated override. Either `ranges` or the legacy single `start`/`end` pair."""

    date: date
    closed: bool = False
    ranges: list[dict] | None = None
    start: str | None = None
    end: str | None = None


class OperatingHoursIn(BaseModel):
    weekly_schedule: dict[str, DayHoursIn] | None = None
    slot_minutes: int | None = None
    timezone: str | None = None
    day_start: str | None = None
    night_start: str | None = None
    exceptions: list[ExceptionIn] | None = None


class OperatingHoursOut(BaseModel):
    center_id: int
    weekly_schedule: dict[str, dict]
    exceptions: list[dict]
    slot_minutes: int
    timezone: str
    day_start: str
    night_start: str


# --- Availability ---


class SlotOut(BaseModel):
    start: datetime
    end: datetime
    available: bool


class SummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total: int
    available: int
    occupied: int


class AvailabilityOut(BaseModel):
    court_id: int
    date: date
    slots: list[SlotOut]
    summary: SummaryOut


class DurationWindowOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: datetime
    end: datetime
    duration_minutes: int
    available: bool
    label: str


class DurationWindowsOut(BaseModel):
    court_id: int
    date: date
    duration: int
    windows: list[DurationWindowOut]
    summary: SummaryOut


# --- Pricing ---


class PricingRequest(CamelModel):
    court_id: int = Field(alias="courtId")
    start_time: datetime = Field(alias="startTime")
    duration: int = Field(gt=0)
    user_id: int | None = Field(default=None, alias="userId")
    lighting_selected: bool = Field(default=False, alias="lightingSelected")


class BreakdownLineOut(BaseModel):
    description: str
    amount: float


class LightingOut(BaseModel):
    selected: bool
    extra: float
    policy: str


class PricingOut(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    base_price: float = Field(alias="basePrice")
    final_price: float = Field(alias="finalPrice")
    breakdown: list[BreakdownLineOut]
    tax_rate: float | None = Field(default=None, alias="taxRate")
    tax_amount: float | None = Field(default=None, alias="taxAmount")
    multiplier: float = 1.0
    member_discount: float = Field(default=0.0, alias="memberDiscount")
    applied_rules: list[str] = Field(default_factory=list, alias="appliedRules")
    lighting: LightingOut | None = None


class PricingResponse(BaseModel):
    pricing: PricingOut


# --- Reservations (back office) ---


class NewUserIn(CamelModel):
    email: EmailStr
    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(default="", alias="lastName")
    phone: str | None = None


class PaymentIn(BaseModel):
    method: PaymentMethod = PaymentMethod.PENDING
    amount: Decimal | None = None
    reason: str | None = None
    details: dict | None = None


class PricingOverrideIn(BaseModel):
    amount: Decimal = Field(allow_inf_nan=False)
    reason: str | None = None


class ReservationCreate(CamelModel):
    user_id: int | None = Field(default=None, alias="userId")
    new_user: NewUserIn | None = Field(default=None, alias="newUser")
    court_id: int = Field(alias="courtId")
    start_time: datetime = Field(alias="startTime")
    duration: int
    notes: str | None = None
    payment: PaymentIn = Field(default_factory=PaymentIn)
    pricing_override: PricingOverrideIn | None = Field(default=None, alias="pricingOverride")
    send_notifications: bool = Field(default=False, alias="sendNotifications")
    lighting_selected: bool = Field(default=False, alias="lightingSelected")


class ReservationOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    center_id: int
    court_id: int
    user_id: int
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    payment_method: str
    payment_status: str
    total_price: float
    override_amount: float | None
    override_reason: str | None
    notes: str | None


class SuggestionRequest(CamelModel):
    court_id: int = Field(alias="courtId")
    date: date
    time: str
    duration: int | None = None


class SuggestionOut(BaseModel):
    date: date
    start: datetime
    end: datetime
    label: str
    distance_minutes: int
    price: float | None


class SuggestionsOut(BaseModel):
    court_id: int
    suggestions: list[SuggestionOut]
