"""Seed the database with a demo padel center.

Run with: python -m scripts.seed
Creates the center with its operating hours and taxes, its courts, and staff
users. Prints a bearer token for each staff user, since this API only reads
tokens issued elsewhere.
"""

import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import select

from centrobook.core.auth import create_access_token
from centrobook.core.database import async_session_factory, engine
from centrobook.models import Base, Center, CenterRole, CenterStaff, Court, PricingRule, User, UserRole
from centrobook.services.operating_hours import normalize_config

CENTER = {
    "name": "Centro Deportivo Las Rozas",
    "slug": "las-rozas",
    "email": "recepcion@lasrozas.example",
    "phone": "+34 910 000 000",
    "address": "Calle del Deporte 1, Las Rozas de Madrid",
    "timezone": "Europe/Madrid",
}

# Weekdays 08:00-23:00, weekends 09:00-21:00, slots of 30 minutes
HOURS = {
    "weekly_schedule": {
        **{day: {"open": "08:00", "close": "23:00"} for day in ("monday", "tuesday", "wednesday", "thursday", "friday")},
        "saturday": {"open": "09:00", "close": "21:00"},
        "sunday": {"open": "9am", "close": "9pm"},
    },
    "slot_minutes": 30,
    "day_start": "07:00",
    "night_start": "19:00",
    "exceptions": [
        {"date": "2026-12-25", "closed": True},
        {"date": "2026-12-24", "ranges": [{"start": "09:00", "end": "14:00"}]},
    ],
}

TAXES = {"rate": 21, "included": True}

# Padel courts 1-4 are floodlit; the tennis court is not
COURTS = [
    {"name": "Pista Pádel 1", "sport": "padel", "hourly_rate": Decimal("20.00"), "lighting": Decimal("5.00")},
    {"name": "Pista Pádel 2", "sport": "padel", "hourly_rate": Decimal("20.00"), "lighting": Decimal("5.00")},
    {"name": "Pista Pádel 3", "sport": "padel", "hourly_rate": Decimal("18.00"), "lighting": Decimal("5.00")},
    {"name": "Pista Pádel 4", "sport": "padel", "hourly_rate": Decimal("18.00"), "lighting": Decimal("4.50")},
    {"name": "Pista Tenis", "sport": "tennis", "hourly_rate": Decimal("14.00"), "lighting": None},
]

# Applied to every padel court
PADEL_RULES = [
    {
        "name": "Hora punta",
        "time_start": "18:00",
        "time_end": "22:00",
        "days_of_week": [1, 2, 3, 4, 5],
        "price_multiplier": Decimal("1.25"),
        "member_discount": Decimal("0.10"),
    },
    {
        "name": "Fin de semana",
        "days_of_week": [6, 7],
        "price_multiplier": Decimal("1.10"),
        "member_discount": Decimal("0.10"),
    },
]


async def seed():
    # Create tables (in dev; production uses migrations)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        # Check if already seeded
        result = await db.execute(select(Center).where(Center.slug == CENTER["slug"]))
        if result.scalar_one_or_none():
            print("Database already seeded, skipping.")
            return

        config = normalize_config(HOURS).to_dict()
        center = Center(
            **CENTER,
            day_start=config["day_start"],
            night_start=config["night_start"],
            settings={
                "operating_hours": config["weekly_schedule"],
                "slot_minutes": config["slot_minutes"],
                "exceptions": config["exceptions"],
                "taxes": TAXES,
            },
        )
        db.add(center)
        await db.flush()

        for i, court_data in enumerate(COURTS):
            court = Court(
                center_id=center.id,
                name=court_data["name"],
                sport=court_data["sport"],
                hourly_rate=court_data["hourly_rate"],
                has_lighting=court_data["lighting"] is not None,
                lighting_extra_per_hour=court_data["lighting"],
                sort_order=i,
            )
            if court_data["sport"] == "padel":
                court.pricing_rules = [PricingRule(**rule) for rule in PADEL_RULES]
            db.add(court)

        # Staff users
        admin = User(email="admin@centrobook.example", first_name="Platform", last_name="Admin", role=UserRole.ADMIN)
        manager = User(email="gerente@lasrozas.example", first_name="Lucía", last_name="Gerente", role=UserRole.STAFF)
        reception = User(email="recepcion@lasrozas.example", first_name="Mario", last_name="Recepción", role=UserRole.STAFF)
        customer = User(
            email="cliente@example.com", first_name="Ana", last_name="Cliente", member_until=date(2027, 12, 31)
        )
        db.add_all([admin, manager, reception, customer])
        await db.flush()

        db.add(CenterStaff(user_id=manager.id, center_id=center.id, role=CenterRole.MANAGER))
        db.add(CenterStaff(user_id=reception.id, center_id=center.id, role=CenterRole.RECEPTION))

        await db.commit()

        print(f"Seeded: {center.name} ({center.timezone})")
        print(f"  {len(COURTS)} courts, {len(PADEL_RULES)} pricing rules on each padel court")
        print(f"  {len(config['exceptions'])} date exceptions")
        print("  Staff tokens:")
        for user in (admin, manager, reception):
            print(f"    {user.email}: {create_access_token(str(user.id))}")


if __name__ == "__main__":
    asyncio.run(seed())
