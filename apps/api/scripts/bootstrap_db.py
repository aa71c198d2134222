"""Create database schema and seed a sample host, property and rooms for development."""
from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal

from sqlalchemy import delete

from app.db.session import SessionLocal, engine
from app.models.availability import AvailabilityOverride, AvailabilityStatus
from app.models.base import Base
from app.models.property import Property
from app.models.room import Room
from app.models.user import User, UserRole

USERS = [
	{
		"id": "user-host-maya",
		"email": "maya.host@example.com",
		"first_name": "Maya",
		"last_name": "Ortiz",
		"role": UserRole.HOST,
	},
	{
		"id": "user-guest-sam",
		"email": "sam.guest@example.com",
		"first_name": "Sam",
		"last_name": "Patel",
		"role": UserRole.GUEST,
	},
	{
		"id": "user-admin-ops",
		"email": "ops.admin@example.com",
		"first_name": "Ops",
		"last_name": "Admin",
		"role": UserRole.ADMIN,
	},
]

PROPERTIES = [
	{
		"id": "prop-harbour-house",
		"host_id": "user-host-maya",
		"name": "Harbour House",
		"address": "14 Quay Street",
		"city": "Lisbon",
		"country": "Portugal",
		"policies": {
			"fees": [{"name": "cleaning", "amount": "35.00"}],
			"house_rules": ["No smoking", "Quiet hours after 22:00"],
			"check_in_time": "15:00",
			"check_out_time": "11:00",
		},
		"rooms": [
			{
				"id": "room-harbour-101",
				"name": "Harbour View Double",
				"room_type": "double",
				"max_occupancy": 2,
				"price_per_night": Decimal("100.00"),
				"beds": [{"type": "queen", "count": 1}],
				"amenities": ["wifi", "balcony", "air_conditioning"],
				"images": ["https://picsum.photos/seed/harbour101/800/600"],
				"overrides": [
					(date(2025, 12, 24), AvailabilityStatus.AVAILABLE, Decimal("180.00"), "Christmas Eve"),
					(date(2025, 12, 25), AvailabilityStatus.AVAILABLE, Decimal("180.00"), "Christmas Day"),
					(date(2026, 1, 10), AvailabilityStatus.MAINTENANCE, None, "Repainting"),
				],
			},
			{
				"id": "room-harbour-201",
				"name": "Family Loft",
				"room_type": "family",
				"max_occupancy": 4,
				"price_per_night": Decimal("165.00"),
				"beds": [{"type": "king", "count": 1}, {"type": "bunk", "count": 1}],
				"amenities": ["wifi", "kitchen"],
				"images": ["https://picsum.photos/seed/harbour201/800/600"],
				"overrides": [],
			},
		],
	},
]


async def create_schema() -> None:
	"""Create the database schema if it does not already exist."""

	async with engine.begin() as conn:
		await conn.run_sync(Base.metadata.create_all)


async def seed_users() -> None:
	"""Insert or update demo accounts."""

	async with SessionLocal() as session:
		async with session.begin():
			for user_data in USERS:
				user = await session.get(User, user_data["id"])
				if user is None:
					session.add(User(**user_data))
				else:
					for key, value in user_data.items():
						setattr(user, key, value)


async def seed_properties() -> None:
	"""Insert or update demo properties, rooms, and calendar overrides."""

	async with SessionLocal() as session:
		async with session.begin():
			for prop in PROPERTIES:
				property_obj = await session.get(Property, prop["id"])
				if property_obj is None:
					property_obj = Property(id=prop["id"])
					session.add(property_obj)
				property_obj.host_id = prop["host_id"]
				property_obj.name = prop["name"]
				property_obj.address = prop["address"]
				property_obj.city = prop["city"]
				property_obj.country = prop["country"]
				property_obj.policies_json = prop["policies"]

				for room_data in prop["rooms"]:
					fields = {key: value for key, value in room_data.items() if key not in ("id", "overrides")}
					room = await session.get(Room, room_data["id"])
					if room is None:
						room = Room(id=room_data["id"], property_id=prop["id"])
						session.add(room)
					for key, value in fields.items():
						setattr(room, key, value)
					room.property_id = prop["id"]

					await session.execute(
						delete(AvailabilityOverride).where(AvailabilityOverride.room_id == room_data["id"])
					)
					for day, status, price, notes in room_data["overrides"]:
						session.add(
							AvailabilityOverride(
								room_id=room_data["id"],
								day=day,
								status=status,
								price=price,
								notes=notes,
							)
						)


async def main() -> None:
	await create_schema()
	await seed_users()
	await seed_properties()
	print("Database schema ensured and demo data seeded.")


if __name__ == "__main__":
	asyncio.run(main())
