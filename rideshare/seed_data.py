"""
Database seeding script for local development.

Creates an ADMIN, a DRIVER and a RIDER, one van, one route and today's
assignment of the driver on that route, so the progress flow can be tried
end to end. Run after the tables exist (the app creates them on startup).
"""

import asyncio
import sys
from datetime import datetime, timezone
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rideshare.app.db.session import AsyncSessionLocal
from rideshare.app.models.assignment import Assignment
from rideshare.app.models.assignment_enums import AssignmentStatus
from rideshare.app.models.enums import UserRole
from rideshare.app.models.route_template import RouteTemplate
from rideshare.app.models.user import User
from rideshare.app.models.vehicle import Vehicle
from rideshare.app.models.vehicle_enums import VehicleType, VehicleStatus
from rideshare.app.core.security import get_password_hash
from sqlalchemy import select

SEED_USERS = [
    ("admin", "admin123", UserRole.ADMIN),
    ("driver", "driver123", UserRole.DRIVER),
    ("rider", "rider123", UserRole.RIDER),
]


async def seed_data():
    """
    Seed one of everything needed for a ride.
    
    Skips entirely when the admin user already exists.
    """
    async with AsyncSessionLocal() as db:
        print("🌱 Starting seeding...")
        
        result = await db.execute(select(User).where(User.username == "admin"))
        if result.scalar_one_or_none():
            print("ℹ️  ADMIN user already exists, skipping seeding")
            return
        
        van = Vehicle(
            vehicle_type=VehicleType.VAN,
            model="Toyota Hiace",
            year=2021,
            color="White",
            license_plate="DHA-1001",
            capacity=12,
            is_available=True,
            status=VehicleStatus.ACTIVE
        )
        db.add(van)
        await db.flush()
        
        users = {}
        for username, password, role in SEED_USERS:
            user = User(
                email=f"{username}@rideshare.local",
                username=username,
                full_name=username.title(),
                hashed_password=get_password_hash(password),
                role=role,
                assigned_vehicle_id=van.id if role == UserRole.DRIVER else None,
                is_active=True,
                is_superuser=role == UserRole.ADMIN
            )
            db.add(user)
            users[role] = user
            print(f"✅ Created {role.value} user (username: {username}, password: {password})")
        await db.flush()
        
        route = RouteTemplate(
            name="Uttara - Motijheel",
            description="Weekday office commute",
            start_name="Uttara Sector 7",
            start_lat=23.8701,
            start_lng=90.3995,
            end_name="Motijheel",
            end_lat=23.7330,
            end_lng=90.4172,
            stops=[
                {"name": "Airport", "lat": 23.8513, "lng": 90.4085, "order": 1},
                {"name": "Banani", "lat": 23.7937, "lng": 90.4066, "order": 2},
                {"name": "Farmgate", "lat": 23.7580, "lng": 90.3897, "order": 3},
            ],
            estimated_time="60 min",
            fare="120",
            active=True
        )
        db.add(route)
        await db.flush()
        
        db.add(Assignment(
            driver_id=users[UserRole.DRIVER].id,
            route_id=route.id,
            vehicle_id=van.id,
            scheduled_date=datetime.now(timezone.utc).date(),
            scheduled_start_time="08:00",
            recurring_days=["monday", "tuesday", "wednesday", "thursday", "sunday"],
            current_stop_index=0,
            status=AssignmentStatus.SCHEDULED
        ))
        
        await db.commit()
        
        print("\n🎉 Seeding completed successfully!")
        print(f"  - Route:      {route.name} (5 stops)")
        print(f"  - Vehicle:    {van.license_plate} ({van.capacity} seats)")
        print("  - Assignment: today 08:00, recurring Sunday to Thursday")


if __name__ == "__main__":
    asyncio.run(seed_data())
