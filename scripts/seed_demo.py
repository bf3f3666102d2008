#!/usr/bin/env python3
"""
Seed script to create a demo restaurant, staff users and its slot ledger
"""

import asyncio
import uuid

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select
    from booking_engine.config import settings as app_settings
    from booking_engine.database import SessionLocal, engine, Base
    from booking_engine.models.restaurant import Restaurant, RestaurantSettings, DEFAULT_HOURS
    from booking_engine.models.user import User, UserRole
    from booking_engine.services.ledger import generate_slots
    from booking_engine.services.policy import BookingPolicy
    
    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    
    async with SessionLocal() as db:
        # Check if demo restaurant already exists
        result = await db.execute(
            select(Restaurant).where(Restaurant.name == "Mario's Italian Kitchen")
        )
        existing = result.scalar_one_or_none()
        
        if existing:
            print("Demo data already exists. Skipping...")
            return
        
        print("Creating demo restaurant...")
        
        restaurant = Restaurant(
            id=uuid.uuid4(),
            name="Mario's Italian Kitchen",
            phone="+15551234567",
            timezone="America/New_York",
        )
        db.add(restaurant)
        await db.flush()
        
        print(f"Created restaurant: {restaurant.name} (ID: {restaurant.id})")
        
        booking_settings = RestaurantSettings(
            restaurant_id=restaurant.id,
            hours_json=dict(DEFAULT_HOURS),
            max_party_size=20,
            large_party_threshold=8,
            last_seating_offset_minutes=60,
            max_future_booking_days=30,
            slot_duration_minutes=90,
            default_slot_capacity=20,
            seating_areas=["indoor", "outdoor", "bar"],
        )
        db.add(booking_settings)
        restaurant.settings = booking_settings
        
        # Create super admin
        admin = User(
            email="admin@example.com",
            hashed_password=pwd_context.hash("admin123"),
            full_name="Admin User",
            role=UserRole.SUPER_ADMIN,
        )
        db.add(admin)
        
        # Create restaurant admin
        manager = User(
            restaurant_id=restaurant.id,
            email="mario@marios-kitchen.com",
            hashed_password=pwd_context.hash("mario123"),
            full_name="Mario Rossi",
            role=UserRole.RESTAURANT_ADMIN,
        )
        db.add(manager)
        
        # Create host
        host = User(
            restaurant_id=restaurant.id,
            email="host@marios-kitchen.com",
            hashed_password=pwd_context.hash("host123"),
            full_name="Front Desk",
            role=UserRole.STAFF,
        )
        db.add(host)
        await db.flush()
        
        policy = BookingPolicy.for_restaurant(restaurant)
        created = await generate_slots(db, restaurant, policy, app_settings.slot_generation_days)
        
        await db.commit()
        
        print(f"""
Demo data created successfully!

Restaurant: Mario's Italian Kitchen
  ID: {restaurant.id}
  Timezone: {restaurant.timezone}

Users:
  Super Admin:
    Email: admin@example.com
    Password: admin123
  
  Restaurant Admin:
    Email: mario@marios-kitchen.com
    Password: mario123
  
  Host:
    Email: host@marios-kitchen.com
    Password: host123

Ledger: {created} slots created for the next {app_settings.slot_generation_days} days
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())
