"""
Seed Script

Creates the tables and fills an empty database with an admin account,
sample customers, menu categories, menu items and dining tables.
Existing rows (matched by email, name or table number) are skipped.

Run from project root: python scripts/seed.py [admin_email] [admin_password]
"""

import argparse
import asyncio
import logging
import os
import sys
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import select

from qrmenu.core.config import get_settings, setup_logging
from qrmenu.database import async_session_maker, engine, init_db
from qrmenu.models import MenuCategory, MenuItem, Table, User, UserRole
from qrmenu.services.auth import hash_password
from qrmenu.services.tables import assign_slug

logger = logging.getLogger("qrmenu.seed")

CATEGORIES = [
    {"name": "Appetizers", "display_order": 1, "description": "Small plates to start"},
    {"name": "Salads", "display_order": 2, "description": "Fresh and crisp"},
    {"name": "Main Course", "display_order": 3, "description": "Hearty mains"},
    {"name": "Beverages", "display_order": 4, "description": "Hot and cold drinks"},
    {"name": "Desserts", "display_order": 5, "description": "Something sweet"},
]

MENU_ITEMS = [
    {
        "name": "Classic Cheeseburger",
        "description": "Juicy beef patty with cheddar cheese, lettuce, tomato, and our special sauce.",
        "price": "8.99", "category": "Main Course",
        "tags": ["beef", "burger", "classic"], "allergens": ["dairy", "gluten"],
        "preparation_time": 20, "calories": 650,
    },
    {
        "name": "Margherita Pizza",
        "description": "Fresh mozzarella, tomatoes, and basil on a thin crust.",
        "price": "10.50", "category": "Main Course",
        "tags": ["pizza", "italian", "cheese"], "allergens": ["dairy", "gluten"],
        "preparation_time": 25, "calories": 700, "is_vegetarian": True,
    },
    {
        "name": "Caesar Salad",
        "description": "Crisp romaine lettuce with Caesar dressing, croutons, and parmesan.",
        "price": "7.50", "category": "Salads",
        "tags": ["salad", "healthy"], "allergens": ["dairy", "gluten", "egg"],
        "preparation_time": 10, "calories": 350, "is_vegetarian": True,
    },
    {
        "name": "Garlic Bread",
        "description": "Toasted baguette with garlic butter and herbs.",
        "price": "4.25", "category": "Appetizers",
        "tags": ["bread", "vegetarian"], "allergens": ["dairy", "gluten"],
        "preparation_time": 8, "calories": 300, "is_vegetarian": True,
    },
    {
        "name": "Fresh Lemonade",
        "description": "Squeezed to order with a hint of mint.",
        "price": "3.00", "category": "Beverages",
        "tags": ["cold", "drink"], "allergens": [],
        "preparation_time": 3, "calories": 120,
        "is_vegetarian": True, "is_vegan": True, "is_gluten_free": True,
    },
    {
        "name": "Chocolate Lava Cake",
        "description": "Warm chocolate cake with a molten center, served with vanilla ice cream.",
        "price": "6.50", "category": "Desserts",
        "tags": ["dessert", "chocolate", "sweet"], "allergens": ["dairy", "gluten", "egg"],
        "preparation_time": 15, "calories": 540, "is_vegetarian": True,
    },
]

TABLES = [
    {"number": "T1", "capacity": 4, "location": "Main Dining"},
    {"number": "T2", "capacity": 4, "location": "Main Dining"},
    {"number": "T3", "capacity": 2, "location": "Patio"},
    {"number": "T4", "capacity": 6, "location": "Main Dining"},
    {"number": "T5", "capacity": 4, "location": "Patio"},
    {"number": "T6", "capacity": 8, "location": "VIP Room"},
]

CUSTOMERS = [
    {"name": "Rohan Mehta", "email": "rohan.mehta@example.com", "password": "rohan123"},
    {"name": "Sneha Kapoor", "email": "sneha.kapoor@example.com", "password": "sneha123"},
]


async def seed(admin_email: str, admin_password: str) -> None:
    settings = get_settings()
    await init_db()

    async with async_session_maker() as db:
        users = [
            {"name": "Admin User", "email": admin_email, "password": admin_password, "role": UserRole.ADMIN},
            {"name": "Kitchen Staff", "email": "staff@restaurant.com", "password": "staff123", "role": UserRole.STAFF},
            *({**c, "role": UserRole.CUSTOMER} for c in CUSTOMERS),
        ]
        for data in users:
            if await db.scalar(select(User).where(User.email == data["email"])):
                logger.info(f"User {data['email']} already exists, skipping")
                continue
            db.add(User(
                name=data["name"],
                email=data["email"],
                password_hash=hash_password(data["password"], settings.bcrypt_rounds),
                role=data["role"],
            ))
            logger.info(f"User {data['email']} created ({data['role'].value})")

        categories = {}
        for data in CATEGORIES:
            category = await db.scalar(select(MenuCategory).where(MenuCategory.name == data["name"]))
            if category is None:
                category = MenuCategory(**data)
                db.add(category)
                logger.info(f"Category '{data['name']}' created")
            categories[data["name"]] = category
        await db.flush()

        for data in MENU_ITEMS:
            if await db.scalar(select(MenuItem).where(MenuItem.name == data["name"])):
                continue
            values = {k: v for k, v in data.items() if k not in ("category", "price")}
            db.add(MenuItem(
                **values,
                price=Decimal(data["price"]),
                category_id=categories[data["category"]].id,
            ))
            logger.info(f"Menu item '{data['name']}' created")

        for data in TABLES:
            if await db.scalar(select(Table).where(Table.number == data["number"])):
                continue
            table = assign_slug(Table(**data))
            db.add(table)
            logger.info(f"Table {table.number} created -> {settings.frontend_url}/m/{table.qr_slug}")

        await db.commit()

    await engine.dispose()
    logger.info("Seeding complete")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the QR menu database")
    parser.add_argument("admin_email", nargs="?", default="admin@restaurant.com")
    parser.add_argument("admin_password", nargs="?", default="admin123")
    args = parser.parse_args()

    setup_logging()
    asyncio.run(seed(args.admin_email, args.admin_password))
