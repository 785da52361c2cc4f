"""
Development Seed Data

Creates the default restaurant, one account per role, a sample menu and a
sample reservation. Safe to run repeatedly: existing rows (matched by
email, restaurant id or item name) are left untouched.

Accounts:
    admin@restaurant.com      / admin123      (admin)
    staff@restaurant.com      / staff123      (staff)
    customer@example.com      / customer123   (customer)
    jane.doe@example.com      / customer123   (customer)
"""

import logging
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tableside.core.config import get_settings
from tableside.core.security import hash_password
from tableside.models import MenuItem, Reservation, ReservationStatus, Restaurant, User, UserRole
from tableside.schemas import RestaurantSettings, UserPreferences

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"email": "admin@restaurant.com", "name": "Restaurant Admin", "password": "admin123", "role": UserRole.ADMIN},
    {"email": "staff@restaurant.com", "name": "Floor Staff", "password": "staff123", "role": UserRole.STAFF},
    {"email": "customer@example.com", "name": "John Customer", "password": "customer123", "role": UserRole.CUSTOMER},
    {"email": "jane.doe@example.com", "name": "Jane Doe", "password": "customer123", "role": UserRole.CUSTOMER},
]

SEED_MENU = [
    {
        "name": "Margherita Pizza",
        "description": "San Marzano tomatoes, fresh mozzarella and basil on a wood-fired crust",
        "price": 14.99, "category": "Pizza", "tags": ["classic", "vegetarian"],
        "ingredients": ["tomato", "mozzarella", "basil", "flour"], "allergens": ["gluten", "dairy"],
        "preparation_time": 15, "is_vegetarian": True, "is_popular": True, "sort_order": 1,
    },
    {
        "name": "Pepperoni Pizza",
        "description": "Spicy pepperoni over tomato sauce and mozzarella",
        "price": 16.99, "category": "Pizza", "tags": ["classic", "spicy"],
        "ingredients": ["pepperoni", "tomato", "mozzarella", "flour"], "allergens": ["gluten", "dairy"],
        "preparation_time": 15, "spice_level": 2, "is_popular": True, "sort_order": 2,
    },
    {
        "name": "Caesar Salad",
        "description": "Romaine, parmesan, croutons and house Caesar dressing",
        "price": 9.99, "category": "Salads", "tags": ["light"],
        "ingredients": ["romaine", "parmesan", "croutons", "anchovy"], "allergens": ["gluten", "dairy", "fish", "eggs"],
        "preparation_time": 8, "sort_order": 1,
    },
    {
        "name": "Quinoa Power Bowl",
        "description": "Quinoa, roasted chickpeas, avocado and lemon tahini",
        "price": 12.49, "category": "Bowls", "tags": ["healthy", "vegan"],
        "ingredients": ["quinoa", "chickpeas", "avocado", "tahini"], "allergens": [],
        "preparation_time": 10, "is_vegetarian": True, "is_vegan": True, "is_gluten_free": True, "sort_order": 1,
    },
    {
        "name": "Spicy Thai Curry",
        "description": "Red curry with coconut milk, vegetables and jasmine rice",
        "price": 15.49, "category": "Mains", "tags": ["spicy", "gluten-free"],
        "ingredients": ["coconut milk", "red curry paste", "rice", "vegetables"], "allergens": ["soy"],
        "preparation_time": 20, "spice_level": 4, "is_gluten_free": True, "sort_order": 1,
    },
    {
        "name": "Grilled Salmon",
        "description": "Atlantic salmon with lemon butter and seasonal greens",
        "price": 22.99, "category": "Mains", "tags": ["seafood", "healthy"],
        "ingredients": ["salmon", "butter", "lemon", "greens"], "allergens": ["fish", "dairy"],
        "preparation_time": 18, "is_gluten_free": True, "is_popular": True, "sort_order": 2,
    },
    {
        "name": "Tiramisu",
        "description": "Espresso-soaked ladyfingers layered with mascarpone",
        "price": 7.99, "category": "Desserts", "tags": ["sweet", "coffee"],
        "ingredients": ["mascarpone", "espresso", "ladyfingers", "cocoa"], "allergens": ["gluten", "dairy", "eggs"],
        "preparation_time": 5, "is_vegetarian": True, "sort_order": 1,
    },
    {
        "name": "Sparkling Lemonade",
        "description": "House-made lemonade with a splash of soda",
        "price": 3.99, "category": "Drinks", "tags": ["refreshing"],
        "ingredients": ["lemon", "sugar", "soda water"], "allergens": [],
        "preparation_time": 2, "is_vegetarian": True, "is_vegan": True, "is_gluten_free": True, "sort_order": 1,
    },
]


async def seed_database(db: AsyncSession) -> dict[str, int]:
    """
    Insert missing seed rows and commit.

    Returns:
        Count of rows created per table
    """
    settings = get_settings()
    created = {"restaurants": 0, "users": 0, "menu_items": 0, "reservations": 0}

    if await db.get(Restaurant, settings.default_restaurant_id) is None:
        db.add(Restaurant(
            id=settings.default_restaurant_id,
            name=settings.restaurant_name,
            description="Neighborhood bistro serving pizza, bowls and seasonal mains.",
            address={"street": "123 Main St", "city": "Springfield", "state": "IL", "zip_code": "62701", "country": "US"},
            phone="+1 555-123-4567",
            email="hello@restaurant.com",
            cuisine=["Italian", "American"],
            price_range="$$",
            operating_hours={
                day: {"open": f"{settings.opening_hour:02d}:00", "close": f"{settings.closing_hour:02d}:00", "closed": False}
                for day in ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")
            },
            settings=RestaurantSettings(tax_rate=settings.tax_rate).model_dump(mode="json"),
        ))
        created["restaurants"] += 1

    for spec in SEED_USERS:
        exists = await db.execute(select(User.id).where(User.email == spec["email"]))
        if exists.first() is None:
            db.add(User(
                email=spec["email"],
                name=spec["name"],
                password_hash=hash_password(spec["password"]),
                role=spec["role"],
                preferences=UserPreferences().model_dump(),
                email_verified=True,
            ))
            created["users"] += 1

    for spec in SEED_MENU:
        exists = await db.execute(
            select(MenuItem.id).where(
                MenuItem.restaurant_id == settings.default_restaurant_id,
                MenuItem.name == spec["name"],
            )
        )
        if exists.first() is None:
            db.add(MenuItem(restaurant_id=settings.default_restaurant_id, **spec))
            created["menu_items"] += 1

    existing_reservations = await db.execute(
        select(Reservation.id).where(Reservation.customer_email == "jane.doe@example.com")
    )
    if existing_reservations.first() is None:
        db.add(Reservation(
            restaurant_id=settings.default_restaurant_id,
            customer_info={"name": "Jane Doe", "email": "jane.doe@example.com", "phone": "+1 555-987-6543"},
            customer_email="jane.doe@example.com",
            party_size=4,
            date=(date.today() + timedelta(days=7)).isoformat(),
            time="19:00",
            status=ReservationStatus.CONFIRMED,
            special_requests="Window table if possible",
        ))
        created["reservations"] += 1

    await db.commit()
    logger.info(f"🌱 Seed complete: {created}")
    return created
