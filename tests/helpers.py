"""Small request builders shared across test modules."""

from datetime import date, timedelta

from tableside.core.security import create_access_token
from tableside.models import User


def auth_headers(user: User) -> dict[str, str]:
    token, _ = create_access_token(user)
    return {"Authorization": f"Bearer {token}"}


def next_week() -> str:
    return (date.today() + timedelta(days=7)).isoformat()


def guest_customer(email: str = "guest@example.com") -> dict:
    return {"name": "Guest Diner", "email": email, "phone": "+1 555-222-3333"}
