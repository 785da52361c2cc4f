"""
HTTP routers, one module per resource.
"""

from tableside.api import admin, ai, auth, checkout, dev, menu, orders, reservations, restaurant, reviews, users

ROUTERS = [
    auth.router,
    users.router,
    menu.router,
    checkout.router,
    orders.router,
    reservations.router,
    reviews.router,
    ai.router,
    restaurant.router,
    admin.router,
    dev.router,
]

__all__ = ["ROUTERS"]
