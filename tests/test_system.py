from datetime import timedelta

from sqlalchemy import func, select

from tableside.core.config import get_settings
from tableside.core.rate_limit import limiter
from tableside.models import AISession, MenuItem, Order, OrderStatus, PaymentMethod, PaymentStatus, utcnow
from tableside.services.chat_session import purge_expired_sessions
from tableside.services.orders import expire_stale_checkouts


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["environment"] == "development"


async def test_health_reports_components(client, seeded):
    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["database"] == "healthy"
    assert body["payment_service"] == "healthy"
    assert body["assistant_service"] == "healthy"
    assert body["status"] in ("operational", "degraded")


async def test_dev_seed_is_idempotent(client, session_maker):
    first = await client.post("/api/dev/seed")
    second = await client.post("/api/dev/seed")

    assert first.status_code == 200
    assert first.json()["data"]["menu_items"] == 8
    assert first.json()["data"]["users"] == 4
    assert second.json()["data"] == {"restaurants": 0, "users": 0, "menu_items": 0, "reservations": 0}

    async with session_maker() as session:
        count = (await session.execute(select(func.count(MenuItem.id)))).scalar()
    assert count == 8


async def test_dev_seed_checks_key(client, monkeypatch):
    monkeypatch.setattr(get_settings(), "dev_seed_key", "letmein")

    denied = await client.post("/api/dev/seed")
    allowed = await client.post("/api/dev/seed", headers={"x-dev-seed-key": "letmein"})

    assert denied.status_code == 401
    assert allowed.status_code == 200


async def test_auth_routes_are_rate_limited(client, seeded):
    limiter.enabled = True
    limiter.reset()

    statuses = []
    for _ in range(11):
        response = await client.post(
            "/api/auth/login",
            json={"email": "admin@restaurant.com", "password": "wrong"},
        )
        statuses.append(response.status_code)

    assert statuses[:10] == [401] * 10
    assert statuses[10] == 429


async def test_purge_expired_sessions(db):
    stale = utcnow() - timedelta(days=31)
    db.add(AISession(session_id="ai_old", messages=[], context={}, created_at=stale, updated_at=stale))
    db.add(AISession(session_id="ai_fresh", messages=[], context={}))
    await db.commit()

    purged = await purge_expired_sessions(db)

    assert purged == 1
    remaining = (await db.execute(select(AISession.session_id))).scalars().all()
    assert remaining == ["ai_fresh"]


async def test_expire_stale_checkouts(db):
    old = utcnow() - timedelta(hours=25)
    common = dict(
        restaurant_id="default",
        customer_info={"name": "X", "email": "x@example.com"},
        customer_email="x@example.com",
        items=[],
        subtotal=10.0,
        tax=0.8,
        total=10.8,
        payment_method=PaymentMethod.CARD,
        payment_status=PaymentStatus.PROCESSING,
        status=OrderStatus.PENDING,
    )
    db.add(Order(checkout_session_id="cs_old", created_at=old, **common))
    db.add(Order(checkout_session_id="cs_new", **common))
    await db.commit()

    expired = await expire_stale_checkouts(db)

    assert expired == 1
    rows = (await db.execute(select(Order.checkout_session_id, Order.status).order_by(Order.id))).all()
    assert [(sid, OrderStatus(status)) for sid, status in rows] == [
        ("cs_old", OrderStatus.CANCELLED),
        ("cs_new", OrderStatus.PENDING),
    ]
