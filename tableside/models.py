"""
SQLAlchemy Database Models

Persistent records for the restaurant service:
- Users with roles (customer / staff / admin)
- Menu catalog with dietary flags
- Orders with pricing, payment and fulfillment status
- Table reservations
- Reviews with staff responses
- AI chat sessions
- Restaurant profile and business settings

Nested document-shaped data (line items, tags, chat messages, addresses,
preferences) lives in JSON columns. JSON values are always reassigned,
never mutated in place, so SQLAlchemy sees the change.

Version: 1.0.0
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from tableside.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp, stored the same way on PostgreSQL and SQLite."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _values(enum_cls):
    return [member.value for member in enum_cls]


# =============================================================================
# ENUMS
# =============================================================================

class UserRole(str, enum.Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


class OrderStatus(str, enum.Enum):
    """Order fulfillment workflow."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    CASH = "cash"
    DIGITAL_WALLET = "digital_wallet"
    BANK_TRANSFER = "bank_transfer"


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SEATED = "seated"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Allergen(str, enum.Enum):
    GLUTEN = "gluten"
    DAIRY = "dairy"
    EGGS = "eggs"
    FISH = "fish"
    SHELLFISH = "shellfish"
    TREE_NUTS = "tree-nuts"
    PEANUTS = "peanuts"
    SOY = "soy"


class MessageRole(str, enum.Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Account used for login. The password hash never leaves this table."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(50), nullable=False)
    password_hash = Column(String(100), nullable=False)
    role = Column(
        Enum(UserRole, values_callable=_values, name="user_role"),
        default=UserRole.CUSTOMER,
        nullable=False,
        index=True,
    )
    phone = Column(String(20), nullable=True)
    address = Column(JSON, nullable=True)
    preferences = Column(JSON, nullable=False, default=dict)

    is_active = Column(Boolean, default=True, nullable=False)
    email_verified = Column(Boolean, default=False, nullable=False)
    last_login = Column(DateTime, nullable=True)
    reset_token = Column(String(64), nullable=True, index=True)
    reset_token_expiry = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<User #{self.id} - {self.email} - {self.role.value}>"


# =============================================================================
# MENU
# =============================================================================

class MenuItem(Base):
    """A sellable catalog entry."""
    __tablename__ = "menu_items"
    __table_args__ = (
        UniqueConstraint("restaurant_id", "name", name="uq_menu_item_restaurant_name"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(String(50), nullable=False, default="default", index=True)

    # =========================================================================
    # CATALOG
    # =========================================================================
    name = Column(String(100), nullable=False)
    description = Column(String(500), nullable=False, default="")
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    tags = Column(JSON, nullable=False, default=list)
    image_url = Column(String(500), nullable=True)
    active = Column(Boolean, default=True, nullable=False, index=True)
    sort_order = Column(Integer, default=0, nullable=False)

    # =========================================================================
    # KITCHEN / DIETARY
    # =========================================================================
    ingredients = Column(JSON, nullable=False, default=list)
    allergens = Column(JSON, nullable=False, default=list)
    nutritional_info = Column(JSON, nullable=True)
    preparation_time = Column(Integer, nullable=True)
    spice_level = Column(Integer, default=0, nullable=False)
    is_vegetarian = Column(Boolean, default=False, nullable=False)
    is_vegan = Column(Boolean, default=False, nullable=False)
    is_gluten_free = Column(Boolean, default=False, nullable=False)
    is_popular = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<MenuItem #{self.id} - {self.name} - ${self.price:.2f}>"


# =============================================================================
# ORDERS
# =============================================================================

class Order(Base):
    """
    Customer purchase record.

    Line items snapshot name and unit price at order time, so later menu
    edits never change what a customer was charged.
    """
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(String(50), nullable=False, default="default", index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    # =========================================================================
    # CUSTOMER
    # =========================================================================
    customer_info = Column(JSON, nullable=False)  # {name, email, phone}
    customer_email = Column(String(255), nullable=False, index=True)
    delivery_address = Column(JSON, nullable=True)

    # =========================================================================
    # ORDER DETAILS
    # =========================================================================
    items = Column(JSON, nullable=False)
    special_instructions = Column(Text, nullable=True)
    estimated_time = Column(Integer, nullable=True)  # minutes
    notes = Column(Text, nullable=True)

    # =========================================================================
    # PRICING
    # =========================================================================
    subtotal = Column(Float, nullable=False)
    tax = Column(Float, nullable=False)
    tip = Column(Float, nullable=False, default=0.0)
    delivery_fee = Column(Float, nullable=False, default=0.0)
    total = Column(Float, nullable=False)

    # =========================================================================
    # PAYMENT
    # =========================================================================
    payment_method = Column(
        Enum(PaymentMethod, values_callable=_values, name="payment_method"),
        default=PaymentMethod.CARD,
        nullable=False,
    )
    payment_status = Column(
        Enum(PaymentStatus, values_callable=_values, name="payment_status"),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )
    payment_intent_id = Column(String(100), nullable=True)
    checkout_session_id = Column(String(255), nullable=True, unique=True, index=True)
    checkout_url = Column(String(1000), nullable=True)
    refund_id = Column(String(100), nullable=True)
    refunded_amount = Column(Float, nullable=True)

    # =========================================================================
    # STATUS
    # =========================================================================
    status = Column(
        Enum(OrderStatus, values_callable=_values, name="order_status"),
        default=OrderStatus.PENDING,
        nullable=False,
        index=True,
    )

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Order #{self.id} - {self.customer_email} - {self.status.value}>"


# =============================================================================
# RESERVATIONS
# =============================================================================

class Reservation(Base):
    """Table booking for a date and an HH:MM start time."""
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(String(50), nullable=False, default="default", index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    customer_info = Column(JSON, nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    party_size = Column(Integer, nullable=False)
    date = Column(String(10), nullable=False, index=True)  # YYYY-MM-DD
    time = Column(String(5), nullable=False)  # HH:MM
    status = Column(
        Enum(ReservationStatus, values_callable=_values, name="reservation_status"),
        default=ReservationStatus.PENDING,
        nullable=False,
        index=True,
    )
    special_requests = Column(String(500), nullable=True)
    table_number = Column(String(20), nullable=True)
    notes = Column(String(1000), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Reservation #{self.id} - {self.date} {self.time} x{self.party_size}>"


# =============================================================================
# REVIEWS
# =============================================================================

class Review(Base):
    __tablename__ = "reviews"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    restaurant_id = Column(String(50), nullable=False, default="default", index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)

    customer_name = Column(String(100), nullable=False)
    customer_email = Column(String(255), nullable=False)
    rating = Column(Integer, nullable=False, index=True)
    title = Column(String(200), nullable=True)
    comment = Column(String(2000), nullable=False)
    food_rating = Column(Integer, nullable=True)
    service_rating = Column(Integer, nullable=True)
    ambiance_rating = Column(Integer, nullable=True)
    images = Column(JSON, nullable=False, default=list)
    helpful = Column(Integer, nullable=False, default=0)
    verified = Column(Boolean, nullable=False, default=False)
    response = Column(JSON, nullable=True)  # {text, author, created_at}

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


# =============================================================================
# AI SESSIONS
# =============================================================================

def new_session_id() -> str:
    """Opaque session key: ``ai_<epoch ms>_<uuid4>``."""
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"ai_{millis}_{uuid.uuid4()}"


class AISession(Base):
    """
    Persisted conversation between a customer and the menu assistant.

    ``messages`` is a bounded list of ``{id, role, content, timestamp,
    metadata}`` dicts; ``context`` carries restaurant and diner details that
    are folded into the system prompt on every turn.
    """
    __tablename__ = "ai_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    session_id = Column(String(80), nullable=False, unique=True, index=True, default=new_session_id)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    messages = Column(JSON, nullable=False, default=list)
    context = Column(JSON, nullable=False, default=dict)
    client_metadata = Column(JSON, nullable=False, default=dict)
    is_active = Column(Boolean, nullable=False, default=True, index=True)

    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<AISession {self.session_id} - {len(self.messages or [])} messages>"


# =============================================================================
# RESTAURANT
# =============================================================================

class Restaurant(Base):
    """Restaurant profile. ``settings`` overrides business defaults (tax rate etc.)."""
    __tablename__ = "restaurants"

    id = Column(String(50), primary_key=True)
    name = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=True)
    address = Column(JSON, nullable=True)
    phone = Column(String(20), nullable=True)
    email = Column(String(255), nullable=True)
    website = Column(String(500), nullable=True)
    cuisine = Column(JSON, nullable=False, default=list)
    price_range = Column(String(4), nullable=False, default="$$")
    operating_hours = Column(JSON, nullable=False, default=dict)
    settings = Column(JSON, nullable=False, default=dict)
    active = Column(Boolean, nullable=False, default=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)
