"""
Pydantic Schemas for Request/Response Validation

Covers every JSON payload the API accepts or returns:
- Auth, users and preferences
- Menu catalog
- Orders, checkout and payments
- Reservations and reviews
- AI chat sessions
- Restaurant profile/settings

Version: 1.0.0
"""

import re
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from tableside.models import (
    Allergen,
    MessageRole,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    ReservationStatus,
    UserRole,
)

PHONE_PATTERN = re.compile(r"^\+?[\d\s\-\(\)]{10,}$")
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")


def _validate_phone(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not PHONE_PATTERN.match(v):
        raise ValueError("Invalid phone number format")
    return v


# =============================================================================
# COMMON
# =============================================================================

class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class ErrorResponse(BaseModel):
    """Standard error response."""
    success: bool = False
    error: str
    detail: Optional[str] = None


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database: str
    redis: str
    payment_service: str
    assistant_service: str
    timestamp: datetime


# =============================================================================
# AUTH & USERS
# =============================================================================

class UserPreferences(BaseModel):
    dietary_restrictions: List[str] = Field(default_factory=list)
    favorite_categories: List[str] = Field(default_factory=list)
    spice_level: Optional[str] = Field(None, pattern="^(mild|medium|hot|extra_hot)$")
    budget: Optional[float] = Field(None, ge=0)
    notification_settings: dict[str, bool] = Field(
        default_factory=lambda: {"email": True, "sms": False, "push": True}
    )
    language: str = Field(default="en", max_length=10)
    currency: str = Field(default="USD", max_length=3)


class PreferencesUpdate(BaseModel):
    """Partial preferences update; omitted keys keep their stored value."""
    dietary_restrictions: Optional[List[str]] = None
    favorite_categories: Optional[List[str]] = None
    spice_level: Optional[str] = Field(None, pattern="^(mild|medium|hot|extra_hot)$")
    budget: Optional[float] = Field(None, ge=0)
    notification_settings: Optional[dict[str, bool]] = None
    language: Optional[str] = Field(None, max_length=10)
    currency: Optional[str] = Field(None, max_length=3)


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50, examples=["Jane Doe"])
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    phone: Optional[str] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name is required")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not PASSWORD_PATTERN.match(v):
            raise ValueError(
                "Password must contain at least one lowercase letter, "
                "one uppercase letter, and one number"
            )
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)


class UserResponse(BaseModel):
    id: int
    email: str
    name: str
    role: UserRole
    phone: Optional[str] = None
    address: Optional[dict] = None
    preferences: dict = Field(default_factory=dict)
    is_active: bool
    email_verified: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class AdminUserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: UserRole = UserRole.ADMIN
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class AdminUserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    role: Optional[UserRole] = None
    phone: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


# =============================================================================
# MENU
# =============================================================================

class NutritionalInfo(BaseModel):
    calories: Optional[float] = Field(None, ge=0)
    protein: Optional[float] = Field(None, ge=0)
    carbs: Optional[float] = Field(None, ge=0)
    fat: Optional[float] = Field(None, ge=0)
    fiber: Optional[float] = Field(None, ge=0)
    sodium: Optional[float] = Field(None, ge=0)


class MenuItemCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["Margherita Pizza"])
    description: str = Field(default="", max_length=500)
    price: float = Field(..., ge=0, le=1000, examples=[14.99])
    category: str = Field(..., min_length=1, max_length=50, examples=["Pizza"])
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = Field(None, max_length=500)
    active: bool = True
    restaurant_id: Optional[str] = Field(None, max_length=50)
    ingredients: List[str] = Field(default_factory=list)
    allergens: List[Allergen] = Field(default_factory=list)
    nutritional_info: Optional[NutritionalInfo] = None
    preparation_time: Optional[int] = Field(None, ge=1, le=120)
    spice_level: int = Field(default=0, ge=0, le=5)
    is_vegetarian: bool = False
    is_vegan: bool = False
    is_gluten_free: bool = False
    is_popular: bool = False
    sort_order: int = 0

    @field_validator("name", "category")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: List[str]) -> List[str]:
        return [t.strip().lower() for t in v if t and t.strip()]

    @field_validator("image_url")
    @classmethod
    def validate_image_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None or v == "":
            return None
        if not re.match(r"^https?://.+", v):
            raise ValueError("Image URL must be a valid http(s) URL")
        return v


class MenuItemUpdate(BaseModel):
    """Partial update. Only fields present in the request body are applied."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[float] = Field(None, ge=0, le=1000)
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    tags: Optional[List[str]] = None
    image_url: Optional[str] = Field(None, max_length=500)
    active: Optional[bool] = None
    ingredients: Optional[List[str]] = None
    allergens: Optional[List[Allergen]] = None
    nutritional_info: Optional[NutritionalInfo] = None
    preparation_time: Optional[int] = Field(None, ge=1, le=120)
    spice_level: Optional[int] = Field(None, ge=0, le=5)
    is_vegetarian: Optional[bool] = None
    is_vegan: Optional[bool] = None
    is_gluten_free: Optional[bool] = None
    is_popular: Optional[bool] = None
    sort_order: Optional[int] = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        return [t.strip().lower() for t in v if t and t.strip()]


class MenuItemResponse(BaseModel):
    id: int
    restaurant_id: str
    name: str
    description: str
    price: float
    category: str
    tags: List[str]
    image_url: Optional[str]
    active: bool
    ingredients: List[str]
    allergens: List[str]
    nutritional_info: Optional[dict]
    preparation_time: Optional[int]
    spice_level: int
    is_vegetarian: bool
    is_vegan: bool
    is_gluten_free: bool
    is_popular: bool
    sort_order: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# ORDERS & CHECKOUT
# =============================================================================

class CustomerInfo(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, examples=["John Doe"])
    email: EmailStr
    phone: Optional[str] = Field(None, examples=["+1 555-123-4567"])

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return _validate_phone(v)


class DeliveryAddress(BaseModel):
    street: str = Field(..., min_length=1, max_length=200)
    city: str = Field(..., min_length=1, max_length=100)
    state: str = Field(..., min_length=1, max_length=50)
    zip_code: str = Field(..., min_length=3, max_length=10)
    country: str = Field(default="US", max_length=2)


class CartItem(BaseModel):
    """One cart line. Unit price is looked up server-side."""
    menu_item_id: int = Field(..., ge=1)
    quantity: int = Field(..., ge=1, le=50, examples=[2])
    special_instructions: Optional[str] = Field(None, max_length=500)


class OrderCreate(BaseModel):
    """Request schema for placing an order from a cart."""
    items: List[CartItem] = Field(..., min_length=1)
    customer_info: Optional[CustomerInfo] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    tip: float = Field(default=0.0, ge=0, le=1000)
    delivery_address: Optional[DeliveryAddress] = None
    special_instructions: Optional[str] = Field(None, max_length=1000)
    restaurant_id: Optional[str] = Field(None, max_length=50)


class CheckoutRequest(OrderCreate):
    """Checkout defaults to card; the customer is redirected to hosted payment."""
    payment_method: PaymentMethod = PaymentMethod.CARD


class OrderItemResponse(BaseModel):
    menu_item_id: int
    name: str
    price: float
    quantity: int
    special_instructions: Optional[str] = None


class OrderResponse(BaseModel):
    id: int
    restaurant_id: str
    user_id: Optional[int]
    customer_info: dict
    customer_email: str
    delivery_address: Optional[dict]
    items: List[OrderItemResponse]
    special_instructions: Optional[str]
    estimated_time: Optional[int]
    notes: Optional[str]
    subtotal: float
    tax: float
    tip: float
    delivery_fee: float
    total: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    payment_intent_id: Optional[str]
    checkout_session_id: Optional[str]
    checkout_url: Optional[str]
    refunded_amount: Optional[float]
    status: OrderStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class OrderStatusUpdate(BaseModel):
    status: OrderStatus
    estimated_time: Optional[int] = Field(None, ge=1, le=480)
    notes: Optional[str] = Field(None, max_length=500)


class TipUpdate(BaseModel):
    tip: float = Field(..., ge=0, le=1000)


class RefundRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)
    amount: Optional[float] = Field(None, gt=0)


class CheckoutResponse(BaseModel):
    success: bool
    order_id: int
    session_id: Optional[str] = None
    url: Optional[str] = None
    total: float
    payment_status: PaymentStatus


# =============================================================================
# RESERVATIONS
# =============================================================================

class ReservationCustomer(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not PHONE_PATTERN.match(v):
            raise ValueError("Invalid phone number format")
        return v


class ReservationCreate(BaseModel):
    """Date/time stay strings here; normalization happens in the service."""
    customer_info: ReservationCustomer
    party_size: int = Field(..., ge=1, examples=[4])
    date: str = Field(..., examples=["2030-05-17"])
    time: str = Field(..., examples=["19:30"])
    special_requests: Optional[str] = Field(None, max_length=500)
    restaurant_id: Optional[str] = Field(None, max_length=50)


class ReservationStatusUpdate(BaseModel):
    status: ReservationStatus
    table_number: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)


class ReservationResponse(BaseModel):
    id: int
    restaurant_id: str
    user_id: Optional[int]
    customer_info: dict
    party_size: int
    date: str
    time: str
    status: ReservationStatus
    special_requests: Optional[str]
    table_number: Optional[str]
    notes: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class AvailabilityResponse(BaseModel):
    date: str
    time: str
    booked: int
    remaining: int
    available: bool


# =============================================================================
# REVIEWS
# =============================================================================

class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    title: Optional[str] = Field(None, max_length=200)
    comment: str = Field(..., min_length=1, max_length=2000)
    food_rating: Optional[int] = Field(None, ge=1, le=5)
    service_rating: Optional[int] = Field(None, ge=1, le=5)
    ambiance_rating: Optional[int] = Field(None, ge=1, le=5)
    images: List[str] = Field(default_factory=list, max_length=10)
    order_id: Optional[int] = None
    customer_name: Optional[str] = Field(None, max_length=100)
    customer_email: Optional[EmailStr] = None
    restaurant_id: Optional[str] = Field(None, max_length=50)


class ReviewReply(BaseModel):
    text: str = Field(..., min_length=1, max_length=1000)


class ReviewResponse(BaseModel):
    id: int
    restaurant_id: str
    user_id: Optional[int]
    order_id: Optional[int]
    customer_name: str
    rating: int
    title: Optional[str]
    comment: str
    food_rating: Optional[int]
    service_rating: Optional[int]
    ambiance_rating: Optional[int]
    images: List[str]
    helpful: int
    verified: bool
    response: Optional[dict]
    created_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# AI CHAT
# =============================================================================

class ChatContext(BaseModel):
    restaurant_id: Optional[str] = Field(None, max_length=50)
    current_order: List[dict[str, Any]] = Field(default_factory=list)
    preferences: List[str] = Field(default_factory=list)
    dietary_restrictions: List[str] = Field(default_factory=list)
    budget: Optional[float] = Field(None, ge=0)
    party_size: Optional[int] = Field(None, ge=1, le=20)


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)
    session_id: Optional[str] = Field(None, max_length=80)
    context: Optional[ChatContext] = None


class Recommendation(BaseModel):
    menu_item_id: int
    name: str
    description: str
    price: float
    image_url: Optional[str] = None
    confidence: float
    reasons: List[str]


class ChatResponse(BaseModel):
    message: str
    recommendations: List[Recommendation]
    session_id: str
    intent: str = "general"
    confidence: float = 0.9


class ChatMessage(BaseModel):
    id: str
    role: MessageRole
    content: str
    timestamp: str
    metadata: dict = Field(default_factory=dict)


class AISessionResponse(BaseModel):
    session_id: str
    user_id: Optional[int]
    messages: List[ChatMessage]
    context: dict
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# RESTAURANT
# =============================================================================

class RestaurantSettings(BaseModel):
    allow_reservations: bool = True
    allow_delivery: bool = True
    allow_pickup: bool = True
    max_party_size: int = Field(default=8, ge=1, le=50)
    advance_booking_days: int = Field(default=30, ge=1, le=365)
    cancellation_policy: Optional[str] = Field(None, max_length=500)
    payment_methods: List[PaymentMethod] = Field(
        default_factory=lambda: [PaymentMethod.CARD, PaymentMethod.CASH]
    )
    tax_rate: float = Field(default=0.08, ge=0, le=0.5)
    service_charge: float = Field(default=0.0, ge=0, le=0.5)
    tip_enabled: bool = True
    ai_chat_enabled: bool = True
    review_enabled: bool = True


class RestaurantSettingsUpdate(BaseModel):
    allow_reservations: Optional[bool] = None
    allow_delivery: Optional[bool] = None
    allow_pickup: Optional[bool] = None
    max_party_size: Optional[int] = Field(None, ge=1, le=50)
    advance_booking_days: Optional[int] = Field(None, ge=1, le=365)
    cancellation_policy: Optional[str] = Field(None, max_length=500)
    payment_methods: Optional[List[PaymentMethod]] = None
    tax_rate: Optional[float] = Field(None, ge=0, le=0.5)
    service_charge: Optional[float] = Field(None, ge=0, le=0.5)
    tip_enabled: Optional[bool] = None
    ai_chat_enabled: Optional[bool] = None
    review_enabled: Optional[bool] = None


class RestaurantResponse(BaseModel):
    id: str
    name: str
    description: Optional[str]
    address: Optional[dict]
    phone: Optional[str]
    email: Optional[str]
    website: Optional[str]
    cuisine: List[str]
    price_range: str
    operating_hours: dict
    settings: dict
    active: bool

    class Config:
        from_attributes = True
