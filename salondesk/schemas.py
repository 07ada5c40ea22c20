"""Request schemas for the JSON API.

Payloads use camelCase keys on the wire (``startTime``, ``clientId``); the
schemas expose snake_case attributes and accept either spelling.
"""
import re
from datetime import date as Date
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from salondesk.models import ADMIN_ROLE_KINDS, DEDUCTION_TYPES

TIME_RE = re.compile(r'^([01]\d|2[0-3]):[0-5]\d$')
COLOR_RE = re.compile(r'^#[0-9a-fA-F]{6}$')
EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def check_date(value):
    if value is None:
        return value
    try:
        Date.fromisoformat(value)
    except (TypeError, ValueError):
        raise ValueError('Invalid date format. Use YYYY-MM-DD')
    return value


def check_time(value):
    if value is not None and not TIME_RE.match(value):
        raise ValueError('Invalid time format. Use HH:MM')
    return value


def check_email(value):
    if value in (None, ''):
        return None
    if not EMAIL_RE.match(value):
        raise ValueError('Invalid email address')
    return value


class Schema(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        str_strip_whitespace=True,
    )


# ============================================
# Appointments
# ============================================

class AppointmentCreate(Schema):
    date: str
    start_time: str
    duration: int = Field(gt=0)
    client: str = Field(min_length=1)
    client_id: Optional[int] = None
    service: str = Field(min_length=1)
    staff: str = Field(min_length=1)
    price: float = Field(ge=0)
    total: float = Field(ge=0)
    paid: bool = False
    created_by: Optional[str] = None

    validate_date = field_validator('date')(check_date)
    validate_time = field_validator('start_time')(check_time)


class AppointmentUpdate(Schema):
    date: Optional[str] = None
    start_time: Optional[str] = None
    duration: Optional[int] = Field(default=None, gt=0)
    client: Optional[str] = Field(default=None, min_length=1)
    client_id: Optional[int] = None
    service: Optional[str] = Field(default=None, min_length=1)
    staff: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    total: Optional[float] = Field(default=None, ge=0)
    paid: Optional[bool] = None

    validate_date = field_validator('date')(check_date)
    validate_time = field_validator('start_time')(check_time)


class PublicAppointmentCreate(Schema):
    """Public booking form.

    ``paid``, ``price``, ``total`` and ``duration`` sent by the client are
    dropped; the booked service supplies the figures.
    """

    date: str
    start_time: str
    client: str = Field(min_length=1, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    service: str = Field(min_length=1)
    staff: str = Field(min_length=1)

    validate_date = field_validator('date')(check_date)
    validate_time = field_validator('start_time')(check_time)


class AvailabilityQuery(Schema):
    staff: str = Field(min_length=1)
    date: str
    duration: int = Field(default=30, gt=0)

    validate_date = field_validator('date')(check_date)


# ============================================
# Catalog: services, categories, staff
# ============================================

class ServiceCreate(Schema):
    name: str = Field(min_length=1)
    price: float = Field(ge=0)
    duration: int = Field(gt=0)
    category: str = Field(min_length=1)
    linked_product_id: Optional[int] = None
    commission_percent: float = Field(default=50, ge=0, le=100)
    loyalty_points_multiplier: int = Field(default=1, ge=0)


class ServiceUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1)
    price: Optional[float] = Field(default=None, ge=0)
    duration: Optional[int] = Field(default=None, gt=0)
    category: Optional[str] = Field(default=None, min_length=1)
    linked_product_id: Optional[int] = None
    commission_percent: Optional[float] = Field(default=None, ge=0, le=100)
    loyalty_points_multiplier: Optional[int] = Field(default=None, ge=0)


class CategoryIn(Schema):
    name: str = Field(min_length=1)


class StaffCreate(Schema):
    name: str = Field(min_length=1)
    color: str
    phone: Optional[str] = None
    email: Optional[str] = None
    base_salary: float = Field(default=0, ge=0)

    @field_validator('color')
    @classmethod
    def valid_color(cls, value):
        if value is not None and not COLOR_RE.match(value):
            raise ValueError('Must be valid hex color')
        return value

    validate_email = field_validator('email')(check_email)


class StaffUpdate(StaffCreate):
    name: Optional[str] = Field(default=None, min_length=1)
    color: Optional[str] = None
    base_salary: Optional[float] = Field(default=None, ge=0)


# ============================================
# Clients and loyalty
# ============================================

class ClientCreate(Schema):
    name: str = Field(min_length=1)
    phone: Optional[str] = None
    email: Optional[str] = None
    birthday: Optional[str] = None
    notes: Optional[str] = None
    referred_by: Optional[int] = None

    validate_email = field_validator('email')(check_email)


class ClientUpdate(ClientCreate):
    name: Optional[str] = Field(default=None, min_length=1)


class LoyaltyAccrual(Schema):
    points: int = Field(ge=0)
    spent: float = Field(default=0, ge=0)


class RedemptionCreate(Schema):
    client_id: int
    points_used: int = Field(ge=1)
    reward_description: str = Field(min_length=1)
    date: str

    validate_date = field_validator('date')(check_date)


# ============================================
# Inventory
# ============================================

class ProductCreate(Schema):
    name: str = Field(min_length=1)
    quantity: int = Field(default=0, ge=0)
    low_stock_threshold: int = Field(default=5, ge=0)


class ProductUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1)
    quantity: Optional[int] = Field(default=None, ge=0)
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)


class QuantityUpdate(Schema):
    quantity: int = Field(ge=0)


# ============================================
# Expenses
# ============================================

class ChargeCreate(Schema):
    type: str = Field(min_length=1)
    name: str = Field(min_length=1)
    amount: float = Field(ge=0)
    date: str
    category_id: Optional[int] = None

    validate_date = field_validator('date')(check_date)


class DeductionCreate(Schema):
    staff_name: str = Field(min_length=1)
    type: Literal[DEDUCTION_TYPES]
    description: str = Field(min_length=1)
    amount: float = Field(ge=0)
    date: str

    validate_date = field_validator('date')(check_date)


class ExpenseCategoryCreate(Schema):
    name: str = Field(min_length=1)
    color: str = '#6b7280'


class PayrollQuery(Schema):
    start_date: str
    end_date: str
    staff: Optional[str] = None

    validate_dates = field_validator('start_date', 'end_date')(check_date)


class PerformanceQuery(Schema):
    """An explicit ``startDate``/``endDate`` range, else ``period`` around ``date``."""

    start_date: Optional[str] = None
    end_date: Optional[str] = None
    period: str = 'month'
    date: Optional[str] = None

    validate_dates = field_validator('start_date', 'end_date', 'date')(check_date)


# ============================================
# Admin roles and settings
# ============================================

class AdminRoleCreate(Schema):
    name: str = Field(min_length=1, max_length=100)
    role: Literal[ADMIN_ROLE_KINDS] = 'receptionist'
    pin: Optional[str] = Field(default=None, min_length=4)
    permissions: Optional[List[str]] = None


class AdminRoleUpdate(Schema):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    role: Optional[Literal[ADMIN_ROLE_KINDS]] = None
    pin: Optional[str] = Field(default=None, min_length=4)
    permissions: Optional[List[str]] = None


class PinVerify(Schema):
    name: str = Field(min_length=1)
    pin: str = Field(min_length=1)


class PinReset(Schema):
    name: str = Field(min_length=1)
    business_phone: str = Field(min_length=1)
    new_pin: str = Field(min_length=4)


class SettingsUpdate(Schema):
    business_name: Optional[str] = Field(default=None, min_length=1)
    logo: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    currency: Optional[str] = Field(default=None, min_length=1, max_length=10)
    currency_symbol: Optional[str] = Field(default=None, min_length=1, max_length=10)
    opening_time: Optional[str] = None
    closing_time: Optional[str] = None
    working_days: Optional[List[int]] = None

    validate_times = field_validator('opening_time', 'closing_time')(check_time)
    validate_email = field_validator('email')(check_email)

    @field_validator('working_days')
    @classmethod
    def valid_days(cls, value):
        if value is not None and any(day < 0 or day > 6 for day in value):
            raise ValueError('Working days must be between 0 and 6')
        return value


# ============================================
# Notifications
# ============================================

class PushKeys(Schema):
    p256dh: str = Field(min_length=1)
    auth: str = Field(min_length=1)


class PushSubscriptionIn(Schema):
    endpoint: str = Field(min_length=1)
    keys: PushKeys


class PushUnsubscribe(Schema):
    endpoint: str = Field(min_length=1)


class MessageSend(Schema):
    phone: str = Field(min_length=1)
    message: str = Field(min_length=1)


class BookingMessage(Schema):
    client_phone: str = Field(min_length=1)
    client_name: str = Field(min_length=1)
    appointment_date: str = Field(min_length=1)
    appointment_time: str = Field(min_length=1)
    service_name: str = Field(min_length=1)
    staff_name: Optional[str] = None
