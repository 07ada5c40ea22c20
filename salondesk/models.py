from datetime import datetime
from salondesk.extensions import db

DEFAULT_COMMISSION_PERCENT = 50.0
DEDUCTION_TYPES = ('advance', 'loan', 'penalty', 'other')
ADMIN_ROLE_KINDS = ('owner', 'manager', 'receptionist')

ALL_PERMISSIONS = (
    'view_home',
    'view_planning', 'manage_appointments', 'edit_cardboard',
    'view_clients', 'manage_clients',
    'view_services', 'manage_services',
    'view_inventory', 'manage_inventory',
    'view_expenses', 'manage_expenses',
    'view_salaries', 'manage_salaries',
    'view_reports',
    'view_staff_performance',
    'manage_staff',
    'admin_settings',
    'export_data',
)

ROLE_PERMISSIONS = {
    'owner': list(ALL_PERMISSIONS),
    'manager': [
        'view_home',
        'view_planning', 'manage_appointments', 'edit_cardboard',
        'view_clients', 'manage_clients',
        'view_services', 'manage_services',
        'view_inventory', 'manage_inventory',
        'view_expenses', 'manage_expenses',
        'view_salaries',
        'view_reports',
        'view_staff_performance',
        'export_data',
    ],
    'receptionist': [
        'view_home',
        'view_planning', 'manage_appointments',
        'view_clients',
        'view_services',
    ],
}


def _iso(value):
    return value.isoformat() if value else None


class Staff(db.Model):
    __tablename__ = 'staff'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    color = db.Column(db.String(7), nullable=False)
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    base_salary = db.Column(db.Float, default=0, nullable=False)

    appointments = db.relationship('Appointment', backref='staff_member', lazy=True)
    deductions = db.relationship('StaffDeduction', backref='staff_member', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'phone': self.phone,
            'email': self.email,
            'baseSalary': self.base_salary,
        }


class Category(db.Model):
    __tablename__ = 'categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name}


class Product(db.Model):
    __tablename__ = 'products'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    quantity = db.Column(db.Integer, default=0, nullable=False)
    low_stock_threshold = db.Column(db.Integer, default=5, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @property
    def is_low_stock(self):
        return self.quantity <= self.low_stock_threshold

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'quantity': self.quantity,
            'lowStockThreshold': self.low_stock_threshold,
            'lowStock': self.is_low_stock,
            'createdAt': _iso(self.created_at),
        }


class Service(db.Model):
    __tablename__ = 'services'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Float, nullable=False)
    duration = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(255), nullable=False)
    linked_product_id = db.Column(db.Integer, db.ForeignKey('products.id', ondelete='SET NULL'))
    commission_percent = db.Column(db.Float, default=DEFAULT_COMMISSION_PERCENT, nullable=False)
    loyalty_points_multiplier = db.Column(db.Integer, default=1, nullable=False)

    linked_product = db.relationship('Product', lazy=True)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'price': self.price,
            'duration': self.duration,
            'category': self.category,
            'linkedProductId': self.linked_product_id,
            'commissionPercent': self.commission_percent,
            'loyaltyPointsMultiplier': self.loyalty_points_multiplier,
        }


class Client(db.Model):
    __tablename__ = 'clients'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    birthday = db.Column(db.String(10))
    notes = db.Column(db.Text)
    loyalty_points = db.Column(db.Integer, default=0, nullable=False)
    total_visits = db.Column(db.Integer, default=0, nullable=False)
    total_spent = db.Column(db.Float, default=0, nullable=False)
    referred_by = db.Column(db.Integer, db.ForeignKey('clients.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (db.CheckConstraint('loyalty_points >= 0', name='ck_clients_points_non_negative'),)

    def to_dict(self):
        from salondesk.domain.clients import loyalty_tier

        return {
            'id': self.id,
            'name': self.name,
            'phone': self.phone,
            'email': self.email,
            'birthday': self.birthday,
            'notes': self.notes,
            'loyaltyPoints': self.loyalty_points,
            'loyaltyTier': loyalty_tier(self.loyalty_points),
            'totalVisits': self.total_visits,
            'totalSpent': self.total_spent,
            'referredBy': self.referred_by,
            'createdAt': _iso(self.created_at),
        }


class Appointment(db.Model):
    __tablename__ = 'appointments'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.String(10), nullable=False, index=True)  # YYYY-MM-DD
    start_time = db.Column(db.String(5), nullable=False)  # HH:MM
    duration = db.Column(db.Integer, nullable=False)
    client = db.Column(db.String(255), nullable=False)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id', ondelete='SET NULL'), index=True)
    service = db.Column(db.String(255), nullable=False)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id', ondelete='SET NULL'), index=True)
    # Display name of the staff member, kept in sync with staff.name
    staff = db.Column(db.String(255), nullable=False)
    price = db.Column(db.Float, nullable=False)
    total = db.Column(db.Float, nullable=False)
    paid = db.Column(db.Boolean, default=False, nullable=False)
    loyalty_points_earned = db.Column(db.Integer, default=0)
    created_by = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'date': self.date,
            'startTime': self.start_time,
            'duration': self.duration,
            'client': self.client,
            'clientId': self.client_id,
            'service': self.service,
            'staff': self.staff,
            'staffId': self.staff_id,
            'price': self.price,
            'total': self.total,
            'paid': self.paid,
            'loyaltyPointsEarned': self.loyalty_points_earned,
            'createdBy': self.created_by,
            'createdAt': _iso(self.created_at),
        }

    def to_public_dict(self):
        """Booking-safe projection: no client names, no prices."""
        return {
            'date': self.date,
            'startTime': self.start_time,
            'duration': self.duration,
            'staff': self.staff,
        }


class ExpenseCategory(db.Model):
    __tablename__ = 'expense_categories'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), unique=True, nullable=False)
    color = db.Column(db.String(50), default='#6b7280', nullable=False)

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'color': self.color}


class Charge(db.Model):
    __tablename__ = 'charges'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(100), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.String(10), nullable=False, index=True)
    category_id = db.Column(db.Integer, db.ForeignKey('expense_categories.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'name': self.name,
            'amount': self.amount,
            'date': self.date,
            'categoryId': self.category_id,
            'createdAt': _iso(self.created_at),
        }


class StaffDeduction(db.Model):
    __tablename__ = 'staff_deductions'

    id = db.Column(db.Integer, primary_key=True)
    staff_id = db.Column(db.Integer, db.ForeignKey('staff.id', ondelete='SET NULL'), index=True)
    staff_name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=False)
    amount = db.Column(db.Float, nullable=False)
    date = db.Column(db.String(10), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'staffId': self.staff_id,
            'staffName': self.staff_name,
            'type': self.type,
            'description': self.description,
            'amount': self.amount,
            'date': self.date,
            'createdAt': _iso(self.created_at),
        }


class LoyaltyRedemption(db.Model):
    __tablename__ = 'loyalty_redemptions'

    id = db.Column(db.Integer, primary_key=True)
    client_id = db.Column(db.Integer, db.ForeignKey('clients.id', ondelete='CASCADE'), nullable=False, index=True)
    points_used = db.Column(db.Integer, nullable=False)
    reward_description = db.Column(db.Text, nullable=False)
    date = db.Column(db.String(10), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'clientId': self.client_id,
            'pointsUsed': self.points_used,
            'rewardDescription': self.reward_description,
            'date': self.date,
            'createdAt': _iso(self.created_at),
        }


class AdminRole(db.Model):
    __tablename__ = 'admin_roles'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    role = db.Column(db.String(50), default='receptionist', nullable=False)
    pin_hash = db.Column(db.String(255))
    permissions = db.Column(db.JSON, default=list, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'hasPin': bool(self.pin_hash),
            'permissions': list(self.permissions or []),
            'createdAt': _iso(self.created_at),
        }


class BusinessSettings(db.Model):
    __tablename__ = 'business_settings'

    id = db.Column(db.Integer, primary_key=True)
    business_name = db.Column(db.String(255), default='SalonDesk', nullable=False)
    logo = db.Column(db.Text)
    address = db.Column(db.Text)
    phone = db.Column(db.String(50))
    email = db.Column(db.String(255))
    currency = db.Column(db.String(10), default='MAD', nullable=False)
    currency_symbol = db.Column(db.String(10), default='DH', nullable=False)
    opening_time = db.Column(db.String(5), default='09:00', nullable=False)
    closing_time = db.Column(db.String(5), default='19:00', nullable=False)
    working_days = db.Column(db.JSON, default=lambda: [1, 2, 3, 4, 5, 6], nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'businessName': self.business_name,
            'logo': self.logo,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'currency': self.currency,
            'currencySymbol': self.currency_symbol,
            'openingTime': self.opening_time,
            'closingTime': self.closing_time,
            'workingDays': list(self.working_days or []),
            'updatedAt': _iso(self.updated_at),
        }

    def to_public_dict(self):
        return {
            'businessName': self.business_name,
            'currencySymbol': self.currency_symbol,
            'openingTime': self.opening_time,
            'closingTime': self.closing_time,
            'workingDays': list(self.working_days or []),
        }


class PushSubscription(db.Model):
    __tablename__ = 'push_subscriptions'

    id = db.Column(db.Integer, primary_key=True)
    endpoint = db.Column(db.String(500), unique=True, nullable=False)
    p256dh = db.Column(db.String(255), nullable=False)
    auth = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
