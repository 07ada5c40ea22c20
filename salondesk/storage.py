"""Persistence adapter.

One logical schema (``salondesk.models``) behind a :class:`Storage` object.
The adapter is picked once at startup from ``DB_DIALECT``; the dialect
specific parts are the conditional counter updates, which use ``RETURNING``
where the backend supports it.
"""
import logging
from flask import current_app
from sqlalchemy import update

from salondesk.extensions import db
from salondesk.models import Appointment, Client, Product, Staff, StaffDeduction

logger = logging.getLogger(__name__)

STORAGE_KEY = 'salondesk.storage'


class Storage:
    dialect = None

    # ============================================
    # Generic CRUD
    # ============================================

    def all(self, model, *order_by, **filters):
        query = model.query.filter_by(**filters)
        if order_by:
            query = query.order_by(*order_by)
        return query.all()

    def get(self, model, obj_id):
        return db.session.get(model, obj_id)

    def first(self, model, **filters):
        return model.query.filter_by(**filters).first()

    def count(self, model, **filters):
        return model.query.filter_by(**filters).count()

    def add(self, obj):
        db.session.add(obj)
        self.commit()
        return obj

    def delete(self, obj):
        db.session.delete(obj)
        self.commit()

    def commit(self):
        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

    def refresh(self, obj):
        db.session.refresh(obj)
        return obj

    # ============================================
    # Appointments
    # ============================================

    def appointments(self, date=None):
        query = Appointment.query
        if date:
            query = query.filter(Appointment.date == date)
        return query.order_by(Appointment.date, Appointment.start_time).all()

    def appointments_between(self, start_date, end_date, staff_name=None):
        query = Appointment.query.filter(Appointment.date >= start_date, Appointment.date <= end_date)
        if staff_name:
            query = query.filter(Appointment.staff == staff_name)
        return query.all()

    def appointments_for_client(self, client_id):
        return Appointment.query.filter_by(client_id=client_id).order_by(Appointment.date.desc()).all()

    def appointments_for_staff_on(self, staff_name, date):
        return Appointment.query.filter_by(staff=staff_name, date=date).all()

    # ============================================
    # Conditional counter updates
    # ============================================

    def _run(self, statement):
        result = db.session.execute(statement)
        self.commit()
        return result

    def mark_paid(self, appointment_id):
        """Flip ``paid`` false -> true; returns False when it was already paid."""
        statement = (
            update(Appointment)
            .where(Appointment.id == appointment_id, Appointment.paid.is_(False))
            .values(paid=True)
        )
        return self._run(statement).rowcount > 0

    def decrement_stock(self, product_id):
        """Take one unit from a product; returns the new quantity, or None when out of stock."""
        statement = (
            update(Product)
            .where(Product.id == product_id, Product.quantity > 0)
            .values(quantity=Product.quantity - 1)
        )
        if self._run(statement).rowcount == 0:
            return None
        return self._read_column(Product, product_id, 'quantity')

    def accrue_loyalty(self, client_id, points, spent):
        statement = (
            update(Client)
            .where(Client.id == client_id)
            .values(
                loyalty_points=Client.loyalty_points + points,
                total_spent=Client.total_spent + spent,
                total_visits=Client.total_visits + 1,
            )
        )
        return self._run(statement).rowcount > 0

    def spend_points(self, client_id, points):
        """Subtract points only while the balance covers them."""
        statement = (
            update(Client)
            .where(Client.id == client_id, Client.loyalty_points >= points)
            .values(loyalty_points=Client.loyalty_points - points)
        )
        return self._run(statement).rowcount > 0

    def _read_column(self, model, obj_id, column):
        obj = self.get(model, obj_id)
        if obj is None:
            return None
        db.session.refresh(obj)
        return getattr(obj, column)

    # ============================================
    # Staff name projection
    # ============================================

    def rename_staff(self, staff_id, new_name):
        """Rewrite the cached staff name on every row that references ``staff_id``."""
        db.session.execute(update(Appointment).where(Appointment.staff_id == staff_id).values(staff=new_name))
        db.session.execute(update(StaffDeduction).where(StaffDeduction.staff_id == staff_id).values(staff_name=new_name))
        self.commit()

    def resolve_staff_refs(self):
        """One-time migration: link legacy name-only rows to staff ids."""
        by_name = {member.name: member.id for member in Staff.query.all()}
        linked = 0
        for appointment in Appointment.query.filter(Appointment.staff_id.is_(None)).all():
            if appointment.staff in by_name:
                appointment.staff_id = by_name[appointment.staff]
                linked += 1
        for deduction in StaffDeduction.query.filter(StaffDeduction.staff_id.is_(None)).all():
            if deduction.staff_name in by_name:
                deduction.staff_id = by_name[deduction.staff_name]
                linked += 1
        self.commit()
        logger.info('Linked %d rows to staff ids', linked)
        return linked


class PostgresStorage(Storage):
    dialect = 'postgres'

    def decrement_stock(self, product_id):
        statement = (
            update(Product)
            .where(Product.id == product_id, Product.quantity > 0)
            .values(quantity=Product.quantity - 1)
            .returning(Product.quantity)
        )
        remaining = db.session.execute(statement).scalar()
        self.commit()
        if remaining is not None:
            # keep identity-mapped rows in step with the database
            product = db.session.get(Product, product_id)
            if product is not None:
                db.session.refresh(product)
        return remaining


class MySQLStorage(Storage):
    dialect = 'mysql'


class SQLiteStorage(Storage):
    dialect = 'sqlite'


ADAPTERS = {
    'postgres': PostgresStorage,
    'postgresql': PostgresStorage,
    'mysql': MySQLStorage,
    'sqlite': SQLiteStorage,
}


def build_storage(dialect):
    try:
        return ADAPTERS[dialect]()
    except KeyError:
        raise RuntimeError(f'Unsupported DB_DIALECT: {dialect}')


def init_storage(app):
    storage = build_storage(app.config['DB_DIALECT'])
    app.extensions[STORAGE_KEY] = storage
    logger.info('Using %s storage adapter', storage.dialect)
    return storage


def get_storage() -> Storage:
    return current_app.extensions[STORAGE_KEY]
