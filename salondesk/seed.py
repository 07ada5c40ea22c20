"""Starter catalog for an empty database."""
import logging

from salondesk.extensions import db
from salondesk.models import Category, ExpenseCategory, Service, Staff

logger = logging.getLogger(__name__)

DEFAULT_STAFF = [
    ('Hayat', '#d63384'),
    ('Mehdi', '#20c997'),
    ('Nofl', '#0d6efd'),
]

# category -> [(name, price, duration)]
DEFAULT_SERVICES = {
    'Beauté': [
        ('Maquillage Simple', 100, 30),
        ('Maquillage Pro', 300, 60),
        ('Extension de cils Permanent', 350, 90),
        ('Coloration des Sourcils', 20, 15),
    ],
    'Coiffure': [
        ('Shampoing', 20, 15),
        ('Brushing', 50, 30),
        ('Coupe et Brushing', 80, 60),
        ('Coloration', 250, 90),
        ('Balayage', 600, 120),
    ],
    'Onglerie': [
        ('Manicure Simple', 50, 30),
        ('Manicure + vernis permanent', 150, 60),
        ('Pédicure simple', 100, 45),
        ('Ongle en Gel', 300, 90),
    ],
    'Épilation à la Cire': [
        ('Sourcils', 30, 15),
        ('Visage', 70, 30),
        ('Aisselles', 30, 15),
    ],
    'Soins du Visage': [
        ('Soin Hydratant', 200, 60),
        ('Nettoyage de Peau', 250, 60),
    ],
}

DEFAULT_EXPENSE_CATEGORIES = [
    ('Loyer', '#ef4444'),
    ('Produits', '#3b82f6'),
    ('Électricité & Eau', '#f59e0b'),
    ('Divers', '#6b7280'),
]


def seed_defaults():
    """Insert each starter table only while it is empty."""
    seeded = []
    if Staff.query.count() == 0:
        db.session.add_all(Staff(name=name, color=color) for name, color in DEFAULT_STAFF)
        seeded.append('staff')
    if Category.query.count() == 0:
        db.session.add_all(Category(name=name) for name in DEFAULT_SERVICES)
        seeded.append('categories')
    if Service.query.count() == 0:
        db.session.add_all(
            Service(name=name, price=price, duration=duration, category=category)
            for category, entries in DEFAULT_SERVICES.items()
            for name, price, duration in entries
        )
        seeded.append('services')
    if ExpenseCategory.query.count() == 0:
        db.session.add_all(ExpenseCategory(name=name, color=color) for name, color in DEFAULT_EXPENSE_CATEGORIES)
        seeded.append('expense categories')

    if seeded:
        db.session.commit()
        logger.info('Seeded default %s', ', '.join(seeded))
    return seeded
