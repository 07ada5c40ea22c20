"""CSV exports of the main tables for spreadsheets and accounting."""
import csv
from io import StringIO

from salondesk.errors import NotFound
from salondesk.models import Appointment, Charge, Client, Product, Service, Staff
from salondesk.storage import get_storage

# kind -> (model, ordering column, [(header, attribute)])
EXPORTS = {
    'appointments': (Appointment, 'date', [
        ('ID', 'id'), ('Date', 'date'), ('Start Time', 'start_time'), ('Duration', 'duration'),
        ('Client', 'client'), ('Service', 'service'), ('Staff', 'staff'),
        ('Price', 'price'), ('Total', 'total'), ('Paid', 'paid'), ('Created By', 'created_by'),
    ]),
    'clients': (Client, 'name', [
        ('ID', 'id'), ('Name', 'name'), ('Phone', 'phone'), ('Email', 'email'),
        ('Birthday', 'birthday'), ('Loyalty Points', 'loyalty_points'),
        ('Total Visits', 'total_visits'), ('Total Spent', 'total_spent'), ('Notes', 'notes'),
    ]),
    'services': (Service, 'name', [
        ('ID', 'id'), ('Name', 'name'), ('Category', 'category'), ('Price', 'price'),
        ('Duration', 'duration'), ('Commission %', 'commission_percent'),
    ]),
    'staff': (Staff, 'name', [
        ('ID', 'id'), ('Name', 'name'), ('Phone', 'phone'), ('Email', 'email'), ('Base Salary', 'base_salary'),
    ]),
    'inventory': (Product, 'name', [
        ('ID', 'id'), ('Name', 'name'), ('Quantity', 'quantity'), ('Low Stock Threshold', 'low_stock_threshold'),
    ]),
    'expenses': (Charge, 'date', [
        ('ID', 'id'), ('Date', 'date'), ('Type', 'type'), ('Name', 'name'), ('Amount', 'amount'),
    ]),
}


def _cell(value):
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'yes' if value else 'no'
    return value


def export_csv(kind):
    """Render one table as CSV text with a header row."""
    if kind not in EXPORTS:
        raise NotFound(f'Unknown export: {kind}')
    model, order_column, columns = EXPORTS[kind]

    output = StringIO()
    writer = csv.writer(output)
    writer.writerow([header for header, _ in columns])
    for row in get_storage().all(model, getattr(model, order_column)):
        writer.writerow([_cell(getattr(row, attr)) for _, attr in columns])
    return output.getvalue()
