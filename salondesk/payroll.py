"""Commission and payroll aggregation.

Works on plain records (ORM rows or dicts) so it can be used without a
database. Commission is rounded per appointment before summing; rounding the
sum instead drifts by a unit on odd totals.
"""
import math
from dataclasses import dataclass, field
from datetime import date as Date, timedelta
from typing import Dict, Iterable, List, Optional

from salondesk.models import DEFAULT_COMMISSION_PERCENT


def round_half_up(value):
    return int(math.floor(value + 0.5))


def appointment_commission(total, percent):
    return round_half_up(total * percent / 100)


def _get(record, *names):
    for name in names:
        if isinstance(record, dict):
            if name in record:
                return record[name]
        elif hasattr(record, name):
            return getattr(record, name)
    return None


def in_range(day, start, end):
    """Inclusive comparison of ``YYYY-MM-DD`` strings."""
    return start <= day <= end


def commission_map(services):
    """Service name -> commission percent."""
    rates = {}
    for service in services:
        percent = _get(service, 'commission_percent', 'commissionPercent')
        rates[_get(service, 'name')] = percent
    return rates


def commission_percent_for(service_name, rates):
    percent = rates.get(service_name)
    return DEFAULT_COMMISSION_PERCENT if percent is None else percent


@dataclass
class ServiceEarnings:
    count: int = 0
    revenue: float = 0
    commission: int = 0

    def to_dict(self):
        return {'count': self.count, 'revenue': self.revenue, 'commission': self.commission}


@dataclass
class StaffEarnings:
    name: str
    appointments_count: int = 0
    total_revenue: float = 0
    total_commission: int = 0
    deductions: float = 0
    services: Dict[str, ServiceEarnings] = field(default_factory=dict)

    @property
    def salon_share(self):
        return self.total_revenue - self.total_commission

    @property
    def net_payable(self):
        return self.total_commission - self.deductions

    def add(self, service_name, total, commission):
        self.appointments_count += 1
        self.total_revenue += total
        self.total_commission += commission
        entry = self.services.setdefault(service_name, ServiceEarnings())
        entry.count += 1
        entry.revenue += total
        entry.commission += commission

    def to_dict(self):
        return {
            'name': self.name,
            'appointmentsCount': self.appointments_count,
            'totalRevenue': self.total_revenue,
            'totalCommission': self.total_commission,
            'salonShare': self.salon_share,
            'deductions': self.deductions,
            'netPayable': self.net_payable,
            'services': {name: entry.to_dict() for name, entry in self.services.items()},
        }


@dataclass
class PayrollReport:
    start_date: str
    end_date: str
    staff: List[StaffEarnings]
    total_expenses: float = 0
    total_deductions: float = 0

    @property
    def total_revenue(self):
        return sum(entry.total_revenue for entry in self.staff)

    @property
    def total_commission(self):
        return sum(entry.total_commission for entry in self.staff)

    @property
    def total_appointments(self):
        return sum(entry.appointments_count for entry in self.staff)

    @property
    def salon_share(self):
        return self.total_revenue - self.total_commission

    @property
    def net_salon_profit(self):
        return self.salon_share - self.total_expenses

    @property
    def net_staff_payable(self):
        return self.total_commission - self.total_deductions

    def to_dict(self):
        return {
            'startDate': self.start_date,
            'endDate': self.end_date,
            'staff': [entry.to_dict() for entry in self.staff],
            'totalAppointments': self.total_appointments,
            'totalRevenue': self.total_revenue,
            'totalCommission': self.total_commission,
            'salonShare': self.salon_share,
            'totalExpenses': self.total_expenses,
            'totalDeductions': self.total_deductions,
            'netSalonProfit': self.net_salon_profit,
            'netStaffPayable': self.net_staff_payable,
        }


def aggregate_payroll(
    appointments: Iterable,
    rates: Dict[str, float],
    start_date: str,
    end_date: str,
    staff_filter: Optional[str] = None,
    charges: Iterable = (),
    deductions: Iterable = (),
    staff_names: Iterable[str] = (),
) -> PayrollReport:
    """Sum revenue, commission, expenses and deductions for a period.

    Only paid appointments inside ``[start_date, end_date]`` count. Staff
    listed in ``staff_names`` appear even without appointments. Charges are
    salon-wide and are never narrowed by ``staff_filter``.
    """
    earnings: Dict[str, StaffEarnings] = {}
    for name in staff_names:
        if staff_filter is None or name == staff_filter:
            earnings[name] = StaffEarnings(name=name)

    for appointment in appointments:
        if not _get(appointment, 'paid'):
            continue
        if not in_range(_get(appointment, 'date'), start_date, end_date):
            continue
        staff_name = _get(appointment, 'staff')
        if staff_filter is not None and staff_name != staff_filter:
            continue
        service_name = _get(appointment, 'service')
        total = _get(appointment, 'total') or 0
        commission = appointment_commission(total, commission_percent_for(service_name, rates))
        earnings.setdefault(staff_name, StaffEarnings(name=staff_name)).add(service_name, total, commission)

    total_deductions = 0
    for deduction in deductions:
        if not in_range(_get(deduction, 'date'), start_date, end_date):
            continue
        staff_name = _get(deduction, 'staff_name', 'staffName')
        if staff_filter is not None and staff_name != staff_filter:
            continue
        amount = _get(deduction, 'amount') or 0
        total_deductions += amount
        if staff_name in earnings:
            earnings[staff_name].deductions += amount

    total_expenses = sum(
        _get(charge, 'amount') or 0
        for charge in charges
        if in_range(_get(charge, 'date'), start_date, end_date)
    )

    return PayrollReport(
        start_date=start_date,
        end_date=end_date,
        staff=list(earnings.values()),
        total_expenses=total_expenses,
        total_deductions=total_deductions,
    )


def staff_performance(staff_name, appointments, rates, start_date, end_date):
    """Totals for one staff member over every booking in range, paid or not."""
    count = 0
    revenue = 0
    commission = 0
    for appointment in appointments:
        if _get(appointment, 'staff') != staff_name:
            continue
        if not in_range(_get(appointment, 'date'), start_date, end_date):
            continue
        total = _get(appointment, 'total') or 0
        count += 1
        revenue += total
        commission += appointment_commission(total, commission_percent_for(_get(appointment, 'service'), rates))
    return {'totalAppointments': count, 'totalRevenue': revenue, 'totalCommission': commission}


def period_range(period, reference: Date):
    """Inclusive (start, end) ISO dates for a day, week (Sunday first) or month."""
    if period == 'day':
        return reference.isoformat(), reference.isoformat()
    if period == 'week':
        start = reference - timedelta(days=(reference.weekday() + 1) % 7)
        return start.isoformat(), (start + timedelta(days=6)).isoformat()
    if period == 'month':
        start = reference.replace(day=1)
        following = (start + timedelta(days=32)).replace(day=1)
        return start.isoformat(), (following - timedelta(days=1)).isoformat()
    raise ValueError(f'Unknown period: {period}')
