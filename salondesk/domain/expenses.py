"""Salon charges, staff deductions and the payroll report built on them."""
import logging
from datetime import date as Date
from sqlalchemy.exc import IntegrityError

from salondesk.domain import get_or_404
from salondesk.domain.staff import find_staff_by_name, list_services, list_staff
from salondesk.errors import Conflict, ValidationError
from salondesk.models import Charge, ExpenseCategory, StaffDeduction
from salondesk.payroll import aggregate_payroll, commission_map, period_range, staff_performance
from salondesk.schemas import ChargeCreate, DeductionCreate, ExpenseCategoryCreate, PayrollQuery, PerformanceQuery
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)


def _between(model, start_date=None, end_date=None):
    query = model.query
    if start_date:
        query = query.filter(model.date >= start_date)
    if end_date:
        query = query.filter(model.date <= end_date)
    return query.order_by(model.date.desc(), model.id.desc()).all()


# ============================================
# Charges
# ============================================

def list_charges(start_date=None, end_date=None):
    return _between(Charge, start_date, end_date)


def create_charge(data):
    payload = ChargeCreate.model_validate(data or {})
    if payload.category_id is not None and get_storage().get(ExpenseCategory, payload.category_id) is None:
        raise ValidationError('Expense category does not exist')
    return get_storage().add(Charge(**payload.model_dump()))


def delete_charge(charge_id):
    get_storage().delete(get_or_404(Charge, charge_id, 'Charge'))


# ============================================
# Staff deductions
# ============================================

def list_deductions(start_date=None, end_date=None, staff_name=None):
    deductions = _between(StaffDeduction, start_date, end_date)
    if staff_name:
        deductions = [deduction for deduction in deductions if deduction.staff_name == staff_name]
    return deductions


def create_deduction(data):
    payload = DeductionCreate.model_validate(data or {})
    member = find_staff_by_name(payload.staff_name)
    if member is None:
        raise ValidationError(f'Unknown staff member: {payload.staff_name}')
    deduction = StaffDeduction(staff_id=member.id, **payload.model_dump())
    get_storage().add(deduction)
    logger.info('Recorded %s of %s for %s', payload.type, payload.amount, member.name)
    return deduction


def delete_deduction(deduction_id):
    get_storage().delete(get_or_404(StaffDeduction, deduction_id, 'Deduction'))


# ============================================
# Expense categories
# ============================================

def list_expense_categories():
    return get_storage().all(ExpenseCategory, ExpenseCategory.name)


def create_expense_category(data):
    payload = ExpenseCategoryCreate.model_validate(data or {})
    try:
        return get_storage().add(ExpenseCategory(**payload.model_dump()))
    except IntegrityError:
        raise Conflict('An expense category with this name already exists')


def delete_expense_category(category_id):
    category = get_or_404(ExpenseCategory, category_id, 'Expense category')
    Charge.query.filter_by(category_id=category.id).update({'category_id': None})
    get_storage().delete(category)


# ============================================
# Reports
# ============================================

def payroll_report(query):
    params = PayrollQuery.model_validate(query or {})
    if params.start_date > params.end_date:
        raise ValidationError('startDate must not be after endDate')
    storage = get_storage()
    return aggregate_payroll(
        storage.appointments_between(params.start_date, params.end_date),
        commission_map(list_services()),
        params.start_date,
        params.end_date,
        staff_filter=params.staff,
        charges=list_charges(params.start_date, params.end_date),
        deductions=list_deductions(params.start_date, params.end_date),
        staff_names=[member.name for member in list_staff()],
    )


def performance_for(staff_name, query, today):
    params = PerformanceQuery.model_validate(query or {})
    if params.start_date or params.end_date:
        if not (params.start_date and params.end_date):
            raise ValidationError('startDate and endDate must be given together')
        if params.start_date > params.end_date:
            raise ValidationError('startDate must not be after endDate')
        period = 'custom'
        start_date, end_date = params.start_date, params.end_date
    else:
        period = params.period
        reference = Date.fromisoformat(params.date) if params.date else today
        try:
            start_date, end_date = period_range(period, reference)
        except ValueError as exc:
            raise ValidationError(str(exc))
    appointments = get_storage().appointments_between(start_date, end_date, staff_name)
    result = staff_performance(staff_name, appointments, commission_map(list_services()), start_date, end_date)
    result.update(staff=staff_name, period=period, startDate=start_date, endDate=end_date)
    return result
