from flask import Blueprint, Response, g, jsonify, request, stream_with_context

from salondesk import export, messaging, notifier, push
from salondesk.auth import (
    check_lockout, current_user, end_session, has_permission, login_required,
    permission_required, record_failure, start_session,
)
from salondesk.domain import admin_roles, appointments, clients, expenses, inventory, settings, staff
from salondesk.errors import AuthenticationError, PermissionDenied
from salondesk.schemas import BookingMessage, MessageSend, PinReset, PinVerify, PushSubscriptionIn, PushUnsubscribe

main = Blueprint('main', __name__)


def _json():
    return request.get_json(silent=True) or {}


def _listed(items):
    return jsonify([item.to_dict() for item in items])


# ============================================
# Health & Info Routes
# ============================================

@main.route('/')
def index():
    return jsonify({"message": "Welcome to SalonDesk!"})


@main.route('/health')
def health():
    return jsonify({"status": "healthy"})


# ============================================
# Appointments
# ============================================

@main.route('/api/appointments', methods=['GET'])
@permission_required('view_planning')
def list_appointments():
    start_date, end_date = request.args.get('startDate'), request.args.get('endDate')
    if start_date and end_date:
        return _listed(appointments.list_range(start_date, end_date, request.args.get('staff')))
    return _listed(appointments.list_appointments(request.args.get('date')))


@main.route('/api/appointments/all', methods=['GET'])
@permission_required('view_planning')
def list_all_appointments():
    return _listed(appointments.list_appointments())


@main.route('/api/appointments', methods=['POST'])
@permission_required('manage_appointments')
def create_appointment():
    appointment = appointments.create_appointment(_json(), created_by=g.current_user['name'])
    return jsonify(appointment.to_dict()), 201


@main.route('/api/appointments/<int:appointment_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_appointments')
def update_appointment(appointment_id):
    return jsonify(appointments.update_appointment(appointment_id, _json()).to_dict())


@main.route('/api/appointments/<int:appointment_id>', methods=['DELETE'])
@permission_required('manage_appointments')
def delete_appointment(appointment_id):
    appointments.delete_appointment(appointment_id)
    return jsonify({'success': True})


@main.route('/api/availability', methods=['GET'])
@permission_required('view_planning')
def availability():
    return jsonify(appointments.availability(request.args.to_dict()))


# ============================================
# Services & Categories
# ============================================

@main.route('/api/services', methods=['GET'])
@login_required
def list_services():
    return _listed(staff.list_services())


@main.route('/api/services', methods=['POST'])
@permission_required('manage_services')
def create_service():
    return jsonify(staff.create_service(_json()).to_dict()), 201


@main.route('/api/services/<int:service_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_services')
def update_service(service_id):
    return jsonify(staff.update_service(service_id, _json()).to_dict())


@main.route('/api/services/<int:service_id>', methods=['DELETE'])
@permission_required('manage_services')
def delete_service(service_id):
    staff.delete_service(service_id)
    return jsonify({'success': True})


@main.route('/api/categories', methods=['GET'])
@login_required
def list_categories():
    return _listed(staff.list_categories())


@main.route('/api/categories', methods=['POST'])
@permission_required('manage_services')
def create_category():
    return jsonify(staff.create_category(_json()).to_dict()), 201


@main.route('/api/categories/<int:category_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_services')
def update_category(category_id):
    return jsonify(staff.update_category(category_id, _json()).to_dict())


@main.route('/api/categories/<int:category_id>', methods=['DELETE'])
@permission_required('manage_services')
def delete_category(category_id):
    staff.delete_category(category_id)
    return jsonify({'success': True})


# ============================================
# Staff
# ============================================

@main.route('/api/staff', methods=['GET'])
@login_required
def list_staff():
    return _listed(staff.list_staff())


@main.route('/api/staff', methods=['POST'])
@permission_required('manage_staff')
def create_staff():
    return jsonify(staff.create_staff(_json()).to_dict()), 201


@main.route('/api/staff/<int:staff_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_staff')
def update_staff(staff_id):
    return jsonify(staff.update_staff(staff_id, _json()).to_dict())


@main.route('/api/staff/<int:staff_id>', methods=['DELETE'])
@permission_required('manage_staff')
def delete_staff(staff_id):
    staff.delete_staff(staff_id)
    return jsonify({'success': True})


@main.route('/api/staff-performance/<name>', methods=['GET'])
@permission_required('view_staff_performance')
def staff_performance(name):
    return jsonify(expenses.performance_for(name, request.args.to_dict(), settings.salon_today()))


# ============================================
# Clients & Loyalty
# ============================================

@main.route('/api/clients', methods=['GET'])
@permission_required('view_clients')
def list_clients():
    return _listed(clients.list_clients())


@main.route('/api/clients/<int:client_id>', methods=['GET'])
@permission_required('view_clients')
def get_client(client_id):
    return jsonify(clients.get_client(client_id).to_dict())


@main.route('/api/clients/<int:client_id>/appointments', methods=['GET'])
@permission_required('view_clients')
def client_appointments(client_id):
    return _listed(clients.client_appointments(client_id))


@main.route('/api/clients', methods=['POST'])
@permission_required('manage_clients', 'manage_appointments')
def create_client():
    return jsonify(clients.create_client(_json()).to_dict()), 201


@main.route('/api/clients/<int:client_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_clients')
def update_client(client_id):
    return jsonify(clients.update_client(client_id, _json()).to_dict())


@main.route('/api/clients/<int:client_id>', methods=['DELETE'])
@permission_required('manage_clients')
def delete_client(client_id):
    clients.delete_client(client_id)
    return jsonify({'success': True})


@main.route('/api/clients/<int:client_id>/loyalty', methods=['PATCH'])
@permission_required('manage_clients')
def accrue_loyalty(client_id):
    return jsonify(clients.accrue_from_request(client_id, _json()).to_dict())


@main.route('/api/loyalty-redemptions', methods=['GET'])
@permission_required('view_clients')
def list_redemptions():
    return _listed(clients.list_redemptions(request.args.get('clientId', type=int)))


@main.route('/api/loyalty-redemptions', methods=['POST'])
@permission_required('manage_clients')
def create_redemption():
    return jsonify(clients.redeem(_json()).to_dict()), 201


# ============================================
# Inventory
# ============================================

@main.route('/api/products', methods=['GET'])
@permission_required('view_inventory')
def list_products():
    return _listed(inventory.list_products())


@main.route('/api/products/low-stock', methods=['GET'])
@permission_required('view_inventory')
def low_stock_products():
    return _listed(inventory.low_stock())


@main.route('/api/products/by-name/<name>', methods=['GET'])
@permission_required('view_inventory')
def product_by_name(name):
    return jsonify(inventory.get_product_by_name(name).to_dict())


@main.route('/api/products/<int:product_id>', methods=['GET'])
@permission_required('view_inventory')
def get_product(product_id):
    return jsonify(inventory.get_product(product_id).to_dict())


@main.route('/api/products', methods=['POST'])
@permission_required('manage_inventory')
def create_product():
    return jsonify(inventory.create_product(_json()).to_dict()), 201


@main.route('/api/products/<int:product_id>', methods=['PUT', 'PATCH'])
@permission_required('manage_inventory')
def update_product(product_id):
    return jsonify(inventory.update_product(product_id, _json()).to_dict())


@main.route('/api/products/<int:product_id>/quantity', methods=['PATCH'])
@permission_required('manage_inventory')
def set_product_quantity(product_id):
    return jsonify(inventory.set_quantity(product_id, _json()).to_dict())


@main.route('/api/products/<int:product_id>', methods=['DELETE'])
@permission_required('manage_inventory')
def delete_product(product_id):
    inventory.delete_product(product_id)
    return jsonify({'success': True})


# ============================================
# Expenses & Salaries
# ============================================

@main.route('/api/charges', methods=['GET'])
@permission_required('view_expenses')
def list_charges():
    return _listed(expenses.list_charges(request.args.get('startDate'), request.args.get('endDate')))


@main.route('/api/charges', methods=['POST'])
@permission_required('manage_expenses')
def create_charge():
    return jsonify(expenses.create_charge(_json()).to_dict()), 201


@main.route('/api/charges/<int:charge_id>', methods=['DELETE'])
@permission_required('manage_expenses')
def delete_charge(charge_id):
    expenses.delete_charge(charge_id)
    return jsonify({'success': True})


@main.route('/api/expense-categories', methods=['GET'])
@permission_required('view_expenses')
def list_expense_categories():
    return _listed(expenses.list_expense_categories())


@main.route('/api/expense-categories', methods=['POST'])
@permission_required('manage_expenses')
def create_expense_category():
    return jsonify(expenses.create_expense_category(_json()).to_dict()), 201


@main.route('/api/expense-categories/<int:category_id>', methods=['DELETE'])
@permission_required('manage_expenses')
def delete_expense_category(category_id):
    expenses.delete_expense_category(category_id)
    return jsonify({'success': True})


@main.route('/api/staff-deductions', methods=['GET'])
@permission_required('view_salaries')
def list_deductions():
    return _listed(expenses.list_deductions(
        request.args.get('startDate'), request.args.get('endDate'), request.args.get('staffName'),
    ))


@main.route('/api/staff-deductions', methods=['POST'])
@permission_required('manage_salaries')
def create_deduction():
    return jsonify(expenses.create_deduction(_json()).to_dict()), 201


@main.route('/api/staff-deductions/<int:deduction_id>', methods=['DELETE'])
@permission_required('manage_salaries')
def delete_deduction(deduction_id):
    expenses.delete_deduction(deduction_id)
    return jsonify({'success': True})


@main.route('/api/reports/payroll', methods=['GET'])
@permission_required('view_salaries', 'view_reports')
def payroll_report():
    return jsonify(expenses.payroll_report(request.args.to_dict()).to_dict())


@main.route('/api/export/<kind>', methods=['GET'])
@permission_required('export_data')
def export_table(kind):
    body = export.export_csv(kind)
    filename = f'{kind}-{settings.salon_today().isoformat()}.csv'
    return Response(
        body,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename={filename}'},
    )


# ============================================
# Business Settings
# ============================================

@main.route('/api/business-settings', methods=['GET'])
@login_required
def get_business_settings():
    return jsonify(settings.get_settings().to_dict())


@main.route('/api/business-settings', methods=['PUT', 'PATCH'])
@permission_required('admin_settings')
def update_business_settings():
    return jsonify(settings.update_settings(_json()).to_dict())


# ============================================
# Admin Roles & PIN Sessions
# ============================================

@main.route('/api/admin-roles', methods=['GET'])
@permission_required('admin_settings')
def list_admin_roles():
    return _listed(admin_roles.list_roles())


@main.route('/api/admin-roles/names', methods=['GET'])
def admin_role_names():
    """Login screen user picker."""
    return jsonify([{'name': role.name} for role in admin_roles.list_roles()])


@main.route('/api/admin-roles', methods=['POST'])
def create_admin_role():
    # The very first role can be created without a session
    if admin_roles.has_roles():
        user = current_user()
        if not user:
            raise AuthenticationError('Authentication required')
        if not has_permission(user, 'admin_settings'):
            raise PermissionDenied('Permission denied')
    return jsonify(admin_roles.create_role(_json()).to_dict()), 201


@main.route('/api/admin-roles/<int:role_id>', methods=['PUT', 'PATCH'])
@permission_required('admin_settings')
def update_admin_role(role_id):
    return jsonify(admin_roles.update_role(role_id, _json()).to_dict())


@main.route('/api/admin-roles/<int:role_id>', methods=['DELETE'])
@permission_required('admin_settings')
def delete_admin_role(role_id):
    admin_roles.delete_role(role_id)
    return jsonify({'success': True})


@main.route('/api/admin-roles/verify-pin', methods=['POST'])
def verify_pin():
    data = _json()
    name = PinVerify.model_validate(data).name
    check_lockout(name)
    try:
        role = admin_roles.verify_pin(data)
    except AuthenticationError:
        record_failure(name)
        raise
    start_session(role)
    return jsonify({
        'success': True,
        'name': role.name,
        'role': role.role,
        'permissions': list(role.permissions or []),
    })


@main.route('/api/admin-roles/reset-pin', methods=['POST'])
def reset_pin():
    data = _json()
    name = PinReset.model_validate(data).name
    check_lockout(name)
    try:
        admin_roles.reset_pin(data)
    except AuthenticationError:
        record_failure(name)
        raise
    return jsonify({'success': True})


@main.route('/api/admin-roles/session', methods=['GET'])
@login_required
def get_session():
    return jsonify(g.current_user)


@main.route('/api/admin-roles/logout', methods=['POST'])
def logout():
    end_session()
    return jsonify({'success': True})


# ============================================
# Real-time Events
# ============================================

@main.route('/api/events', methods=['GET'])
@login_required
def events():
    broadcaster = notifier.get_broadcaster()
    subscriber = broadcaster.subscribe()
    return Response(
        stream_with_context(notifier.stream(broadcaster, subscriber)),
        mimetype='text/event-stream',
        headers={'Cache-Control': 'no-cache', 'X-Accel-Buffering': 'no'},
    )


# ============================================
# Push Notifications
# ============================================

@main.route('/api/push/vapid-public-key', methods=['GET'])
def vapid_public_key():
    return jsonify({'publicKey': push.vapid_public_key()})


@main.route('/api/push/subscribe', methods=['POST'])
@login_required
def push_subscribe():
    payload = PushSubscriptionIn.model_validate(_json())
    push.subscribe(payload.endpoint, payload.keys.p256dh, payload.keys.auth)
    return jsonify({'success': True}), 201


@main.route('/api/push/unsubscribe', methods=['POST'])
@login_required
def push_unsubscribe():
    payload = PushUnsubscribe.model_validate(_json())
    return jsonify({'success': push.unsubscribe(payload.endpoint)})


# ============================================
# SMS / WhatsApp Notifications
# ============================================

@main.route('/api/notifications/send', methods=['POST'])
@permission_required('manage_appointments')
def send_message():
    payload = MessageSend.model_validate(_json())
    result = messaging.send_sms(payload.phone, payload.message)
    return jsonify(result.to_dict()), 200 if result.success else 502


@main.route('/api/notifications/booking-confirmation', methods=['POST'])
@permission_required('manage_appointments')
def send_booking_confirmation():
    payload = BookingMessage.model_validate(_json())
    result = messaging.send_booking_confirmation(
        payload.client_phone, payload.client_name,
        payload.appointment_date, payload.appointment_time, payload.service_name,
    )
    return jsonify(result.to_dict()), 200 if result.success else 502


@main.route('/api/notifications/appointment-reminder', methods=['POST'])
@permission_required('manage_appointments')
def send_appointment_reminder():
    payload = BookingMessage.model_validate(_json())
    result = messaging.send_appointment_reminder(
        payload.client_phone, payload.client_name,
        payload.appointment_date, payload.appointment_time, payload.service_name,
        payload.staff_name,
    )
    return jsonify(result.to_dict()), 200 if result.success else 502
