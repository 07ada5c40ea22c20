"""Appointment booking, editing and payment.

Marking an appointment paid is the one place with side effects: the linked
product loses one unit and the linked client earns loyalty points. Both only
happen on the unpaid -> paid transition, which is claimed with a conditional
UPDATE so a repeated or concurrent "mark paid" request is a no-op.
"""
import logging

from salondesk import messaging, notifier, push
from salondesk.availability import available_slots, find_conflicts
from salondesk.domain import apply_patch, get_or_404
from salondesk.domain.clients import points_for
from salondesk.domain.inventory import consume_for_service
from salondesk.domain.settings import slot_catalog
from salondesk.domain.staff import find_service_by_name, find_staff_by_name
from salondesk.errors import Conflict, ValidationError
from salondesk.models import Appointment
from salondesk.schemas import AppointmentCreate, AppointmentUpdate, AvailabilityQuery, PublicAppointmentCreate
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)

INTERNAL = 'internal'
PUBLIC = 'public'

SLOT_FIELDS = ('staff', 'date', 'start_time', 'duration')


def list_appointments(date=None):
    return get_storage().appointments(date)


def list_range(start_date, end_date, staff_name=None):
    return get_storage().appointments_between(start_date, end_date, staff_name)


def get_appointment(appointment_id):
    return get_or_404(Appointment, appointment_id, 'Appointment')


def _resolve_staff(name):
    member = find_staff_by_name(name)
    if member is None:
        raise ValidationError(f'Unknown staff member: {name}')
    return member


def client_label(name, phone=None):
    return f'{name} ({phone})' if phone else name


def check_slot(staff_name, date, start_time, duration, ignore_id=None):
    existing = get_storage().appointments_for_staff_on(staff_name, date)
    return find_conflicts(staff_name, date, start_time, duration, existing, slot_catalog(), ignore_id=ignore_id)


def _warn_double_booking(staff_name, date, start_time):
    logger.warning('Double booking for %s on %s at %s', staff_name, date, start_time)


def availability(query):
    params = AvailabilityQuery.model_validate(query)
    existing = get_storage().appointments_for_staff_on(params.staff, params.date)
    return available_slots(params.staff, params.date, existing, params.duration, slot_catalog())


def create_appointment(data, channel=INTERNAL, created_by=None):
    """Book an appointment.

    Public bookings are always stored unpaid, priced and timed from the
    service, must start on the slot grid, and are refused when they overlap
    an existing booking of the same staff member. Dashboard bookings
    may overlap on purpose; the overlap is only logged.
    """
    storage = get_storage()
    phone = None
    if channel == PUBLIC:
        payload = PublicAppointmentCreate.model_validate(data or {})
        phone = payload.phone
        service = find_service_by_name(payload.service)
        if service is None:
            raise ValidationError(f'Unknown service: {payload.service}')
        if payload.start_time not in slot_catalog():
            raise ValidationError(f'{payload.start_time} is not a bookable time')
        client_name = payload.client
        fields = payload.model_dump(exclude={'phone'})
        fields.update(
            client=client_label(payload.client, phone),
            duration=service.duration,
            price=service.price,
            total=service.price,
            paid=False,
            created_by=PUBLIC,
        )
    else:
        payload = AppointmentCreate.model_validate(data or {})
        fields = payload.model_dump()
        if created_by and not fields.get('created_by'):
            fields['created_by'] = created_by
        phone = messaging.phone_from_client_label(payload.client)
        client_name = payload.client.split(' (')[0] if phone else payload.client

    member = _resolve_staff(fields['staff'])
    conflicts = check_slot(member.name, fields['date'], fields['start_time'], fields['duration'])
    if conflicts:
        if channel == PUBLIC:
            raise Conflict('This time slot is no longer available')
        _warn_double_booking(member.name, fields['date'], fields['start_time'])

    paid = fields.pop('paid')
    appointment = Appointment(staff_id=member.id, paid=False, **fields)
    storage.add(appointment)
    logger.info('Appointment %s booked via %s', appointment.id, channel)

    if paid:
        _settle(appointment)
    else:
        notifier.publish(notifier.BOOKING_CREATED, appointment.to_dict())

    if channel == PUBLIC:
        push.broadcast(
            'New booking',
            f'{appointment.client} - {appointment.service} at {appointment.start_time} on {appointment.date}',
        )
    if phone:
        messaging.notify_booking_confirmation(
            phone, client_name, appointment.date, appointment.start_time, appointment.service,
        )
    return appointment


def update_appointment(appointment_id, data):
    storage = get_storage()
    appointment = get_appointment(appointment_id)
    patch = AppointmentUpdate.model_validate(data or {}).model_dump(exclude_unset=True)
    patch = {key: value for key, value in patch.items() if value is not None or key == 'client_id'}
    paid = patch.pop('paid', None)

    if 'staff' in patch and patch['staff'] != appointment.staff:
        patch['staff_id'] = _resolve_staff(patch['staff']).id
    slot = {key: patch.get(key, getattr(appointment, key)) for key in SLOT_FIELDS}
    if any(slot[key] != getattr(appointment, key) for key in SLOT_FIELDS):
        if check_slot(slot['staff'], slot['date'], slot['start_time'], slot['duration'], ignore_id=appointment.id):
            _warn_double_booking(slot['staff'], slot['date'], slot['start_time'])
    apply_patch(appointment, patch)
    if paid is False:
        appointment.paid = False
    storage.commit()

    if paid and not appointment.paid:
        _settle(appointment)

    payload = storage.refresh(appointment).to_dict()
    notifier.publish(notifier.APPOINTMENT_UPDATED, payload)
    if appointment.paid:
        notifier.publish(notifier.APPOINTMENT_PAID, payload)
    return appointment


def _settle(appointment):
    """Apply payment side effects once; later calls find it already paid."""
    storage = get_storage()
    if not storage.mark_paid(appointment.id):
        logger.info('Appointment %s already paid', appointment.id)
        return False

    service = find_service_by_name(appointment.service)
    consume_for_service(service)

    if appointment.client_id:
        multiplier = service.loyalty_points_multiplier if service else 1
        points = points_for(appointment.total, multiplier)
        if storage.accrue_loyalty(appointment.client_id, points, appointment.total):
            appointment.loyalty_points_earned = points
            storage.commit()
        else:
            logger.warning('Client %s not found for appointment %s', appointment.client_id, appointment.id)
    storage.refresh(appointment)
    return True


def delete_appointment(appointment_id):
    get_storage().delete(get_appointment(appointment_id))
