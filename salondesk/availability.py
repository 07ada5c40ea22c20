"""Appointment slot availability.

Everything here is pure: callers load the appointments and the slot catalog,
these helpers only compare intervals. An interval ``[a, b)`` overlaps
``[c, d)`` iff ``a < d and c < b``, so back-to-back bookings never conflict.
"""

MINUTES_PER_DAY = 24 * 60
SLOT_STEP_MINUTES = 30

# Default operating window of the salon (11:00 to 02:00 the next day)
DEFAULT_SLOTS = (
    '11:00', '11:30', '12:00', '12:30', '13:00', '13:30',
    '14:00', '14:30', '15:00', '15:30', '16:00', '16:30',
    '17:00', '17:30', '18:00', '18:30', '19:00', '19:30',
    '20:00', '20:30', '21:00', '21:30', '22:00', '22:30',
    '23:00', '23:30', '00:00', '00:30', '01:00', '01:30', '02:00',
)


def to_minutes(hhmm):
    hours, minutes = hhmm.split(':')
    return int(hours) * 60 + int(minutes)


def format_minutes(total):
    total %= MINUTES_PER_DAY
    return f'{total // 60:02d}:{total % 60:02d}'


def overlaps(a_start, a_end, b_start, b_end):
    return a_start < b_end and b_start < a_end


def build_slot_catalog(opening, closing, step=SLOT_STEP_MINUTES):
    """Half-hour grid from opening to closing (inclusive), wrapping past midnight."""
    start = to_minutes(opening)
    end = to_minutes(closing)
    if end <= start:
        end += MINUTES_PER_DAY
    return [format_minutes(minute) for minute in range(start, end + 1, step)]


def _timeline(catalog):
    """Map HH:MM to minutes on the operating day of ``catalog``.

    When the catalog wraps past midnight, times earlier than its first slot
    belong to the next calendar day and are pushed past 24:00.
    """
    if not catalog:
        return to_minutes
    opening = to_minutes(catalog[0])
    wraps = any(to_minutes(slot) < opening for slot in catalog)

    def position(hhmm):
        minute = to_minutes(hhmm)
        if wraps and minute < opening:
            minute += MINUTES_PER_DAY
        return minute

    return position


def _field(appointment, name, attr):
    if isinstance(appointment, dict):
        return appointment.get(name, appointment.get(attr))
    return getattr(appointment, attr)


def _busy_intervals(staff_name, date, appointments, position):
    for appointment in appointments:
        if _field(appointment, 'staff', 'staff') != staff_name:
            continue
        if _field(appointment, 'date', 'date') != date:
            continue
        start = position(_field(appointment, 'startTime', 'start_time'))
        yield appointment, start, start + int(_field(appointment, 'duration', 'duration'))


def available_slots(staff_name, date, appointments, duration, catalog=DEFAULT_SLOTS):
    """Return the slots of ``catalog`` where a booking of ``duration`` fits.

    Only appointments of ``staff_name`` on ``date`` are considered. Slots
    whose end runs past the last slot are still offered.
    """
    position = _timeline(catalog)
    busy = [(start, end) for _, start, end in _busy_intervals(staff_name, date, appointments, position)]
    free = []
    for slot in catalog:
        slot_start = position(slot)
        slot_end = slot_start + duration
        if not any(overlaps(slot_start, slot_end, start, end) for start, end in busy):
            free.append(slot)
    return free


def find_conflicts(staff_name, date, start_time, duration, appointments, catalog=DEFAULT_SLOTS, ignore_id=None):
    """Existing appointments that overlap a candidate booking."""
    position = _timeline(catalog)
    candidate_start = position(start_time)
    candidate_end = candidate_start + duration
    conflicts = []
    for appointment, start, end in _busy_intervals(staff_name, date, appointments, position):
        if ignore_id is not None and _field(appointment, 'id', 'id') == ignore_id:
            continue
        if overlaps(candidate_start, candidate_end, start, end):
            conflicts.append(appointment)
    return conflicts
