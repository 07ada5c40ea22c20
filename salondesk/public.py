"""Unauthenticated booking surface.

Every route here is rate limited per client address and exposes only
booking-safe projections: no client names, phone numbers or prices of
other people's appointments.
"""
import logging
from flask import Blueprint, current_app, jsonify, request

from salondesk.domain import appointments, settings, staff
from salondesk.errors import RateLimited, ValidationError
from salondesk.ratelimit import FixedWindowLimiter

logger = logging.getLogger(__name__)

LIMITER_KEY = 'salondesk.public_limiter'

public = Blueprint('public', __name__, url_prefix='/api/public')


def init_limiter(app):
    app.extensions[LIMITER_KEY] = FixedWindowLimiter(
        app.config['PUBLIC_RATE_LIMIT'], app.config['PUBLIC_RATE_WINDOW']
    )


@public.before_request
def rate_limit():
    limiter = current_app.extensions[LIMITER_KEY]
    limiter.sweep()
    decision = limiter.hit(request.remote_addr or 'unknown')
    if not decision.allowed:
        logger.warning('Rate limit exceeded for %s on %s', request.remote_addr, request.path)
        raise RateLimited('Too many requests. Please try again later.', decision.retry_after)


@public.route('/services', methods=['GET'])
def list_services():
    return jsonify([
        {'name': s.name, 'price': s.price, 'duration': s.duration, 'category': s.category}
        for s in staff.list_services()
    ])


@public.route('/staff', methods=['GET'])
def list_staff():
    return jsonify([{'name': member.name, 'color': member.color} for member in staff.list_staff()])


@public.route('/appointments', methods=['GET'])
def list_appointments():
    day = request.args.get('date')
    if not day:
        raise ValidationError('date is required')
    return jsonify([a.to_public_dict() for a in appointments.list_appointments(day)])


@public.route('/availability', methods=['GET'])
def availability():
    return jsonify(appointments.availability(request.args.to_dict()))


@public.route('/settings', methods=['GET'])
def business_settings():
    return jsonify(settings.get_settings().to_public_dict())


@public.route('/appointments', methods=['POST'])
def book():
    appointment = appointments.create_appointment(
        request.get_json(silent=True) or {}, channel=appointments.PUBLIC
    )
    return jsonify({'success': True, 'appointment': appointment.to_public_dict()}), 201
