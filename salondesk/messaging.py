"""
Outbound SMS (YCloud) and WhatsApp (SendZen) messages.

Every sender returns a MessageResult instead of raising; a failed message is
logged and never undoes the booking or payment that triggered it.
"""
import logging
import re
from dataclasses import dataclass
from typing import Optional

import httpx
from flask import current_app

logger = logging.getLogger(__name__)

YCLOUD_API_URL = 'https://api.ycloud.com/v2/sms'
SENDZEN_API_URL = 'https://api.sendzen.io/v1/messages'

BOOKING_TEMPLATE = 'booking_confirmation'
REMINDER_TEMPLATE = 'appointment_reminder'

PHONE_IN_NAME_RE = re.compile(r'\(([+\d][\d\s\-]{6,})\)\s*$')


@dataclass
class MessageResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self):
        data = {'success': self.success}
        if self.message_id:
            data['messageId'] = self.message_id
        if self.error:
            data['error'] = self.error
        return data


def format_phone_number(phone):
    """Normalize a Moroccan number to E.164, or return None when unusable."""
    if not phone:
        return None
    digits = re.sub(r'\D', '', phone)
    if digits.startswith('0') and len(digits) == 10:
        return '+212' + digits[1:]
    if digits.startswith('212') and len(digits) == 12:
        return '+' + digits
    if len(digits) == 9:
        return '+212' + digits
    if len(digits) >= 10:
        return '+' + digits
    return None


def phone_from_client_label(label):
    """Booking labels look like ``Name (0612345678)``; pull the phone out."""
    match = PHONE_IN_NAME_RE.search(label or '')
    return match.group(1).strip() if match else None


def booking_confirmation_message(client_name, service_name, date, time):
    return (
        f'Hello {client_name}, your booking is confirmed!\n'
        f'Date: {date}\n'
        f'Time: {time}\n'
        f'Service: {service_name}\n'
        'Thank you for choosing us!'
    )


def appointment_reminder_message(client_name, service_name, date, time, staff_name=None):
    lines = [
        f'Hello {client_name}, a reminder of your appointment:',
        f'Date: {date}',
        f'Time: {time}',
        f'Service: {service_name}',
    ]
    if staff_name:
        lines.append(f'With: {staff_name}')
    lines.append('We look forward to seeing you!')
    return '\n'.join(lines)


def _post(url, headers, payload):
    timeout = current_app.config.get('MESSAGING_TIMEOUT', 10)
    response = httpx.post(url, headers=headers, json=payload, timeout=timeout)
    if response.status_code >= 400:
        try:
            detail = response.json().get('error', {})
            message = detail.get('message') if isinstance(detail, dict) else str(detail)
        except ValueError:
            message = None
        return MessageResult(False, error=message or f'HTTP {response.status_code}')
    data = response.json()
    return MessageResult(True, message_id=data.get('id') or data.get('message_id'))


def send_sms(to, text):
    api_key = current_app.config.get('YCLOUD_API_KEY')
    if not api_key:
        logger.info('YCloud API key not configured - SMS not sent')
        return MessageResult(False, error='API key not configured')
    if not to or not text:
        return MessageResult(False, error='Missing phone number or message')

    phone = format_phone_number(to)
    if not phone:
        return MessageResult(False, error='Invalid phone number format')

    try:
        result = _post(
            YCLOUD_API_URL,
            {'Content-Type': 'application/json', 'X-API-Key': api_key},
            {'to': phone, 'text': text},
        )
    except httpx.HTTPError as e:
        logger.error(f'Failed to send SMS: {e}')
        return MessageResult(False, error=str(e))

    if result.success:
        logger.info(f'SMS sent successfully: {result.message_id}')
    else:
        logger.error(f'YCloud SMS error: {result.error}')
    return result


def send_whatsapp_template(to, template_name, language_code, parameters):
    config = current_app.config
    api_key = config.get('WHATSAPP_API_KEY')
    if not api_key or not config.get('WHATSAPP_PHONE_NUMBER_ID'):
        logger.info('WhatsApp API credentials not configured - message not sent')
        return MessageResult(False, error='WhatsApp API credentials not configured')

    phone = format_phone_number(to)
    if not phone:
        return MessageResult(False, error='Invalid phone number format')

    payload = {
        'messaging_product': 'whatsapp',
        'recipient_type': 'individual',
        'from': config.get('WHATSAPP_FROM_NUMBER'),
        'to': phone.lstrip('+'),
        'type': 'template',
        'template': {
            'name': template_name,
            'lang_code': language_code,
            'components': [{
                'type': 'body',
                'parameters': [{'type': 'text', 'text': value} for value in parameters],
            }],
        },
    }
    try:
        result = _post(
            SENDZEN_API_URL,
            {'Content-Type': 'application/json', 'Authorization': f'Bearer {api_key}'},
            payload,
        )
    except httpx.HTTPError as e:
        logger.error(f'Failed to send WhatsApp message: {e}')
        return MessageResult(False, error=str(e))

    if not result.success:
        logger.error(f'SendZen WhatsApp error: {result.error}')
    return result


def send_booking_confirmation(phone, client_name, date, time, service_name):
    result = send_whatsapp_template(phone, BOOKING_TEMPLATE, 'fr', [client_name, date, time, service_name])
    if result.success:
        return result
    return send_sms(phone, booking_confirmation_message(client_name, service_name, date, time))


def send_appointment_reminder(phone, client_name, date, time, service_name, staff_name=None):
    result = send_whatsapp_template(phone, REMINDER_TEMPLATE, 'fr', [client_name, date, time, service_name])
    if result.success:
        return result
    return send_sms(phone, appointment_reminder_message(client_name, service_name, date, time, staff_name))


def notify_booking_confirmation(phone, client_name, date, time, service_name):
    """Fire-and-forget wrapper used after a booking commits."""
    try:
        result = send_booking_confirmation(phone, client_name, date, time, service_name)
    except Exception:
        logger.exception('Booking confirmation failed')
        return MessageResult(False, error='Unexpected error')
    if not result.success:
        logger.warning(f'Booking confirmation not delivered: {result.error}')
    return result
