from datetime import datetime

import pytz
from flask import current_app

from salondesk.availability import build_slot_catalog
from salondesk.domain import apply_patch
from salondesk.extensions import db
from salondesk.models import BusinessSettings
from salondesk.schemas import SettingsUpdate
from salondesk.storage import get_storage


def get_settings():
    """The settings singleton, created with defaults on first read."""
    storage = get_storage()
    settings = storage.first(BusinessSettings)
    if settings is None:
        settings = BusinessSettings()
        db.session.add(settings)
        storage.commit()
    return settings


def update_settings(data):
    settings = get_settings()
    patch = SettingsUpdate.model_validate(data or {}).model_dump(exclude_unset=True)
    for required in ('business_name', 'currency', 'currency_symbol', 'opening_time', 'closing_time', 'working_days'):
        if patch.get(required, '') is None:
            patch.pop(required)
    apply_patch(settings, patch)
    settings.updated_at = datetime.utcnow()
    get_storage().commit()
    return settings


def slot_catalog():
    settings = get_settings()
    return build_slot_catalog(settings.opening_time, settings.closing_time)


def salon_today():
    tz = pytz.timezone(current_app.config['SALON_TIMEZONE'])
    return datetime.now(tz).date()
