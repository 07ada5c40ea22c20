"""Dashboard operators identified by name + PIN."""
import logging
import re

from sqlalchemy.exc import IntegrityError
from werkzeug.security import check_password_hash, generate_password_hash

from salondesk.auth import GRANT_ALL
from salondesk.domain import get_or_404
from salondesk.domain.settings import get_settings
from salondesk.errors import AuthenticationError, Conflict, ValidationError
from salondesk.models import ALL_PERMISSIONS, ROLE_PERMISSIONS, AdminRole
from salondesk.schemas import AdminRoleCreate, AdminRoleUpdate, PinReset, PinVerify
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)


def digits(value):
    return re.sub(r'\D', '', value or '')


def _check_permissions(permissions):
    unknown = [perm for perm in permissions if perm != GRANT_ALL and perm not in ALL_PERMISSIONS]
    if unknown:
        raise ValidationError(f'Unknown permissions: {", ".join(unknown)}')
    return list(permissions)


def _save(role):
    try:
        return get_storage().add(role)
    except IntegrityError:
        raise Conflict('An admin role with this name already exists')


def list_roles():
    return get_storage().all(AdminRole, AdminRole.id)


def get_role(role_id):
    return get_or_404(AdminRole, role_id, 'Admin role')


def find_role(name):
    return get_storage().first(AdminRole, name=name)


def has_roles():
    return get_storage().count(AdminRole) > 0


def create_role(data):
    payload = AdminRoleCreate.model_validate(data or {})
    if payload.permissions is None:
        permissions = list(ROLE_PERMISSIONS[payload.role])
    else:
        permissions = _check_permissions(payload.permissions)
    role = AdminRole(
        name=payload.name,
        role=payload.role,
        permissions=permissions,
        pin_hash=generate_password_hash(payload.pin) if payload.pin else None,
    )
    _save(role)
    logger.info('Created admin role %s (%s)', role.name, role.role)
    return role


def update_role(role_id, data):
    role = get_role(role_id)
    patch = AdminRoleUpdate.model_validate(data or {}).model_dump(exclude_unset=True, exclude_none=True)
    if 'name' in patch:
        role.name = patch['name']
    if 'role' in patch:
        role.role = patch['role']
        if 'permissions' not in patch:
            role.permissions = list(ROLE_PERMISSIONS[patch['role']])
    if 'permissions' in patch:
        role.permissions = _check_permissions(patch['permissions'])
    if 'pin' in patch:
        role.pin_hash = generate_password_hash(patch['pin'])
    return _save(role)


def delete_role(role_id):
    get_storage().delete(get_role(role_id))


def verify_pin(data):
    """Return the matching role, or raise AuthenticationError."""
    payload = PinVerify.model_validate(data or {})
    role = find_role(payload.name)
    if role is None or not role.pin_hash or not check_password_hash(role.pin_hash, payload.pin):
        raise AuthenticationError('Invalid PIN')
    return role


def reset_pin(data):
    payload = PinReset.model_validate(data or {})
    role = find_role(payload.name)
    if role is None:
        raise ValidationError('Unknown user')
    expected = digits(get_settings().phone)
    if not expected or digits(payload.business_phone) != expected:
        logger.warning('Rejected PIN reset for %s: business phone mismatch', payload.name)
        raise AuthenticationError('Business phone number does not match')
    role.pin_hash = generate_password_hash(payload.new_pin)
    get_storage().commit()
    logger.info('PIN reset for %s', role.name)
    return role
