import logging
from datetime import datetime
from functools import wraps
from flask import current_app, g, jsonify, request, session

from salondesk.errors import RateLimited
from salondesk.ratelimit import LoginLockout

logger = logging.getLogger(__name__)

SESSION_KEY = 'pin_auth'
LOCKOUT_KEY = 'salondesk.pin_lockout'
GRANT_ALL = '*'


def init_auth(app):
    app.extensions[LOCKOUT_KEY] = LoginLockout(
        app.config['PIN_MAX_ATTEMPTS'], app.config['PIN_LOCKOUT_SECONDS']
    )


def get_lockout() -> LoginLockout:
    return current_app.extensions[LOCKOUT_KEY]


def lockout_key(name):
    return f'{request.remote_addr}:{(name or "").strip().lower()}'


def check_lockout(name):
    """Raise RateLimited while ``name`` is locked out from this address."""
    lockout = get_lockout()
    lockout.sweep()
    decision = lockout.check(lockout_key(name))
    if not decision.allowed:
        logger.warning('PIN login locked for %s from %s', name, request.remote_addr)
        raise RateLimited('Too many failed attempts. Try again later.', decision.retry_after)


def record_failure(name):
    get_lockout().record(lockout_key(name))


def start_session(role):
    get_lockout().clear(lockout_key(role.name))
    session.clear()
    session[SESSION_KEY] = {
        'name': role.name,
        'role': role.role,
        'permissions': list(role.permissions or []),
        'authenticatedAt': datetime.utcnow().isoformat(),
    }
    session.permanent = True


def end_session():
    session.pop(SESSION_KEY, None)


def current_user():
    return session.get(SESSION_KEY)


def has_permission(user, permission):
    """Whether a session user may use ``permission``.

    ``"*"`` always grants everything. An empty list grants everything only
    while EMPTY_PERMISSIONS_GRANT_ALL is on.
    """
    permissions = user.get('permissions') or []
    if GRANT_ALL in permissions:
        return True
    if not permissions:
        return current_app.config['EMPTY_PERMISSIONS_GRANT_ALL']
    return permission in permissions


def login_required(f):
    """Decorator to require a PIN session for routes."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        user = current_user()
        if not user:
            return jsonify({'error': 'Authentication required'}), 401
        g.current_user = user
        return f(*args, **kwargs)
    return decorated_function


def permission_required(*permissions):
    """Require a session holding at least one of ``permissions``."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            user = current_user()
            if not user:
                return jsonify({'error': 'Authentication required'}), 401
            if not any(has_permission(user, perm) for perm in permissions):
                logger.info('%s denied %s on %s', user.get('name'), '/'.join(permissions), request.path)
                return jsonify({'error': 'Permission denied'}), 403
            g.current_user = user
            return f(*args, **kwargs)
        return decorated_function
    return decorator
