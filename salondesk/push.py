"""Web push subscriptions and broadcast."""
import json
import logging

from flask import current_app
from pywebpush import WebPushException, webpush

from salondesk.extensions import db
from salondesk.models import PushSubscription
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)

GONE_STATUSES = (404, 410)


def vapid_public_key():
    return current_app.config.get('VAPID_PUBLIC_KEY') or ''


def subscribe(endpoint, p256dh, auth):
    storage = get_storage()
    subscription = storage.first(PushSubscription, endpoint=endpoint)
    if subscription is None:
        subscription = PushSubscription(endpoint=endpoint, p256dh=p256dh, auth=auth)
        db.session.add(subscription)
    else:
        subscription.p256dh = p256dh
        subscription.auth = auth
    storage.commit()
    return subscription


def unsubscribe(endpoint):
    storage = get_storage()
    subscription = storage.first(PushSubscription, endpoint=endpoint)
    if subscription is None:
        return False
    storage.delete(subscription)
    return True


def _send(subscription, payload):
    config = current_app.config
    webpush(
        subscription_info={
            'endpoint': subscription.endpoint,
            'keys': {'p256dh': subscription.p256dh, 'auth': subscription.auth},
        },
        data=payload,
        vapid_private_key=config['VAPID_PRIVATE_KEY'],
        vapid_claims={'sub': config['VAPID_CLAIM_EMAIL']},
        ttl=300,
    )


def broadcast(title, body, url='/planning'):
    """Send to every stored subscription; prune the ones the push service reports gone.

    Returns ``(delivered, pruned)``. Never raises.
    """
    if not current_app.config.get('VAPID_PRIVATE_KEY'):
        logger.debug('VAPID keys not configured - push skipped')
        return 0, 0

    storage = get_storage()
    payload = json.dumps({'title': title, 'body': body, 'url': url})
    delivered = 0
    pruned = 0
    try:
        subscriptions = storage.all(PushSubscription)
    except Exception:
        logger.exception('Error loading push subscriptions')
        return 0, 0

    for subscription in subscriptions:
        try:
            _send(subscription, payload)
            delivered += 1
        except WebPushException as e:
            status = getattr(e.response, 'status_code', None)
            if status in GONE_STATUSES:
                db.session.delete(subscription)
                pruned += 1
            else:
                logger.warning(f'Push to subscription {subscription.id} failed: {e}')
        except Exception:
            logger.exception(f'Push to subscription {subscription.id} failed')

    if pruned:
        try:
            storage.commit()
        except Exception:
            logger.exception('Failed to prune push subscriptions')
    return delivered, pruned
