"""Clients and their loyalty balance.

Balances move through single conditional UPDATE statements so two
concurrent accruals or redemptions cannot overwrite each other, and a
redemption can never take the balance below zero.
"""
import logging

from salondesk.domain import apply_patch, get_or_404
from salondesk.errors import NotFound, ValidationError
from salondesk.extensions import db
from salondesk.models import Client, LoyaltyRedemption
from salondesk.schemas import ClientCreate, ClientUpdate, LoyaltyAccrual, RedemptionCreate
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)

CURRENCY_PER_POINT = 10

LOYALTY_TIERS = (
    (1000, 'vip'),
    (500, 'gold'),
    (100, 'silver'),
)


def loyalty_tier(points):
    for threshold, tier in LOYALTY_TIERS:
        if points >= threshold:
            return tier
    return 'bronze'


def points_for(total, multiplier=1):
    return int((total or 0) // CURRENCY_PER_POINT) * (multiplier or 0)


def list_clients():
    return get_storage().all(Client, Client.name)


def get_client(client_id):
    return get_or_404(Client, client_id, 'Client')


def _check_referrer(referrer_id, client_id=None):
    if referrer_id is None:
        return
    if referrer_id == client_id:
        raise ValidationError('A client cannot refer themselves')
    if get_storage().get(Client, referrer_id) is None:
        raise ValidationError('Referring client does not exist')


def create_client(data):
    payload = ClientCreate.model_validate(data or {})
    _check_referrer(payload.referred_by)
    return get_storage().add(Client(**payload.model_dump()))


def update_client(client_id, data):
    client = get_client(client_id)
    patch = ClientUpdate.model_validate(data or {}).model_dump(exclude_unset=True)
    if patch.get('name') is None:
        patch.pop('name', None)
    if 'referred_by' in patch:
        _check_referrer(patch['referred_by'], client.id)
    apply_patch(client, patch)
    get_storage().commit()
    return client


def delete_client(client_id):
    get_storage().delete(get_client(client_id))


def client_appointments(client_id):
    get_client(client_id)
    return get_storage().appointments_for_client(client_id)


def accrue(client_id, points, spent):
    """Add points, one visit and ``spent`` to a client's totals."""
    if not get_storage().accrue_loyalty(client_id, points, spent):
        raise NotFound('Client not found')
    client = get_client(client_id)
    db.session.refresh(client)
    logger.info('Client %s earned %s points', client_id, points)
    return client


def accrue_from_request(client_id, data):
    get_client(client_id)
    payload = LoyaltyAccrual.model_validate(data or {})
    return accrue(client_id, payload.points, payload.spent)


def list_redemptions(client_id=None):
    query = LoyaltyRedemption.query
    if client_id:
        query = query.filter_by(client_id=client_id)
    return query.order_by(LoyaltyRedemption.created_at.desc(), LoyaltyRedemption.id.desc()).all()


def redeem(data):
    """Spend points on a reward. Fails without touching the balance when it is too low."""
    storage = get_storage()
    payload = RedemptionCreate.model_validate(data or {})
    client = get_client(payload.client_id)
    if client.loyalty_points < payload.points_used:
        raise ValidationError(
            f'Insufficient loyalty points: balance is {client.loyalty_points}, '
            f'{payload.points_used} requested'
        )
    if not storage.spend_points(client.id, payload.points_used):
        # balance changed between the read and the update
        raise ValidationError('Insufficient loyalty points')

    redemption = LoyaltyRedemption(**payload.model_dump())
    storage.add(redemption)
    logger.info('Client %s redeemed %s points', client.id, payload.points_used)
    return redemption
