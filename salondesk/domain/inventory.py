import logging
from sqlalchemy.exc import IntegrityError

from salondesk.domain import apply_patch, get_or_404
from salondesk.errors import Conflict, NotFound
from salondesk.extensions import db
from salondesk.models import Product, Service
from salondesk.schemas import ProductCreate, ProductUpdate, QuantityUpdate
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)


def list_products():
    return get_storage().all(Product, Product.name)


def get_product(product_id):
    return get_or_404(Product, product_id, 'Product')


def get_product_by_name(name):
    product = get_storage().first(Product, name=name)
    if product is None:
        raise NotFound('Product not found')
    return product


def low_stock():
    return [product for product in list_products() if product.is_low_stock]


def _save(product):
    try:
        get_storage().add(product)
    except IntegrityError:
        raise Conflict('A product with this name already exists')
    return product


def create_product(data):
    payload = ProductCreate.model_validate(data or {})
    return _save(Product(**payload.model_dump()))


def update_product(product_id, data):
    product = get_product(product_id)
    patch = ProductUpdate.model_validate(data or {}).model_dump(exclude_unset=True, exclude_none=True)
    return _save(apply_patch(product, patch))


def set_quantity(product_id, data):
    product = get_product(product_id)
    product.quantity = QuantityUpdate.model_validate(data or {}).quantity
    get_storage().commit()
    return product


def delete_product(product_id):
    product = get_product(product_id)
    # services keep existing, they just lose the link
    Service.query.filter_by(linked_product_id=product.id).update({'linked_product_id': None})
    db.session.delete(product)
    get_storage().commit()


def consume_for_service(service):
    """Take one unit of the product linked to ``service``, if any is left.

    Returns the product's remaining quantity, or None when nothing was taken.
    """
    if service is None or service.linked_product_id is None:
        return None
    remaining = get_storage().decrement_stock(service.linked_product_id)
    if remaining is None:
        logger.warning('Linked product %s out of stock for service %s', service.linked_product_id, service.name)
    else:
        logger.info('Stock for product %s is now %s', service.linked_product_id, remaining)
    return remaining
