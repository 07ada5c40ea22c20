"""Staff members and the service catalog they perform."""
import logging
from sqlalchemy.exc import IntegrityError

from salondesk.domain import apply_patch, get_or_404
from salondesk.errors import Conflict, ValidationError
from salondesk.models import Category, Product, Service, Staff
from salondesk.schemas import CategoryIn, ServiceCreate, ServiceUpdate, StaffCreate, StaffUpdate
from salondesk.storage import get_storage

logger = logging.getLogger(__name__)

# ============================================
# Staff
# ============================================


def list_staff():
    return get_storage().all(Staff, Staff.id)


def get_staff(staff_id):
    return get_or_404(Staff, staff_id, 'Staff member')


def find_staff_by_name(name):
    return get_storage().first(Staff, name=name)


def create_staff(data):
    payload = StaffCreate.model_validate(data or {})
    return get_storage().add(Staff(**payload.model_dump()))


def update_staff(staff_id, data):
    storage = get_storage()
    member = get_staff(staff_id)
    patch = StaffUpdate.model_validate(data or {}).model_dump(exclude_unset=True)
    patch = {key: value for key, value in patch.items() if value is not None or key in ('phone', 'email')}
    old_name = member.name
    apply_patch(member, patch)
    storage.commit()
    if member.name != old_name:
        storage.rename_staff(member.id, member.name)
        logger.info('Renamed staff %s -> %s', old_name, member.name)
    return member


def delete_staff(staff_id):
    # Appointments keep the cached name for history
    get_storage().delete(get_staff(staff_id))


# ============================================
# Categories
# ============================================


def list_categories():
    return get_storage().all(Category, Category.name)


def _save_category(category):
    try:
        return get_storage().add(category)
    except IntegrityError:
        raise Conflict('A category with this name already exists')


def create_category(data):
    return _save_category(Category(name=CategoryIn.model_validate(data or {}).name))


def update_category(category_id, data):
    category = get_or_404(Category, category_id, 'Category')
    category.name = CategoryIn.model_validate(data or {}).name
    return _save_category(category)


def delete_category(category_id):
    get_storage().delete(get_or_404(Category, category_id, 'Category'))


# ============================================
# Services
# ============================================


def list_services():
    return get_storage().all(Service, Service.category, Service.name)


def get_service(service_id):
    return get_or_404(Service, service_id, 'Service')


def find_service_by_name(name):
    return get_storage().first(Service, name=name)


def _check_linked_product(product_id):
    if product_id is not None and get_storage().get(Product, product_id) is None:
        raise ValidationError('Linked product does not exist')


def create_service(data):
    payload = ServiceCreate.model_validate(data or {})
    _check_linked_product(payload.linked_product_id)
    return get_storage().add(Service(**payload.model_dump()))


def update_service(service_id, data):
    service = get_service(service_id)
    patch = ServiceUpdate.model_validate(data or {}).model_dump(exclude_unset=True)
    patch = {key: value for key, value in patch.items() if value is not None or key == 'linked_product_id'}
    if 'linked_product_id' in patch:
        _check_linked_product(patch['linked_product_id'])
    apply_patch(service, patch)
    get_storage().commit()
    return service


def delete_service(service_id):
    get_storage().delete(get_service(service_id))
