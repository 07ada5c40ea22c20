"""Domain services: validation, invariants and side effects per entity."""
from salondesk.errors import NotFound
from salondesk.storage import get_storage


def get_or_404(model, obj_id, label):
    obj = get_storage().get(model, obj_id)
    if obj is None:
        raise NotFound(f'{label} not found')
    return obj


def apply_patch(obj, patch):
    for key, value in patch.items():
        setattr(obj, key, value)
    return obj
