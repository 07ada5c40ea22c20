"""Link appointments and deductions saved with only a staff name to staff ids."""
from salondesk import create_app
from salondesk.models import Appointment, StaffDeduction
from salondesk.storage import get_storage

app = create_app()

with app.app_context():
    storage = get_storage()
    linked = storage.resolve_staff_refs()
    print(f"Linked {linked} rows to staff ids.")

    orphans = (
        Appointment.query.filter(Appointment.staff_id.is_(None)).count()
        + StaffDeduction.query.filter(StaffDeduction.staff_id.is_(None)).count()
    )
    if orphans:
        print(f"WARNING: {orphans} rows name staff that no longer exist.")
