from salondesk import create_app
from salondesk.extensions import db
from salondesk.seed import seed_defaults

app = create_app()

with app.app_context():
    print("Dropping all tables...")
    db.drop_all()
    print("Creating all tables...")
    db.create_all()

    # Verify schema
    inspector = db.inspect(db.engine)
    columns = [column['name'] for column in inspector.get_columns('appointments')]
    print(f"Appointment table columns: {columns}")

    if 'staff_id' in columns:
        print("SUCCESS: staff_id column exists.")
    else:
        print("FAILURE: staff_id column MISSING.")

    seeded = seed_defaults()
    print(f"Seeded: {', '.join(seeded) or 'nothing'}")
    print("Database initialized successfully.")
