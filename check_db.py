print("Starting check_db.py...")
from salondesk import create_app
from salondesk.extensions import db
from salondesk.storage import get_storage
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

print("Imports done.")

app = create_app()
print(f"App created ({app.config['DB_DIALECT']}).")

with app.app_context():
    try:
        # Check connection
        result = db.session.execute(text('SELECT 1'))
        print(f"Connection successful: {result.scalar()}")

        # Check if tables exist
        inspector = db.inspect(db.engine)
        tables = inspector.get_table_names()
        print(f"Tables found: {tables}")
        print(f"Storage adapter: {type(get_storage()).__name__}")

    except SQLAlchemyError as e:
        print(f"Database check failed: {e}")
        raise SystemExit(1)
