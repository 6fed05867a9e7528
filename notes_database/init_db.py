"""
Database initialization/migration script.

Run `python -m notes_database.init_db` to create all required tables in the database.
"""
from notes_database.db import engine
from notes_database.models import Base

# PUBLIC_INTERFACE
def init_db(bind=None):
    """Initializes the database by creating all tables if they do not exist."""
    Base.metadata.create_all(bind=bind or engine)

if __name__ == "__main__":
    init_db()
    print("Database tables created successfully.")
