# src/ebb_stage/init_db.py
"""Create the database schema for local development."""

from ebb_stage.db.session import create_tables


def init_db() -> None:
    """Initialize the database by creating all tables."""
    create_tables()


if __name__ == "__main__":
    init_db()
    print("Database initialized.")
