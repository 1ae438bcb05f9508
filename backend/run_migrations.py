"""Create the database schema for the configured DATABASE_URL."""
from contest_tracker.config import Settings
from contest_tracker.database import SQLHandler


def run():
    """Create every table and index declared on the SQLModel metadata.

    The function is idempotent and intended for local development and
    quick bootstrapping of a fresh database.
    """
    settings = Settings()
    print("Using database:", settings.DATABASE_URL.split("@")[-1])
    handler = SQLHandler(settings.DATABASE_URL, settings.DATABASE_MAX_IDLE_CONNS, settings.DATABASE_MAX_OPEN_CONNS)
    handler.create_tables()
    handler.dispose()
    print("Schema created.")

if __name__ == '__main__':
    run()
