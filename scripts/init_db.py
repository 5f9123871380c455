#!/usr/bin/env python3
"""
Initialize the local Flux database.

Creates the SQLite schema at the configured path (FLUX_DB_PATH or
flux.json's db_path) and seeds the default categories for the configured
user.
"""
from flux.config.settings import ConfigLoader, Settings
from flux.database.connection import DatabaseConfig, DatabaseManager
from flux.repositories.sqlite_ledger_repository import SQLiteLedgerRepository
from flux.services.ledger_store import LedgerStore

def main():
    """Initialize the database."""
    settings = Settings.from_env()
    config = DatabaseConfig(settings.db_path)
    print(f"Initializing database at: {config.db_path}")

    with DatabaseManager(config) as db:
        db.initialize()

        row = db.get_connection().execute(
            "SELECT version, description FROM schema_version ORDER BY version DESC LIMIT 1"
        ).fetchone()

        if not row:
            print("✗ Database initialization may have failed")
            return

        print("✓ Database initialized successfully!")
        print(f"  Schema version: {row['version']}")
        print(f"  Description: {row['description']}")

        store = LedgerStore(
            SQLiteLedgerRepository(db, settings.user_id),
            default_categories=ConfigLoader.load_default_categories(),
        )
        store.load()
        print(f"  Categories for {settings.user_id}: {len(store.categories)}")

if __name__ == "__main__":
    main()
