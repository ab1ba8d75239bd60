"""
Database Schema Management Module

This module handles database initialization, schema validation, and migrations.
For CRUD operations, see core/database.py
"""

import sqlite3

# Import database module to use DB_FILE and get_connection dynamically
# This ensures monkeypatching in tests works correctly
import polytrans.core.database as db

DB_VERSION = 2  # Increment when schema changes (started_at on translation_status in v2)

TABLES = {
    "posts": """
        CREATE TABLE IF NOT EXISTS posts (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            post_type TEXT NOT NULL DEFAULT 'post',
            title TEXT NOT NULL DEFAULT '',
            content TEXT NOT NULL DEFAULT '',
            excerpt TEXT NOT NULL DEFAULT '',
            status TEXT NOT NULL DEFAULT 'draft',
            author_id INTEGER,
            language TEXT,
            created_at REAL,
            updated_at REAL
        )
    """,
    "post_meta": """
        CREATE TABLE IF NOT EXISTS post_meta (
            post_id INTEGER NOT NULL,
            meta_key TEXT NOT NULL,
            meta_value TEXT,
            PRIMARY KEY (post_id, meta_key),
            FOREIGN KEY (post_id) REFERENCES posts (id)
        )
    """,
    "users": """
        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            display_name TEXT NOT NULL,
            email TEXT NOT NULL
        )
    """,
    "terms": """
        CREATE TABLE IF NOT EXISTS terms (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            taxonomy TEXT NOT NULL,
            name TEXT NOT NULL,
            language TEXT,
            translation_group INTEGER
        )
    """,
    "post_terms": """
        CREATE TABLE IF NOT EXISTS post_terms (
            post_id INTEGER NOT NULL,
            term_id INTEGER NOT NULL,
            PRIMARY KEY (post_id, term_id)
        )
    """,
    "post_translations": """
        CREATE TABLE IF NOT EXISTS post_translations (
            group_id INTEGER NOT NULL,
            language TEXT NOT NULL,
            post_id INTEGER NOT NULL UNIQUE,
            PRIMARY KEY (group_id, language)
        )
    """,
    "translation_status": """
        CREATE TABLE IF NOT EXISTS translation_status (
            original_post_id INTEGER NOT NULL,
            language TEXT NOT NULL,
            status TEXT NOT NULL,
            new_post_id INTEGER,
            error TEXT,
            started_at REAL,
            updated_at REAL,
            PRIMARY KEY (original_post_id, language)
        )
    """,
    "app_config": """
        CREATE TABLE IF NOT EXISTS app_config (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
        )
    """,
}


def get_connection():
    """Get a database connection using the database module's DB_FILE."""
    return db.get_connection()


def get_db_version() -> int:
    """Get current database version."""
    try:
        with get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT version FROM db_version LIMIT 1")
            row = cursor.fetchone()
            return row[0] if row else 0
    except sqlite3.OperationalError:
        return 0


def set_db_version(version: int):
    """Set database version."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE TABLE IF NOT EXISTS db_version (version INTEGER)")
        cursor.execute("DELETE FROM db_version")
        cursor.execute("INSERT INTO db_version (version) VALUES (?)", (version,))
        conn.commit()


def initialize_database():
    """Initializes the database and creates the tables."""
    from polytrans.logger import get_logger
    logger = get_logger(__name__)

    if db.DB_FILE.exists():
        current_version = get_db_version()
        if current_version < DB_VERSION:
            migrate_database(current_version, DB_VERSION)
        return

    logger.info(f"Creating database at {db.DB_FILE}")
    create_tables()
    ensure_database_indexes()
    set_db_version(DB_VERSION)


def create_tables():
    """Create every table that does not exist yet."""
    with get_connection() as conn:
        cursor = conn.cursor()
        for ddl in TABLES.values():
            cursor.execute(ddl)
        conn.commit()


# ============================================================
# Database Schema Validation
# ============================================================

def ensure_translation_status_schema():
    """
    Ensure translation_status table has all required columns.
    This function should be called during database initialization/migration.
    """
    from polytrans.logger import get_logger
    logger = get_logger(__name__)

    try:
        with get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute("PRAGMA table_info(translation_status)")
            existing_cols = {row[1] for row in cursor.fetchall()}

            if "started_at" not in existing_cols:
                logger.info("Adding started_at column to translation_status table")
                cursor.execute("ALTER TABLE translation_status ADD COLUMN started_at REAL")
                cursor.execute("UPDATE translation_status SET started_at = updated_at")

            conn.commit()
    except Exception as e:
        logger.error(f"Failed to ensure translation_status schema: {e}")
        raise


def ensure_database_indexes():
    """Create indexes used by status polling and taxonomy lookups."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_status_state ON translation_status (status)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_terms_group ON terms (translation_group)")
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_post_terms_post ON post_terms (post_id)")
        conn.commit()


def ensure_all_schemas():
    """Ensure all tables, columns and indexes exist."""
    create_tables()
    ensure_translation_status_schema()
    ensure_database_indexes()


def migrate_database(from_version: int, to_version: int):
    """Bring an older database up to the current schema."""
    from polytrans.logger import get_logger
    logger = get_logger(__name__)

    logger.info(f"Migrating database from version {from_version} to {to_version}")
    ensure_all_schemas()
    set_db_version(to_version)
    logger.info("Database migration complete")
