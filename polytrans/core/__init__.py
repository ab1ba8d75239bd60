"""
Core module - Content store and schema

This module provides:
- database: CRUD operations for posts, meta, users, taxonomies,
  translation groups, translation status and app config
- schema: Database initialization and migrations
"""

from polytrans.core.database import (
    DB_FILE,
    get_connection,
    # Post operations
    create_post,
    get_post,
    post_exists,
    update_post,
    delete_post,
    # Meta operations
    get_post_meta,
    get_post_meta_value,
    update_post_meta,
    # User operations
    create_user,
    get_user,
    # Taxonomy operations
    create_term,
    get_term,
    get_post_terms,
    set_post_terms,
    get_term_translations,
    # Translation groups
    get_post_translations,
    save_post_translations,
    # Translation status
    upsert_translation_status,
    get_translation_status,
    delete_translation_status,
    get_translation_statuses_by_status,
    count_translation_statuses,
    # App config operations
    get_app_config,
    set_app_config,
)

from polytrans.core.schema import (
    DB_VERSION,
    get_db_version,
    set_db_version,
    initialize_database,
    ensure_all_schemas,
    migrate_database,
)
