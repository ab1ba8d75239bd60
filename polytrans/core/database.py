"""
Database CRUD Operations Module

This module handles all database CRUD operations for:
- Posts and post meta (the content store)
- Users
- Taxonomy terms and their per-language translation groups
- Post translation groups
- Translation status
- App Config

For schema management and migrations, see core/schema.py
"""

import json
import os
import sqlite3
import time
from pathlib import Path
from typing import Optional, List, Dict, Any, Iterable

DB_FILE = Path(os.environ.get("POLYTRANS_DB_FILE") or Path(__file__).parent.parent.parent / "polytrans.db")

POST_COLUMNS = ("post_type", "title", "content", "excerpt", "status", "author_id", "language")


def get_connection():
    """Get a database connection."""
    return sqlite3.connect(DB_FILE, timeout=10)


def _encode(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)


def _decode(value: Optional[str]) -> Any:
    if value is None:
        return None
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


# ============================================================
# Post CRUD Operations
# ============================================================

def create_post(title: str, content: str = "", excerpt: str = "", status: str = "draft",
                post_type: str = "post", author_id: int = None, language: str = None) -> int:
    """Create a new post."""
    now = time.time()
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO posts (post_type, title, content, excerpt, status, author_id, language,
                               created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (post_type, title, content, excerpt, status, author_id, language, now, now))
        conn.commit()
        return cursor.lastrowid


def get_post(post_id: int) -> Optional[Dict[str, Any]]:
    """Get a post by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM posts WHERE id = ?", (post_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def post_exists(post_id: Any) -> bool:
    """Check whether a post with this ID is stored locally."""
    try:
        post_id = int(post_id)
    except (TypeError, ValueError):
        return False
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT 1 FROM posts WHERE id = ?", (post_id,))
        return cursor.fetchone() is not None


def update_post(post_id: int, **fields):
    """Update a post. Only known columns are accepted."""
    unknown = set(fields) - set(POST_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown post fields: {', '.join(sorted(unknown))}")
    if not fields:
        return

    updates = [f"{column} = ?" for column in fields]
    params = list(fields.values())
    updates.append("updated_at = ?")
    params.append(time.time())
    params.append(post_id)

    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"UPDATE posts SET {', '.join(updates)} WHERE id = ?", params)
        conn.commit()


def delete_post(post_id: int):
    """Delete a post and everything attached to it."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("DELETE FROM post_meta WHERE post_id = ?", (post_id,))
        cursor.execute("DELETE FROM post_terms WHERE post_id = ?", (post_id,))
        cursor.execute("DELETE FROM post_translations WHERE post_id = ?", (post_id,))
        cursor.execute("DELETE FROM posts WHERE id = ?", (post_id,))
        conn.commit()


# ============================================================
# Post Meta Operations
# ============================================================

def get_post_meta(post_id: int) -> Dict[str, Any]:
    """Get all meta for a post as a key -> value mapping."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT meta_key, meta_value FROM post_meta WHERE post_id = ? ORDER BY meta_key",
            (post_id,),
        )
        return {key: _decode(value) for key, value in cursor.fetchall()}


def get_post_meta_value(post_id: int, key: str, default: Any = None) -> Any:
    """Get a single meta value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "SELECT meta_value FROM post_meta WHERE post_id = ? AND meta_key = ?",
            (post_id, key),
        )
        row = cursor.fetchone()
        return _decode(row[0]) if row else default


def update_post_meta(post_id: int, key: str, value: Any):
    """Insert or replace a meta value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO post_meta (post_id, meta_key, meta_value)
            VALUES (?, ?, ?)
            ON CONFLICT(post_id, meta_key) DO UPDATE SET meta_value = excluded.meta_value
        """, (post_id, key, _encode(value)))
        conn.commit()


# ============================================================
# User Operations
# ============================================================

def create_user(display_name: str, email: str) -> int:
    """Create a user."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(
            "INSERT INTO users (display_name, email) VALUES (?, ?)",
            (display_name, email),
        )
        conn.commit()
        return cursor.lastrowid


def get_user(user_id: int) -> Optional[Dict[str, Any]]:
    """Get a user by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM users WHERE id = ?", (user_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


# ============================================================
# Taxonomy Operations
# ============================================================

def create_term(taxonomy: str, name: str, language: str = None, translation_group: int = None) -> int:
    """Create a category or tag. Terms sharing translation_group are translations of each other."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO terms (taxonomy, name, language, translation_group)
            VALUES (?, ?, ?, ?)
        """, (taxonomy, name, language, translation_group))
        conn.commit()
        return cursor.lastrowid


def get_term(term_id: int) -> Optional[Dict[str, Any]]:
    """Get a term by ID."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("SELECT * FROM terms WHERE id = ?", (term_id,))
        row = cursor.fetchone()
        return dict(row) if row else None


def get_post_terms(post_id: int, taxonomy: str) -> List[Dict[str, Any]]:
    """Get the terms of one taxonomy assigned to a post."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT t.* FROM terms t
            JOIN post_terms pt ON pt.term_id = t.id
            WHERE pt.post_id = ? AND t.taxonomy = ?
            ORDER BY t.id
        """, (post_id, taxonomy))
        return [dict(row) for row in cursor.fetchall()]


def set_post_terms(post_id: int, taxonomy: str, term_ids: Iterable[int]):
    """Replace a post's terms for one taxonomy."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            DELETE FROM post_terms
            WHERE post_id = ? AND term_id IN (SELECT id FROM terms WHERE taxonomy = ?)
        """, (post_id, taxonomy))
        cursor.executemany(
            "INSERT OR IGNORE INTO post_terms (post_id, term_id) VALUES (?, ?)",
            [(post_id, term_id) for term_id in term_ids],
        )
        conn.commit()


def get_term_translations(term_id: int) -> Dict[str, int]:
    """Get language -> term ID for every term in the same translation group."""
    term = get_term(term_id)
    if not term or term.get("translation_group") is None:
        return {}
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT language, id FROM terms
            WHERE translation_group = ? AND language IS NOT NULL
        """, (term["translation_group"],))
        return {language: tid for language, tid in cursor.fetchall()}


# ============================================================
# Post Translation Groups
# ============================================================

def get_post_translations(post_id: int) -> Dict[str, int]:
    """Get language -> post ID for the translation group the post belongs to."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT language, post_id FROM post_translations
            WHERE group_id = (SELECT group_id FROM post_translations WHERE post_id = ?)
        """, (post_id,))
        return {language: pid for language, pid in cursor.fetchall()}


def save_post_translations(translations: Dict[str, int]) -> int:
    """
    Link posts as translations of each other.

    Every post in the mapping is moved into one group (the first existing
    group found, or a new one). Returns the group ID.
    """
    post_ids = list(translations.values())
    with get_connection() as conn:
        cursor = conn.cursor()
        placeholders = ", ".join("?" for _ in post_ids)
        cursor.execute(
            f"SELECT MIN(group_id) FROM post_translations WHERE post_id IN ({placeholders})",
            post_ids,
        )
        row = cursor.fetchone()
        group_id = row[0] if row and row[0] is not None else None
        if group_id is None:
            cursor.execute("SELECT COALESCE(MAX(group_id), 0) + 1 FROM post_translations")
            group_id = cursor.fetchone()[0]

        cursor.execute(f"DELETE FROM post_translations WHERE post_id IN ({placeholders})", post_ids)
        cursor.executemany("""
            INSERT INTO post_translations (group_id, language, post_id)
            VALUES (?, ?, ?)
            ON CONFLICT(group_id, language) DO UPDATE SET post_id = excluded.post_id
        """, [(group_id, language, pid) for language, pid in translations.items()])
        conn.commit()
        return group_id


# ============================================================
# Translation Status Operations
# ============================================================

def upsert_translation_status(original_post_id: int, language: str, status: str,
                              new_post_id: int = None, error: str = None,
                              restart: bool = False):
    """
    Write the status row for (original_post_id, language) in one statement.

    restart=True stamps a fresh started_at; otherwise the existing one is kept.
    """
    now = time.time()
    started_clause = "excluded.started_at" if restart else "COALESCE(translation_status.started_at, excluded.started_at)"
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute(f"""
            INSERT INTO translation_status
                (original_post_id, language, status, new_post_id, error, started_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(original_post_id, language) DO UPDATE SET
                status = excluded.status,
                new_post_id = excluded.new_post_id,
                error = excluded.error,
                started_at = {started_clause},
                updated_at = excluded.updated_at
        """, (original_post_id, language, status, new_post_id, error, now, now))
        conn.commit()


def get_translation_status(original_post_id: int, language: str) -> Optional[Dict[str, Any]]:
    """Get the status row for (original_post_id, language)."""
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM translation_status
            WHERE original_post_id = ? AND language = ?
        """, (original_post_id, language))
        row = cursor.fetchone()
        return dict(row) if row else None


def delete_translation_status(original_post_id: int, language: str):
    """Delete the status row for (original_post_id, language)."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            DELETE FROM translation_status
            WHERE original_post_id = ? AND language = ?
        """, (original_post_id, language))
        conn.commit()


def get_translation_statuses_by_status(statuses: Iterable[str]) -> List[Dict[str, Any]]:
    """Get all status rows currently in one of the given states."""
    statuses = list(statuses)
    placeholders = ", ".join("?" for _ in statuses)
    with get_connection() as conn:
        conn.row_factory = sqlite3.Row
        cursor = conn.cursor()
        cursor.execute(
            f"SELECT * FROM translation_status WHERE status IN ({placeholders}) ORDER BY updated_at",
            statuses,
        )
        return [dict(row) for row in cursor.fetchall()]


def count_translation_statuses() -> Dict[str, int]:
    """Count status rows per status value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT status, COUNT(*) FROM translation_status GROUP BY status")
        return {status: count for status, count in cursor.fetchall()}


# ============================================================
# App Config Operations
# ============================================================

def get_app_config(key: str) -> Optional[str]:
    """Get an app config value by key."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("SELECT value FROM app_config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return row[0] if row else None


def set_app_config(key: str, value: str):
    """Set an app config value."""
    with get_connection() as conn:
        cursor = conn.cursor()
        cursor.execute("""
            INSERT INTO app_config (key, value, updated_at)
            VALUES (?, ?, datetime('now'))
            ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at
        """, (key, value))
        conn.commit()

