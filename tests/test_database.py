"""
Tests for the content store and schema migrations.
"""

import sqlite3

import pytest

import polytrans.core.database as db
from polytrans.core.schema import DB_VERSION, get_db_version, initialize_database


class TestPosts:
    def test_create_and_update(self, temp_db):
        post_id = db.create_post("Hello", content="Body", language="en")

        db.update_post(post_id, status="publish", language="fr")

        post = db.get_post(post_id)
        assert post["status"] == "publish"
        assert post["language"] == "fr"
        assert post["post_type"] == "post"

    def test_update_rejects_unknown_fields(self, temp_db):
        post_id = db.create_post("Hello")
        with pytest.raises(ValueError):
            db.update_post(post_id, slug="hello")

    def test_post_exists(self, temp_db):
        post_id = db.create_post("Hello")
        assert db.post_exists(post_id)
        assert db.post_exists(str(post_id))
        assert not db.post_exists(post_id + 1)
        assert not db.post_exists("abc")
        assert not db.post_exists(None)

    def test_delete_removes_meta(self, temp_db):
        post_id = db.create_post("Hello")
        db.update_post_meta(post_id, "k", "v")

        db.delete_post(post_id)

        assert db.get_post(post_id) is None
        assert db.get_post_meta(post_id) == {}


class TestMeta:
    def test_values_keep_their_type(self, temp_db):
        post_id = db.create_post("Hello")
        db.update_post_meta(post_id, "count", 3)
        db.update_post_meta(post_id, "tags", ["a", "b"])
        db.update_post_meta(post_id, "flag", "1")

        assert db.get_post_meta(post_id) == {"count": 3, "flag": "1", "tags": ["a", "b"]}

    def test_overwrite_and_default(self, temp_db):
        post_id = db.create_post("Hello")
        db.update_post_meta(post_id, "k", "old")
        db.update_post_meta(post_id, "k", "new")

        assert db.get_post_meta_value(post_id, "k") == "new"
        assert db.get_post_meta_value(post_id, "missing", "fallback") == "fallback"


class TestTranslationGroups:
    def test_posts_join_existing_group(self, temp_db):
        en = db.create_post("Hello", language="en")
        fr = db.create_post("Bonjour", language="fr")
        de = db.create_post("Hallo", language="de")

        first = db.save_post_translations({"en": en, "fr": fr})
        second = db.save_post_translations({"en": en, "fr": fr, "de": de})

        assert first == second
        assert db.get_post_translations(de) == {"en": en, "fr": fr, "de": de}

    def test_untranslated_post(self, temp_db):
        assert db.get_post_translations(db.create_post("Alone")) == {}

    def test_term_translations(self, temp_db):
        en = db.create_term("category", "News", "en", translation_group=7)
        fr = db.create_term("category", "Actualités", "fr", translation_group=7)
        loose = db.create_term("category", "Misc")

        assert db.get_term_translations(en) == {"en": en, "fr": fr}
        assert db.get_term_translations(loose) == {}


class TestSchema:
    def test_fresh_database_is_current(self, temp_db):
        assert get_db_version() == DB_VERSION

    def test_migrates_status_table(self, tmp_path, monkeypatch):
        path = tmp_path / "old.db"
        monkeypatch.setattr(db, "DB_FILE", path)
        with sqlite3.connect(path) as conn:
            conn.execute("""
                CREATE TABLE translation_status (
                    original_post_id INTEGER NOT NULL,
                    language TEXT NOT NULL,
                    status TEXT NOT NULL,
                    new_post_id INTEGER,
                    error TEXT,
                    updated_at REAL,
                    PRIMARY KEY (original_post_id, language)
                )
            """)
            conn.execute("INSERT INTO translation_status VALUES (1, 'fr', 'pending', NULL, NULL, 1000.0)")
            conn.execute("CREATE TABLE db_version (version INTEGER)")
            conn.execute("INSERT INTO db_version VALUES (1)")
            conn.commit()

        initialize_database()

        assert get_db_version() == DB_VERSION
        row = db.get_translation_status(1, "fr")
        assert row["started_at"] == 1000.0
        # Tables added since version 1 exist too
        assert db.create_post("After migration")
