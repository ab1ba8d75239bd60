from datetime import datetime, timezone
from typing import Any, Dict

from polytrans.core import database as db
from polytrans.logger import get_logger

logger = get_logger(__name__)

# Keys that describe the original's own translation state
SKIPPED_META_KEYS = ("_polytrans_translation_status", "_edit_lock", "_edit_last")
SKIPPED_META_PREFIX = "_polytrans_translation_"


def should_copy_meta(key: str) -> bool:
    return key not in SKIPPED_META_KEYS and not key.startswith(SKIPPED_META_PREFIX)


class MetadataManager:
    def setup_metadata(self, new_post_id: int, original_post_id: int, source_language: str,
                       target_language: str, translated: Dict[str, Any]):
        original = db.get_post(original_post_id)
        if original and original.get("author_id"):
            db.update_post(new_post_id, author_id=original["author_id"])

        meta = {}
        if original:
            meta.update({k: v for k, v in db.get_post_meta(original_post_id).items() if should_copy_meta(k)})

        translated_meta = translated.get("meta") or {}
        if isinstance(translated_meta, dict):
            meta.update({k: v for k, v in translated_meta.items() if should_copy_meta(k)})

        for key, value in meta.items():
            db.update_post_meta(new_post_id, key, value)

        markers = {
            "translated_by_machine": "true",
            "translated_by_human": "false",
            "polytrans_is_translation_target": 1,
            "polytrans_translation_source": original_post_id,
            "polytrans_translation_lang": source_language,
            "polytrans_translation_target_lang": target_language,
            "polytrans_translated_at": datetime.now(timezone.utc).isoformat(),
        }
        for key, value in markers.items():
            db.update_post_meta(new_post_id, key, value)

        logger.debug(f"Copied {len(meta)} meta field(s) to post {new_post_id}")
