from polytrans.core import database as db
from polytrans.logger import get_logger

logger = get_logger(__name__)

TARGET_META_PREFIX = "_polytrans_translation_target_"


class LanguageManager:
    def __init__(self, settings_loader):
        self._load_settings = settings_loader

    def setup_language_and_status(self, new_post_id: int, original_post_id: int,
                                  source_language: str, target_language: str):
        db.update_post(new_post_id, language=target_language)

        original = db.get_post(original_post_id)
        if original:
            translations = db.get_post_translations(original_post_id)
            if not translations:
                translations = {original.get("language") or source_language: original_post_id}
            translations[target_language] = new_post_id
            group_id = db.save_post_translations(translations)
            db.update_post_meta(original_post_id, f"{TARGET_META_PREFIX}{target_language}", new_post_id)
            logger.debug(f"Linked post {new_post_id} to original {original_post_id} in group {group_id}")
        else:
            logger.info(f"Original post {original_post_id} not stored locally, translation left unlinked")

        status = self._load_settings().language(target_language).status
        if status == "source":
            status = (original or {}).get("status") or "draft"
        db.update_post(new_post_id, status=status)
        logger.info(f"Post {new_post_id} set to {target_language}, status {status}")
