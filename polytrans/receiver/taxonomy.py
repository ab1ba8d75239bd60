from typing import List

from polytrans.core import database as db
from polytrans.logger import get_logger

logger = get_logger(__name__)

TAXONOMIES = ("category", "post_tag")


class TaxonomyManager:
    def setup_taxonomies(self, new_post_id: int, original_post_id: int, target_language: str):
        for taxonomy in TAXONOMIES:
            term_ids = self.translate_terms(original_post_id, taxonomy, target_language)
            if term_ids:
                db.set_post_terms(new_post_id, taxonomy, term_ids)

    def translate_terms(self, original_post_id: int, taxonomy: str, target_language: str) -> List[int]:
        """
        Map the original's terms to their target-language counterparts.

        Terms outside any translation group are reused as is. Terms whose
        group has no member in the target language are left out.
        """
        result = []
        for term in db.get_post_terms(original_post_id, taxonomy):
            if term.get("translation_group") is None:
                result.append(term["id"])
                continue

            translations = db.get_term_translations(term["id"])
            translated_id = translations.get(target_language)
            if translated_id:
                result.append(translated_id)
            else:
                logger.info(f"No {target_language} translation for {taxonomy} '{term['name']}' ({term['id']}), skipping")
        return result
