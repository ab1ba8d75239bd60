import re
from dataclasses import dataclass
from typing import Any, Dict

from polytrans.exceptions import ValidationError
from polytrans.logger import get_logger

logger = get_logger(__name__)

LANGUAGE_CODE_RE = re.compile(r"^[a-z]{2,3}(-[a-z]{2,3})?$", re.IGNORECASE)


@dataclass(frozen=True)
class ReceivedTranslation:
    """A validated inbound callback."""

    source_language: str
    target_language: str
    original_post_id: int
    translated: Dict[str, Any]


def is_valid_language_code(code: Any) -> bool:
    return isinstance(code, str) and bool(LANGUAGE_CODE_RE.match(code))


class RequestValidator:
    """Checks an inbound translation callback before anything is written."""

    def validate(self, params: Dict[str, Any]) -> ReceivedTranslation:
        translated = params.get("translated")
        source_language = params.get("source_language") or ""
        target_language = params.get("target_language") or ""
        original_post_id = params.get("original_post_id")

        if not translated or not isinstance(translated, dict) or not target_language or not original_post_id:
            logger.warning(f"Missing data in translation request: keys={sorted(params)}")
            raise ValidationError("Missing required translation data", code="missing_data")

        try:
            if isinstance(original_post_id, bool):
                raise TypeError("boolean post id")
            if isinstance(original_post_id, float) and not original_post_id.is_integer():
                raise ValueError("fractional post id")
            original_post_id = int(original_post_id)
        except (TypeError, ValueError):
            raise ValidationError("Missing required translation data", code="missing_data",
                                  details={"original_post_id": original_post_id})

        if not is_valid_language_code(source_language) or not is_valid_language_code(target_language):
            raise ValidationError("Invalid language code provided", code="invalid_language",
                                  details={"source_language": source_language, "target_language": target_language})

        # At minimum, we need a title or content
        if not translated.get("title") and not translated.get("content"):
            raise ValidationError("Translation data missing required fields", code="invalid_translation")

        return ReceivedTranslation(
            source_language=source_language,
            target_language=target_language,
            original_post_id=original_post_id,
            translated=translated,
        )
