import re
import sqlite3
from typing import Any, Dict

from polytrans.core import database as db
from polytrans.exceptions import CreationError
from polytrans.logger import get_logger

logger = get_logger(__name__)

TAG_RE = re.compile(r"<[^>]*>")


def sanitize_title(value: Any) -> str:
    """Strip tags and collapse whitespace to a single line."""
    text = TAG_RE.sub("", str(value or ""))
    return " ".join(text.split())


def sanitize_excerpt(value: Any) -> str:
    """Strip tags, keep line breaks."""
    text = TAG_RE.sub("", str(value or ""))
    return "\n".join(" ".join(line.split()) for line in text.strip().splitlines())


class PostCreator:
    def create_post(self, translated: Dict[str, Any], original_post_id: int) -> int:
        """
        Create the translated post in 'pending' status.

        The final status is set later by the language step. Raises
        CreationError when the post cannot be stored.
        """
        original = db.get_post(original_post_id)
        post_type = (original or {}).get("post_type") or "post"

        try:
            new_post_id = db.create_post(
                title=sanitize_title(translated.get("title")),
                content=translated.get("content") or "",
                excerpt=sanitize_excerpt(translated.get("excerpt")),
                status="pending",
                post_type=post_type,
            )
        except sqlite3.Error as e:
            logger.error(f"Failed to create translated post: {e}")
            raise CreationError(str(e), code="insert_failed")

        if not new_post_id:
            raise CreationError("Post store returned no id", code="insert_failed")

        logger.info(f"Created translated post {new_post_id} from original {original_post_id} ({post_type})")
        return new_post_id
