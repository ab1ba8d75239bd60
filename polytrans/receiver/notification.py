"""
Reviewer notifications.

When the original post asks for review in the target language and that
language has a reviewer, a ReviewRequest is handed to every review
listener (an email sender, a chat hook, ...). Listeners are plain callables.
"""

from dataclasses import dataclass, asdict
from typing import Any, Callable, Dict, Iterable, Optional

from polytrans.core import database as db
from polytrans.logger import get_logger

logger = get_logger(__name__)

NEEDS_REVIEW_META_PREFIX = "_polytrans_translation_needs_review_"

COMPLETED = "completed"
PENDING_REVIEW = "pending_review"


@dataclass(frozen=True)
class ReviewRequest:
    post_id: int
    original_post_id: int
    language: str
    reviewer_id: int
    reviewer_email: str
    reviewer_name: str
    subject: str
    body: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


ReviewListener = Callable[[ReviewRequest], None]


def render_template(template: str, values: Dict[str, Any]) -> str:
    """Replace {placeholder} tokens; unknown braces are left alone."""
    for key, value in values.items():
        template = template.replace("{" + key + "}", str(value))
    return template


def build_links(base_url: str, post_id: int):
    if not base_url:
        return "", ""
    base_url = base_url.rstrip("/")
    return f"{base_url}/posts/{post_id}", f"{base_url}/posts/{post_id}/edit"


class NotificationManager:
    def __init__(self, settings_loader, review_listeners: Iterable[ReviewListener] = ()):
        self._load_settings = settings_loader
        self.review_listeners = list(review_listeners)

    def needs_review(self, original_post_id: int, target_language: str) -> bool:
        flag = db.get_post_meta_value(original_post_id, f"{NEEDS_REVIEW_META_PREFIX}{target_language}")
        return str(flag) == "1"

    def handle_notifications(self, new_post_id: int, original_post_id: int, target_language: str) -> str:
        """Request review when configured. Returns the final pipeline status."""
        if not self.needs_review(original_post_id, target_language):
            return COMPLETED

        settings = self._load_settings()
        reviewer_id = settings.language(target_language).reviewer
        if not reviewer_id:
            logger.info(f"Review requested for {target_language} but no reviewer is configured")
            return COMPLETED

        reviewer = db.get_user(reviewer_id)
        if not reviewer:
            logger.warning(f"Reviewer {reviewer_id} for {target_language} does not exist")
            return COMPLETED

        request = self._build_request(settings, new_post_id, original_post_id, target_language, reviewer)
        for listener in self.review_listeners:
            listener(request)

        logger.info(f"Review requested from {reviewer['email']} for post {new_post_id}")
        return PENDING_REVIEW

    def _build_request(self, settings, new_post_id: int, original_post_id: int,
                       target_language: str, reviewer: Dict[str, Any]) -> ReviewRequest:
        post = db.get_post(new_post_id) or {}
        author = self._author(post.get("author_id"))
        link, edit_link = build_links(settings.edit_link_base_url, new_post_id)

        values = {
            "title": post.get("title", ""),
            "language": target_language,
            "link": link,
            "edit_link": edit_link,
            "author_name": author,
        }
        return ReviewRequest(
            post_id=new_post_id,
            original_post_id=original_post_id,
            language=target_language,
            reviewer_id=reviewer["id"],
            reviewer_email=reviewer["email"],
            reviewer_name=reviewer["display_name"],
            subject=render_template(settings.reviewer_email_title, values),
            body=render_template(settings.reviewer_email, values),
        )

    def _author(self, author_id: Optional[int]) -> str:
        if not author_id:
            return ""
        user = db.get_user(author_id)
        return user["display_name"] if user else ""
