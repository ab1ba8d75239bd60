"""
Translation scheduler (requesting side).

Marks the requested languages as pending on the original post and sends
one translation request per language to the configured translation
endpoint. The translated result comes back later through the receiver
endpoint named in the request.
"""

from typing import Any, Dict, List, Optional

import httpx

from polytrans.core import database as db
from polytrans.exceptions import ConfigError, DeliveryError, ValidationError
from polytrans.logger import get_logger
from polytrans.providers.base import get_httpx_timeout
from polytrans.receiver.notification import NEEDS_REVIEW_META_PREFIX
from polytrans.receiver.status import StatusManager
from polytrans.receiver.validator import is_valid_language_code
from polytrans.translation.auth import apply_auth

logger = get_logger(__name__)

# SEO meta fields sent along with the post body
TRANSLATABLE_META_KEYS = (
    "rank_math_title",
    "rank_math_description",
    "rank_math_facebook_title",
    "rank_math_facebook_description",
    "rank_math_twitter_title",
    "rank_math_twitter_description",
    "rank_math_focus_keyword",
    "_yoast_wpseo_title",
    "_yoast_wpseo_metadesc",
    "_yoast_wpseo_focuskw",
    "_yoast_wpseo_opengraph-title",
    "_yoast_wpseo_opengraph-description",
    "_yoast_wpseo_twitter-title",
    "_yoast_wpseo_twitter-description",
)


class TranslationScheduler:
    def __init__(self, settings_loader, status_manager: StatusManager = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self._load_settings = settings_loader
        self.status_manager = status_manager or StatusManager()
        self._transport = transport

    def schedule(self, post_id: int, targets: List[str], needs_review: bool = False) -> List[Dict[str, Any]]:
        """
        Mark each target language pending and build its translation request.

        Returns:
            One request payload per scheduled language, ready for dispatch().
        """
        post = db.get_post(post_id)
        if not post:
            raise ValidationError("Cannot translate: the post does not exist.", code="not_found")

        settings = self._load_settings()
        if not settings.translation_endpoint:
            raise ConfigError("Translation endpoint is not configured", code="not_configured")
        if not settings.receiver_endpoint:
            raise ConfigError("Receiver endpoint is not configured", code="not_configured")

        source_language = post.get("language")
        if not source_language:
            raise ValidationError(f"Post {post_id} has no language set", code="missing_language")

        languages = self._filter_targets(targets, source_language, settings.allowed_targets)
        if not languages:
            raise ValidationError("No valid target languages to translate", code="invalid_targets")

        to_translate = {
            "title": post["title"],
            "content": post["content"],
            "excerpt": post["excerpt"],
            "meta": {
                key: value
                for key, value in db.get_post_meta(post_id).items()
                if key in TRANSLATABLE_META_KEYS
            },
        }

        requests = []
        for language in languages:
            self.status_manager.mark_pending(post_id, language)
            db.update_post_meta(post_id, f"{NEEDS_REVIEW_META_PREFIX}{language}", "1" if needs_review else "0")
            requests.append({
                "source_language": source_language,
                "target_language": language,
                "original_post_id": post_id,
                "target_endpoint": settings.receiver_endpoint,
                "toTranslate": to_translate,
            })

        logger.info(f"Scheduled translation of post {post_id} to {', '.join(languages)}")
        return requests

    def _filter_targets(self, targets: List[str], source_language: str, allowed: List[str]) -> List[str]:
        languages = []
        for code in targets or []:
            if not isinstance(code, str):
                continue
            code = code.strip()
            if not is_valid_language_code(code) or code == source_language or code in languages:
                continue
            if allowed and code not in allowed:
                logger.info(f"Skipping target {code}: not in allowed targets")
                continue
            languages.append(code)
        return languages

    def dispatch(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Send one translation request to the translation endpoint.

        The endpoint translates and delivers before it answers, so a read
        timeout only means the answer did not arrive in time; the request
        itself stays accepted. Connection and HTTP errors mark the language
        failed.
        """
        settings = self._load_settings()
        post_id = payload["original_post_id"]
        language = payload["target_language"]
        endpoint = settings.translation_endpoint

        headers, params, body = apply_auth(settings.auth, {"Content-Type": "application/json"}, {}, payload)

        try:
            with httpx.Client(
                timeout=get_httpx_timeout(settings.dispatch_timeout),
                verify=settings.tls_verify,
                transport=self._transport,
            ) as client:
                response = client.post(endpoint, params=params, headers=headers, json=body)
        except httpx.ReadTimeout:
            logger.info(f"Translation request for post {post_id} ({language}) sent, awaiting callback")
            return {"post_id": post_id, "language": language, "sent": True, "confirmed": False}
        except httpx.HTTPError as e:
            error = DeliveryError(f"Could not reach translation endpoint: {e}", code="network_error")
            if self.status_manager.is_tracking(post_id, language):
                self.status_manager.mark_failed(post_id, language, f"Failed to send translation request: {error.message}")
            raise error

        if not response.is_success:
            error = DeliveryError(
                f"Translation endpoint returned HTTP {response.status_code}: {response.text[:500]}",
                code="http_error",
                details={"status_code": response.status_code},
            )
            if self.status_manager.is_tracking(post_id, language):
                self.status_manager.mark_failed(post_id, language, f"Failed to send translation request: {error.message}")
            raise error

        logger.info(f"Translation request for post {post_id} ({language}) accepted (HTTP {response.status_code})")
        return {"post_id": post_id, "language": language, "sent": True, "confirmed": True,
                "status_code": response.status_code}
