"""
Translation Extension

The dispatcher half of the protocol: accepts a translation job, runs the
configured provider, and delivers the translated result to the job's
target endpoint with the shared-secret authentication applied.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

import httpx

from polytrans.core import database as db
from polytrans.exceptions import ValidationError
from polytrans.logger import get_logger
from polytrans.providers.registry import ProviderRegistry
from polytrans.receiver.status import StatusManager
from polytrans.translation.auth import verify_request
from polytrans.translation.delivery import CallbackDelivery, CallbackEnvelope, DeliveryOutcome

logger = get_logger(__name__)

DEFAULT_PROVIDER = "google"


@dataclass(frozen=True)
class TranslationJob:
    to_translate: Dict[str, Any]
    source_language: str
    target_language: str
    original_post_id: Any
    target_endpoint: str

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "TranslationJob":
        target_endpoint = payload.get("target_endpoint")
        if not target_endpoint or not isinstance(target_endpoint, str):
            raise ValidationError("target_endpoint required", code="missing_endpoint")
        try:
            scheme = httpx.URL(target_endpoint).scheme
        except httpx.InvalidURL:
            scheme = None
        if scheme not in ("http", "https"):
            raise ValidationError("target_endpoint must be an http(s) URL", code="invalid_endpoint")

        to_translate = payload.get("toTranslate")
        if to_translate is None:
            to_translate = {}
        if not isinstance(to_translate, dict):
            raise ValidationError("toTranslate must be an object", code="invalid_content")

        return cls(
            to_translate=to_translate,
            source_language=payload.get("source_language") or "auto",
            target_language=payload.get("target_language") or "en",
            original_post_id=payload.get("original_post_id"),
            target_endpoint=target_endpoint,
        )


class TranslationExtension:
    def __init__(self, registry: ProviderRegistry, settings_loader, status_manager: StatusManager = None,
                 delivery: CallbackDelivery = None):
        self.registry = registry
        self._load_settings = settings_loader
        self.status_manager = status_manager or StatusManager()
        self.delivery = delivery or CallbackDelivery()

    def authenticate(self, request):
        """Raise AuthenticationError unless the request carries the shared secret."""
        verify_request(self._load_settings().auth, request)

    def handle_translate(self, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], int]:
        """
        Translate one job and deliver the result.

        Returns:
            (response body, HTTP status)
        """
        logger.info("handleTranslate called")
        try:
            job = TranslationJob.from_payload(payload)
        except ValidationError as e:
            logger.info(f"handleTranslate error: {e.message}")
            return {"error": e.message}, 400

        settings = self._load_settings()

        if self._is_tracked(job):
            self.status_manager.mark_translating(int(job.original_post_id), job.target_language)
            logger.info(
                f"External translation process started for post {job.original_post_id} "
                f"from {job.source_language} to {job.target_language}"
            )
        elif job.original_post_id:
            logger.info(f"Skipping status update for post {job.original_post_id}: not tracked locally")

        provider_id = settings.translation_provider or DEFAULT_PROVIDER
        try:
            provider = self.registry.resolve(provider_id)
            if provider is None:
                return self._fail(job, f"Unknown translation provider: {provider_id}", 400)

            if not provider.is_configured(settings):
                return self._fail(job, f"Translation provider {provider_id} is not properly configured", 400)

            result = provider.translate(job.to_translate, job.source_language, job.target_language, settings)
        except Exception as e:
            logger.exception(f"Provider {provider_id} raised while translating post {job.original_post_id}")
            return self._fail(job, f"Translation failed: {e}", 500)

        if not result.success:
            return self._fail(job, result.error, 500)

        envelope = CallbackEnvelope(
            source_language=job.source_language,
            target_language=job.target_language,
            original_post_id=job.original_post_id,
            translated=result.translated_content,
        )
        outcome = self.delivery.deliver(envelope, job.target_endpoint, settings)
        self._record_delivery(job, outcome)

        logger.info(f"Translation finished for {job.source_language}->{job.target_language}")
        return {"status": "sent", "result": envelope.to_dict()}, 200

    def _is_tracked(self, job: TranslationJob) -> bool:
        """Only an original stored here and waiting for this language gets status writes."""
        if not db.post_exists(job.original_post_id):
            return False
        return self.status_manager.is_tracking(int(job.original_post_id), job.target_language)

    def _fail(self, job: TranslationJob, message: str, http_status: int) -> Tuple[Dict[str, Any], int]:
        logger.warning(f"Translation of post {job.original_post_id} failed: {message}")
        if self._is_tracked(job):
            self.status_manager.mark_failed(int(job.original_post_id), job.target_language, message)
        return {"error": message}, http_status

    def _record_delivery(self, job: TranslationJob, outcome: DeliveryOutcome):
        if not self._is_tracked(job):
            if outcome.success and outcome.created_post_id:
                logger.info(f"Translation delivered to receiver (post {outcome.created_post_id}), skipping local status update")
            return

        original_post_id = int(job.original_post_id)
        if not outcome.success:
            self.status_manager.mark_failed(
                original_post_id, job.target_language, f"Failed to deliver translation: {outcome.error_message}"
            )
        elif outcome.created_post_id:
            self.status_manager.mark_succeeded(original_post_id, job.target_language, outcome.created_post_id)
            db.update_post_meta(original_post_id, f"_polytrans_translation_target_{job.target_language}",
                                outcome.created_post_id)
