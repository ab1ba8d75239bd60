"""
Translation Coordinator

Turns an inbound translation callback into a translated post:

    received -> validated -> post_created -> metadata_set -> taxonomy_set
             -> language_set -> notified -> completed

Any step can end in `failed`. Validation failures leave no trace. Once a
post has been created every outcome is recorded by the StatusManager, and
the post is never created twice for the same attempt.
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional

from polytrans.exceptions import CreationError, ErrorKind, ValidationError
from polytrans.logger import get_logger
from polytrans.receiver.language import LanguageManager
from polytrans.receiver.metadata import MetadataManager
from polytrans.receiver.notification import COMPLETED, NotificationManager, ReviewListener
from polytrans.receiver.post_creator import PostCreator
from polytrans.receiver.status import StatusManager
from polytrans.receiver.taxonomy import TaxonomyManager
from polytrans.receiver.validator import ReceivedTranslation, RequestValidator

logger = get_logger(__name__)


class PipelineState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    POST_CREATED = "post_created"
    METADATA_SET = "metadata_set"
    TAXONOMY_SET = "taxonomy_set"
    LANGUAGE_SET = "language_set"
    NOTIFIED = "notified"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class ProcessResult:
    success: bool
    state: PipelineState
    created_post_id: Optional[int] = None
    status: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    code: Optional[str] = None
    failed_at: Optional[PipelineState] = None

    @classmethod
    def failed(cls, error: str, kind: ErrorKind, failed_at: PipelineState, code: str = None,
               created_post_id: int = None) -> "ProcessResult":
        return cls(success=False, state=PipelineState.FAILED, error=error, error_kind=kind,
                   code=code, created_post_id=created_post_id, failed_at=failed_at)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        data["error_kind"] = self.error_kind.value if self.error_kind else None
        data["failed_at"] = self.failed_at.value if self.failed_at else None
        return data


@dataclass(frozen=True)
class TranslationCompleted:
    """Emitted after a translated post is recorded as succeeded."""

    original_post_id: int
    new_post_id: int
    source_language: str
    target_language: str
    status: str


CompletionListener = Callable[[TranslationCompleted], None]


class TranslationCoordinator:
    def __init__(
        self,
        settings_loader,
        status_manager: StatusManager = None,
        validator: RequestValidator = None,
        post_creator: PostCreator = None,
        metadata_manager: MetadataManager = None,
        taxonomy_manager: TaxonomyManager = None,
        language_manager: LanguageManager = None,
        notification_manager: NotificationManager = None,
        completion_listeners: Iterable[CompletionListener] = (),
        review_listeners: Iterable[ReviewListener] = (),
    ):
        self.status_manager = status_manager or StatusManager()
        self.validator = validator or RequestValidator()
        self.post_creator = post_creator or PostCreator()
        self.metadata_manager = metadata_manager or MetadataManager()
        self.taxonomy_manager = taxonomy_manager or TaxonomyManager()
        self.language_manager = language_manager or LanguageManager(settings_loader)
        self.notification_manager = notification_manager or NotificationManager(settings_loader, review_listeners)
        self.completion_listeners = list(completion_listeners)

    def process_translation(self, params: Dict[str, Any]) -> ProcessResult:
        state = PipelineState.RECEIVED
        try:
            job = self.validator.validate(params)
        except ValidationError as e:
            logger.warning(f"Rejected translation callback: {e.message}")
            return ProcessResult.failed(e.message, ErrorKind.VALIDATION, state, code=e.code)
        state = self._advance(state, PipelineState.VALIDATED)

        new_post_id = None
        try:
            try:
                new_post_id = self.post_creator.create_post(job.translated, job.original_post_id)
            except CreationError as e:
                self.status_manager.mark_failed(job.original_post_id, job.target_language, e.message)
                return ProcessResult.failed(
                    f"Could not create translated post: {e.message}",
                    ErrorKind.CREATION,
                    state,
                    code=e.code,
                )
            state = self._advance(state, PipelineState.POST_CREATED)

            self.metadata_manager.setup_metadata(
                new_post_id, job.original_post_id, job.source_language, job.target_language, job.translated
            )
            state = self._advance(state, PipelineState.METADATA_SET)

            self.taxonomy_manager.setup_taxonomies(new_post_id, job.original_post_id, job.target_language)
            state = self._advance(state, PipelineState.TAXONOMY_SET)

            self.language_manager.setup_language_and_status(
                new_post_id, job.original_post_id, job.source_language, job.target_language
            )
            state = self._advance(state, PipelineState.LANGUAGE_SET)

            final_status = self._notify(new_post_id, job)
            state = self._advance(state, PipelineState.NOTIFIED)

            self.status_manager.mark_succeeded(job.original_post_id, job.target_language, new_post_id)
        except Exception as e:
            error_message = f"Translation processing failed: {e}"
            logger.error(f"{error_message} (after {state.value})")
            self.status_manager.mark_failed(job.original_post_id, job.target_language, error_message, new_post_id)
            return ProcessResult.failed(error_message, ErrorKind.INTERNAL, state, created_post_id=new_post_id)

        self._emit_completed(TranslationCompleted(
            original_post_id=job.original_post_id,
            new_post_id=new_post_id,
            source_language=job.source_language,
            target_language=job.target_language,
            status=final_status,
        ))

        logger.info(f"Translation processing completed successfully for post {new_post_id}")
        return ProcessResult(
            success=True,
            state=PipelineState.COMPLETED,
            created_post_id=new_post_id,
            status=final_status,
        )

    def _advance(self, current: PipelineState, new: PipelineState) -> PipelineState:
        logger.debug(f"Pipeline {current.value} -> {new.value}")
        return new

    def _notify(self, new_post_id: int, job: ReceivedTranslation) -> str:
        try:
            return self.notification_manager.handle_notifications(
                new_post_id, job.original_post_id, job.target_language
            )
        except Exception as e:
            logger.error(f"Notification for post {new_post_id} failed: {e}")
            return COMPLETED

    def _emit_completed(self, event: TranslationCompleted):
        for listener in self.completion_listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Completion listener {getattr(listener, '__name__', listener)} failed: {e}")
