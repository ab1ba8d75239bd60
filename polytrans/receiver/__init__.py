"""
Receiver module - Building translated posts from inbound callbacks

This module provides:
- coordinator: TranslationCoordinator pipeline and its result types
- status: StatusManager over the translation_status table
- validator, post_creator, metadata, taxonomy, language, notification:
  the individual pipeline steps
"""

from polytrans.receiver.coordinator import (
    PipelineState,
    ProcessResult,
    TranslationCompleted,
    TranslationCoordinator,
)
from polytrans.receiver.notification import NotificationManager, ReviewRequest
from polytrans.receiver.status import StatusManager, TranslationStatus
from polytrans.receiver.validator import ReceivedTranslation, RequestValidator
