"""
Translation module - Dispatching jobs between sites

This module provides:
- extension: TranslationExtension, the translate endpoint handler
- delivery: authenticated callback delivery of translated results
- auth: shared-secret methods and IP allowlist
- scheduler: requesting translations of a local post
"""

from polytrans.translation.delivery import CallbackDelivery, CallbackEnvelope, DeliveryOutcome
from polytrans.translation.extension import TranslationExtension, TranslationJob
from polytrans.translation.scheduler import TranslationScheduler
