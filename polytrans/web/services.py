"""Objects shared by the route blueprints, built once per application."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from flask import current_app

from polytrans.config import Settings
from polytrans.providers.assistants import AssistantClientFactory
from polytrans.providers.registry import ProviderRegistry
from polytrans.receiver.coordinator import TranslationCoordinator
from polytrans.receiver.status import StatusManager
from polytrans.translation.extension import TranslationExtension
from polytrans.translation.scheduler import TranslationScheduler

EXTENSION_KEY = "polytrans"


@dataclass
class PolyTransServices:
    settings_loader: Callable[[], Settings]
    registry: ProviderRegistry
    assistant_factory: AssistantClientFactory
    status_manager: StatusManager
    coordinator: TranslationCoordinator
    extension: TranslationExtension
    scheduler: TranslationScheduler


def get_services() -> PolyTransServices:
    return current_app.extensions[EXTENSION_KEY]
