"""Web application package for PolyTrans."""

from typing import Callable, Iterable, Optional

import httpx
from flask import Flask

from polytrans.config import initialize_app, load_settings
from polytrans.providers.assistants import AssistantClientFactory, AssistantClientHook
from polytrans.providers.registry import ProviderRegistry, RegistrationHook
from polytrans.receiver.coordinator import CompletionListener, TranslationCoordinator
from polytrans.receiver.notification import ReviewListener
from polytrans.receiver.status import StatusManager
from polytrans.translation.delivery import CallbackDelivery
from polytrans.translation.extension import TranslationExtension
from polytrans.translation.scheduler import TranslationScheduler
from polytrans.web.services import PolyTransServices


def create_app(
    provider_hooks: Iterable[RegistrationHook] = (),
    assistant_client_hooks: Iterable[AssistantClientHook] = (),
    completion_listeners: Iterable[CompletionListener] = (),
    review_listeners: Iterable[ReviewListener] = (),
    settings_loader: Callable = load_settings,
    transport: Optional[httpx.BaseTransport] = None,
) -> Flask:
    """
    Application factory for the web interface.

    Args:
        provider_hooks: callables hook(registry) that register providers.
        assistant_client_hooks: callables hook(assistant_id, settings, client)
            returning the client to use, or None to refuse the assistant.
        completion_listeners: called with a TranslationCompleted event after a
            translated post is recorded.
        review_listeners: called with a ReviewRequest when review is needed.
        settings_loader: returns the current Settings.
        transport: httpx transport for all outbound calls (tests).
    """
    initialize_app()

    from .app import build_app  # Import here to avoid circular imports

    assistant_factory = AssistantClientFactory(assistant_client_hooks, transport=transport)
    registry = ProviderRegistry(provider_hooks, assistant_factory=assistant_factory, transport=transport)
    status_manager = StatusManager()

    services = PolyTransServices(
        settings_loader=settings_loader,
        registry=registry,
        assistant_factory=assistant_factory,
        status_manager=status_manager,
        coordinator=TranslationCoordinator(
            settings_loader,
            status_manager=status_manager,
            completion_listeners=completion_listeners,
            review_listeners=review_listeners,
        ),
        extension=TranslationExtension(
            registry,
            settings_loader,
            status_manager=status_manager,
            delivery=CallbackDelivery(transport=transport),
        ),
        scheduler=TranslationScheduler(settings_loader, status_manager=status_manager, transport=transport),
    )

    return build_app(services)


__all__ = ["create_app"]
