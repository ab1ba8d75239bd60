"""
Provider registry.

Built once by the application factory. Providers are registered lazily on
first use: the built-ins first, then every registration hook in order.
Registering an id twice keeps the later provider.
"""

import threading
from typing import Callable, Dict, Iterable, List, Optional

import httpx

from polytrans.logger import get_logger
from polytrans.providers.assistants import AssistantClientFactory
from polytrans.providers.base import TranslationProvider
from polytrans.providers.google import GoogleProvider
from polytrans.providers.openai import OpenAIProvider

logger = get_logger(__name__)

RegistrationHook = Callable[["ProviderRegistry"], None]


class ProviderRegistry:
    def __init__(self, registration_hooks: Iterable[RegistrationHook] = (), include_builtins: bool = True,
                 assistant_factory: Optional[AssistantClientFactory] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        self._hooks = list(registration_hooks)
        self._include_builtins = include_builtins
        self._assistant_factory = assistant_factory
        self._transport = transport
        self._providers: Dict[str, TranslationProvider] = {}
        self._initialized = False
        self._initializing = False
        self._lock = threading.RLock()

    def initialize(self):
        """Register built-ins and run registration hooks, once."""
        if self._initialized:
            return
        with self._lock:
            # A hook that reads the registry sees what is registered so far
            if self._initialized or self._initializing:
                return
            self._initializing = True
            try:
                if self._include_builtins:
                    self.register(GoogleProvider(transport=self._transport))
                    self.register(OpenAIProvider(assistant_factory=self._assistant_factory, transport=self._transport))
                for hook in self._hooks:
                    try:
                        hook(self)
                    except Exception:
                        logger.exception(f"Provider registration hook {getattr(hook, '__name__', hook)} failed")
            finally:
                self._initialized = True
                self._initializing = False
            logger.debug(f"Provider registry initialized: {', '.join(self._providers)}")

    def register(self, provider: TranslationProvider):
        if not isinstance(provider, TranslationProvider):
            raise TypeError(f"Expected a TranslationProvider, got {type(provider).__name__}")
        if not provider.id:
            raise ValueError("Provider id must not be empty")
        if provider.id in self._providers:
            logger.info(f"Replacing translation provider '{provider.id}'")
        self._providers[provider.id] = provider

    def resolve(self, provider_id: str) -> Optional[TranslationProvider]:
        self.initialize()
        return self._providers.get(provider_id)

    def list(self) -> List[TranslationProvider]:
        self.initialize()
        return list(self._providers.values())

    def choices(self) -> Dict[str, str]:
        """Provider id -> display name, for settings forms."""
        return {provider.id: provider.name or provider.id for provider in self.list()}

    def __contains__(self, provider_id: str) -> bool:
        return self.resolve(provider_id) is not None
