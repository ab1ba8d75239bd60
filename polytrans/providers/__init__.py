"""
Providers module - Translation backends

This module provides:
- TranslationProvider / TranslationResult: the backend contract
- GoogleProvider, OpenAIProvider: built-in backends
- ProviderRegistry: lookup of backends by id
- AssistantClientFactory: assistant id -> client, extendable by hooks
"""

from polytrans.providers.base import TranslationProvider, TranslationResult, get_httpx_timeout
from polytrans.providers.assistants import AssistantClient, AssistantClientFactory, OpenAIAssistantClient
from polytrans.providers.google import GoogleProvider
from polytrans.providers.openai import OpenAIProvider
from polytrans.providers.registry import ProviderRegistry
