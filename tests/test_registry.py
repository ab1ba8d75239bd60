"""
Tests for the provider registry.
"""

import threading

import pytest

from polytrans.providers.google import GoogleProvider
from polytrans.providers.openai import OpenAIProvider
from polytrans.providers.registry import ProviderRegistry

from conftest import FakeProvider


class TestProviderRegistry:
    def test_builtins_registered_in_order(self):
        registry = ProviderRegistry()

        providers = registry.list()

        assert [p.id for p in providers] == ["google", "openai"]
        assert isinstance(providers[0], GoogleProvider)
        assert isinstance(providers[1], OpenAIProvider)

    def test_choices(self):
        assert ProviderRegistry().choices() == {"google": "Google Translate", "openai": "OpenAI"}

    def test_hooks_run_once(self):
        calls = []

        def hook(registry):
            calls.append(1)
            registry.register(FakeProvider("deepl"))

        registry = ProviderRegistry([hook])
        registry.list()
        registry.resolve("deepl")

        assert calls == [1]
        assert "deepl" in registry

    def test_failing_hook_runs_once(self):
        calls = []

        def broken(registry):
            calls.append(1)
            raise RuntimeError("plugin exploded")

        registry = ProviderRegistry([broken, lambda r: r.register(FakeProvider("deepl"))])

        for _ in range(3):
            registry.resolve("x")

        assert calls == [1]
        assert [p.id for p in registry.list()] == ["google", "openai", "deepl"]

    def test_hooks_run_concurrently_only_once(self):
        calls = []
        barrier = threading.Barrier(4)

        def hook(registry):
            calls.append(1)
            registry.register(FakeProvider("deepl"))

        registry = ProviderRegistry([hook])

        def worker():
            barrier.wait()
            assert registry.resolve("deepl") is not None

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert calls == [1]

    def test_last_registration_wins(self):
        replacement = FakeProvider("google", name="Fake Google")
        registry = ProviderRegistry([lambda r: r.register(replacement)])

        assert registry.resolve("google") is replacement
        assert [p.id for p in registry.list()] == ["google", "openai"]

    def test_hook_may_read_registry(self):
        seen = []
        registry = ProviderRegistry([lambda r: seen.append(r.resolve("google"))])

        registry.initialize()

        assert isinstance(seen[0], GoogleProvider)

    def test_unknown_provider(self):
        registry = ProviderRegistry()
        assert registry.resolve("nope") is None
        assert "nope" not in registry

    def test_without_builtins(self):
        registry = ProviderRegistry(include_builtins=False)
        assert registry.list() == []

    def test_rejects_non_provider(self):
        with pytest.raises(TypeError):
            ProviderRegistry().register(object())

    def test_rejects_empty_id(self):
        with pytest.raises(ValueError):
            ProviderRegistry().register(FakeProvider(""))
