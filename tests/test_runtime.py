"""Tests for the runtime registry."""

import threading
from unittest.mock import MagicMock

import pytest

from betterenv.runtime import Registry, default_registry
from betterenv.providers import FileProvider
from betterenv._types import FetchFailed, Provider


class DictProvider:
    """In-memory provider that records its calls."""

    def __init__(self, values):
        self.values = dict(values)
        self.get_calls = []
        self.get_all_calls = 0

    def get(self, key):
        self.get_calls.append(key)
        return self.values.get(key)

    def get_all(self):
        self.get_all_calls += 1
        return dict(self.values)


class FailingProvider:
    """Provider whose every call fails."""

    def get(self, key):
        raise FetchFailed(500, "boom")

    def get_all(self):
        raise FetchFailed(500, "boom")


class TestProviderProtocol:
    """Test the provider protocol."""

    def test_duck_typed_provider_matches(self):
        """Test that any object with get/get_all satisfies the protocol."""
        assert isinstance(DictProvider({}), Provider)
        assert isinstance(FileProvider("/tmp/.env"), Provider)

    def test_incomplete_object_does_not_match(self):
        """Test that an object without get_all is not a provider."""
        class OnlyGet:
            def get(self, key):
                return None

        assert not isinstance(OnlyGet(), Provider)


class TestRegistration:
    """Test adding and removing providers."""

    def test_empty_registry(self):
        """Test a fresh registry."""
        registry = Registry()
        assert not registry.has_providers
        assert len(registry) == 0

    def test_add_provider_returns_handle(self):
        """Test that add_provider hands back the provider."""
        registry = Registry()
        provider = DictProvider({})

        assert registry.add_provider(provider) is provider
        assert registry.has_providers
        assert len(registry) == 1

    def test_remove_all_providers(self):
        """Test clearing the registry."""
        registry = Registry()
        registry.add_provider(DictProvider({"A": "1"}))
        registry.add_provider(DictProvider({"B": "2"}))

        registry.remove_all_providers()

        assert not registry.has_providers
        assert registry.get_from_providers("A") is None
        assert registry.get_all_from_providers() == {}

    def test_remove_provider(self):
        """Test removing a single provider."""
        registry = Registry()
        first = registry.add_provider(DictProvider({"A": "first"}))
        registry.add_provider(DictProvider({"A": "second"}))

        assert registry.remove_provider(first) is True
        assert registry.get_from_providers("A") == "second"
        assert registry.remove_provider(first) is False

    def test_duplicates_allowed(self):
        """Test that the same provider type may be added twice."""
        registry = Registry()
        registry.add_provider(DictProvider({}))
        registry.add_provider(DictProvider({}))
        assert len(registry) == 2


class TestGetProvider:
    """Test typed provider lookup."""

    def test_get_provider_by_type(self):
        """Test finding a provider by its class."""
        registry = Registry()
        registry.add_provider(DictProvider({}))
        file_provider = registry.add_provider(FileProvider("/tmp/.env"))

        assert registry.get_provider(FileProvider) is file_provider

    def test_first_match_wins(self):
        """Test that the earliest registered instance is returned."""
        registry = Registry()
        first = registry.add_provider(DictProvider({}))
        registry.add_provider(DictProvider({}))

        assert registry.get_provider(DictProvider) is first

    def test_missing_type(self):
        """Test lookup of an unregistered type."""
        registry = Registry()
        registry.add_provider(DictProvider({}))

        assert registry.get_provider(FileProvider) is None


class TestGetFromProviders:
    """Test single-key lookup."""

    def test_first_registered_wins(self):
        """Test priority follows registration order."""
        registry = Registry()
        registry.add_provider(DictProvider({"KEY": "high"}))
        registry.add_provider(DictProvider({"KEY": "low"}))

        assert registry.get_from_providers("KEY") == "high"

    def test_short_circuit(self):
        """Test that later providers are not queried after a hit."""
        registry = Registry()
        first = registry.add_provider(DictProvider({"KEY": "value"}))
        second = registry.add_provider(DictProvider({"KEY": "other"}))

        registry.get_from_providers("KEY")

        assert first.get_calls == ["KEY"]
        assert second.get_calls == []

    def test_falls_through_to_later_provider(self):
        """Test that a miss moves on to the next provider."""
        registry = Registry()
        registry.add_provider(DictProvider({}))
        registry.add_provider(DictProvider({"KEY": "low"}))

        assert registry.get_from_providers("KEY") == "low"

    def test_empty_string_is_a_hit(self):
        """Test that an empty value is not treated as absent."""
        registry = Registry()
        registry.add_provider(DictProvider({"KEY": ""}))
        registry.add_provider(DictProvider({"KEY": "low"}))

        assert registry.get_from_providers("KEY") == ""

    def test_not_found(self):
        """Test that a missing key yields None."""
        registry = Registry()
        registry.add_provider(DictProvider({"OTHER": "1"}))

        assert registry.get_from_providers("KEY") is None

    def test_error_propagates_fail_fast(self):
        """Test that a provider error stops the lookup."""
        registry = Registry()
        registry.add_provider(FailingProvider())
        fallback = registry.add_provider(DictProvider({"KEY": "value"}))

        with pytest.raises(FetchFailed):
            registry.get_from_providers("KEY")

        assert fallback.get_calls == []

    def test_error_after_hit_not_reached(self):
        """Test that a failing provider behind a hit is never called."""
        registry = Registry()
        registry.add_provider(DictProvider({"KEY": "value"}))
        registry.add_provider(FailingProvider())

        assert registry.get_from_providers("KEY") == "value"


class TestGetAllFromProviders:
    """Test merged lookup."""

    def test_earlier_providers_override(self):
        """Test that earlier providers win on conflicts."""
        registry = Registry()
        registry.add_provider(DictProvider({"A": "p1"}))
        registry.add_provider(DictProvider({"A": "p2", "B": "p2"}))
        registry.add_provider(DictProvider({"A": "p3", "B": "p3", "C": "p3"}))

        assert registry.get_all_from_providers() == {"A": "p1", "B": "p2", "C": "p3"}

    def test_every_provider_queried(self):
        """Test that each provider contributes once."""
        registry = Registry()
        providers = [registry.add_provider(DictProvider({str(i): "x"})) for i in range(3)]

        registry.get_all_from_providers()

        assert [p.get_all_calls for p in providers] == [1, 1, 1]

    def test_error_propagates(self):
        """Test that a provider error aborts the merge."""
        registry = Registry()
        registry.add_provider(DictProvider({"A": "1"}))
        registry.add_provider(FailingProvider())

        with pytest.raises(FetchFailed):
            registry.get_all_from_providers()


class TestSnapshot:
    """Test that queries work on a point-in-time copy of the provider list."""

    def test_clear_during_lookup(self):
        """Test that clearing mid-query does not affect the running query."""
        registry = Registry()

        clearing = MagicMock()
        clearing.get.side_effect = lambda key: registry.remove_all_providers()
        registry.add_provider(clearing)
        registry.add_provider(DictProvider({"KEY": "still visible"}))

        assert registry.get_from_providers("KEY") == "still visible"
        assert not registry.has_providers

    def test_add_during_merge(self):
        """Test that a provider added mid-merge is not included."""
        registry = Registry()
        late = DictProvider({"LATE": "1"})

        adding = MagicMock()
        adding.get_all.side_effect = lambda: registry.add_provider(late) and {"A": "1"}
        registry.add_provider(adding)

        assert registry.get_all_from_providers() == {"A": "1"}
        assert late.get_all_calls == 0
        assert registry.get_provider(DictProvider) is late

    def test_slow_provider_does_not_block_registration(self):
        """Test that registration proceeds while a provider is blocked."""
        registry = Registry()
        entered = threading.Event()
        release = threading.Event()

        class BlockingProvider:
            def get(self, key):
                entered.set()
                release.wait(5)
                return "slow"

            def get_all(self):
                return {}

        registry.add_provider(BlockingProvider())
        results = []
        worker = threading.Thread(target=lambda: results.append(registry.get_from_providers("KEY")))
        worker.start()

        try:
            assert entered.wait(5)
            registry.add_provider(DictProvider({}))
            assert len(registry) == 2
        finally:
            release.set()
            worker.join(5)

        assert results == ["slow"]

    def test_concurrent_registration(self):
        """Test that concurrent adds are all kept."""
        registry = Registry()

        def add_many():
            for _ in range(100):
                registry.add_provider(DictProvider({}))

        threads = [threading.Thread(target=add_many) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 800


class TestDefaultRegistry:
    """Test the process-wide registry."""

    def test_default_registry_is_shared(self):
        """Test that the same instance is returned every time."""
        assert default_registry() is default_registry()
        assert isinstance(default_registry(), Registry)


class TestLockedReads:
    """Test that size and emptiness checks wait for in-progress mutations."""

    @pytest.mark.parametrize("read", [lambda r: r.has_providers, len])
    def test_read_waits_for_lock(self, read):
        """Test that the read blocks while the registry lock is held."""
        registry = Registry()
        registry.add_provider(DictProvider({}))
        results = []

        registry._lock.acquire()
        try:
            worker = threading.Thread(target=lambda: results.append(read(registry)))
            worker.start()
            worker.join(0.2)
            assert worker.is_alive()
            assert results == []
        finally:
            registry._lock.release()

        worker.join(5)
        assert results and results[0]
