"""Tests for the process-wide service provider."""

import threading
import time

from marketplace import providers
from marketplace.repository import InMemoryDocumentStore, JsonFileDocumentStore
from marketplace.settings import get_settings


def test_service_is_built_once_under_concurrent_first_calls(monkeypatch):
    real_build = providers.build_service
    builds = []

    def slow_build(settings):
        builds.append(settings)
        time.sleep(0.2)
        return real_build(settings)

    monkeypatch.setattr(providers, "build_service", slow_build)

    barrier = threading.Barrier(4)
    results = []

    def call():
        barrier.wait()
        results.append(providers.get_marketplace_service())

    threads = [threading.Thread(target=call) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(builds) == 1
    assert len({id(s) for s in results}) == 1
    assert len({id(s.store._lock) for s in results}) == 1


def test_reset_rebuilds_from_settings(monkeypatch, tmp_path):
    first = providers.get_marketplace_service()
    assert isinstance(first.store, InMemoryDocumentStore)
    assert providers.get_marketplace_service() is first

    monkeypatch.setenv("MARKETPLACE_STORE", "json")
    monkeypatch.setenv("MARKETPLACE_DATA_PATH", str(tmp_path / "data.json"))
    providers.reset_marketplace_service()
    second = providers.get_marketplace_service()
    assert second is not first
    assert isinstance(second.store, JsonFileDocumentStore)
    assert second.store.path == tmp_path / "data.json"
    assert second.hasher.rounds == get_settings().bcrypt_rounds
