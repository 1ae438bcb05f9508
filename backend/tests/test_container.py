import threading

import pytest

from contest_tracker.config import Settings
from contest_tracker.container import Container, Once, StartupError


def test_once_builds_a_single_value_under_concurrency():
    once = Once()
    workers = 8
    barrier = threading.Barrier(workers)
    calls = []
    results = []

    def factory():
        calls.append(1)
        return object()

    def worker():
        barrier.wait()
        results.append(once.get(factory))

    threads = [threading.Thread(target=worker) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(calls) == 1
    assert len(results) == workers
    assert all(r is results[0] for r in results)


def test_once_retries_after_failed_build():
    once = Once()

    def broken():
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError):
        once.get(broken)
    assert once.get(lambda: 42) == 42
    assert once.get(lambda: 43) == 42


def test_container_hands_out_shared_instances(container):
    assert container.sql_handler() is container.sql_handler()
    assert container.jwt_generator() is container.jwt_generator()
    assert container.repositories() is container.repositories()
    its = container.interactors()
    assert its is container.interactors()
    assert its.contest_log.ranking_interactor is its.ranking
    assert container.app() is container.app()


def test_container_rejects_invalid_reporter_dsn(monkeypatch):
    monkeypatch.setenv("ERROR_REPORTER_DSN", "ftp://reports.example.com")
    with pytest.raises(StartupError):
        Container(Settings()).init()


def test_container_rejects_unreachable_database(monkeypatch, tmp_path):
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'missing' / 'dir' / 'app.db'}")
    with pytest.raises(StartupError):
        Container(Settings()).init()


def test_container_database_failure_surfaces_on_every_access(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "notadialect://nowhere")
    container = Container(Settings())
    with pytest.raises(StartupError):
        container.sql_handler()
    with pytest.raises(StartupError):
        container.repositories()
