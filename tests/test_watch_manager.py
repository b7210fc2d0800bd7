import pytest
import logging
import time
from logtree.config import Settings
from logtree.models import WatcherState
from logtree.watch_manager import WatchManager


@pytest.fixture
def settings(tmp_path):
    return Settings(log_dir=str(tmp_path), poll_interval=0.05)


@pytest.fixture
def watch_manager(settings):
    manager = WatchManager(settings)
    yield manager
    manager.stop()


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return predicate()


class TestWatchManager:
    def test_start_and_stop(self, watch_manager):
        assert watch_manager.start() is True
        assert watch_manager.running
        assert watch_manager.watcher.state is WatcherState.WATCHING

        watch_manager.stop()
        assert not watch_manager.running
        assert watch_manager.watcher.state is WatcherState.CLOSED

    def test_start_is_idempotent(self, watch_manager):
        assert watch_manager.start() is True
        watcher = watch_manager.watcher
        assert watch_manager.start() is True
        assert watch_manager.watcher is watcher

    def test_logs_each_event(self, watch_manager, tmp_path, caplog):
        caplog.set_level(logging.INFO, logger="logtree.watch_manager")
        watch_manager.start()

        new_file = tmp_path / "app.log"
        new_file.write_text("started")

        expected = f"created: {new_file}"
        assert wait_for(lambda: any(r.getMessage() == expected for r in caplog.records))

    def test_setup_failure_is_logged_not_raised(self, tmp_path, caplog):
        manager = WatchManager(Settings(log_dir=str(tmp_path / "missing")))
        with caplog.at_level(logging.ERROR):
            assert manager.start() is False
        assert not manager.running
        assert manager.watcher.state is WatcherState.CLOSED
        assert any("start_watcher" in r.getMessage() for r in caplog.records)
        manager.stop()

    def test_stop_without_start(self, settings):
        manager = WatchManager(settings)
        manager.stop()
        assert not manager.running
