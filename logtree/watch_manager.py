from .change_watcher import ChangeWatcher
from .config import Settings
from .error_handling import WatcherSetupError, handle_error
from typing import Optional
import logging
import threading

logger = logging.getLogger(__name__)


class WatchManager:
    """Owns the background watcher and the thread that logs its events"""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.watcher: Optional[ChangeWatcher] = None
        self._consumer: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._consumer is not None and self._consumer.is_alive()

    def start(self) -> bool:
        """Start watching settings.log_dir; returns False if setup failed"""
        if self.running:
            return True

        self.watcher = ChangeWatcher(
            self.settings.log_dir,
            interval=self.settings.poll_interval,
            ignore_hidden=self.settings.ignore_hidden
        )
        try:
            self.watcher.start()
        except WatcherSetupError as e:
            handle_error(logger, e, "start_watcher")
            return False

        self._consumer = threading.Thread(
            target=self._consume,
            args=(self.watcher,),
            name="logtree-watcher",
            daemon=True
        )
        self._consumer.start()
        return True

    def _consume(self, watcher: ChangeWatcher):
        for event in watcher.events():
            logger.info(f"{event.kind.value}: {event.path}")
        logger.debug("Event consumer finished")

    def stop(self):
        if self.watcher is not None:
            self.watcher.close()
        if self._consumer is not None:
            self._consumer.join()
            self._consumer = None
