"""Restart a command whenever the watched tree changes.

How It Works
============

There are three moving parts, all in one process:

* The main thread blocks on a single channel (a ``queue.SimpleQueue``).
  The watcher's inotify reader thread posts decoded change records to it,
  and the shutdown token posts a wakeup sentinel to it.  Each record is run
  through the ``EventClassifier``, which marks the shared ``ChangeSignal``
  when the change is not excluded.
* A debounce thread waits on the ``ChangeSignal`` and, once changes have
  been quiet for the quiet period, asks the ``ProcessSupervisor`` to
  restart the command.
* The ``ProcessSupervisor`` runs the command through the shell in its own
  process group.  A restart SIGKILLs and reaps the whole group before
  spawning the next one.

SIGINT and SIGTERM handlers only set the shutdown token.  The main thread
sees the sentinel, leaves its loop and does the teardown: close the change
signal so no further restart fires, SIGINT the current child group and
reap it, join the debounce thread and close the inotify instance.

"""
import logging
import queue
import signal

from hotwatch.config import Config
from hotwatch.debounce import ChangeSignal, DebounceScheduler
from hotwatch.errors import SpawnError, WatchSetupError
from hotwatch.supervisor import ProcessSupervisor
from hotwatch.watcher.classifier import EventClassifier
from hotwatch.watcher.eventbased import WatchdogFileWatcher
from hotwatch.watcher.shared import Watcher

from typing import Dict, Optional


LOGGER = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)

# Posted to the channel to wake the main loop for shutdown.
SHUTDOWN_WAKEUP = object()


class ShutdownToken:
    """Process wide stop request, set at most once.

    ``request`` only flips a flag and posts to the channel, which is safe
    from a signal handler because ``SimpleQueue.put`` is reentrant.
    """
    def __init__(self, channel: queue.SimpleQueue) -> None:
        self._channel = channel
        self._requested = False

    @property
    def requested(self) -> bool:
        return self._requested

    def request(self, signum: Optional[int] = None,
                frame: object = None) -> None:
        if self._requested:
            return
        self._requested = True
        self._channel.put(SHUTDOWN_WAKEUP)


class Reloader:
    def __init__(self, config: Config,
                 watcher: Optional[Watcher] = None,
                 supervisor: Optional[ProcessSupervisor] = None,
                 channel: Optional[queue.SimpleQueue] = None) -> None:
        self._config = config
        if channel is None:
            channel = queue.SimpleQueue()
        self._channel = channel
        if watcher is None:
            watcher = WatchdogFileWatcher(channel)
        self._watcher = watcher
        if supervisor is None:
            supervisor = ProcessSupervisor(
                config.command, grace_period=config.grace_period)
        self._supervisor = supervisor
        self._change_signal = ChangeSignal()
        self._scheduler = DebounceScheduler(
            self._change_signal, self._supervisor.restart,
            quiet_period=config.quiet_period)
        self.shutdown_token = ShutdownToken(channel)

    def main(self, install_signal_handlers: bool = True) -> int:
        previous_handlers: Dict[int, object] = {}
        if install_signal_handlers:
            for signum in SHUTDOWN_SIGNALS:
                previous_handlers[signum] = signal.signal(
                    signum, self.shutdown_token.request)
        try:
            return self._run()
        finally:
            for signum, handler in previous_handlers.items():
                # None means the handler was not installed from Python.
                if handler is not None:
                    signal.signal(signum, handler)

    def _run(self) -> int:
        config = self._config
        try:
            watch_map = self._watcher.start_watching(
                config.watch_root, config.exclude_prefixes)
        except WatchSetupError as e:
            LOGGER.error("Failed to initialize file watching: %s", e)
            return 1
        try:
            child = self._supervisor.start()
        except SpawnError as e:
            LOGGER.error("%s", e)
            self._watcher.stop_watching()
            return 1
        LOGGER.info("Watching %s, running %r (process group %s)",
                    config.watch_root, config.command, child.pgid)
        classifier = EventClassifier(
            watch_map, config.exclude_prefixes, self._change_signal)
        self._scheduler.start()
        try:
            self._watch_loop(classifier)
        finally:
            self._shutdown()
        return 0

    def _watch_loop(self, classifier: EventClassifier) -> None:
        while not self.shutdown_token.requested:
            record = self._channel.get()
            if record is SHUTDOWN_WAKEUP:
                break
            classifier.classify(record)

    def _shutdown(self) -> None:
        LOGGER.info("Shutting down.")
        # Closing the signal first means no restart can fire after the
        # child is stopped.  A restart already running finishes under the
        # supervisor lock before graceful_stop stops what it spawned.
        self._change_signal.close()
        self._supervisor.graceful_stop()
        self._scheduler.stop()
        self._watcher.stop_watching()
