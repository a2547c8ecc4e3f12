"""Watchdog backed implementation of the ``Watcher`` interface."""
import errno
import itertools
import logging
import os
import queue
import threading

from watchdog.observers.inotify_c import Inotify
from watchdog.observers.inotify_c import InotifyConstants
from watchdog.observers.inotify_c import InotifyEvent

from hotwatch.errors import TransientWatchError, WatchSetupError
from hotwatch.utils import OSUtils
from hotwatch.watcher.filters import is_excluded
from hotwatch.watcher.shared import RawChange, Watcher, WatchMap

from typing import Callable, Dict, Optional, Sequence


LOGGER = logging.getLogger(__name__)

WATCH_MASK = (
    InotifyConstants.IN_CREATE
    | InotifyConstants.IN_MODIFY
    | InotifyConstants.IN_DELETE
    | InotifyConstants.IN_MOVED_FROM
    | InotifyConstants.IN_MOVED_TO
)


class WatchDogEventAdapter:
    """Decodes watchdog's inotify events into raw change records.

    ``handles`` maps each watched directory to its watch handle.  Events
    are matched to a watch through the directory part of their path.
    """
    def __init__(self, handles: Dict[str, int],
                 channel: queue.SimpleQueue) -> None:
        self._handles = handles
        self._channel = channel

    def dispatch(self, event: InotifyEvent) -> None:
        # IN_IGNORED and friends are delivered whatever the mask says.
        if not event.mask & WATCH_MASK:
            return
        # Events about the watched directory itself have no entry name.
        if not event.name:
            return
        directory = os.fsdecode(os.path.dirname(event.src_path))
        handle = self._handles.get(directory)
        if handle is None:
            LOGGER.debug("Dropping event for unwatched directory %s",
                         directory)
            return
        self._channel.put(RawChange(handle, os.fsdecode(event.name)))


class WatchdogFileWatcher(Watcher):
    """Watches every included directory of a tree on one inotify instance.

    A single reader thread drains the instance and posts ``RawChange``
    records to the channel, so the cost does not grow with the number
    of directories beyond one inotify watch each.
    """
    def __init__(self, channel: queue.SimpleQueue,
                 inotify_factory: Callable = Inotify,
                 osutils: Optional[OSUtils] = None) -> None:
        self._channel = channel
        self._inotify_factory = inotify_factory
        if osutils is None:
            osutils = OSUtils()
        self._osutils = osutils
        self._inotify = None
        self._reader: Optional[threading.Thread] = None
        self._stopping = threading.Event()
        self._handles = itertools.count(1)

    def start_watching(self, root: str,
                       exclude_prefixes: Sequence[str]) -> WatchMap:
        watch_map: WatchMap = {}
        if is_excluded(root, exclude_prefixes):
            LOGGER.warning("Nothing to watch under %s, every directory "
                           "is excluded.", root)
            return watch_map
        try:
            self._inotify = self._inotify_factory(
                os.fsencode(root), event_mask=WATCH_MASK)
        except OSError as e:
            raise WatchSetupError(
                'Failed to initialize inotify for %s: %s' % (root, e))
        try:
            self._walk(root, exclude_prefixes, watch_map)
        except WatchSetupError:
            self.stop_watching()
            raise
        LOGGER.debug("Watching %s directories under %s",
                     len(watch_map), root)
        adapter = WatchDogEventAdapter(
            {directory: handle for handle, directory in watch_map.items()},
            self._channel)
        self._reader = threading.Thread(
            target=self._read_events, args=(self._inotify, adapter),
            name='hotwatch-inotify')
        self._reader.daemon = True
        self._reader.start()
        return watch_map

    def stop_watching(self) -> None:
        if self._inotify is None:
            return
        inotify, self._inotify = self._inotify, None
        self._stopping.set()
        inotify.close()
        if self._reader is not None:
            self._reader.join()
            self._reader = None

    def _walk(self, root: str, exclude_prefixes: Sequence[str],
              watch_map: WatchMap) -> None:
        # Depth first, with an explicit stack so that deep trees cannot
        # hit the recursion limit.
        stack = [root]
        while stack:
            directory = stack.pop()
            if is_excluded(directory, exclude_prefixes):
                LOGGER.debug("Skipping excluded directory %s", directory)
                continue
            try:
                self._add_watch(directory, watch_map)
            except TransientWatchError as e:
                if directory == root:
                    raise WatchSetupError(str(e))
                LOGGER.warning("Failed to add watch for %s", e)
                continue
            try:
                names = self._osutils.list_subdirectories(directory)
            except OSError as e:
                LOGGER.warning("Failed to open directory %s: %s",
                               directory, e)
                continue
            stack.extend(directory + '/' + name for name in reversed(names))

    def _add_watch(self, directory: str, watch_map: WatchMap) -> None:
        # inotify refuses unreadable directories, but watchdog does not
        # report EACCES from inotify_add_watch.
        if not self._osutils.is_readable(directory):
            raise TransientWatchError(
                directory, os.strerror(errno.EACCES))
        try:
            self._inotify.add_watch(os.fsencode(directory))
        except OSError as e:
            if e.errno == errno.ENOSPC:
                # Every later directory would fail the same way.
                raise WatchSetupError(
                    'Failed to add watch for %s: %s (see '
                    '/proc/sys/fs/inotify/max_user_watches)'
                    % (directory, e))
            raise TransientWatchError(directory, e)
        watch_map[next(self._handles)] = directory

    def _read_events(self, inotify: Inotify,
                     adapter: WatchDogEventAdapter) -> None:
        while not self._stopping.is_set():
            try:
                events = inotify.read_events()
            except OSError as e:
                if not self._stopping.is_set():
                    LOGGER.error("Failed to read inotify events, changes "
                                 "are no longer detected: %s", e)
                return
            for event in events:
                adapter.dispatch(event)
