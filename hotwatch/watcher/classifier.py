import logging

from hotwatch.debounce import ChangeSignal
from hotwatch.watcher.filters import is_excluded
from hotwatch.watcher.shared import RawChange, WatchMap

from typing import Sequence


LOGGER = logging.getLogger(__name__)


class EventClassifier:
    """Turns raw change records into relevant-change signals."""
    def __init__(self, watch_map: WatchMap,
                 exclude_prefixes: Sequence[str],
                 change_signal: ChangeSignal) -> None:
        self._watch_map = watch_map
        self._exclude_prefixes = exclude_prefixes
        self._change_signal = change_signal

    def classify(self, record: RawChange) -> bool:
        directory = self._watch_map.get(record.handle)
        if directory is None:
            LOGGER.debug("Ignoring change %r for unknown watch %s",
                         record.name, record.handle)
            return False
        path = directory + '/' + record.name
        if is_excluded(path, self._exclude_prefixes):
            LOGGER.debug("Ignoring change to excluded path %s", path)
            return False
        LOGGER.debug("Change detected: %s", path)
        self._change_signal.mark()
        return True
