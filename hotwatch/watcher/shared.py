from collections import namedtuple

from typing import Dict, Sequence


# One decoded notification: the opaque handle of the watch that saw the
# change and the name of the affected entry inside that directory.
RawChange = namedtuple('RawChange', ['handle', 'name'])

WatchMap = Dict[int, str]


class Watcher:
    def start_watching(self, root: str,
                       exclude_prefixes: Sequence[str]) -> WatchMap:
        raise NotImplementedError('start_watching')

    def stop_watching(self) -> None:
        raise NotImplementedError('stop_watching')
