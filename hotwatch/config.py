import os

from hotwatch.debounce import QUIET_PERIOD
from hotwatch.supervisor import DEFAULT_GRACE_PERIOD

from typing import Sequence, Tuple


class Config:
    """Settings for one reloader run.

    Values come from the command line (or the matching ``HOTWATCH_*``
    environment variables) and do not change afterwards.
    """
    def __init__(self, watch_root: str, command: str,
                 exclude_prefixes: Sequence[str] = (),
                 quiet_period: float = QUIET_PERIOD,
                 grace_period: float = DEFAULT_GRACE_PERIOD) -> None:
        self._watch_root = watch_root
        self._command = command
        self._exclude_prefixes = tuple(exclude_prefixes)
        self._quiet_period = quiet_period
        self._grace_period = grace_period

    @classmethod
    def create(cls, watch_root: str, command: str,
               exclude_prefixes: Sequence[str] = (),
               quiet_period: float = QUIET_PERIOD,
               grace_period: float = DEFAULT_GRACE_PERIOD) -> 'Config':
        """Build a config with absolute paths.

        Watched paths are reported in absolute form, so relative
        exclude prefixes are resolved against the working directory
        before any matching happens.
        """
        return cls(
            watch_root=os.path.abspath(watch_root),
            command=command,
            exclude_prefixes=[_absolute_prefix(p) for p in exclude_prefixes],
            quiet_period=quiet_period,
            grace_period=grace_period,
        )

    @property
    def watch_root(self) -> str:
        return self._watch_root

    @property
    def command(self) -> str:
        return self._command

    @property
    def exclude_prefixes(self) -> Tuple[str, ...]:
        return self._exclude_prefixes

    @property
    def quiet_period(self) -> float:
        return self._quiet_period

    @property
    def grace_period(self) -> float:
        return self._grace_period

    def __repr__(self) -> str:
        return ('Config(watch_root=%r, command=%r, exclude_prefixes=%r, '
                'quiet_period=%r, grace_period=%r)' % (
                    self._watch_root, self._command, self._exclude_prefixes,
                    self._quiet_period, self._grace_period))


def _absolute_prefix(prefix: str) -> str:
    # abspath drops a trailing separator, which would widen the match
    # from "everything below dir/" to "anything starting with dir".
    absolute = os.path.abspath(prefix)
    if prefix.endswith(os.sep) and not absolute.endswith(os.sep):
        absolute += os.sep
    return absolute
