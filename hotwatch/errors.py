class HotwatchError(Exception):
    pass


class FatalSetupError(HotwatchError):
    """The process cannot continue and must exit with a non-zero code."""


class WatchSetupError(FatalSetupError):
    pass


class TransientWatchError(HotwatchError):
    """A single directory could not be watched or listed."""
    def __init__(self, directory: str, reason: Exception) -> None:
        super().__init__('%s: %s' % (directory, reason))
        self.directory = directory
        self.reason = reason


class SpawnError(HotwatchError):
    pass


class ReapError(HotwatchError):
    pass
