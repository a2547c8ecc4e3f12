from typing import Sequence


def is_excluded(path: str, exclude_prefixes: Sequence[str]) -> bool:
    """Check whether ``path`` falls under one of the excluded prefixes.

    This is a plain string prefix test and is not aware of path
    segments: excluding ``/repo/build`` also excludes ``/repo/buildx``.
    Add a trailing separator to a prefix to exclude only what is
    beneath that directory.
    """
    for prefix in exclude_prefixes:
        if path.startswith(prefix):
            return True
    return False
