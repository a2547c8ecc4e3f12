import queue
import sys

import pytest


linux_only = pytest.mark.skipif(
    not sys.platform.startswith('linux'),
    reason='Requires inotify and POSIX process groups.')


@pytest.fixture
def channel():
    return queue.SimpleQueue()


def drain(channel):
    records = []
    while True:
        try:
            records.append(channel.get_nowait())
        except queue.Empty:
            return records
