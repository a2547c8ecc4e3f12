import os
import signal
import subprocess

from typing import List, Optional

from hotwatch.errors import ReapError


class OSUtils:
    def list_subdirectories(self, path: str) -> List[str]:
        """Return the names of the directories directly under ``path``.

        Symlinks are not followed, so a link to a directory is not
        reported and cannot create a traversal cycle.
        """
        with os.scandir(path) as entries:
            return sorted(
                entry.name for entry in entries
                if entry.is_dir(follow_symlinks=False)
                and entry.name not in ('.', '..')
            )

    def is_readable(self, path: str) -> bool:
        return os.access(path, os.R_OK)

    def spawn_process_group(self, command: str) -> subprocess.Popen:
        # start_new_session puts the shell (and everything it forks)
        # into a fresh process group whose id is the shell's pid.
        return subprocess.Popen(command, shell=True, start_new_session=True)

    def killpg(self, pgid: int, sig: signal.Signals) -> None:
        os.killpg(pgid, sig)

    def wait_for_exit(self, process: subprocess.Popen,
                      timeout: Optional[float] = None) -> int:
        # subprocess.TimeoutExpired is left for the caller to handle.
        try:
            return process.wait(timeout=timeout)
        except OSError as e:
            raise ReapError('Failed to reap pid %s: %s' % (process.pid, e))
