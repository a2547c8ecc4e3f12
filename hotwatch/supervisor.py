"""Lifecycle of the single child process group running the user command.

Every transition of "which child is alive" happens under one lock: a
restart kills and reaps the old group before spawning the new one, and a
graceful stop waits for any restart in progress and then stops whatever
it spawned.  Once stopped, the supervisor never spawns again.
"""
import logging
import signal
import subprocess
import threading

from hotwatch.errors import ReapError, SpawnError
from hotwatch.utils import OSUtils

from typing import Optional


LOGGER = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD = 10.0


class ChildHandle:
    def __init__(self, process: subprocess.Popen) -> None:
        self.process = process

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def pgid(self) -> int:
        # The shell is started as a session leader, so its pid is also
        # the id of its process group.
        return self.process.pid

    @property
    def is_live(self) -> bool:
        return self.pid > 0 and self.process.poll() is None

    def __repr__(self) -> str:
        return 'ChildHandle(pgid=%s, live=%s)' % (self.pgid, self.is_live)


class ProcessSupervisor:
    def __init__(self, command: str, osutils: Optional[OSUtils] = None,
                 grace_period: float = DEFAULT_GRACE_PERIOD) -> None:
        self._command = command
        if osutils is None:
            osutils = OSUtils()
        self._osutils = osutils
        self._grace_period = grace_period
        self._lock = threading.RLock()
        self._child: Optional[ChildHandle] = None
        self._stopped = False

    @property
    def child(self) -> Optional[ChildHandle]:
        with self._lock:
            return self._child

    @property
    def stopped(self) -> bool:
        with self._lock:
            return self._stopped

    def start(self) -> ChildHandle:
        with self._lock:
            if self._stopped:
                raise SpawnError('Supervisor has been stopped.')
            if self._child is not None:
                self._hard_stop(self._child)
                self._child = None
            self._child = self._spawn()
            return self._child

    def restart(self) -> Optional[ChildHandle]:
        with self._lock:
            if self._stopped:
                LOGGER.debug("Supervisor stopped, not restarting.")
                return None
            LOGGER.info("Reloading ...")
            if self._child is not None:
                self._hard_stop(self._child)
                self._child = None
            try:
                self._child = self._spawn()
            except SpawnError as e:
                LOGGER.error("%s Waiting for the next change to retry.", e)
                return None
            return self._child

    def graceful_stop(self) -> None:
        with self._lock:
            self._stopped = True
            child, self._child = self._child, None
            if child is None:
                return
            LOGGER.debug("Interrupting process group %s", child.pgid)
            self._signal_group(child, signal.SIGINT)
            try:
                self._reap(child, timeout=self._grace_period)
            except subprocess.TimeoutExpired:
                LOGGER.warning("Command did not exit %s seconds after "
                               "SIGINT, killing it.", self._grace_period)
                self._hard_stop(child)
            else:
                # Background jobs of a non-interactive shell ignore
                # SIGINT, so whatever is left in the group once the shell
                # has exited is killed.
                self._signal_group(child, signal.SIGKILL)

    def _spawn(self) -> ChildHandle:
        try:
            process = self._osutils.spawn_process_group(self._command)
        except OSError as e:
            raise SpawnError('Failed to start %r: %s' % (self._command, e))
        child = ChildHandle(process)
        LOGGER.debug("Started %r as process group %s",
                     self._command, child.pgid)
        return child

    def _hard_stop(self, child: ChildHandle) -> None:
        if child.pid <= 0:
            return
        returncode = child.process.poll()
        if returncode is not None:
            LOGGER.info("Command exited with status %s.", returncode)
        # The shell may be gone while its descendants are still running,
        # so the group is killed either way.
        self._signal_group(child, signal.SIGKILL)
        self._reap(child)

    def _signal_group(self, child: ChildHandle, sig: signal.Signals) -> None:
        try:
            self._osutils.killpg(child.pgid, sig)
        except ProcessLookupError:
            LOGGER.debug("Process group %s already exited.", child.pgid)
        except OSError as e:
            LOGGER.error("Failed to send %s to process group %s: %s",
                         sig.name, child.pgid, e)

    def _reap(self, child: ChildHandle,
              timeout: Optional[float] = None) -> None:
        try:
            self._osutils.wait_for_exit(child.process, timeout)
        except ReapError as e:
            LOGGER.error("%s", e)
