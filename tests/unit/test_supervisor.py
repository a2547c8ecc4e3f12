import logging
import signal
import subprocess

import mock
import pytest

from hotwatch.errors import ReapError, SpawnError
from hotwatch.supervisor import ChildHandle, ProcessSupervisor
from hotwatch.utils import OSUtils


def fake_process(pid, returncode=None):
    process = mock.Mock(spec=subprocess.Popen)
    process.pid = pid
    process.poll.return_value = returncode
    return process


@pytest.fixture
def osutils():
    osutils = mock.Mock(spec=OSUtils)
    osutils.spawn_process_group.side_effect = [
        fake_process(100), fake_process(200), fake_process(300)]
    return osutils


@pytest.fixture
def supervisor(osutils):
    return ProcessSupervisor('make run', osutils=osutils, grace_period=2.5)


def method_calls(osutils):
    return [c[0] for c in osutils.mock_calls]


class TestChildHandle:
    def test_pgid_is_shell_pid(self):
        child = ChildHandle(fake_process(42))
        assert child.pid == 42
        assert child.pgid == 42

    def test_liveness_follows_process(self):
        process = fake_process(42)
        child = ChildHandle(process)
        assert child.is_live
        process.poll.return_value = 0
        assert not child.is_live

    def test_non_positive_pid_is_not_live(self):
        assert not ChildHandle(fake_process(0)).is_live


class TestStart:
    def test_spawns_command_in_process_group(self, supervisor, osutils):
        child = supervisor.start()
        osutils.spawn_process_group.assert_called_once_with('make run')
        assert child.pgid == 100
        assert supervisor.child is child

    def test_spawn_failure_raises(self, supervisor, osutils):
        osutils.spawn_process_group.side_effect = OSError('no shell')
        with pytest.raises(SpawnError):
            supervisor.start()


class TestRestart:
    def test_kills_and_reaps_old_group_before_spawning(self, supervisor,
                                                       osutils):
        old = supervisor.start()
        new = supervisor.restart()
        assert osutils.mock_calls == [
            mock.call.spawn_process_group('make run'),
            mock.call.killpg(100, signal.SIGKILL),
            mock.call.wait_for_exit(old.process, None),
            mock.call.spawn_process_group('make run'),
        ]
        assert new.pgid == 200
        assert supervisor.child is new

    def test_logs_reload(self, supervisor, caplog):
        supervisor.start()
        with caplog.at_level(logging.INFO, logger='hotwatch.supervisor'):
            supervisor.restart()
        assert 'Reloading ...' in caplog.messages

    def test_without_child_goes_straight_to_spawn(self, supervisor, osutils):
        child = supervisor.restart()
        assert method_calls(osutils) == ['spawn_process_group']
        assert child.pgid == 100

    def test_old_group_already_gone(self, supervisor, osutils):
        supervisor.start()
        osutils.killpg.side_effect = ProcessLookupError()
        new = supervisor.restart()
        assert method_calls(osutils) == [
            'spawn_process_group', 'killpg', 'wait_for_exit',
            'spawn_process_group']
        assert new.pgid == 200

    def test_exited_child_is_still_reaped(self, supervisor, osutils):
        old = supervisor.start()
        old.process.poll.return_value = 3
        supervisor.restart()
        osutils.wait_for_exit.assert_called_once_with(old.process, None)

    def test_reap_failure_does_not_block_restart(self, supervisor, osutils):
        supervisor.start()
        osutils.wait_for_exit.side_effect = ReapError('boom')
        new = supervisor.restart()
        assert new.pgid == 200

    def test_spawn_failure_leaves_no_child(self, supervisor, osutils):
        supervisor.start()
        osutils.spawn_process_group.side_effect = OSError('fork failed')
        assert supervisor.restart() is None
        assert supervisor.child is None

    def test_retry_after_failed_spawn_skips_kill(self, supervisor, osutils):
        osutils.spawn_process_group.side_effect = [
            OSError('fork failed'), fake_process(200)]
        assert supervisor.restart() is None
        osutils.reset_mock()
        child = supervisor.restart()
        assert method_calls(osutils) == ['spawn_process_group']
        assert child.pgid == 200

    def test_no_restart_after_graceful_stop(self, supervisor, osutils):
        supervisor.start()
        supervisor.graceful_stop()
        osutils.reset_mock()
        assert supervisor.restart() is None
        assert osutils.mock_calls == []
        with pytest.raises(SpawnError):
            supervisor.start()

    def test_no_reload_logged_after_graceful_stop(self, supervisor, caplog):
        supervisor.start()
        supervisor.graceful_stop()
        with caplog.at_level(logging.INFO, logger='hotwatch.supervisor'):
            supervisor.restart()
        assert 'Reloading ...' not in caplog.messages


class TestGracefulStop:
    def test_interrupts_and_reaps_group(self, supervisor, osutils):
        child = supervisor.start()
        supervisor.graceful_stop()
        assert osutils.mock_calls[1:] == [
            mock.call.killpg(100, signal.SIGINT),
            mock.call.wait_for_exit(child.process, 2.5),
            mock.call.killpg(100, signal.SIGKILL),
        ]
        assert supervisor.child is None
        assert supervisor.stopped

    def test_kills_group_after_grace_period(self, supervisor, osutils):
        child = supervisor.start()
        osutils.wait_for_exit.side_effect = [
            subprocess.TimeoutExpired('make run', 2.5), 0]
        supervisor.graceful_stop()
        assert osutils.mock_calls[1:] == [
            mock.call.killpg(100, signal.SIGINT),
            mock.call.wait_for_exit(child.process, 2.5),
            mock.call.killpg(100, signal.SIGKILL),
            mock.call.wait_for_exit(child.process, None),
        ]

    def test_without_child_only_marks_stopped(self, supervisor, osutils):
        supervisor.graceful_stop()
        assert osutils.mock_calls == []
        assert supervisor.stopped

    def test_reap_failure_is_not_fatal(self, supervisor, osutils):
        supervisor.start()
        osutils.wait_for_exit.side_effect = ReapError('boom')
        supervisor.graceful_stop()
        assert supervisor.child is None

    def test_signal_failure_still_reaps(self, supervisor, osutils):
        child = supervisor.start()
        osutils.killpg.side_effect = PermissionError(1, 'not permitted')
        supervisor.graceful_stop()
        osutils.wait_for_exit.assert_called_once_with(child.process, 2.5)
