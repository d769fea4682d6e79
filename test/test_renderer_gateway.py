"""
Tests for the renderer gateway.
"""

import logging
import subprocess
import sys
import time
import pytest
from dataclasses import replace
from unittest.mock import MagicMock

from twitterboard.exceptions import RenderError
from twitterboard.models import Token
from twitterboard.renderer_gateway import RendererGateway, SubprocessSupervisor


def wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class TestRender:
    """Test artifact rendering."""

    def test_render_returns_encoder_width(self, gateway, mock_encoder):
        tokens = [Token("hello", (255, 255, 255)), Token("#world", (0, 0, 255))]
        width = gateway.render(tokens, (0, 0, 0), "text.ppm")
        assert width == 20
        mock_encoder.encode.assert_called_once_with("text.ppm", tokens, (0, 0, 0))

    def test_render_is_deterministic(self, gateway):
        tokens = [Token("same", (1, 2, 3))]
        assert gateway.render(tokens, (0, 0, 0), "a.ppm") == gateway.render(tokens, (0, 0, 0), "a.ppm")

    def test_encoder_io_error_becomes_render_error(self, gateway, mock_encoder):
        mock_encoder.encode.side_effect = OSError("disk full")
        with pytest.raises(RenderError) as exc_info:
            gateway.render([], (0, 0, 0), "text.ppm")
        assert exc_info.value.file_name == "text.ppm"

    def test_artifact_path_uses_work_dir(self, gateway, tmp_path):
        assert gateway.artifact_path("text.ppm") == str(tmp_path / "text.ppm")


class TestDisplay:
    """Test renderer process replacement."""

    def test_spawn_uses_command_template(self, gateway, mock_supervisor):
        gateway.display("/tmp/text.ppm", 25)
        mock_supervisor.spawn.assert_called_once_with(
            "led-matrix", ["-r", "16", "-m", "25", "/tmp/text.ppm"]
        )

    def test_path_with_spaces_stays_one_argument(self, renderer_settings, mock_encoder, mock_supervisor, tmp_path):
        work_dir = tmp_path / "board files"
        settings = replace(renderer_settings, work_dir=str(work_dir))
        gateway = RendererGateway(settings, encoder=mock_encoder, supervisor=mock_supervisor)

        target = gateway.artifact_path("text.ppm")
        gateway.display(target, 25)

        command, args = mock_supervisor.spawn.call_args.args
        assert command == "led-matrix"
        assert args == ["-r", "16", "-m", "25", str(work_dir / "text.ppm")]

    def test_previous_process_terminated_before_spawn(self, gateway, mock_supervisor, process_factory):
        events = []
        first = process_factory()
        first.terminate.side_effect = lambda: events.append("terminate")

        def spawn(command, args):
            events.append("spawn")
            return first if len(events) == 1 else process_factory()

        mock_supervisor.spawn.side_effect = spawn

        gateway.display("a.ppm", 10)
        gateway.display("b.ppm", 10)

        assert events == ["spawn", "terminate", "spawn"]
        assert gateway.current_process is not first

    def test_only_one_live_process(self, gateway):
        handles = [gateway.display(f"{i}.ppm", 10) for i in range(3)]
        for handle in handles[:-1]:
            handle.terminate.assert_called_once()
        handles[-1].terminate.assert_not_called()
        assert gateway.current_process is handles[-1]

    def test_exited_process_not_terminated(self, gateway, mock_supervisor, process_factory, caplog):
        caplog.set_level(logging.WARNING)
        exited = process_factory()
        exited.poll.return_value = 1
        mock_supervisor.spawn.side_effect = lambda command, args: exited

        gateway.display("a.ppm", 10)
        gateway.stop()

        exited.terminate.assert_not_called()
        assert "exited with status 1" in caplog.text

    def test_kill_when_terminate_times_out(self, gateway):
        process = gateway.display("a.ppm", 10)
        process.wait.side_effect = subprocess.TimeoutExpired("led-matrix", 0.1)
        gateway.stop()
        process.kill.assert_called_once()
        assert gateway.current_process is None

    def test_spawn_failure_becomes_render_error(self, gateway, mock_supervisor):
        mock_supervisor.spawn.side_effect = FileNotFoundError("led-matrix")
        with pytest.raises(RenderError):
            gateway.display("a.ppm", 10)
        assert gateway.current_process is None

    def test_stop_without_process_is_noop(self, gateway):
        gateway.stop()
        assert gateway.current_process is None


class TestOutputDraining:
    """Test draining of renderer output streams."""

    def test_stdout_and_stderr_are_logged(self, gateway, mock_supervisor, process_factory, caplog):
        caplog.set_level(logging.INFO, logger="twitterboard.renderer_gateway")
        mock_supervisor.spawn.side_effect = lambda command, args: process_factory(
            stdout="frame 1\nframe 2\n", stderr="bad pixel\n"
        )

        gateway.display("a.ppm", 10)

        assert wait_for(lambda: "Matrix error: bad pixel" in caplog.text)
        assert wait_for(lambda: "Matrix output: frame 2" in caplog.text)
        assert "Matrix output: frame 1" in caplog.text

    def test_drain_threads_are_daemons(self, gateway):
        gateway.display("a.ppm", 10)
        threads = [t for t in gateway._drain_threads if t is not None]
        assert len(threads) == 2
        assert all(t.daemon for t in threads)

    def test_stream_error_does_not_propagate(self, gateway, mock_supervisor, process_factory, caplog):
        caplog.set_level(logging.WARNING)
        broken = MagicMock()
        broken.readline.side_effect = OSError("pipe closed")
        process = process_factory()
        process.stdout = broken
        mock_supervisor.spawn.side_effect = lambda command, args: process

        gateway.display("a.ppm", 10)

        assert wait_for(lambda: "Failed to monitor process" in caplog.text)
        broken.close.assert_not_called()

    def test_undecodable_output_keeps_renderer_running(self, renderer_settings, mock_encoder, caplog):
        caplog.set_level(logging.INFO, logger="twitterboard.renderer_gateway")
        script = (
            "import sys, time\n"
            "sys.stdout.buffer.write(b'\\xff\\xfe\\n')\n"
            "sys.stdout.flush()\n"
            "time.sleep(0.2)\n"
            "print('after', flush=True)\n"
        )
        supervisor = MagicMock()
        supervisor.spawn.side_effect = lambda command, args: SubprocessSupervisor().spawn(
            sys.executable, ["-c", script]
        )
        gateway = RendererGateway(renderer_settings, encoder=mock_encoder, supervisor=supervisor)

        process = gateway.display("a.ppm", 10)
        try:
            assert process.wait(timeout=5.0) == 0
            assert wait_for(lambda: "Matrix output: after" in caplog.text)
            assert "Failed to monitor process" not in caplog.text
        finally:
            gateway.stop()


class TestDefaultCollaborators:
    """Test construction with the real encoder and supervisor."""

    def test_defaults(self, renderer_settings):
        gateway = RendererGateway(renderer_settings)
        assert gateway.encoder.rows == renderer_settings.rows
        assert hasattr(gateway.supervisor, "spawn")
