"""
Renderer Gateway

Handles rendering of token sequences into artifact files and the lifecycle
of the external LED matrix renderer process.

Handles:
- Delegating raster encoding to the PPM encoder
- Replacing the running renderer (the old one is stopped first)
- Draining renderer stdout/stderr into the log on background threads
"""

import os
import shlex
import subprocess
import threading
from typing import Any, List, Optional, Sequence

from twitterboard.board_config import RendererSettings
from twitterboard.exceptions import RenderError
from twitterboard.logging_config import get_logger
from twitterboard.models import RGB, Token
from twitterboard.ppm_factory import PPMFactory

logger = get_logger(__name__)


class SubprocessSupervisor:
    """Spawns renderer processes with their output streams piped back."""

    def spawn(self, command: str, args: List[str]) -> subprocess.Popen:
        return subprocess.Popen(
            [command] + list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding='utf-8',
            errors='replace',
            bufsize=1,
        )


class RendererGateway:
    """
    Owns the single live renderer process.

    Only the scheduler loop thread calls render(), display() and stop();
    drain threads only read from the process streams.
    """

    def __init__(
        self,
        settings: Optional[RendererSettings] = None,
        encoder: Optional[Any] = None,
        supervisor: Optional[Any] = None
    ):
        """
        Initialize the gateway.

        Args:
            settings: Renderer settings (command template, artifact directory)
            encoder: Raster encoder with encode(file, tokens, background) -> width
            supervisor: Process supervisor with spawn(command, args) -> handle
        """
        self.settings = settings or RendererSettings()
        self.encoder = encoder or PPMFactory(
            rows=self.settings.rows,
            font_path=self.settings.font_path,
            font_size=self.settings.font_size
        )
        self.supervisor = supervisor or SubprocessSupervisor()
        self._process = None
        self._process_lock = threading.Lock()
        self._drain_threads: List[threading.Thread] = []

    @property
    def current_process(self):
        return self._process

    def artifact_path(self, file_name: str) -> str:
        return os.path.join(self.settings.work_dir, file_name)

    def render(self, tokens: Sequence[Token], background: RGB, target_file: str) -> int:
        """
        Encode tokens into target_file.

        Returns:
            Pixel width reported by the encoder

        Raises:
            RenderError: If the encoder fails
        """
        try:
            return int(self.encoder.encode(target_file, tokens, background))
        except (IOError, OSError, ValueError) as e:
            raise RenderError(f"Failed to encode artifact: {e}", file_name=target_file) from e

    def display(self, target_file: str, scroll_speed: int):
        """
        Replace the running renderer with one showing target_file.

        Args:
            target_file: Artifact the renderer should scroll
            scroll_speed: Milliseconds per scrolled pixel

        Returns:
            Handle of the newly spawned renderer process

        Raises:
            RenderError: If the renderer cannot be started
        """
        self.stop()

        # Split before substituting so a path with spaces stays one argument
        parts = [
            part.format(scroll_speed=scroll_speed, file=target_file)
            for part in shlex.split(self.settings.command)
        ]
        logger.debug("Starting renderer: %s", ' '.join(parts))
        with self._process_lock:
            try:
                process = self.supervisor.spawn(parts[0], parts[1:])
            except (IOError, OSError, ValueError) as e:
                raise RenderError(f"Failed to start renderer: {e}", file_name=target_file) from e
            self._process = process

        self._drain_threads = [
            self._start_drain(getattr(process, 'stdout', None), "output"),
            self._start_drain(getattr(process, 'stderr', None), "error"),
        ]
        return process

    def stop(self) -> None:
        """Terminate the live renderer process, if any."""
        with self._process_lock:
            process, self._process = self._process, None
        if process is None:
            return

        returncode = process.poll()
        if returncode is not None:
            if returncode != 0:
                logger.warning("Renderer exited with status %s", returncode)
            return

        try:
            process.terminate()
            process.wait(timeout=self.settings.terminate_timeout)
        except subprocess.TimeoutExpired:
            logger.warning("Renderer did not stop within %.1fs, killing it", self.settings.terminate_timeout)
            process.kill()
        except OSError as e:
            logger.warning("Failed to terminate renderer: %s", e)

    def _start_drain(self, stream, label: str) -> Optional[threading.Thread]:
        if stream is None:
            return None
        thread = threading.Thread(
            target=self._drain,
            args=(stream, label),
            name=f"RendererDrain-{label}",
            daemon=True
        )
        thread.start()
        return thread

    def _drain(self, stream, label: str) -> None:
        # Errors leave the pipe open; the renderer keeps writing to it
        try:
            for line in iter(stream.readline, ''):
                logger.info("Matrix %s: %s", label, line.rstrip())
        except (OSError, ValueError) as e:
            logger.warning("Failed to monitor process: %s", e)
            return
        stream.close()
