"""
Display Scheduler

Single-consumer scheduler for the board. Producers push notifications and
configuration updates from the transport; one worker thread picks the next
message, renders it and keeps it on the matrix for its hold duration.

Each cycle:
- Show the default message when nothing is waiting
- Block until a notification arrives
- Shed stale backlog so that at most MAX_MESSAGES_IN_QUEUE wait behind it
- Render, start the renderer and hold for width * scroll_speed * repeats
"""

import logging
import queue
import threading
from typing import Any, Dict, Optional, Tuple, Union

from twitterboard.board_config import BoardConfiguration
from twitterboard.exceptions import ConfigError, QueueClosedError, RenderError, TwitterBoardError
from twitterboard.logging_config import get_logger, log_with_context
from twitterboard.models import Notification, RenderArtifact
from twitterboard.renderer_gateway import RendererGateway
from twitterboard.tokenizer import tokenize

logger = get_logger(__name__)

MAX_MESSAGES_IN_QUEUE = 3
MIN_REPEAT_COUNT = 1

# Wakes a consumer blocked on the backlog
_SHUTDOWN = object()


class DisplayScheduler:
    """
    Picks, renders and times what the board shows.

    The worker thread running run() is the only writer of the renderer
    process handle and of the cached default artifact. enqueue() and
    update_configuration() are safe to call from any thread.
    """

    def __init__(self, configuration: Optional[BoardConfiguration] = None,
                 gateway: Optional[RendererGateway] = None):
        """
        Initialize the scheduler.

        Args:
            configuration: Initial board configuration
            gateway: Renderer gateway used to encode and display artifacts
        """
        self._configuration = configuration or BoardConfiguration()
        self._config_lock = threading.Lock()
        self.gateway = gateway or RendererGateway()

        self._backlog: queue.Queue = queue.Queue()
        self._stop_event = threading.Event()
        self._worker_thread: Optional[threading.Thread] = None

        self._default_artifact: Optional[RenderArtifact] = None
        self._default_key: Optional[Tuple] = None
        self._cycle = 0
        self.last_displayed: Optional[Notification] = None

    @property
    def configuration(self) -> BoardConfiguration:
        """Current configuration snapshot."""
        with self._config_lock:
            return self._configuration

    @property
    def is_stopped(self) -> bool:
        return self._stop_event.is_set()

    def backlog_size(self) -> int:
        return self._backlog.qsize()

    # Producer side

    def enqueue(self, notification: Notification) -> None:
        """
        Append a notification to the backlog without blocking.

        Raises:
            QueueClosedError: If the scheduler has been shut down
        """
        if self._stop_event.is_set():
            raise QueueClosedError("Display scheduler is shut down", context={'backlog': self.backlog_size()})
        self._backlog.put(notification)

    def update_configuration(self, configuration: BoardConfiguration) -> None:
        """
        Publish a new configuration snapshot for the next cycle.

        Raises:
            QueueClosedError: If the scheduler has been shut down
        """
        if self._stop_event.is_set():
            raise QueueClosedError("Display scheduler is shut down")
        with self._config_lock:
            self._configuration = configuration

    def on_notification(self, topic_id: str, notification: Notification) -> None:
        """Transport callback for a new notification. Never raises."""
        log_with_context(logger, logging.INFO, f"Notification received: {notification}", topic_id=topic_id)
        try:
            self.enqueue(notification)
        except QueueClosedError as e:
            log_with_context(logger, logging.WARNING, f"Dropping notification: {e}", topic_id=topic_id)

    def on_configuration_update(self, configuration: Union[BoardConfiguration, Dict[str, Any]]) -> None:
        """Transport callback for a configuration update. Never raises."""
        try:
            if not isinstance(configuration, BoardConfiguration):
                configuration = BoardConfiguration.from_dict(configuration)
            logger.info("Configuration body: %s", configuration)
            self.update_configuration(configuration)
        except ConfigError as e:
            logger.error("Rejected configuration update: %s", e)
        except QueueClosedError as e:
            logger.warning("Ignoring configuration update: %s", e)

    # Lifecycle

    def start(self) -> threading.Thread:
        """Run the scheduler loop on a dedicated worker thread."""
        if self._worker_thread and self._worker_thread.is_alive():
            return self._worker_thread

        self._worker_thread = threading.Thread(
            target=self.run,
            name="DisplayScheduler",
            daemon=True
        )
        self._worker_thread.start()
        return self._worker_thread

    def shutdown(self, timeout: float = 5.0) -> None:
        """
        Stop the loop and terminate the renderer.

        Wakes the loop whether it is waiting for a notification or holding
        a message on screen.
        """
        if self._stop_event.is_set():
            return
        logger.info("Shutting down display scheduler")
        self._stop_event.set()
        self._backlog.put(_SHUTDOWN)

        worker = self._worker_thread
        if worker and worker.is_alive() and worker is not threading.current_thread():
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning("Display scheduler thread did not stop within %.1fs", timeout)

        self.gateway.stop()

    def run(self) -> None:
        """Scheduler loop; returns after shutdown()."""
        logger.info("Display scheduler started")
        try:
            while not self._stop_event.is_set():
                try:
                    self.run_cycle()
                except RenderError as e:
                    log_with_context(logger, logging.ERROR, f"Failed to display message: {e}", cycle=self._cycle)
                except Exception as e:
                    log_with_context(
                        logger, logging.ERROR, f"Failed to display message: {e}",
                        cycle=self._cycle, exc_info=True
                    )
        finally:
            self.gateway.stop()
            logger.info("Display scheduler stopped")

    # Consumer side

    def run_cycle(self) -> None:
        """Select, display and hold one notification."""
        if self._backlog.empty():
            self._show_default()

        notification = self._take()
        if notification is None:
            return

        notification = self._shed(notification)
        if notification is None:
            return

        self._cycle += 1
        configuration = self.configuration
        log_with_context(logger, logging.INFO, f"Going to display {notification}", cycle=self._cycle)

        render_ms = self._display_notification(notification, configuration)
        logger.info(
            "Time required to display this message %d and repeat count is %d",
            render_ms, configuration.repeat_count
        )
        hold_ms = self.hold_duration_ms(render_ms, configuration.repeat_count)

        logger.info("Will sleep for %d ms", hold_ms)
        if self._hold(hold_ms):
            logger.info("Hold interrupted by shutdown")

    @staticmethod
    def hold_duration_ms(render_ms: int, repeat_count: int) -> int:
        """How long a render stays on screen before the next cycle."""
        return render_ms * max(MIN_REPEAT_COUNT, repeat_count)

    @staticmethod
    def default_notification(configuration: BoardConfiguration) -> Notification:
        return Notification.create(configuration.default_message)

    def _take(self) -> Optional[Notification]:
        item = self._backlog.get()
        if item is _SHUTDOWN:
            return None
        return item

    def _shed(self, notification: Notification) -> Optional[Notification]:
        # Freshest wins: drop taken messages until the backlog is small again
        while self._backlog.qsize() > MAX_MESSAGES_IN_QUEUE:
            logger.info(
                "Queue size is too big (%d). Skipping message %s",
                self._backlog.qsize(), notification
            )
            try:
                item = self._backlog.get_nowait()
            except queue.Empty:
                break
            if item is _SHUTDOWN:
                return None
            notification = item
        return notification

    def _hold(self, hold_ms: int) -> bool:
        """Sleep for hold_ms; returns True if woken by shutdown."""
        return self._stop_event.wait(max(0, hold_ms) / 1000.0)

    def _show_default(self) -> None:
        configuration = self.configuration
        try:
            artifact = self._get_default_artifact(configuration)
            self.gateway.display(artifact.file_path, configuration.scroll_speed)
            self.last_displayed = self.default_notification(configuration)
            logger.debug(
                "Showing default message (%d ms per pass)",
                artifact.pixel_width * configuration.scroll_speed
            )
        except TwitterBoardError as e:
            logger.error("Failed to display default message: %s", e)
        except Exception as e:
            logger.error("Failed to display default message: %s", e, exc_info=True)

    def _get_default_artifact(self, configuration: BoardConfiguration) -> RenderArtifact:
        # Scroll speed is not part of the key, it is applied at display time
        key = (configuration.default_message, configuration.background_color, configuration.palette)
        if self._default_artifact is None or self._default_key != key:
            notification = self.default_notification(configuration)
            tokens = tokenize(notification.message, None, None, configuration.palette)
            path = self.gateway.artifact_path(self.gateway.settings.default_file)
            width = self.gateway.render(tokens, configuration.background_color, path)
            self._default_artifact = RenderArtifact(path, width)
            self._default_key = key
            logger.info("Rendered default message (%d px)", width)
        return self._default_artifact

    def _display_notification(self, notification: Notification, configuration: BoardConfiguration) -> int:
        tokens = tokenize(notification.message, notification.author, notification.keywords, configuration.palette)
        path = self.gateway.artifact_path(self.gateway.settings.custom_file)
        width = self.gateway.render(tokens, configuration.background_color, path)
        self.gateway.display(path, configuration.scroll_speed)
        self.last_displayed = notification
        return width * configuration.scroll_speed
