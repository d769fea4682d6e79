"""
Configuration Service

Wraps ConfigManager and adds:
- File watching for automatic reload
- Configuration versioning
- Change notifications to subscribers, per config section
- Thread-safe configuration access
"""

import json
import threading
from pathlib import Path
from typing import Dict, Any, Optional, List, Callable
from collections import defaultdict
import logging
import hashlib

from twitterboard.exceptions import ConfigError
from twitterboard.logging_config import get_logger
from twitterboard.config_manager import ConfigManager

ChangeCallback = Callable[[Dict[str, Any], Dict[str, Any]], None]


class ConfigService:
    """Configuration service with hot-reload and change notifications."""

    def __init__(
        self,
        config_manager: Optional[ConfigManager] = None,
        enable_hot_reload: bool = True,
        watch_interval: float = 2.0
    ) -> None:
        """
        Initialize the configuration service.

        Args:
            config_manager: Optional ConfigManager instance (creates new if None)
            enable_hot_reload: Whether to enable automatic file watching
            watch_interval: Seconds between file modification checks
        """
        self.logger: logging.Logger = get_logger(__name__)
        self.config_manager: ConfigManager = config_manager or ConfigManager()
        self.enable_hot_reload: bool = enable_hot_reload

        self._lock: threading.RLock = threading.RLock()

        self._current_config: Dict[str, Any] = {}
        self._current_version: int = 0
        self._current_checksum: str = ""
        self._last_modified: float = 0.0

        # Format: {section name or '*': [callbacks]}
        self._subscribers: Dict[str, List[ChangeCallback]] = defaultdict(list)

        self._watch_thread: Optional[threading.Thread] = None
        self._watch_interval: float = watch_interval
        self._stop_event = threading.Event()

        self._load_config()

        if self.enable_hot_reload:
            self._start_file_watching()

    def _calculate_checksum(self, config: Dict[str, Any]) -> str:
        """Calculate MD5 checksum of configuration."""
        config_str = json.dumps(config, sort_keys=True)
        return hashlib.md5(config_str.encode()).hexdigest()

    def _load_config(self) -> bool:
        """
        Load configuration from ConfigManager.

        Returns:
            True if config changed, False otherwise
        """
        try:
            new_config = self.config_manager.load_config()
        except ConfigError as e:
            self.logger.error("Error loading configuration: %s", e)
            return False

        new_checksum = self._calculate_checksum(new_config)

        with self._lock:
            if self._current_version > 0 and new_checksum == self._current_checksum:
                self.logger.debug("Configuration unchanged, skipping reload")
                return False

            old_config = self._current_config
            self._current_config = json.loads(json.dumps(new_config))
            self._current_checksum = new_checksum
            self._current_version += 1
            version = self._current_version

        self.logger.info(
            "Configuration reloaded (version %d, checksum: %s)",
            version,
            new_checksum[:8]
        )

        if version > 1:
            self._notify_subscribers(old_config, new_config)
        return True

    def _notify_subscribers(self, old_config: Dict[str, Any], new_config: Dict[str, Any]) -> None:
        """
        Notify subscribers of configuration changes.

        Section subscribers are only called when their section changed.
        """
        with self._lock:
            subscribers = {key: list(callbacks) for key, callbacks in self._subscribers.items()}

        for callback in subscribers.get('*', []):
            try:
                callback(old_config, new_config)
            except Exception as e:
                self.logger.error("Error in global config change callback: %s", e, exc_info=True)

        for section, callbacks in subscribers.items():
            if section == '*':
                continue

            old_section = old_config.get(section, {})
            new_section = new_config.get(section, {})
            if old_section == new_section:
                continue

            for callback in callbacks:
                try:
                    callback(old_section, new_section)
                except Exception as e:
                    self.logger.error(
                        "Error in config change callback for %s: %s",
                        section,
                        e,
                        exc_info=True
                    )

    def _check_file_changes(self) -> bool:
        """Return True if the configuration file was modified since the last check."""
        config_path = Path(self.config_manager.get_config_path())
        if not config_path.exists():
            return False

        mtime = config_path.stat().st_mtime
        if mtime != self._last_modified:
            self._last_modified = mtime
            return True
        return False

    def _file_watcher_loop(self) -> None:
        """Main loop for file watching."""
        self.logger.info("Configuration file watcher started")

        config_path = Path(self.config_manager.get_config_path())
        if config_path.exists():
            self._last_modified = config_path.stat().st_mtime

        while not self._stop_event.wait(self._watch_interval):
            try:
                if self._check_file_changes():
                    self.logger.info("Configuration file changed, reloading...")
                    self._load_config()
            except OSError as e:
                self.logger.error("Error in file watcher loop: %s", e, exc_info=True)

        self.logger.info("Configuration file watcher stopped")

    def _start_file_watching(self) -> None:
        """Start the file watching thread."""
        if self._watch_thread and self._watch_thread.is_alive():
            return

        self._stop_event.clear()
        self._watch_thread = threading.Thread(
            target=self._file_watcher_loop,
            name="ConfigService-Watcher",
            daemon=True
        )
        self._watch_thread.start()
        self.logger.debug("File watching thread started")

    def get_config(self) -> Dict[str, Any]:
        """Get a copy of the current configuration (thread-safe)."""
        with self._lock:
            return json.loads(json.dumps(self._current_config))

    def get_section(self, section: str) -> Dict[str, Any]:
        return self.get_config().get(section, {})

    def subscribe(self, callback: ChangeCallback, section: Optional[str] = None) -> None:
        """
        Subscribe to configuration changes.

        Args:
            callback: Called as callback(old, new) when the config changes
            section: Optional top-level section to watch; None watches everything
        """
        key = section or '*'
        with self._lock:
            if callback not in self._subscribers[key]:
                self._subscribers[key].append(callback)
                self.logger.debug("Subscribed to config changes for %s", key)

    def unsubscribe(self, callback: ChangeCallback, section: Optional[str] = None) -> None:
        key = section or '*'
        with self._lock:
            if callback in self._subscribers[key]:
                self._subscribers[key].remove(callback)
                self.logger.debug("Unsubscribed from config changes for %s", key)

    def reload(self) -> bool:
        """
        Manually reload configuration.

        Returns:
            True if the configuration changed, False otherwise
        """
        self.logger.info("Manual configuration reload requested")
        return self._load_config()

    def get_version(self) -> int:
        with self._lock:
            return self._current_version

    def shutdown(self) -> None:
        """Stop the file watcher."""
        self._stop_event.set()
        if self._watch_thread and self._watch_thread.is_alive():
            self._watch_thread.join(timeout=5.0)
            if self._watch_thread.is_alive():
                self.logger.warning("File watching thread did not stop gracefully")
