#!/usr/bin/env python3
import logging
import sys
import os
import signal
import argparse

# Add project directory to Python path (needed before importing twitterboard modules)
project_dir = os.path.dirname(os.path.abspath(__file__))
if project_dir not in sys.path:
    sys.path.insert(0, project_dir)

parser = argparse.ArgumentParser(description='Twitter Board Display Scheduler')
parser.add_argument('-c', '--config', default='config/config.json',
                    help='Path to the configuration file')
parser.add_argument('-t', '--template', default='config/config.template.json',
                    help='Template used to create or migrate the configuration file')
parser.add_argument('-d', '--debug', action='store_true',
                    help='Enable debug logging and verbose output')
parser.add_argument('--stdin', action='store_true',
                    help='Read JSON line notifications from standard input')
args = parser.parse_args()

debug_mode = args.debug or os.environ.get('TWITTERBOARD_DEBUG', '').lower() == 'true'

# Configure logging before importing any other modules
from twitterboard.logging_config import setup_logging

setup_logging(level=logging.DEBUG if debug_mode else logging.INFO, include_location=debug_mode)

from twitterboard.board_config import BoardConfiguration, RendererSettings
from twitterboard.config_manager import ConfigManager
from twitterboard.config_service import ConfigService
from twitterboard.display_scheduler import DisplayScheduler
from twitterboard.exceptions import ConfigError
from twitterboard.notification_source import JsonLinesNotificationSource
from twitterboard.renderer_gateway import RendererGateway

logger = logging.getLogger("twitterboard")


def main() -> int:
    config_manager = ConfigManager(config_path=args.config, template_path=args.template)
    try:
        config = config_manager.load_config()
        board_config = BoardConfiguration.from_dict(config_manager.get_board_config())
        renderer_settings = RendererSettings.from_config(config)
    except ConfigError as e:
        logger.error("Cannot start: %s", e)
        return 1

    logging_config = config_manager.get_logging_config()
    if not debug_mode:
        setup_logging(
            level=getattr(logging, str(logging_config.get('level', 'INFO')).upper(), logging.INFO),
            format_type=logging_config.get('format', 'readable'),
            log_file=logging_config.get('file')
        )

    service_config = config_manager.get_config_service_config()
    config_service = ConfigService(
        config_manager=config_manager,
        enable_hot_reload=service_config.get('hot_reload', True),
        watch_interval=float(service_config.get('watch_interval', 2.0))
    )

    scheduler = DisplayScheduler(board_config, RendererGateway(renderer_settings))
    config_service.subscribe(
        lambda old, new: scheduler.on_configuration_update(new),
        section='board'
    )

    def handle_signal(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        scheduler.shutdown()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)

    if args.stdin:
        JsonLinesNotificationSource(sys.stdin, scheduler).start()

    worker = scheduler.start()
    try:
        while worker.is_alive():
            worker.join(timeout=1.0)
    finally:
        scheduler.shutdown()
        config_service.shutdown()
    return 0


if __name__ == "__main__":
    sys.exit(main())
