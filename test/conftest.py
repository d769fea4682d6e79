"""
Pytest configuration and fixtures for Twitter Board tests.

Provides fakes for the raster encoder and the renderer process so the
scheduler can be exercised without hardware.
"""

import io
import pytest
import sys
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to path
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from twitterboard.board_config import BoardConfiguration, RendererSettings
from twitterboard.renderer_gateway import RendererGateway
from twitterboard.display_scheduler import DisplayScheduler


def make_fake_process(stdout: str = "", stderr: str = ""):
    """Create a mock renderer process handle with readable streams."""
    process = MagicMock()
    process.stdout = io.StringIO(stdout)
    process.stderr = io.StringIO(stderr)
    process.poll.return_value = None
    process.wait.return_value = 0
    return process


@pytest.fixture
def process_factory():
    """Factory for fake renderer process handles."""
    return make_fake_process


@pytest.fixture
def board_config():
    """Provide a board configuration with distinct palette colors."""
    return BoardConfiguration(
        default_message="Welcome to the board",
        background_color=(0, 0, 0),
        text_color=(255, 255, 255),
        hash_tag_color=(0, 0, 255),
        mention_color=(0, 255, 0),
        keyword_color=(255, 0, 0),
        scroll_speed=2,
        repeat_count=1,
    )


@pytest.fixture
def renderer_settings(tmp_path):
    """Renderer settings writing artifacts into a temporary directory."""
    return RendererSettings(
        command="led-matrix -r 16 -m {scroll_speed} {file}",
        work_dir=str(tmp_path),
        terminate_timeout=0.1,
    )


@pytest.fixture
def mock_encoder():
    """Encoder whose reported width is ten pixels per token."""
    encoder = MagicMock()
    encoder.encode.side_effect = lambda file_name, tokens, background: 10 * len(tokens)
    return encoder


@pytest.fixture
def mock_supervisor():
    """Process supervisor that hands out a fresh fake process per spawn."""
    supervisor = MagicMock()
    supervisor.spawn.side_effect = lambda command, args: make_fake_process()
    return supervisor


@pytest.fixture
def gateway(renderer_settings, mock_encoder, mock_supervisor):
    return RendererGateway(renderer_settings, encoder=mock_encoder, supervisor=mock_supervisor)


@pytest.fixture
def scheduler(board_config, gateway):
    """Scheduler wired to fakes; shut down after the test."""
    instance = DisplayScheduler(board_config, gateway)
    yield instance
    instance.shutdown(timeout=2.0)


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test."""
    import logging
    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
    yield
    logging.root.handlers = []
    logging.root.setLevel(logging.WARNING)
