from pathlib import Path
from dotenv import load_dotenv
import pytest
import logging

# Define BASE_DIR
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")


def pytest_configure(config):
    # Set up logging configuration for stdout only
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.StreamHandler()  # This prints to stdout
        ],
    )


@pytest.fixture
def base_dir():
    return BASE_DIR


@pytest.fixture
def logger():
    """Fixture to provide a logger instance to tests."""
    return logging.getLogger("test_logger")
