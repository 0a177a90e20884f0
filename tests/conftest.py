"""Pytest configuration and fixtures."""
import os
import shutil
import tempfile
from pathlib import Path
import pytest
from typing import Generator
from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / '.env'
if env_path.exists():
    load_dotenv(env_path)

# Only set dummy key if no real key exists (for unit tests)
if 'OPENROUTER_API_KEY' not in os.environ:
    os.environ['OPENROUTER_API_KEY'] = 'sk-or-test-key-123456789'


@pytest.fixture(autouse=True, scope="session")
def isolated_logging(tmp_path_factory):
    """Send all test logging to a throwaway file instead of ~/.storyloom/logs."""
    from storyloom.utils.logging import setup_logging

    setup_logging(log_file=tmp_path_factory.mktemp("logs") / "test.log", level="DEBUG")
    yield


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for testing."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def test_project_dir(temp_dir: Path) -> Path:
    """Create a test project directory."""
    project_dir = temp_dir / "test_project"
    project_dir.mkdir()
    return project_dir


@pytest.fixture
def project(test_project_dir: Path):
    """An initialized, empty project."""
    from storyloom.models.project import Project

    return Project.init(test_project_dir)


@pytest.fixture
def settings(temp_dir: Path):
    """Settings isolated from user and project config files."""
    from storyloom.config import Settings

    return Settings(
        openrouter_api_key='sk-or-test-key-123456789',
        max_history_chapters=20,
        last_opened_project=None
    )


@pytest.fixture
def mock_api_key(monkeypatch):
    """Set a mock API key for testing."""
    monkeypatch.setenv("OPENROUTER_API_KEY", "sk-or-test-key-123456789")
    return "sk-or-test-key-123456789"
