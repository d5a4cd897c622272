import pytest
from click.testing import CliRunner

from labnotes.storage import MemoryStore


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def memory_store() -> MemoryStore:
    """Provides an empty in-memory key/value store."""
    return MemoryStore()


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch):
    for name in ("LABNOTES_STORAGE", "LABNOTES_MAX_FILE_SIZE", "LABNOTES_MAX_LINE_LENGTH"):
        monkeypatch.delenv(name, raising=False)
