import shutil
from pathlib import Path

import pytest

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data(monkeypatch):
    """Wipe data-tests/ before every test and keep $GEMINI_API_KEY out of it."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    TEST_DATA_DIR.mkdir()
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture
def data_dir() -> Path:
    return TEST_DATA_DIR
