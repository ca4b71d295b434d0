import sys
from pathlib import Path

import httpx
import pytest

# Allow `import dropmap` without installing the package.
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def _block_real_http(monkeypatch):
    """Tests must never reach the real Raindrop API."""

    def _blocked(*_args, **_kwargs):
        raise AssertionError("Real HTTP request attempted during tests")

    monkeypatch.setattr(httpx.HTTPTransport, "handle_request", _blocked)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def record_sleep(sleeps):
    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    return _sleep
