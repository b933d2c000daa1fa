import os
import sys
from pathlib import Path

import pytest


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Settings are cached on first import, so these must be in place before
# any quickpost module loads.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("GEMINI_API_KEY", "test-key")
os.environ.setdefault("API_BASE_URL", "http://testserver")
os.environ.setdefault("DEMO_MODE", "false")

from quickpost.schemas.extraction import (  # noqa: E402
    BudgetRange,
    ExtractedJob,
    ExtractedUser,
    JobLocation,
    Urgency,
    UserLocation,
)
from quickpost.services.gazetteer import get_gazetteer  # noqa: E402


@pytest.fixture(autouse=True)
def _test_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")


@pytest.fixture
def gazetteer():
    return get_gazetteer()


@pytest.fixture
def plumber_job() -> ExtractedJob:
    return ExtractedJob(
        job_title="Plumbing Service",
        job_description="Kitchen sink is leaking",
        service_category="plumbing",
        urgency=Urgency.HIGH,
        budget=BudgetRange(min=1500, max=2500),
        location=JobLocation(area="Anna Nagar", district="Chennai", state="Tamil Nadu"),
        requirements=["Fix leaking tap", "Check drainage"],
        timeframe="Today",
    )


@pytest.fixture
def priya() -> ExtractedUser:
    return ExtractedUser(
        first_name="Priya",
        last_name="Raman",
        mobile="9876543210",
        location=UserLocation(area="Adyar", district="Chennai", state="Tamil Nadu"),
        confidence=0.9,
    )


class FakeAudioSource:
    """In-memory capture backend; ``emit`` plays the role of the device callback."""

    mime_type = "audio/webm"

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.opened = 0
        self.closed = 0
        self._on_chunk = None

    def open(self, on_chunk) -> None:
        if self.fail_with is not None:
            raise self.fail_with
        self.opened += 1
        self._on_chunk = on_chunk

    def emit(self, chunk: bytes) -> None:
        self._on_chunk(chunk)

    def close(self) -> None:
        self.closed += 1

    def finalize(self, data: bytes) -> bytes:
        return data


@pytest.fixture
def audio_source() -> FakeAudioSource:
    return FakeAudioSource()
