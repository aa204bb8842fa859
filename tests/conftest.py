"""
Pytest fixtures for ScreamGuard tests. Every test gets a fresh in-memory store.
"""

from __future__ import annotations

import pytest

from screamguard.config import settings
from screamguard.models.schemas import AnalysisInput
from screamguard.services import emergency as emergency_module
from screamguard.services.audio import mock_classification
from screamguard.services.detection import ScreamDetectionService
from screamguard.utils import storage as storage_module


@pytest.fixture(autouse=True)
def memory_storage(monkeypatch):
    """Use MemoryStorage and drop cached singletons around each test."""
    monkeypatch.setattr(settings, "storage_backend", "memory")
    storage_module.reset_storage()
    monkeypatch.setattr(emergency_module, "_emergency_singleton", None)
    yield storage_module.get_storage()
    storage_module.reset_storage()


@pytest.fixture
def detector() -> ScreamDetectionService:
    return ScreamDetectionService()


@pytest.fixture
def preset_input():
    """Build an AnalysisInput from a named scenario preset."""

    def _build(scenario: str, **kwargs) -> AnalysisInput:
        return AnalysisInput(classification=mock_classification(scenario), **kwargs)

    return _build


@pytest.fixture
def client(memory_storage):
    """FastAPI TestClient bound to the fresh in-memory store."""
    from fastapi.testclient import TestClient

    from screamguard.main import app

    return TestClient(app)


@pytest.fixture
def wav_upload():
    """Multipart payload holding a short silent WAV clip."""
    import io

    import numpy as np
    import soundfile as sf

    buf = io.BytesIO()
    sf.write(buf, np.zeros(1600, dtype=np.float32), 16000, format="WAV")
    return {"clip": ("clip.wav", buf.getvalue(), "audio/wav")}
