"""
Tests for the background AudioSampler: one sampling cycle with ffmpeg and the
classifier stubbed out.
"""

from __future__ import annotations

import asyncio
import io
import logging

import numpy as np
import pytest
import soundfile as sf

from screamguard.models.schemas import Classification, DistressLevel
from screamguard.services.audio import AudioSampler, mock_classification


def _wav_bytes(amplitude: float) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, np.full(1600, amplitude, dtype=np.float32), 16000, format="WAV")
    return buf.getvalue()


@pytest.fixture
def sampler(monkeypatch):
    s = AudioSampler("rtsp://camera/stream", 1, 1)
    s.audio.classifier_url = "http://classifier.local/predict"
    monkeypatch.setattr(s, "_extract_window", lambda: _wav_bytes(0.0))
    return s


def _stub_classifier(monkeypatch, sampler, classification):
    monkeypatch.setattr(sampler.audio, "classify", lambda samples: classification)


def test_invalid_classification_is_dropped(monkeypatch, sampler, memory_storage, caplog):
    _stub_classifier(monkeypatch, sampler, Classification(scream=1.5, noise=0.0, talking=0.0, silence=0.0))
    with caplog.at_level(logging.WARNING, logger="screamguard.services.audio"):
        asyncio.run(sampler.sample_once())
    assert memory_storage.events == {}
    assert memory_storage.alerts == {}
    assert "invalid classification" in caplog.text


def test_detection_is_handed_to_emergency_service(monkeypatch, sampler, memory_storage):
    _stub_classifier(monkeypatch, sampler, mock_classification("high"))
    asyncio.run(sampler.sample_once())

    [event] = memory_storage.events.values()
    assert event.distress_level == DistressLevel.high
    # Resting-phone reading has gravity on z
    assert event.device_movement is True
    assert event.accelerometer_spike is False
    assert len(memory_storage.alerts) == 1


def test_quiet_sample_raises_no_alert(monkeypatch, sampler, memory_storage):
    _stub_classifier(monkeypatch, sampler, mock_classification("none"))
    asyncio.run(sampler.sample_once())
    assert memory_storage.events == {}
    assert memory_storage.alerts == {}


def test_classifier_failure_skips_cycle(monkeypatch, sampler, memory_storage):
    _stub_classifier(monkeypatch, sampler, None)
    asyncio.run(sampler.sample_once())
    assert memory_storage.events == {}


@pytest.mark.parametrize("amplitude, alerts", [(0.1, 1), (0.0, 0)])
def test_without_classifier_loudness_picks_preset(monkeypatch, sampler, memory_storage, amplitude, alerts):
    sampler.audio.classifier_url = None
    monkeypatch.setattr(sampler, "_extract_window", lambda: _wav_bytes(amplitude))
    asyncio.run(sampler.sample_once())

    assert len(memory_storage.alerts) == alerts
    if alerts:
        [event] = memory_storage.events.values()
        assert event.distress_level == DistressLevel.medium
