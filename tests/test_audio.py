"""
Tests for audio ingestion: presets, decoding, level metering, classifier
response parsing and the remote classifier client (requests mocked).
"""

from __future__ import annotations

import io
from unittest.mock import MagicMock, patch

import numpy as np
import pytest
import requests
import soundfile as sf

from screamguard.services.audio import (
    SCENARIO_PRESETS,
    AudioService,
    get_audio_level,
    mock_classification,
)
from screamguard.utils.parsers import extract_keywords, parse_classifier_response


def _wav_bytes(samples: np.ndarray, sr: int) -> bytes:
    buf = io.BytesIO()
    sf.write(buf, samples, sr, format="WAV")
    return buf.getvalue()


@pytest.mark.parametrize("scenario, scream", [("high", 0.85), ("medium", 0.62), ("low", 0.35), ("none", 0.05)])
def test_presets_sum_to_one(scenario, scream):
    c = mock_classification(scenario)
    assert c.scream == scream
    assert c.scream + c.noise + c.talking + c.silence == pytest.approx(1.0)


def test_unknown_preset_raises():
    with pytest.raises(ValueError):
        mock_classification("panic")


def test_audio_level():
    assert get_audio_level(np.zeros(0, dtype=np.float32)) == 0.0
    assert get_audio_level(np.full(100, 0.05, dtype=np.float32)) == pytest.approx(0.5)
    assert get_audio_level(np.ones(100, dtype=np.float32)) == 1.0


def test_decode_resamples_and_downmixes():
    sr = 8000
    t = np.linspace(0, 1, sr, endpoint=False)
    stereo = np.stack([np.sin(2 * np.pi * 440 * t), np.zeros(sr)], axis=1).astype(np.float32)
    samples = AudioService(sample_rate_hz=16000).decode_audio_bytes(_wav_bytes(stereo, sr))
    assert samples.ndim == 1
    assert samples.dtype == np.float32
    assert abs(len(samples) - 16000) <= 1


def test_decode_garbage_returns_none():
    assert AudioService().decode_audio_bytes(b"definitely not audio") is None


def test_parse_nested_results_case_insensitive():
    payload = {"results": [{"classification": {"Scream": 0.7, "NOISE": "0.2", "talking": 0.1}}]}
    c = parse_classifier_response(payload)
    assert (c.scream, c.noise, c.talking, c.silence) == (0.7, 0.2, 0.1, 0.0)


def test_parse_flat_classification_and_junk_values():
    c = parse_classifier_response({"classification": {"scream": "n/a", "silence": 1}})
    assert c.scream == 0.0
    assert c.silence == 1.0


def test_parse_empty_payload():
    c = parse_classifier_response({})
    assert (c.scream, c.noise, c.talking, c.silence) == (0.0, 0.0, 0.0, 0.0)


def test_extract_keywords_keeps_order_and_case():
    assert extract_keywords("Please, HELP me! Don't stop.") == ["Please", "HELP", "me", "Don't", "stop"]
    assert extract_keywords("") == []


def test_classify_without_url_returns_none(monkeypatch):
    service = AudioService()
    service.classifier_url = None
    assert service.classify(np.zeros(10, dtype=np.float32)) is None


def test_classify_posts_window_and_parses():
    response = MagicMock()
    response.json.return_value = {"results": [{"classification": {"scream": 0.9, "noise": 0.1}}]}
    response.raise_for_status.return_value = None
    samples = np.zeros(20000, dtype=np.float32)

    with patch("screamguard.services.audio.requests.post", return_value=response) as post:
        c = AudioService(classifier_url="http://classifier.local/classify").classify(samples)

    assert c.scream == 0.9
    sent = post.call_args.kwargs["json"]["data"]
    assert len(sent) == 16000


def test_classify_network_error_returns_none():
    with patch(
        "screamguard.services.audio.requests.post",
        side_effect=requests.ConnectionError("down"),
    ):
        assert AudioService(classifier_url="http://classifier.local").classify(np.zeros(4, dtype=np.float32)) is None


def test_scenario_presets_cover_all_levels():
    assert set(SCENARIO_PRESETS) == {"high", "medium", "low", "none"}
