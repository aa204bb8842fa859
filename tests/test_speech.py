"""
Tests for keyword transcription. The whisper model itself is mocked.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from screamguard.config import settings
from screamguard.services import speech
from screamguard.services.speech import WhisperTranscriber


def _fake_model(text: str) -> MagicMock:
    model = MagicMock()
    model.transcribe.return_value = {"text": text, "language": "en"}
    return model


def test_keywords_from_bytes_tokenizes_transcript():
    with patch("screamguard.services.speech.whisper.load_model", return_value=_fake_model(" Someone, help me! ")):
        transcriber = WhisperTranscriber("tiny")
        keywords = transcriber.keywords_from_bytes(b"RIFF....")

    assert keywords == ["Someone", "help", "me"]
    path = transcriber.model.transcribe.call_args.args[0]
    assert path.endswith(".wav")


def test_get_transcriber_is_cached(monkeypatch):
    monkeypatch.setattr(speech, "_whisper_singleton", None)
    with patch("screamguard.services.speech.whisper.load_model", return_value=_fake_model("")) as load:
        first = speech.get_transcriber()
        second = speech.get_transcriber()
    assert first is second
    load.assert_called_once_with(settings.whisper_model)


def test_audio_infer_uses_transcribed_keywords(client, monkeypatch, wav_upload):
    from screamguard.models.schemas import Classification
    from screamguard.routers import audio as audio_router

    monkeypatch.setattr(settings, "transcribe_keywords", True)
    monkeypatch.setattr(
        audio_router.service,
        "classify",
        lambda samples: Classification(scream=0.62, noise=0.25, talking=0.08, silence=0.05),
    )
    transcriber = MagicMock()
    transcriber.keywords_from_bytes.return_value = ["okay", "Stop", "it"]
    monkeypatch.setattr(speech, "get_transcriber", lambda: transcriber)

    result = client.post("/audio/infer", files=wav_upload).json()["result"]
    assert result["keyword_detected"] == "Stop"
    assert result["recommended_action"] == "Auto-trigger SOS and send location to emergency contacts"
