import io
import asyncio
import logging
import subprocess
import tempfile
from pathlib import Path
from typing import Optional

import librosa
import numpy as np
import requests
import soundfile as sf

from ..config import settings
from ..models.schemas import AnalysisInput, Classification
from ..utils.parsers import parse_classifier_response
from .detection import get_detection_service
from .emergency import get_emergency_service, mock_accelerometer


logger = logging.getLogger(__name__)

# (scream, noise, talking, silence); each sums to 1.0
SCENARIO_PRESETS = {
    "high": Classification(scream=0.85, noise=0.10, talking=0.03, silence=0.02),
    "medium": Classification(scream=0.62, noise=0.25, talking=0.08, silence=0.05),
    "low": Classification(scream=0.35, noise=0.45, talking=0.15, silence=0.05),
    "none": Classification(scream=0.05, noise=0.15, talking=0.40, silence=0.40),
}


def mock_classification(scenario: str) -> Classification:
    try:
        return SCENARIO_PRESETS[scenario]
    except KeyError:
        raise ValueError(f"Unknown scenario: {scenario}") from None


def get_audio_level(samples: np.ndarray) -> float:
    if samples.size == 0:
        return 0.0
    rms = float(np.sqrt(np.mean(np.square(samples, dtype=np.float64))))
    return min(1.0, rms * 10)


class AudioService:
    def __init__(self, classifier_url: Optional[str] = None, sample_rate_hz: Optional[int] = None) -> None:
        self.classifier_url = classifier_url or settings.classifier_url
        self.sample_rate_hz = sample_rate_hz or settings.sample_rate_hz

    def decode_audio_bytes(self, audio_bytes: bytes) -> Optional[np.ndarray]:
        """Decode to mono float32 at the configured rate; None if unreadable."""
        try:
            data, sr = sf.read(io.BytesIO(audio_bytes), dtype="float32", always_2d=True)
            samples = data.mean(axis=1)
        except (sf.SoundFileError, RuntimeError, TypeError, ValueError):
            # Fallback via librosa for containers libsndfile can't open
            try:
                with tempfile.NamedTemporaryFile(suffix=".audio", delete=True) as tmp:
                    tmp.write(audio_bytes)
                    tmp.flush()
                    samples, sr = librosa.load(tmp.name, sr=None, mono=True)
            except Exception:
                logger.exception("Error processing audio file")
                return None

        if samples.size == 0:
            logger.warning("Decoded audio is empty")
            return None
        if sr != self.sample_rate_hz:
            samples = librosa.resample(samples, orig_sr=sr, target_sr=self.sample_rate_hz)
        return samples.astype(np.float32, copy=False)

    def classify(self, samples: np.ndarray) -> Optional[Classification]:
        if not self.classifier_url:
            logger.warning("No classifier_url configured; skipping classification")
            return None
        window = samples[: settings.classifier_window_samples]
        try:
            response = requests.post(
                self.classifier_url,
                json={"data": window.tolist()},
                timeout=settings.classifier_timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError):
            logger.exception("Error calling classifier at %s", self.classifier_url)
            return None
        return parse_classifier_response(payload)

    async def classify_audio_bytes(self, audio_bytes: bytes) -> tuple[Optional[np.ndarray], Optional[Classification]]:
        samples = await asyncio.to_thread(self.decode_audio_bytes, audio_bytes)
        if samples is None:
            return None, None
        classification = await asyncio.to_thread(self.classify, samples)
        return samples, classification


class AudioSampler:
    def __init__(self, source: str, interval_seconds: int, sample_window_seconds: int) -> None:
        self.source = source
        self.interval_seconds = interval_seconds
        self.sample_window_seconds = sample_window_seconds
        self.audio = AudioService()

    def _extract_window(self) -> bytes:
        with tempfile.TemporaryDirectory() as td:
            out_path = str(Path(td) / "sample.wav")
            cmd = [
                "ffmpeg", "-y",
                "-i", self.source,
                "-t", str(self.sample_window_seconds),
                "-ac", "1", "-ar", str(settings.sample_rate_hz),
                out_path,
            ]
            subprocess.run(cmd, check=True, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            with open(out_path, "rb") as f:
                return f.read()

    async def sample_once(self) -> None:
        sample_bytes = await asyncio.to_thread(self._extract_window)
        samples, classification = await self.audio.classify_audio_bytes(sample_bytes)
        if samples is None:
            return
        if classification is None:
            if self.audio.classifier_url:
                return
            # No live classifier: loudness picks a preset
            classification = mock_classification("medium" if get_audio_level(samples) > 0.5 else "none")

        detector = get_detection_service()
        if not detector.validate(classification):
            logger.warning("Dropping sample from %s: invalid classification %s", self.source, classification)
            return
        result = detector.analyze(
            AnalysisInput(classification=classification, accelerometer=mock_accelerometer("normal"))
        )
        if result.detection:
            await get_emergency_service().handle_emergency_detection(result)

    async def run(self) -> None:
        while True:
            try:
                await self.sample_once()
            except Exception:
                logger.exception("Audio sampling failed for %s", self.source)
            await asyncio.sleep(self.interval_seconds)
