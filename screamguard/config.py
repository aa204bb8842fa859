from pydantic import BaseModel
from pydantic_settings import BaseSettings
from typing import Optional


class DetectionPolicy(BaseModel):
    """Thresholds used by the distress decision engine."""

    high_distress: float = 0.75
    medium_distress: float = 0.50
    unusual_noise: float = 0.60
    accelerometer_spike: float = 15.0  # euclidean magnitude
    device_movement: float = 8.0  # sum of absolute axis values
    sum_tolerance: float = 0.1

    model_config = {"frozen": True}


class Settings(BaseSettings):
    # Decision policy
    high_distress_threshold: float = 0.75
    medium_distress_threshold: float = 0.50
    unusual_noise_threshold: float = 0.60
    accelerometer_spike_threshold: float = 15.0
    device_movement_threshold: float = 8.0
    classification_sum_tolerance: float = 0.1

    # Remote classifier
    classifier_url: Optional[str] = None  # e.g. an Edge Impulse classify endpoint
    classifier_timeout_seconds: float = 10.0
    sample_rate_hz: int = 16000
    classifier_window_samples: int = 16000

    # Keyword transcription
    whisper_model: str = "base"
    transcribe_keywords: bool = False

    # Sources (file path or ffmpeg-readable device)
    audio_source: Optional[str] = None

    # Scheduling
    audio_interval_seconds: int = 5
    audio_sample_seconds: int = 1

    # Storage
    storage_backend: str = "local"  # local | memory
    storage_base_dir: str = "./storage"

    # Feature flags
    auto_run: bool = False  # start background sampler on startup

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"

    def detection_policy(self) -> DetectionPolicy:
        return DetectionPolicy(
            high_distress=self.high_distress_threshold,
            medium_distress=self.medium_distress_threshold,
            unusual_noise=self.unusual_noise_threshold,
            accelerometer_spike=self.accelerometer_spike_threshold,
            device_movement=self.device_movement_threshold,
            sum_tolerance=self.classification_sum_tolerance,
        )


settings = Settings()
