import logging
import math
from typing import Optional, Sequence

from ..config import DetectionPolicy, settings
from ..models.schemas import (
    AccelerometerReading,
    AnalysisInput,
    Classification,
    DetectionResult,
    DistressLevel,
    utcnow,
)


logger = logging.getLogger(__name__)

# Matched as case-folded substrings, so "know" hits "no"
DISTRESS_KEYWORDS = ("help", "stop", "leave me", "no", "please", "someone")

ACTION_SOS_IMMEDIATE = "Auto-trigger SOS and send location to emergency contacts immediately"
ACTION_SOS = "Auto-trigger SOS and send location to emergency contacts"
ACTION_NOTIFY = "Notify trusted contacts and ask user to confirm safety"
ACTION_SAFETY_CHECK = 'Ask user "Are you safe?" and monitor for response'
ACTION_MONITOR = "Continue monitoring - no action required"

EXPLANATIONS = {
    DistressLevel.high: "Emergency detected - Help has been dispatched",
    DistressLevel.medium: "Possible distress - Emergency contacts notified",
    DistressLevel.low: "Unusual activity detected - Please confirm you are safe",
    DistressLevel.none: "All clear - Monitoring continues",
}


def confidence_percent(confidence: float) -> int:
    if math.isnan(confidence):
        return 0
    if math.isinf(confidence):
        return 100 if confidence > 0 else 0
    # Half-up, so 0.625 -> 63 rather than banker's rounding
    return int(math.floor(confidence * 100 + 0.5))


class ScreamDetectionService:
    """Maps one audio/sensor snapshot to a distress verdict.

    Stateless apart from the policy; safe to share across threads.
    """

    def __init__(self, policy: Optional[DetectionPolicy] = None) -> None:
        self.policy = policy or DetectionPolicy()

    def analyze(self, analysis_input: AnalysisInput) -> DetectionResult:
        classification = analysis_input.classification
        accelerometer = analysis_input.accelerometer

        accelerometer_spike = self.detect_accelerometer_spike(accelerometer)
        device_movement = self.detect_device_movement(accelerometer)
        keyword_detected = self.detect_distress_keyword(analysis_input.keywords)

        distress_level = self.distress_level(
            classification.scream, classification.noise, accelerometer_spike
        )
        recommended_action = self.recommended_action(
            distress_level, accelerometer_spike, keyword_detected
        )
        message_for_user, message_for_contacts = self.messages(
            distress_level, classification.scream, keyword_detected
        )

        location = analysis_input.location
        return DetectionResult(
            detection=distress_level != DistressLevel.none,
            distress_level=distress_level,
            scream_confidence=classification.scream,
            noise_confidence=classification.noise,
            talking_confidence=classification.talking,
            silence_confidence=classification.silence,
            recommended_action=recommended_action,
            timestamp=utcnow(),
            message_for_user=message_for_user,
            message_for_emergency_contacts=message_for_contacts,
            accelerometer_spike=accelerometer_spike,
            device_movement=device_movement,
            keyword_detected=keyword_detected,
            latitude=location.latitude if location else None,
            longitude=location.longitude if location else None,
        )

    def distress_level(self, scream: float, noise: float, accelerometer_spike: bool) -> DistressLevel:
        if scream >= self.policy.high_distress:
            return DistressLevel.high
        if scream >= self.policy.medium_distress:
            return DistressLevel.medium
        # Noise plus motion can raise a reading to low, never higher
        if noise >= self.policy.unusual_noise and accelerometer_spike:
            return DistressLevel.low
        return DistressLevel.none

    def detect_accelerometer_spike(self, reading: Optional[AccelerometerReading]) -> bool:
        if reading is None:
            return False
        magnitude = math.sqrt(reading.x ** 2 + reading.y ** 2 + reading.z ** 2)
        return magnitude > self.policy.accelerometer_spike

    def detect_device_movement(self, reading: Optional[AccelerometerReading]) -> bool:
        if reading is None:
            return False
        total = abs(reading.x) + abs(reading.y) + abs(reading.z)
        return total > self.policy.device_movement

    def detect_distress_keyword(self, keywords: Optional[Sequence[str]]) -> Optional[str]:
        if not keywords:
            return None
        for keyword in keywords:
            folded = keyword.casefold()
            if any(dk in folded for dk in DISTRESS_KEYWORDS):
                return keyword
        return None

    def recommended_action(
        self,
        distress_level: DistressLevel,
        accelerometer_spike: bool,
        keyword_detected: Optional[str],
    ) -> str:
        if distress_level == DistressLevel.high:
            return ACTION_SOS_IMMEDIATE
        if distress_level == DistressLevel.medium:
            if keyword_detected or accelerometer_spike:
                return ACTION_SOS
            return ACTION_NOTIFY
        if distress_level == DistressLevel.low:
            return ACTION_SAFETY_CHECK
        return ACTION_MONITOR

    def messages(
        self,
        distress_level: DistressLevel,
        scream: float,
        keyword_detected: Optional[str],
    ) -> tuple[str, str]:
        """Return ``(message_for_user, message_for_emergency_contacts)``."""
        if distress_level == DistressLevel.high:
            percent = f"{confidence_percent(scream)}%"
            return (
                f"EMERGENCY DETECTED: High distress signal ({percent} confidence). "
                "Emergency contacts are being notified immediately. Help is on the way.",
                f"EMERGENCY ALERT: Possible distress detected with high confidence ({percent}). "
                "Please check on this person immediately and consider contacting emergency services.",
            )

        if distress_level == DistressLevel.medium:
            percent = f"{confidence_percent(scream)}%"
            if keyword_detected:
                for_user = (
                    f'Distress signal detected including keyword "{keyword_detected}". '
                    "Emergency contacts will be notified. Tap here if this is a false alarm."
                )
            else:
                for_user = (
                    f"Possible distress detected ({percent} confidence). "
                    "Emergency contacts will be notified shortly. Tap here if you're safe."
                )
            return (
                for_user,
                f"SAFETY ALERT: Potential distress detected ({percent} confidence). "
                "Please reach out to check if they need assistance.",
            )

        if distress_level == DistressLevel.low:
            return (
                "Unusual activity detected. Are you safe? Please respond within 30 seconds.",
                "Safety check: Unusual activity detected. Monitoring the situation.",
            )

        return "All clear - no distress detected.", "No emergency detected."

    def explain(self, result: DetectionResult) -> str:
        return EXPLANATIONS[result.distress_level]

    def validate(self, classification: Classification) -> bool:
        """Advisory sanity check; a bad sum is logged but never rejected."""
        scores = (
            classification.scream,
            classification.noise,
            classification.talking,
            classification.silence,
        )
        total = sum(scores)
        if abs(total - 1.0) > self.policy.sum_tolerance:
            logger.warning("Classification scores do not sum to ~1.0: %.3f", total)
        return all(0.0 <= score <= 1.0 for score in scores)


_detection_singleton: Optional[ScreamDetectionService] = None


def get_detection_service() -> ScreamDetectionService:
    global _detection_singleton
    if _detection_singleton is None:
        _detection_singleton = ScreamDetectionService(settings.detection_policy())
    return _detection_singleton
