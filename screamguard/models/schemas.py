from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DistressLevel(str, Enum):
    high = "high"
    medium = "medium"
    low = "low"
    none = "none"

    @property
    def severity(self) -> int:
        return _SEVERITY[self.value]

    # Ordered by severity, not alphabetically
    def __lt__(self, other):
        if not isinstance(other, DistressLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other):
        if not isinstance(other, DistressLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other):
        if not isinstance(other, DistressLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other):
        if not isinstance(other, DistressLevel):
            return NotImplemented
        return self.severity >= other.severity


_SEVERITY = {"none": 0, "low": 1, "medium": 2, "high": 3}


class AlertType(str, Enum):
    sos = "sos"
    notify_contacts = "notify_contacts"
    safety_check = "safety_check"


class AlertStatus(str, Enum):
    pending = "pending"
    sent = "sent"
    acknowledged = "acknowledged"
    false_alarm = "false_alarm"


# Engine input
class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    scream: float
    noise: float
    talking: float
    silence: float


class AccelerometerReading(BaseModel):
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float


class Location(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float
    longitude: float


class AnalysisInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    classification: Classification
    accelerometer: Optional[AccelerometerReading] = None
    location: Optional[Location] = None
    keywords: Optional[List[str]] = None


# Engine output
class DetectionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    detection: bool
    distress_level: DistressLevel
    scream_confidence: float
    noise_confidence: float
    talking_confidence: float
    silence_confidence: float
    recommended_action: str
    timestamp: datetime
    message_for_user: str
    message_for_emergency_contacts: str
    accelerometer_spike: Optional[bool] = None
    device_movement: Optional[bool] = None
    keyword_detected: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


# Persistence records
class DetectionEvent(BaseModel):
    id: str
    user_id: Optional[str] = None
    detection: bool
    distress_level: DistressLevel
    scream_confidence: float
    noise_confidence: float
    talking_confidence: float
    silence_confidence: float
    accelerometer_spike: bool = False
    device_movement: bool = False
    keyword_detected: Optional[str] = None
    recommended_action: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)
    metadata: Dict[str, Any] = {}


class ContactNotice(BaseModel):
    name: str
    method: str  # SMS | Email
    sent_at: datetime = Field(default_factory=utcnow)


class SafetyAlert(BaseModel):
    id: str
    detection_event_id: str
    user_id: Optional[str] = None
    alert_type: AlertType
    status: AlertStatus = AlertStatus.pending
    message_for_user: str
    message_for_contacts: Optional[str] = None
    contacts_notified: List[ContactNotice] = []
    user_response: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class EmergencyContact(BaseModel):
    id: Optional[str] = None
    user_id: str
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    priority: int = 1
    active: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class UserSettings(BaseModel):
    user_id: str
    sensitivity_threshold: float = 0.75
    auto_alert_enabled: bool = True
    location_sharing_enabled: bool = True
    keyword_detection_enabled: bool = True
    accelerometer_enabled: bool = True
    false_alarm_cooldown_minutes: int = 5
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class UserSettingsUpdate(BaseModel):
    sensitivity_threshold: Optional[float] = None
    auto_alert_enabled: Optional[bool] = None
    location_sharing_enabled: Optional[bool] = None
    keyword_detection_enabled: Optional[bool] = None
    accelerometer_enabled: Optional[bool] = None
    false_alarm_cooldown_minutes: Optional[int] = None


# API payloads
class AnalysisResponse(BaseModel):
    result: DetectionResult
    explanation: str
    classification_valid: bool
    alert: Optional[SafetyAlert] = None


class ValidationResponse(BaseModel):
    valid: bool


class SafetyCheckResponse(BaseModel):
    is_safe: bool
    message: Optional[str] = None
