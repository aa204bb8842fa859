import json
import logging
import uuid
from datetime import timedelta
from pathlib import Path
from typing import Optional, List, Dict, Any

from ..config import settings
from ..models.schemas import (
    AlertStatus,
    AlertType,
    ContactNotice,
    DetectionEvent,
    DetectionResult,
    DistressLevel,
    EmergencyContact,
    SafetyAlert,
    UserSettings,
    utcnow,
)


logger = logging.getLogger(__name__)

STORE_FILENAME = "safety_store.json"


def alert_type_for(level: DistressLevel) -> AlertType:
    if level == DistressLevel.high:
        return AlertType.sos
    if level == DistressLevel.medium:
        return AlertType.notify_contacts
    return AlertType.safety_check


class Storage:
    async def save_detection_event(self, result: DetectionResult, user_id: Optional[str] = None) -> DetectionEvent:
        raise NotImplementedError

    async def create_safety_alert(
        self, detection_event_id: str, result: DetectionResult, user_id: Optional[str] = None
    ) -> SafetyAlert:
        raise NotImplementedError

    async def update_alert_status(
        self,
        alert_id: str,
        status: AlertStatus,
        user_response: Optional[str] = None,
        contacts_notified: Optional[List[ContactNotice]] = None,
    ) -> bool:
        raise NotImplementedError

    async def get_alert(self, alert_id: str) -> Optional[SafetyAlert]:
        raise NotImplementedError

    async def add_emergency_contact(self, contact: EmergencyContact) -> EmergencyContact:
        raise NotImplementedError

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        raise NotImplementedError

    async def get_user_settings(self, user_id: str) -> UserSettings:
        raise NotImplementedError

    async def update_user_settings(self, user_id: str, changes: Dict[str, Any]) -> bool:
        raise NotImplementedError

    async def get_recent_detection_events(self, user_id: Optional[str], limit: int = 10) -> List[DetectionEvent]:
        raise NotImplementedError

    async def get_active_alerts(self, user_id: Optional[str]) -> List[SafetyAlert]:
        raise NotImplementedError

    async def last_false_alarm_within(self, user_id: str, window: timedelta) -> bool:
        raise NotImplementedError


class MemoryStorage(Storage):
    def __init__(self) -> None:
        self.events: Dict[str, DetectionEvent] = {}
        self.alerts: Dict[str, SafetyAlert] = {}
        self.contacts: Dict[str, EmergencyContact] = {}
        self.user_settings: Dict[str, UserSettings] = {}

    def _changed(self) -> None:
        """Hook for subclasses that persist state."""

    async def save_detection_event(self, result: DetectionResult, user_id: Optional[str] = None) -> DetectionEvent:
        event = DetectionEvent(
            id=uuid.uuid4().hex,
            user_id=user_id,
            detection=result.detection,
            distress_level=result.distress_level,
            scream_confidence=result.scream_confidence,
            noise_confidence=result.noise_confidence,
            talking_confidence=result.talking_confidence,
            silence_confidence=result.silence_confidence,
            accelerometer_spike=bool(result.accelerometer_spike),
            device_movement=bool(result.device_movement),
            keyword_detected=result.keyword_detected,
            recommended_action=result.recommended_action,
            latitude=result.latitude,
            longitude=result.longitude,
            metadata={
                "message_for_user": result.message_for_user,
                "message_for_contacts": result.message_for_emergency_contacts,
            },
        )
        self.events[event.id] = event
        self._changed()
        return event

    async def create_safety_alert(
        self, detection_event_id: str, result: DetectionResult, user_id: Optional[str] = None
    ) -> SafetyAlert:
        alert = SafetyAlert(
            id=uuid.uuid4().hex,
            detection_event_id=detection_event_id,
            user_id=user_id,
            alert_type=alert_type_for(result.distress_level),
            status=AlertStatus.pending,
            message_for_user=result.message_for_user,
            message_for_contacts=result.message_for_emergency_contacts,
            latitude=result.latitude,
            longitude=result.longitude,
        )
        self.alerts[alert.id] = alert
        self._changed()
        return alert

    async def update_alert_status(
        self,
        alert_id: str,
        status: AlertStatus,
        user_response: Optional[str] = None,
        contacts_notified: Optional[List[ContactNotice]] = None,
    ) -> bool:
        alert = self.alerts.get(alert_id)
        if alert is None:
            logger.error("Error updating alert status: unknown alert %s", alert_id)
            return False
        alert.status = status
        if user_response is not None:
            alert.user_response = user_response
        if contacts_notified is not None:
            alert.contacts_notified = list(contacts_notified)
        alert.updated_at = utcnow()
        self._changed()
        return True

    async def get_alert(self, alert_id: str) -> Optional[SafetyAlert]:
        return self.alerts.get(alert_id)

    async def add_emergency_contact(self, contact: EmergencyContact) -> EmergencyContact:
        # Ids are always server-assigned
        stored = contact.model_copy(update={"id": uuid.uuid4().hex})
        self.contacts[stored.id] = stored
        self._changed()
        return stored

    async def get_emergency_contacts(self, user_id: str) -> List[EmergencyContact]:
        found = [c for c in self.contacts.values() if c.user_id == user_id and c.active]
        return sorted(found, key=lambda c: c.priority)

    async def get_user_settings(self, user_id: str) -> UserSettings:
        existing = self.user_settings.get(user_id)
        if existing is None:
            existing = UserSettings(user_id=user_id)
            self.user_settings[user_id] = existing
            self._changed()
        return existing

    async def update_user_settings(self, user_id: str, changes: Dict[str, Any]) -> bool:
        current = await self.get_user_settings(user_id)
        updated = current.model_copy(update={**changes, "updated_at": utcnow()})
        self.user_settings[user_id] = UserSettings.model_validate(updated.model_dump())
        self._changed()
        return True

    async def get_recent_detection_events(self, user_id: Optional[str], limit: int = 10) -> List[DetectionEvent]:
        found = [e for e in reversed(list(self.events.values())) if e.user_id == user_id]
        found.sort(key=lambda e: e.created_at, reverse=True)
        return found[:limit]

    async def get_active_alerts(self, user_id: Optional[str]) -> List[SafetyAlert]:
        active = (AlertStatus.pending, AlertStatus.sent)
        found = [a for a in reversed(list(self.alerts.values())) if a.user_id == user_id and a.status in active]
        found.sort(key=lambda a: a.created_at, reverse=True)
        return found

    async def last_false_alarm_within(self, user_id: str, window: timedelta) -> bool:
        cutoff = utcnow() - window
        return any(
            a.user_id == user_id and a.status == AlertStatus.false_alarm and a.updated_at >= cutoff
            for a in self.alerts.values()
        )


class LocalStorage(MemoryStorage):
    """MemoryStorage mirrored to a JSON document on disk."""

    def __init__(self, base_dir: Optional[str] = None) -> None:
        super().__init__()
        self.base = Path(base_dir or settings.storage_base_dir)
        self.base.mkdir(parents=True, exist_ok=True)
        self.path = self.base / STORE_FILENAME
        if self.path.exists():
            self._load()

    def _load(self) -> None:
        data = json.loads(self.path.read_text(encoding="utf-8"))
        self.events = {k: DetectionEvent.model_validate(v) for k, v in data.get("events", {}).items()}
        self.alerts = {k: SafetyAlert.model_validate(v) for k, v in data.get("alerts", {}).items()}
        self.contacts = {k: EmergencyContact.model_validate(v) for k, v in data.get("contacts", {}).items()}
        self.user_settings = {k: UserSettings.model_validate(v) for k, v in data.get("user_settings", {}).items()}

    def _changed(self) -> None:
        data = {
            "events": {k: v.model_dump(mode="json") for k, v in self.events.items()},
            "alerts": {k: v.model_dump(mode="json") for k, v in self.alerts.items()},
            "contacts": {k: v.model_dump(mode="json") for k, v in self.contacts.items()},
            "user_settings": {k: v.model_dump(mode="json") for k, v in self.user_settings.items()},
        }
        tmp = self.path.with_suffix(".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        tmp.replace(self.path)


_storage_singleton: Optional[Storage] = None


def get_storage() -> Storage:
    global _storage_singleton
    if _storage_singleton is None:
        if settings.storage_backend == "memory":
            _storage_singleton = MemoryStorage()
        else:
            _storage_singleton = LocalStorage()
    return _storage_singleton


def reset_storage() -> None:
    global _storage_singleton
    _storage_singleton = None
