import logging
from datetime import timedelta
from typing import Optional

from ..models.schemas import (
    AccelerometerReading,
    AlertStatus,
    AnalysisInput,
    ContactNotice,
    DetectionResult,
    DistressLevel,
    EmergencyContact,
    SafetyAlert,
    UserSettings,
)
from ..utils.storage import Storage, get_storage


logger = logging.getLogger(__name__)

MOCK_ACCELEROMETER = {
    "normal": AccelerometerReading(x=0.5, y=-0.3, z=9.8),
    "spike": AccelerometerReading(x=18, y=-12, z=15),
    "movement": AccelerometerReading(x=5, y=4, z=-6),
}


def mock_accelerometer(scenario: str = "normal") -> AccelerometerReading:
    return MOCK_ACCELEROMETER.get(scenario, MOCK_ACCELEROMETER["normal"])


def apply_user_settings(analysis_input: AnalysisInput, user_settings: UserSettings) -> AnalysisInput:
    """Drop the signals a user has switched off; they then count as absent."""
    changes = {}
    if not user_settings.accelerometer_enabled:
        changes["accelerometer"] = None
    if not user_settings.location_sharing_enabled:
        changes["location"] = None
    if not user_settings.keyword_detection_enabled:
        changes["keywords"] = None
    if not changes:
        return analysis_input
    return analysis_input.model_copy(update=changes)


def location_text(alert: SafetyAlert) -> str:
    if alert.latitude is not None and alert.longitude is not None:
        return f"Location: https://maps.google.com/?q={alert.latitude},{alert.longitude}"
    return "Location not available"


class EmergencyService:
    def __init__(self, storage: Optional[Storage] = None) -> None:
        self._storage = storage

    @property
    def storage(self) -> Storage:
        return self._storage or get_storage()

    async def handle_emergency_detection(
        self, result: DetectionResult, user_id: Optional[str] = None
    ) -> Optional[SafetyAlert]:
        event = await self.storage.save_detection_event(result, user_id)

        if result.distress_level == DistressLevel.none:
            return None

        alert = await self.storage.create_safety_alert(event.id, result, user_id)

        if user_id:
            user_settings = await self.storage.get_user_settings(user_id)
            if user_settings.auto_alert_enabled:
                cooldown = timedelta(minutes=user_settings.false_alarm_cooldown_minutes)
                if cooldown and await self.storage.last_false_alarm_within(user_id, cooldown):
                    logger.info("Skipping contact notification for %s: false alarm cooldown active", user_id)
                else:
                    await self.notify_emergency_contacts(alert, user_id)
                    alert = await self.storage.get_alert(alert.id) or alert

        return alert

    async def notify_emergency_contacts(self, alert: SafetyAlert, user_id: str) -> bool:
        contacts = await self.storage.get_emergency_contacts(user_id)

        if not contacts:
            logger.warning("No emergency contacts found for user %s", user_id)
            return False

        notices: list[ContactNotice] = []
        for contact in contacts:
            if self.send_notification_to_contact(contact, alert):
                notices.append(ContactNotice(name=contact.name, method="SMS" if contact.phone else "Email"))

        await self.storage.update_alert_status(alert.id, AlertStatus.sent, contacts_notified=notices)

        logger.info("Notified %d emergency contacts", len(notices))
        return len(notices) > 0

    def send_notification_to_contact(self, contact: EmergencyContact, alert: SafetyAlert) -> bool:
        # Delivery is simulated; the message is only logged
        message = (
            f"{alert.message_for_contacts}\n\n{location_text(alert)}\n\n"
            f"Time: {alert.created_at.isoformat()}"
        )
        target = f"SMS to {contact.phone}" if contact.phone else f"Email to {contact.email}"
        logger.info("[SIMULATION] Sending notification to %s via %s: %s", contact.name, target, message)
        return True

    async def respond_to_safety_check(
        self, alert_id: str, is_safe: bool, additional_message: Optional[str] = None
    ) -> bool:
        status = AlertStatus.false_alarm if is_safe else AlertStatus.acknowledged
        response = "User confirmed safe" if is_safe else "User confirmed distress"
        if additional_message:
            response = f"{response}: {additional_message}"
        return await self.storage.update_alert_status(alert_id, status, user_response=response)


_emergency_singleton: Optional[EmergencyService] = None


def get_emergency_service() -> EmergencyService:
    global _emergency_singleton
    if _emergency_singleton is None:
        _emergency_singleton = EmergencyService()
    return _emergency_singleton
