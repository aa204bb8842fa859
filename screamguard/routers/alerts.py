from fastapi import APIRouter, HTTPException
from typing import Optional, List
from ..models.schemas import (
    DetectionEvent,
    EmergencyContact,
    SafetyAlert,
    SafetyCheckResponse,
    UserSettings,
    UserSettingsUpdate,
)
from ..services.emergency import get_emergency_service


router = APIRouter()


@router.get("/active", response_model=List[SafetyAlert])
async def active_alerts(user_id: Optional[str] = None) -> List[SafetyAlert]:
    return await get_emergency_service().storage.get_active_alerts(user_id)


@router.post("/{alert_id}/respond", response_model=SafetyAlert)
async def respond(alert_id: str, body: SafetyCheckResponse) -> SafetyAlert:
    emergency = get_emergency_service()
    ok = await emergency.respond_to_safety_check(alert_id, body.is_safe, body.message)
    if not ok:
        raise HTTPException(status_code=404, detail="Alert not found")
    return await emergency.storage.get_alert(alert_id)


@router.get("/events", response_model=List[DetectionEvent])
async def recent_events(user_id: Optional[str] = None, limit: int = 10) -> List[DetectionEvent]:
    return await get_emergency_service().storage.get_recent_detection_events(user_id, limit)


@router.get("/contacts", response_model=List[EmergencyContact])
async def list_contacts(user_id: str) -> List[EmergencyContact]:
    return await get_emergency_service().storage.get_emergency_contacts(user_id)


@router.post("/contacts", response_model=EmergencyContact)
async def add_contact(contact: EmergencyContact) -> EmergencyContact:
    if not contact.phone and not contact.email:
        raise HTTPException(status_code=400, detail="A contact needs a phone or an email")
    return await get_emergency_service().storage.add_emergency_contact(contact)


@router.get("/settings/{user_id}", response_model=UserSettings)
async def get_settings(user_id: str) -> UserSettings:
    return await get_emergency_service().storage.get_user_settings(user_id)


@router.patch("/settings/{user_id}", response_model=UserSettings)
async def update_settings(user_id: str, changes: UserSettingsUpdate) -> UserSettings:
    storage = get_emergency_service().storage
    await storage.update_user_settings(user_id, changes.model_dump(exclude_none=True))
    return await storage.get_user_settings(user_id)
