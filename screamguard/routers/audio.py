import asyncio
from fastapi import APIRouter, UploadFile, File, Form, HTTPException
from typing import Optional
from ..config import settings
from ..models.schemas import AccelerometerReading, AnalysisInput, AnalysisResponse, Location
from ..services.audio import AudioService
from .detection import run_analysis


router = APIRouter()
service = AudioService()


@router.post("/infer", response_model=AnalysisResponse, response_model_exclude_none=True)
async def infer_audio(
    clip: UploadFile = File(...),
    user_id: Optional[str] = Form(None),
    latitude: Optional[float] = Form(None),
    longitude: Optional[float] = Form(None),
    accel_x: Optional[float] = Form(None),
    accel_y: Optional[float] = Form(None),
    accel_z: Optional[float] = Form(None),
) -> AnalysisResponse:
    if not clip.content_type or not clip.content_type.startswith("audio/"):
        raise HTTPException(status_code=400, detail="Please upload an audio file")
    audio_bytes = await clip.read()

    samples, classification = await service.classify_audio_bytes(audio_bytes)
    if samples is None:
        raise HTTPException(status_code=400, detail="Could not decode audio")
    if classification is None:
        raise HTTPException(status_code=502, detail="Audio classifier unavailable")

    keywords = None
    if settings.transcribe_keywords:
        from ..services.speech import get_transcriber
        keywords = await asyncio.to_thread(get_transcriber().keywords_from_bytes, audio_bytes)

    accelerometer = None
    if accel_x is not None and accel_y is not None and accel_z is not None:
        accelerometer = AccelerometerReading(x=accel_x, y=accel_y, z=accel_z)
    location = None
    if latitude is not None and longitude is not None:
        location = Location(latitude=latitude, longitude=longitude)

    analysis_input = AnalysisInput(
        classification=classification,
        accelerometer=accelerometer,
        location=location,
        keywords=keywords,
    )
    return await run_analysis(analysis_input, user_id)
