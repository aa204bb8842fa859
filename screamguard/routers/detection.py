from fastapi import APIRouter, HTTPException
from typing import Optional
from ..models.schemas import AnalysisInput, AnalysisResponse, Classification, ValidationResponse
from ..services.audio import SCENARIO_PRESETS, mock_classification
from ..services.detection import get_detection_service
from ..services.emergency import apply_user_settings, get_emergency_service, mock_accelerometer


router = APIRouter()


async def run_analysis(analysis_input: AnalysisInput, user_id: Optional[str] = None) -> AnalysisResponse:
    detector = get_detection_service()
    emergency = get_emergency_service()

    if user_id:
        user_settings = await emergency.storage.get_user_settings(user_id)
        analysis_input = apply_user_settings(analysis_input, user_settings)

    valid = detector.validate(analysis_input.classification)
    result = detector.analyze(analysis_input)
    alert = await emergency.handle_emergency_detection(result, user_id)
    return AnalysisResponse(
        result=result,
        explanation=detector.explain(result),
        classification_valid=valid,
        alert=alert,
    )


@router.post("/analyze", response_model=AnalysisResponse, response_model_exclude_none=True)
async def analyze(analysis_input: AnalysisInput, user_id: Optional[str] = None) -> AnalysisResponse:
    return await run_analysis(analysis_input, user_id)


@router.post("/validate", response_model=ValidationResponse)
async def validate(classification: Classification) -> ValidationResponse:
    return ValidationResponse(valid=get_detection_service().validate(classification))


@router.post("/scenarios/{scenario}", response_model=AnalysisResponse, response_model_exclude_none=True)
async def run_scenario(
    scenario: str,
    with_accelerometer: bool = False,
    with_keyword: bool = False,
    user_id: Optional[str] = None,
) -> AnalysisResponse:
    if scenario not in SCENARIO_PRESETS:
        raise HTTPException(status_code=404, detail=f"Unknown scenario: {scenario}")
    analysis_input = AnalysisInput(
        classification=mock_classification(scenario),
        accelerometer=mock_accelerometer("spike" if with_accelerometer else "normal"),
        keywords=["help", "stop"] if with_keyword else None,
    )
    return await run_analysis(analysis_input, user_id)
