import asyncio
import logging
from fastapi import FastAPI
from .config import settings
from .routers.detection import router as detection_router
from .routers.audio import router as audio_router
from .routers.alerts import router as alerts_router
from .services.audio import AudioSampler


logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="ScreamGuard API", version="0.1.0")
app.include_router(detection_router, prefix="/detection", tags=["detection"])
app.include_router(audio_router, prefix="/audio", tags=["audio"])
app.include_router(alerts_router, prefix="/alerts", tags=["alerts"])


background_tasks: list[asyncio.Task] = []


@app.on_event("startup")
async def on_startup() -> None:
    if settings.auto_run and settings.audio_source:
        logger.info("Starting background audio sampler on %s", settings.audio_source)
        audio_sampler = AudioSampler(
            source=settings.audio_source,
            interval_seconds=settings.audio_interval_seconds,
            sample_window_seconds=settings.audio_sample_seconds,
        )
        background_tasks.append(asyncio.create_task(audio_sampler.run()))


@app.on_event("shutdown")
async def on_shutdown() -> None:
    for task in background_tasks:
        task.cancel()
    if background_tasks:
        await asyncio.gather(*background_tasks, return_exceptions=True)
    background_tasks.clear()
