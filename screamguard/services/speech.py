import logging
import tempfile
from typing import Optional, Dict, Any, List

import torch
import whisper  # openai-whisper

from ..config import settings
from ..utils.parsers import extract_keywords


logger = logging.getLogger(__name__)


class WhisperTranscriber:
    def __init__(self, model_name: str) -> None:
        self.model_name = model_name
        self.model = whisper.load_model(model_name)

    def transcribe_path(self, audio_path: str) -> Dict[str, Any]:
        # Uses ffmpeg to decode; fp16 only makes sense on GPU
        result: Dict[str, Any] = self.model.transcribe(audio_path, fp16=torch.cuda.is_available())
        return result

    def keywords_from_bytes(self, audio_bytes: bytes) -> List[str]:
        with tempfile.NamedTemporaryFile(suffix=".wav", delete=True) as tmp:
            tmp.write(audio_bytes)
            tmp.flush()
            wres = self.transcribe_path(tmp.name)
        text: str = wres.get("text", "").strip()
        logger.debug("Transcript: %s", text)
        return extract_keywords(text)


_whisper_singleton: Optional[WhisperTranscriber] = None


def get_transcriber() -> WhisperTranscriber:
    global _whisper_singleton
    if _whisper_singleton is None:
        _whisper_singleton = WhisperTranscriber(settings.whisper_model)
    return _whisper_singleton
