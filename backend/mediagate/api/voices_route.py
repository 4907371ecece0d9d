from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from mediagate.core.config import settings
from mediagate.schemas.generation import VoiceListResponse
from mediagate.services.voices import VoiceCatalogError, list_voices

router = APIRouter(prefix="/api", tags=["Voices"])


@router.get("/health-eleven")
async def health_eleven():
    return {
        "ok": True,
        "elevenKeyPresent": bool(settings.ELEVENLABS_API_KEY),
        "ts": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/eleven/voices", response_model=VoiceListResponse)
async def get_voices():
    try:
        voices = await list_voices()
    except VoiceCatalogError as exc:
        content = exc.payload if isinstance(exc.payload, dict) and exc.payload else {"error": exc.message}
        return JSONResponse(status_code=exc.status_code, content=content)
    return VoiceListResponse(voices=voices)
