"""
ElevenLabs 音色列表(只读)

语音合成本身不在本服务内,这里只透传音色目录给前端做选择。
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

from mediagate.core.config import settings
from mediagate.core.http_client import create_async_http_client

logger = logging.getLogger(__name__)


class VoiceCatalogError(Exception):
    def __init__(self, message: str, status_code: int = 502, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


def normalize_voices(payload: Any) -> list[dict[str, Any]]:
    voices = payload.get("voices") if isinstance(payload, dict) else None
    items: list[dict[str, Any]] = []
    for voice in voices or []:
        if not isinstance(voice, dict):
            continue
        items.append(
            {
                "id": voice.get("voice_id") or voice.get("voiceId") or voice.get("id"),
                "name": voice.get("name"),
                "category": voice.get("category") or "",
            }
        )
    return items


async def list_voices(
    *,
    api_key: str | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[dict[str, Any]]:
    key = api_key if api_key is not None else settings.ELEVENLABS_API_KEY
    if not key:
        raise VoiceCatalogError(
            "ElevenLabs key missing (set ELEVEN_LABS or ELEVENLABS_API_KEY)", status_code=401
        )

    url = f"{settings.ELEVENLABS_BASE_URL.rstrip('/')}/voices"
    async with create_async_http_client(
        timeout=settings.ELEVENLABS_TIMEOUT_SECONDS, transport=transport
    ) as client:
        try:
            response = await client.get(url, headers={"xi-api-key": key, "Accept": "application/json"})
        except httpx.TimeoutException as exc:
            raise VoiceCatalogError("Voices request timed out") from exc
        except httpx.HTTPError as exc:
            logger.warning("elevenlabs_voices_error err=%r", exc)
            raise VoiceCatalogError(str(exc) or exc.__class__.__name__) from exc

    try:
        payload = response.json()
    except ValueError:
        payload = {}
    if not response.is_success:
        raise VoiceCatalogError(
            "ElevenLabs voices request failed", status_code=response.status_code, payload=payload
        )
    return normalize_voices(payload)


__all__ = ["VoiceCatalogError", "list_voices", "normalize_voices"]
