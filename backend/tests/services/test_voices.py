import httpx
import pytest
from httpx import AsyncClient

from main import app
from mediagate.services import voices
from mediagate.services.voices import VoiceCatalogError, list_voices, normalize_voices


def test_normalize_voices_maps_ids():
    payload = {
        "voices": [
            {"voice_id": "v1", "name": "Rachel", "category": "premade"},
            {"voiceId": "v2", "name": "Adam"},
            "garbage",
        ]
    }

    assert normalize_voices(payload) == [
        {"id": "v1", "name": "Rachel", "category": "premade"},
        {"id": "v2", "name": "Adam", "category": ""},
    ]
    assert normalize_voices({"detail": "nope"}) == []


@pytest.mark.asyncio
async def test_list_voices_sends_key_header():
    seen: dict[str, str] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["key"] = request.headers["xi-api-key"]
        seen["path"] = request.url.path
        return httpx.Response(200, json={"voices": [{"voice_id": "v1", "name": "Rachel"}]})

    items = await list_voices(api_key="eleven-key", transport=httpx.MockTransport(handler))

    assert items == [{"id": "v1", "name": "Rachel", "category": ""}]
    assert seen == {"key": "eleven-key", "path": "/v1/voices"}


@pytest.mark.asyncio
async def test_list_voices_without_key():
    with pytest.raises(VoiceCatalogError) as exc_info:
        await list_voices(api_key="")
    assert exc_info.value.status_code == 401


@pytest.mark.asyncio
async def test_list_voices_relays_upstream_status():
    transport = httpx.MockTransport(
        lambda request: httpx.Response(403, json={"detail": {"status": "invalid_api_key"}})
    )

    with pytest.raises(VoiceCatalogError) as exc_info:
        await list_voices(api_key="bad", transport=transport)

    assert exc_info.value.status_code == 403
    assert exc_info.value.payload == {"detail": {"status": "invalid_api_key"}}


@pytest.mark.asyncio
async def test_list_voices_timeout():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(VoiceCatalogError, match="timed out") as exc_info:
        await list_voices(api_key="k", transport=httpx.MockTransport(handler))
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_voice_routes(monkeypatch):
    async def fake_list_voices():
        return [{"id": "v1", "name": "Rachel", "category": ""}]

    monkeypatch.setattr("mediagate.api.voices_route.list_voices", fake_list_voices)
    monkeypatch.setattr(voices.settings, "ELEVENLABS_API_KEY", "k")

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        health = await client.get("/api/health-eleven")
        listing = await client.get("/api/eleven/voices")

    assert health.json()["elevenKeyPresent"] is True
    assert listing.status_code == 200
    assert listing.json() == {"voices": [{"id": "v1", "name": "Rachel", "category": ""}]}


@pytest.mark.asyncio
async def test_voice_route_missing_key(monkeypatch):
    monkeypatch.setattr(voices.settings, "ELEVENLABS_API_KEY", None)

    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        resp = await client.get("/api/eleven/voices")

    assert resp.status_code == 401
    assert "ElevenLabs key missing" in resp.json()["error"]
