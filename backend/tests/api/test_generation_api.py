import httpx
import pytest
from httpx import AsyncClient

from tests.fakes import PENDING, install_veo_upstream, request_json, sequence

VIDEO = "https://cdn.example.com/v/abc.mp4"


@pytest.mark.parametrize(
    "polls",
    [
        [PENDING, PENDING, {"code": 200, "data": {"successFlag": 1, "output": {"video_url": VIDEO}}}],
        [{"status": "pending"}, {"status": "pending"}, {"status": "succeeded", "output": {"video_url": VIDEO}}],
    ],
    ids=["success_flag", "status_strings"],
)
@pytest.mark.asyncio
async def test_generate_end_to_end(client: AsyncClient, fake_upstream, polls):
    install_veo_upstream(fake_upstream, status=sequence(*polls))

    resp = await client.post("/generate", json={"prompt": "a cat", "duration": 20})

    assert resp.status_code == 200
    data = resp.json()
    assert data["success"] is True
    assert data["job_id"] == "abc123"
    assert data["video_url"] == VIDEO
    assert data["tier"] == "fast"
    assert data["request_id"] == resp.headers["X-Request-Id"]

    submitted = request_json(fake_upstream.calls_to("POST", "/veo/generate")[-1])
    assert submitted["prompt"] == "a cat"
    assert submitted["duration"] == 8.0


@pytest.mark.asyncio
async def test_generate_quality_route_uses_quality_model(client: AsyncClient, fake_upstream):
    install_veo_upstream(fake_upstream, status=lambda _r: {"data": {"resultUrls": [VIDEO]}})

    resp = await client.post("/generate-quality", json={"prompt": "a cat"})

    assert resp.status_code == 200
    assert resp.json()["model"] == "veo3"


@pytest.mark.asyncio
async def test_missing_prompt_is_400_with_request_id(client: AsyncClient, fake_upstream):
    resp = await client.post("/generate-fast", json={}, headers={"X-Request-Id": "req-42"})

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["request_id"] == "req-42"
    assert resp.headers["X-Request-Id"] == "req-42"
    assert fake_upstream.calls == []


@pytest.mark.asyncio
async def test_invalid_json_is_400(client: AsyncClient):
    resp = await client.post("/generate", content=b"{not json", headers={"Content-Type": "application/json"})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_no_working_endpoint_is_502(client: AsyncClient):
    resp = await client.post("/generate", json={"prompt": "a cat"})

    assert resp.status_code == 502
    body = resp.json()
    assert body["error"]["code"] == "NO_WORKING_ENDPOINT"
    assert body["error"]["source"] == "upstream"
    assert body["error"]["detail"]["attempts"]


@pytest.mark.asyncio
async def test_render_timeout_is_504_with_job_id(client: AsyncClient, fake_upstream):
    install_veo_upstream(fake_upstream)

    resp = await client.post("/generate", json={"prompt": "a cat"})

    assert resp.status_code == 504
    body = resp.json()
    assert body["error"]["code"] == "RENDER_TIMEOUT"
    assert body["job_id"] == "abc123"
    assert body["pending"] is True


@pytest.mark.asyncio
async def test_upstream_rejection_is_502(client: AsyncClient, fake_upstream):
    install_veo_upstream(
        fake_upstream,
        submit=lambda _r: httpx.Response(402, json={"code": 402, "msg": "insufficient credits"}),
    )

    resp = await client.post("/generate", json={"prompt": "a cat"})

    assert resp.status_code == 502
    assert resp.json()["error"]["code"] == "UPSTREAM_REJECTED"
    assert resp.json()["error"]["message"] == "insufficient credits"


@pytest.mark.asyncio
async def test_callback_mode_then_late_result(client: AsyncClient, fake_upstream):
    install_veo_upstream(fake_upstream)

    accepted = await client.post(
        "/generate", json={"prompt": "a cat", "callback_url": "https://hook.example.com/cb"}
    )
    assert accepted.status_code == 202
    assert accepted.json()["pending"] is True
    assert accepted.json()["job_id"] == "abc123"

    pending = await client.get("/result/abc123")
    assert pending.status_code == 202
    assert pending.json() == {"ok": True, "pending": True, "job_id": "abc123"}

    ack = await client.post(
        "/callbacks/render",
        json={"code": 200, "data": {"taskId": "abc123", "info": {"resultUrls": [VIDEO]}}},
    )
    assert ack.status_code == 200
    assert ack.json()["status"] == "succeeded"

    done = await client.get("/result/abc123")
    assert done.status_code == 200
    assert done.json() == {"ok": True, "job_id": "abc123", "video_url": VIDEO, "cached": True}


@pytest.mark.asyncio
async def test_callback_without_job_id_is_400(client: AsyncClient):
    resp = await client.post("/callbacks/render", json={"status": "done"})

    assert resp.status_code == 400
