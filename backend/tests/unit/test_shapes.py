import pytest

from mediagate.services.generation.shapes import (
    StatusSignal,
    classify_status,
    extract_error_message,
    extract_job_id,
    extract_result_url,
    has_error_code,
    is_not_found,
)

VIDEO = "https://cdn.example.com/v/abc.mp4"


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"code": 200, "data": {"taskId": "abc123"}}, "abc123"),
        ({"data": {"task_id": "t-1"}}, "t-1"),
        ({"data": {"id": 991}}, "991"),
        ({"taskId": " spaced "}, "spaced"),
        ({"generation_id": "gen-7"}, "gen-7"),
        ({"id": "plain"}, "plain"),
        ({"result": {"taskId": "nested"}}, "nested"),
        ({"data": "bare-id"}, "bare-id"),
    ],
)
def test_extract_job_id_variants(payload, expected):
    assert extract_job_id(payload) == expected


@pytest.mark.parametrize(
    "payload",
    [{}, {"data": {}}, {"data": VIDEO}, {"taskId": True}, {"taskId": "   "}, None, "abc"],
)
def test_extract_job_id_missing(payload):
    assert extract_job_id(payload) is None


@pytest.mark.parametrize(
    "payload",
    [
        {"data": {"response": {"resultUrls": [VIDEO]}}},
        {"data": {"info": {"resultUrls": f'["{VIDEO}"]'}}},
        {"data": {"resultUrl": VIDEO}},
        {"videoUrl": VIDEO},
        {"output": VIDEO},
        {"output": [VIDEO, "https://cdn.example.com/other.mp4"]},
        {"output": {"video_url": VIDEO}},
        {"result": VIDEO},
        {"result": {"url": VIDEO}},
        {"data": {"video_urls": [VIDEO]}},
        {"media": [{"type": "image", "url": "https://cdn.example.com/thumb.png"}, {"mimeType": "video/mp4", "uri": VIDEO}]},
        {"data": {"outputs": [{"content_type": "video/mp4", "url": VIDEO}]}},
    ],
)
def test_extract_result_url_known_shapes(payload):
    assert extract_result_url(payload) == VIDEO


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"data": {"status": "SUCCESS"}},
        {"data": {"resultUrls": "not json"}},
        {"data": {"resultUrls": "[]"}},
        {"output": "/relative/path.mp4"},
        {"media": [{"type": "image", "url": "https://cdn.example.com/thumb.png"}]},
        {"something": {"deeply": {"nested": VIDEO}}},
        None,
    ],
)
def test_extract_result_url_unknown_shapes_return_none(payload):
    assert extract_result_url(payload) is None


@pytest.mark.parametrize(
    "payload, expected",
    [
        ({"data": {"successFlag": 0}}, StatusSignal.PENDING),
        ({"data": {"successFlag": 1}}, StatusSignal.SUCCEEDED),
        ({"data": {"successFlag": 2}}, StatusSignal.FAILED),
        ({"data": {"successFlag": 3}}, StatusSignal.FAILED),
        ({"status": "Completed"}, StatusSignal.SUCCEEDED),
        ({"data": {"state": "processing"}}, StatusSignal.PENDING),
        ({"data": {"taskStatus": "FAILED"}}, StatusSignal.FAILED),
        ({"code": 200, "data": {}}, StatusSignal.PENDING),
        ({"code": 500, "msg": "internal"}, StatusSignal.FAILED),
        ({"code": 404, "msg": "record not found"}, StatusSignal.PENDING),
        ({}, StatusSignal.PENDING),
    ],
)
def test_classify_status(payload, expected):
    assert classify_status(payload) is expected


def test_has_error_code():
    assert has_error_code({"code": 402}) is True
    assert has_error_code({"code": "500"}) is True
    assert has_error_code({"code": 0}) is False
    assert has_error_code({"code": 200}) is False
    assert has_error_code({"data": {}}) is False


def test_extract_error_message():
    assert extract_error_message({"data": {"errorMessage": "content policy"}}) == "content policy"
    assert extract_error_message({"data": {"failMsg": "quota"}}) == "quota"
    assert extract_error_message({"error": {"message": "bad key"}}) == "bad key"
    assert extract_error_message({}) is None


def test_is_not_found():
    assert is_not_found(404, {})
    assert is_not_found(405, {})
    assert is_not_found(200, {"code": 404})
    assert is_not_found(200, {"msg": "Task does not exist"})
    assert not is_not_found(200, {"code": 200, "data": {"successFlag": 0}})
