import sys
import uuid
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add the parent directory to the path so we can import subconv
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from subconv import config
from subconv.main import app
from subconv.services import subtitle_service

SAMPLE_SRT = """1
00:00:01,000 --> 00:00:04,000
This is the first subtitle.

2
00:00:05,000 --> 00:00:09,000
[SIGN ON THE WALL]
"""

SAMPLE_ASS = """[Script Info]
PlayResX: 1280
PlayResY: 720

[Events]
Format: Layer, Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
Dialogue: 0,0:00:01.00,0:00:02.00,Default,,0,0,0,,{\\pos(100,200)}Hi
"""


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Point the data directories at a temporary folder for each test."""
    monkeypatch.setattr(config, "UPLOAD_DIR", tmp_path / "uploads")
    monkeypatch.setattr(config, "PROCESSED_DIR", tmp_path / "processed")
    monkeypatch.setattr(config, "STATUS_DIR", tmp_path / "status")
    monkeypatch.setattr(subtitle_service, "task_status", {})
    return TestClient(app)


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["target_resolution"] == "1920x1080"

def test_upload_convert_download(client):
    task_id = str(uuid.uuid4())
    response = client.post(
        "/api/subtitles/upload",
        files={"file": ("episode.srt", SAMPLE_SRT.encode("utf-8"), "application/x-subrip")},
        data={"task_id": task_id},
    )
    assert response.status_code == 200
    assert response.json()["status"] == "uploaded"

    response = client.post(f"/api/process/convert/{task_id}", json={"scale_x_mode": "keep"})
    assert response.status_code == 200
    assert response.json()["status"] == "processing"

    status = client.get(f"/api/subtitles/status/{task_id}").json()
    assert status["status"] == "completed"
    assert status["source_format"] == "srt"
    assert status["filename"] == "episode.srt"

    response = client.get(f"/api/subtitles/download/{task_id}")
    assert response.status_code == 200
    assert "episode_converted.ass" in response.headers["content-disposition"]
    body = response.text
    assert body.startswith("[Script Info]")
    assert "Sign,,0000,0000,0000,,[SIGN ON THE WALL]" in body

def test_convert_failure_reports_error_status(client):
    task_id = str(uuid.uuid4())
    client.post(
        "/api/subtitles/upload",
        files={"file": ("broken.json", b'{"captions": []}', "application/json")},
        data={"task_id": task_id},
    )
    client.post(f"/api/process/convert/{task_id}", json={})

    status = client.get(f"/api/subtitles/status/{task_id}").json()
    assert status["status"] == "error"
    assert status["error_type"] == "Subtitle Processing Error"
    assert client.get(f"/api/subtitles/download/{task_id}").status_code == 404

def test_upload_rejects_unknown_extension(client):
    response = client.post(
        "/api/subtitles/upload",
        files={"file": ("notes.txt", b"hello", "text/plain")},
    )
    assert response.status_code == 400

def test_convert_unknown_task(client):
    assert client.post("/api/process/convert/does-not-exist", json={}).status_code == 404

def test_status_unknown_task(client):
    assert client.get("/api/subtitles/status/does-not-exist").json()["status"] == "not_found"

def test_resample_endpoint(client):
    response = client.post("/api/process/resample", json={"text": SAMPLE_ASS, "options": {"line_ending": "crlf"}})
    assert response.status_code == 200

    payload = response.json()
    assert "{\\pos(150,300)}Hi\r\n" in payload["text"]
    assert "PlayResX: 1920\r\n" in payload["text"]
    assert payload["source_resolution"]["width"] == 1280
    assert payload["target_resolution"] == {"width": 1920, "height": 1080}

def test_resample_endpoint_accepts_text_without_sections(client):
    response = client.post("/api/process/resample", json={"text": "not an ass script"})
    assert response.status_code == 200

    payload = response.json()
    assert payload["source_resolution"]["declared"] is False
    assert "PlayResX: 1920" in payload["text"]
    assert "not an ass script" in payload["text"]

def test_resample_endpoint_rejects_invalid_options(client):
    response = client.post("/api/process/resample", json={"text": SAMPLE_ASS, "options": {"line_ending": "cr"}})
    assert response.status_code == 422
