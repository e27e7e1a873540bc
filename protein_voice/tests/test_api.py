from __future__ import annotations

import base64
from pathlib import Path
from types import SimpleNamespace

import openai
import pytest
from fastapi.testclient import TestClient

from protein_voice.config import Settings
from protein_voice.main import ERROR_STATUS, status_for
from protein_voice.tests.conftest import WAV_PAYLOAD, openai_status_error
from protein_voice.voice.exceptions import RateLimited, UpstreamError, VoiceError


def test_healthz(api_client: TestClient) -> None:
    response = api_client.get("/healthz", headers={"X-Correlation-ID": "abc-123"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "openai": "configured"}
    assert response.headers["X-Correlation-ID"] == "abc-123"
    assert "X-Process-Time-ms" in response.headers


def test_metrics_exposes_pipeline_counters(api_client: TestClient) -> None:
    response = api_client.get("/metrics")

    assert response.status_code == 200
    assert "protein_voice_pipeline_runs" in response.text


def test_voice_session_flow_logs_result(api_client: TestClient) -> None:
    assert api_client.get("/voice/session").json()["state"] == "idle"

    started = api_client.post("/voice/recording/start")
    assert started.status_code == 200
    assert started.json()["state"] == "recording"

    stopped = api_client.post("/voice/recording/stop")
    assert stopped.status_code == 200
    assert stopped.json() == {
        "transcript": "two eggs",
        "proteinAmount": 12.0,
        "foodItem": "2 eggs",
        "confidence": 0.95,
    }
    assert api_client.get("/voice/session").json()["state"] == "completed"

    logged = api_client.post("/voice/result/log", json={"date": "2024-05-10", "amount": 14})
    assert logged.status_code == 201
    body = logged.json()
    assert body["amount"] == 14
    assert body["description"] == "2 eggs"
    assert body["source"] == "voice"
    assert api_client.get("/voice/session").json()["state"] == "idle"

    entries = api_client.get("/logs/2024-05-10").json()
    assert [entry["id"] for entry in entries] == [body["id"]]


def test_discard_result(api_client: TestClient) -> None:
    api_client.post("/voice/recording/start")
    api_client.post("/voice/recording/stop")

    response = api_client.post("/voice/result/discard")

    assert response.json() == {"state": "idle", "result": None, "error": None}


def test_log_without_completed_result_conflicts(api_client: TestClient) -> None:
    response = api_client.post("/voice/result/log", json={})

    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_transition"


def test_log_undetermined_result_without_amount(api_client: TestClient, dummy_sdk: SimpleNamespace) -> None:
    dummy_sdk.chat.completions.content = "not sure"
    api_client.post("/voice/recording/start")
    api_client.post("/voice/recording/stop")

    assert api_client.post("/voice/result/log", json={"date": "2024-05-10"}).status_code == 422

    response = api_client.post("/voice/result/log", json={"date": "2024-05-10", "amount": 20})
    assert response.status_code == 201
    assert response.json()["description"] == "two eggs"


def test_stop_without_recording(api_client: TestClient) -> None:
    response = api_client.post("/voice/recording/stop")

    assert response.status_code == 409
    assert response.json()["kind"] == "no_active_recording"


def test_rate_limited_run_reports_kind(api_client: TestClient, dummy_sdk: SimpleNamespace) -> None:
    dummy_sdk.audio.transcriptions.error = openai_status_error(openai.RateLimitError, 429)
    api_client.post("/voice/recording/start")

    response = api_client.post("/voice/recording/stop")

    assert response.status_code == 429
    assert response.json() == {"kind": "rate_limited", "message": RateLimited.user_message}
    session = api_client.get("/voice/session").json()
    assert session["state"] == "failed"
    assert session["error"]["kind"] == "rate_limited"

    assert api_client.post("/voice/recording/cancel").json()["state"] == "idle"


def test_upload_transcription(api_client: TestClient, dummy_sdk: SimpleNamespace, test_settings: Settings) -> None:
    payload = {"audio_base64": base64.b64encode(WAV_PAYLOAD).decode(), "audio_format": "m4a"}

    response = api_client.post("/voice/transcriptions", json=payload)

    assert response.status_code == 200
    assert response.json()["proteinAmount"] == 12.0
    (call,) = dummy_sdk.audio.transcriptions.calls
    filename, audio, mime_type = call["file"]
    assert filename.startswith("upload-") and filename.endswith(".m4a")
    assert audio == WAV_PAYLOAD
    assert mime_type == "audio/mp4"
    assert list(Path(test_settings.scratch_dir).iterdir()) == []


def test_upload_rejects_invalid_base64(api_client: TestClient, dummy_sdk: SimpleNamespace) -> None:
    response = api_client.post("/voice/transcriptions", json={"audio_base64": "not base64!!"})

    assert response.status_code == 422
    assert dummy_sdk.audio.transcriptions.calls == []


@pytest.mark.parametrize("audio_format", ["m4a/../x", "../wav", "", "toolongext"])
def test_upload_rejects_unsafe_audio_format(
    audio_format: str, api_client: TestClient, dummy_sdk: SimpleNamespace, test_settings: Settings
) -> None:
    payload = {"audio_base64": base64.b64encode(WAV_PAYLOAD).decode(), "audio_format": audio_format}

    response = api_client.post("/voice/transcriptions", json=payload)

    assert response.status_code == 422
    assert dummy_sdk.audio.transcriptions.calls == []
    assert not Path(test_settings.scratch_dir).exists() or list(Path(test_settings.scratch_dir).iterdir()) == []


def test_upload_accepts_dotted_audio_format(api_client: TestClient, dummy_sdk: SimpleNamespace) -> None:
    payload = {"audio_base64": base64.b64encode(WAV_PAYLOAD).decode(), "audio_format": ".WAV"}

    assert api_client.post("/voice/transcriptions", json=payload).status_code == 200
    filename, _, mime_type = dummy_sdk.audio.transcriptions.calls[0]["file"]
    assert filename.endswith(".wav")
    assert mime_type == "audio/wav"


@pytest.mark.parametrize("transcript", ["", "   ", "\n\t"])
def test_extraction_rejects_blank_transcript(
    transcript: str, api_client: TestClient, dummy_sdk: SimpleNamespace
) -> None:
    response = api_client.post("/voice/extractions", json={"transcript": transcript})

    assert response.status_code == 422
    assert dummy_sdk.chat.completions.calls == []


def test_extraction_endpoint(api_client: TestClient, dummy_sdk: SimpleNamespace) -> None:
    response = api_client.post("/voice/extractions", json={"transcript": " two eggs "})

    assert response.status_code == 200
    assert response.json()["foodItem"] == "2 eggs"
    assert dummy_sdk.chat.completions.calls[0]["messages"][1]["content"] == "two eggs"


def test_log_crud(api_client: TestClient) -> None:
    first = api_client.post("/logs", json={"date": "2024-05-10", "amount": 30, "description": "shake"})
    api_client.post("/logs", json={"date": "2024-05-10", "amount": 20})
    api_client.post("/logs", json={"date": "2024-05-11", "amount": 50})
    assert first.status_code == 201

    listing = api_client.get("/logs", params={"start": "2024-05-10", "end": "2024-05-11"}).json()
    assert sorted(listing["entries"]) == ["2024-05-10", "2024-05-11"]
    assert len(listing["entries"]["2024-05-10"]) == 2

    entry_id = first.json()["id"]
    assert api_client.delete(f"/logs/2024-05-10/{entry_id}").status_code == 204
    assert api_client.delete(f"/logs/2024-05-10/{entry_id}").status_code == 404
    assert api_client.delete("/logs/2024-05-10").json() == {"deleted": 1}
    assert api_client.get("/logs/2024-05-10").json() == []


def test_log_rejects_invalid_payload(api_client: TestClient) -> None:
    assert api_client.post("/logs", json={"date": "2024-05-10", "amount": 0}).status_code == 422
    assert api_client.post("/logs", json={"date": "10-05-2024", "amount": 5}).status_code == 422
    assert (
        api_client.get("/logs", params={"start": "2024-05-11", "end": "2024-05-10"}).status_code == 422
    )


def test_summaries(api_client: TestClient) -> None:
    for day, amount in (("2024-05-08", 160), ("2024-05-09", 150), ("2024-05-10", 60)):
        api_client.post("/logs", json={"date": day, "amount": amount})

    daily = api_client.get("/summary/daily/2024-05-10").json()
    assert daily["total_protein"] == 60
    assert daily["goal_protein"] == 150
    assert daily["percentage_complete"] == 40
    assert daily["remaining_protein"] == 90
    assert len(daily["entries"]) == 1

    monthly = api_client.get("/summary/monthly/2024/5").json()
    assert monthly["days_with_data"] == 3
    assert monthly["goals_crushed"] == 2
    assert monthly["success_rate"] == 67

    streak = api_client.get("/summary/streak", params={"today": "2024-05-10"}).json()
    assert streak == {"streak": 0, "goal_protein": 150}
    streak = api_client.get("/summary/streak", params={"today": "2024-05-10", "goal": 50}).json()
    assert streak == {"streak": 3, "goal_protein": 50}

    assert api_client.get("/summary/monthly/2024/13").status_code == 422


def test_goal_calculation(api_client: TestClient) -> None:
    response = api_client.post(
        "/goals/calculate",
        json={"weight_lbs": 180, "fitness_goal": "build muscle", "adjustment": "too-low"},
    )

    assert response.json() == {"calculated_goal": 185, "goal": 210}
    assert api_client.post("/goals/calculate", json={"adjustment": "custom"}).status_code == 422


def test_status_mapping_covers_every_kind() -> None:
    assert all(issubclass(error_type, VoiceError) for error_type in ERROR_STATUS)
    assert status_for(UpstreamError("boom")) == 502
    assert status_for(VoiceError("boom")) == 500


@pytest.mark.parametrize("path", ["/voice/recording/start", "/voice/transcriptions"])
def test_missing_credentials_are_reported(
    path: str, api_client: TestClient, pipeline, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(pipeline.transcriber._client, "_api_key", None)
    monkeypatch.setattr(pipeline.transcriber._client, "_client", None)

    response = api_client.post(path, json={"audio_base64": base64.b64encode(WAV_PAYLOAD).decode()})

    assert response.status_code == 503
    assert response.json()["kind"] == "config_error"
